from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime

import pandas as pd

DEFAULT_LABEL_FORMAT = "%Y-%m"

WINDOW_PRESETS = ("current-year", "current-and-previous-year", "last-N-months")
_LAST_N_MONTHS = re.compile(r"^last-(\d+)-months$")


@dataclass(frozen=True)
class MonthBucket:
    year: int
    month: int
    label: str

    @property
    def period(self) -> tuple[int, int]:
        return (self.year, self.month)


def _step_back(year: int, month: int) -> tuple[int, int]:
    month -= 1
    if month < 1:
        return year - 1, 12
    return year, month


def _format_label(year: int, month: int, label_format: str) -> str:
    return date(year, month, 1).strftime(label_format)


def build_window(
    anchor_date: date | datetime | pd.Timestamp,
    window_size: int,
    label_format: str = DEFAULT_LABEL_FORMAT,
) -> tuple[MonthBucket, ...]:
    """Return the ``window_size`` calendar months ending at the anchor's month.

    Buckets are ordered oldest first, so the last bucket is always the month
    containing ``anchor_date``.
    """
    if isinstance(window_size, bool) or not isinstance(window_size, int) or window_size < 1:
        raise ValueError(f"window_size must be an integer >= 1, got {window_size!r}")

    year, month = int(anchor_date.year), int(anchor_date.month)
    periods: list[tuple[int, int]] = [(year, month)]
    for _ in range(window_size - 1):
        year, month = _step_back(year, month)
        periods.append((year, month))
    periods.reverse()

    return tuple(
        MonthBucket(
            year=bucket_year,
            month=bucket_month,
            label=_format_label(bucket_year, bucket_month, label_format),
        )
        for bucket_year, bucket_month in periods
    )


def resolve_window_size(preset: str, anchor_date: date | datetime | pd.Timestamp) -> int:
    normalized = str(preset or "").strip().lower()
    if normalized == "current-year":
        return int(anchor_date.month)
    if normalized == "current-and-previous-year":
        return int(anchor_date.month) + 12
    match = _LAST_N_MONTHS.match(normalized)
    if match:
        size = int(match.group(1))
        if size >= 1:
            return size
    raise ValueError(
        f"Unsupported window preset: {preset!r}. "
        f"Expected one of: {', '.join(WINDOW_PRESETS)}"
    )


def window_periods(buckets: Sequence[MonthBucket]) -> dict[tuple[int, int], int]:
    """Map each ``(year, month)`` in the window to its bucket index."""
    return {bucket.period: index for index, bucket in enumerate(buckets)}
