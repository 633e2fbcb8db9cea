from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Protocol

import pandas as pd


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now()


@dataclass(frozen=True)
class FixedClock:
    """Clock pinned to one instant, for tests and reproducible runs."""

    instant: datetime

    def now(self) -> datetime:
        return self.instant


def parse_anchor(value: str | date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        raise ValueError("anchor date must be a non-empty ISO date string")
    try:
        parsed = pd.Timestamp(text)
    except ValueError as exc:
        raise ValueError(f"invalid anchor date: {value!r}") from exc
    if pd.isna(parsed):
        raise ValueError(f"invalid anchor date: {value!r}")
    return parsed.date()


def anchor_from_clock(clock: Clock) -> date:
    # Day granularity keeps the window stable for every render within a day.
    return clock.now().date()
