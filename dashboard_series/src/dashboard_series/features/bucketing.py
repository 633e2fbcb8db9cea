from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

import pandas as pd

from dashboard_series.preprocess.window import MonthBucket, window_periods

ValueSelector = Callable[[Any], Any]


def _field(record: Any, name: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def to_number(value: Any) -> float:
    """Coerce a possibly missing numeric field; absent or non-numeric counts as 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number):
        return 0.0
    return number


def field_selector(name: str) -> ValueSelector:
    def _select(record: Any) -> float:
        return to_number(_field(record, name))

    return _select


def record_period(record: Any) -> tuple[int, int] | None:
    year = _field(record, "year")
    month = _field(record, "month")
    try:
        period = (int(year), int(month))
    except (TypeError, ValueError):
        return None
    return period


def bucket_records(
    buckets: Sequence[MonthBucket],
    records: Iterable[Any],
    value_selector: ValueSelector,
) -> list[float]:
    """Sum record values into the month window.

    Records sharing a month accumulate. Records outside the window are
    ignored, since source history usually reaches further back than the view.
    """
    index_by_period = window_periods(buckets)
    values = [0.0] * len(buckets)
    for record in records:
        period = record_period(record)
        if period is None:
            continue
        slot = index_by_period.get(period)
        if slot is None:
            continue
        values[slot] += to_number(value_selector(record))
    return values


def add_period_columns(
    frame: pd.DataFrame,
    *,
    year_column: str = "year",
    month_column: str = "month",
    date_column: str | None = None,
) -> pd.DataFrame:
    """Return a copy with integer ``year``/``month`` columns; undated rows are dropped."""
    working = frame.copy()
    if date_column is not None:
        if date_column not in working.columns:
            raise ValueError(f"Record frame missing date column: {date_column}")
        timestamps = pd.to_datetime(working[date_column], errors="coerce")
        working["year"] = timestamps.dt.year
        working["month"] = timestamps.dt.month
    else:
        for column in (year_column, month_column):
            if column not in working.columns:
                raise ValueError(f"Record frame missing period column: {column}")
        working["year"] = pd.to_numeric(working[year_column], errors="coerce")
        working["month"] = pd.to_numeric(working[month_column], errors="coerce")

    return working.dropna(subset=["year", "month"]).astype({"year": int, "month": int})


def restrict_to_window(frame: pd.DataFrame, buckets: Sequence[MonthBucket]) -> pd.DataFrame:
    periods = set(window_periods(buckets))
    if frame.empty:
        return frame
    in_window = [
        (int(year), int(month)) in periods
        for year, month in zip(frame["year"], frame["month"])
    ]
    return frame.loc[in_window]


def bucket_frame(
    buckets: Sequence[MonthBucket],
    frame: pd.DataFrame,
    value_columns: Sequence[str],
    *,
    year_column: str = "year",
    month_column: str = "month",
    date_column: str | None = None,
) -> pd.DataFrame:
    """Bucket several metric columns at once, one output row per window month."""
    columns = list(value_columns)
    working = add_period_columns(
        frame,
        year_column=year_column,
        month_column=month_column,
        date_column=date_column,
    )
    for column in columns:
        if column in working.columns:
            working[column] = pd.to_numeric(working[column], errors="coerce").fillna(0.0)
        else:
            working[column] = 0.0

    full_index = pd.MultiIndex.from_tuples(
        [bucket.period for bucket in buckets],
        names=["year", "month"],
    )
    if working.empty:
        grouped = pd.DataFrame(0.0, index=full_index, columns=columns)
    else:
        grouped = (
            working.groupby(["year", "month"])[columns]
            .sum()
            .reindex(full_index, fill_value=0.0)
        )
    grouped = grouped.astype(float).reset_index()
    grouped.insert(2, "label", [bucket.label for bucket in buckets])
    return grouped
