from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime

import pandas as pd

from dashboard_series.palette import EMPHASIS_COLOR, EMPHASIS_RADIUS, POINT_COLOR, POINT_RADIUS
from dashboard_series.preprocess.window import MonthBucket, window_periods


@dataclass(frozen=True)
class Event:
    date: datetime
    title: str


@dataclass(frozen=True)
class PointStyling:
    radii: list[int]
    colors: list[str]


def event_timestamp(value: date | datetime | pd.Timestamp) -> pd.Timestamp:
    """Timestamp on the event's own wall clock; offset-aware values drop their zone."""
    stamp = pd.Timestamp(value)
    if stamp.tzinfo is not None:
        stamp = stamp.tz_localize(None)
    return stamp


def bucket_events(
    buckets: Sequence[MonthBucket],
    events: Iterable[Event],
) -> list[list[Event]]:
    """Attach each event to the month containing its date, oldest first per month."""
    index_by_period = window_periods(buckets)
    slots: list[list[Event]] = [[] for _ in buckets]
    for event in events:
        if event.date is None:
            continue
        stamp = event_timestamp(event.date)
        if pd.isna(stamp):
            continue
        slot = index_by_period.get((int(stamp.year), int(stamp.month)))
        if slot is not None:
            slots[slot].append(event)
    return [
        sorted(slot, key=lambda item: event_timestamp(item.date))
        for slot in slots
    ]


def emphasis_flags(overlay: Sequence[Sequence[Event]]) -> list[bool]:
    return [bool(slot) for slot in overlay]


def point_styling(
    overlay: Sequence[Sequence[Event]],
    color: str = POINT_COLOR,
    *,
    emphasis_color: str = EMPHASIS_COLOR,
    radius: int = POINT_RADIUS,
    emphasis_radius: int = EMPHASIS_RADIUS,
) -> PointStyling:
    radii: list[int] = []
    colors: list[str] = []
    for flagged in emphasis_flags(overlay):
        radii.append(emphasis_radius if flagged else radius)
        colors.append(emphasis_color if flagged else color)
    return PointStyling(radii=radii, colors=colors)


def tooltip_lines(
    overlay: Sequence[Sequence[Event]],
    date_format: str = "%Y-%m-%d",
) -> list[list[str]]:
    return [
        [f"{event_timestamp(event.date).strftime(date_format)}: {event.title}" for event in slot]
        for slot in overlay
    ]


def events_from_frame(
    frame: pd.DataFrame,
    *,
    date_column: str = "date",
    title_column: str = "title",
) -> list[Event]:
    """Build events from a loaded table; rows without a parseable date are skipped."""
    if frame.empty:
        return []
    timestamps = pd.to_datetime(frame[date_column], errors="coerce")
    titles = frame[title_column].fillna("").astype(str).str.strip()
    return [
        Event(date=stamp.to_pydatetime(), title=title)
        for stamp, title in zip(timestamps, titles)
        if not pd.isna(stamp)
    ]
