from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import asdict, dataclass
from typing import Any

import pandas as pd

from dashboard_series.features.events import (
    Event,
    bucket_events,
    emphasis_flags,
    point_styling,
    tooltip_lines,
)
from dashboard_series.features.grouping import Group, RankedGroup, order_groups, rank_and_group
from dashboard_series.palette import (
    DEFAULT_PALETTE,
    EMPHASIS_COLOR,
    EMPHASIS_RADIUS,
    OTHER_COLOR,
    OTHER_LABEL,
    POINT_RADIUS,
    rank_color,
    validate_palette,
)
from dashboard_series.preprocess.window import MonthBucket

SUMMARY_COLUMNS = [
    "rank",
    "key",
    "display_name",
    "color",
    "in_chart",
    "total",
    "percentage",
    "monthly_average",
    "months_with_data",
]


@dataclass(frozen=True)
class SeriesDataset:
    key: str
    label: str
    values: list[float]
    color: str
    is_other: bool
    shares: list[float]
    point_radii: list[int]
    point_colors: list[str]


@dataclass(frozen=True)
class RenderSeries:
    labels: list[str]
    datasets: list[SeriesDataset]
    events: list[list[Event]]
    emphasis: list[bool]
    tooltips: list[list[str]]
    bucket_totals: list[float]

    @property
    def is_empty(self) -> bool:
        return all(value == 0 for dataset in self.datasets for value in dataset.values)

    def to_payload(self) -> dict[str, Any]:
        return {
            "labels": list(self.labels),
            "datasets": [asdict(dataset) for dataset in self.datasets],
            "annotations": [
                {
                    "label": label,
                    "emphasis": flagged,
                    "tooltip": list(lines),
                    "events": [
                        {"date": pd.Timestamp(event.date).isoformat(), "title": event.title}
                        for event in slot
                    ],
                }
                for label, flagged, lines, slot in zip(
                    self.labels, self.emphasis, self.tooltips, self.events
                )
            ],
            "bucket_totals": list(self.bucket_totals),
            "is_empty": self.is_empty,
        }


@dataclass(frozen=True)
class DashboardView:
    chart: RenderSeries
    table: pd.DataFrame
    ranked: list[RankedGroup]


def _aligned_values(group: RankedGroup, length: int) -> list[float]:
    values = [float(value) for value in group.monthly_series]
    if len(values) > length:
        raise ValueError(
            f"Series for group {group.key!r} has {len(values)} values "
            f"but the window has {length} buckets"
        )
    return values + [0.0] * (length - len(values))


def assemble(
    buckets: Sequence[MonthBucket],
    ranked_groups: Sequence[RankedGroup],
    event_overlay: Sequence[Sequence[Event]],
    *,
    point_color: str | None = None,
    emphasis_color: str = EMPHASIS_COLOR,
    radius: int = POINT_RADIUS,
    emphasis_radius: int = EMPHASIS_RADIUS,
    date_format: str = "%Y-%m-%d",
) -> RenderSeries:
    """Build the chart view, keeping the stacking order of ``ranked_groups``.

    Points without events take ``point_color``, or the dataset color when unset.
    """
    length = len(buckets)
    if len(event_overlay) != length:
        raise ValueError(
            f"Event overlay has {len(event_overlay)} slots but the window has {length} buckets"
        )

    aligned = [(group, _aligned_values(group, length)) for group in ranked_groups]
    bucket_totals = [
        float(sum(values[index] for _, values in aligned)) for index in range(length)
    ]
    # Shares are relative to absolute contributions and stay within -100..100.
    bucket_magnitudes = [
        float(sum(abs(values[index]) for _, values in aligned)) for index in range(length)
    ]

    datasets: list[SeriesDataset] = []
    for group, values in aligned:
        styling = point_styling(
            event_overlay,
            point_color or group.color,
            emphasis_color=emphasis_color,
            radius=radius,
            emphasis_radius=emphasis_radius,
        )
        datasets.append(
            SeriesDataset(
                key=group.key,
                label=group.display_name,
                values=values,
                color=group.color,
                is_other=group.is_other,
                shares=[
                    (value / magnitude * 100.0) if magnitude > 0 else 0.0
                    for value, magnitude in zip(values, bucket_magnitudes)
                ],
                point_radii=styling.radii,
                point_colors=styling.colors,
            )
        )

    return RenderSeries(
        labels=[bucket.label for bucket in buckets],
        datasets=datasets,
        events=[list(slot) for slot in event_overlay],
        emphasis=emphasis_flags(event_overlay),
        tooltips=tooltip_lines(event_overlay, date_format=date_format),
        bucket_totals=bucket_totals,
    )


def _auxiliary_fields(groups: Sequence[Group]) -> list[str]:
    fields: list[str] = []
    for group in groups:
        for name in group.auxiliary:
            if name not in fields:
                fields.append(name)
    return fields


def summarize_groups(
    groups: Iterable[Group],
    buckets: Sequence[MonthBucket],
    top_k: int,
    *,
    palette: Sequence[str] = DEFAULT_PALETTE,
    other_color: str = OTHER_COLOR,
) -> pd.DataFrame:
    """Table view over every group, including those folded into "Other" on the chart.

    Percentages use the grand total of all groups inside the current window.
    """
    if isinstance(top_k, bool) or not isinstance(top_k, int) or top_k < 0:
        raise ValueError(f"top_k must be an integer >= 0, got {top_k!r}")
    colors = validate_palette(palette)

    ordered = order_groups(groups)
    auxiliary_fields = _auxiliary_fields(ordered)
    columns = SUMMARY_COLUMNS + [f"avg_{name}" for name in auxiliary_fields]
    if not ordered:
        return pd.DataFrame(columns=columns)

    grand_total = float(sum(group.total for group in ordered))
    window_length = max(len(buckets), 1)
    rows: list[dict[str, Any]] = []
    for rank, group in enumerate(ordered):
        in_chart = rank < top_k
        row: dict[str, Any] = {
            "rank": rank,
            "key": group.key,
            "display_name": group.display_name,
            "color": rank_color(rank, colors) if in_chart else other_color,
            "in_chart": in_chart,
            "total": group.total,
            "percentage": (group.total / grand_total * 100.0) if grand_total else 0.0,
            "monthly_average": group.total / window_length,
            "months_with_data": sum(1 for value in group.monthly_series if value != 0),
        }
        for name in auxiliary_fields:
            row[f"avg_{name}"] = group.auxiliary.get(name, float("nan"))
        rows.append(row)
    return pd.DataFrame(rows, columns=columns)


def build_dashboard_view(
    buckets: Sequence[MonthBucket],
    groups: Sequence[Group],
    events: Iterable[Event],
    top_k: int,
    *,
    palette: Sequence[str] = DEFAULT_PALETTE,
    other_color: str = OTHER_COLOR,
    other_label: str = OTHER_LABEL,
    point_color: str | None = None,
    emphasis_color: str = EMPHASIS_COLOR,
    radius: int = POINT_RADIUS,
    emphasis_radius: int = EMPHASIS_RADIUS,
    date_format: str = "%Y-%m-%d",
) -> DashboardView:
    ranked = rank_and_group(
        groups,
        top_k,
        palette=palette,
        other_color=other_color,
        other_label=other_label,
    )
    chart = assemble(
        buckets,
        ranked,
        bucket_events(buckets, events),
        point_color=point_color,
        emphasis_color=emphasis_color,
        radius=radius,
        emphasis_radius=emphasis_radius,
        date_format=date_format,
    )
    table = summarize_groups(
        groups,
        buckets,
        top_k,
        palette=palette,
        other_color=other_color,
    )
    return DashboardView(chart=chart, table=table, ranked=ranked)
