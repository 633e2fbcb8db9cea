from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

import numpy as np
import pandas as pd

from dashboard_series.features.bucketing import add_period_columns, restrict_to_window, to_number
from dashboard_series.palette import (
    DEFAULT_PALETTE,
    OTHER_COLOR,
    OTHER_KEY,
    OTHER_LABEL,
    rank_color,
    validate_palette,
)
from dashboard_series.preprocess.window import MonthBucket


@dataclass(frozen=True)
class Group:
    key: str
    display_name: str
    monthly_series: tuple[float, ...]
    total: float
    auxiliary: dict[str, float] = field(default_factory=dict)

    @classmethod
    def from_series(
        cls,
        key: str,
        display_name: str,
        monthly_series: Iterable[float],
        auxiliary: dict[str, float] | None = None,
    ) -> Group:
        series = tuple(to_number(value) for value in monthly_series)
        return cls(
            key=str(key),
            display_name=str(display_name),
            monthly_series=series,
            total=float(sum(series)),
            auxiliary=dict(auxiliary or {}),
        )


@dataclass(frozen=True)
class RankedGroup:
    key: str
    display_name: str
    monthly_series: tuple[float, ...]
    total: float
    rank: int
    color: str
    is_other: bool = False
    auxiliary: dict[str, float] = field(default_factory=dict)


def order_groups(groups: Iterable[Group]) -> list[Group]:
    """Descending by total; equal totals fall back to key order so reruns agree."""
    return sorted(groups, key=lambda group: (-group.total, group.key))


def _merge_series(groups: Sequence[Group]) -> tuple[float, ...]:
    length = max((len(group.monthly_series) for group in groups), default=0)
    merged = np.zeros(length, dtype=float)
    for group in groups:
        # Shorter series mean missing trailing months, which count as zero.
        merged[: len(group.monthly_series)] += np.asarray(group.monthly_series, dtype=float)
    return tuple(float(value) for value in merged)


def _key_strings(keys: pd.Series) -> pd.Series:
    # Numeric codes read next to blanks come back as floats; 101.0 stays "101".
    if pd.api.types.is_float_dtype(keys) and (keys % 1 == 0).all():
        keys = keys.astype("int64")
    return keys.astype(str)


def rank_and_group(
    groups: Iterable[Group],
    top_k: int,
    *,
    palette: Sequence[str] = DEFAULT_PALETTE,
    other_color: str = OTHER_COLOR,
    other_label: str = OTHER_LABEL,
) -> list[RankedGroup]:
    """Keep the ``top_k`` largest groups and fold the rest into one "Other" group.

    Colors come from the palette by rank, so the same totals always produce
    the same key to color mapping. The result is in stacking order: "Other"
    first (bottom of a stacked chart), then named groups by ascending total,
    leaving rank 0 last (top).
    """
    if isinstance(top_k, bool) or not isinstance(top_k, int) or top_k < 0:
        raise ValueError(f"top_k must be an integer >= 0, got {top_k!r}")
    colors = validate_palette(palette)

    ordered = order_groups(groups)
    if any(group.key == OTHER_KEY for group in ordered):
        raise ValueError(f"Group key {OTHER_KEY!r} is reserved for the merged remainder")
    head, tail = ordered[:top_k], ordered[top_k:]

    stacked = [
        RankedGroup(
            key=group.key,
            display_name=group.display_name,
            monthly_series=group.monthly_series,
            total=group.total,
            rank=rank,
            color=rank_color(rank, colors),
            auxiliary=dict(group.auxiliary),
        )
        for rank, group in enumerate(head)
    ]
    stacked.reverse()

    if tail:
        stacked.insert(
            0,
            RankedGroup(
                key=OTHER_KEY,
                display_name=other_label,
                monthly_series=_merge_series(tail),
                total=float(sum(group.total for group in tail)),
                rank=len(head),
                color=other_color,
                is_other=True,
            ),
        )
    return stacked


def color_map(ranked_groups: Iterable[RankedGroup]) -> dict[str, str]:
    return {group.key: group.color for group in ranked_groups}


def build_groups(
    frame: pd.DataFrame,
    buckets: Sequence[MonthBucket],
    *,
    key_column: str = "key",
    value_column: str = "value",
    name_column: str | None = None,
    auxiliary_columns: Sequence[str] = (),
    year_column: str = "year",
    month_column: str = "month",
    date_column: str | None = None,
) -> list[Group]:
    """Pivot long per-record rows into one month-aligned ``Group`` per key.

    Only keys with at least one record inside the window become groups.
    Auxiliary columns are averaged over the key's in-window records.
    """
    if key_column not in frame.columns:
        raise ValueError(f"Record frame missing key column: {key_column}")

    working = add_period_columns(
        frame,
        year_column=year_column,
        month_column=month_column,
        date_column=date_column,
    )
    working = restrict_to_window(working, buckets)
    working = working.dropna(subset=[key_column])
    if working.empty:
        return []

    working = working.assign(_group_key=_key_strings(working[key_column]))
    if value_column in working.columns:
        working["_value"] = pd.to_numeric(working[value_column], errors="coerce").fillna(0.0)
    else:
        working["_value"] = 0.0

    full_index = pd.MultiIndex.from_tuples(
        [bucket.period for bucket in buckets],
        names=["year", "month"],
    )
    pivot = (
        working.groupby(["_group_key", "year", "month"])["_value"]
        .sum()
        .unstack(["year", "month"], fill_value=0.0)
        .reindex(columns=full_index, fill_value=0.0)
        .fillna(0.0)
    )

    display_names: dict[str, str] = {}
    if name_column and name_column in working.columns:
        named = working.dropna(subset=[name_column])
        display_names = (
            named.groupby("_group_key")[name_column].first().astype(str).to_dict()
        )

    auxiliary_frame = pd.DataFrame(index=pivot.index)
    for column in auxiliary_columns:
        if column in working.columns:
            numeric = pd.to_numeric(working[column], errors="coerce")
            auxiliary_frame[column] = numeric.groupby(working["_group_key"]).mean()
        else:
            auxiliary_frame[column] = np.nan

    groups = [
        Group.from_series(
            key=key,
            display_name=display_names.get(key, key),
            monthly_series=pivot.loc[key].tolist(),
            auxiliary={
                column: float(auxiliary_frame.at[key, column]) for column in auxiliary_columns
            },
        )
        for key in pivot.index
    ]
    return order_groups(groups)
