from __future__ import annotations

import random
from datetime import date

import numpy as np
import pandas as pd
import pytest

from dashboard_series.features.grouping import Group, build_groups, color_map, rank_and_group
from dashboard_series.palette import DEFAULT_PALETTE, OTHER_COLOR, OTHER_KEY
from dashboard_series.preprocess.window import build_window


def _group(key: str, *series: float) -> Group:
    return Group.from_series(key=key, display_name=key.upper(), monthly_series=series)


def test_rank_and_group_keeps_top_k_and_stacks_other_first() -> None:
    groups = [_group("a", 10), _group("b", 30), _group("c", 5), _group("d", 2)]

    ranked = rank_and_group(groups, top_k=2)

    assert [group.key for group in ranked] == [OTHER_KEY, "a", "b"]
    other, second, first = ranked
    assert other.is_other
    assert other.display_name == "Other"
    assert other.total == 7
    assert other.color == OTHER_COLOR
    assert second.total == 10
    assert second.rank == 1
    assert second.color == DEFAULT_PALETTE[1]
    assert first.total == 30
    assert first.rank == 0
    assert first.color == DEFAULT_PALETTE[0]


def test_rank_and_group_never_emits_other_when_everything_fits() -> None:
    groups = [_group("a", 10), _group("b", 30), _group("c", 5)]

    for top_k in (3, 4, 50):
        ranked = rank_and_group(groups, top_k=top_k)
        assert not any(group.is_other for group in ranked)
        assert [group.total for group in ranked] == [5, 10, 30]


def test_rank_and_group_merges_remainder_month_by_month() -> None:
    groups = [
        _group("top", 100, 100, 100),
        _group("x", 1, 0, 2),
        _group("y", 0, 4, 8),
    ]

    other = rank_and_group(groups, top_k=1)[0]

    assert other.monthly_series == (1.0, 4.0, 10.0)
    assert other.total == 15.0


def test_rank_and_group_color_mapping_is_idempotent_and_order_independent() -> None:
    groups = [_group(f"p{index}", float(index % 7)) for index in range(40)]
    shuffled = list(groups)
    random.Random(7).shuffle(shuffled)

    first = color_map(rank_and_group(groups, top_k=10))
    second = color_map(rank_and_group(groups, top_k=10))
    third = color_map(rank_and_group(shuffled, top_k=10))

    assert first == second == third


def test_rank_and_group_breaks_ties_by_key() -> None:
    groups = [_group("beta", 5), _group("alpha", 5), _group("gamma", 5)]

    ranked = rank_and_group(groups, top_k=2)

    assert [group.key for group in ranked] == [OTHER_KEY, "beta", "alpha"]
    assert ranked[-1].rank == 0


def test_rank_and_group_keeps_zero_total_groups_eligible() -> None:
    ranked = rank_and_group([_group("quiet", 0, 0), _group("busy", 3, 4)], top_k=2)
    assert [group.key for group in ranked] == ["quiet", "busy"]


def test_rank_and_group_with_zero_top_k_folds_everything() -> None:
    ranked = rank_and_group([_group("a", 1), _group("b", 2)], top_k=0)

    assert len(ranked) == 1
    assert ranked[0].is_other
    assert ranked[0].total == 3


def test_rank_and_group_wraps_palette() -> None:
    groups = [_group(f"k{index:02d}", float(100 - index)) for index in range(5)]

    ranked = rank_and_group(groups, top_k=5, palette=["#000", "#fff"])

    assert [group.color for group in reversed(ranked)] == ["#000", "#fff", "#000", "#fff", "#000"]


def test_rank_and_group_handles_empty_input() -> None:
    assert rank_and_group([], top_k=3) == []


def test_rank_and_group_rejects_contract_violations() -> None:
    with pytest.raises(ValueError, match="top_k must be an integer >= 0"):
        rank_and_group([_group("a", 1)], top_k=-1)
    with pytest.raises(ValueError, match="palette must contain at least one color"):
        rank_and_group([_group("a", 1)], top_k=1, palette=[])


def test_build_groups_aligns_series_and_averages_auxiliary_fields() -> None:
    buckets = build_window(date(2024, 6, 15), 3)
    frame = pd.DataFrame(
        {
            "product_code": ["P1", "P1", "P2", "P3", "P1"],
            "product_name": ["Soap", "Soap", "Cream", "Old", None],
            "year": [2024, 2024, 2024, 2022, 2024],
            "month": [5, 6, 6, 1, 6],
            "margin": [100.0, 50.0, 70.0, 999.0, None],
            "unit_price": [10.0, 20.0, np.nan, 5.0, 30.0],
        }
    )

    groups = build_groups(
        frame,
        buckets,
        key_column="product_code",
        value_column="margin",
        name_column="product_name",
        auxiliary_columns=["unit_price"],
    )

    assert [group.key for group in groups] == ["P1", "P2"]
    soap, cream = groups
    assert soap.display_name == "Soap"
    assert soap.monthly_series == (0.0, 100.0, 50.0)
    assert soap.total == 150.0
    assert soap.auxiliary["unit_price"] == pytest.approx(20.0)
    assert cream.monthly_series == (0.0, 0.0, 70.0)
    assert np.isnan(cream.auxiliary["unit_price"])


def test_build_groups_from_date_column_without_names() -> None:
    buckets = build_window(date(2024, 2, 1), 2)
    frame = pd.DataFrame(
        {
            "key": ["A", "A", "B"],
            "date": ["2024-01-31", "2024-02-01", "2023-12-31"],
            "value": [1, 2, 3],
        }
    )

    groups = build_groups(frame, buckets, date_column="date")

    assert len(groups) == 1
    assert groups[0].key == "A"
    assert groups[0].display_name == "A"
    assert groups[0].monthly_series == (1.0, 2.0)


def test_build_groups_requires_key_column() -> None:
    buckets = build_window(date(2024, 2, 1), 2)
    with pytest.raises(ValueError, match="missing key column"):
        build_groups(pd.DataFrame({"year": [2024], "month": [1]}), buckets)


def test_rank_and_group_rejects_reserved_other_key() -> None:
    with pytest.raises(ValueError, match="reserved"):
        rank_and_group([_group(OTHER_KEY, 5), _group("a", 1)], top_k=1)


def test_build_groups_keeps_integer_codes_read_as_floats() -> None:
    buckets = build_window(date(2024, 2, 1), 2)
    frame = pd.DataFrame(
        {
            "key": [101.0, np.nan, 205.0],
            "year": [2024, 2024, 2024],
            "month": [1, 2, 2],
            "value": [4, 9, 2],
        }
    )

    groups = build_groups(frame, buckets)

    assert [group.key for group in groups] == ["101", "205"]
