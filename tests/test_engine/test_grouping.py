"""Tests for grouping: recursive partition, per-group aggregates, config validation."""

from __future__ import annotations

import logging

import pytest

from pivothead.engine.grouping import (
    ALL_KEY,
    aggregate_groups,
    build_groups,
    group_records,
    is_valid_group_config,
)
from pivothead.engine.models import AxisField, GroupConfig, Measure

# ---------------------------------------------------------------------------
# Fixtures / helpers
# ---------------------------------------------------------------------------

SALES = [
    {"region": "N", "sales": 100},
    {"region": "S", "sales": 150},
    {"region": "N", "sales": 50},
]

ROWS = [
    {"region": "North", "quarter": "Q1", "sales": 10},
    {"region": "South", "quarter": "Q1", "sales": 20},
    {"region": "North", "quarter": "Q2", "sales": 30},
    {"region": "North", "quarter": "Q1", "sales": 40},
    {"region": "South", "quarter": None, "sales": 50},
]

SUM_SALES = Measure(unique_name="sales", aggregation="sum")


def _config(rows=None, cols=None, **kw) -> GroupConfig:
    return GroupConfig(row_fields=rows, column_fields=cols, **kw)


def _walk(groups):
    for group in groups:
        yield group
        yield from _walk(group.subgroups)


def _leaves(group) -> list:
    if not group.subgroups:
        return list(group.items)
    return [item for sub in group.subgroups for item in _leaves(sub)]


# ---------------------------------------------------------------------------
# 1. Partition
# ---------------------------------------------------------------------------


class TestPartition:
    def test_single_field_with_aggregates(self):
        groups = build_groups(SALES, _config(["region"], []), [SUM_SALES])
        assert [g.key for g in groups] == ["N", "S"]
        assert len(groups[0].items) == 2
        assert groups[0].aggregates == {"sum_sales": 150}
        assert groups[1].aggregates == {"sum_sales": 150}

    def test_first_occurrence_order(self):
        groups = group_records(ROWS, ["region"])
        assert [g.key for g in groups] == ["North", "South"]
        assert [r["sales"] for r in groups[0].items] == [10, 30, 40]

    def test_partition_covers_every_item_once(self):
        groups = group_records(ROWS, ["region", "quarter"])
        flattened = [r for g in groups for r in g.items]
        assert len(flattened) == len(ROWS)
        assert all(any(r is x for x in flattened) for r in ROWS)

    def test_composite_key_uses_separator(self):
        groups = group_records(ROWS, ["region", "quarter"])
        assert [g.key for g in groups] == ["North - Q1", "South - Q1", "North - Q2", "South - "]

    def test_no_fields_gives_single_all_group(self):
        groups = group_records(ROWS, [])
        assert len(groups) == 1
        assert groups[0].key == ALL_KEY
        assert len(groups[0].items) == len(ROWS)

    def test_empty_input(self):
        assert group_records([], ["region"]) == []


# ---------------------------------------------------------------------------
# 2. Recursion
# ---------------------------------------------------------------------------


class TestRecursion:
    def test_subgroups_use_remaining_fields(self):
        groups = group_records(ROWS, ["region", "quarter"])
        top = groups[0]
        assert top.level == 0
        assert [s.key for s in top.subgroups] == ["Q1"]
        assert top.subgroups[0].level == 1

    def test_single_field_has_no_subgroups(self):
        assert all(not g.subgroups for g in group_records(ROWS, ["region"]))

    def test_leaves_preserve_order(self):
        top = group_records(ROWS, ["region", "quarter"])[0]
        assert _leaves(top) == top.items

    def test_tree_walks_depth_first(self):
        groups = group_records(ROWS, ["region", "quarter"])
        levels = [g.level for g in _walk(groups)]
        assert levels == [0, 1, 0, 1, 0, 1, 0, 1]


# ---------------------------------------------------------------------------
# 3. Aggregation independence
# ---------------------------------------------------------------------------


class TestAggregates:
    def test_each_group_aggregates_its_own_items(self):
        avg = Measure(unique_name="sales", aggregation="avg")
        groups = group_records(ROWS, ["region"])
        aggregate_groups(groups, [avg])
        assert groups[0].aggregates["avg_sales"] == pytest.approx(80 / 3)
        assert groups[1].aggregates["avg_sales"] == pytest.approx(35.0)

    def test_subgroups_are_aggregated(self):
        groups = build_groups(ROWS, _config(["region"], ["quarter"]), [SUM_SALES])
        for g in _walk(groups):
            assert g.aggregates["sum_sales"] == sum(r["sales"] for r in g.items)

    def test_custom_key_fn(self):
        config = _config(["region"], [], key_fn=lambda r, fields: str(r["region"])[0])
        groups = build_groups(ROWS, config, [SUM_SALES])
        assert [g.key for g in groups] == ["N", "S"]
        assert groups[0].aggregates["sum_sales"] == 80


# ---------------------------------------------------------------------------
# 4. Config validation
# ---------------------------------------------------------------------------


class TestConfig:
    def test_valid(self):
        assert is_valid_group_config(_config(["region"], []))

    @pytest.mark.parametrize(
        "config",
        [
            GroupConfig(row_fields=None, column_fields=[]),
            GroupConfig(row_fields=["region"], column_fields=None),
            GroupConfig(row_fields=["region"], column_fields=[], key_fn=None),
        ],
    )
    def test_invalid(self, config):
        assert not is_valid_group_config(config)

    def test_none_config_means_no_grouping(self):
        assert build_groups(ROWS, None, [SUM_SALES]) == []

    def test_invalid_config_logged_and_ignored(self, caplog):
        with caplog.at_level(logging.WARNING, logger="pivothead.engine.grouping"):
            groups = build_groups(ROWS, _config(["region"], None), [SUM_SALES])
        assert groups == []
        assert "Invalid group config" in caplog.text

    def test_from_axes(self):
        config = GroupConfig.from_axes([AxisField("region")], [AxisField("quarter")])
        assert config.fields == ["region", "quarter"]
