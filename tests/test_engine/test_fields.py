"""Tests for fields: type inference, captions, layout building and measure edits."""

from __future__ import annotations

import pytest

from pivothead.engine.errors import UnknownAggregationError
from pivothead.engine.fields import (
    FieldInfo,
    LayoutSelection,
    available_fields,
    build_layout,
    build_measure,
    infer_field_type,
    set_measure_aggregation,
    supported_aggregations,
    to_caption,
)
from pivothead.engine.models import AxisField, Measure, PivotConfiguration
from pivothead.engine.pivot_engine import PivotEngine

# ---------------------------------------------------------------------------
# Fixtures / helpers
# ---------------------------------------------------------------------------

ORDERS = [
    {"orderDate": "2024-01-05", "region": "North", "unitPrice": 12.5, "qty": "3"},
    {"orderDate": "2024-02-11T08:30:00Z", "region": "South", "unitPrice": 8, "qty": None},
    {"orderDate": "2024-03-02", "region": "East", "unitPrice": 20, "qty": "1"},
]


def _engine(**kw) -> PivotEngine:
    return PivotEngine(PivotConfiguration(data=list(ORDERS), **kw))


# ---------------------------------------------------------------------------
# 1. Type inference
# ---------------------------------------------------------------------------


class TestInference:
    def test_available_fields(self):
        fields = available_fields(_engine())
        assert fields == [
            FieldInfo("orderDate", "date"),
            FieldInfo("qty", "number"),
            FieldInfo("region", "string"),
            FieldInfo("unitPrice", "number"),
        ]

    def test_available_fields_use_raw_data(self):
        engine = _engine()
        engine.apply_filters([])
        assert len(available_fields(engine)) == 4

    def test_empty_engine(self):
        assert available_fields(PivotEngine(PivotConfiguration())) == []

    def test_sample_size_limits_scan(self):
        rows = [{"a": 1}] + [{"a": 2, "b": "x"}] * 5
        engine = PivotEngine(PivotConfiguration(data=rows))
        assert [f.name for f in available_fields(engine, sample_size=1)] == ["a"]

    def test_bools_and_nulls_ignored(self):
        assert infer_field_type([{"f": True}, {"f": None}], "f") == "string"

    def test_numbers_win_over_dates(self):
        sample = [{"f": 1}, {"f": "2024-01-01"}, {"f": 3}]
        assert infer_field_type(sample, "f") == "number"


# ---------------------------------------------------------------------------
# 2. Captions and layouts
# ---------------------------------------------------------------------------


class TestLayout:
    @pytest.mark.parametrize(
        "name,expected",
        [("unitPrice", "Unit Price"), ("unit_price", "Unit price"), ("region", "Region")],
    )
    def test_to_caption(self, name, expected):
        assert to_caption(name) == expected

    def test_build_measure(self):
        m = build_measure("unitPrice", "avg")
        assert m == Measure(unique_name="unitPrice", caption="Avg of Unit Price", aggregation="avg")

    def test_build_measure_unknown(self):
        with pytest.raises(UnknownAggregationError):
            build_measure("qty", "median")

    def test_build_layout(self):
        layout = build_layout(
            LayoutSelection(
                rows=["region"],
                columns=["orderDate"],
                values=[{"field": "unitPrice"}, {"field": "qty", "aggregation": "max", "caption": "Peak"}],
            )
        )
        assert layout.rows == [AxisField("region", "Region")]
        assert layout.columns == [AxisField("orderDate", "Order Date")]
        assert [m.label for m in layout.measures] == ["Sum of Unit Price", "Peak"]
        assert layout.measures[1].aggregation == "max"

    def test_supported_aggregations(self):
        assert supported_aggregations() == ["sum", "avg", "min", "max", "count"]


# ---------------------------------------------------------------------------
# 3. Changing a measure through the engine
# ---------------------------------------------------------------------------


class TestSetMeasureAggregation:
    def test_replaces_existing(self):
        engine = _engine(measures=[Measure("unitPrice", caption="Price", field="unitPrice")])
        set_measure_aggregation(engine, "unitPrice", "max")
        measure = engine.get_state().measures[0]
        assert measure.aggregation == "max"
        assert measure.caption == "Price"
        assert engine.get_state().processed_data.totals["unitPrice"] == 20

    def test_appends_missing(self):
        engine = _engine(measures=[Measure("unitPrice")])
        set_measure_aggregation(engine, "qty", "sum")
        names = [m.unique_name for m in engine.get_state().measures]
        assert names == ["unitPrice", "qty"]
        assert engine.get_state().processed_data.totals["qty"] == 4

    def test_unknown_aggregation(self):
        engine = _engine(measures=[Measure("unitPrice")])
        with pytest.raises(UnknownAggregationError):
            set_measure_aggregation(engine, "unitPrice", "p50")
        assert engine.get_state().measures[0].aggregation == "sum"
