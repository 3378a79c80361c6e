"""Field discovery and layout helpers for field-picker UIs.

Infers field types from a sample of the loaded records, builds axis and
measure definitions from a plain selection, and changes one measure's
aggregation through the engine's public setters.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import TYPE_CHECKING, Any, Sequence

from pivothead.config.settings import settings
from pivothead.engine.aggregator import validate_aggregation
from pivothead.engine.models import AGGREGATIONS, AxisField, Measure, Record
from pivothead.engine.records import to_number

if TYPE_CHECKING:
    from pivothead.engine.pivot_engine import PivotEngine


@dataclass
class FieldInfo:
    name: str
    type: str  # string, number, date


@dataclass
class LayoutSelection:
    """Field names chosen for each axis plus value definitions.

    ``values`` entries are dicts with ``field`` and optional ``aggregation``
    and ``caption``.
    """

    rows: list[str] = field(default_factory=list)
    columns: list[str] = field(default_factory=list)
    values: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class Layout:
    rows: list[AxisField]
    columns: list[AxisField]
    measures: list[Measure]


def available_fields(engine: PivotEngine, sample_size: int | None = None) -> list[FieldInfo]:
    """All fields seen in the engine's raw records, sorted by name."""
    data = engine.get_state().raw_data
    if not data:
        return []

    sample = data[: sample_size or settings.field_sample_size]
    names: set[str] = set()
    for row in sample:
        names.update(row.keys())

    return [FieldInfo(name=n, type=infer_field_type(sample, n)) for n in sorted(names)]


def infer_field_type(sample: Sequence[Record], name: str) -> str:
    """``number`` if numeric values dominate, else ``date`` if any parse as ISO dates."""
    numeric_count = 0
    date_count = 0
    for row in sample:
        value = row.get(name)
        if value is None or isinstance(value, bool):
            continue
        if to_number(value) is not None:
            numeric_count += 1
        elif _looks_like_date(value):
            date_count += 1

    if numeric_count > 0 and numeric_count >= date_count:
        return "number"
    if date_count > 0:
        return "date"
    return "string"


def supported_aggregations() -> list[str]:
    return list(AGGREGATIONS)


def build_measure(field_name: str, aggregation: str = "sum", caption: str | None = None) -> Measure:
    """Measure over *field_name*; ``unitPrice`` is captioned ``"Sum of Unit Price"``."""
    agg = validate_aggregation(aggregation or "sum")
    return Measure(
        unique_name=field_name,
        caption=caption or f"{agg.capitalize()} of {to_caption(field_name)}",
        aggregation=agg,
    )


def build_layout(selection: LayoutSelection) -> Layout:
    rows = [AxisField(unique_name=f, caption=to_caption(f)) for f in selection.rows]
    columns = [AxisField(unique_name=f, caption=to_caption(f)) for f in selection.columns]
    measures = [
        build_measure(v["field"], v.get("aggregation") or "sum", v.get("caption"))
        for v in selection.values
    ]
    return Layout(rows=rows, columns=columns, measures=measures)


def set_measure_aggregation(engine: PivotEngine, field_name: str, aggregation: str) -> None:
    """Change one measure's aggregation, adding the measure if it is missing."""
    agg = validate_aggregation(aggregation)
    measures = list(engine.get_state().measures)

    for i, m in enumerate(measures):
        if m.unique_name == field_name:
            measures[i] = replace(m, aggregation=agg)
            break
    else:
        measures.append(build_measure(field_name, agg))

    engine.set_measures(measures)


def to_caption(name: str) -> str:
    """``unitPrice`` -> ``Unit Price``, ``unit_price`` -> ``Unit price``."""
    text = re.sub(r"([a-z0-9])([A-Z])", r"\1 \2", name)
    text = re.sub(r"[_-]+", " ", text)
    return text[:1].upper() + text[1:]


def _looks_like_date(value: object) -> bool:
    if not isinstance(value, str):
        return False
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        datetime.fromisoformat(text)
    except ValueError:
        return False
    return True
