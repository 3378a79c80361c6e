"""Typed access to record fields.

All field reads in the engine go through ``field_value`` / ``to_number`` so
that scalar coercion lives in exactly one place.
"""

from __future__ import annotations

import math
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from pivothead.engine.errors import InvalidRecordError
from pivothead.engine.models import Measure, Record, Scalar

_SCALAR_TYPES = (str, int, float, bool)


def freeze_record(raw: Any, index: int | None = None) -> Record:
    """Validate *raw* as a map of field name -> scalar and return a read-only copy."""
    if not isinstance(raw, Mapping):
        raise InvalidRecordError(
            f"Record {index} is not a mapping: {type(raw).__name__}",
            metadata={"index": index},
        )
    for key, value in raw.items():
        if not isinstance(key, str):
            raise InvalidRecordError(
                f"Record {index} has a non-string field name: {key!r}",
                metadata={"index": index, "field": key},
            )
        if value is not None and not isinstance(value, _SCALAR_TYPES):
            raise InvalidRecordError(
                f"Record {index} field '{key}' is not a scalar: {type(value).__name__}",
                metadata={"index": index, "field": key},
            )
    return MappingProxyType(dict(raw))


def freeze_records(rows: Iterable[Any]) -> tuple[Record, ...]:
    return tuple(freeze_record(r, i) for i, r in enumerate(rows))


def field_value(record: Record, field: str) -> Scalar:
    """Return the raw value of *field*, or None when absent."""
    return record.get(field)


def is_number(value: object) -> bool:
    """True for real ints/floats (bools excluded, NaN excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not math.isnan(value)


def to_number(value: object) -> float | None:
    """Coerce a scalar to float, return None when it has no numeric reading."""
    if value is None:
        return None
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        f = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(f) or math.isinf(f):
        return None
    return f


def numeric_value(record: Record, field: str) -> float:
    """Numeric reading of *field*; non-numeric and missing values count as 0."""
    f = to_number(field_value(record, field))
    return 0.0 if f is None else f


def measure_value(record: Record, measure: Measure) -> float:
    """Per-record value of *measure*: the formula result, else the field value."""
    if measure.formula is not None:
        f = to_number(measure.formula(record))
        return 0.0 if f is None else f
    return numeric_value(record, measure.source_field)
