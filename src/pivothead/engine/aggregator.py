"""Aggregation functions: reduce a set of records to one number per measure.

Pure functions with no engine state.  Empty input yields well-defined
sentinels instead of errors:

    avg  -> NaN
    min  -> +inf
    max  -> -inf

Rendering those sentinels is a display concern (see ``formatting``).
"""

from __future__ import annotations

import math
from typing import Callable, Sequence

from pivothead.engine.errors import UnknownAggregationError
from pivothead.engine.models import AGGREGATIONS, Measure, Record
from pivothead.engine.records import measure_value


def validate_aggregation(aggregation: object) -> str:
    """Return *aggregation* if it names a supported law, else raise."""
    if not isinstance(aggregation, str) or aggregation not in AGGREGATIONS:
        raise UnknownAggregationError(
            f"Unknown aggregation: {aggregation!r}. Supported: {', '.join(AGGREGATIONS)}",
            metadata={"aggregation": aggregation},
        )
    return aggregation


def aggregate_values(values: Sequence[float], aggregation: str) -> float:
    """Apply one aggregation law to already-coerced numbers."""
    reducer = _AGGREGATORS.get(aggregation)
    if reducer is None:
        raise UnknownAggregationError(
            f"Unknown aggregation: {aggregation!r}",
            metadata={"aggregation": aggregation},
        )
    return reducer(values)


def aggregate(items: Sequence[Record], measure: Measure, default_aggregation: str = "sum") -> float:
    """Aggregate *measure* over *items*.

    Custom measures run their formula once per record and then apply the
    measure's aggregation (the secondary law) over the per-record results.
    """
    law = measure.law(default_aggregation)
    if law == "count":
        # Count ignores field values entirely.
        return float(len(items))
    values = [measure_value(item, measure) for item in items]
    return aggregate_values(values, law)


def compute_aggregates(
    items: Sequence[Record],
    measures: Sequence[Measure],
    default_aggregation: str = "sum",
) -> dict[str, float]:
    """All measure aggregates for one group, keyed ``"{law}_{unique_name}"``."""
    return {
        m.aggregate_key(default_aggregation): aggregate(items, m, default_aggregation)
        for m in measures
    }


def is_sentinel(value: object) -> bool:
    """True for the empty-group sentinels (NaN, +inf, -inf)."""
    return isinstance(value, float) and (math.isnan(value) or math.isinf(value))


# ---------------------------------------------------------------------------
# Reducers
# ---------------------------------------------------------------------------


def _sum(values: Sequence[float]) -> float:
    return float(sum(values))


def _avg(values: Sequence[float]) -> float:
    if not values:
        return math.nan
    return sum(values) / len(values)


def _min(values: Sequence[float]) -> float:
    return min(values, default=math.inf)


def _max(values: Sequence[float]) -> float:
    return max(values, default=-math.inf)


def _count(values: Sequence[float]) -> float:
    return float(len(values))


_AGGREGATORS: dict[str, Callable[[Sequence[float]], float]] = {
    "sum": _sum,
    "avg": _avg,
    "min": _min,
    "max": _max,
    "count": _count,
}
