"""Filter evaluator: match records against a list of field predicates.

All directives combine with AND; an empty list matches everything.  Each
directive looks at its own field only.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Sequence

from pivothead.engine.errors import InvalidFilterError
from pivothead.engine.models import FILTER_OPERATORS, FilterDirective, Record, Scalar
from pivothead.engine.records import field_value, is_number, to_number


def validate_filter(directive: FilterDirective) -> FilterDirective:
    """Reject unknown operators and malformed ``between`` bounds."""
    if directive.operator not in FILTER_OPERATORS:
        raise InvalidFilterError(
            f"Unknown filter operator: {directive.operator!r}",
            metadata={"field": directive.field, "operator": directive.operator},
        )
    if directive.operator == "between":
        bounds = directive.value
        if not isinstance(bounds, (list, tuple)) or len(bounds) != 2:
            raise InvalidFilterError(
                f"'between' on '{directive.field}' needs a [low, high] pair",
                metadata={"field": directive.field, "value": bounds},
            )
    return directive


def validate_filters(filters: Iterable[FilterDirective]) -> list[FilterDirective]:
    return [validate_filter(f) for f in filters]


def matches(record: Record, filters: Sequence[FilterDirective]) -> bool:
    """True when *record* satisfies every directive in *filters*."""
    for directive in filters:
        evaluator = _EVALUATORS.get(directive.operator)
        if evaluator is None:
            validate_filter(directive)
        if not evaluator(field_value(record, directive.field), directive.value):
            return False
    return True


def filter_records(records: Iterable[Record], filters: Sequence[FilterDirective]) -> list[Record]:
    if not filters:
        return list(records)
    return [r for r in records if matches(r, filters)]


# ---------------------------------------------------------------------------
# Operator evaluators
# ---------------------------------------------------------------------------


def _eval_equals(value: Scalar, target: Any) -> bool:
    # Numeric fields compare numerically so "100" matches 100.
    if is_number(value):
        t = to_number(target)
        return t is not None and float(value) == t
    return value == target


def _eval_not_equals(value: Scalar, target: Any) -> bool:
    return not _eval_equals(value, target)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _eval_contains(value: Scalar, target: Any) -> bool:
    return _as_text(target).lower() in _as_text(value).lower()


def _eval_greater_than(value: Scalar, target: Any) -> bool:
    v, t = to_number(value), to_number(target)
    if v is None or t is None:
        return False
    return v > t


def _eval_less_than(value: Scalar, target: Any) -> bool:
    v, t = to_number(value), to_number(target)
    if v is None or t is None:
        return False
    return v < t


def _eval_between(value: Scalar, target: Any) -> bool:
    v = to_number(value)
    low, high = to_number(target[0]), to_number(target[1])
    if v is None or low is None or high is None:
        return False
    return low <= v <= high


_EVALUATORS: dict[str, Callable[[Scalar, Any], bool]] = {
    "equals": _eval_equals,
    "notEquals": _eval_not_equals,
    "contains": _eval_contains,
    "greaterThan": _eval_greater_than,
    "lessThan": _eval_less_than,
    "between": _eval_between,
}
