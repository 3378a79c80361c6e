"""Multi-key comparator for records and groups.

Directives are applied in list order; a tie on one directive falls through
to the next, and a tie on all of them returns 0 so the (stable) sort keeps
the prior relative order.  Direction flips the sign of each comparison,
never the fall-through order.
"""

from __future__ import annotations

from functools import cmp_to_key
from typing import Mapping, Sequence

from pivothead.engine.errors import PivotValidationError
from pivothead.engine.models import (
    SORT_DIRECTIONS,
    SORT_KINDS,
    Group,
    Measure,
    Record,
    Scalar,
    SortDirective,
)
from pivothead.engine.records import field_value, is_number, measure_value, numeric_value

Sortable = Record | Group


def validate_directive(directive: SortDirective) -> SortDirective:
    if directive.direction not in SORT_DIRECTIONS:
        raise PivotValidationError(
            f"Invalid sort direction: {directive.direction!r}",
            metadata={"field": directive.field},
        )
    if directive.kind not in SORT_KINDS:
        raise PivotValidationError(
            f"Invalid sort kind: {directive.kind!r}",
            metadata={"field": directive.field},
        )
    return directive


def build_directive(
    field: str,
    direction: str,
    measures: Sequence[Measure],
    default_aggregation: str = "sum",
) -> SortDirective:
    """Directive for *field*; measure-kind when a measure of that name exists.

    A measure that defers to the engine default keeps ``aggregation=None`` so
    the law is resolved at comparison time.
    """
    measure = next((m for m in measures if m.unique_name == field), None)
    if measure is None:
        return validate_directive(SortDirective(field=field, direction=direction, kind="dimension"))
    return validate_directive(
        SortDirective(
            field=field,
            direction=direction,
            kind="measure",
            aggregation=measure.aggregation,
        )
    )


def compare_values(a: Scalar, b: Scalar) -> int:
    """Natural ordering: numeric if both sides are numbers, lexical otherwise."""
    if is_number(a) and is_number(b):
        if a < b:
            return -1
        if a > b:
            return 1
        return 0
    sa = "" if a is None else str(a)
    sb = "" if b is None else str(b)
    if sa < sb:
        return -1
    if sa > sb:
        return 1
    return 0


def resolve_value(
    subject: Sortable,
    directive: SortDirective,
    measure: Measure | None = None,
    default_aggregation: str = "sum",
) -> Scalar:
    """The value a directive compares for one record or one group."""
    if isinstance(subject, Group):
        if directive.kind == "measure":
            law = directive.aggregation or (measure.law(default_aggregation) if measure else default_aggregation)
            value = subject.aggregates.get(f"{law}_{directive.field}")
            return 0.0 if value is None else value
        if subject.items:
            return field_value(subject.items[0], directive.field)
        return subject.key

    if directive.kind == "measure":
        if measure is not None:
            return measure_value(subject, measure)
        return numeric_value(subject, directive.field)
    return field_value(subject, directive.field)


def compare(
    a: Sortable,
    b: Sortable,
    directive: SortDirective,
    measure: Measure | None = None,
    default_aggregation: str = "sum",
) -> int:
    """Compare two records (or two groups) under a single directive."""
    result = compare_values(
        resolve_value(a, directive, measure, default_aggregation),
        resolve_value(b, directive, measure, default_aggregation),
    )
    return -result if directive.direction == "desc" else result


def compare_all(
    a: Sortable,
    b: Sortable,
    directives: Sequence[SortDirective],
    measures: Mapping[str, Measure],
    default_aggregation: str = "sum",
) -> int:
    for directive in directives:
        result = compare(a, b, directive, measures.get(directive.field), default_aggregation)
        if result:
            return result
    return 0


def sort_records(
    records: Sequence[Record],
    directives: Sequence[SortDirective],
    measures: Sequence[Measure] = (),
    default_aggregation: str = "sum",
) -> list[Record]:
    """Stable sort of *records* by *directives* (a copy; input untouched)."""
    if not directives:
        return list(records)
    by_name = {m.unique_name: m for m in measures}
    key = cmp_to_key(lambda a, b: compare_all(a, b, directives, by_name, default_aggregation))
    return sorted(records, key=key)


def sort_groups(
    groups: Sequence[Group],
    directives: Sequence[SortDirective],
    measures: Sequence[Measure] = (),
    default_aggregation: str = "sum",
) -> list[Group]:
    """Stable sort of sibling groups; measure directives read ``aggregates``."""
    if not directives:
        return list(groups)
    by_name = {m.unique_name: m for m in measures}
    key = cmp_to_key(lambda a, b: compare_all(a, b, directives, by_name, default_aggregation))
    return sorted(groups, key=key)
