"""Data model for the pivot engine: records, axes, measures and state.

Plain dataclasses plus module-level string constants.  The derived
``PivotState`` is frozen; the engine replaces it wholesale on every
mutation instead of patching it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

Scalar = str | int | float | bool | None
Record = Mapping[str, Scalar]

# ---------------------------------------------------------------------------
# Closed vocabularies
# ---------------------------------------------------------------------------

AGGREGATIONS = ("sum", "avg", "min", "max", "count")
SORT_DIRECTIONS = ("asc", "desc")
SORT_KINDS = ("measure", "dimension")
FILTER_OPERATORS = ("equals", "notEquals", "contains", "greaterThan", "lessThan", "between")
DIMENSION_TYPES = ("string", "number", "date")
FORMAT_TYPES = ("currency", "number", "percentage", "date")
DATA_SOURCE_TYPES = ("local", "remote", "file")

# Separator between field values in a group key ("North - Q1").
KEY_SEPARATOR = " - "


# ---------------------------------------------------------------------------
# Configuration types
# ---------------------------------------------------------------------------


@dataclass
class FormatOptions:
    """Display formatting rule for one field."""

    type: str  # currency, number, percentage, date
    locale: str = "en-US"
    currency: str = "USD"
    decimals: int = 0


@dataclass
class Measure:
    """An aggregated numeric view over records.

    A measure with a ``formula`` is a custom measure: the formula runs once
    per record and ``aggregation`` is then applied over those results.
    ``aggregation=None`` defers to the engine's selected aggregation.
    ``field`` names the record field to read when it differs from
    ``unique_name`` (several measures over one field).
    """

    unique_name: str
    caption: str = ""
    aggregation: str | None = "sum"
    formula: Callable[[Record], float] | None = None
    format: FormatOptions | None = None
    field: str = ""

    @property
    def label(self) -> str:
        return self.caption or self.unique_name

    @property
    def source_field(self) -> str:
        return self.field or self.unique_name

    def law(self, default: str = "sum") -> str:
        """Effective aggregation for this measure."""
        if self.aggregation is None:
            return default
        return self.aggregation

    def aggregate_key(self, default: str = "sum") -> str:
        return f"{self.law(default)}_{self.unique_name}"


@dataclass
class Dimension:
    """A field eligible for grouping and filtering."""

    field: str
    label: str = ""
    type: str = "string"  # string, number, date
    format: FormatOptions | None = None


@dataclass
class AxisField:
    """One entry of the rows or columns axis."""

    unique_name: str
    caption: str = ""

    @property
    def label(self) -> str:
        return self.caption or self.unique_name


@dataclass
class SortDirective:
    field: str
    direction: str = "asc"  # asc, desc
    kind: str = "dimension"  # measure, dimension
    aggregation: str | None = None


@dataclass
class FilterDirective:
    field: str
    operator: str  # equals, notEquals, contains, greaterThan, lessThan, between
    value: Any = None


def join_group_key(record: Record, fields: list[str]) -> str:
    """Default group key: the record's values for *fields* joined in order."""
    parts = []
    for f in fields:
        value = record.get(f)
        parts.append("" if value is None else str(value))
    return KEY_SEPARATOR.join(parts)


@dataclass
class GroupConfig:
    """Which fields group the working set, and how a key is derived."""

    row_fields: list[str] | None = None
    column_fields: list[str] | None = None
    key_fn: Callable[[Record, list[str]], str] | None = join_group_key

    @classmethod
    def from_axes(cls, rows: list[AxisField], columns: list[AxisField]) -> GroupConfig:
        return cls(
            row_fields=[a.unique_name for a in rows],
            column_fields=[a.unique_name for a in columns],
        )

    @property
    def fields(self) -> list[str]:
        return list(self.row_fields or []) + list(self.column_fields or [])


@dataclass
class DataSource:
    """Where records come from when they are not passed in directly."""

    type: str = "local"  # local, remote, file
    url: str = ""
    path: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, Any] = field(default_factory=dict)


@dataclass
class PivotConfiguration:
    """Caller-supplied layout and data."""

    data: list[Record] = field(default_factory=list)
    data_source: DataSource | None = None
    rows: list[AxisField] = field(default_factory=list)
    columns: list[AxisField] = field(default_factory=list)
    measures: list[Measure] = field(default_factory=list)
    dimensions: list[Dimension] = field(default_factory=list)
    default_aggregation: str = "sum"
    formatting: dict[str, FormatOptions] = field(default_factory=dict)
    group_config: GroupConfig | None = None
    initial_sort: list[SortDirective] = field(default_factory=list)
    page_size: int | None = None
    on_row_drag_end: Callable[[int, int, list[Record]], None] | None = None
    on_column_drag_end: Callable[[int, int, list[AxisField]], None] | None = None


# ---------------------------------------------------------------------------
# Derived types
# ---------------------------------------------------------------------------


@dataclass
class Group:
    """A node of the grouping tree."""

    key: str
    items: list[Record] = field(default_factory=list)
    subgroups: list[Group] = field(default_factory=list)
    aggregates: dict[str, float] = field(default_factory=dict)
    level: int = 0


@dataclass(frozen=True)
class RowSize:
    index: int
    height: int


@dataclass(frozen=True)
class PaginationState:
    current_page: int = 1
    page_size: int = 10
    total_pages: int = 1


@dataclass(frozen=True)
class VisibleRange:
    start: int
    end: int


@dataclass(frozen=True)
class ProcessedData:
    """Flattened header/row/total view for direct rendering."""

    headers: tuple[str, ...] = ()
    rows: tuple[tuple[Any, ...], ...] = ()
    totals: Mapping[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class PivotState:
    """Snapshot of everything derived from configuration plus interaction."""

    data: tuple[Record, ...]
    processed_data: ProcessedData
    rows: tuple[AxisField, ...]
    columns: tuple[AxisField, ...]
    measures: tuple[Measure, ...]
    dimensions: tuple[Dimension, ...]
    selected_aggregation: str
    sort_config: tuple[SortDirective, ...]
    filter_config: tuple[FilterDirective, ...]
    row_sizes: tuple[RowSize, ...]
    column_widths: tuple[int | None, ...]
    expanded_rows: Mapping[str, bool]
    group_config: GroupConfig | None
    groups: tuple[Group, ...]
    row_groups: tuple[Group, ...]
    column_groups: tuple[Group, ...]
    formatting: Mapping[str, FormatOptions]
    pagination: PaginationState
    raw_data: tuple[Record, ...] = ()
