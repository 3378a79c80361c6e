"""Pivot engine: stateful pivot table over an in-memory record set.

``PivotEngine`` owns the configuration and the derived ``PivotState``.  Each
data-affecting setter runs the whole pipeline synchronously:

    filter -> sort -> group -> aggregate -> flatten view -> clamp page

and then publishes a fresh, frozen snapshot.  There is no incremental
update; every call recomputes from the authoritative record order.

Display-order operations (row/column drag) permute the already-derived
structures and rebuild only the flattened view, so a drag is never undone
by re-grouping.  Resizing and expand/collapse only touch their own tables.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from types import MappingProxyType
from typing import Any, Sequence

from pivothead.config.settings import settings
from pivothead.engine import formatting
from pivothead.engine.aggregator import aggregate, validate_aggregation
from pivothead.engine.errors import InvalidConfigurationError, PivotError, PivotValidationError
from pivothead.engine.filters import filter_records, validate_filters
from pivothead.engine.grouping import build_groups, is_valid_group_config
from pivothead.engine.models import (
    DIMENSION_TYPES,
    AxisField,
    DataSource,
    Dimension,
    FilterDirective,
    FormatOptions,
    Group,
    GroupConfig,
    Measure,
    PaginationState,
    PivotConfiguration,
    PivotState,
    ProcessedData,
    Record,
    SortDirective,
    VisibleRange,
)
from pivothead.engine.pagination import (
    build_pagination,
    paginate,
    validate_page_size,
    visible_range,
)
from pivothead.engine.records import freeze_records, measure_value
from pivothead.engine.reorder import (
    fit_column_widths,
    fit_row_sizes,
    init_row_sizes,
    move_columns,
    move_rows,
    resize_column,
    resize_row,
)
from pivothead.engine.sorter import build_directive, sort_groups, sort_records, validate_directive
from pivothead.ingestion.loader import RecordSource, load_records, validate_data_source

logger = logging.getLogger(__name__)


class PivotEngine:
    """Headless pivot table state container.

    Not thread-safe: callers serialise access to one instance.
    """

    def __init__(self, config: PivotConfiguration) -> None:
        if config is None:
            raise InvalidConfigurationError("Pivot configuration is required")
        if config.data_source is not None:
            validate_data_source(config.data_source)

        self._config = config
        _validate_measures(config.measures)
        _validate_dimensions(config.dimensions)
        validate_aggregation(config.default_aggregation or "sum")
        self._initial_page_size = validate_page_size(
            settings.default_page_size if config.page_size is None else config.page_size,
            settings.max_page_size,
        )

        if _is_deferred(config.data_source):
            # Filled in by load_data()
            self._raw: tuple[Record, ...] = ()
        else:
            self._raw = freeze_records(config.data or [])

        self._restore_initial()
        self._recompute("init")

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def get_state(self) -> PivotState:
        """Immutable snapshot of the current state."""
        return self._state

    def get_grouped_data(self) -> list[Group]:
        return list(self._state.groups)

    def get_pagination_state(self) -> PaginationState:
        return self._state.pagination

    def get_filter_state(self) -> list[FilterDirective]:
        return list(self._state.filter_config)

    def is_row_expanded(self, row_id: str) -> bool:
        return bool(self._expanded.get(row_id, False))

    def format_value(self, value: Any, field: str) -> str:
        """Apply the configured display format for *field* to *value*."""
        return formatting.format_value(
            value, self._format_for(field), settings.empty_value_placeholder
        )

    def visible_range(
        self,
        scroll_offset: float,
        viewport_size: float,
        row_height: float | None = None,
        buffer: int | None = None,
    ) -> VisibleRange:
        """Visible display rows for an external virtual-scroll renderer."""
        return visible_range(
            scroll_offset,
            viewport_size,
            row_height or settings.default_row_height,
            settings.scroll_buffer if buffer is None else buffer,
            total=self._display_count(self._state.data, self._state.groups),
        )

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load_data(self, source: RecordSource = None) -> int:
        """Load records from *source* (default: the configured data source).

        Failures are logged and leave the engine with an empty record set.
        State is swapped only after loading finishes.

        Returns:
            Number of records loaded.
        """
        if source is None:
            source = self._config.data_source if _is_deferred(self._config.data_source) else self._config.data

        try:
            records = await load_records(source)
        except PivotError:
            logger.exception("Failed to load pivot data")
            records = ()

        self._raw = records
        self._records = list(records)
        self._row_sizes = init_row_sizes(len(records), settings.default_row_height)
        self._current_page = 1
        self._recompute("load_data")
        return len(records)

    # ------------------------------------------------------------------
    # Full-pipeline setters
    # ------------------------------------------------------------------

    def sort(self, field: str, direction: str = "asc") -> None:
        """Sort by one field; measure fields sort by their aggregation."""
        self.sort_by([build_directive(field, direction, self._measures, self._aggregation)])

    def sort_by(self, directives: Sequence[SortDirective]) -> None:
        """Replace the active sort list wholesale (list order = priority)."""
        directives = [validate_directive(d) for d in directives]
        limit = settings.max_sort_directives
        if len(directives) > limit:
            logger.warning("Sort list of %d truncated to %d directives", len(directives), limit)
            directives = directives[:limit]
        self._sort = directives
        self._recompute("sort")

    def apply_filters(self, filters: Sequence[FilterDirective]) -> None:
        """Replace the active filters and return to the first page."""
        self._filters = validate_filters(filters)
        self._current_page = 1
        self._recompute("apply_filters")

    def set_group_config(self, group_config: GroupConfig | None) -> None:
        self._group_config = group_config
        self._recompute("set_group_config")

    def set_measures(self, measures: Sequence[Measure]) -> None:
        _validate_measures(measures)
        self._measures = list(measures)
        self._recompute("set_measures")

    def set_dimensions(self, dimensions: Sequence[Dimension]) -> None:
        _validate_dimensions(dimensions)
        self._dimensions = list(dimensions)
        self._recompute("set_dimensions")

    def set_aggregation(self, aggregation: str) -> None:
        """Set the aggregation used by measures that do not name their own."""
        self._aggregation = validate_aggregation(aggregation)
        self._recompute("set_aggregation")

    def set_rows(self, rows: Sequence[AxisField]) -> None:
        """Replace the rows axis; an active grouping follows the new axes."""
        self._rows = _validate_axis(rows, "rows")
        self._regroup_by_axes()
        self._recompute("set_rows")

    def set_columns(self, columns: Sequence[AxisField]) -> None:
        """Replace the columns axis; an active grouping follows the new axes."""
        self._columns = _validate_axis(columns, "columns")
        self._column_widths = fit_column_widths((), len(self._columns))
        self._regroup_by_axes()
        self._recompute("set_columns")

    def reset(self) -> None:
        """Discard every interactive change and rebuild from the configuration."""
        self._restore_initial()
        self._recompute("reset")

    # ------------------------------------------------------------------
    # Display-order and geometry
    # ------------------------------------------------------------------

    def drag_row(self, from_index: int, to_index: int) -> None:
        """Move a working-set row; row heights and top-level groups follow."""
        state = self._state
        result = move_rows(state.data, self._row_sizes, state.groups, from_index, to_index)
        if result is None:
            return

        working, sizes, groups = result
        self._write_back_order(working)
        self._row_sizes = sizes
        self._publish(working, groups, state.row_groups, state.column_groups)

        if self._config.on_row_drag_end is not None:
            self._config.on_row_drag_end(from_index, to_index, list(working))

    def drag_column(self, from_index: int, to_index: int) -> None:
        """Move a column; its width and the column groups follow."""
        state = self._state
        result = move_columns(self._columns, self._column_widths, state.column_groups, from_index, to_index)
        if result is None:
            return

        self._columns, self._column_widths, column_groups = result
        self._publish(list(state.data), list(state.groups), state.row_groups, column_groups)

        if self._config.on_column_drag_end is not None:
            columns = [AxisField(unique_name=c.unique_name, caption=c.label) for c in self._columns]
            self._config.on_column_drag_end(from_index, to_index, columns)

    def resize_row(self, index: int, height: int) -> None:
        """Set one row's height (clamped to the minimum); nothing else changes."""
        sizes = resize_row(
            self._row_sizes, index, height, settings.min_row_height, len(self._state.data)
        )
        if sizes is None:
            return
        self._row_sizes = sizes
        self._state = replace(self._state, row_sizes=sizes)

    def resize_column(self, index: int, width: int) -> None:
        widths = resize_column(
            self._column_widths, len(self._columns), index, width, settings.min_column_width
        )
        if widths is None:
            return
        self._column_widths = widths
        self._state = replace(self._state, column_widths=widths)

    def toggle_row_expansion(self, row_id: str) -> None:
        self._expanded[row_id] = not self._expanded.get(row_id, False)
        self._state = replace(self._state, expanded_rows=MappingProxyType(dict(self._expanded)))

    # ------------------------------------------------------------------
    # Pagination
    # ------------------------------------------------------------------

    def go_to_page(self, page: int) -> None:
        """Move the cursor; out-of-range pages clamp into ``[1, total_pages]``."""
        if isinstance(page, bool) or not isinstance(page, int):
            logger.warning("Ignoring non-integer page %r", page)
            return
        self._current_page = page
        self._republish()

    def next_page(self) -> None:
        self.go_to_page(self._state.pagination.current_page + 1)

    def previous_page(self) -> None:
        self.go_to_page(self._state.pagination.current_page - 1)

    def set_page_size(self, page_size: int) -> None:
        self._page_size = validate_page_size(page_size, settings.max_page_size)
        self._republish()

    def set_pagination(self, current_page: int | None = None, page_size: int | None = None) -> None:
        if page_size is not None:
            self._page_size = validate_page_size(page_size, settings.max_page_size)
        if current_page is not None:
            if isinstance(current_page, bool) or not isinstance(current_page, int):
                raise PivotValidationError(f"Page must be an integer, got {current_page!r}")
            self._current_page = current_page
        self._republish()

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def _restore_initial(self) -> None:
        config = self._config
        self._records: list[Record] = list(self._raw)
        self._rows = list(config.rows)
        self._columns = list(config.columns)
        self._measures = list(config.measures)
        self._dimensions = list(config.dimensions)
        self._aggregation = config.default_aggregation or "sum"
        self._formatting: dict[str, FormatOptions] = dict(config.formatting)
        self._group_config = config.group_config
        self._sort = [validate_directive(d) for d in config.initial_sort][: settings.max_sort_directives]
        self._filters: list[FilterDirective] = []
        self._row_sizes = init_row_sizes(len(self._records), settings.default_row_height)
        self._column_widths = fit_column_widths((), len(self._columns))
        self._expanded: dict[str, bool] = {}
        self._current_page = 1
        self._page_size = self._initial_page_size

    def _recompute(self, reason: str) -> None:
        """Run filter -> sort -> group -> aggregate, then publish the view."""
        agg = self._aggregation
        working = filter_records(self._records, self._filters)
        working = sort_records(working, self._sort, self._measures, agg)

        groups: list[Group] = []
        row_groups: list[Group] = []
        column_groups: list[Group] = []
        if self._group_config is not None:
            groups = build_groups(working, self._group_config, self._measures, agg)
            groups = sort_groups(groups, self._sort, self._measures, agg)
            if is_valid_group_config(self._group_config):
                row_groups = self._axis_groups(working, self._rows)
                column_groups = self._axis_groups(working, self._columns)

        self._row_sizes = fit_row_sizes(self._row_sizes, len(working), settings.default_row_height)
        logger.debug(
            "Pipeline (%s): %d of %d records after filters, %d groups",
            reason, len(working), len(self._records), len(groups),
        )
        self._publish(working, groups, row_groups, column_groups)

    def _regroup_by_axes(self) -> None:
        if not is_valid_group_config(self._group_config):
            return
        self._group_config = replace(
            GroupConfig.from_axes(self._rows, self._columns), key_fn=self._group_config.key_fn
        )

    def _axis_groups(self, working: Sequence[Record], axis: Sequence[AxisField]) -> list[Group]:
        if not axis:
            return []
        config = replace(GroupConfig.from_axes(list(axis), []), key_fn=self._group_config.key_fn)
        return build_groups(working, config, self._measures, self._aggregation)

    def _republish(self) -> None:
        state = self._state
        self._publish(list(state.data), list(state.groups), state.row_groups, state.column_groups)

    def _publish(
        self,
        working: Sequence[Record],
        groups: Sequence[Group],
        row_groups: Sequence[Group],
        column_groups: Sequence[Group],
    ) -> None:
        """Flatten the view, clamp the page cursor and swap in a new snapshot."""
        pagination = build_pagination(
            self._display_count(working, groups), self._current_page, self._page_size
        )
        self._current_page = pagination.current_page

        self._state = PivotState(
            data=tuple(working),
            processed_data=self._build_processed_data(working, groups, pagination),
            rows=tuple(self._rows),
            columns=tuple(self._columns),
            measures=tuple(self._measures),
            dimensions=tuple(self._dimensions),
            selected_aggregation=self._aggregation,
            sort_config=tuple(self._sort),
            filter_config=tuple(self._filters),
            row_sizes=tuple(self._row_sizes),
            column_widths=tuple(self._column_widths),
            expanded_rows=MappingProxyType(dict(self._expanded)),
            group_config=self._group_config,
            groups=tuple(groups),
            row_groups=tuple(row_groups),
            column_groups=tuple(column_groups),
            formatting=MappingProxyType(dict(self._formatting)),
            pagination=pagination,
            raw_data=self._raw,
        )

    def _build_processed_data(
        self,
        working: Sequence[Record],
        groups: Sequence[Group],
        pagination: PaginationState,
    ) -> ProcessedData:
        axes = self._rows + self._columns
        agg = self._aggregation
        headers = tuple(a.label for a in axes) + tuple(m.label for m in self._measures)

        rows: list[tuple] = []
        if groups:
            for group in paginate(groups, pagination):
                first = group.items[0] if group.items else {}
                rows.append(
                    tuple(first.get(a.unique_name) for a in axes)
                    + tuple(group.aggregates.get(m.aggregate_key(agg)) for m in self._measures)
                )
        else:
            for record in paginate(working, pagination):
                rows.append(
                    tuple(record.get(a.unique_name) for a in axes)
                    + tuple(measure_value(record, m) for m in self._measures)
                )

        totals = {m.unique_name: aggregate(working, m, agg) for m in self._measures}
        return ProcessedData(headers=headers, rows=tuple(rows), totals=MappingProxyType(totals))

    @staticmethod
    def _display_count(working: Sequence[Record], groups: Sequence[Group]) -> int:
        return len(groups) if groups else len(working)

    def _write_back_order(self, working: Sequence[Record]) -> None:
        """Refill the slots the working set occupies with its new order."""
        ids = {id(r) for r in working}
        slots = [i for i, r in enumerate(self._records) if id(r) in ids]
        for slot, record in zip(slots, working):
            self._records[slot] = record

    def _format_for(self, field: str) -> FormatOptions | None:
        fmt = self._formatting.get(field)
        if fmt is not None:
            return fmt
        for m in self._measures:
            if m.unique_name == field and m.format is not None:
                return m.format
        for d in self._dimensions:
            if d.field == field and d.format is not None:
                return d.format
        return None


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _is_deferred(source: DataSource | None) -> bool:
    return source is not None and source.type in ("remote", "file")


def _validate_measures(measures: Sequence[Measure]) -> None:
    seen: set[str] = set()
    for m in measures:
        if not m.unique_name:
            raise InvalidConfigurationError("Measure unique_name is required")
        if m.unique_name in seen:
            raise InvalidConfigurationError(
                f"Duplicate measure unique_name: {m.unique_name!r}",
                metadata={"unique_name": m.unique_name},
            )
        seen.add(m.unique_name)
        if m.aggregation is not None:
            validate_aggregation(m.aggregation)
        if m.formula is not None and not callable(m.formula):
            raise InvalidConfigurationError(
                f"Measure {m.unique_name!r} formula is not callable",
                metadata={"unique_name": m.unique_name},
            )


def _validate_dimensions(dimensions: Sequence[Dimension]) -> None:
    for d in dimensions:
        if d.type not in DIMENSION_TYPES:
            raise InvalidConfigurationError(
                f"Dimension {d.field!r} has unknown type {d.type!r}",
                metadata={"field": d.field, "type": d.type},
            )


def _validate_axis(axis: Sequence[AxisField], name: str) -> list[AxisField]:
    for a in axis:
        if not a.unique_name:
            raise InvalidConfigurationError(f"Every {name} axis field needs a unique_name")
    return list(axis)
