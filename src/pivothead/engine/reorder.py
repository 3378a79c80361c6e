"""Reorder / resize rules for rows and columns.

Parallel structures (records + row heights + top-level groups, or columns +
column widths + column groups) are permuted together or not at all.  All
functions return new sequences and leave their inputs untouched; a rejected
operation returns None.
"""

from __future__ import annotations

import logging
from typing import Sequence, TypeVar

from pivothead.engine.models import AxisField, Group, Record, RowSize

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_valid_move(from_index: int, to_index: int, length: int) -> bool:
    """``0 <= from < N``, ``0 <= to < N`` and ``from != to``."""
    if not isinstance(from_index, int) or not isinstance(to_index, int):
        return False
    if isinstance(from_index, bool) or isinstance(to_index, bool):
        return False
    return 0 <= from_index < length and 0 <= to_index < length and from_index != to_index


def move_item(items: Sequence[T], from_index: int, to_index: int) -> list[T]:
    """Remove the element at *from_index* and reinsert it at *to_index*."""
    out = list(items)
    moved = out.pop(from_index)
    out.insert(to_index, moved)
    return out


def _reject(kind: str, from_index: int, to_index: int, length: int) -> None:
    if from_index == to_index and 0 <= from_index < length:
        logger.debug("%s drag %d -> %d is a no-op", kind, from_index, to_index)
    else:
        logger.warning("Invalid %s drag indices: from %r to %r (length %d)", kind, from_index, to_index, length)


# ---------------------------------------------------------------------------
# Rows
# ---------------------------------------------------------------------------


def init_row_sizes(count: int, height: int) -> tuple[RowSize, ...]:
    return tuple(RowSize(index=i, height=height) for i in range(count))


def fit_row_sizes(sizes: Sequence[RowSize], count: int, height: int) -> tuple[RowSize, ...]:
    """Pad the table with *height* up to *count* positions.

    The table never shrinks: a filter that hides rows keeps the heights of the
    hidden positions so they come back when the filter is cleared.
    """
    kept = [RowSize(index=i, height=s.height) for i, s in enumerate(sizes)]
    kept.extend(RowSize(index=i, height=height) for i in range(len(kept), count))
    return tuple(kept)


def move_rows(
    records: Sequence[Record],
    sizes: Sequence[RowSize],
    groups: Sequence[Group],
    from_index: int,
    to_index: int,
) -> tuple[list[Record], tuple[RowSize, ...], list[Group]] | None:
    """Move one row; the row-height table and top-level groups follow.

    Groups are permuted index-for-index only when both indices fall inside
    the group list; the grouping itself is not recomputed.
    """
    if not is_valid_move(from_index, to_index, len(records)):
        _reject("row", from_index, to_index, len(records))
        return None

    new_records = move_item(records, from_index, to_index)
    moved_sizes = list(sizes)
    if is_valid_move(from_index, to_index, len(sizes)):
        moved_sizes = move_item(sizes, from_index, to_index)
    new_sizes = tuple(RowSize(index=i, height=s.height) for i, s in enumerate(moved_sizes))

    new_groups = list(groups)
    if is_valid_move(from_index, to_index, len(groups)):
        new_groups = move_item(groups, from_index, to_index)

    return new_records, new_sizes, new_groups


def resize_row(
    sizes: Sequence[RowSize],
    index: int,
    height: int,
    min_height: int,
    count: int | None = None,
) -> tuple[RowSize, ...] | None:
    """Set one row's height, clamped to *min_height*; other rows untouched.

    *count* limits valid indices to the visible rows when the table is longer.
    """
    limit = len(sizes) if count is None else min(count, len(sizes))
    if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < limit:
        logger.warning("Invalid row resize index %r (rows: %d)", index, limit)
        return None
    out = list(sizes)
    out[index] = RowSize(index=index, height=max(min_height, int(height)))
    return tuple(out)


# ---------------------------------------------------------------------------
# Columns
# ---------------------------------------------------------------------------


def fit_column_widths(widths: Sequence[int | None], count: int) -> tuple[int | None, ...]:
    kept = list(widths[:count])
    kept.extend([None] * (count - len(kept)))
    return tuple(kept)


def move_columns(
    columns: Sequence[AxisField],
    widths: Sequence[int | None],
    column_groups: Sequence[Group],
    from_index: int,
    to_index: int,
) -> tuple[list[AxisField], tuple[int | None, ...], list[Group]] | None:
    """Move one column; its width travels with it, column groups follow."""
    if not is_valid_move(from_index, to_index, len(columns)):
        _reject("column", from_index, to_index, len(columns))
        return None

    new_columns = move_item(columns, from_index, to_index)
    new_widths = tuple(move_item(fit_column_widths(widths, len(columns)), from_index, to_index))

    new_groups = list(column_groups)
    if is_valid_move(from_index, to_index, len(column_groups)):
        new_groups = move_item(column_groups, from_index, to_index)

    return new_columns, new_widths, new_groups


def resize_column(
    widths: Sequence[int | None],
    count: int,
    index: int,
    width: int,
    min_width: int,
) -> tuple[int | None, ...] | None:
    if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < count:
        logger.warning("Invalid column resize index %r (columns: %d)", index, count)
        return None
    out = list(fit_column_widths(widths, count))
    out[index] = max(min_width, int(width))
    return tuple(out)
