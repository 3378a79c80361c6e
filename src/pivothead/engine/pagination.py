"""Pagination cursor maths and the virtual-scroll visible-range query."""

from __future__ import annotations

import math
from typing import Sequence, TypeVar

from pivothead.engine.errors import PivotValidationError
from pivothead.engine.models import PaginationState, VisibleRange

T = TypeVar("T")


def total_pages(count: int, page_size: int) -> int:
    """``ceil(count / page_size)``; an empty result still has one (empty) page."""
    return max(1, math.ceil(count / page_size))


def clamp_page(page: int, pages: int) -> int:
    return min(max(1, int(page)), max(1, pages))


def validate_page_size(page_size: int, max_page_size: int) -> int:
    if isinstance(page_size, bool) or not isinstance(page_size, int) or page_size < 1:
        raise PivotValidationError(
            f"Page size must be a positive integer, got {page_size!r}",
            metadata={"page_size": page_size},
        )
    return min(page_size, max_page_size)


def build_pagination(count: int, current_page: int, page_size: int) -> PaginationState:
    """Pagination state for *count* rows with the cursor clamped into range."""
    pages = total_pages(count, page_size)
    return PaginationState(
        current_page=clamp_page(current_page, pages),
        page_size=page_size,
        total_pages=pages,
    )


def page_bounds(state: PaginationState) -> tuple[int, int]:
    start = (state.current_page - 1) * state.page_size
    return start, start + state.page_size


def paginate(items: Sequence[T], state: PaginationState) -> list[T]:
    start, end = page_bounds(state)
    return list(items[start:end])


def visible_range(
    scroll_offset: float,
    viewport_size: float,
    row_height: float,
    buffer: int = 0,
    total: int | None = None,
) -> VisibleRange:
    """Rows a virtual-scroll renderer should draw, as a half-open ``[start, end)``.

    Pure: the engine never owns the scroll position.  *buffer* extra rows
    are added on both sides; *total* clamps the end when given.
    """
    if row_height <= 0:
        raise PivotValidationError(
            f"Row height must be positive, got {row_height!r}",
            metadata={"row_height": row_height},
        )
    offset = max(0.0, float(scroll_offset))
    viewport = max(0.0, float(viewport_size))
    buffer = max(0, int(buffer))

    first = math.floor(offset / row_height)
    last = math.ceil((offset + viewport) / row_height)

    start = max(0, first - buffer)
    end = last + buffer
    if total is not None:
        end = min(end, max(0, total))
        start = min(start, end)
    return VisibleRange(start=start, end=end)
