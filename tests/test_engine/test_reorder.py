"""Tests for reorder: row/column moves, parallel structures, resize clamping."""

from __future__ import annotations

import pytest

from pivothead.engine.models import AxisField, Group, RowSize
from pivothead.engine.reorder import (
    fit_column_widths,
    fit_row_sizes,
    init_row_sizes,
    is_valid_move,
    move_columns,
    move_item,
    move_rows,
    resize_column,
    resize_row,
)

# ---------------------------------------------------------------------------
# Fixtures / helpers
# ---------------------------------------------------------------------------

RECORDS = [{"id": i} for i in range(4)]
GROUPS = [Group(key=f"g{i}") for i in range(4)]
COLUMNS = [AxisField("region"), AxisField("quarter"), AxisField("channel")]


def _sizes(*heights: int) -> tuple[RowSize, ...]:
    return tuple(RowSize(index=i, height=h) for i, h in enumerate(heights))


# ---------------------------------------------------------------------------
# 1. Index validation
# ---------------------------------------------------------------------------


class TestIsValidMove:
    def test_valid(self):
        assert is_valid_move(0, 3, 4)

    @pytest.mark.parametrize(
        "from_index,to_index",
        [(-1, 2), (0, 4), (4, 0), (2, 2), (True, 2), (1.0, 2), ("1", 2)],
    )
    def test_invalid(self, from_index, to_index):
        assert not is_valid_move(from_index, to_index, 4)

    def test_move_item(self):
        assert move_item("abcd", 0, 2) == ["b", "c", "a", "d"]
        assert move_item("abcd", 3, 0) == ["d", "a", "b", "c"]


# ---------------------------------------------------------------------------
# 2. Row moves
# ---------------------------------------------------------------------------


class TestMoveRows:
    def test_record_moves_to_target(self):
        records, _, _ = move_rows(RECORDS, init_row_sizes(4, 40), [], 0, 2)
        assert [r["id"] for r in records] == [1, 2, 0, 3]

    def test_heights_follow_their_rows(self):
        sizes = _sizes(40, 60, 40, 40)
        _, new_sizes, _ = move_rows(RECORDS, sizes, [], 1, 3)
        assert [s.height for s in new_sizes] == [40, 40, 40, 60]
        assert [s.index for s in new_sizes] == [0, 1, 2, 3]

    def test_groups_permuted_when_in_range(self):
        _, _, groups = move_rows(RECORDS, init_row_sizes(4, 40), GROUPS, 0, 3)
        assert [g.key for g in groups] == ["g1", "g2", "g3", "g0"]

    def test_groups_untouched_when_out_of_range(self):
        _, _, groups = move_rows(RECORDS, init_row_sizes(4, 40), GROUPS[:2], 0, 3)
        assert [g.key for g in groups] == ["g0", "g1"]

    def test_round_trip_restores_order(self):
        sizes = _sizes(40, 60, 80, 40)
        records, moved, groups = move_rows(RECORDS, sizes, GROUPS, 1, 3)
        records, moved, groups = move_rows(records, moved, groups, 3, 1)
        assert records == RECORDS
        assert moved == sizes
        assert [g.key for g in groups] == [g.key for g in GROUPS]

    def test_longer_height_table_is_permuted(self):
        _, moved, _ = move_rows(RECORDS[:2], _sizes(40, 60, 99), [], 1, 0)
        assert [s.height for s in moved] == [60, 40, 99]

    def test_invalid_move_returns_none(self, caplog):
        assert move_rows(RECORDS, init_row_sizes(4, 40), [], 0, 9) is None
        assert "Invalid row drag" in caplog.text

    def test_same_index_is_quiet_noop(self, caplog):
        assert move_rows(RECORDS, init_row_sizes(4, 40), [], 2, 2) is None
        assert "Invalid" not in caplog.text

    def test_inputs_untouched(self):
        before = list(RECORDS)
        move_rows(RECORDS, init_row_sizes(4, 40), GROUPS, 0, 1)
        assert RECORDS == before


# ---------------------------------------------------------------------------
# 3. Row sizes
# ---------------------------------------------------------------------------


class TestRowSizes:
    def test_init(self):
        assert init_row_sizes(2, 40) == (RowSize(0, 40), RowSize(1, 40))

    def test_fit_keeps_and_pads(self):
        fitted = fit_row_sizes(_sizes(55, 66), 3, 40)
        assert [s.height for s in fitted] == [55, 66, 40]

    def test_fit_never_shrinks(self):
        fitted = fit_row_sizes(_sizes(55, 66, 77), 1, 40)
        assert [s.height for s in fitted] == [55, 66, 77]

    def test_resize_limited_to_visible_rows(self):
        assert resize_row(_sizes(40, 40, 40), 2, 90, 20, count=2) is None
        assert resize_row(_sizes(40, 40, 40), 1, 90, 20, count=2)[1].height == 90

    def test_resize_sets_only_target(self):
        out = resize_row(_sizes(40, 40, 40), 1, 90, 20)
        assert [s.height for s in out] == [40, 90, 40]

    def test_resize_clamps_to_minimum(self):
        out = resize_row(_sizes(40, 40), 0, 5, 20)
        assert out[0].height == 20

    def test_resize_bad_index(self):
        assert resize_row(_sizes(40), 3, 50, 20) is None
        assert resize_row(_sizes(40), -1, 50, 20) is None


# ---------------------------------------------------------------------------
# 4. Columns
# ---------------------------------------------------------------------------


class TestColumns:
    def test_width_travels_with_column(self):
        columns, widths, _ = move_columns(COLUMNS, (120, None, 80), [], 0, 2)
        assert [c.unique_name for c in columns] == ["quarter", "channel", "region"]
        assert widths == (None, 80, 120)

    def test_short_width_list_is_padded(self):
        _, widths, _ = move_columns(COLUMNS, (150,), [], 2, 0)
        assert widths == (None, 150, None)

    def test_column_groups_follow(self):
        groups = [Group(key="a"), Group(key="b"), Group(key="c")]
        _, _, moved = move_columns(COLUMNS, (), groups, 2, 0)
        assert [g.key for g in moved] == ["c", "a", "b"]

    def test_invalid_move(self):
        assert move_columns(COLUMNS, (), [], 0, 3) is None

    def test_resize_column(self):
        assert resize_column((), 3, 1, 200, 20) == (None, 200, None)
        assert resize_column((100, 100, 100), 3, 2, 3, 20) == (100, 100, 20)

    def test_resize_column_bad_index(self):
        assert resize_column((), 3, 3, 200, 20) is None

    def test_fit_column_widths(self):
        assert fit_column_widths((10, 20, 30), 2) == (10, 20)
        assert fit_column_widths((10,), 3) == (10, None, None)
