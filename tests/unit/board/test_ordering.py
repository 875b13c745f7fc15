"""Unit tests for column reordering."""

import pytest

from todoboard.board import BoardValidationError, Column, move, reindex_columns, reorder_columns


@pytest.mark.unit
class TestMove:
    """Tests for move."""

    def test_move_forward(self) -> None:
        assert move(["a", "b", "c", "d"], 0, 2) == ["b", "c", "a", "d"]

    def test_move_backward(self) -> None:
        assert move(["a", "b", "c"], 2, 0) == ["c", "a", "b"]

    def test_same_index(self) -> None:
        assert move(["a", "b"], 1, 1) == ["a", "b"]

    def test_input_untouched(self) -> None:
        items = ("a", "b", "c")
        move(items, 0, 2)
        assert items == ("a", "b", "c")

    @pytest.mark.parametrize(("source", "destination"), [(-1, 0), (3, 0), (0, 3), (0, -1)])
    def test_out_of_range(self, source: int, destination: int) -> None:
        with pytest.raises(BoardValidationError, match="out of range"):
            move(["a", "b", "c"], source, destination)


@pytest.mark.unit
class TestReorderColumns:
    """Tests for reindex_columns and reorder_columns."""

    def test_move_last_to_first(self) -> None:
        columns = [
            Column(id="a", title="A", order=0),
            Column(id="b", title="B", order=1),
            Column(id="c", title="C", order=2),
        ]

        result = reorder_columns(columns, 2, 0)

        assert [(c.id, c.order) for c in result] == [("c", 0), ("a", 1), ("b", 2)]
        assert [c.title for c in result] == ["C", "A", "B"]

    def test_reindex_keeps_unchanged_objects(self) -> None:
        first = Column(id="a", title="A", order=0)
        second = Column(id="b", title="B", order=7)

        result = reindex_columns([first, second])

        assert result[0] is first
        assert result[1].order == 1
        assert isinstance(result, tuple)
