"""Unit tests for the board reducer."""

from datetime import UTC, datetime

import pytest

from todoboard.board import (
    AddColumn,
    AddTodo,
    Board,
    Column,
    DeleteColumn,
    DeleteTodo,
    ReorderColumns,
    SetBoard,
    Todo,
    UpdateColumn,
    UpdateTodo,
    reduce,
    transition,
)

LATER = datetime(2024, 6, 1, 9, 30, tzinfo=UTC)


@pytest.mark.unit
class TestSetBoard:
    """Tests for SetBoard."""

    def test_sets_from_empty(self, board: Board) -> None:
        assert reduce(None, SetBoard(board)) is board

    def test_replaces_existing(self, board: Board) -> None:
        other = Board(id="board-2", user_id="user-1")
        assert reduce(board, SetBoard(other)) is other

    def test_idempotent(self, board: Board) -> None:
        once = reduce(None, SetBoard(board))
        twice = reduce(once, SetBoard(board))
        assert once == twice


@pytest.mark.unit
class TestNoBoard:
    """Every action except SetBoard is a no-op before a board exists."""

    @pytest.mark.parametrize(
        "action",
        [
            AddColumn(Column(id="c", title="x")),
            UpdateColumn("c", {"title": "y"}),
            DeleteColumn("c"),
            AddTodo("c", Todo(id="t", content="x")),
            UpdateTodo("c", "t", {"content": "y"}),
            DeleteTodo("c", "t"),
            ReorderColumns(()),
        ],
    )
    def test_passes_none_through(self, action) -> None:
        assert reduce(None, action) is None


@pytest.mark.unit
class TestColumnActions:
    """Tests for column actions."""

    def test_add_column_appends(self, board: Board) -> None:
        new = Column(id="col-c", title="Later", order=2)

        result = reduce(board, AddColumn(new))

        assert [c.id for c in result.columns] == ["col-a", "col-b", "col-c"]
        assert result.columns[:2] == board.columns
        assert len(board.columns) == 2

    def test_add_then_delete_restores_columns(self, board: Board) -> None:
        new = Column(id="col-c", title="Later", order=2)

        result = reduce(reduce(board, AddColumn(new)), DeleteColumn("col-c"))

        assert result.columns == board.columns

    def test_update_column_merges(self, board: Board) -> None:
        result = reduce(board, UpdateColumn("col-a", {"title": "Inbox"}))

        assert result.columns[0].title == "Inbox"
        assert result.columns[0].todos == board.columns[0].todos
        assert result.columns[1] is board.columns[1]
        assert board.columns[0].title == "Todo"

    def test_update_column_never_changes_id(self, board: Board) -> None:
        result = reduce(board, UpdateColumn("col-a", {"id": "hijack", "order": 5}))

        assert result.columns[0].id == "col-a"
        assert result.columns[0].order == 5

    def test_update_column_todos_become_tuple(self, board: Board) -> None:
        result = reduce(board, UpdateColumn("col-b", {"todos": []}))
        assert result.columns[1].todos == ()

    def test_update_unknown_column_is_identity(self, board: Board) -> None:
        assert reduce(board, UpdateColumn("missing", {"title": "x"})) is board

    def test_delete_column_removes_todos(self, board: Board) -> None:
        result = reduce(board, DeleteColumn("col-a"))

        assert [c.id for c in result.columns] == ["col-b"]
        assert "t1" not in result.all_ids()

    def test_delete_unknown_column_is_identity(self, board: Board) -> None:
        assert reduce(board, DeleteColumn("missing")) is board

    def test_reorder_replaces_sequence(self, board: Board) -> None:
        reordered = (board.columns[1], board.columns[0])
        result = reduce(board, ReorderColumns(reordered))
        assert result.columns == reordered


@pytest.mark.unit
class TestTodoActions:
    """Tests for todo actions."""

    def test_add_todo_appends(self, board: Board) -> None:
        todo = Todo(id="t9", content="New")

        result = reduce(board, AddTodo("col-b", todo))

        assert [t.id for t in result.columns[1].todos] == ["t3", "t9"]
        assert result.columns[0] is board.columns[0]

    def test_add_todo_at_index(self, board: Board) -> None:
        todo = Todo(id="t9", content="New")

        result = reduce(board, AddTodo("col-a", todo, index=0))

        assert [t.id for t in result.columns[0].todos] == ["t9", "t1", "t2"]

    def test_add_todo_unknown_column_is_identity(self, board: Board) -> None:
        assert reduce(board, AddTodo("missing", Todo(id="t9", content="x"))) is board

    def test_update_todo_merges_and_stamps(self, board: Board) -> None:
        result = reduce(
            board, UpdateTodo("col-a", "t1", {"status": "completed"}, stamped_at=LATER)
        )

        todo = result.columns[0].todos[0]
        assert todo.status == "completed"
        assert todo.content == "Buy milk"
        assert todo.updated_at == LATER
        assert todo.created_at == board.columns[0].todos[0].created_at

    def test_update_todo_ignores_id_and_updated_at(self, board: Board) -> None:
        stale = datetime(2000, 1, 1, tzinfo=UTC)

        result = reduce(
            board,
            UpdateTodo(
                "col-a", "t1", {"id": "x", "updated_at": stale, "content": "Oat milk"}, LATER
            ),
        )

        todo = result.columns[0].todos[0]
        assert todo.id == "t1"
        assert todo.content == "Oat milk"
        assert todo.updated_at == LATER

    def test_update_todo_keeps_position(self, board: Board) -> None:
        result = reduce(board, UpdateTodo("col-a", "t1", {"content": "x"}, stamped_at=LATER))
        assert [t.id for t in result.columns[0].todos] == ["t1", "t2"]

    def test_update_todo_is_repeatable(self, board: Board) -> None:
        action = UpdateTodo("col-a", "t1", {"content": "x"}, stamped_at=LATER)
        assert reduce(board, action) == reduce(board, action)

    def test_update_todo_missing_is_identity(self, board: Board) -> None:
        assert reduce(board, UpdateTodo("col-a", "missing", {"content": "x"})) is board
        assert reduce(board, UpdateTodo("missing", "t1", {"content": "x"})) is board

    def test_delete_todo(self, board: Board) -> None:
        result = reduce(board, DeleteTodo("col-a", "t1"))

        assert [t.id for t in result.columns[0].todos] == ["t2"]
        assert result.columns[1] is board.columns[1]

    def test_delete_todo_missing_is_identity(self, board: Board) -> None:
        assert reduce(board, DeleteTodo("col-a", "missing")) is board
        assert reduce(board, DeleteTodo("missing", "t1")) is board

    def test_delete_then_add_at_index_restores(self, board: Board) -> None:
        original = board.columns[0].todos[0]

        result = reduce(
            reduce(board, DeleteTodo("col-a", "t1")), AddTodo("col-a", original, index=0)
        )

        assert result == board


@pytest.mark.unit
class TestReducerMisc:
    """Tests for reducer edge cases."""

    def test_unknown_action(self, board: Board) -> None:
        with pytest.raises(TypeError, match="Unknown board action"):
            reduce(board, object())  # type: ignore[arg-type]

    def test_transition_wraps_reduce(self, board: Board) -> None:
        step = transition(DeleteColumn("col-b"))

        assert step(board) == reduce(board, DeleteColumn("col-b"))
        assert step(None) is None

    def test_input_never_mutated(self, board: Board) -> None:
        snapshot = board.to_dict()

        reduce(board, AddColumn(Column(id="c", title="x")))
        reduce(board, UpdateTodo("col-a", "t1", {"content": "y"}))
        reduce(board, DeleteColumn("col-a"))

        assert board.to_dict() == snapshot
