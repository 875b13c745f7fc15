"""Board State Store - immutable board model, actions, reducer and store."""

from todoboard.board.actions import (
    Action,
    AddColumn,
    AddTodo,
    DeleteColumn,
    DeleteTodo,
    ReorderColumns,
    SetBoard,
    UpdateColumn,
    UpdateTodo,
)
from todoboard.board.exceptions import BoardError, BoardValidationError
from todoboard.board.models import Board, Column, Todo, TodoStatus
from todoboard.board.ordering import move, reindex_columns, reorder_columns
from todoboard.board.reducer import State, reduce, transition
from todoboard.board.store import BoardStore
from todoboard.board.views import (
    STATUS_PRIORITY,
    TodoEntry,
    all_todos,
    ordered_columns,
    sorted_todos,
    status_priority,
)

__all__ = [
    "STATUS_PRIORITY",
    "Action",
    "AddColumn",
    "AddTodo",
    "Board",
    "BoardError",
    "BoardStore",
    "BoardValidationError",
    "Column",
    "DeleteColumn",
    "DeleteTodo",
    "ReorderColumns",
    "SetBoard",
    "State",
    "Todo",
    "TodoEntry",
    "TodoStatus",
    "UpdateColumn",
    "UpdateTodo",
    "all_todos",
    "move",
    "ordered_columns",
    "reduce",
    "reindex_columns",
    "reorder_columns",
    "sorted_todos",
    "status_priority",
    "transition",
]
