"""Typed mutation actions accepted by the board reducer."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from todoboard.board.models import Board, Column, Todo, utcnow


@dataclass(frozen=True)
class SetBoard:
    """Replace the whole state."""

    board: Board


@dataclass(frozen=True)
class AddColumn:
    """Append a column."""

    column: Column


@dataclass(frozen=True)
class UpdateColumn:
    """Merge fields into a column. The column id itself is never changed."""

    column_id: str
    changes: Mapping[str, Any]


@dataclass(frozen=True)
class DeleteColumn:
    """Remove a column and its todos."""

    column_id: str


@dataclass(frozen=True)
class AddTodo:
    """Append a todo to a column, or insert it at index when one is given."""

    column_id: str
    todo: Todo
    index: int | None = None


@dataclass(frozen=True)
class UpdateTodo:
    """Merge fields into a todo and stamp its updated_at.

    The stamp is taken when the action is built so that reducing the same
    action twice gives the same result.
    """

    column_id: str
    todo_id: str
    changes: Mapping[str, Any]
    stamped_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class DeleteTodo:
    """Remove a todo from a column."""

    column_id: str
    todo_id: str


@dataclass(frozen=True)
class ReorderColumns:
    """Replace the column sequence wholesale.

    The caller recomputes each column's order before dispatching.
    """

    columns: tuple[Column, ...]


Action = (
    SetBoard
    | AddColumn
    | UpdateColumn
    | DeleteColumn
    | AddTodo
    | UpdateTodo
    | DeleteTodo
    | ReorderColumns
)
