"""Pure state transitions over an immutable Board."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import replace
from typing import Any

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
from todoboard.board.models import Board, Column

State = Board | None


def reduce(state: State, action: Action) -> State:
    """Apply an action to the board state.

    Never mutates its input. Returns the very same state object when the
    action does not apply (no board yet, or an id that is not found), so
    callers can detect a no-op with an identity check.

    Args:
        state: Current board, or None before the first board is set.
        action: The mutation to apply.

    Returns:
        The new state.

    Raises:
        TypeError: If action is not one of the board actions.
    """
    if isinstance(action, SetBoard):
        return action.board
    if state is None:
        return state

    if isinstance(action, AddColumn):
        return replace(state, columns=(*state.columns, action.column))

    if isinstance(action, UpdateColumn):
        index = _column_index(state, action.column_id)
        if index is None:
            return state
        column = replace(state.columns[index], **_column_changes(action.changes))
        return _with_column(state, index, column)

    if isinstance(action, DeleteColumn):
        if _column_index(state, action.column_id) is None:
            return state
        return replace(
            state,
            columns=tuple(c for c in state.columns if c.id != action.column_id),
        )

    if isinstance(action, AddTodo):
        index = _column_index(state, action.column_id)
        if index is None:
            return state
        column = state.columns[index]
        todos = list(column.todos)
        if action.index is None:
            todos.append(action.todo)
        else:
            todos.insert(action.index, action.todo)
        return _with_column(state, index, replace(column, todos=tuple(todos)))

    if isinstance(action, UpdateTodo):
        index = _column_index(state, action.column_id)
        if index is None:
            return state
        column = state.columns[index]
        todo_index = _todo_index(column, action.todo_id)
        if todo_index is None:
            return state
        changes = {k: v for k, v in action.changes.items() if k not in ("id", "updated_at")}
        todo = replace(column.todos[todo_index], **changes, updated_at=action.stamped_at)
        todos = (*column.todos[:todo_index], todo, *column.todos[todo_index + 1 :])
        return _with_column(state, index, replace(column, todos=todos))

    if isinstance(action, DeleteTodo):
        index = _column_index(state, action.column_id)
        if index is None:
            return state
        column = state.columns[index]
        if _todo_index(column, action.todo_id) is None:
            return state
        todos = tuple(t for t in column.todos if t.id != action.todo_id)
        return _with_column(state, index, replace(column, todos=todos))

    if isinstance(action, ReorderColumns):
        return replace(state, columns=tuple(action.columns))

    raise TypeError(f"Unknown board action: {type(action).__name__}")


def transition(action: Action) -> Callable[[State], State]:
    """Wrap an action as a State -> State function."""

    def apply(state: State) -> State:
        return reduce(state, action)

    return apply


def _column_index(board: Board, column_id: str) -> int | None:
    for index, column in enumerate(board.columns):
        if column.id == column_id:
            return index
    return None


def _todo_index(column: Column, todo_id: str) -> int | None:
    for index, todo in enumerate(column.todos):
        if todo.id == todo_id:
            return index
    return None


def _with_column(board: Board, index: int, column: Column) -> Board:
    columns = (*board.columns[:index], column, *board.columns[index + 1 :])
    return replace(board, columns=columns)


def _column_changes(changes: Mapping[str, Any]) -> dict[str, Any]:
    result = {k: v for k, v in changes.items() if k != "id"}
    if "todos" in result:
        result["todos"] = tuple(result["todos"])
    return result
