"""Derived, read-only projections of a board."""

from __future__ import annotations

from dataclasses import dataclass

from todoboard.board.models import Board, Column, Todo, TodoStatus

STATUS_PRIORITY: dict[str, int] = {
    TodoStatus.IMPORTANT.value: 0,
    TodoStatus.NORMAL.value: 1,
    TodoStatus.IN_PROGRESS.value: 2,
    TodoStatus.COMPLETED.value: 3,
}
UNKNOWN_STATUS_PRIORITY = 99


def status_priority(status: str | None) -> int:
    """Sort key for a status. A missing status counts as normal."""
    if not status:
        status = TodoStatus.NORMAL.value
    return STATUS_PRIORITY.get(status, UNKNOWN_STATUS_PRIORITY)


@dataclass(frozen=True)
class TodoEntry:
    """A todo annotated with the column it lives in."""

    todo: Todo
    column_id: str
    column_title: str


def all_todos(board: Board | None) -> list[TodoEntry]:
    """Flatten every column's todos, sorted by status priority.

    The sort is stable, so todos with the same status keep board order
    (column by column, then position within the column).
    """
    if board is None:
        return []
    entries = [
        TodoEntry(todo=todo, column_id=column.id, column_title=column.title)
        for column in board.columns
        for todo in column.todos
    ]
    return sorted(entries, key=lambda entry: status_priority(entry.todo.status))


def sorted_todos(column: Column) -> list[Todo]:
    """Todos of one column in display order."""
    return sorted(column.todos, key=lambda todo: status_priority(todo.status))


def ordered_columns(board: Board | None) -> list[Column]:
    """Columns in display order (ascending order field, stable)."""
    if board is None:
        return []
    return sorted(board.columns, key=lambda column: column.order)
