"""View layer - text rendering of a board and intent forwarding.

The view holds no board data of its own. It reads the store, re-renders when
the store changes, and hands every user intent to the Coordinator. Positions
shown next to columns and todos are 1-based and follow display order; they
are what users type to refer to an entity.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import click

from todoboard.board import (
    Board,
    BoardStore,
    BoardValidationError,
    Column,
    State,
    Todo,
    TodoStatus,
    all_todos,
    ordered_columns,
    sorted_todos,
)

if TYPE_CHECKING:
    from todoboard.sync import Coordinator, MutationResult


COLUMNS_MODE = "columns"
ALL_MODE = "all"
VIEW_MODES = (COLUMNS_MODE, ALL_MODE)

STATUS_MARKERS = {
    TodoStatus.IMPORTANT.value: "!",
    TodoStatus.NORMAL.value: " ",
    TodoStatus.IN_PROGRESS.value: "~",
    TodoStatus.COMPLETED.value: "x",
}
INDENT = "    "


def _status_marker(status: str | None) -> str:
    return STATUS_MARKERS.get(status or TodoStatus.NORMAL.value, "?")


def render_todo(todo: Todo, position: int, suffix: str = "") -> list[str]:
    """Render one todo as "N. [marker] content" plus an optional comment line."""
    lines = [f"{INDENT}{position}. [{_status_marker(todo.status)}] {todo.content}{suffix}"]
    if todo.comment:
        lines.append(f"{INDENT}     # {todo.comment}")
    return lines


def render_board(board: Board | None) -> str:
    """Render every column in display order with its todos sorted by status."""
    if board is None:
        return "Loading board..."

    columns = ordered_columns(board)
    if not columns:
        return "No lists yet. Add one with add-column."

    lines: list[str] = []
    for column_position, column in enumerate(columns, start=1):
        if lines:
            lines.append("")
        lines.append(f"[{column_position}] {column.title} ({len(column.todos)})")
        todos = sorted_todos(column)
        if not todos:
            lines.append(f"{INDENT}(empty)")
        for todo_position, todo in enumerate(todos, start=1):
            lines.extend(render_todo(todo, todo_position))
    return "\n".join(lines)


def render_all_todos(board: Board | None) -> str:
    """Render every todo of the board in one list sorted by status."""
    if board is None:
        return "Loading board..."

    entries = all_todos(board)
    lines = [f"All todos ({len(entries)})"]
    if not entries:
        lines.append(f"{INDENT}(empty)")
    for position, entry in enumerate(entries, start=1):
        lines.extend(render_todo(entry.todo, position, suffix=f"  <{entry.column_title}>"))
    return "\n".join(lines)


def resolve_column(board: Board | None, ref: str) -> Column:
    """Find a column by its 1-based display position or by id.

    Raises:
        BoardValidationError: If nothing matches.
    """
    columns = ordered_columns(board)
    ref = ref.strip()
    if ref.isdigit():
        position = int(ref)
        if 1 <= position <= len(columns):
            return columns[position - 1]
    for column in columns:
        if column.id == ref:
            return column
    raise BoardValidationError(f"No list '{ref}' (expected 1..{len(columns)} or a list id)")


def resolve_todo(column: Column, ref: str) -> Todo:
    """Find a todo of a column by its 1-based display position or by id.

    Raises:
        BoardValidationError: If nothing matches.
    """
    todos = sorted_todos(column)
    ref = ref.strip()
    if ref.isdigit():
        position = int(ref)
        if 1 <= position <= len(todos):
            return todos[position - 1]
    for todo in todos:
        if todo.id == ref:
            return todo
    raise BoardValidationError(
        f"No todo '{ref}' in '{column.title}' (expected 1..{len(todos)} or a todo id)"
    )


class BoardView:
    """Renders the store and forwards intents to a Coordinator."""

    def __init__(
        self,
        store: BoardStore,
        coordinator: Coordinator | None = None,
        output: Callable[[str], Any] = click.echo,
        mode: str = COLUMNS_MODE,
    ) -> None:
        """Initialize the view.

        Args:
            store: Store to read and subscribe to.
            coordinator: Receives intents; required only for the intent methods.
            output: Where rendered frames and error messages are written.
            mode: Initial view mode, "columns" or "all".
        """
        self._store = store
        self.coordinator = coordinator
        self._output = output
        self._unsubscribe: Callable[[], None] | None = None
        self._mode = COLUMNS_MODE
        self.set_mode(mode)

    # --- Lifecycle ---

    @property
    def mounted(self) -> bool:
        return self._unsubscribe is not None

    def mount(self) -> None:
        """Start re-rendering on every state change."""
        if self._unsubscribe is None:
            self._unsubscribe = self._store.subscribe(self._on_change)

    def unmount(self) -> None:
        """Stop listening to the store."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    # --- Presentation ---

    @property
    def mode(self) -> str:
        return self._mode

    def set_mode(self, mode: str) -> None:
        """Switch between the per-column and the all-todos view."""
        if mode not in VIEW_MODES:
            expected = ", ".join(VIEW_MODES)
            raise ValueError(f"Unknown view mode '{mode}' (expected one of: {expected})")
        self._mode = mode

    def toggle_mode(self) -> str:
        """Flip the view mode, re-render, and return the new mode."""
        self.set_mode(ALL_MODE if self._mode == COLUMNS_MODE else COLUMNS_MODE)
        self.show()
        return self._mode

    def render(self, board: State = None) -> str:
        """Render the given board (or the store's) in the current mode."""
        if board is None:
            board = self._store.get_state()
        if self._mode == ALL_MODE:
            return render_all_todos(board)
        return render_board(board)

    def show(self) -> None:
        """Write the current frame to the output."""
        self._output(self.render())

    def show_error(self, message: str) -> None:
        """Surface a failed mutation to the user."""
        self._output(f"Error: {message}")

    def _on_change(self, state: State) -> None:
        self._output(self.render(state))

    # --- Intents ---

    async def add_column(self, title: str) -> MutationResult:
        return await self._require_coordinator().add_column(title)

    async def rename_column(self, column_ref: str, title: str) -> MutationResult:
        column = resolve_column(self._store.get_state(), column_ref)
        return await self._require_coordinator().update_column(column.id, title=title)

    async def delete_column(self, column_ref: str) -> MutationResult:
        column = resolve_column(self._store.get_state(), column_ref)
        return await self._require_coordinator().delete_column(column.id)

    async def move_column(self, source_position: int, destination_position: int) -> MutationResult:
        """Move a column using 1-based display positions."""
        return await self._require_coordinator().move_column(
            source_position - 1, destination_position - 1
        )

    async def add_todo(
        self,
        column_ref: str,
        content: str,
        status: str = TodoStatus.NORMAL.value,
        comment: str | None = None,
    ) -> MutationResult:
        column = resolve_column(self._store.get_state(), column_ref)
        return await self._require_coordinator().add_todo(
            column.id, content, status=status, comment=comment
        )

    async def edit_todo(self, column_ref: str, todo_ref: str, **changes: Any) -> MutationResult:
        """Change content, comment and/or status of a todo."""
        column = resolve_column(self._store.get_state(), column_ref)
        todo = resolve_todo(column, todo_ref)
        return await self._require_coordinator().update_todo(column.id, todo.id, **changes)

    async def delete_todo(self, column_ref: str, todo_ref: str) -> MutationResult:
        column = resolve_column(self._store.get_state(), column_ref)
        todo = resolve_todo(column, todo_ref)
        return await self._require_coordinator().delete_todo(column.id, todo.id)

    def _require_coordinator(self) -> Coordinator:
        if self.coordinator is None:
            raise RuntimeError("BoardView has no coordinator attached")
        return self.coordinator
