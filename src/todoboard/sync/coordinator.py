"""Coordinator - optimistic board mutations with server reconciliation.

Every user intent goes through the same sequence:

1. capture what is needed to undo the change,
2. apply the change to the local store right away,
3. send the full resulting column list to the server as one write,
4. on success adopt the board the server returns (this is how temporary ids
   become server ids),
5. on failure undo the change and report a user-facing message.

Mutations are independent async tasks. Nothing serializes them on the client,
so several saves can be in flight at once; each save gets a sequence number
and a response older than the last adopted one is treated as stale.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from collections.abc import Awaitable, Callable, Collection, Mapping
from typing import Any

from todoboard.board import (
    AddColumn,
    AddTodo,
    Board,
    BoardStore,
    BoardValidationError,
    Column,
    DeleteColumn,
    DeleteTodo,
    ReorderColumns,
    SetBoard,
    State,
    Todo,
    TodoStatus,
    UpdateColumn,
    UpdateTodo,
    ordered_columns,
    reorder_columns,
    transition,
)
from todoboard.board.models import utcnow
from todoboard.sync.client import BoardClient
from todoboard.sync.exceptions import SaveConflictError, SyncError, TransientSyncError
from todoboard.sync.models import MutationResult, RetryPolicy

logger = logging.getLogger("todoboard.sync.coordinator")

DEFAULT_COLUMN_TITLE = "New list"
NOT_LOADED_MESSAGE = "Board is not loaded yet"

COLUMN_FIELDS = frozenset({"title", "order"})
TODO_FIELDS = frozenset({"content", "comment", "status"})

Transition = Callable[[State], State]


def generate_temp_id(
    prefix: str,
    existing: Collection[str] = (),
    clock: Callable[[], float] = time.time,
) -> str:
    """Generate a client-side id such as "todo-1712345678901-42".

    Unique enough for one user editing one board; regenerated if the value
    is already on the board.
    """
    while True:
        candidate = f"{prefix}-{int(clock() * 1000)}-{random.randrange(1000)}"
        if candidate not in existing:
            return candidate


class Coordinator:
    """Applies user intents to a BoardStore and persists them through a BoardClient."""

    def __init__(
        self,
        store: BoardStore,
        client: BoardClient,
        retry: RetryPolicy | None = None,
        on_error: Callable[[str], None] | None = None,
        discard_stale_responses: bool = True,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """Initialize the coordinator.

        Args:
            store: The board store shared with the view.
            client: Persistence client.
            retry: Retry policy for transient save failures. Defaults to
                3 attempts one second apart.
            on_error: Receives a user-facing message whenever a mutation is
                rolled back.
            discard_stale_responses: Ignore a save response when a newer save
                was already adopted. When False the last response to arrive
                wins, even if it is older.
            sleep: Awaitable used between retries (for testing).
        """
        self._store = store
        self._client = client
        self._retry = retry if retry is not None else RetryPolicy()
        self._on_error = on_error
        self._discard_stale = discard_stale_responses
        self._sleep = sleep
        self._issued_seq = 0
        self._adopted_seq = 0

    @property
    def store(self) -> BoardStore:
        """The store this coordinator mutates."""
        return self._store

    async def load_board(self) -> Board:
        """Fetch the user's board and make it the local state.

        Raises:
            SyncError: If the board cannot be fetched.
        """
        board = await self._client.fetch_board()
        self._store.dispatch(SetBoard(board))
        # Anything still in flight predates this snapshot
        self._adopted_seq = self._issued_seq
        logger.info("Loaded board %s with %d columns", board.id, len(board.columns))
        return board

    async def apply_and_persist(
        self,
        mutate: Transition,
        revert: Transition,
        failure_message: str = "Could not save changes",
    ) -> MutationResult:
        """Apply a mutation locally, persist the result, reconcile or roll back.

        Args:
            mutate: Pure function producing the new board from the current one.
                Returning the same object marks the intent as a no-op and no
                request is sent.
            revert: Pure function undoing the mutation, applied to whatever
                the state is when the failure arrives.
            failure_message: Prefix of the message reported on failure.

        Returns:
            MutationResult describing the settled state.
        """
        before = self._store.get_state()
        if before is None:
            logger.warning("Mutation ignored: %s", NOT_LOADED_MESSAGE)
            return MutationResult(success=False, board=None, error=NOT_LOADED_MESSAGE)

        after = mutate(before)
        if after is before or after is None:
            logger.debug("Mutation was a no-op; nothing to save")
            return MutationResult(success=True, board=before)

        self._store.dispatch(SetBoard(after))
        self._issued_seq += 1
        seq = self._issued_seq

        try:
            persisted = await self._save(after, seq)
        except SyncError as e:
            return self._roll_back(revert, seq, failure_message, e)

        if seq <= self._adopted_seq:
            logger.warning("Save #%d answered after a newer board was adopted", seq)
            if self._discard_stale:
                return MutationResult(success=True, board=self._store.get_state())
        else:
            self._adopted_seq = seq

        self._store.dispatch(SetBoard(persisted))
        logger.info("Save #%d adopted (%d columns)", seq, len(persisted.columns))
        return MutationResult(success=True, board=persisted)

    # --- Column intents ---

    async def add_column(self, title: str = DEFAULT_COLUMN_TITLE) -> MutationResult:
        """Append a new column at the end of the board."""
        title = _require_text(title, "Column title")
        state = self._store.get_state()
        if state is None:
            return self._not_loaded()

        column = Column(
            id=generate_temp_id("column", state.all_ids()),
            title=title,
            order=len(state.columns),
        )
        return await self.apply_and_persist(
            transition(AddColumn(column)),
            transition(DeleteColumn(column.id)),
            failure_message="Could not add column",
        )

    async def update_column(self, column_id: str, **changes: Any) -> MutationResult:
        """Change a column's title and/or order."""
        changes = _check_fields(changes, COLUMN_FIELDS, "column")
        if "title" in changes:
            changes["title"] = _require_text(changes["title"], "Column title")
        state = self._store.get_state()
        if state is None:
            return self._not_loaded()

        column = state.find_column(column_id)
        prior = {key: getattr(column, key) for key in changes} if column else {}
        return await self.apply_and_persist(
            transition(UpdateColumn(column_id, changes)),
            transition(UpdateColumn(column_id, prior)),
            failure_message="Could not update column",
        )

    async def delete_column(self, column_id: str) -> MutationResult:
        """Remove a column with all its todos."""
        state = self._store.get_state()
        if state is None:
            return self._not_loaded()

        return await self.apply_and_persist(
            transition(DeleteColumn(column_id)),
            _restore(state),
            failure_message="Could not delete column",
        )

    async def move_column(self, source_index: int, destination_index: int) -> MutationResult:
        """Move a column within the display order and renumber all columns.

        Raises:
            BoardValidationError: If an index is out of range.
        """
        state = self._store.get_state()
        if state is None:
            return self._not_loaded()
        if source_index == destination_index:
            return MutationResult(success=True, board=state)

        columns = reorder_columns(ordered_columns(state), source_index, destination_index)
        return await self.apply_and_persist(
            transition(ReorderColumns(columns)),
            _restore(state),
            failure_message="Could not reorder columns",
        )

    # --- Todo intents ---

    async def add_todo(
        self,
        column_id: str,
        content: str,
        status: str = TodoStatus.NORMAL.value,
        comment: str | None = None,
    ) -> MutationResult:
        """Append a todo to a column."""
        content = _require_text(content, "Todo content")
        status = _check_status(status)
        state = self._store.get_state()
        if state is None:
            return self._not_loaded()

        now = utcnow()
        todo = Todo(
            id=generate_temp_id("todo", state.all_ids()),
            content=content,
            status=status,
            comment=_clean_comment(comment),
            created_at=now,
            updated_at=now,
        )
        return await self.apply_and_persist(
            transition(AddTodo(column_id, todo)),
            transition(DeleteTodo(column_id, todo.id)),
            failure_message="Could not add todo",
        )

    async def update_todo(self, column_id: str, todo_id: str, **changes: Any) -> MutationResult:
        """Change a todo's content, comment and/or status."""
        changes = _check_fields(changes, TODO_FIELDS, "todo")
        if "content" in changes:
            changes["content"] = _require_text(changes["content"], "Todo content")
        if "status" in changes:
            changes["status"] = _check_status(changes["status"])
        if "comment" in changes:
            changes["comment"] = _clean_comment(changes["comment"])
        state = self._store.get_state()
        if state is None:
            return self._not_loaded()

        column = state.find_column(column_id)
        todo = column.find_todo(todo_id) if column else None
        if todo is None:
            revert: Transition = _identity
        else:
            prior = {key: getattr(todo, key) for key in changes}
            revert = transition(UpdateTodo(column_id, todo_id, prior, stamped_at=todo.updated_at))
        return await self.apply_and_persist(
            transition(UpdateTodo(column_id, todo_id, changes)),
            revert,
            failure_message="Could not update todo",
        )

    async def delete_todo(self, column_id: str, todo_id: str) -> MutationResult:
        """Remove a todo; on failure it is put back at its old position."""
        state = self._store.get_state()
        if state is None:
            return self._not_loaded()

        revert: Transition = _identity
        column = state.find_column(column_id)
        if column is not None:
            for index, todo in enumerate(column.todos):
                if todo.id == todo_id:
                    revert = transition(AddTodo(column_id, todo, index=index))
                    break
        return await self.apply_and_persist(
            transition(DeleteTodo(column_id, todo_id)),
            revert,
            failure_message="Could not delete todo",
        )

    # --- Internals ---

    async def _save(self, board: Board, seq: int) -> Board:
        attempts = max(1, self._retry.max_attempts)
        attempt = 1
        while True:
            try:
                return await self._client.save_columns(board.columns)
            except TransientSyncError as e:
                if attempt >= attempts:
                    raise
                logger.warning(
                    "Save #%d attempt %d/%d failed: %s; retrying in %.1fs",
                    seq,
                    attempt,
                    attempts,
                    e,
                    self._retry.delay_seconds,
                )
                await self._sleep(self._retry.delay_seconds)
                attempt += 1

    def _roll_back(
        self, revert: Transition, seq: int, failure_message: str, error: SyncError
    ) -> MutationResult:
        reverted = revert(self._store.get_state())
        if reverted is not None:
            self._store.dispatch(SetBoard(reverted))

        message = f"{failure_message}: {error}"
        if isinstance(error, SaveConflictError):
            message += " (another save is still in progress, please try again)"
        logger.warning("Save #%d failed, local change rolled back: %s", seq, error)
        self._report(message)
        return MutationResult(success=False, board=self._store.get_state(), error=message)

    def _not_loaded(self) -> MutationResult:
        logger.warning("Mutation ignored: %s", NOT_LOADED_MESSAGE)
        return MutationResult(success=False, board=None, error=NOT_LOADED_MESSAGE)

    def _report(self, message: str) -> None:
        if self._on_error is not None:
            self._on_error(message)


def _identity(state: State) -> State:
    return state


def _restore(snapshot: Board) -> Transition:
    """Full-snapshot revert: whatever happened since, go back to snapshot."""

    def revert(_state: State) -> State:
        return snapshot

    return revert


def _require_text(value: Any, what: str) -> str:
    text = str(value).strip() if value is not None else ""
    if not text:
        raise BoardValidationError(f"{what} must not be empty")
    return text


def _clean_comment(comment: str | None) -> str | None:
    if comment is None:
        return None
    return comment.strip() or None


def _check_status(status: Any) -> str:
    try:
        return TodoStatus(status).value
    except ValueError as e:
        allowed = ", ".join(s.value for s in TodoStatus)
        raise BoardValidationError(f"Unknown status '{status}' (expected one of: {allowed})") from e


def _check_fields(changes: Mapping[str, Any], allowed: frozenset[str], what: str) -> dict[str, Any]:
    unknown = set(changes) - allowed
    if unknown:
        raise BoardValidationError(f"Cannot change {what} field(s): {', '.join(sorted(unknown))}")
    if not changes:
        raise BoardValidationError(f"No {what} fields to change")
    return dict(changes)
