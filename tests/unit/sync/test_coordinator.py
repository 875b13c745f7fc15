"""Unit tests for the optimistic mutation Coordinator."""

import asyncio
from dataclasses import replace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
import pytest_asyncio

from todoboard.board import (
    Board,
    BoardStore,
    BoardValidationError,
    Column,
    UpdateColumn,
)
from todoboard.sync import (
    BoardClient,
    Coordinator,
    RequestRejectedError,
    RetryPolicy,
    SaveConflictError,
    TransientSyncError,
    generate_temp_id,
)
from todoboard.sync.coordinator import NOT_LOADED_MESSAGE


def server_id(value: str) -> str:
    """The fake server's id for a client id: temp ids get replaced."""
    if value.startswith(("todo-", "column-")):
        return f"srv-{value}"
    return value


class FakeClient:
    """Stands in for BoardClient.

    By default saves are answered immediately. With hold=True every save
    waits on a future the test resolves via accept() or fail().
    """

    def __init__(self, board: Board) -> None:
        self.board = board
        self.saved: list[tuple[Column, ...]] = []
        self.failures: list[Exception] = []
        self.hold = False
        self.pending: list[tuple[tuple[Column, ...], asyncio.Future]] = []

    async def fetch_board(self) -> Board:
        return self.board

    async def save_columns(self, columns) -> Board:
        columns = tuple(columns)
        self.saved.append(columns)
        if self.hold:
            future = asyncio.get_running_loop().create_future()
            self.pending.append((columns, future))
            return await future
        if self.failures:
            raise self.failures.pop(0)
        return self.store(columns)

    def store(self, columns) -> Board:
        self.board = replace(
            self.board,
            columns=tuple(
                replace(
                    column,
                    id=server_id(column.id),
                    todos=tuple(replace(t, id=server_id(t.id)) for t in column.todos),
                )
                for column in columns
            ),
        )
        return self.board

    def accept(self, index: int = 0) -> Board:
        columns, future = self.pending.pop(index)
        board = self.store(columns)
        future.set_result(board)
        return board

    def fail(self, error: Exception, index: int = 0) -> None:
        _, future = self.pending.pop(index)
        future.set_exception(error)


async def settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.fixture
def client(board: Board) -> FakeClient:
    return FakeClient(board)


@pytest.fixture
def errors() -> list[str]:
    return []


@pytest.fixture
def sleep() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def store() -> BoardStore:
    return BoardStore()


@pytest.fixture
def coordinator(
    store: BoardStore, client: FakeClient, errors: list[str], sleep: AsyncMock
) -> Coordinator:
    return Coordinator(store, client, on_error=errors.append, sleep=sleep)


@pytest_asyncio.fixture
async def loaded(coordinator: Coordinator) -> Coordinator:
    await coordinator.load_board()
    return coordinator


@pytest.mark.unit
class TestGenerateTempId:
    """Tests for generate_temp_id."""

    def test_format(self) -> None:
        temp_id = generate_temp_id("todo", clock=lambda: 1712345678.5)

        prefix, millis, suffix = temp_id.split("-")
        assert prefix == "todo"
        assert millis == "1712345678500"
        assert 0 <= int(suffix) < 1000

    def test_avoids_existing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        values = iter([1, 1, 2])
        monkeypatch.setattr("todoboard.sync.coordinator.random.randrange", lambda n: next(values))

        temp_id = generate_temp_id("column", existing={"column-5000-1"}, clock=lambda: 5.0)

        assert temp_id == "column-5000-2"


@pytest.mark.unit
class TestLoadBoard:
    """Tests for load_board."""

    @pytest.mark.asyncio
    async def test_sets_state(self, coordinator: Coordinator, board: Board) -> None:
        result = await coordinator.load_board()

        assert result == board
        assert coordinator.store.get_state() == board

    @pytest.mark.asyncio
    async def test_mutation_before_load(
        self, coordinator: Coordinator, client: FakeClient
    ) -> None:
        result = await coordinator.add_column("Later")

        assert result.success is False
        assert result.error == NOT_LOADED_MESSAGE
        assert client.saved == []


@pytest.mark.unit
class TestOptimisticApply:
    """The local change is visible before the server answers."""

    @pytest.mark.asyncio
    async def test_add_todo_visible_while_saving(
        self, loaded: Coordinator, client: FakeClient, store: BoardStore
    ) -> None:
        client.hold = True

        task = asyncio.create_task(loaded.add_todo("col-b", "Pack bags"))
        await settle()

        contents = [t.content for t in store.get_state().find_column("col-b").todos]
        assert contents == ["Book flights", "Pack bags"]
        assert len(client.pending) == 1

        client.accept()
        result = await task
        assert result.success is True

    @pytest.mark.asyncio
    async def test_whole_column_list_is_sent(
        self, loaded: Coordinator, client: FakeClient, board: Board
    ) -> None:
        await loaded.update_column("col-b", title="Finished")

        sent = client.saved[-1]
        assert [c.id for c in sent] == ["col-a", "col-b"]
        assert sent[0] == board.columns[0]
        assert sent[1].title == "Finished"


@pytest.mark.unit
class TestReconcile:
    """On success the server's board becomes the local state."""

    @pytest.mark.asyncio
    async def test_temp_id_replaced_by_server_id(
        self,
        loaded: Coordinator,
        store: BoardStore,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr(
            "todoboard.sync.coordinator.generate_temp_id", lambda prefix, existing=(): "todo-173-42"
        )

        result = await loaded.add_todo("col-a", "Call the bank")

        ids = store.get_state().all_ids()
        assert "srv-todo-173-42" in ids
        assert "todo-173-42" not in ids
        assert result.board is store.get_state()

    @pytest.mark.asyncio
    async def test_adopts_server_board_wholesale(
        self, loaded: Coordinator, client: FakeClient, store: BoardStore
    ) -> None:
        result = await loaded.add_column("Someday")

        assert store.get_state() is client.board
        assert store.get_state().columns[-1].title == "Someday"
        assert store.get_state().columns[-1].order == 2
        assert result.success is True
        assert result.error is None


@pytest.mark.unit
class TestRollback:
    """On failure the local change is undone and reported."""

    @pytest.mark.asyncio
    async def test_add_todo_failure_restores_board(
        self,
        loaded: Coordinator,
        client: FakeClient,
        store: BoardStore,
        board: Board,
        errors: list[str],
    ) -> None:
        client.failures = [RequestRejectedError("nope")]

        result = await loaded.add_todo("col-a", "Doomed")

        assert store.get_state() == board
        assert result.success is False
        assert result.error.startswith("Could not add todo")
        assert errors == [result.error]

    @pytest.mark.asyncio
    async def test_add_column_revert_keeps_unrelated_changes(
        self, loaded: Coordinator, client: FakeClient, store: BoardStore
    ) -> None:
        client.hold = True
        task = asyncio.create_task(loaded.add_column("Temporary"))
        await settle()

        store.dispatch(UpdateColumn("col-a", {"title": "Inbox"}))
        client.fail(RequestRejectedError("bad"))
        result = await task

        state = store.get_state()
        assert [c.title for c in state.columns] == ["Inbox", "Done"]
        assert result.success is False

    @pytest.mark.asyncio
    async def test_update_column_failure_restores_prior_fields(
        self, loaded: Coordinator, client: FakeClient, store: BoardStore, board: Board
    ) -> None:
        client.failures = [RequestRejectedError("nope")]

        await loaded.update_column("col-a", title="Renamed", order=9)

        assert store.get_state() == board

    @pytest.mark.asyncio
    async def test_update_todo_failure_restores_fields_and_stamp(
        self, loaded: Coordinator, client: FakeClient, store: BoardStore, board: Board
    ) -> None:
        client.failures = [RequestRejectedError("nope")]

        await loaded.update_todo("col-a", "t2", status="completed", comment="done")

        assert store.get_state() == board
        todo = store.get_state().find_column("col-a").find_todo("t2")
        assert todo.updated_at == board.columns[0].todos[1].updated_at

    @pytest.mark.asyncio
    async def test_delete_todo_failure_reinserts_at_index(
        self, loaded: Coordinator, client: FakeClient, store: BoardStore, board: Board
    ) -> None:
        client.failures = [RequestRejectedError("nope")]

        await loaded.delete_todo("col-a", "t1")

        assert [t.id for t in store.get_state().columns[0].todos] == ["t1", "t2"]
        assert store.get_state() == board

    @pytest.mark.asyncio
    async def test_delete_column_failure_restores_snapshot(
        self, loaded: Coordinator, client: FakeClient, store: BoardStore, board: Board
    ) -> None:
        client.failures = [RequestRejectedError("nope")]

        result = await loaded.delete_column("col-a")

        assert store.get_state() == board
        assert "Could not delete column" in result.error

    @pytest.mark.asyncio
    async def test_move_column_failure_restores_snapshot(
        self, loaded: Coordinator, client: FakeClient, store: BoardStore, board: Board
    ) -> None:
        client.failures = [RequestRejectedError("nope")]

        await loaded.move_column(1, 0)

        assert store.get_state() == board

    @pytest.mark.asyncio
    async def test_conflict_message_asks_to_retry(
        self, loaded: Coordinator, client: FakeClient
    ) -> None:
        client.failures = [SaveConflictError("busy")] * 3

        result = await loaded.add_column("Later")

        assert "another save is still in progress" in result.error

    @pytest.mark.asyncio
    async def test_without_error_callback(
        self, store: BoardStore, client: FakeClient, board: Board
    ) -> None:
        coordinator = Coordinator(store, client, retry=RetryPolicy.none())
        await coordinator.load_board()
        client.failures = [TransientSyncError("down")]

        result = await coordinator.add_column("Later")

        assert result.success is False
        assert store.get_state() == board

    @pytest.mark.asyncio
    async def test_reply_without_board_rolls_back(
        self, store: BoardStore, board: Board, errors: list[str]
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                return httpx.Response(200, json={"data": board.to_dict(), "error": None})
            return httpx.Response(200, json={"data": None, "error": None})

        async with BoardClient(
            "http://test", token="tok", transport=httpx.MockTransport(handler)
        ) as client:
            coordinator = Coordinator(
                store, client, retry=RetryPolicy.none(), on_error=errors.append
            )
            await coordinator.load_board()

            result = await coordinator.add_todo("col-a", "hello")

        assert result.success is False
        assert store.get_state() == board
        assert errors == [result.error]
        assert "Malformed response" in result.error


@pytest.mark.unit
class TestMoveColumn:
    """Tests for move_column."""

    @pytest.mark.asyncio
    async def test_renumbers_contiguously(self, store: BoardStore, client: FakeClient) -> None:
        three = Board(
            id="b",
            user_id="u",
            columns=(
                Column(id="A", title="A", order=0),
                Column(id="B", title="B", order=1),
                Column(id="C", title="C", order=2),
            ),
        )
        client.board = three
        coordinator = Coordinator(store, client)
        await coordinator.load_board()

        await coordinator.move_column(2, 0)

        state = store.get_state()
        assert [(c.id, c.order) for c in state.columns] == [("C", 0), ("A", 1), ("B", 2)]
        assert [c.title for c in state.columns] == ["C", "A", "B"]

    @pytest.mark.asyncio
    async def test_uses_display_order(self, store: BoardStore, client: FakeClient) -> None:
        client.board = Board(
            id="b",
            user_id="u",
            columns=(
                Column(id="late", title="Late", order=5),
                Column(id="early", title="Early", order=1),
            ),
        )
        coordinator = Coordinator(store, client)
        await coordinator.load_board()

        await coordinator.move_column(0, 1)

        state = store.get_state()
        assert [(c.id, c.order) for c in state.columns] == [("late", 0), ("early", 1)]

    @pytest.mark.asyncio
    async def test_same_position_is_no_op(self, loaded: Coordinator, client: FakeClient) -> None:
        result = await loaded.move_column(1, 1)

        assert result.success is True
        assert client.saved == []

    @pytest.mark.asyncio
    async def test_out_of_range(self, loaded: Coordinator, client: FakeClient) -> None:
        with pytest.raises(BoardValidationError):
            await loaded.move_column(0, 5)
        assert client.saved == []


@pytest.mark.unit
class TestValidationAndNoOps:
    """Rejected intents never reach the store or the network."""

    @pytest.mark.asyncio
    async def test_empty_todo_content(self, loaded: Coordinator, client: FakeClient) -> None:
        with pytest.raises(BoardValidationError, match="must not be empty"):
            await loaded.add_todo("col-a", "   ")
        assert client.saved == []

    @pytest.mark.asyncio
    async def test_empty_column_title(self, loaded: Coordinator, client: FakeClient) -> None:
        with pytest.raises(BoardValidationError):
            await loaded.update_column("col-a", title="")
        assert client.saved == []

    @pytest.mark.asyncio
    async def test_unknown_status(self, loaded: Coordinator) -> None:
        with pytest.raises(BoardValidationError, match="Unknown status"):
            await loaded.add_todo("col-a", "x", status="urgent")

    @pytest.mark.asyncio
    async def test_unknown_field(self, loaded: Coordinator) -> None:
        with pytest.raises(BoardValidationError, match="Cannot change todo"):
            await loaded.update_todo("col-a", "t1", id="other")

    @pytest.mark.asyncio
    async def test_no_fields(self, loaded: Coordinator) -> None:
        with pytest.raises(BoardValidationError, match="No column fields"):
            await loaded.update_column("col-a")

    @pytest.mark.asyncio
    async def test_missing_todo_is_local_no_op(
        self, loaded: Coordinator, client: FakeClient, board: Board
    ) -> None:
        result = await loaded.delete_todo("col-a", "missing")

        assert result.success is True
        assert result.board == board
        assert client.saved == []

    @pytest.mark.asyncio
    async def test_missing_column_is_local_no_op(
        self, loaded: Coordinator, client: FakeClient
    ) -> None:
        await loaded.add_todo("missing", "Orphan")
        await loaded.update_column("missing", title="x")
        await loaded.delete_column("missing")

        assert client.saved == []

    @pytest.mark.asyncio
    async def test_comment_is_trimmed_and_cleared(
        self, loaded: Coordinator, store: BoardStore
    ) -> None:
        await loaded.update_todo("col-a", "t2", comment="   ")

        assert store.get_state().find_column("col-a").find_todo("t2").comment is None


@pytest.mark.unit
class TestRetry:
    """Tests for transient-failure retries."""

    @pytest.mark.asyncio
    async def test_transient_failures_retried(
        self, loaded: Coordinator, client: FakeClient, sleep: AsyncMock
    ) -> None:
        client.failures = [TransientSyncError("down"), SaveConflictError("busy")]

        result = await loaded.add_column("Later")

        assert result.success is True
        assert len(client.saved) == 3
        assert sleep.await_count == 2
        sleep.assert_awaited_with(1.0)

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(
        self, loaded: Coordinator, client: FakeClient, board: Board, store: BoardStore
    ) -> None:
        client.failures = [TransientSyncError("down")] * 3

        result = await loaded.add_column("Later")

        assert result.success is False
        assert len(client.saved) == 3
        assert store.get_state() == board

    @pytest.mark.asyncio
    async def test_rejections_not_retried(
        self, loaded: Coordinator, client: FakeClient, sleep: AsyncMock
    ) -> None:
        client.failures = [RequestRejectedError("bad payload")]

        await loaded.add_column("Later")

        assert len(client.saved) == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_retry_disabled(self, store: BoardStore, client: FakeClient) -> None:
        coordinator = Coordinator(store, client, retry=RetryPolicy.none(), sleep=AsyncMock())
        await coordinator.load_board()
        client.failures = [TransientSyncError("down")]

        await coordinator.add_column("Later")

        assert len(client.saved) == 1


@pytest.mark.unit
class TestConcurrentSaves:
    """Tests for overlapping saves."""

    @pytest.mark.asyncio
    async def test_mutations_do_not_wait_for_each_other(
        self, loaded: Coordinator, client: FakeClient, store: BoardStore
    ) -> None:
        client.hold = True

        first = asyncio.create_task(loaded.add_todo("col-a", "One"))
        second = asyncio.create_task(loaded.add_todo("col-a", "Two"))
        await settle()

        assert len(client.pending) == 2
        # The second snapshot already contains the first optimistic todo
        assert [t.content for t in client.pending[1][0][0].todos][-2:] == ["One", "Two"]

        client.accept(0)
        client.accept(0)
        await asyncio.gather(first, second)
        assert [t.content for t in store.get_state().columns[0].todos][-2:] == ["One", "Two"]

    @pytest.mark.asyncio
    async def test_stale_response_discarded(
        self, loaded: Coordinator, client: FakeClient, store: BoardStore
    ) -> None:
        client.hold = True
        first = asyncio.create_task(loaded.add_column("First"))
        await settle()
        second = asyncio.create_task(loaded.add_column("Second"))
        await settle()

        newest = client.accept(1)
        await second
        client.accept(0)
        result = await first

        assert result.success is True
        assert store.get_state() is newest
        assert [c.title for c in store.get_state().columns][-2:] == ["First", "Second"]

    @pytest.mark.asyncio
    async def test_last_response_wins_when_not_discarding(
        self, store: BoardStore, client: FakeClient
    ) -> None:
        coordinator = Coordinator(store, client, discard_stale_responses=False)
        await coordinator.load_board()
        client.hold = True
        first = asyncio.create_task(coordinator.add_column("First"))
        await settle()
        second = asyncio.create_task(coordinator.add_column("Second"))
        await settle()

        client.accept(1)
        await second
        oldest = client.accept(0)
        await first

        assert store.get_state() is oldest
        assert [c.title for c in store.get_state().columns][-1] == "First"

    @pytest.mark.asyncio
    async def test_reload_makes_in_flight_saves_stale(
        self, loaded: Coordinator, client: FakeClient, store: BoardStore, board: Board
    ) -> None:
        client.hold = True
        pending = asyncio.create_task(loaded.add_column("Late"))
        await settle()

        fresh = replace(board, columns=board.columns[:1])
        client.board = fresh
        await loaded.load_board()
        client.pending[0][1].set_result(replace(board, columns=()))
        client.pending.clear()
        await pending

        assert store.get_state() is fresh

    @pytest.mark.asyncio
    async def test_listeners_see_optimistic_and_settled_states(
        self, loaded: Coordinator, store: BoardStore
    ) -> None:
        listener = MagicMock()
        store.subscribe(listener)

        await loaded.add_column("Later")

        assert listener.call_count == 2
        optimistic = listener.call_args_list[0].args[0]
        settled = listener.call_args_list[1].args[0]
        assert optimistic.columns[-1].id.startswith("column-")
        assert settled.columns[-1].id.startswith("srv-column-")


@pytest.mark.unit
class TestApplyAndPersist:
    """Tests for the generic apply_and_persist entry point."""

    @pytest.mark.asyncio
    async def test_custom_transition(
        self, loaded: Coordinator, client: FakeClient, store: BoardStore
    ) -> None:
        def clear_todos(state):
            return replace(state, columns=tuple(replace(c, todos=()) for c in state.columns))

        result = await loaded.apply_and_persist(clear_todos, lambda state: state)

        assert result.success is True
        assert all(c.todos == () for c in store.get_state().columns)

    @pytest.mark.asyncio
    async def test_identity_transition_skips_save(
        self, loaded: Coordinator, client: FakeClient
    ) -> None:
        result = await loaded.apply_and_persist(lambda s: s, lambda s: s)

        assert result.success is True
        assert client.saved == []

    @pytest.mark.asyncio
    async def test_failure_message_prefix(
        self, loaded: Coordinator, client: FakeClient, errors: list[str]
    ) -> None:
        client.failures = [RequestRejectedError("Request rejected (400): bad")]

        await loaded.apply_and_persist(
            lambda s: replace(s, columns=()),
            lambda s: s,
            failure_message="Could not clear board",
        )

        assert errors == ["Could not clear board: Request rejected (400): bad"]
