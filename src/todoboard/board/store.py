"""BoardStore - holds the current board and notifies subscribers."""

from __future__ import annotations

import logging
from collections.abc import Callable
from uuid import uuid4

from todoboard.board.actions import Action
from todoboard.board.reducer import State, reduce

logger = logging.getLogger("todoboard.board")

Listener = Callable[[State], None]
Reducer = Callable[[State, Action], State]


class BoardStore:
    """Explicit container for the board state.

    The board value is only ever replaced, never mutated, so a reader that
    grabbed the state mid-update still sees a consistent board.
    """

    def __init__(self, initial: State = None, reducer: Reducer = reduce) -> None:
        """Initialize the store.

        Args:
            initial: Starting state; None until the first board is loaded.
            reducer: Transition function used by dispatch.
        """
        self._state = initial
        self._reducer = reducer
        self._listeners: dict[str, Listener] = {}

    def get_state(self) -> State:
        """Get the current board, or None if no board has been set."""
        return self._state

    def dispatch(self, action: Action) -> State:
        """Apply an action and notify subscribers if the state changed.

        Args:
            action: The mutation to apply.

        Returns:
            The state after the action.
        """
        previous = self._state
        self._state = self._reducer(previous, action)
        logger.debug("Dispatched %s", type(action).__name__)
        if self._state is not previous:
            self._notify()
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener called with the new state after each change.

        Args:
            listener: Callable receiving the new state.

        Returns:
            A function that removes the listener. Calling it twice is harmless.
        """
        listener_id = str(uuid4())
        self._listeners[listener_id] = listener

        def unsubscribe() -> None:
            self._listeners.pop(listener_id, None)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        """Get the number of active listeners."""
        return len(self._listeners)

    def _notify(self) -> None:
        state = self._state
        for listener_id, listener in list(self._listeners.items()):
            try:
                listener(state)
            except Exception:
                logger.exception("Board listener %s failed", listener_id)
