"""FastAPI dependencies for dependency injection."""

from __future__ import annotations

import logging
import threading
from collections.abc import Generator, Iterator  # noqa: TC003
from contextlib import contextmanager
from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from todoboard.api.exceptions import WriteInProgressError
from todoboard.persistence import (
    DEFAULT_COLUMN_TITLE,
    InvalidTokenError,
    PersistenceStore,
    User,
)

logger = logging.getLogger("todoboard.api")

# Global PersistenceStore instance (initialized on app startup)
_store: PersistenceStore | None = None


def init_persistence_store(
    db_path: str = "todoboard.db", default_column_title: str = DEFAULT_COLUMN_TITLE
) -> PersistenceStore:
    """Initialize the global PersistenceStore instance."""
    global _store  # noqa: PLW0603
    _store = PersistenceStore(db_path, default_column_title=default_column_title)
    return _store


def close_persistence_store() -> None:
    """Close the global PersistenceStore instance."""
    global _store  # noqa: PLW0603
    if _store is not None:
        _store.close()
        _store = None


def get_persistence_store() -> Generator[PersistenceStore, None, None]:
    """Dependency that provides the PersistenceStore instance."""
    if _store is None:
        raise RuntimeError("PersistenceStore not initialized. Call init_persistence_store() first.")
    yield _store


# Type alias for dependency injection
PersistenceStoreDep = Annotated[PersistenceStore, Depends(get_persistence_store)]


class WriteGuard:
    """Admits one board write per user at a time.

    Board writes replace the whole column list, so a second write arriving
    while the first is still running is refused instead of queued.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._active: set[str] = set()

    @contextmanager
    def hold(self, user_id: str) -> Iterator[None]:
        """Mark a write for user_id as running for the duration of the block.

        Raises:
            WriteInProgressError: If a write for this user is already running.
        """
        with self._lock:
            if user_id in self._active:
                logger.warning("Rejected concurrent board write for user %s", user_id)
                raise WriteInProgressError("A save is already in progress for this board")
            self._active.add(user_id)
        try:
            yield
        finally:
            with self._lock:
                self._active.discard(user_id)

    def is_busy(self, user_id: str) -> bool:
        """Whether a write for user_id is running."""
        with self._lock:
            return user_id in self._active


_write_guard = WriteGuard()


def get_write_guard() -> WriteGuard:
    """Dependency that provides the process-wide WriteGuard."""
    return _write_guard


WriteGuardDep = Annotated[WriteGuard, Depends(get_write_guard)]

_bearer = HTTPBearer(auto_error=False)


def get_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer)],
) -> str:
    """Dependency that extracts the bearer token.

    Raises:
        InvalidTokenError: If no bearer token was sent.
    """
    if credentials is None or not credentials.credentials:
        raise InvalidTokenError("Not authenticated")
    return credentials.credentials


TokenDep = Annotated[str, Depends(get_token)]


def get_current_user(token: TokenDep, store: PersistenceStoreDep) -> User:
    """Dependency that resolves the bearer token to its user."""
    return store.get_user_by_token(token)


CurrentUserDep = Annotated[User, Depends(get_current_user)]
