"""Data models for the sync package."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from todoboard.board import Board


@dataclass(frozen=True)
class Identity:
    """The authenticated user a board belongs to."""

    user_id: str
    email: str


@dataclass(frozen=True)
class Session:
    """A logged-in client session.

    api_url is the server that issued the token; None when unknown.
    """

    token: str
    identity: Identity
    api_url: str | None = None


@dataclass
class MutationResult:
    """Outcome of one optimistic mutation.

    Attributes:
        success: Whether the change was persisted (or was a local no-op).
        board: The local board after the mutation settled.
        error: User-facing message when success is False.
    """

    success: bool
    board: Board | None
    error: str | None = None


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry for transient save failures.

    Attributes:
        max_attempts: Total tries including the first one.
        delay_seconds: Fixed wait between tries.
    """

    max_attempts: int = 3
    delay_seconds: float = 1.0

    @classmethod
    def none(cls) -> RetryPolicy:
        """A policy that never retries."""
        return cls(max_attempts=1, delay_seconds=0.0)
