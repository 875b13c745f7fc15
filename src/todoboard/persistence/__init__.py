"""Persistence - server-side storage for accounts, sessions and boards."""

from todoboard.persistence.exceptions import (
    InvalidBoardError,
    InvalidCredentialsError,
    InvalidTokenError,
    PersistenceError,
    UserExistsError,
    UserNotFoundError,
)
from todoboard.persistence.models import ColumnInput, TodoInput, User
from todoboard.persistence.store import DEFAULT_COLUMN_TITLE, PersistenceStore, normalize_email

__all__ = [
    "DEFAULT_COLUMN_TITLE",
    "ColumnInput",
    "InvalidBoardError",
    "InvalidCredentialsError",
    "InvalidTokenError",
    "PersistenceError",
    "PersistenceStore",
    "TodoInput",
    "User",
    "UserExistsError",
    "UserNotFoundError",
    "normalize_email",
]
