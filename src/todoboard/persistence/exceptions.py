"""Custom exceptions for the persistence layer."""


class PersistenceError(Exception):
    """Base exception for persistence errors."""


class UserExistsError(PersistenceError):
    """An account with this email already exists."""


class UserNotFoundError(PersistenceError):
    """User with given ID or email does not exist."""


class InvalidCredentialsError(PersistenceError):
    """Email/password combination is wrong. Deliberately does not say which."""


class InvalidTokenError(PersistenceError):
    """Session token is unknown or was logged out."""


class InvalidBoardError(PersistenceError):
    """Submitted board data cannot be stored (e.g. unknown status)."""
