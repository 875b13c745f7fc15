"""Exceptions raised while talking to the board persistence endpoint."""


class SyncError(Exception):
    """Base exception for sync errors."""


class TransientSyncError(SyncError):
    """Network failure or server error; the same request may succeed later."""


class SaveConflictError(TransientSyncError):
    """A previous write for the same user is still being processed."""


class AuthenticationError(SyncError):
    """Missing, invalid or expired session token, or bad credentials."""


class RequestRejectedError(SyncError):
    """The server refused the request as malformed."""


class RegistrationError(SyncError):
    """Account could not be created (email taken, invalid input)."""
