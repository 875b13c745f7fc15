"""Optimistic Mutation Coordinator and the HTTP client it persists through."""

from todoboard.sync.client import BoardClient
from todoboard.sync.coordinator import Coordinator, generate_temp_id
from todoboard.sync.exceptions import (
    AuthenticationError,
    RegistrationError,
    RequestRejectedError,
    SaveConflictError,
    SyncError,
    TransientSyncError,
)
from todoboard.sync.models import Identity, MutationResult, RetryPolicy, Session

__all__ = [
    "AuthenticationError",
    "BoardClient",
    "Coordinator",
    "Identity",
    "MutationResult",
    "RegistrationError",
    "RequestRejectedError",
    "RetryPolicy",
    "SaveConflictError",
    "Session",
    "SyncError",
    "TransientSyncError",
    "generate_temp_id",
]
