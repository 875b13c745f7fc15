"""Custom exceptions for the API layer."""


class WriteInProgressError(Exception):
    """Another board write for the same user has not finished yet."""
