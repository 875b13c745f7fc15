"""Custom exceptions for the board state."""


class BoardError(Exception):
    """Base exception for board errors."""


class BoardValidationError(BoardError, ValueError):
    """User input rejected before any state change (empty title, bad index, ...)."""
