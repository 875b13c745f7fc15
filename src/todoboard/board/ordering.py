"""Column reordering, independent of whatever produced the move gesture."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from typing import TypeVar

from todoboard.board.exceptions import BoardValidationError
from todoboard.board.models import Column

T = TypeVar("T")


def move(items: Sequence[T], source_index: int, destination_index: int) -> list[T]:
    """Return a new list with the item at source_index moved to destination_index.

    Raises:
        BoardValidationError: If either index is out of range.
    """
    size = len(items)
    if not 0 <= source_index < size:
        raise BoardValidationError(f"Source index {source_index} out of range (0..{size - 1})")
    if not 0 <= destination_index < size:
        raise BoardValidationError(
            f"Destination index {destination_index} out of range (0..{size - 1})"
        )

    result = list(items)
    moved = result.pop(source_index)
    result.insert(destination_index, moved)
    return result


def reindex_columns(columns: Sequence[Column]) -> tuple[Column, ...]:
    """Set every column's order to its 0-based position."""
    return tuple(
        column if column.order == index else replace(column, order=index)
        for index, column in enumerate(columns)
    )


def reorder_columns(
    columns: Sequence[Column], source_index: int, destination_index: int
) -> tuple[Column, ...]:
    """Move one column and recompute contiguous order values."""
    return reindex_columns(move(columns, source_index, destination_index))
