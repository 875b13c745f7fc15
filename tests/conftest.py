"""Shared pytest fixtures and configuration."""

from datetime import UTC, datetime

import pytest

from todoboard.board import Board, Column, Todo


# Register custom markers
def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: fast tests with no external dependencies")
    config.addinivalue_line("markers", "integration: component interaction tests")


# Shared fixtures

FIXED_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


def _todo(todo_id: str, content: str | None = None, status: str = "normal", **kwargs) -> Todo:
    """Build a Todo with fixed timestamps."""
    return Todo(
        id=todo_id,
        content=content if content is not None else f"Task {todo_id}",
        status=status,
        created_at=kwargs.pop("created_at", FIXED_TIME),
        updated_at=kwargs.pop("updated_at", FIXED_TIME),
        **kwargs,
    )


@pytest.fixture
def board() -> Board:
    """A two-column board: "Todo" with two todos, "Done" with one."""
    return Board(
        id="board-1",
        user_id="user-1",
        columns=(
            Column(
                id="col-a",
                title="Todo",
                order=0,
                todos=(
                    _todo("t1", "Buy milk"),
                    _todo("t2", "File taxes", status="important", comment="by Friday"),
                ),
            ),
            Column(
                id="col-b",
                title="Done",
                order=1,
                todos=(_todo("t3", "Book flights", status="completed"),),
            ),
        ),
    )
