"""Pydantic models for REST API."""

from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from todoboard.board import TodoStatus
from todoboard.persistence import ColumnInput, TodoInput

T = TypeVar("T")

EMAIL_PATTERN = r"^.+@.+\..+$"
MIN_PASSWORD_LENGTH = 6


class APIResponse(BaseModel, Generic[T]):
    """Standard API response wrapper."""

    data: T | None = None
    error: str | None = None


# Board payloads


class TodoPayload(BaseModel):
    """A todo as sent by the client. Only content is required."""

    id: str | None = None
    content: str = ""
    status: TodoStatus | None = None
    comment: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_input(self) -> TodoInput:
        return TodoInput(
            id=self.id,
            content=self.content,
            status=self.status.value if self.status is not None else None,
            comment=self.comment,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class ColumnPayload(BaseModel):
    """A column as sent by the client."""

    id: str | None = None
    title: str | None = None
    order: int | None = None
    todos: list[TodoPayload] = Field(default_factory=list)

    def to_input(self) -> ColumnInput:
        return ColumnInput(
            id=self.id,
            title=self.title,
            order=self.order,
            todos=[todo.to_input() for todo in self.todos],
        )


class ColumnsPayload(BaseModel):
    """Request body for replacing the whole column list."""

    columns: list[ColumnPayload]


class TodoResponse(BaseModel):
    """Response model for a todo."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    content: str
    status: str
    comment: str | None
    created_at: datetime
    updated_at: datetime


class ColumnResponse(BaseModel):
    """Response model for a column."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    order: int
    todos: list[TodoResponse]


class BoardResponse(BaseModel):
    """Response model for a board."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    columns: list[ColumnResponse]


def board_to_response(board: Any) -> BoardResponse:
    """Convert a Board to BoardResponse."""
    return BoardResponse.model_validate(board)


# Auth models


class RegisterRequest(BaseModel):
    """Request model for creating an account."""

    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=255)


class LoginRequest(BaseModel):
    """Request model for logging in."""

    email: str = Field(..., max_length=255)
    password: str = Field(..., max_length=255)


class UserResponse(BaseModel):
    """Response model for an account."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str


class LoginResponse(BaseModel):
    """Response model for a successful login."""

    token: str
    user: UserResponse
