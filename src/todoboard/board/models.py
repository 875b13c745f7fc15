"""Immutable board data model shared by the client and the persistence layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any


class TodoStatus(StrEnum):
    """Status tag of a todo."""

    IMPORTANT = "important"
    NORMAL = "normal"
    IN_PROGRESS = "inProgress"
    COMPLETED = "completed"


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def _parse_timestamp(value: Any) -> datetime:
    if value is None:
        return utcnow()
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


@dataclass(frozen=True)
class Todo:
    """A single task entry.

    Attributes:
        id: Opaque id; client-generated until the first successful save.
        content: Task text.
        status: One of the TodoStatus values. Kept as a plain string so values
            outside the taxonomy survive a round trip and sort last.
        comment: Optional free-form note.
        created_at: Creation time (UTC).
        updated_at: Last modification time (UTC).
    """

    id: str
    content: str
    status: str = TodoStatus.NORMAL.value
    comment: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON wire shape."""
        return {
            "id": self.id,
            "content": self.content,
            "status": str(self.status),
            "comment": self.comment,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Todo:
        """Create a Todo from its wire shape."""
        return cls(
            id=str(data["id"]),
            content=data.get("content") or "",
            status=data.get("status") or TodoStatus.NORMAL.value,
            comment=data.get("comment"),
            created_at=_parse_timestamp(data.get("created_at")),
            updated_at=_parse_timestamp(data.get("updated_at")),
        )


@dataclass(frozen=True)
class Column:
    """An ordered, named group of todos."""

    id: str
    title: str
    todos: tuple[Todo, ...] = ()
    order: int = 0

    def find_todo(self, todo_id: str) -> Todo | None:
        """Return the todo with the given id, if present."""
        for todo in self.todos:
            if todo.id == todo_id:
                return todo
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON wire shape."""
        return {
            "id": self.id,
            "title": self.title,
            "order": self.order,
            "todos": [todo.to_dict() for todo in self.todos],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Column:
        """Create a Column from its wire shape."""
        return cls(
            id=str(data["id"]),
            title=data.get("title") or "",
            order=int(data.get("order") or 0),
            todos=tuple(Todo.from_dict(t) for t in data.get("todos") or ()),
        )


@dataclass(frozen=True)
class Board:
    """The complete todo structure owned by one user."""

    id: str
    user_id: str
    columns: tuple[Column, ...] = ()

    def find_column(self, column_id: str) -> Column | None:
        """Return the column with the given id, if present."""
        for column in self.columns:
            if column.id == column_id:
                return column
        return None

    def all_ids(self) -> set[str]:
        """Every column and todo id on the board."""
        ids = set()
        for column in self.columns:
            ids.add(column.id)
            ids.update(todo.id for todo in column.todos)
        return ids

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON wire shape."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "columns": [column.to_dict() for column in self.columns],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Board:
        """Create a Board from its wire shape."""
        return cls(
            id=str(data["id"]),
            user_id=str(data["user_id"]),
            columns=tuple(Column.from_dict(c) for c in data.get("columns") or ()),
        )
