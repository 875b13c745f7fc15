"""SQLAlchemy models for users, login sessions and boards."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime  # noqa: TC003 - used at runtime for SQLAlchemy
from typing import Any

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def generate_uuid() -> str:
    """Generate a new UUID string."""
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class User(Base):
    """Registered account."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )

    sessions: Mapped[list[AuthSession]] = relationship(
        "AuthSession", back_populates="user", cascade="all, delete-orphan"
    )

    def __init__(
        self, email: str, password_hash: str, id: str | None = None, **kwargs: Any
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.email = email
        self.password_hash = password_hash

    def __repr__(self) -> str:
        return f"<User(id={self.id!r}, email={self.email!r})>"


class AuthSession(Base):
    """Bearer token issued at login."""

    __tablename__ = "sessions"

    token: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )

    user: Mapped[User] = relationship("User", back_populates="sessions")

    def __repr__(self) -> str:
        return f"<AuthSession(user_id={self.user_id!r})>"


class BoardRecord(Base):
    """One board per user."""

    __tablename__ = "boards"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False, unique=True
    )

    columns: Mapped[list[ColumnRecord]] = relationship(
        "ColumnRecord",
        back_populates="board",
        cascade="all, delete-orphan",
        order_by="ColumnRecord.position",
    )

    def __init__(self, user_id: str, id: str | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.user_id = user_id

    def __repr__(self) -> str:
        return f"<BoardRecord(id={self.id!r}, user_id={self.user_id!r})>"


class ColumnRecord(Base):
    """A board column. position keeps the sequence the client sent."""

    __tablename__ = "board_columns"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    board_id: Mapped[str] = mapped_column(String(36), ForeignKey("boards.id"), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    order: Mapped[int] = mapped_column("sort_order", Integer, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    board: Mapped[BoardRecord] = relationship("BoardRecord", back_populates="columns")
    todos: Mapped[list[TodoRecord]] = relationship(
        "TodoRecord",
        back_populates="column",
        cascade="all, delete-orphan",
        order_by="TodoRecord.position",
    )

    def __repr__(self) -> str:
        return f"<ColumnRecord(id={self.id!r}, title={self.title!r}, order={self.order!r})>"


class TodoRecord(Base):
    """A todo inside a column."""

    __tablename__ = "todos"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    column_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("board_columns.id"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    column: Mapped[ColumnRecord] = relationship("ColumnRecord", back_populates="todos")

    def __repr__(self) -> str:
        return f"<TodoRecord(id={self.id!r}, status={self.status!r})>"


@dataclass
class TodoInput:
    """A todo as submitted by a client; any field may be missing."""

    content: str
    id: str | None = None
    status: str | None = None
    comment: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class ColumnInput:
    """A column as submitted by a client."""

    title: str | None = None
    id: str | None = None
    order: int | None = None
    todos: list[TodoInput] = field(default_factory=list)
