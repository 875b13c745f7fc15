"""PersistenceStore - users, login sessions and per-user boards."""

from __future__ import annotations

import logging
import secrets
import uuid
from collections.abc import Sequence
from datetime import UTC, datetime

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from todoboard.board import Board, Column, Todo, TodoStatus
from todoboard.persistence.database import Database
from todoboard.persistence.exceptions import (
    InvalidBoardError,
    InvalidCredentialsError,
    InvalidTokenError,
    PersistenceError,
    UserExistsError,
    UserNotFoundError,
)
from todoboard.persistence.models import (
    AuthSession,
    BoardRecord,
    ColumnInput,
    ColumnRecord,
    TodoInput,
    TodoRecord,
    User,
    generate_uuid,
)
from todoboard.persistence.passwords import hash_password, verify_password

logger = logging.getLogger("todoboard.persistence")

DEFAULT_COLUMN_TITLE = "Todo"
UNTITLED_COLUMN = "Untitled list"


def normalize_email(email: str) -> str:
    """Emails are compared trimmed and case-insensitively."""
    return email.strip().lower()


class PersistenceStore:
    """Main API for the server-side storage.

    Boards are written as a whole: replace_columns swaps the stored column
    list for the submitted one inside a single transaction.
    """

    def __init__(
        self, db_path: str = "todoboard.db", default_column_title: str = DEFAULT_COLUMN_TITLE
    ) -> None:
        """Initialize the store, creating the database and tables if needed.

        Args:
            db_path: Path to SQLite database file
            default_column_title: Title of the single column a new board gets
        """
        self._db = Database(db_path)
        self._db.create_tables()
        self.default_column_title = default_column_title

    def close(self) -> None:
        """Close the database connection."""
        self._db.close()

    # --- Users ---

    def create_user(self, email: str, password: str) -> User:
        """Register a new account.

        Raises:
            UserExistsError: If the (normalized) email is already registered
        """
        email = normalize_email(email)
        session = self._db.get_session()
        try:
            user = User(email=email, password_hash=hash_password(password))
            session.add(user)
            session.commit()
            session.refresh(user)
            logger.info("Registered user %s", user.id)
            return user
        except IntegrityError as e:
            session.rollback()
            if "UNIQUE constraint failed" in str(e) or "users.email" in str(e):
                raise UserExistsError(f"User with email '{email}' already exists") from e
            raise
        finally:
            session.close()

    def get_user(self, user_id: str) -> User:
        """Get user by ID.

        Raises:
            UserNotFoundError: If user doesn't exist
        """
        session = self._db.get_session()
        try:
            user = session.get(User, user_id)
            if user is None:
                raise UserNotFoundError(f"User with id '{user_id}' not found")
            return user
        finally:
            session.close()

    def get_user_by_email(self, email: str) -> User:
        """Get user by email.

        Raises:
            UserNotFoundError: If no account uses this email
        """
        email = normalize_email(email)
        session = self._db.get_session()
        try:
            user = session.execute(select(User).where(User.email == email)).scalar_one_or_none()
            if user is None:
                raise UserNotFoundError(f"User with email '{email}' not found")
            return user
        finally:
            session.close()

    def authenticate(self, email: str, password: str) -> User:
        """Check credentials.

        Raises:
            InvalidCredentialsError: If the email is unknown or the password is wrong
        """
        try:
            user = self.get_user_by_email(email)
        except UserNotFoundError as e:
            raise InvalidCredentialsError("Invalid email or password") from e
        if not verify_password(password, user.password_hash):
            raise InvalidCredentialsError("Invalid email or password")
        return user

    # --- Login sessions ---

    def create_session(self, user_id: str) -> str:
        """Issue a new bearer token for a user.

        Raises:
            UserNotFoundError: If user doesn't exist
        """
        self.get_user(user_id)
        token = secrets.token_urlsafe(32)
        session = self._db.get_session()
        try:
            session.add(AuthSession(token=token, user_id=user_id))
            session.commit()
            return token
        finally:
            session.close()

    def get_user_by_token(self, token: str) -> User:
        """Resolve a bearer token to its user.

        Raises:
            InvalidTokenError: If the token is unknown or logged out
        """
        session = self._db.get_session()
        try:
            stmt = select(User).join(AuthSession).where(AuthSession.token == token)
            user = session.execute(stmt).scalar_one_or_none()
            if user is None:
                raise InvalidTokenError("Invalid or expired session")
            return user
        finally:
            session.close()

    def delete_session(self, token: str) -> None:
        """Forget a token. Unknown tokens are ignored."""
        session = self._db.get_session()
        try:
            session.execute(delete(AuthSession).where(AuthSession.token == token))
            session.commit()
        finally:
            session.close()

    # --- Boards ---

    def get_board(self, user_id: str) -> Board:
        """Get a user's board, creating it with one default column on first access."""
        board_id = self._ensure_board(user_id)
        session = self._db.get_session()
        try:
            return self._load_board(session, board_id, user_id)
        finally:
            session.close()

    def replace_columns(self, user_id: str, columns: Sequence[ColumnInput]) -> Board:
        """Replace a user's whole column list.

        Ids already stored on this board are kept. Any other id (a client's
        temporary id) is swapped for a server id derived from it, so
        re-sending the same payload yields the same ids. Blank titles become
        "Untitled list", missing orders 0, missing statuses "normal",
        missing comments "" and missing timestamps the current time.

        Returns:
            The board as stored

        Raises:
            InvalidBoardError: If a todo carries an unknown status
        """
        for column in columns:
            for todo in column.todos:
                _check_status(todo.status)

        board_id = self._ensure_board(user_id)
        namespace = uuid.UUID(board_id)
        now = _utcnow()

        session = self._db.get_session()
        try:
            column_ids = set(
                session.execute(
                    select(ColumnRecord.id).where(ColumnRecord.board_id == board_id)
                ).scalars()
            )
            todo_ids: set[str] = set()
            if column_ids:
                todo_ids = set(
                    session.execute(
                        select(TodoRecord.id).where(TodoRecord.column_id.in_(column_ids))
                    ).scalars()
                )
                session.execute(delete(TodoRecord).where(TodoRecord.column_id.in_(column_ids)))
                session.execute(delete(ColumnRecord).where(ColumnRecord.board_id == board_id))

            known = column_ids | todo_ids
            used: set[str] = set()
            stored: list[Column] = []
            for position, column in enumerate(columns):
                column_id = _resolve_id(column.id, known, used, namespace)
                title = (column.title or "").strip() or UNTITLED_COLUMN
                order = column.order if column.order is not None else 0
                session.add(
                    ColumnRecord(
                        id=column_id,
                        board_id=board_id,
                        title=title,
                        order=order,
                        position=position,
                    )
                )
                todos = [
                    self._add_todo(
                        session, todo, column_id, todo_position, known, used, namespace, now
                    )
                    for todo_position, todo in enumerate(column.todos)
                ]
                stored.append(Column(id=column_id, title=title, order=order, todos=tuple(todos)))

            session.commit()
        except IntegrityError as e:
            session.rollback()
            raise PersistenceError(f"Could not store board: {e}") from e
        finally:
            session.close()

        logger.info(
            "Stored %d columns for board %s (%d new ids)",
            len(stored),
            board_id,
            len(used - known),
        )
        return Board(id=board_id, user_id=user_id, columns=tuple(stored))

    # --- Internals ---

    @staticmethod
    def _add_todo(
        session: Session,
        todo: TodoInput,
        column_id: str,
        position: int,
        known: set[str],
        used: set[str],
        namespace: uuid.UUID,
        now: datetime,
    ) -> Todo:
        todo_id = _resolve_id(todo.id, known, used, namespace)
        status = _check_status(todo.status)
        created_at = _as_utc(todo.created_at) if todo.created_at else now
        updated_at = _as_utc(todo.updated_at) if todo.updated_at else now
        comment = todo.comment if todo.comment is not None else ""
        session.add(
            TodoRecord(
                id=todo_id,
                column_id=column_id,
                content=todo.content,
                comment=comment,
                status=status,
                position=position,
                created_at=_to_db(created_at),
                updated_at=_to_db(updated_at),
            )
        )
        return Todo(
            id=todo_id,
            content=todo.content,
            status=status,
            comment=comment,
            created_at=created_at,
            updated_at=updated_at,
        )

    def _ensure_board(self, user_id: str) -> str:
        """Return the id of the user's board, creating it if missing."""
        session = self._db.get_session()
        try:
            board_id = session.execute(
                select(BoardRecord.id).where(BoardRecord.user_id == user_id)
            ).scalar_one_or_none()
            if board_id is not None:
                return board_id

            if session.get(User, user_id) is None:
                raise UserNotFoundError(f"User with id '{user_id}' not found")

            board = BoardRecord(user_id=user_id)
            session.add(board)
            session.flush()
            session.add(
                ColumnRecord(
                    id=generate_uuid(),
                    board_id=board.id,
                    title=self.default_column_title,
                    order=0,
                    position=0,
                )
            )
            session.commit()
            logger.info("Created board %s for user %s", board.id, user_id)
            return board.id
        except IntegrityError:
            # Lost a creation race; the other board wins
            session.rollback()
            return session.execute(
                select(BoardRecord.id).where(BoardRecord.user_id == user_id)
            ).scalar_one()
        finally:
            session.close()

    @staticmethod
    def _load_board(session: Session, board_id: str, user_id: str) -> Board:
        stmt = (
            select(ColumnRecord)
            .where(ColumnRecord.board_id == board_id)
            .order_by(ColumnRecord.position)
            .options(selectinload(ColumnRecord.todos))
        )
        records = session.execute(stmt).scalars().all()
        return Board(
            id=board_id,
            user_id=user_id,
            columns=tuple(_column_from_record(record) for record in records),
        )


def _column_from_record(record: ColumnRecord) -> Column:
    return Column(
        id=record.id,
        title=record.title,
        order=record.order,
        todos=tuple(
            Todo(
                id=todo.id,
                content=todo.content,
                status=todo.status,
                comment=todo.comment,
                created_at=_as_utc(todo.created_at),
                updated_at=_as_utc(todo.updated_at),
            )
            for todo in record.todos
        ),
    )


def _resolve_id(
    client_id: str | None, known: set[str], used: set[str], namespace: uuid.UUID
) -> str:
    if client_id and client_id in known and client_id not in used:
        resolved = client_id
    elif client_id:
        resolved = str(uuid.uuid5(namespace, client_id))
    else:
        resolved = generate_uuid()
    if resolved in used:
        resolved = generate_uuid()
    used.add(resolved)
    return resolved


def _check_status(status: str | None) -> str:
    if not status:
        return TodoStatus.NORMAL.value
    try:
        return TodoStatus(status).value
    except ValueError as e:
        raise InvalidBoardError(f"Unknown todo status '{status}'") from e


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands datetimes back naive; they are stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _to_db(value: datetime) -> datetime:
    return value.astimezone(UTC).replace(tzinfo=None)
