"""CLI entry point for todoboard.

Client commands talk to a running server through the same optimistic
Coordinator a graphical front-end would use: load the board, forward one
intent, render the settled board.
"""

from __future__ import annotations

import asyncio
import json
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, NoReturn

import click

from todoboard import __version__
from todoboard.board import BoardStore, BoardValidationError, TodoStatus
from todoboard.config import ConfigError, TodoBoardConfig, resolve_config
from todoboard.logging import get_logger, setup_logging
from todoboard.sync import (
    AuthenticationError,
    BoardClient,
    Coordinator,
    Identity,
    MutationResult,
    RegistrationError,
    RetryPolicy,
    Session,
    SyncError,
)
from todoboard.sync.coordinator import DEFAULT_COLUMN_TITLE
from todoboard.view import ALL_MODE, COLUMNS_MODE, BoardView

logger = get_logger("cli")

STATUS_CHOICES = [status.value for status in TodoStatus]

BoardIntent = Callable[[BoardView], Awaitable[MutationResult]]


# --- Session file ---


def save_session(path: Path, session: Session) -> None:
    """Write the login session to disk, readable by the owner only."""
    path.parent.mkdir(parents=True, exist_ok=True)
    data = {
        "api_url": session.api_url,
        "token": session.token,
        "user_id": session.identity.user_id,
        "email": session.identity.email,
    }
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    path.chmod(0o600)


def load_session(path: Path) -> Session | None:
    """Read a stored login session, or None if there is none (or it is unreadable)."""
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return Session(
            token=data["token"],
            identity=Identity(user_id=data["user_id"], email=data["email"]),
            api_url=data.get("api_url"),
        )
    except (OSError, ValueError, KeyError, TypeError) as e:
        logger.warning("Ignoring unreadable session file %s: %s", path, e)
        return None


def clear_session(path: Path) -> None:
    """Delete the stored login session if present."""
    path.unlink(missing_ok=True)


def create_client(
    config: TodoBoardConfig, token: str | None = None, api_url: str | None = None
) -> BoardClient:
    """Build the HTTP client for api_url, or the configured server if not given."""
    return BoardClient(
        api_url or config.client.api_url,
        token=token,
        timeout=config.client.request_timeout,
    )


# --- Helpers ---


def _fail(message: str) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _require_session(config: TodoBoardConfig) -> Session:
    session = load_session(config.client.get_session_path())
    if session is None:
        _fail("Not logged in. Run 'todoboard login EMAIL' first.")
    return session


def _run_board(
    config: TodoBoardConfig, intent: BoardIntent | None = None, mode: str = COLUMNS_MODE
) -> None:
    """Load the board, forward one intent, then print the settled board."""
    session = _require_session(config)

    async def run() -> MutationResult | None:
        async with create_client(config, session.token, session.api_url) as client:
            store = BoardStore()
            view = BoardView(store, mode=mode)
            view.coordinator = Coordinator(
                store,
                client,
                retry=RetryPolicy(
                    max_attempts=config.sync.max_attempts,
                    delay_seconds=config.sync.retry_delay,
                ),
                on_error=view.show_error,
                discard_stale_responses=config.sync.discard_stale_responses,
            )
            await view.coordinator.load_board()
            result = await intent(view) if intent is not None else None
            view.show()
            return result

    try:
        result = asyncio.run(run())
    except AuthenticationError:
        _fail("Session expired or invalid. Run 'todoboard login EMAIL' again.")
    except BoardValidationError as e:
        _fail(str(e))
    except SyncError as e:
        _fail(f"Could not load board: {e}")

    if result is not None and not result.success:
        sys.exit(1)


def _run_client(
    config: TodoBoardConfig,
    call: Callable[[BoardClient], Awaitable[Any]],
    session: Session | None = None,
) -> Any:
    token = session.token if session is not None else None
    api_url = session.api_url if session is not None else None

    async def run() -> Any:
        async with create_client(config, token, api_url) as client:
            return await call(client)

    return asyncio.run(run())


# --- Commands ---


@click.group()
@click.version_option(version=__version__, prog_name="todoboard")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    help="Path to todoboard.yaml (auto-detected if not specified)",
)
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    help="Enable verbose output",
)
@click.pass_context
def main(ctx: click.Context, config_path: Path | None, verbose: bool) -> None:
    """todoboard - a personal board of todo lists."""
    try:
        config = resolve_config(config_path)
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)

    if verbose:
        config.logging.level = "DEBUG"
        config.logging.console = True
    setup_logging(
        log_dir=config.get_log_dir(),
        level=config.logging.level,
        console=config.logging.console,
    )
    ctx.obj = config


@main.command()
@click.option("--host", default=None, help="Interface to bind (default: from config)")
@click.option("--port", type=int, default=None, help="Port to listen on (default: from config)")
@click.option("--db", "db_path", default=None, help="SQLite database path (default: from config)")
@click.pass_obj
def serve(config: TodoBoardConfig, host: str | None, port: int | None, db_path: str | None) -> None:
    """Run the board persistence server."""
    import uvicorn  # noqa: PLC0415

    from todoboard.api.app import create_app  # noqa: PLC0415

    host = host or config.server.host
    port = port or config.server.port
    db_path = db_path or config.server.db_path

    click.echo(f"Serving todoboard on http://{host}:{port} (database: {db_path})")
    app = create_app(db_path, default_column_title=config.server.default_column_title)
    uvicorn.run(app, host=host, port=port, log_level=config.logging.level.lower())


@main.command()
@click.argument("email")
@click.password_option()
@click.pass_obj
def register(config: TodoBoardConfig, email: str, password: str) -> None:
    """Create an account."""
    try:
        _run_client(config, lambda client: client.register(email, password))
    except RegistrationError as e:
        _fail(f"Registration failed: {e}")
    except SyncError as e:
        _fail(str(e))
    click.echo(f"Registered {email.strip().lower()}. Log in with 'todoboard login {email}'.")


@main.command()
@click.argument("email")
@click.option("--password", prompt=True, hide_input=True)
@click.pass_obj
def login(config: TodoBoardConfig, email: str, password: str) -> None:
    """Log in and remember the session."""
    try:
        session = _run_client(config, lambda client: client.login(email, password))
    except AuthenticationError:
        _fail("Invalid email or password")
    except SyncError as e:
        _fail(str(e))

    save_session(config.client.get_session_path(), session)
    click.echo(f"Logged in as {session.identity.email}")


@main.command()
@click.pass_obj
def logout(config: TodoBoardConfig) -> None:
    """Log out and forget the session."""
    path = config.client.get_session_path()
    session = load_session(path)
    if session is None:
        click.echo("Not logged in")
        return

    try:
        _run_client(config, lambda client: client.logout(), session=session)
    except SyncError as e:
        logger.warning("Server logout failed, forgetting session locally: %s", e)
    clear_session(path)
    click.echo("Logged out")


@main.command()
@click.pass_obj
def whoami(config: TodoBoardConfig) -> None:
    """Show the logged-in account."""
    session = _require_session(config)
    try:
        identity = _run_client(config, lambda client: client.whoami(), session=session)
    except AuthenticationError:
        _fail("Session expired or invalid. Run 'todoboard login EMAIL' again.")
    except SyncError as e:
        _fail(str(e))
    click.echo(f"{identity.email} ({identity.user_id})")


@main.command()
@click.option("--all", "show_all", is_flag=True, help="List every todo sorted by status")
@click.pass_obj
def show(config: TodoBoardConfig, show_all: bool) -> None:
    """Show the board."""
    _run_board(config, mode=ALL_MODE if show_all else COLUMNS_MODE)


@main.command("add-column")
@click.argument("title", default=DEFAULT_COLUMN_TITLE)
@click.pass_obj
def add_column(config: TodoBoardConfig, title: str) -> None:
    """Add a list at the end of the board."""
    _run_board(config, lambda view: view.add_column(title))


@main.command("rename-column")
@click.argument("column")
@click.argument("title")
@click.pass_obj
def rename_column(config: TodoBoardConfig, column: str, title: str) -> None:
    """Rename a list (by position or id)."""
    _run_board(config, lambda view: view.rename_column(column, title))


@main.command("delete-column")
@click.argument("column")
@click.pass_obj
def delete_column(config: TodoBoardConfig, column: str) -> None:
    """Delete a list and all its todos."""
    _run_board(config, lambda view: view.delete_column(column))


@main.command("move-column")
@click.argument("source", type=int)
@click.argument("destination", type=int)
@click.pass_obj
def move_column(config: TodoBoardConfig, source: int, destination: int) -> None:
    """Move the list at position SOURCE to position DESTINATION."""
    _run_board(config, lambda view: view.move_column(source, destination))


@main.command("add-todo")
@click.argument("column")
@click.argument("content")
@click.option("--status", type=click.Choice(STATUS_CHOICES), default=TodoStatus.NORMAL.value)
@click.option("--comment", default=None)
@click.pass_obj
def add_todo(
    config: TodoBoardConfig, column: str, content: str, status: str, comment: str | None
) -> None:
    """Add a todo to a list."""
    _run_board(config, lambda view: view.add_todo(column, content, status=status, comment=comment))


@main.command("edit-todo")
@click.argument("column")
@click.argument("todo")
@click.option("--content", default=None)
@click.option("--status", type=click.Choice(STATUS_CHOICES), default=None)
@click.option("--comment", default=None, help="New comment; pass an empty string to clear it")
@click.pass_obj
def edit_todo(
    config: TodoBoardConfig,
    column: str,
    todo: str,
    content: str | None,
    status: str | None,
    comment: str | None,
) -> None:
    """Change a todo's content, status or comment."""
    changes = {
        key: value
        for key, value in (("content", content), ("status", status), ("comment", comment))
        if value is not None
    }
    if not changes:
        _fail("Nothing to change: pass --content, --status or --comment")
    _run_board(config, lambda view: view.edit_todo(column, todo, **changes))


@main.command("delete-todo")
@click.argument("column")
@click.argument("todo")
@click.pass_obj
def delete_todo(config: TodoBoardConfig, column: str, todo: str) -> None:
    """Delete a todo."""
    _run_board(config, lambda view: view.delete_todo(column, todo))


if __name__ == "__main__":
    main()
