"""FastAPI application setup."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from todoboard import __version__
from todoboard.api.dependencies import close_persistence_store, init_persistence_store
from todoboard.api.exceptions import WriteInProgressError
from todoboard.api.models import APIResponse
from todoboard.api.routes import auth, board
from todoboard.persistence import (
    DEFAULT_COLUMN_TITLE,
    InvalidBoardError,
    InvalidCredentialsError,
    InvalidTokenError,
    PersistenceError,
    UserExistsError,
    UserNotFoundError,
)

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = logging.getLogger("todoboard.api")


def _error(status_code: int, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=APIResponse[None](data=None, error=message).model_dump(),
        headers=headers,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    # Startup
    db_path = app.state.db_path if hasattr(app.state, "db_path") else "todoboard.db"
    default_title = (
        app.state.default_column_title
        if hasattr(app.state, "default_column_title")
        else DEFAULT_COLUMN_TITLE
    )
    init_persistence_store(db_path, default_column_title=default_title)
    logger.info("Persistence store opened at %s", db_path)

    yield
    # Shutdown
    close_persistence_store()


def create_app(
    db_path: str = "todoboard.db", default_column_title: str = DEFAULT_COLUMN_TITLE
) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="todoboard API",
        description="Board persistence and account endpoints for todoboard",
        version=__version__,
        lifespan=lifespan,
    )

    # Store config for lifespan manager
    app.state.db_path = db_path
    app.state.default_column_title = default_column_title

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(UserExistsError)
    async def user_exists_handler(_request: Request, _exc: UserExistsError) -> JSONResponse:
        return _error(status.HTTP_409_CONFLICT, "An account with this email already exists")

    @app.exception_handler(InvalidCredentialsError)
    async def invalid_credentials_handler(
        _request: Request, _exc: InvalidCredentialsError
    ) -> JSONResponse:
        return _error(status.HTTP_401_UNAUTHORIZED, "Invalid email or password")

    @app.exception_handler(InvalidTokenError)
    async def invalid_token_handler(_request: Request, exc: InvalidTokenError) -> JSONResponse:
        return _error(
            status.HTTP_401_UNAUTHORIZED, str(exc), headers={"WWW-Authenticate": "Bearer"}
        )

    @app.exception_handler(UserNotFoundError)
    async def user_not_found_handler(_request: Request, _exc: UserNotFoundError) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, "User not found")

    @app.exception_handler(InvalidBoardError)
    async def invalid_board_handler(_request: Request, exc: InvalidBoardError) -> JSONResponse:
        return _error(422, str(exc))

    @app.exception_handler(WriteInProgressError)
    async def write_in_progress_handler(
        _request: Request, exc: WriteInProgressError
    ) -> JSONResponse:
        return _error(status.HTTP_429_TOO_MANY_REQUESTS, str(exc))

    @app.exception_handler(PersistenceError)
    async def persistence_error_handler(_request: Request, exc: PersistenceError) -> JSONResponse:
        logger.error("Persistence failure: %s", exc)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")

    # Include routers
    app.include_router(auth.router, prefix="/api/v1")
    app.include_router(board.router, prefix="/api/v1")

    return app


# Default app instance
app = create_app()
