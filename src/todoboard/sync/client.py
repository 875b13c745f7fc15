"""BoardClient - async HTTP client for the board persistence endpoint."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any

import httpx

from todoboard.board import Board, Column
from todoboard.logging import sanitize_for_log, truncate_output
from todoboard.sync.exceptions import (
    AuthenticationError,
    RegistrationError,
    RequestRejectedError,
    SaveConflictError,
    SyncError,
    TransientSyncError,
)
from todoboard.sync.models import Identity, Session

logger = logging.getLogger("todoboard.sync.client")

API_PREFIX = "/api/v1"


class BoardClient:
    """Client for the board and auth endpoints.

    Every board call is made on behalf of the user owning the bearer token.
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Server root, e.g. "http://127.0.0.1:8000".
            token: Session token from a previous login, if any.
            timeout: Per-request timeout in seconds.
            transport: Custom httpx transport (for testing).
        """
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the underlying HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> BoardClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # --- Board ---

    async def fetch_board(self) -> Board:
        """Get the current user's board, created on first access.

        Raises:
            AuthenticationError: If the session token is missing or invalid.
            TransientSyncError: On network failure or server error.
        """
        data = await self._request("GET", "/board")
        return _decode_board(data)

    async def save_columns(self, columns: Sequence[Column]) -> Board:
        """Replace the current user's whole column list.

        Args:
            columns: The complete, ordered column list to persist.

        Returns:
            The canonical board as stored, carrying server-assigned ids.

        Raises:
            SaveConflictError: If another write for this user is in progress.
            TransientSyncError: On network failure or server error.
            AuthenticationError: If the session token is missing or invalid.
            RequestRejectedError: If the payload is refused.
        """
        payload = {"columns": [column.to_dict() for column in columns]}
        data = await self._request("PUT", "/board/columns", payload)
        return _decode_board(data)

    # --- Identity ---

    async def register(self, email: str, password: str) -> None:
        """Create an account.

        Raises:
            RegistrationError: If the email is taken or input is invalid.
        """
        try:
            await self._request(
                "POST",
                "/auth/register",
                {"email": email, "password": password},
                authenticated=False,
            )
        except (SaveConflictError, RequestRejectedError) as e:
            raise RegistrationError(str(e)) from e

    async def login(self, email: str, password: str) -> Session:
        """Log in and remember the returned token for later calls.

        Raises:
            AuthenticationError: If the credentials are wrong.
        """
        data = await self._request(
            "POST",
            "/auth/login",
            {"email": email, "password": password},
            authenticated=False,
        )
        session = Session(
            token=data["token"],
            identity=Identity(user_id=data["user"]["id"], email=data["user"]["email"]),
            api_url=self.base_url,
        )
        self.token = session.token
        return session

    async def logout(self) -> None:
        """Invalidate the current token on the server and forget it."""
        if self.token is None:
            return
        try:
            await self._request("POST", "/auth/logout")
        finally:
            self.token = None

    async def whoami(self) -> Identity:
        """Get the user owning the current token."""
        data = await self._request("GET", "/auth/me")
        return Identity(user_id=data["id"], email=data["email"])

    # --- Transport ---

    async def _request(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
        authenticated: bool = True,
    ) -> Any:
        """Send a request and unwrap the {data, error} envelope.

        Raises:
            SyncError: Mapped from the response status (see _raise_for_status).
        """
        headers = {}
        if authenticated:
            if not self.token:
                raise AuthenticationError("Not logged in")
            headers["Authorization"] = f"Bearer {self.token}"

        url = f"{API_PREFIX}{path}"
        logger.debug("%s %s", method, url)
        if payload is not None:
            logger.debug(
                "Request body: %s", truncate_output(sanitize_for_log(json.dumps(payload)))
            )

        try:
            response = await self.client.request(method, url, json=payload, headers=headers)
        except httpx.TransportError as e:
            logger.warning("%s %s failed: %s", method, url, e)
            raise TransientSyncError(f"Could not reach server: {e}") from e

        self._raise_for_status(response)

        if response.status_code == 204 or not response.content:
            return None
        try:
            body = response.json()
        except ValueError as e:
            raise TransientSyncError(f"Malformed response from server: {e}") from e
        return body.get("data") if isinstance(body, dict) else body

    def _raise_for_status(self, response: httpx.Response) -> None:
        """Map an error response onto the sync exception hierarchy."""
        if response.is_success:
            return

        message = _error_message(response)
        code = response.status_code
        logger.warning("Request failed with %s: %s", code, message)

        error: SyncError
        if code == 401:
            error = AuthenticationError(message)
        elif code in (409, 429):
            error = SaveConflictError(message)
        elif code >= 500:
            error = TransientSyncError(f"Server error {code}: {message}")
        else:
            error = RequestRejectedError(f"Request rejected ({code}): {message}")
        raise error


def _decode_board(data: Any) -> Board:
    try:
        return Board.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        logger.warning("Malformed board in response: %s", e)
        raise TransientSyncError(f"Malformed response from server: {e}") from e


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        if body.get("error"):
            return str(body["error"])
        if body.get("detail"):
            return str(body["detail"])
    return response.reason_phrase
