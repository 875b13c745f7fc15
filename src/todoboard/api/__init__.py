"""REST API - FastAPI server for board persistence and accounts."""

from todoboard.api.app import create_app
from todoboard.api.exceptions import WriteInProgressError

__all__ = ["WriteInProgressError", "create_app"]
