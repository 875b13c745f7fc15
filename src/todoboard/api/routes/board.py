"""Board persistence endpoints."""

import logging

from fastapi import APIRouter

from todoboard.api.dependencies import CurrentUserDep, PersistenceStoreDep, WriteGuardDep
from todoboard.api.models import APIResponse, BoardResponse, ColumnsPayload, board_to_response

logger = logging.getLogger("todoboard.api.board")

router = APIRouter(prefix="/board", tags=["board"])


@router.get("", response_model=APIResponse[BoardResponse])
def get_board(user: CurrentUserDep, store: PersistenceStoreDep) -> APIResponse[BoardResponse]:
    """Get the current user's board, creating it on first access."""
    board = store.get_board(user.id)
    return APIResponse(data=board_to_response(board))


@router.api_route("/columns", methods=["PUT", "POST"], response_model=APIResponse[BoardResponse])
def replace_columns(
    payload: ColumnsPayload,
    user: CurrentUserDep,
    store: PersistenceStoreDep,
    guard: WriteGuardDep,
) -> APIResponse[BoardResponse]:
    """Replace the current user's whole column list and return the stored board."""
    with guard.hold(user.id):
        board = store.replace_columns(user.id, [column.to_input() for column in payload.columns])
    logger.debug("Board %s saved with %d columns", board.id, len(board.columns))
    return APIResponse(data=board_to_response(board))
