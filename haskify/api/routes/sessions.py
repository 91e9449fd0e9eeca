"""Chat history endpoints - POST /api/save-session, PATCH /api/save-session/{id}."""

import logging
from uuid import UUID

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel

from haskify.api.deps import ServicesDep
from haskify.db.repositories import PersistenceError
from haskify.models.tutor import SessionTurn

router = APIRouter(prefix="/api/save-session", tags=["sessions"])
logger = logging.getLogger(__name__)


class SaveSessionRequest(BaseModel):
    """Request body for saving a chat history."""

    session: list[SessionTurn]


class SaveSessionResponse(BaseModel):
    """Response for POST /api/save-session."""

    success: bool = True
    id: UUID


class UpdateSessionResponse(BaseModel):
    """Response for PATCH /api/save-session/{id}."""

    success: bool = True


def _require_turns(request: SaveSessionRequest) -> None:
    if not request.session:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid session data")


@router.post("", response_model=SaveSessionResponse)
async def save_session(request: SaveSessionRequest, services: ServicesDep) -> SaveSessionResponse:
    """Store a new chat history log."""
    _require_turns(request)
    try:
        log = await services.history.create(request.session)
    except PersistenceError as e:
        logger.error(f"Save session error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to save session"
        ) from e
    return SaveSessionResponse(id=log.id)


@router.patch("/{log_id}", response_model=UpdateSessionResponse)
async def update_session(
    log_id: UUID, request: SaveSessionRequest, services: ServicesDep
) -> UpdateSessionResponse:
    """Replace the turns of an existing chat history log.

    Raises:
        HTTPException: 400 if no turns are given, 404 if the log does not exist
    """
    _require_turns(request)
    try:
        log = await services.history.replace_turns(log_id, request.session)
    except PersistenceError as e:
        logger.error(f"Update session error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to update session"
        ) from e

    if log is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    return UpdateSessionResponse()
