from fastapi import APIRouter, Depends

from pong_tournament.api.deps import get_session_service
from pong_tournament.schemas.session import (
    SessionCleanupResponse,
    SessionDeleteResponse,
    SessionEnvelope,
    SessionInfoResponse,
)
from pong_tournament.services.session_tokens import SessionTokenService

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post("/cleanup", response_model=SessionCleanupResponse)
async def cleanup_expired_sessions(
    sessions: SessionTokenService = Depends(get_session_service),
):
    cleaned = await sessions.cleanup_expired_sessions()
    return SessionCleanupResponse(message="Expired sessions cleaned up", cleaned=cleaned)


@router.get("/{session_id}", response_model=SessionEnvelope)
async def get_session(
    session_id: int,
    sessions: SessionTokenService = Depends(get_session_service),
):
    info = await sessions.get_session(session_id)
    return SessionEnvelope(session=SessionInfoResponse.model_validate(info))


@router.delete("/{session_id}", response_model=SessionDeleteResponse)
async def delete_session(
    session_id: int,
    sessions: SessionTokenService = Depends(get_session_service),
):
    deleted = await sessions.delete_session(session_id)
    return SessionDeleteResponse(message="Session deleted successfully", deleted=deleted)
