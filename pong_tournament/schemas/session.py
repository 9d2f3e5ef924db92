from datetime import datetime

from pydantic import AliasChoices, BaseModel, Field


class SessionJoinRequest(BaseModel):
    tournament_id: int | None = Field(
        default=None,
        validation_alias=AliasChoices("tournament_id", "tournamentId"),
    )
    alias: str | None = None


class IssuedSessionResponse(BaseModel):
    token: str
    session_id: int
    tournament_id: int
    alias: str
    user_id: int | None = None
    expires_at: datetime

    model_config = {"from_attributes": True}


class SessionJoinResponse(BaseModel):
    message: str
    session: IssuedSessionResponse


class ValidateTokenRequest(BaseModel):
    token: str | None = None


class SessionInfoResponse(BaseModel):
    session_id: int
    tournament_id: int
    alias: str
    user_id: int | None = None
    created_at: datetime
    expires_at: datetime
    tournament_name: str | None = None

    model_config = {"from_attributes": True}


class ValidateTokenResponse(BaseModel):
    valid: bool
    session: SessionInfoResponse | None = None
    error: str | None = None


class SessionEnvelope(BaseModel):
    session: SessionInfoResponse


class SessionDeleteResponse(BaseModel):
    message: str
    deleted: bool


class SessionCleanupResponse(BaseModel):
    message: str
    cleaned: int
