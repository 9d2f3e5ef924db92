from datetime import datetime

from pydantic import BaseModel, Field

from pong_tournament.models import TournamentStatus


class TournamentCreateRequest(BaseModel):
    name: str | None = None
    max_players: int = 4


class TournamentResponse(BaseModel):
    id: int
    name: str
    max_players: int
    status: TournamentStatus
    champion_alias: str | None = None
    created_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None

    model_config = {"from_attributes": True}


class TournamentEnvelope(BaseModel):
    message: str | None = None
    tournament: TournamentResponse


class TournamentListResponse(BaseModel):
    tournaments: list[TournamentResponse]


class JoinRequest(BaseModel):
    alias: str | None = None
    user_id: int | None = None


class PlayerResponse(BaseModel):
    id: int
    alias: str
    user_id: int | None = None
    joined_at: datetime

    model_config = {"from_attributes": True}


class JoinResponse(BaseModel):
    message: str
    player: PlayerResponse


class PlayerListResponse(BaseModel):
    players: list[PlayerResponse] = Field(default_factory=list)
