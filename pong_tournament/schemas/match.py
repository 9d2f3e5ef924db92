from datetime import datetime

from pydantic import BaseModel, Field

from pong_tournament.models import MatchStatus, TournamentStatus


class MatchResponse(BaseModel):
    id: int
    tournament_id: int
    round: int
    match_number: int
    player1_alias: str
    player2_alias: str
    player1_id: int | None = None
    player2_id: int | None = None
    winner_alias: str | None = None
    winner_id: int | None = None
    player1_score: int | None = None
    player2_score: int | None = None
    status: MatchStatus
    created_at: datetime | None = None
    completed_at: datetime | None = None

    model_config = {"from_attributes": True}


class MatchListResponse(BaseModel):
    matches: list[MatchResponse]


class StartTournamentResponse(BaseModel):
    message: str
    matches: list[MatchResponse]


class MatchResultRequest(BaseModel):
    # Presence and range are checked by the ledger so errors keep its messages
    winner_alias: str | None = None
    player1_score: int | None = None
    player2_score: int | None = None


class MatchResultResponse(BaseModel):
    message: str
    match: MatchResponse
    next_round_matches: list[MatchResponse] = Field(default_factory=list)
    tournament_status: TournamentStatus
    champion_alias: str | None = None


class BracketRoundResponse(BaseModel):
    round: int
    label: str
    matches: list[MatchResponse]

    model_config = {"from_attributes": True}


class BracketResponse(BaseModel):
    tournament_id: int
    status: TournamentStatus
    champion_alias: str | None = None
    rounds: list[BracketRoundResponse]
