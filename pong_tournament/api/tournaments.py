from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from pong_tournament.api.deps import (
    get_bracket_engine,
    get_match_ledger,
    get_optional_user_id,
    get_registry,
    get_session_service,
)
from pong_tournament.errors import AuthError, ValidationError
from pong_tournament.models import TournamentStatus
from pong_tournament.schemas.match import (
    BracketResponse,
    BracketRoundResponse,
    MatchListResponse,
    MatchResponse,
    MatchResultRequest,
    MatchResultResponse,
    StartTournamentResponse,
)
from pong_tournament.schemas.session import (
    IssuedSessionResponse,
    SessionInfoResponse,
    SessionJoinRequest,
    SessionJoinResponse,
    ValidateTokenRequest,
    ValidateTokenResponse,
)
from pong_tournament.schemas.tournament import (
    JoinRequest,
    JoinResponse,
    PlayerListResponse,
    PlayerResponse,
    TournamentCreateRequest,
    TournamentEnvelope,
    TournamentListResponse,
    TournamentResponse,
)
from pong_tournament.services.bracket import BracketEngine
from pong_tournament.services.match_ledger import MatchLedger
from pong_tournament.services.session_tokens import SessionTokenService
from pong_tournament.services.tournaments import TournamentRegistry

router = APIRouter(prefix="/tournaments", tags=["tournaments"])


@router.post("", response_model=TournamentEnvelope, status_code=status.HTTP_201_CREATED)
async def create_tournament(
    body: TournamentCreateRequest,
    registry: TournamentRegistry = Depends(get_registry),
):
    tournament = await registry.create_tournament(body.name, body.max_players)
    return TournamentEnvelope(
        message="Tournament created successfully",
        tournament=TournamentResponse.model_validate(tournament),
    )


@router.get("", response_model=TournamentListResponse)
async def list_tournaments(registry: TournamentRegistry = Depends(get_registry)):
    tournaments = await registry.list_tournaments()
    return TournamentListResponse(
        tournaments=[TournamentResponse.model_validate(t) for t in tournaments]
    )


# Token flow routes are declared before the /{tournament_id} routes
@router.post("/join", response_model=SessionJoinResponse, status_code=status.HTTP_201_CREATED)
async def join_with_session(
    body: SessionJoinRequest,
    user_id: int | None = Depends(get_optional_user_id),
    sessions: SessionTokenService = Depends(get_session_service),
):
    if body.tournament_id is None or not body.alias:
        raise ValidationError("Tournament ID and alias are required")

    _player, issued = await sessions.join_with_session(body.tournament_id, body.alias, user_id)
    return SessionJoinResponse(
        message="Successfully joined tournament",
        session=IssuedSessionResponse.model_validate(issued),
    )


@router.post("/validate-token", response_model=ValidateTokenResponse)
async def validate_token(
    body: ValidateTokenRequest,
    sessions: SessionTokenService = Depends(get_session_service),
):
    if not body.token:
        raise ValidationError("Token is required")

    try:
        info = await sessions.validate_token(body.token)
    except AuthError as exc:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"valid": False, "error": exc.message},
        )
    return ValidateTokenResponse(valid=True, session=SessionInfoResponse.model_validate(info))


@router.get("/{tournament_id}", response_model=TournamentEnvelope)
async def get_tournament(
    tournament_id: int,
    registry: TournamentRegistry = Depends(get_registry),
):
    tournament = await registry.get_tournament(tournament_id)
    return TournamentEnvelope(tournament=TournamentResponse.model_validate(tournament))


@router.post("/{tournament_id}/join", response_model=JoinResponse, status_code=status.HTTP_201_CREATED)
async def join_tournament(
    tournament_id: int,
    body: JoinRequest,
    registry: TournamentRegistry = Depends(get_registry),
):
    player = await registry.join_tournament(tournament_id, body.alias, body.user_id)
    return JoinResponse(
        message="Successfully joined tournament",
        player=PlayerResponse.model_validate(player),
    )


@router.get("/{tournament_id}/players", response_model=PlayerListResponse)
async def list_players(
    tournament_id: int,
    registry: TournamentRegistry = Depends(get_registry),
):
    players = await registry.list_players(tournament_id)
    return PlayerListResponse(players=[PlayerResponse.model_validate(p) for p in players])


@router.post("/{tournament_id}/start", response_model=StartTournamentResponse)
async def start_tournament(
    tournament_id: int,
    engine: BracketEngine = Depends(get_bracket_engine),
):
    matches = await engine.start_tournament(tournament_id)
    return StartTournamentResponse(
        message="Tournament started successfully",
        matches=[MatchResponse.model_validate(m) for m in matches],
    )


@router.get("/{tournament_id}/matches", response_model=MatchListResponse)
async def list_matches(
    tournament_id: int,
    ledger: MatchLedger = Depends(get_match_ledger),
):
    matches = await ledger.list_matches(tournament_id)
    return MatchListResponse(matches=[MatchResponse.model_validate(m) for m in matches])


@router.get("/{tournament_id}/bracket", response_model=BracketResponse)
async def get_bracket(
    tournament_id: int,
    ledger: MatchLedger = Depends(get_match_ledger),
):
    bracket = await ledger.get_bracket(tournament_id)
    return BracketResponse(
        tournament_id=bracket.tournament.id,
        status=bracket.tournament.status,
        champion_alias=bracket.tournament.champion_alias,
        rounds=[BracketRoundResponse.model_validate(r) for r in bracket.rounds],
    )


@router.post("/{tournament_id}/matches/{match_id}/result", response_model=MatchResultResponse)
async def record_match_result(
    tournament_id: int,
    match_id: int,
    body: MatchResultRequest,
    ledger: MatchLedger = Depends(get_match_ledger),
):
    result = await ledger.record_match_result(
        tournament_id,
        match_id,
        body.winner_alias,
        body.player1_score,
        body.player2_score,
    )

    if result.tournament_status == TournamentStatus.completed:
        message = f"Match result recorded, tournament completed. Champion: {result.champion_alias}"
    elif result.next_round_matches:
        message = f"Match result recorded, round {result.next_round_matches[0].round} created"
    else:
        message = "Match result recorded"

    return MatchResultResponse(
        message=message,
        match=MatchResponse.model_validate(result.match),
        next_round_matches=[MatchResponse.model_validate(m) for m in result.next_round_matches],
        tournament_status=result.tournament_status,
        champion_alias=result.champion_alias,
    )
