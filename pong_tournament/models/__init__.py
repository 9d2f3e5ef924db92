from pong_tournament.models.tournament import (
    ALLOWED_MAX_PLAYERS,
    MAX_NAME_LENGTH,
    Tournament,
    TournamentStatus,
)
from pong_tournament.models.tournament_player import MAX_ALIAS_LENGTH, TournamentPlayer
from pong_tournament.models.match import Match, MatchStatus
from pong_tournament.models.tournament_session import TournamentSession

__all__ = [
    "ALLOWED_MAX_PLAYERS",
    "MAX_ALIAS_LENGTH",
    "MAX_NAME_LENGTH",
    "Tournament",
    "TournamentStatus",
    "TournamentPlayer",
    "Match",
    "MatchStatus",
    "TournamentSession",
]
