"""Single-elimination bracket generation.

Round 1 pairs players in join order: match k gets players 2k-1 and 2k.
Every later round pairs the previous round's winners the same way, in
match-number order. The rule does not depend on the field size, so any even
number of players works; tournament creation is what limits fields to 2, 4,
8 or 16.
"""
import logging
from collections.abc import Sequence

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from pong_tournament.database import transaction
from pong_tournament.errors import ConflictError, ValidationError
from pong_tournament.models import (
    Match,
    MatchStatus,
    Tournament,
    TournamentPlayer,
    TournamentStatus,
)
from pong_tournament.services.tournaments import TournamentRegistry
from pong_tournament.utils.timestamps import utcnow

logger = logging.getLogger(__name__)


def total_rounds(max_players: int) -> int:
    """Number of rounds for a power-of-two field (log2 of the field size)."""
    if max_players < 2 or max_players & (max_players - 1):
        raise ValueError(f"Field size must be a power of two, got {max_players}")
    return max_players.bit_length() - 1


def matches_in_round(max_players: int, round_number: int) -> int:
    return max_players >> round_number


def generate_bracket(players: Sequence[TournamentPlayer], tournament_id: int) -> list[Match]:
    if len(players) < 2 or len(players) % 2:
        raise ValidationError("Bracket needs an even number of players, at least 2")

    # sorted() is stable: players that joined in the same instant keep list order
    ordered = sorted(players, key=lambda player: player.joined_at)
    return [
        Match(
            tournament_id=tournament_id,
            round=1,
            match_number=index + 1,
            player1_alias=first.alias,
            player2_alias=second.alias,
            player1_id=first.user_id,
            player2_id=second.user_id,
            status=MatchStatus.pending,
        )
        for index, (first, second) in enumerate(zip(ordered[0::2], ordered[1::2]))
    ]


def pair_winners(completed_round: Sequence[Match], tournament_id: int) -> list[Match]:
    """Build the next round from a fully completed round."""
    ordered = sorted(completed_round, key=lambda match: match.match_number)
    if not ordered or len(ordered) % 2:
        raise ValueError("A round can only be paired from an even number of matches")
    if any(match.status != MatchStatus.completed or not match.winner_alias for match in ordered):
        raise ValueError("Every match of the round must have a winner")

    next_round = ordered[0].round + 1
    return [
        Match(
            tournament_id=tournament_id,
            round=next_round,
            match_number=index + 1,
            player1_alias=first.winner_alias,
            player2_alias=second.winner_alias,
            player1_id=first.winner_id,
            player2_id=second.winner_id,
            status=MatchStatus.pending,
        )
        for index, (first, second) in enumerate(zip(ordered[0::2], ordered[1::2]))
    ]


class BracketEngine:
    def __init__(self, db: AsyncSession, registry: TournamentRegistry | None = None):
        self.db = db
        self.registry = registry or TournamentRegistry(db)

    async def start_tournament(self, tournament_id: int) -> list[Match]:
        """Flip a full tournament to ``in_progress`` and create round 1.

        Status change and round-1 matches commit together or not at all.
        """
        async with transaction(self.db):
            tournament = await self.registry.get_tournament(tournament_id, for_update=True)
            if tournament.status != TournamentStatus.waiting:
                raise ConflictError("Tournament already started or completed")

            players = await self.registry.list_players(tournament_id)
            if len(players) != tournament.max_players:
                raise ValidationError(f"Need exactly {tournament.max_players} players to start")

            matches = generate_bracket(players, tournament_id)

            result = await self.db.execute(
                update(Tournament)
                .where(
                    Tournament.id == tournament_id,
                    Tournament.status == TournamentStatus.waiting,
                )
                .values(status=TournamentStatus.in_progress, started_at=utcnow())
            )
            if result.rowcount != 1:
                raise ConflictError("Tournament already started or completed")

            self.db.add_all(matches)
            await self.db.flush()

        logger.info(
            "Started tournament %s with %s players, %s round-1 matches",
            tournament_id,
            len(players),
            len(matches),
        )
        return matches
