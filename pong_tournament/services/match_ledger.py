"""Match results and automatic bracket progression."""
import logging
from collections import defaultdict
from dataclasses import dataclass, field

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pong_tournament.database import transaction
from pong_tournament.errors import ConflictError, NotFoundError, ValidationError
from pong_tournament.models import Match, MatchStatus, Tournament, TournamentStatus
from pong_tournament.services.bracket import matches_in_round, pair_winners, total_rounds
from pong_tournament.services.tournaments import TournamentRegistry
from pong_tournament.utils.timestamps import utcnow

logger = logging.getLogger(__name__)

# Keyed by how many rounds remain after this one
ROUND_LABELS = {
    0: "final",
    1: "semi-final",
    2: "quarter-final",
    3: "round of 16",
}


@dataclass
class ProgressOutcome:
    status: TournamentStatus
    created_matches: list[Match] = field(default_factory=list)
    champion_alias: str | None = None


@dataclass
class MatchResult:
    match: Match
    tournament_status: TournamentStatus
    next_round_matches: list[Match] = field(default_factory=list)
    champion_alias: str | None = None


@dataclass
class BracketRound:
    round: int
    label: str
    matches: list[Match]


@dataclass
class BracketView:
    tournament: Tournament
    rounds: list[BracketRound]


class MatchLedger:
    def __init__(self, db: AsyncSession, registry: TournamentRegistry | None = None):
        self.db = db
        self.registry = registry or TournamentRegistry(db)

    async def _load_matches(self, tournament_id: int) -> list[Match]:
        result = await self.db.execute(
            select(Match)
            .where(Match.tournament_id == tournament_id)
            .order_by(Match.round, Match.match_number)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def list_matches(self, tournament_id: int) -> list[Match]:
        await self.registry.get_tournament(tournament_id)
        return await self._load_matches(tournament_id)

    async def get_bracket(self, tournament_id: int) -> BracketView:
        """All rounds of the bracket, including ones not generated yet."""
        tournament = await self.registry.get_tournament(tournament_id)
        matches = await self._load_matches(tournament_id)

        by_round: dict[int, list[Match]] = defaultdict(list)
        for match in matches:
            by_round[match.round].append(match)

        rounds_total = total_rounds(tournament.max_players)
        rounds = [
            BracketRound(
                round=round_number,
                label=ROUND_LABELS.get(rounds_total - round_number, f"round {round_number}"),
                matches=by_round.get(round_number, []),
            )
            for round_number in range(1, rounds_total + 1)
        ]
        return BracketView(tournament=tournament, rounds=rounds)

    async def record_match_result(
        self,
        tournament_id: int,
        match_id: int,
        winner_alias: str | None,
        player1_score: int | None,
        player2_score: int | None,
    ) -> MatchResult:
        """Complete a pending match and advance the bracket.

        The result and whatever progression it triggers (next round or
        tournament completion) are committed as one transaction.
        """
        if not winner_alias or player1_score is None or player2_score is None:
            raise ValidationError("Winner and scores are required")
        if player1_score < 0 or player2_score < 0:
            raise ValidationError("Scores must not be negative")

        async with transaction(self.db):
            await self.registry.get_tournament(tournament_id, for_update=True)

            result = await self.db.execute(
                select(Match)
                .where(Match.id == match_id, Match.tournament_id == tournament_id)
                .execution_options(populate_existing=True)
            )
            match = result.scalar_one_or_none()
            if match is None:
                raise NotFoundError("Match not found")
            if match.status == MatchStatus.completed:
                raise ConflictError("Match already completed")
            if winner_alias not in (match.player1_alias, match.player2_alias):
                raise ValidationError("Winner must be one of the match players")

            winner_id = match.player1_id if winner_alias == match.player1_alias else match.player2_id
            updated = await self.db.execute(
                update(Match)
                .where(Match.id == match.id, Match.status == MatchStatus.pending)
                .values(
                    winner_alias=winner_alias,
                    winner_id=winner_id,
                    player1_score=player1_score,
                    player2_score=player2_score,
                    status=MatchStatus.completed,
                    completed_at=utcnow(),
                )
            )
            if updated.rowcount != 1:
                raise ConflictError("Match already completed")

            outcome = await self.auto_progress(tournament_id)

        logger.info(
            "Recorded match %s of tournament %s: %s won %s-%s",
            match_id,
            tournament_id,
            winner_alias,
            player1_score,
            player2_score,
        )
        return MatchResult(
            match=match,
            tournament_status=outcome.status,
            next_round_matches=outcome.created_matches,
            champion_alias=outcome.champion_alias,
        )

    async def auto_progress(self, tournament_id: int) -> ProgressOutcome:
        """Advance the bracket as far as the recorded results allow.

        Runs inside the caller's transaction. Safe to call repeatedly: a round
        is only generated while it has no rows, and completion is conditional
        on the tournament still being in progress.
        """
        tournament = await self.registry.get_tournament(tournament_id)
        matches = await self._load_matches(tournament_id)

        by_round: dict[int, list[Match]] = defaultdict(list)
        for match in matches:
            by_round[match.round].append(match)

        outcome = ProgressOutcome(
            status=tournament.status,
            champion_alias=tournament.champion_alias,
        )
        rounds_total = total_rounds(tournament.max_players)

        for round_number in range(1, rounds_total + 1):
            round_matches = by_round.get(round_number, [])
            if not round_matches or any(m.status != MatchStatus.completed for m in round_matches):
                break

            expected = matches_in_round(tournament.max_players, round_number)
            if len(round_matches) != expected:
                logger.warning(
                    "Tournament %s round %s has %s matches, expected %s",
                    tournament_id,
                    round_number,
                    len(round_matches),
                    expected,
                )
                break

            if round_number < rounds_total:
                if by_round.get(round_number + 1):
                    continue
                outcome.created_matches = await self._create_next_round(tournament_id, round_matches)
                break

            final = round_matches[0]
            await self._complete_tournament(tournament_id, final)
            outcome.status = TournamentStatus.completed
            outcome.champion_alias = final.winner_alias

        return outcome

    async def _create_next_round(self, tournament_id: int, completed_round: list[Match]) -> list[Match]:
        next_matches = pair_winners(completed_round, tournament_id)
        next_round = next_matches[0].round

        # A concurrent result for the same round may have inserted it first;
        # the unique (tournament_id, round, match_number) constraint rejects
        # our copy and only the savepoint is rolled back.
        try:
            async with self.db.begin_nested():
                self.db.add_all(next_matches)
        except IntegrityError:
            logger.warning(
                "Round %s of tournament %s was already created, skipping",
                next_round,
                tournament_id,
            )
            return []

        logger.info(
            "Created round %s of tournament %s with %s matches",
            next_round,
            tournament_id,
            len(next_matches),
        )
        return next_matches

    async def _complete_tournament(self, tournament_id: int, final: Match) -> None:
        result = await self.db.execute(
            update(Tournament)
            .where(
                Tournament.id == tournament_id,
                Tournament.status == TournamentStatus.in_progress,
            )
            .values(
                status=TournamentStatus.completed,
                completed_at=utcnow(),
                champion_alias=final.winner_alias,
            )
        )
        if result.rowcount:
            logger.info("Tournament %s completed, champion %r", tournament_id, final.winner_alias)
