"""Tournament records and alias-based participation."""
import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pong_tournament.database import transaction
from pong_tournament.errors import ConflictError, NotFoundError, ValidationError
from pong_tournament.models import (
    ALLOWED_MAX_PLAYERS,
    MAX_ALIAS_LENGTH,
    MAX_NAME_LENGTH,
    Tournament,
    TournamentPlayer,
    TournamentStatus,
)

logger = logging.getLogger(__name__)


class TournamentRegistry:
    """Creates, fetches and lists tournaments and registers their players."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_tournament(self, name: str | None, max_players: int | None) -> Tournament:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Tournament name is required")
        if len(name) > MAX_NAME_LENGTH:
            raise ValidationError(f"Tournament name must be at most {MAX_NAME_LENGTH} characters")
        if isinstance(max_players, bool) or max_players not in ALLOWED_MAX_PLAYERS:
            raise ValidationError("Max players must be 2, 4, 8, or 16")

        tournament = Tournament(
            name=name,
            max_players=max_players,
            status=TournamentStatus.waiting,
        )
        async with transaction(self.db):
            self.db.add(tournament)

        logger.info("Created tournament %s (%r, %s players)", tournament.id, name, max_players)
        return tournament

    async def get_tournament(self, tournament_id: int, *, for_update: bool = False) -> Tournament:
        """Load a tournament or raise ``NotFoundError``.

        ``for_update`` locks the row until the surrounding transaction ends
        (PostgreSQL only) and refreshes any copy already in the session.
        """
        stmt = select(Tournament).where(Tournament.id == tournament_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        tournament = result.scalar_one_or_none()
        if tournament is None:
            raise NotFoundError("Tournament not found")
        return tournament

    async def list_tournaments(self) -> list[Tournament]:
        result = await self.db.execute(
            select(Tournament).order_by(Tournament.created_at.desc(), Tournament.id.desc())
        )
        return list(result.scalars().all())

    async def count_players(self, tournament_id: int) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(TournamentPlayer)
            .where(TournamentPlayer.tournament_id == tournament_id)
        )
        return result.scalar() or 0

    async def list_players(self, tournament_id: int) -> list[TournamentPlayer]:
        await self.get_tournament(tournament_id)
        result = await self.db.execute(
            select(TournamentPlayer)
            .where(TournamentPlayer.tournament_id == tournament_id)
            .order_by(TournamentPlayer.joined_at, TournamentPlayer.id)
        )
        return list(result.scalars().all())

    async def join_tournament(
        self,
        tournament_id: int,
        alias: str | None,
        user_id: int | None = None,
    ) -> TournamentPlayer:
        async with transaction(self.db):
            player = await self.add_player(tournament_id, alias, user_id)
        logger.info("Player %r joined tournament %s", player.alias, tournament_id)
        return player

    async def add_player(
        self,
        tournament_id: int,
        alias: str | None,
        user_id: int | None = None,
    ) -> TournamentPlayer:
        """Insert a player inside the caller's transaction (no commit)."""
        tournament = await self.get_tournament(tournament_id, for_update=True)
        if tournament.status != TournamentStatus.waiting:
            raise ConflictError("Tournament already started or completed")

        if await self.count_players(tournament_id) >= tournament.max_players:
            raise ConflictError("Tournament is full")

        alias = (alias or "").strip()
        if not alias:
            raise ValidationError("Alias is required")
        if len(alias) > MAX_ALIAS_LENGTH:
            raise ValidationError(f"Alias must be at most {MAX_ALIAS_LENGTH} characters")

        existing = await self.db.execute(
            select(TournamentPlayer.id).where(
                TournamentPlayer.tournament_id == tournament_id,
                TournamentPlayer.alias == alias,
            )
        )
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("Alias already taken")

        player = TournamentPlayer(tournament_id=tournament_id, alias=alias, user_id=user_id)
        self.db.add(player)
        try:
            await self.db.flush()
        except IntegrityError as exc:
            # Lost a race with a concurrent join using the same alias
            raise ConflictError("Alias already taken") from exc
        return player
