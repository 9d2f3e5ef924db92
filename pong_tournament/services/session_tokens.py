"""Short-lived claim tokens for the anonymous-friendly join flow.

A token is trusted only if two independent checks pass:

1. its HMAC signature and embedded ``exp`` claim verify
   (``verify_token_signature``), and
2. its SHA-256 digest is still stored and unexpired
   (``lookup_active_session``).

Deleting the stored row therefore revokes a token before its embedded
expiry. Plaintext tokens are returned once at issuance and never stored.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from pong_tournament.config import get_settings
from pong_tournament.database import transaction
from pong_tournament.errors import AuthError, NotFoundError
from pong_tournament.models import Tournament, TournamentPlayer, TournamentSession
from pong_tournament.security import (
    SessionTokenError,
    create_session_token,
    decode_session_token,
    hash_session_token,
)
from pong_tournament.services.tournaments import TournamentRegistry
from pong_tournament.utils.timestamps import utcnow

logger = logging.getLogger(__name__)
settings = get_settings()


@dataclass
class IssuedSession:
    token: str
    session_id: int
    tournament_id: int
    alias: str
    user_id: int | None
    expires_at: datetime


@dataclass
class SessionInfo:
    session_id: int
    tournament_id: int
    alias: str
    user_id: int | None
    created_at: datetime
    expires_at: datetime
    tournament_name: str | None = None

    @classmethod
    def from_row(cls, row: TournamentSession, tournament_name: str | None = None) -> "SessionInfo":
        return cls(
            session_id=row.id,
            tournament_id=row.tournament_id,
            alias=row.alias,
            user_id=row.user_id,
            created_at=row.created_at,
            expires_at=row.expires_at,
            tournament_name=tournament_name,
        )


class SessionTokenService:
    def __init__(self, db: AsyncSession, registry: TournamentRegistry | None = None):
        self.db = db
        self.registry = registry or TournamentRegistry(db)

    async def _store_session(
        self,
        tournament_id: int,
        alias: str,
        user_id: int | None,
    ) -> IssuedSession:
        expires_at = utcnow() + timedelta(hours=settings.session_ttl_hours)
        token = create_session_token(
            tournament_id=tournament_id,
            alias=alias,
            user_id=user_id,
            expires_at=expires_at,
        )
        row = TournamentSession(
            token_hash=hash_session_token(token),
            tournament_id=tournament_id,
            alias=alias,
            user_id=user_id,
            expires_at=expires_at,
        )
        self.db.add(row)
        await self.db.flush()
        return IssuedSession(
            token=token,
            session_id=row.id,
            tournament_id=tournament_id,
            alias=alias,
            user_id=user_id,
            expires_at=expires_at,
        )

    async def issue_session_token(
        self,
        tournament_id: int,
        alias: str,
        user_id: int | None = None,
    ) -> IssuedSession:
        async with transaction(self.db):
            await self.registry.get_tournament(tournament_id)
            issued = await self._store_session(tournament_id, alias, user_id)
        logger.info("Issued session %s for %r in tournament %s", issued.session_id, alias, tournament_id)
        return issued

    async def join_with_session(
        self,
        tournament_id: int,
        alias: str | None,
        user_id: int | None = None,
    ) -> tuple[TournamentPlayer, IssuedSession]:
        """Register a player and hand out their session token atomically."""
        async with transaction(self.db):
            player = await self.registry.add_player(tournament_id, alias, user_id)
            issued = await self._store_session(tournament_id, player.alias, user_id)
        logger.info(
            "Player %r joined tournament %s with session %s",
            player.alias,
            tournament_id,
            issued.session_id,
        )
        return player, issued

    @staticmethod
    def verify_token_signature(token: str) -> dict:
        """Check signature and expiry claim only; no storage access."""
        try:
            return decode_session_token(token)
        except SessionTokenError as exc:
            raise AuthError("Invalid token format") from exc

    async def lookup_active_session(self, token: str) -> TournamentSession:
        result = await self.db.execute(
            select(TournamentSession).where(
                TournamentSession.token_hash == hash_session_token(token),
                TournamentSession.expires_at > utcnow(),
            )
        )
        row = result.scalar_one_or_none()
        if row is None:
            raise AuthError("Invalid or expired token")
        return row

    async def validate_token(self, token: str) -> SessionInfo:
        self.verify_token_signature(token)
        row = await self.lookup_active_session(token)
        return SessionInfo.from_row(row)

    async def get_session(self, session_id: int) -> SessionInfo:
        result = await self.db.execute(
            select(TournamentSession, Tournament.name)
            .join(Tournament, Tournament.id == TournamentSession.tournament_id)
            .where(TournamentSession.id == session_id)
        )
        row = result.first()
        if row is None:
            raise NotFoundError("Session not found")
        session, tournament_name = row
        return SessionInfo.from_row(session, tournament_name=tournament_name)

    async def delete_session(self, session_id: int) -> bool:
        async with transaction(self.db):
            result = await self.db.execute(
                delete(TournamentSession).where(TournamentSession.id == session_id)
            )
        deleted = result.rowcount > 0
        if deleted:
            logger.info("Deleted session %s", session_id)
        return deleted

    async def cleanup_expired_sessions(self) -> int:
        async with transaction(self.db):
            result = await self.db.execute(
                delete(TournamentSession).where(TournamentSession.expires_at <= utcnow())
            )
        cleaned = result.rowcount or 0
        logger.info("Removed %s expired sessions", cleaned)
        return cleaned
