import logging
from collections.abc import AsyncGenerator

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from pong_tournament.database import AsyncSessionLocal
from pong_tournament.security import AccessTokenError, access_token_user_id, decode_access_token
from pong_tournament.services.bracket import BracketEngine
from pong_tournament.services.match_ledger import MatchLedger
from pong_tournament.services.session_tokens import SessionTokenService
from pong_tournament.services.tournaments import TournamentRegistry

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session


def get_registry(db: AsyncSession = Depends(get_db)) -> TournamentRegistry:
    return TournamentRegistry(db)


def get_bracket_engine(
    db: AsyncSession = Depends(get_db),
    registry: TournamentRegistry = Depends(get_registry),
) -> BracketEngine:
    return BracketEngine(db, registry)


def get_match_ledger(
    db: AsyncSession = Depends(get_db),
    registry: TournamentRegistry = Depends(get_registry),
) -> MatchLedger:
    return MatchLedger(db, registry)


def get_session_service(
    db: AsyncSession = Depends(get_db),
    registry: TournamentRegistry = Depends(get_registry),
) -> SessionTokenService:
    return SessionTokenService(db, registry)


async def get_optional_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> int | None:
    """Account id from a bearer access token, or None for anonymous callers.

    A bad token is not an error here: the caller simply plays anonymously.
    """
    if not credentials or credentials.scheme.lower() != "bearer":
        return None

    try:
        return access_token_user_id(decode_access_token(credentials.credentials))
    except AccessTokenError as exc:
        logger.warning("Ignoring invalid bearer token, proceeding anonymously: %s", exc)
        return None
