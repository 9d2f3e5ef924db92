import pytest
from typing import AsyncGenerator

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from pong_tournament.main import app
from pong_tournament.database import Base
from pong_tournament.api.deps import get_db  # Import from where routes actually use it
from pong_tournament.models import TournamentPlayer
from pong_tournament.services.bracket import BracketEngine
from pong_tournament.services.match_ledger import MatchLedger
from pong_tournament.services.session_tokens import SessionTokenService
from pong_tournament.services.tournaments import TournamentRegistry


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(scope="function")
async def test_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture(scope="function")
async def test_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    async with async_session() as session:
        yield session


@pytest.fixture(scope="function")
async def client(test_session) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with overridden database dependency."""

    async def override_get_db():
        yield test_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# --- Service Fixtures ---

@pytest.fixture
def registry(test_session) -> TournamentRegistry:
    return TournamentRegistry(test_session)


@pytest.fixture
def bracket_engine(test_session, registry) -> BracketEngine:
    return BracketEngine(test_session, registry)


@pytest.fixture
def ledger(test_session, registry) -> MatchLedger:
    return MatchLedger(test_session, registry)


@pytest.fixture
def session_service(test_session, registry) -> SessionTokenService:
    return SessionTokenService(test_session, registry)


# --- Data Fixtures ---

@pytest.fixture
async def cup_tournament_id(registry) -> int:
    """A waiting 4-player tournament named "Cup"."""
    tournament = await registry.create_tournament("Cup", 4)
    return tournament.id


@pytest.fixture
def join_players(registry):
    """Join the given aliases in order and return the created players."""

    async def _join(tournament_id: int, aliases: list[str]) -> list[TournamentPlayer]:
        players = []
        for alias in aliases:
            players.append(await registry.join_tournament(tournament_id, alias))
        return players

    return _join


@pytest.fixture
async def started_cup_id(cup_tournament_id, join_players, bracket_engine) -> int:
    """The "Cup" tournament with A, B, C, D joined and round 1 generated."""
    await join_players(cup_tournament_id, ["A", "B", "C", "D"])
    await bracket_engine.start_tournament(cup_tournament_id)
    return cup_tournament_id
