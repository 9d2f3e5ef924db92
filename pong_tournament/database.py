import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from pong_tournament.config import get_settings
from pong_tournament.errors import ConflictError, PersistenceError

logger = logging.getLogger(__name__)
settings = get_settings()

engine = create_async_engine(settings.database_url, pool_pre_ping=True)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    pass


@asynccontextmanager
async def transaction(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Run a block as a single unit of work.

    Commits when the block exits cleanly. Any exception rolls the whole
    transaction back. A constraint violation the block did not handle itself
    becomes ``ConflictError``; other storage failures become
    ``PersistenceError``. Domain errors propagate unchanged.
    """
    try:
        yield db
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        logger.warning("Transaction rolled back after constraint violation: %s", exc.orig)
        raise ConflictError("Conflicting update, please retry") from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Transaction rolled back after storage failure")
        raise PersistenceError("Storage operation failed") from exc
    except Exception:
        await db.rollback()
        raise
