import asyncio
import logging

from pong_tournament.tasks import celery_app
from pong_tournament.database import AsyncSessionLocal, engine
from pong_tournament.services.session_tokens import SessionTokenService

logger = logging.getLogger(__name__)


def run_async(coro):
    """Helper to run async code in sync context."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


async def _cleanup_expired_sessions():
    """Delete session rows whose expiry has passed."""
    try:
        async with AsyncSessionLocal() as db:
            cleaned = await SessionTokenService(db).cleanup_expired_sessions()
            return {"cleaned": cleaned}
    finally:
        # Pooled connections belong to this task's event loop
        await engine.dispose()


@celery_app.task(name="pong_tournament.tasks.session_tasks.cleanup_expired_sessions")
def cleanup_expired_sessions():
    """Celery task: Sweep expired tournament sessions."""
    result = run_async(_cleanup_expired_sessions())
    logger.info("Session sweep finished: %s", result)
    return result
