from celery import Celery

from pong_tournament.config import get_settings

settings = get_settings()

celery_app = Celery(
    "pong_tasks",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["pong_tournament.tasks.session_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
)

if settings.session_cleanup_enabled:
    celery_app.conf.beat_schedule = {
        "cleanup-expired-sessions": {
            "task": "pong_tournament.tasks.session_tasks.cleanup_expired_sessions",
            "schedule": settings.session_cleanup_interval_minutes * 60.0,
        },
    }
else:
    celery_app.conf.beat_schedule = {}
