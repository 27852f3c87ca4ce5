from celery import Celery
from celery.schedules import crontab
from celery.signals import worker_process_shutdown

from app.config import Settings, get_settings
from app.utils.async_celery import cleanup_event_loop

settings = get_settings()

celery_app = Celery(
    "fixtures_sync_tasks",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["app.tasks.sync_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="Europe/London",
    enable_utc=True,
)


def build_beat_schedule(settings: Settings) -> dict:
    """Periodic tasks; none unless Sportmonks sync is enabled."""
    if not settings.sportmonks_sync_enabled:
        return {}
    return {
        "sync-upcoming-fixtures-every-2h": {
            "task": "app.tasks.sync_tasks.sync_upcoming_fixtures",
            "schedule": crontab(minute=0, hour="*/2"),
        },
        # Live match polling
        "sync-live-fixtures": {
            "task": "app.tasks.sync_tasks.sync_live_fixtures",
            "schedule": settings.sportmonks_live_interval_seconds,
        },
        "apply-tv-station-mappings-daily": {
            "task": "app.tasks.sync_tasks.apply_station_mappings",
            "schedule": crontab(hour=5, minute=30),
        },
    }


celery_app.conf.beat_schedule = build_beat_schedule(settings)


@worker_process_shutdown.connect
def _close_event_loop(**kwargs):
    cleanup_event_loop()
