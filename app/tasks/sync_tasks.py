import logging
from datetime import timedelta

from app.tasks import celery_app
from app.database import AsyncSessionLocal
from app.services.sportmonks_client import SportmonksClient
from app.services.sync import SyncOrchestrator
from app.config import get_settings, require_sportmonks_settings
from app.utils.async_celery import run_async
from app.utils.timestamps import utcnow

logger = logging.getLogger(__name__)


async def _sync_upcoming_fixtures():
    """Sync fixtures from yesterday (late results) to sync_days_ahead."""
    settings = require_sportmonks_settings(get_settings())
    today = utcnow().date()
    async with AsyncSessionLocal() as db:
        orchestrator = SyncOrchestrator(db, SportmonksClient(settings), settings)
        summary = await orchestrator.sync_fixtures(
            date_from=today - timedelta(days=1),
            date_to=today + timedelta(days=settings.sync_days_ahead),
        )
        return summary.to_dict()


async def _sync_live_fixtures():
    settings = require_sportmonks_settings(get_settings())
    async with AsyncSessionLocal() as db:
        orchestrator = SyncOrchestrator(db, SportmonksClient(settings), settings)
        summary = await orchestrator.sync_live()
        return summary.to_dict()


async def _apply_station_mappings():
    async with AsyncSessionLocal() as db:
        orchestrator = SyncOrchestrator(db)
        count = await orchestrator.apply_station_mappings()
        return {"broadcasts_updated": count}


@celery_app.task(name="app.tasks.sync_tasks.sync_upcoming_fixtures")
def sync_upcoming_fixtures():
    """Celery task: Sync fixtures around today from Sportmonks."""
    result = run_async(_sync_upcoming_fixtures())
    logger.info(f"Scheduled fixture sync finished: {result['status']}")
    return result


@celery_app.task(name="app.tasks.sync_tasks.sync_live_fixtures")
def sync_live_fixtures():
    """Celery task: Update status and scores of in-play fixtures."""
    result = run_async(_sync_live_fixtures())
    if result["processed"]:
        logger.info(f"Live sync: {result['updated']} fixtures updated")
    return result


@celery_app.task(name="app.tasks.sync_tasks.apply_station_mappings")
def apply_station_mappings():
    """Celery task: Link unmapped broadcasts to newly mapped providers."""
    return run_async(_apply_station_mappings())
