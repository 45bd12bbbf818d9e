"""Background job scheduler for metric collection and recommendation refresh."""

import logging
from datetime import datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from cloudops.api.services.analytics_service import AnalyticsService
from cloudops.api.services.inventory_client import InventoryProvider, get_inventory_provider
from cloudops.api.services.recommendation_service import RecommendationService
from cloudops.core.config import get_settings
from cloudops.core.database import get_db_context

logger = logging.getLogger(__name__)
settings = get_settings()

# Global scheduler instance
scheduler: AsyncIOScheduler | None = None


async def collect_metrics(
    user_ids: list[str] | None = None,
    inventory: InventoryProvider | None = None,
) -> int:
    """Collect and store metric history for every monitored user.

    A failure for one user is logged and the remaining users still run.
    Returns the number of users that failed.
    """
    user_ids = settings.monitored_user_ids if user_ids is None else user_ids
    inventory = inventory or get_inventory_provider()
    logger.info(f"Starting metric collection for {len(user_ids)} user(s) at {datetime.utcnow()}")

    total_errors = 0
    for user_id in user_ids:
        try:
            with get_db_context() as db:
                result = await AnalyticsService(db, inventory).collect_and_store_metrics(user_id)
            logger.info(f"Collected {result.count} metrics for user {user_id}")
        except Exception as e:
            total_errors += 1
            logger.error(f"Metric collection failed for user {user_id}: {e}", exc_info=True)

    logger.info(f"Metric collection completed: {total_errors} errors encountered")
    return total_errors


async def refresh_recommendations(
    user_ids: list[str] | None = None,
    inventory: InventoryProvider | None = None,
) -> int:
    """Regenerate recommendations for every monitored user.

    Returns the number of users that failed.
    """
    user_ids = settings.monitored_user_ids if user_ids is None else user_ids
    inventory = inventory or get_inventory_provider()
    logger.info(f"Starting recommendation refresh for {len(user_ids)} user(s) at {datetime.utcnow()}")

    total_errors = 0
    for user_id in user_ids:
        try:
            with get_db_context() as db:
                result = await RecommendationService(db, inventory).generate_recommendations(user_id)
            logger.info(f"Refreshed {result.count} recommendations for user {user_id}")
        except Exception as e:
            total_errors += 1
            logger.error(f"Recommendation refresh failed for user {user_id}: {e}", exc_info=True)

    logger.info(f"Recommendation refresh completed: {total_errors} errors encountered")
    return total_errors


def init_scheduler() -> AsyncIOScheduler:
    """Initialize and configure the background scheduler."""
    global scheduler

    scheduler = AsyncIOScheduler()

    # Metric history collection
    scheduler.add_job(
        collect_metrics,
        trigger=IntervalTrigger(minutes=settings.metrics_collection_interval_minutes),
        id="collect_metrics",
        name="Collect Metric History",
        replace_existing=True,
    )

    # Daily recommendation refresh
    scheduler.add_job(
        refresh_recommendations,
        trigger=CronTrigger(
            hour=settings.recommendation_schedule_hour,
            minute=settings.recommendation_schedule_minute,
        ),
        id="refresh_recommendations",
        name="Refresh Cost Recommendations",
        replace_existing=True,
    )

    logger.info("Scheduler initialized with metric and recommendation jobs")
    return scheduler


def get_scheduler() -> AsyncIOScheduler | None:
    """Get the scheduler instance."""
    return scheduler
