"""Background job scheduler for the installer API.

Runs periodic jobs for:
- Pruning finished installations from the progress relay
"""

import logging
from datetime import timedelta

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from scalardb_setup.config import settings
from scalardb_setup.core.progress_relay import progress_relay

logger = logging.getLogger(__name__)

# Global scheduler instance
_scheduler: AsyncIOScheduler | None = None


async def prune_installations_job() -> None:
    """Hourly job: drop finished installations past the retention window."""
    logger.debug("Running installation retention job")
    progress_relay.prune(timedelta(hours=settings.installation_retention_hours))


def start_scheduler() -> AsyncIOScheduler:
    """Start the background job scheduler."""
    global _scheduler

    if _scheduler is not None:
        logger.warning("Scheduler already running")
        return _scheduler

    _scheduler = AsyncIOScheduler()

    _scheduler.add_job(
        prune_installations_job,
        IntervalTrigger(hours=1),
        id="prune_installations",
        name="Prune finished installations (retention)",
        replace_existing=True,
    )

    _scheduler.start()
    logger.info("Background scheduler started with %d jobs", len(_scheduler.get_jobs()))
    return _scheduler


def stop_scheduler() -> None:
    """Stop the background job scheduler."""
    global _scheduler

    if _scheduler is None:
        return

    _scheduler.shutdown(wait=False)
    _scheduler = None
    logger.info("Background scheduler stopped")
