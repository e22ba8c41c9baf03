"""
APScheduler jobs for background sync.

The interval job pulls new call logs for every user. It stands in for the
application's cron trigger and runs inside the same process as the CLI
entrypoint (wired in __main__.py).
"""
import logging
from datetime import datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from calllog.config import get_settings

logger = logging.getLogger(__name__)


def build_scheduler(engine) -> AsyncIOScheduler:
    """
    Create and configure the APScheduler.

    Args:
        engine: SQLAlchemy engine to pass to the sync service.

    Returns:
        Configured AsyncIOScheduler (not yet started).
    """
    settings = get_settings()
    scheduler = AsyncIOScheduler()

    scheduler.add_job(
        _sync_all_logs,
        trigger="interval",
        minutes=settings.sync_interval_minutes,
        id="sync_all_logs",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        kwargs={"engine": engine},
    )

    return scheduler


async def _sync_all_logs(engine) -> None:
    """
    Periodic job: sync call logs for every user.

    Idempotent; overlapping runs are prevented by max_instances=1.
    """
    from calllog.sync.service import build_sync_service

    logger.info("Scheduled log sync starting at %s", datetime.utcnow().isoformat())

    try:
        service = build_sync_service(engine)
        await service.sync_all()
    except Exception as exc:
        logger.error("Scheduled log sync failed: %s", exc)
