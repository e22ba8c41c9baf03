"""
Main entrypoint: runs the APScheduler sync loop, or a one-off sync.

FastAPI runs separately under uvicorn.

Usage:
    python -m calllog                   # starts the scheduler
    python -m calllog sync alice        # sync one user now
    python -m calllog sync-all          # sync every user now
    uvicorn calllog.api.main:app --host 0.0.0.0 --port 8000  # starts API
"""
import argparse
import asyncio
import logging

from calllog.config import get_settings

logger = logging.getLogger(__name__)


def _configure_logging() -> None:
    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


async def _run_scheduler() -> None:
    from calllog.db.engine import get_engine
    from calllog.scheduler.jobs import build_scheduler

    settings = get_settings()
    if not settings.agent_server_urls:
        logger.warning("AGENT_SERVER_URLS is empty; syncs will fetch nothing.")

    scheduler = build_scheduler(get_engine())
    scheduler.start()
    logger.info(
        "Scheduler started (log sync every %d minutes)", settings.sync_interval_minutes
    )

    try:
        await asyncio.Event().wait()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Shutting down...")
    finally:
        scheduler.shutdown()


async def _run_sync_user(username: str) -> int:
    from calllog.sync.service import sync_specific_user

    result = await sync_specific_user(username)
    logger.info(
        "Sync result for %s: processed=%d errors=%d skipped=%s message=%s",
        username, result.processed, result.errors, result.skipped, result.message,
    )
    return 1 if result.errors else 0


async def _run_sync_all() -> int:
    from calllog.sync.service import sync_all_user_logs

    await sync_all_user_logs()
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="calllog", description="Call log sync")
    sub = parser.add_subparsers(dest="command")
    sync_parser = sub.add_parser("sync", help="Sync one user's logs now")
    sync_parser.add_argument("username")
    sub.add_parser("sync-all", help="Sync every user's logs now")
    args = parser.parse_args(argv)

    _configure_logging()

    if args.command == "sync":
        return asyncio.run(_run_sync_user(args.username))
    if args.command == "sync-all":
        return asyncio.run(_run_sync_all())
    asyncio.run(_run_scheduler())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
