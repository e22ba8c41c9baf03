"""
CallLogSyncService: pulls call logs from the agent servers into the DB.

Flow for one user:
  1. Resolve the user by username
  2. Fetch and merge logs from every agent server
  3. Detect which fetched logs are new (count short-circuit, then hash diff)
  4. Persist the new logs
  5. Record the fetched count in the user's sync status

Nothing here raises to the caller; failures are logged and reported in the
returned counts.

Bulk sync walks users one at a time with a fixed pause between them to keep
the request rate against the agent servers bounded.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from calllog.agents.client import AgentLogFetcher
from calllog.config import get_settings
from calllog.db.store import CallLogStore
from calllog.models.user import User
from calllog.sync.detector import NewLogDetector
from calllog.sync.persister import LogPersister
from calllog.sync.status import SyncStatusTracker

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    processed: int = 0
    errors: int = 0
    skipped: bool = False
    message: Optional[str] = None


class CallLogSyncService:
    """Orchestrates agent servers → DB sync for one user or all users."""

    def __init__(
        self,
        fetcher: AgentLogFetcher,
        store: CallLogStore,
        *,
        sync_delay: float = 1.0,
        canonical_hash: bool = False,
    ):
        """
        Args:
            fetcher: AgentLogFetcher (or AsyncMock in tests).
            store: CallLogStore over the application database.
            sync_delay: Seconds to wait between users in sync_all().
            canonical_hash: Hash records with sorted keys.
        """
        self.fetcher = fetcher
        self.store = store
        self.sync_delay = sync_delay
        self.tracker = SyncStatusTracker(store)
        self.detector = NewLogDetector(store, self.tracker, canonical_hash=canonical_hash)
        self.persister = LogPersister(store, canonical_hash=canonical_hash)

    async def sync_user(self, username: str) -> SyncResult:
        """Sync one user's logs. Returns counts; never raises."""
        try:
            user = self.store.find_user_by_username(username)
            if user is None:
                logger.warning("User not found: %s", username)
                return SyncResult(errors=1, message="User not found")

            logger.info("Checking logs for user: %s", username)
            result = await self._sync_resolved_user(user)
            if result.skipped:
                logger.info("%s: no new logs to process", username)
            else:
                logger.info(
                    "%s: %d new logs processed, %d errors",
                    username, result.processed, result.errors,
                )
            return result

        except Exception as exc:
            logger.exception("Error syncing user %s", username)
            return SyncResult(errors=1, message=str(exc))

    async def sync_all(self) -> None:
        """Sync every user that has a username, one after another."""
        logger.info("Starting call log sync for all users")
        run_id = None
        try:
            run_id = self.store.create_sync_run().id
        except Exception as exc:
            logger.error("Could not record sync run: %s", exc)

        try:
            users = self.store.find_users_with_username()
        except Exception as exc:
            logger.error("Sync process failed: %s", exc)
            self._finish_run(run_id, status="error", error_message=str(exc))
            return

        logger.info("Found %d users to sync", len(users))
        total_processed = 0
        total_errors = 0
        total_skipped = 0

        for i, user in enumerate(users):
            if i > 0:
                await asyncio.sleep(self.sync_delay)

            logger.info("Checking logs for user: %s", user.username)
            try:
                result = await self._sync_resolved_user(user)
            except Exception as exc:
                logger.error("Failed to sync user %s: %s", user.username, exc)
                total_errors += 1
                continue

            total_processed += result.processed
            total_errors += result.errors
            if result.skipped:
                total_skipped += 1
                logger.info("User %s: skipped (no new logs)", user.username)
            else:
                logger.info(
                    "User %s: %d new logs processed, %d errors",
                    user.username, result.processed, result.errors,
                )

        logger.info(
            "Sync complete: %d new logs processed, %d errors, %d users skipped",
            total_processed, total_errors, total_skipped,
        )
        self._finish_run(
            run_id,
            status="success",
            users_total=len(users),
            users_skipped=total_skipped,
            logs_processed=total_processed,
            errors=total_errors,
        )

    async def fetch_merged_logs(self, username: str) -> List[Dict[str, Any]]:
        """Merged logs straight from the agent servers, without persisting."""
        return await self.fetcher.fetch_logs_for_user(username)

    # ─── Internal helpers ─────────────────────────────────────────────────────

    async def _sync_resolved_user(self, user: User) -> SyncResult:
        logs = await self.fetcher.fetch_logs_for_user(user.username)
        if not logs:
            # Empty can mean every agent was unreachable; leave the sync status alone.
            logger.info("No logs fetched for user %s", user.username)
            return SyncResult(message="No logs found")

        detection = self.detector.detect_new(user.username, logs)
        if not detection.has_new:
            return SyncResult(skipped=True, message="No new logs found")

        logger.info(
            "Processing %d new logs for user %s (total available: %d)",
            len(detection.new_logs), user.username, len(logs),
        )
        persisted = self.persister.persist(user, detection.new_logs)

        # Total fetched, not new-only, so the next count short-circuit is accurate
        self.tracker.update_status(user.id, user.username, len(logs))

        return SyncResult(processed=persisted.processed, errors=persisted.errors)

    def _finish_run(self, run_id: Optional[int], **fields) -> None:
        if run_id is None:
            return
        try:
            self.store.finish_sync_run(run_id, **fields)
        except Exception as exc:
            logger.error("Failed to record sync run %s: %s", run_id, exc)


def build_sync_service(engine, http_client=None) -> CallLogSyncService:
    """Build a CallLogSyncService wired from settings."""
    settings = get_settings()
    fetcher = AgentLogFetcher(
        settings.agent_server_urls,
        timeout=settings.agent_request_timeout,
        canonical_hash=settings.canonical_log_hash,
        http_client=http_client,
    )
    return CallLogSyncService(
        fetcher=fetcher,
        store=CallLogStore(engine),
        sync_delay=settings.sync_delay_seconds,
        canonical_hash=settings.canonical_log_hash,
    )


async def sync_specific_user(username: str) -> SyncResult:
    """On-demand sync for one user against the application database."""
    from calllog.db.engine import get_engine

    return await build_sync_service(get_engine()).sync_user(username)


async def sync_all_user_logs() -> None:
    """Scheduled sync of every user against the application database."""
    from calllog.db.engine import get_engine

    await build_sync_service(get_engine()).sync_all()
