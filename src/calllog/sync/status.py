"""Per-user sync bookkeeping."""
import logging
from typing import Optional

from calllog.models.sync import UserSyncStatus

logger = logging.getLogger(__name__)


class SyncStatusTracker:
    def __init__(self, store):
        self.store = store

    def get_status(self, username: str) -> Optional[UserSyncStatus]:
        return self.store.find_sync_status(username)

    def update_status(self, user_id: int, username: str, total_log_count: int) -> None:
        """Record a sync of total_log_count fetched logs. Write failures are logged, not raised."""
        try:
            self.store.upsert_sync_status(user_id, username, total_log_count)
        except Exception as exc:
            logger.error("Error updating sync status for %s: %s", username, exc)
