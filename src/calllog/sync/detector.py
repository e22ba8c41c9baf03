"""
New-log detection.

Two checks, cheapest first:
  1. Count short-circuit: if the user has a sync status and the fetched set
     has exactly as many logs as the last sync saw, nothing is new. Agent
     servers only ever append, so an equal count means unchanged content.
  2. Hash diff: otherwise, compare each fetched log's hash with every hash
     already stored for the user. A missing sync status goes straight to the
     diff; rows may exist from before sync tracking started.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from calllog.hashing import log_hash
from calllog.sync.status import SyncStatusTracker

logger = logging.getLogger(__name__)


@dataclass
class DetectionResult:
    has_new: bool
    new_logs: List[Dict[str, Any]] = field(default_factory=list)


class NewLogDetector:
    def __init__(self, store, tracker: SyncStatusTracker, *, canonical_hash: bool = False):
        self.store = store
        self.tracker = tracker
        self.canonical_hash = canonical_hash

    def detect_new(self, username: str, fetched_logs: List[Dict[str, Any]]) -> DetectionResult:
        """
        Return the fetched logs not yet stored for the user.

        Store errors are logged and reported as "nothing new" so a broken read
        can never lead to duplicate inserts.
        """
        try:
            status = self.tracker.get_status(username)
            if status is None:
                logger.info("First time sync for user %s", username)
            elif len(fetched_logs) == status.total_log_count:
                logger.info("No new logs for user %s (count: %d)", username, len(fetched_logs))
                return DetectionResult(has_new=False)

            new_logs = self._diff(username, fetched_logs)
        except Exception as exc:
            logger.error("Error checking for new logs for %s: %s", username, exc)
            return DetectionResult(has_new=False)

        if new_logs:
            logger.info("Found %d new logs for user %s", len(new_logs), username)
        else:
            logger.info("No new logs for user %s after hash comparison", username)
        return DetectionResult(has_new=bool(new_logs), new_logs=new_logs)

    def _diff(self, username: str, fetched_logs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        existing = self.store.find_log_hashes_by_username(username)
        return [
            log for log in fetched_logs
            if log_hash(log, canonical=self.canonical_hash) not in existing
        ]
