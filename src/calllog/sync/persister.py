"""
Log persister: writes new logs, one row per record, keyed by log_hash.

Per record:
  1. Hash and normalize (timestamp, field aliases).
  2. Insert. A duplicate log_hash means another sync got there first; the
     record is skipped and not counted as an error.
  3. Any other insert failure gets a single upsert by log_hash. If that fails
     too, the record counts as an error and the batch carries on.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List

from calllog.agents.normalizer import normalize_log_entry
from calllog.errors import DuplicateLogError
from calllog.hashing import log_hash
from calllog.models.user import User

logger = logging.getLogger(__name__)


@dataclass
class PersistResult:
    processed: int = 0
    errors: int = 0


class LogPersister:
    def __init__(self, store, *, canonical_hash: bool = False):
        self.store = store
        self.canonical_hash = canonical_hash

    def persist(self, user: User, new_logs: List[Dict[str, Any]]) -> PersistResult:
        """Write new_logs for user. Never raises; failures are counted."""
        result = PersistResult()

        for entry in new_logs:
            try:
                h = log_hash(entry, canonical=self.canonical_hash)
                fields = normalize_log_entry(entry, user_id=user.id, log_hash=h)

                try:
                    self.store.create_log(fields)
                except DuplicateLogError:
                    logger.info("Log with hash %s already exists, skipping", h)
                    continue
                except Exception as exc:
                    logger.warning("Create failed for log %s (%s), retrying as upsert", h, exc)
                    self.store.upsert_log_by_hash(fields)

                result.processed += 1

            except Exception as exc:
                logger.error("Error processing log entry for %s: %s", user.username, exc)
                result.errors += 1

        return result
