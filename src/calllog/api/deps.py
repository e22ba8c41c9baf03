"""Shared FastAPI dependencies."""
from calllog.db.engine import get_engine
from calllog.db.store import CallLogStore
from calllog.sync.service import CallLogSyncService, build_sync_service


def get_store() -> CallLogStore:
    return CallLogStore(get_engine())


def get_sync_service() -> CallLogSyncService:
    return build_sync_service(get_engine())
