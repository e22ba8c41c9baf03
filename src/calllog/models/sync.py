"""Sync bookkeeping models."""
from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class UserSyncStatus(SQLModel, table=True):
    """
    Per-user record of the last sync.

    total_log_count is the size of the last fetched set, not the number of
    stored rows. It only serves the count-based short-circuit.
    """

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    username: str = Field(unique=True, index=True)
    last_sync_at: datetime = Field(default_factory=datetime.utcnow)
    total_log_count: int = 0
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class SyncRun(SQLModel, table=True):
    """Records each bulk sync run for audit and debugging."""

    id: Optional[int] = Field(default=None, primary_key=True)
    started_at: datetime = Field(default_factory=datetime.utcnow)
    finished_at: Optional[datetime] = None
    status: str = "running"  # "running", "success", "error"
    users_total: int = 0
    users_skipped: int = 0
    logs_processed: int = 0
    errors: int = 0
    error_message: Optional[str] = None
