"""Sync trigger and status routes."""
from dataclasses import asdict
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from pydantic import BaseModel

from calllog.api.deps import get_store, get_sync_service
from calllog.db.store import CallLogStore
from calllog.sync.service import CallLogSyncService

router = APIRouter()


class SyncResultResponse(BaseModel):
    processed: int
    errors: int
    skipped: bool
    message: Optional[str]


class UserSyncStatusResponse(BaseModel):
    username: str
    last_sync_at: datetime
    total_log_count: int


class SyncRunResponse(BaseModel):
    status: str
    started_at: Optional[datetime]
    finished_at: Optional[datetime]
    users_total: Optional[int]
    users_skipped: Optional[int]
    logs_processed: Optional[int]
    errors: Optional[int]
    error_message: Optional[str]


@router.post("/users/{username}", response_model=SyncResultResponse)
async def sync_user(
    username: str,
    service: CallLogSyncService = Depends(get_sync_service),
):
    """Sync one user's logs now and return the counts."""
    result = await service.sync_user(username)
    return SyncResultResponse(**asdict(result))


@router.post("/all")
async def sync_all(
    background_tasks: BackgroundTasks,
    service: CallLogSyncService = Depends(get_sync_service),
):
    """
    Trigger a bulk sync of every user.
    Returns immediately; sync runs in background.
    """
    background_tasks.add_task(service.sync_all)
    return {"message": "Sync started"}


@router.get("/users/{username}/status", response_model=UserSyncStatusResponse)
def user_sync_status(username: str, store: CallLogStore = Depends(get_store)):
    """Return the user's sync bookkeeping."""
    status = store.find_sync_status(username)
    if status is None:
        raise HTTPException(status_code=404, detail="No sync status for user")
    return UserSyncStatusResponse(
        username=status.username,
        last_sync_at=status.last_sync_at,
        total_log_count=status.total_log_count,
    )


@router.get("/runs/latest", response_model=SyncRunResponse)
def latest_run(store: CallLogStore = Depends(get_store)):
    """Return the status of the most recent bulk sync."""
    run = store.latest_sync_run()
    if not run:
        return SyncRunResponse(
            status="never_run",
            started_at=None,
            finished_at=None,
            users_total=None,
            users_skipped=None,
            logs_processed=None,
            errors=None,
            error_message=None,
        )
    return SyncRunResponse(
        status=run.status,
        started_at=run.started_at,
        finished_at=run.finished_at,
        users_total=run.users_total,
        users_skipped=run.users_skipped,
        logs_processed=run.logs_processed,
        errors=run.errors,
        error_message=run.error_message,
    )
