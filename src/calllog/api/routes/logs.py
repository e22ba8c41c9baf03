"""Call log read routes."""
import logging
from dataclasses import asdict
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from calllog.api.deps import get_store, get_sync_service
from calllog.db.store import CallLogStore
from calllog.models.call_log import CallLog
from calllog.sync.service import CallLogSyncService

logger = logging.getLogger(__name__)

router = APIRouter()


class LogStats(BaseModel):
    total_call_logs: int
    last_sync: datetime


class UserLogsResponse(BaseModel):
    username: str
    synced: bool
    sync_result: Optional[Dict[str, Any]]
    call_logs: List[CallLog]
    stats: LogStats


@router.get("/{username}", response_model=UserLogsResponse)
async def user_logs(
    username: str,
    store: CallLogStore = Depends(get_store),
    service: CallLogSyncService = Depends(get_sync_service),
):
    """
    Pull the latest logs for a user, then return everything stored for them.

    If the sync fails, the stored logs are returned anyway with synced=false.
    """
    user = store.find_user_by_username(username)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")

    sync_result = None
    try:
        sync_result = asdict(await service.sync_user(username))
    except Exception as exc:
        logger.error("Sync before listing logs failed for %s: %s", username, exc)

    call_logs = store.list_logs_for_user(user.id)
    for log in call_logs:
        log.agent = log.agent or "Unknown"

    return UserLogsResponse(
        username=username,
        synced=sync_result is not None,
        sync_result=sync_result,
        call_logs=call_logs,
        stats=LogStats(total_call_logs=len(call_logs), last_sync=datetime.utcnow()),
    )


@router.get("/{username}/merged")
async def merged_logs(
    username: str,
    service: CallLogSyncService = Depends(get_sync_service),
):
    """Debug: the merged agent-server response, without touching the DB."""
    logs = await service.fetch_merged_logs(username)
    return {"debug": True, "merged_logs": logs}
