"""Persisted call-log turns."""
from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class CallLog(SQLModel, table=True):
    """
    One row per call turn fetched from an agent server.

    A call with several exchanges produces several rows sharing call_sid;
    duration is the whole call's length and is identical across them.
    """

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    timestamp: datetime

    call_sid: str = Field(index=True)
    phone_number: str = ""
    to_number: str = ""
    user_said: str = ""
    bot_response: str = ""
    intent: str = ""
    session_id: Optional[str] = None
    duration: int = 0  # seconds
    status: str = "completed"
    agent: str = ""  # agent server label, e.g. "Hospital"

    # SHA-256 of the fetched record; idempotency key across sync cycles
    log_hash: str = Field(unique=True, index=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
