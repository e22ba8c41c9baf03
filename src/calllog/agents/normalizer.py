"""
Agent log normalizer.

Converts fetched log dicts into clean field dicts that map directly onto
CallLog columns. No DB access here; the persister handles writes.

Agent servers are not consistent about key naming. The JSON endpoint of some
servers emits camelCase keys ("callSid", "userSaid"), others emit snake_case
("call_sid", "user_speech"), and the text export is parsed into camelCase.
Each column lists its accepted source keys in precedence order; the first one
holding a non-empty value wins:

  column         source keys
  call_sid       callSid, call_sid
  phone_number   phoneNumber, phone_number, from_number
  to_number      toNumber, to_number
  user_said      userSaid, user_speech
  bot_response   botResponse, bot_response
  intent         intent, detected_intent
  session_id     sessionId, session_id
"""
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

FIELD_ALIASES = {
    "call_sid": ("callSid", "call_sid"),
    "phone_number": ("phoneNumber", "phone_number", "from_number"),
    "to_number": ("toNumber", "to_number"),
    "user_said": ("userSaid", "user_speech"),
    "bot_response": ("botResponse", "bot_response"),
    "intent": ("intent", "detected_intent"),
    "session_id": ("sessionId", "session_id"),
}


def _first_present(raw: Dict[str, Any], keys) -> Optional[Any]:
    for key in keys:
        value = raw.get(key)
        if value is not None and value != "":
            return value
    return None


def _to_naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_log_timestamp(value: Any) -> datetime:
    """Parse a record timestamp into a naive UTC datetime.

    Accepts datetimes (text export), ISO 8601 strings with or without a
    "Z" suffix, and numbers as epoch milliseconds.

    Raises:
        ValueError: the value cannot be read as a point in time.
    """
    if isinstance(value, datetime):
        return _to_naive_utc(value)
    if isinstance(value, bool):
        raise ValueError(f"Invalid timestamp: {value!r}")
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc).replace(tzinfo=None)
    if isinstance(value, str):
        s = value.strip()
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        return _to_naive_utc(datetime.fromisoformat(s))
    raise ValueError(f"Invalid timestamp: {value!r}")


def resolve_timestamp(raw: Dict[str, Any]) -> datetime:
    """Event time from "timestamp", then "createdAt", else now."""
    if raw.get("timestamp"):
        return parse_log_timestamp(raw["timestamp"])
    if raw.get("createdAt"):
        return parse_log_timestamp(raw["createdAt"])
    return datetime.utcnow()


def _synthetic_call_sid() -> str:
    return f"call_{int(time.time() * 1000)}_{uuid.uuid4().hex[:12]}"


def normalize_log_entry(raw: Dict[str, Any], *, user_id: int, log_hash: str) -> Dict[str, Any]:
    """
    Normalize one fetched log dict into a CallLog field dict.

    Args:
        raw: Record as fetched (JSON item or text-export record).
        user_id: Owner of the log.
        log_hash: Precomputed hash of the record as fetched.

    Returns:
        Dict with keys matching CallLog model columns.

    Raises:
        ValueError: the record's timestamp is unreadable.
    """
    fields = {column: _first_present(raw, keys) for column, keys in FIELD_ALIASES.items()}

    duration = raw.get("duration") or 0

    return {
        "user_id": user_id,
        "timestamp": resolve_timestamp(raw),
        "call_sid": str(fields["call_sid"] or _synthetic_call_sid()),
        "phone_number": str(fields["phone_number"] or ""),
        "to_number": str(fields["to_number"] or ""),
        "user_said": str(fields["user_said"] or ""),
        "bot_response": str(fields["bot_response"] or ""),
        "intent": str(fields["intent"] or ""),
        "session_id": str(fields["session_id"]) if fields["session_id"] is not None else None,
        "duration": int(round(float(duration))),
        "status": str(raw.get("status") or "completed"),
        "agent": str(raw.get("agent") or ""),
        "log_hash": log_hash,
    }
