"""
Content fingerprint for fetched log records.

The digest covers the record exactly as serialized, so key insertion order
is part of the identity: two fetches of the same event hash identically only
while the agent server keeps emitting fields in the same order. Hashes already
stored were produced this way; canonical=True (sorted keys) must only be
switched on for a fresh store or after re-hashing the existing rows.
"""
import hashlib
import json
from datetime import date, datetime, timezone
from typing import Any, Dict


def _json_default(value: Any) -> str:
    """Serialize datetimes the way a JSON.stringify of a Date does (UTC, ms, Z)."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value.isoformat(timespec="milliseconds") + "Z"
    if isinstance(value, date):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _integral_floats_to_int(value: Any) -> Any:
    """Write 25.0 as 25, matching JSON.stringify's number output."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, dict):
        return {k: _integral_floats_to_int(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_integral_floats_to_int(v) for v in value]
    return value


def serialize_record(record: Dict[str, Any], canonical: bool = False) -> str:
    return json.dumps(
        _integral_floats_to_int(record),
        default=_json_default,
        ensure_ascii=False,
        separators=(",", ":"),
        sort_keys=canonical,
    )


def log_hash(record: Dict[str, Any], canonical: bool = False) -> str:
    """Return the SHA-256 hex digest (64 chars) of the record's serialization."""
    return hashlib.sha256(
        serialize_record(record, canonical=canonical).encode("utf-8")
    ).hexdigest()
