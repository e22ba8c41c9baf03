"""
Parser for the plain-text transcript export served by some agent servers.

The export is a sequence of sections separated by a line of 50 dashes, one
section per exchange:

    [2025-01-15 09:30:00]
    CallSid: CA123
    From Number: +15550100
    To Number: +15550199
    User Speech: I'd like to book an appointment
    Detected Intent: book_appointment
    Bot Response: Sure, what time works: morning or afternoon?
    --------------------------------------------------

Field mapping from the export to record keys:
  CallSid          → callSid
  From Number      → phoneNumber
  To Number        → toNumber
  User Speech      → userSaid
  Detected Intent  → intent
  Bot Response     → botResponse

Records come out with the same camelCase keys the JSON endpoint uses, so the
rest of the pipeline treats both formats alike.
"""
import logging
import re
from datetime import datetime
from typing import Any, Dict, List

logger = logging.getLogger(__name__)

SECTION_DELIMITER = "-" * 50

_TIMESTAMP_LINE = re.compile(r"^\[(\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2})\]$")

_FIELD_MAP = {
    "CallSid": "callSid",
    "From Number": "phoneNumber",
    "To Number": "toNumber",
    "User Speech": "userSaid",
    "Detected Intent": "intent",
    "Bot Response": "botResponse",
}


def parse_text_logs(text: str) -> List[Dict[str, Any]]:
    """
    Parse a transcript export into log record dicts.

    Sections without a CallSid, or with neither user speech nor a bot
    response, are dropped. A section that fails to parse is skipped with a
    warning and does not stop the sections after it.

    Returns:
        Records in export order, each with a per-call "duration" (seconds).
    """
    logs: List[Dict[str, Any]] = []

    for section in text.split(SECTION_DELIMITER):
        if not section.strip():
            continue
        try:
            log = _parse_section(section)
        except Exception as exc:
            logger.warning("Skipping malformed log section: %s", exc)
            continue
        if log.get("callSid") and (log.get("userSaid") or log.get("botResponse")):
            logs.append(log)

    return calculate_call_durations(logs)


def _parse_section(section: str) -> Dict[str, Any]:
    log: Dict[str, Any] = {}
    for line in section.strip().splitlines():
        line = line.strip()
        if not line:
            continue

        match = _TIMESTAMP_LINE.match(line)
        if match:
            log["timestamp"] = datetime.strptime(match.group(1), "%Y-%m-%d %H:%M:%S")
            continue

        if ":" in line:
            key, value = line.split(":", 1)
            field = _FIELD_MAP.get(key.strip())
            if field:
                log[field] = value.strip()
    return log


def calculate_call_durations(logs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Set "duration" on every record to the length of its call in whole seconds.

    Records are grouped by callSid; a call's duration is the span between its
    earliest and latest timestamp, or 0 for a single-turn call. Records
    without a timestamp take the call's duration but do not contribute to it.
    The input list keeps its order; each group is sorted by timestamp.
    """
    groups: Dict[str, List[Dict[str, Any]]] = {}
    for log in logs:
        groups.setdefault(log["callSid"], []).append(log)

    for call_logs in groups.values():
        call_logs.sort(
            key=lambda log: (log.get("timestamp") is None, log.get("timestamp") or datetime.min)
        )
        stamps = [log["timestamp"] for log in call_logs if log.get("timestamp") is not None]

        duration = 0
        if len(call_logs) > 1 and len(stamps) > 1:
            duration = int(round((stamps[-1] - stamps[0]).total_seconds()))

        for log in call_logs:
            log["duration"] = duration

    return logs
