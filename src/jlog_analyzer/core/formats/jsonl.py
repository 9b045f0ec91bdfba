"""Structured JSON-lines parser (journalctl -o json and saved exports)."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from ..models import UNKNOWN_SERVICE, LogEntry, format_epoch, parse_timestamp
from .base import coerce_priority

REALTIME_KEY = "__REALTIME_TIMESTAMP"
PRIORITY_KEY = "PRIORITY"
IDENTIFIER_KEY = "SYSLOG_IDENTIFIER"
UNIT_KEY = "_SYSTEMD_UNIT"
MESSAGE_KEY = "MESSAGE"

_JOURNAL_KEYS = (REALTIME_KEY, PRIORITY_KEY, IDENTIFIER_KEY, UNIT_KEY, MESSAGE_KEY)
_EXPORT_KEYS = ("service", "priority", "message")


def _text(value: Any) -> str | None:
    """Return a journal field as text.

    journalctl emits non-UTF-8 or binary fields as arrays of byte values.
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, list) and all(isinstance(b, int) and 0 <= b < 256 for b in value):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def _realtime_secs(value: Any) -> int | None:
    """Convert `__REALTIME_TIMESTAMP` microseconds to seconds."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value // 1_000_000
    if isinstance(value, str):
        try:
            return int(value.strip()) // 1_000_000
        except ValueError:
            return None
    return None


@dataclass(frozen=True, slots=True)
class JournalJsonParser:
    """Parse one JSON object per line into a LogEntry.

    Recognizes journal field names first and falls back to the lowercase
    record written by the JSON export. Unknown fields are ignored.
    """

    def parse(self, line_no: int, line: str) -> LogEntry | None:
        """Parse a JSON object line into a LogEntry."""
        s = line.strip()
        if not s.startswith("{"):
            return None

        try:
            obj = json.loads(s)
        except json.JSONDecodeError:
            return None
        if not isinstance(obj, dict):
            return None

        if any(k in obj for k in _JOURNAL_KEYS) or not any(k in obj for k in _EXPORT_KEYS):
            return self._from_journal(line_no, obj)
        return self._from_export(line_no, obj)

    @staticmethod
    def _from_journal(line_no: int, obj: dict[str, Any]) -> LogEntry:
        secs = _realtime_secs(obj.get(REALTIME_KEY))
        timestamp = ""
        if secs is not None:
            try:
                timestamp = format_epoch(secs)
            except (ValueError, OverflowError, OSError):
                # Outside the datetime range: keep the entry without a time.
                secs = None
        service = _text(obj.get(IDENTIFIER_KEY)) or _text(obj.get(UNIT_KEY)) or UNKNOWN_SERVICE
        return LogEntry(
            line_no=line_no,
            timestamp=timestamp,
            priority=coerce_priority(obj.get(PRIORITY_KEY)),
            service=service,
            message=_text(obj.get(MESSAGE_KEY)) or "",
            epoch=secs,
        )

    @staticmethod
    def _from_export(line_no: int, obj: dict[str, Any]) -> LogEntry:
        ts = obj.get("timestamp")
        ts = ts if isinstance(ts, str) else ""
        return LogEntry(
            line_no=line_no,
            timestamp=ts,
            priority=coerce_priority(obj.get("priority")),
            service=_text(obj.get("service")) or UNKNOWN_SERVICE,
            message=_text(obj.get("message")) or "",
            epoch=parse_timestamp(ts),
        )
