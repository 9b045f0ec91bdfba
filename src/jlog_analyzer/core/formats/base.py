"""Parser interface and priority inference."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from ..models import DEFAULT_PRIORITY, LogEntry


class LogParser(Protocol):
    """Parser interface: return LogEntry if line matches, else None."""

    def parse(self, line_no: int, line: str) -> LogEntry | None:
        """Parse a log line into a LogEntry if recognized."""
        ...


# Ordered ladder: the first tier with a matching keyword wins.
PRIORITY_KEYWORDS: tuple[tuple[int, Sequence[str]], ...] = (
    (2, ("panic", "fatal", "critical")),
    (3, ("error", "failed", "failure", "cannot", "unable to", "segfault", "exception")),
    (4, ("warning", "warn", "timeout", "timed out", "retrying", "deprecated", "denied", "refused")),
    (5, ("started", "stopped", "connected", "disconnected", "loaded", "finished")),
)


def infer_priority(message: str) -> int:
    """Guess a syslog priority from message keywords (case-insensitive)."""
    lower = message.lower()
    for priority, keywords in PRIORITY_KEYWORDS:
        if any(k in lower for k in keywords):
            return priority
    return DEFAULT_PRIORITY


def coerce_priority(value: object) -> int:
    """Map a raw priority field to 0..7, defaulting to info."""
    if isinstance(value, bool):
        return DEFAULT_PRIORITY
    if isinstance(value, int):
        num = value
    elif isinstance(value, str):
        try:
            num = int(value.strip())
        except ValueError:
            return DEFAULT_PRIORITY
    else:
        return DEFAULT_PRIORITY
    if 0 <= num <= 7:
        return num
    return DEFAULT_PRIORITY
