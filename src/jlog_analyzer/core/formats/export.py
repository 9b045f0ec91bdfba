"""Parser for the plaintext export format."""

from __future__ import annotations

import re
from dataclasses import dataclass

from ..models import LogEntry, parse_timestamp


@dataclass(frozen=True, slots=True)
class ExportTextParser:
    """Parse `<timestamp> <service>[<priority>]: <message>` records.

    The timestamp is optional because entries without one are saved with an
    empty timestamp field.
    """

    _re = re.compile(
        r"^(?:(?P<ts>\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2})\s+)?"
        r"(?P<service>\S+?)\[(?P<pri>[0-7])\]:\s?"
        r"(?P<msg>.*)$"
    )

    def parse(self, line_no: int, line: str) -> LogEntry | None:
        """Parse a saved plaintext record into a LogEntry."""
        m = self._re.match(line.strip())
        if not m:
            return None

        ts = m.group("ts") or ""
        return LogEntry(
            line_no=line_no,
            timestamp=ts,
            priority=int(m.group("pri")),
            service=m.group("service"),
            message=m.group("msg"),
            epoch=parse_timestamp(ts),
        )
