"""Traditional syslog text parser."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime

from ..models import LogEntry, format_epoch
from .base import infer_priority

_MONTHS = {
    name: idx
    for idx, name in enumerate(
        ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"),
        start=1,
    )
}


@dataclass(frozen=True, slots=True)
class SyslogParser:
    """Parse `Mon D HH:MM:SS[.frac] host service[pid]: message` lines.

    Syslog text carries no year, so the current local year is assumed and the
    time is read as local time. Files that cross a year boundary get the wrong
    year for the older part; this is a known approximation.

    An optional RFC3164 `<PRI>` prefix is honoured as the explicit severity;
    without it the priority is inferred from the message keywords.
    """

    _re = re.compile(
        r"^(?:<(?P<pri>\d{1,3})>)?"
        r"(?P<mon>[A-Z][a-z]{2}) +(?P<day>\d{1,2}) "
        r"(?P<time>\d{2}:\d{2}:\d{2})(?:\.\d+)?\s+"
        r"(?P<host>\S+)\s+"
        r"(?P<service>[^\s\[:]+)(?:\[(?P<pid>\d+)\])?:\s?"
        r"(?P<msg>.*)$"
    )

    @staticmethod
    def _epoch(mon: str, day: str, time_str: str) -> int | None:
        """Combine month/day/time with the current local year."""
        month = _MONTHS.get(mon)
        if month is None:
            return None
        hh, mm, ss = (int(p) for p in time_str.split(":"))
        year = datetime.now().year
        try:
            local = datetime(year, month, int(day), hh, mm, ss)
        except ValueError:
            return None
        return int(local.timestamp())

    def parse(self, line_no: int, line: str) -> LogEntry | None:
        """Parse a syslog text line into a LogEntry."""
        m = self._re.match(line)
        if not m:
            return None

        msg = m.group("msg").strip()
        pri = m.group("pri")
        priority = int(pri) % 8 if pri is not None else infer_priority(msg)

        epoch = self._epoch(m.group("mon"), m.group("day"), m.group("time"))
        return LogEntry(
            line_no=line_no,
            timestamp=format_epoch(epoch) if epoch is not None else "",
            priority=priority,
            service=m.group("service"),
            message=msg,
            epoch=epoch,
        )
