from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

import pytest

from jlog_analyzer.core.models import LogEntry, parse_timestamp


@pytest.fixture
def write_syslog() -> Callable[[Path], None]:
    def _write(path: Path) -> None:
        path.write_text(
            "\n".join(
                [
                    "Jan 10 10:00:01 web01 systemd[1]: Started nginx.service.",
                    "Jan 10 10:00:05 web01 sshd[812]: Failed password for root from 10.0.0.5 port 52211 ssh2",
                    "Jan 10 10:00:09 web01 sshd[815]: Failed password for admin from 10.0.0.7 port 52219 ssh2",
                    "Jan 10 10:01:12 web01 kernel: Out of memory: Killed process 4242 (java)",
                    "Jan 10 10:01:30 web01 nginx[900]: upstream timed out while reading response header",
                ]
            )
            + "\n",
            encoding="utf-8",
        )

    return _write


@pytest.fixture
def write_journal() -> Callable[[Path], None]:
    def _write(path: Path) -> None:
        records = [
            {
                "__REALTIME_TIMESTAMP": "1736503200000000",
                "PRIORITY": "6",
                "SYSLOG_IDENTIFIER": "systemd",
                "MESSAGE": "Started Session 4 of user root.",
            },
            {
                "__REALTIME_TIMESTAMP": "1736503230000000",
                "PRIORITY": "3",
                "_SYSTEMD_UNIT": "postgresql.service",
                "MESSAGE": "could not connect to server: Connection refused",
            },
            {
                "__REALTIME_TIMESTAMP": "1736503290000000",
                "PRIORITY": "4",
                "SYSLOG_IDENTIFIER": "nginx",
                "MESSAGE": "upstream timed out",
            },
        ]
        path.write_text("".join(json.dumps(r) + "\n" for r in records), encoding="utf-8")

    return _write


@pytest.fixture
def make_entry() -> Callable[..., LogEntry]:
    counter = iter(range(1, 1_000_000))

    def _make(
        message: str,
        timestamp: str = "2025-01-10 10:00:00",
        *,
        priority: int = 3,
        service: str = "app",
    ) -> LogEntry:
        return LogEntry(
            line_no=next(counter),
            timestamp=timestamp,
            priority=priority,
            service=service,
            message=message,
            epoch=parse_timestamp(timestamp),
        )

    return _make
