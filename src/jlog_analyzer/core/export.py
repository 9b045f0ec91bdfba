"""Writers for the persisted entry formats.

Both formats are read back by the default parser chain with the same
priority, service and message.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from enum import Enum
from pathlib import Path

from .models import LogEntry


class ExportFormat(str, Enum):
    JSON = "json"
    TEXT = "text"


def format_json_record(entry: LogEntry) -> str:
    return json.dumps(
        {
            "line": entry.line_no,
            "timestamp": entry.timestamp,
            "priority": entry.priority,
            "service": entry.service,
            "message": entry.message,
        },
        ensure_ascii=False,
    )


def format_text_record(entry: LogEntry) -> str:
    """Render `<timestamp> <service>[<priority>]: <message>`.

    Lossy on re-read: a service containing whitespace does not parse back,
    and trailing whitespace in the message is dropped. Use JSON when records
    must round-trip exactly.
    """
    # Newlines would split the record on re-read.
    message = entry.message.replace("\r", " ").replace("\n", " ")
    if entry.timestamp:
        return f"{entry.timestamp} {entry.service}[{entry.priority}]: {message}"
    return f"{entry.service}[{entry.priority}]: {message}"


def write_entries(
    entries: Iterable[LogEntry],
    path: str | Path,
    fmt: ExportFormat | str = ExportFormat.JSON,
) -> int:
    """Write entries to `path`, one record per line; return the count."""
    fmt = ExportFormat(fmt)
    render = format_json_record if fmt is ExportFormat.JSON else format_text_record
    count = 0
    with open(path, "w", encoding="utf-8") as f:
        for entry in entries:
            f.write(render(entry))
            f.write("\n")
            count += 1
    return count
