"""Log line formats.

Parsers for traditional syslog text, journalctl JSON output and the two
persisted export formats.
"""

from __future__ import annotations

from .base import PRIORITY_KEYWORDS, LogParser, coerce_priority, infer_priority
from .export import ExportTextParser
from .jsonl import JournalJsonParser
from .syslog import SyslogParser

__all__ = [
    "ExportTextParser",
    "JournalJsonParser",
    "LogParser",
    "PRIORITY_KEYWORDS",
    "SyslogParser",
    "coerce_priority",
    "infer_priority",
]
