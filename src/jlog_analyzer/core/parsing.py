"""Line parsing entry point.

Tries the known formats in a fixed order and keeps a running count of lines
that matched none of them.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from .formats import ExportTextParser, JournalJsonParser, LogParser, SyslogParser
from .models import LogEntry

LOGGER = logging.getLogger(__name__)


def default_parsers() -> tuple[LogParser, ...]:
    """Default parser chain (first match wins)."""
    return (SyslogParser(), JournalJsonParser(), ExportTextParser())


class LineParser:
    """Parse raw lines, counting the ones no parser recognizes.

    Blank lines are skipped without being counted as failures. A parser that
    raises on a line counts that line as a failure.
    """

    def __init__(self, parsers: Sequence[LogParser] | None = None) -> None:
        self.parsers = tuple(parsers) if parsers is not None else default_parsers()
        self.parse_errors = 0

    def parse(self, line_no: int, line: str) -> LogEntry | None:
        """Return the first successful parse, or None."""
        s = line.strip()
        if not s:
            return None
        for p in self.parsers:
            try:
                out = p.parse(line_no, s)
            except Exception:
                # A parser bug on one line must not end the stream.
                LOGGER.debug("%s failed on line %d", type(p).__name__, line_no, exc_info=True)
                break
            if out is not None:
                return out
        self.parse_errors += 1
        return None


_DEFAULT_PARSERS = default_parsers()


def parse_line(line: str, line_no: int = 1) -> LogEntry | None:
    """Parse one raw line with the default chain."""
    s = line.strip()
    if not s:
        return None
    for p in _DEFAULT_PARSERS:
        out = p.parse(line_no, s)
        if out is not None:
            return out
    return None
