"""Log loading and analysis entry points.

This module is the main integration point: it wires a file producer to an
analysis session and returns either filtered entries or a finished report.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from pathlib import Path

from .aggregator import AnalysisState
from .channel import EntryMessage, ErrorMessage, MessageChannel
from .config import SessionConfig, resolve_session_config
from .filters import FilterCriteria
from .models import LogEntry
from .producers import read_file
from .report import AnalysisReport, build_report
from .session import AnalysisSession, SessionStatus

LOGGER = logging.getLogger(__name__)


class LogReadError(OSError):
    """The producer reported a source error."""


@dataclass(frozen=True, slots=True)
class AnalysisResult:
    state: AnalysisState
    status: SessionStatus

    def report(self, *, top: int = 10, include_trends: bool = False) -> AnalysisReport:
        return build_report(
            self.state,
            lines_read=self.status.total_lines,
            parse_errors=self.status.parse_errors,
            top=top,
            include_trends=include_trends,
        )


def _check_path(log_path: str | Path) -> Path:
    path = Path(log_path)
    if not path.is_file():
        raise FileNotFoundError(f"Log file not found: {path}")
    return path


async def iter_entries(
    log_path: str | Path,
    *,
    criteria: FilterCriteria | None = None,
    encoding: str = "utf-8",
    decode_errors: str = "replace",
) -> AsyncIterator[LogEntry]:
    """Yield parsed entries that pass `criteria`, in file order."""
    path = _check_path(log_path)
    criteria = criteria or FilterCriteria()

    channel = MessageChannel()
    task = asyncio.create_task(
        read_file(path, channel, encoding=encoding, decode_errors=decode_errors)
    )
    try:
        while True:
            msg = await channel.receive()
            if msg is None:
                break
            if isinstance(msg, EntryMessage):
                if criteria.matches(msg.entry):
                    yield msg.entry
            elif isinstance(msg, ErrorMessage):
                raise LogReadError(msg.message)
        await task
    finally:
        if not task.done():
            task.cancel()
        await asyncio.gather(task, return_exceptions=True)


async def get_logs(log_path: str | Path, **iter_kwargs) -> list[LogEntry]:
    """Collect iter_entries into a list."""
    return [entry async for entry in iter_entries(log_path, **iter_kwargs)]


async def analyze_file(
    log_path: str | Path,
    *,
    criteria: FilterCriteria | None = None,
    config: SessionConfig | None = None,
    encoding: str = "utf-8",
) -> AnalysisResult:
    """Read a whole file through a session and return its aggregated state.

    Raises:
        FileNotFoundError: the path is not a file.
        LogReadError: reading failed part-way.
    """
    path = _check_path(log_path)
    cfg = resolve_session_config(config)

    channel = MessageChannel()
    session = AnalysisSession(
        channel=channel,
        criteria=criteria or FilterCriteria(),
        drain_batch=cfg.drain_batch,
    )
    task = asyncio.create_task(
        read_file(path, channel, progress_every=cfg.file_progress_every, encoding=encoding)
    )
    try:
        status = await session.run_until_complete()
    finally:
        await asyncio.gather(task, return_exceptions=True)

    if status.error is not None:
        raise LogReadError(status.error)
    LOGGER.info(
        "Analyzed %s: %d lines, %d entries matched",
        path,
        status.total_lines,
        session.state.total_entries,
    )
    return AnalysisResult(state=session.state, status=status)
