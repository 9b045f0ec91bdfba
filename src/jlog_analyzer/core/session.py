"""Consumer side: drains producer messages into analysis state.

An `AnalysisSession` is the single owner of its `AnalysisState`; it applies
at most `drain_batch` messages per `drain()` call so a caller that
interleaves draining with other work (redraws, prompts) stays responsive.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from .aggregator import AnalysisState
from .channel import (
    Completed,
    Connected,
    Disconnected,
    EntryMessage,
    ErrorMessage,
    Message,
    MessageChannel,
    Progress,
)
from .filters import FilterCriteria
from .models import LogEntry

LOGGER = logging.getLogger(__name__)

DRAIN_BATCH = 5000


class LogStore:
    """Retained entries for browsing, with a filtered index view.

    Only presentation layers use this; statistics never depend on it.
    """

    def __init__(self) -> None:
        self.entries: list[LogEntry] = []
        self.services: set[str] = set()
        self.filtered_indices: list[int] = []

    def add(self, entry: LogEntry, criteria: FilterCriteria) -> None:
        self.services.add(entry.service)
        if criteria.matches(entry):
            self.filtered_indices.append(len(self.entries))
        self.entries.append(entry)

    def apply_filter(self, criteria: FilterCriteria) -> None:
        """Rebuild the filtered view for new criteria."""
        self.filtered_indices = [i for i, e in enumerate(self.entries) if criteria.matches(e)]

    def filtered(self) -> list[LogEntry]:
        return [self.entries[i] for i in self.filtered_indices]

    def sorted_services(self) -> list[str]:
        return sorted(self.services)


@dataclass(slots=True)
class SessionStatus:
    is_loading: bool = False
    is_connected: bool = False
    status_message: str = ""
    total_lines: int = 0
    entries: int = 0
    parse_errors: int = 0
    completed: bool = False
    error: str | None = None


@dataclass(slots=True)
class AnalysisSession:
    """Binds one message channel to filter criteria and aggregation state."""

    channel: MessageChannel
    criteria: FilterCriteria = field(default_factory=FilterCriteria)
    state: AnalysisState = field(default_factory=AnalysisState)
    store: LogStore | None = None
    status: SessionStatus = field(default_factory=lambda: SessionStatus(is_loading=True))
    drain_batch: int = DRAIN_BATCH
    # Called with each entry that passes the filter, after aggregation.
    on_entry: Callable[[LogEntry], None] | None = None

    def set_filter(self, criteria: FilterCriteria) -> None:
        """Swap criteria for subsequent entries and refresh the store view.

        Statistics already aggregated are not recomputed.
        """
        self.criteria = criteria
        if self.store is not None:
            self.store.apply_filter(criteria)

    @property
    def finished(self) -> bool:
        return self.channel.closed

    def drain(self, max_messages: int | None = None) -> int:
        """Apply up to `max_messages` pending messages; return how many."""
        limit = self.drain_batch if max_messages is None else max_messages
        applied = 0
        while applied < limit:
            msg = self.channel.try_receive()
            if msg is None:
                if self.channel.closed:
                    self._on_closed()
                break
            self._apply(msg)
            applied += 1
        return applied

    def _apply(self, msg: Message) -> None:
        status = self.status
        match msg:
            case EntryMessage(entry=entry):
                status.entries += 1
                if self.store is not None:
                    self.store.add(entry, self.criteria)
                if self.criteria.matches(entry):
                    self.state.process_entry(entry)
                    if self.on_entry is not None:
                        self.on_entry(entry)
            case Progress(lines=lines, percent=percent):
                status.total_lines = lines
                status.status_message = f"Loading... {lines} lines ({percent:.0f}%)"
            case Completed(total_lines=total, entries=entries, parse_errors=errors):
                status.total_lines = total
                status.entries = entries
                status.parse_errors = errors
                self._finish(f"Loaded {entries} entries from {total} lines")
            case ErrorMessage(message=text):
                status.error = text
                status.is_loading = False
                status.status_message = text
            case Connected():
                status.is_connected = True
                status.status_message = "Connected"
            case Disconnected():
                status.is_connected = False
                status.is_loading = False
                if status.error is None and not status.completed:
                    status.status_message = "Disconnected"

    def _finish(self, message: str) -> None:
        status = self.status
        status.completed = True
        status.is_loading = False
        status.status_message = message
        if status.parse_errors:
            LOGGER.warning("%d lines failed to parse", status.parse_errors)

    def _on_closed(self) -> None:
        # Producer went away without Completed: keep the last known totals.
        status = self.status
        if status.completed or status.error is not None:
            status.is_loading = False
            return
        self._finish(f"Loaded {status.entries} entries from {status.total_lines} lines")

    async def run_until_complete(self) -> SessionStatus:
        """Drain until the producer closes the channel."""
        while not self.channel.closed:
            msg = await self.channel.receive()
            if msg is not None:
                self._apply(msg)
            # Pick up anything already queued without another await.
            self.drain()
        self._on_closed()
        return self.status

