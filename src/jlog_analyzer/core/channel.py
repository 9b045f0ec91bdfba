"""Typed messages and channels between background producers and the consumer.

Producers only ever send immutable message objects; the consumer owns all
analysis state and applies messages in the order they were sent.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum

from .models import LogEntry


@dataclass(frozen=True, slots=True)
class EntryMessage:
    entry: LogEntry


@dataclass(frozen=True, slots=True)
class Progress:
    lines: int
    percent: float = 0.0  # 0.0 when the source size is unknown


@dataclass(frozen=True, slots=True)
class Completed:
    total_lines: int
    entries: int
    parse_errors: int = 0


@dataclass(frozen=True, slots=True)
class ErrorMessage:
    message: str


@dataclass(frozen=True, slots=True)
class Connected:
    pass


@dataclass(frozen=True, slots=True)
class Disconnected:
    pass


Message = EntryMessage | Progress | Completed | ErrorMessage | Connected | Disconnected


class Command(str, Enum):
    """Consumer-to-producer control commands."""

    CANCEL = "cancel"
    DISCONNECT = "disconnect"


_CLOSED = object()


class MessageChannel:
    """Unbounded producer -> consumer message queue.

    The producer calls `close()` when it is done; the consumer observes
    `closed` once the close marker has been drained, after every message sent
    before it.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._close_sent = False
        self.closed = False

    def send(self, message: Message) -> None:
        if self._close_sent:
            raise RuntimeError("channel is closed")
        self._queue.put_nowait(message)

    def close(self) -> None:
        if not self._close_sent:
            self._close_sent = True
            self._queue.put_nowait(_CLOSED)

    def try_receive(self) -> Message | None:
        """Return the next message without waiting, or None."""
        if self.closed:
            return None
        try:
            item = self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None
        if item is _CLOSED:
            self.closed = True
            return None
        return item  # type: ignore[return-value]

    async def receive(self) -> Message | None:
        """Wait for the next message; None once the channel is closed."""
        if self.closed:
            return None
        item = await self._queue.get()
        if item is _CLOSED:
            self.closed = True
            return None
        return item  # type: ignore[return-value]


class CommandChannel:
    """Consumer -> producer command queue, polled at line boundaries."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[Command] = asyncio.Queue()

    def send(self, command: Command) -> None:
        self._queue.put_nowait(command)

    def poll(self) -> Command | None:
        try:
            return self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None
