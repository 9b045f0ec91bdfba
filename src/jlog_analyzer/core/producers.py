"""Background producers: file reader, file tail, piped stream and remote journal.

Each producer runs as one asyncio task, parses lines as they arrive and sends
immutable messages on a `MessageChannel`. Producers never touch analysis
state. They check the command channel at every line boundary and always close
the message channel when they stop.
"""

from __future__ import annotations

import asyncio
import gzip
import logging
import os
import zlib
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

import aiofiles
from aiofiles.threadpool import wrap

from .channel import (
    Command,
    CommandChannel,
    Completed,
    Connected,
    Disconnected,
    EntryMessage,
    ErrorMessage,
    MessageChannel,
    Progress,
)
from .config import SessionConfig, resolve_session_config
from .parsing import LineParser

LOGGER = logging.getLogger(__name__)

_DEFAULTS = SessionConfig()

# Errors a truncated or corrupt file raises part-way through a read.
READ_ERRORS = (OSError, EOFError, zlib.error)


class RemoteClient(Protocol):
    """The slice of a paramiko-style SSH client the remote producer uses."""

    def exec_command(self, command: str) -> tuple[Any, Any, Any]: ...

    def close(self) -> None: ...


@dataclass(slots=True)
class _LineTally:
    """Line and entry counters shared by every producer."""

    parser: LineParser
    lines: int = 0
    entries: int = 0

    def feed(self, channel: MessageChannel, line: str) -> None:
        self.lines += 1
        entry = self.parser.parse(self.lines, line)
        if entry is not None:
            channel.send(EntryMessage(entry))
            self.entries += 1

    def completed(self) -> Completed:
        return Completed(
            total_lines=self.lines, entries=self.entries, parse_errors=self.parser.parse_errors
        )


@asynccontextmanager
async def _open_text(path: Path, *, encoding: str, decode_errors: str) -> AsyncIterator[Any]:
    """Open a log file for async text reading (plain or gzip)."""
    if path.suffix.lower() == ".gz":
        f = gzip.open(path, mode="rt", encoding=encoding, errors=decode_errors)
        af = wrap(f)
        try:
            yield af
        finally:
            await af.close()
    else:
        async with aiofiles.open(path, encoding=encoding, errors=decode_errors) as f:
            yield f


def _stop_requested(commands: CommandChannel | None) -> Command | None:
    if commands is None:
        return None
    return commands.poll()


async def read_file(
    path: str | Path,
    channel: MessageChannel,
    commands: CommandChannel | None = None,
    *,
    follow: bool = False,
    from_end: bool = False,
    progress_every: int = _DEFAULTS.file_progress_every,
    poll_interval: float = _DEFAULTS.tail_poll_interval,
    encoding: str = "utf-8",
    decode_errors: str = "replace",
    parser: LineParser | None = None,
) -> None:
    """Read a log file, sending one message per parsed entry.

    In one-shot mode the producer ends with `Completed`. With `follow=True`
    it keeps waiting for appended lines (sleeping `poll_interval` at EOF)
    until cancelled. `from_end=True` skips existing content, like `tail -f`.
    Any failure part-way, including a truncated gzip stream, ends the run
    with a single `ErrorMessage` and no `Completed`.
    """
    path = Path(path)
    tally = _LineTally(parser or LineParser())
    bytes_processed = 0

    LOGGER.debug("Reading %s (follow=%s)", path, follow)
    try:
        # Progress percent is only meaningful for uncompressed files.
        size = 0 if path.suffix.lower() == ".gz" else os.path.getsize(path)
        async with _open_text(path, encoding=encoding, decode_errors=decode_errors) as f:
            if from_end and size:
                await f.seek(0, os.SEEK_END)
                bytes_processed = size

            partial = ""
            while True:
                if _stop_requested(commands) is not None:
                    LOGGER.debug("Reader for %s stopped by command", path)
                    return

                line = await f.readline()
                if not line:
                    if not follow:
                        break
                    await asyncio.sleep(poll_interval)
                    continue
                if follow and not line.endswith("\n"):
                    # Writer is mid-line; wait for the rest.
                    partial += line
                    await asyncio.sleep(poll_interval)
                    continue
                line, partial = partial + line, ""

                bytes_processed += len(line)
                tally.feed(channel, line)

                if tally.lines % progress_every == 0:
                    percent = min(100.0, bytes_processed / size * 100.0) if size else 0.0
                    channel.send(Progress(lines=tally.lines, percent=percent))

            if partial:
                tally.feed(channel, partial)

        channel.send(tally.completed())
        LOGGER.debug("Finished %s: %d lines, %d entries", path, tally.lines, tally.entries)
    except READ_ERRORS as e:
        LOGGER.warning("File read error for %s: %s", path, e)
        channel.send(ErrorMessage(f"File read error: {e}"))
    except Exception as e:
        LOGGER.exception("Reader for %s failed", path)
        channel.send(ErrorMessage(f"File read error: {e}"))
    finally:
        channel.close()


def _decode(line: str | bytes) -> str:
    if isinstance(line, bytes):
        return line.decode("utf-8", errors="replace")
    return line


async def read_stream(
    stream: Any,
    channel: MessageChannel,
    commands: CommandChannel | None = None,
    *,
    progress_every: int = _DEFAULTS.remote_progress_every,
    parser: LineParser | None = None,
) -> None:
    """Read a blocking line stream (such as piped stdin) until EOF.

    Blocking reads run in the default executor, so `CANCEL` is only seen
    once the pending read returns. Ends with `Completed` at EOF.
    """
    loop = asyncio.get_running_loop()
    tally = _LineTally(parser or LineParser())

    try:
        while True:
            if _stop_requested(commands) is not None:
                LOGGER.debug("Stream reader stopped by command")
                return

            line = _decode(await loop.run_in_executor(None, stream.readline))
            if not line:
                break

            tally.feed(channel, line)
            if tally.lines % progress_every == 0:
                channel.send(Progress(lines=tally.lines, percent=0.0))

        channel.send(tally.completed())
    except Exception as e:
        LOGGER.warning("Stream read error: %s", e)
        channel.send(ErrorMessage(f"Stream read error: {e}"))
    finally:
        channel.close()


async def stream_remote(
    client: RemoteClient,
    channel: MessageChannel,
    commands: CommandChannel | None = None,
    *,
    command: str = _DEFAULTS.remote_command,
    progress_every: int = _DEFAULTS.remote_progress_every,
    parser: LineParser | None = None,
) -> None:
    """Run `command` on an already authenticated client and stream its output.

    Sends `Connected` once the command is running and always finishes with
    `Disconnected`. Blocking reads run in the default executor. `DISCONNECT`
    closes the client; `CANCEL` only stops reading.
    """
    loop = asyncio.get_running_loop()
    tally = _LineTally(parser or LineParser())

    LOGGER.debug("Starting remote stream: %s", command)
    try:
        _, stdout, _ = await loop.run_in_executor(None, client.exec_command, command)
        channel.send(Connected())

        while True:
            cmd = _stop_requested(commands)
            if cmd is not None:
                LOGGER.debug("Remote stream stopped by %s", cmd.value)
                if cmd is Command.DISCONNECT:
                    await loop.run_in_executor(None, client.close)
                return

            line = _decode(await loop.run_in_executor(None, stdout.readline))
            if not line:
                break

            tally.feed(channel, line)
            if tally.lines % progress_every == 0:
                channel.send(Progress(lines=tally.lines, percent=0.0))

        channel.send(tally.completed())
        LOGGER.debug("Remote stream ended: %d lines, %d entries", tally.lines, tally.entries)
    except Exception as e:
        # Transport errors come from the injected client; any of them ends the stream.
        LOGGER.warning("SSH error: %s", e)
        channel.send(ErrorMessage(f"SSH error: {e}"))
    finally:
        channel.send(Disconnected())
        channel.close()


@dataclass(slots=True)
class SourceHandle:
    """A running producer task plus the channels wired to it."""

    channel: MessageChannel
    commands: CommandChannel
    task: asyncio.Task[None] = field(repr=False)

    def cancel(self) -> None:
        self.commands.send(Command.CANCEL)

    def disconnect(self) -> None:
        self.commands.send(Command.DISCONNECT)

    async def wait(self) -> None:
        await self.task


def _spawn(producer: Any, source: Any, **kwargs: Any) -> SourceHandle:
    channel = MessageChannel()
    commands = CommandChannel()
    task = asyncio.create_task(producer(source, channel, commands, **kwargs))
    return SourceHandle(channel=channel, commands=commands, task=task)


def spawn_file_reader(
    path: str | Path, config: SessionConfig | None = None, **kwargs: Any
) -> SourceHandle:
    """Start `read_file` as a task; must be called inside a running loop.

    Progress and poll intervals come from `config` unless given explicitly.
    """
    cfg = resolve_session_config(config)
    kwargs.setdefault("progress_every", cfg.file_progress_every)
    kwargs.setdefault("poll_interval", cfg.tail_poll_interval)
    return _spawn(read_file, path, **kwargs)


def spawn_stream_reader(
    stream: Any, config: SessionConfig | None = None, **kwargs: Any
) -> SourceHandle:
    """Start `read_stream` as a task; must be called inside a running loop."""
    cfg = resolve_session_config(config)
    kwargs.setdefault("progress_every", cfg.remote_progress_every)
    return _spawn(read_stream, stream, **kwargs)


def spawn_remote_stream(
    client: RemoteClient, config: SessionConfig | None = None, **kwargs: Any
) -> SourceHandle:
    """Start `stream_remote` as a task; must be called inside a running loop.

    The remote command and progress interval come from `config` unless given
    explicitly.
    """
    cfg = resolve_session_config(config)
    kwargs.setdefault("command", cfg.remote_command)
    kwargs.setdefault("progress_every", cfg.remote_progress_every)
    return _spawn(stream_remote, client, **kwargs)
