"""Runtime configuration for analysis sessions."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace

DEFAULT_REMOTE_COMMAND = "journalctl -o json --no-pager -n 10000 -f"


@dataclass(frozen=True, slots=True)
class SessionConfig:
    # Messages applied per consumer drain call.
    drain_batch: int = 5000

    file_progress_every: int = 50_000
    # Also used for piped stdin, which has no known size.
    remote_progress_every: int = 1_000

    # Seconds to wait at EOF before re-reading a followed file.
    tail_poll_interval: float = 0.1

    remote_command: str = DEFAULT_REMOTE_COMMAND
    top_n: int = 10

    def __post_init__(self) -> None:
        if self.drain_batch < 1:
            raise ValueError("drain_batch must be >= 1")
        if self.file_progress_every < 1 or self.remote_progress_every < 1:
            raise ValueError("progress intervals must be >= 1")
        if self.tail_poll_interval <= 0:
            raise ValueError("tail_poll_interval must be > 0")
        if not self.remote_command.strip():
            raise ValueError("remote_command must not be empty")
        if self.top_n < 1:
            raise ValueError("top_n must be >= 1")


def _env_int(name: str) -> int | None:
    env = os.getenv(name)
    if env is None or env == "":
        return None
    try:
        value = int(env)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if value < 1:
        raise ValueError(f"{name} must be >= 1")
    return value


def _env_seconds(name: str) -> float | None:
    env = os.getenv(name)
    if env is None or env == "":
        return None
    try:
        value = float(env)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number") from exc
    if value <= 0:
        raise ValueError(f"{name} must be > 0")
    return value


def resolve_session_config(cfg: SessionConfig | None = None) -> SessionConfig:
    """Return config with optional env overrides applied."""
    if cfg is None:
        cfg = SessionConfig()

    changes: dict[str, object] = {}
    drain = _env_int("JLOG_DRAIN_BATCH")
    if drain is not None:
        changes["drain_batch"] = drain
    poll = _env_seconds("JLOG_TAIL_POLL_INTERVAL")
    if poll is not None:
        changes["tail_poll_interval"] = poll
    top_n = _env_int("JLOG_TOP_N")
    if top_n is not None:
        changes["top_n"] = top_n
    command = os.getenv("JLOG_REMOTE_COMMAND", "").strip()
    if command:
        changes["remote_command"] = command

    if not changes:
        return cfg
    return replace(cfg, **changes)
