"""Core data models for journal analysis."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
MINUTE_FORMAT = "%Y-%m-%d %H:%M"
HOUR_FORMAT = "%Y-%m-%d %H:00"

DEFAULT_PRIORITY = 6  # info
UNKNOWN_SERVICE = "unknown"

# Syslog severities, indexed by numeric priority.
PRIORITY_NAMES: tuple[str, ...] = (
    "EMERG",
    "ALERT",
    "CRIT",
    "ERR",
    "WARNING",
    "NOTICE",
    "INFO",
    "DEBUG",
)


def format_epoch(secs: int) -> str:
    """Format epoch seconds as a UTC `YYYY-MM-DD HH:MM:SS` string."""
    return datetime.fromtimestamp(secs, UTC).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> int | None:
    """Parse a `YYYY-MM-DD HH:MM:SS` UTC string back into epoch seconds."""
    if not value:
        return None
    try:
        dt = datetime.strptime(value[:19], TIMESTAMP_FORMAT)
    except ValueError:
        return None
    return int(dt.replace(tzinfo=UTC).timestamp())


def priority_name(priority: int) -> str:
    """Return the syslog name for a numeric priority."""
    if 0 <= priority < len(PRIORITY_NAMES):
        return PRIORITY_NAMES[priority]
    return "UNKNOWN"


@dataclass(frozen=True, slots=True)
class LogEntry:
    """Normalized log record produced by parsers and handed to consumers."""

    line_no: int
    timestamp: str  # "" when the source carried no usable time
    priority: int
    service: str
    message: str
    epoch: int | None = field(default=None, compare=False, repr=False)

    def timestamp_secs(self) -> int | None:
        """Seconds since the epoch, or None when no timestamp is derivable."""
        if self.epoch is not None:
            return self.epoch
        return parse_timestamp(self.timestamp)

    def minute_bucket(self) -> str | None:
        """Minute time-series key (`YYYY-MM-DD HH:MM`)."""
        secs = self.timestamp_secs()
        if secs is None:
            return None
        return datetime.fromtimestamp(secs - secs % 60, UTC).strftime(MINUTE_FORMAT)

    def hour_bucket(self) -> str | None:
        """Hour time-series key (`YYYY-MM-DD HH:00`)."""
        secs = self.timestamp_secs()
        if secs is None:
            return None
        return datetime.fromtimestamp(secs - secs % 3600, UTC).strftime(HOUR_FORMAT)


@dataclass(slots=True)
class TimeBucket:
    """Entry counts for one time interval."""

    total: int = 0
    errors: int = 0  # priority <= 3
    warnings: int = 0  # priority == 4


class Severity(str, Enum):
    """Severity of a detected pattern, most urgent first."""

    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.CRITICAL: 0, Severity.WARNING: 1, Severity.INFO: 2}


class SignalKind(str, Enum):
    """Temporal shape (or share) a pattern signal describes."""

    SPIKE = "spike"
    BURST = "burst"
    RECURRING = "recurring"
    INCREASING = "increasing"
    HIGH_VOLUME = "high_volume"

    @property
    def label(self) -> str:
        return _KIND_LABELS[self]


_KIND_LABELS = {
    SignalKind.SPIKE: "Spike",
    SignalKind.BURST: "Burst",
    SignalKind.RECURRING: "Recurring",
    SignalKind.INCREASING: "Increasing",
    SignalKind.HIGH_VOLUME: "High Volume",
}


@dataclass(frozen=True, slots=True)
class PatternSignal:
    """One detected anomaly for a normalized message."""

    kind: SignalKind
    subject: str  # display-truncated normalized message
    description: str
    severity: Severity
    count: int
    detail: str | None = None
