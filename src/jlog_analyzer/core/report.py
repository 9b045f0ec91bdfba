"""Report models for presentation layers (CLI, MCP tools)."""

from __future__ import annotations

from pydantic import BaseModel, Field

from .aggregator import AnalysisState
from .models import PRIORITY_NAMES
from .normalize import TOP_MESSAGE_LIMIT, truncate_display


class PriorityCount(BaseModel):
    priority: int = Field(ge=0, le=7)
    name: str
    count: int


class ServiceCount(BaseModel):
    service: str
    count: int


class MessageCount(BaseModel):
    message: str = Field(description="Normalized message, truncated for display.")
    count: int


class TimeBucketModel(BaseModel):
    bucket: str = Field(description="Bucket key, `YYYY-MM-DD HH:MM` or `YYYY-MM-DD HH:00`.")
    total: int
    errors: int
    warnings: int


class PatternModel(BaseModel):
    kind: str
    label: str
    subject: str
    description: str
    severity: str
    count: int
    detail: str | None = None


class MessageTrend(BaseModel):
    message: str
    buckets: dict[str, int]


class AnalysisReport(BaseModel):
    lines_read: int = Field(description="Lines read from the source, including unparsed ones.")
    total_entries: int = Field(description="Entries that passed the filter.")
    parse_errors: int = 0
    critical: int
    errors: int
    warnings: int
    priorities: list[PriorityCount]
    top_services: list[ServiceCount]
    top_messages: list[MessageCount]
    timeline: list[TimeBucketModel] = Field(
        description="Per-minute volume, or per-hour when the run spans many minutes."
    )
    timeline_resolution: str = "minute"
    patterns: list[PatternModel]
    trends: list[MessageTrend] = Field(default_factory=list)


# Switch the timeline to hourly buckets above this many minutes.
HOURLY_THRESHOLD = 120


def build_report(
    state: AnalysisState,
    *,
    lines_read: int = 0,
    parse_errors: int = 0,
    top: int = 10,
    include_trends: bool = False,
) -> AnalysisReport:
    """Snapshot an aggregation state into a report model."""
    minutes = state.sorted_time_series()
    if len(minutes) > HOURLY_THRESHOLD:
        series, resolution = state.hourly_series(), "hour"
    else:
        series, resolution = minutes, "minute"

    trends: list[MessageTrend] = []
    if include_trends:
        trends = [MessageTrend(message=m, buckets=b) for m, b in state.top_message_trends(top)]

    return AnalysisReport(
        lines_read=lines_read,
        total_entries=state.total_entries,
        parse_errors=parse_errors,
        critical=state.critical_count,
        errors=state.error_count,
        warnings=state.warning_count,
        priorities=[
            PriorityCount(priority=p, name=PRIORITY_NAMES[p], count=c)
            for p, c in enumerate(state.counts_by_priority)
        ],
        top_services=[ServiceCount(service=s, count=c) for s, c in state.top_services(top)],
        top_messages=[
            MessageCount(message=truncate_display(m, TOP_MESSAGE_LIMIT), count=c)
            for m, c in state.top_messages(top)
        ],
        timeline=[
            TimeBucketModel(bucket=k, total=b.total, errors=b.errors, warnings=b.warnings)
            for k, b in series
        ],
        timeline_resolution=resolution,
        patterns=[
            PatternModel(
                kind=s.kind.value,
                label=s.kind.label,
                subject=s.subject,
                description=s.description,
                severity=s.severity.value,
                count=s.count,
                detail=s.detail,
            )
            for s in state.patterns()
        ],
        trends=trends,
    )
