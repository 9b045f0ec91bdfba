"""Streaming aggregation state.

`AnalysisState` consumes entries one at a time and keeps only counters:
raw entries are never retained, so memory grows with the number of distinct
services, normalized messages and minutes rather than with the number of
lines.
"""

from __future__ import annotations

from collections.abc import Mapping

from .models import LogEntry, PatternSignal, TimeBucket
from .normalize import normalize_message

# Entries at or above this severity feed the message counts and trends.
MESSAGE_PRIORITY_CEILING = 4


def _top(counts: Mapping[str, int], n: int) -> list[tuple[str, int]]:
    # sorted() is stable, so ties keep first-seen order.
    return sorted(counts.items(), key=lambda kv: kv[1], reverse=True)[:n]


class AnalysisState:
    """Single-writer accumulator for one analysis run."""

    def __init__(self) -> None:
        self.total_entries = 0
        self.counts_by_priority: list[int] = [0] * 8
        self.counts_by_service: dict[str, int] = {}
        self.counts_by_message: dict[str, int] = {}
        self.time_series: dict[str, TimeBucket] = {}
        self.message_trends: dict[str, dict[str, int]] = {}

    def process_entry(self, entry: LogEntry) -> None:
        """Fold one filtered entry into the running statistics."""
        self.total_entries += 1
        priority = entry.priority
        if 0 <= priority < 8:
            self.counts_by_priority[priority] += 1

        self.counts_by_service[entry.service] = self.counts_by_service.get(entry.service, 0) + 1

        bucket_key = entry.minute_bucket()
        if bucket_key is not None:
            bucket = self.time_series.get(bucket_key)
            if bucket is None:
                bucket = self.time_series[bucket_key] = TimeBucket()
            bucket.total += 1
            if priority <= 3:
                bucket.errors += 1
            elif priority == 4:
                bucket.warnings += 1

        if priority <= MESSAGE_PRIORITY_CEILING:
            msg = normalize_message(entry.message)
            if msg:
                self.counts_by_message[msg] = self.counts_by_message.get(msg, 0) + 1
                if bucket_key is not None:
                    trend = self.message_trends.setdefault(msg, {})
                    trend[bucket_key] = trend.get(bucket_key, 0) + 1

    @property
    def critical_count(self) -> int:
        """Emergency, alert and critical entries."""
        return sum(self.counts_by_priority[:3])

    @property
    def error_count(self) -> int:
        return self.counts_by_priority[3]

    @property
    def warning_count(self) -> int:
        return self.counts_by_priority[4]

    def top_services(self, n: int) -> list[tuple[str, int]]:
        """Services ordered by entry count, highest first."""
        return _top(self.counts_by_service, n)

    def top_messages(self, n: int) -> list[tuple[str, int]]:
        """Normalized error/warning messages ordered by count, highest first."""
        return _top(self.counts_by_message, n)

    def sorted_time_series(self) -> list[tuple[str, TimeBucket]]:
        """Minute buckets in chronological order."""
        return sorted(self.time_series.items())

    def hourly_series(self) -> list[tuple[str, TimeBucket]]:
        """Minute buckets rolled up into hours, chronological."""
        hours: dict[str, TimeBucket] = {}
        for key, bucket in self.time_series.items():
            hour_key = key[:13] + ":00"
            agg = hours.get(hour_key)
            if agg is None:
                agg = hours[hour_key] = TimeBucket()
            agg.total += bucket.total
            agg.errors += bucket.errors
            agg.warnings += bucket.warnings
        return sorted(hours.items())

    def all_time_buckets(self) -> list[str]:
        """Every minute key seen anywhere in the run, ascending."""
        keys = set(self.time_series)
        for trend in self.message_trends.values():
            keys.update(trend)
        return sorted(keys)

    def top_message_trends(self, n: int) -> list[tuple[str, dict[str, int]]]:
        """Per-minute counts for the n most frequent messages."""
        return [
            (msg, dict(self.message_trends[msg]))
            for msg, _ in self.top_messages(n)
            if msg in self.message_trends
        ]

    def patterns(self, limit: int | None = None) -> list[PatternSignal]:
        """Run the pattern detector over the current state."""
        from .patterns import MAX_SIGNALS, detect_patterns

        return detect_patterns(self, limit=MAX_SIGNALS if limit is None else limit)
