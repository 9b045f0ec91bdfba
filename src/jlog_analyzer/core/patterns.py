"""Temporal pattern detection over aggregated message trends.

All thresholds here are fixed; the same aggregation state always yields the
same ordered list of signals.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .models import PatternSignal, Severity, SignalKind
from .normalize import truncate_display

if TYPE_CHECKING:
    from .aggregator import AnalysisState

MAX_SIGNALS = 10

SPIKE_FACTOR = 3.0
SPIKE_MIN_PEAK = 3
SPIKE_CRITICAL_PEAK = 50

BURST_MIN_TOTAL = 5
BURST_MAX_ACTIVE = 5
BURST_MAX_FRACTION = 0.3

RECURRING_MIN_TOTAL = 5
RECURRING_MIN_FRACTION = 0.4
RECURRING_MIN_ACTIVE = 3

INCREASING_MIN_ACTIVE = 4
INCREASING_FACTOR = 2
INCREASING_MIN_SECOND_HALF = 5

HIGH_VOLUME_MIN_COUNT = 5
HIGH_VOLUME_SHARE = 0.25
HIGH_VOLUME_CRITICAL_SHARE = 0.5


def _trend_signals(msg: str, trend: dict[str, int], series_buckets: int) -> list[PatternSignal]:
    subject = truncate_display(msg)
    total = sum(trend.values())
    active = len(trend)
    fraction = active / series_buckets
    out: list[PatternSignal] = []

    if active >= 2:
        # Average over the whole series, not just this message's buckets.
        avg = total / series_buckets
        peak_key, peak = max(sorted(trend.items()), key=lambda kv: kv[1])
        if peak > SPIKE_FACTOR * avg and peak >= SPIKE_MIN_PEAK:
            out.append(
                PatternSignal(
                    kind=SignalKind.SPIKE,
                    subject=subject,
                    description=f"{peak} occurrences in one minute ({peak / avg:.1f}x the average rate)",
                    severity=Severity.CRITICAL if peak >= SPIKE_CRITICAL_PEAK else Severity.WARNING,
                    count=peak,
                    detail=peak_key,
                )
            )

    if total >= BURST_MIN_TOTAL and active <= BURST_MAX_ACTIVE and fraction < BURST_MAX_FRACTION:
        out.append(
            PatternSignal(
                kind=SignalKind.BURST,
                subject=subject,
                description=f"{total} occurrences packed into {active} of {series_buckets} minutes",
                severity=Severity.WARNING,
                count=total,
            )
        )

    if total >= RECURRING_MIN_TOTAL and fraction > RECURRING_MIN_FRACTION and active >= RECURRING_MIN_ACTIVE:
        out.append(
            PatternSignal(
                kind=SignalKind.RECURRING,
                subject=subject,
                description=f"Seen in {active} of {series_buckets} minutes ({fraction:.0%})",
                severity=Severity.WARNING,
                count=total,
            )
        )

    if active >= INCREASING_MIN_ACTIVE:
        counts = [c for _, c in sorted(trend.items())]
        mid = active // 2
        first, second = sum(counts[:mid]), sum(counts[mid:])
        if second > INCREASING_FACTOR * first and second >= INCREASING_MIN_SECOND_HALF:
            out.append(
                PatternSignal(
                    kind=SignalKind.INCREASING,
                    subject=subject,
                    description=f"Rate rising: {first} -> {second} occurrences between halves",
                    severity=Severity.WARNING,
                    count=second,
                )
            )

    return out


def detect_patterns(state: AnalysisState, limit: int = MAX_SIGNALS) -> list[PatternSignal]:
    """Return ranked signals for the messages in `state`.

    Trend-shaped signals (spike, burst, recurring, increasing) are derived from
    per-minute message trends; high-volume signals from the overall message
    counts and only for subjects no other signal has claimed. The result is
    ordered critical first, then by count descending, and cut to `limit`.
    """
    signals: list[PatternSignal] = []

    series_buckets = len(state.time_series)
    if series_buckets:
        for msg, trend in state.message_trends.items():
            if trend:
                signals.extend(_trend_signals(msg, trend, series_buckets))

    volume = sum(state.counts_by_message.values())
    claimed = {s.subject for s in signals}
    for msg, count in state.counts_by_message.items():
        if count < HIGH_VOLUME_MIN_COUNT or not volume:
            continue
        share = count / volume
        if share <= HIGH_VOLUME_SHARE:
            continue
        subject = truncate_display(msg)
        if subject in claimed:
            continue
        claimed.add(subject)
        signals.append(
            PatternSignal(
                kind=SignalKind.HIGH_VOLUME,
                subject=subject,
                description=f"{share:.0%} of all error and warning messages",
                severity=Severity.CRITICAL if share > HIGH_VOLUME_CRITICAL_SHARE else Severity.WARNING,
                count=count,
            )
        )

    signals.sort(key=lambda s: (s.severity.rank, -s.count))
    return signals[:limit]
