from __future__ import annotations

from jlog_analyzer.core.aggregator import AnalysisState
from jlog_analyzer.core.models import Severity, SignalKind
from jlog_analyzer.core.parsing import parse_line
from jlog_analyzer.core.patterns import detect_patterns


def _minute(m: int) -> str:
    return f"2025-01-10 10:{m:02d}:00"


def _feed(state: AnalysisState, make_entry, message: str, minute: int, n: int, *, priority: int = 3) -> None:
    for _ in range(n):
        state.process_entry(make_entry(message, _minute(minute), priority=priority))


def _ticks(state: AnalysisState, make_entry, minutes: int) -> None:
    # Info entries only create time buckets.
    for m in range(minutes):
        _feed(state, make_entry, "tick", m, 1, priority=6)


def test_spike_claims_the_message(make_entry) -> None:
    state = AnalysisState()
    _ticks(state, make_entry, 8)
    _feed(state, make_entry, "db timeout", 0, 1)
    _feed(state, make_entry, "db timeout", 1, 1)
    _feed(state, make_entry, "db timeout", 2, 10)

    signals = detect_patterns(state)
    assert len(signals) == 1
    spike = signals[0]
    assert spike.kind is SignalKind.SPIKE
    assert spike.severity is Severity.WARNING
    assert spike.count == 10
    assert spike.detail == "2025-01-10 10:02"
    assert spike.subject == "db timeout"


def test_spike_critical_from_fifty(make_entry) -> None:
    state = AnalysisState()
    _ticks(state, make_entry, 8)
    _feed(state, make_entry, "db timeout", 0, 1)
    _feed(state, make_entry, "db timeout", 1, 1)
    _feed(state, make_entry, "db timeout", 2, 60)

    (spike,) = detect_patterns(state)
    assert spike.kind is SignalKind.SPIKE
    assert spike.severity is Severity.CRITICAL


def test_burst(make_entry) -> None:
    state = AnalysisState()
    _ticks(state, make_entry, 20)
    for m in (5, 6, 7):
        _feed(state, make_entry, "oom killer invoked", m, 2)

    signals = detect_patterns(state)
    assert [(s.kind, s.count) for s in signals] == [(SignalKind.BURST, 6)]


def test_recurring_needs_three_active_buckets(make_entry) -> None:
    state = AnalysisState()
    for m in range(3):
        _feed(state, make_entry, "cron job failed", m, 4)

    signals = detect_patterns(state)
    assert [(s.kind, s.severity, s.count) for s in signals] == [
        (SignalKind.RECURRING, Severity.WARNING, 12)
    ]


def test_increasing(make_entry) -> None:
    state = AnalysisState()
    for m, n in enumerate((1, 1, 3, 4)):
        _feed(state, make_entry, "queue backlog growing", m, n)

    signals = detect_patterns(state)
    # Four of four buckets also qualifies as recurring.
    assert [(s.kind, s.count) for s in signals] == [
        (SignalKind.RECURRING, 9),
        (SignalKind.INCREASING, 7),
    ]


def test_high_volume_without_trend_data(make_entry) -> None:
    state = AnalysisState()
    for _ in range(6):
        state.process_entry(make_entry("disk failure on sda", ""))
    for i in range(14):
        state.process_entry(make_entry(f"unique problem {chr(ord('a') + i)}", ""))

    signals = detect_patterns(state)
    assert len(signals) == 1
    hv = signals[0]
    assert hv.kind is SignalKind.HIGH_VOLUME
    assert hv.severity is Severity.WARNING
    assert hv.count == 6
    assert hv.subject == "disk failure on sda"


def test_high_volume_critical_above_half(make_entry) -> None:
    state = AnalysisState()
    for _ in range(11):
        state.process_entry(make_entry("disk failure on sda", ""))
    for i in range(9):
        state.process_entry(make_entry(f"unique problem {chr(ord('a') + i)}", ""))

    (hv,) = detect_patterns(state)
    assert hv.kind is SignalKind.HIGH_VOLUME
    assert hv.severity is Severity.CRITICAL


def test_critical_sorts_before_larger_warning(make_entry) -> None:
    state = AnalysisState()
    _ticks(state, make_entry, 8)
    _feed(state, make_entry, "db timeout", 0, 1)
    _feed(state, make_entry, "db timeout", 1, 1)
    _feed(state, make_entry, "db timeout", 2, 60)
    for m in range(3, 8):
        _feed(state, make_entry, "cache miss storm", m, 20, priority=4)

    signals = detect_patterns(state)
    assert [(s.kind, s.severity, s.count) for s in signals] == [
        (SignalKind.SPIKE, Severity.CRITICAL, 60),
        (SignalKind.RECURRING, Severity.WARNING, 100),
    ]


def test_results_are_truncated(make_entry) -> None:
    state = AnalysisState()
    for i in range(12):
        msg = f"worker {chr(ord('a') + i)} crashed"
        for m, n in enumerate((2, 2, 1)):
            _feed(state, make_entry, msg, m, n)

    assert len(detect_patterns(state)) == 10
    assert len(state.patterns()) == 10
    assert len(detect_patterns(state, limit=3)) == 3


def test_two_minute_failed_password_scenario() -> None:
    line = "Jan 10 10:{mm}:01 host sshd[100]: Failed password for root from 10.0.0.5 port 22"
    state = AnalysisState()
    for mm in ("00", "01"):
        for _ in range(6):
            entry = parse_line(line.format(mm=mm))
            assert entry is not None
            state.process_entry(entry)

    assert state.counts_by_priority[3] == 12
    assert state.top_messages(10) == [("Failed password for root from <IP> port <PORT>", 12)]
    assert [b.errors for _, b in state.sorted_time_series()] == [6, 6]

    signals = detect_patterns(state)
    assert all(s.kind is not SignalKind.SPIKE for s in signals)
    # "Recurring" needs at least 3 active minutes, so two minutes of failures
    # never qualify even though they look like a steady repeat. The message
    # carries all of the error volume, which is what gets flagged instead.
    assert [(s.kind, s.severity, s.count) for s in signals] == [
        (SignalKind.HIGH_VOLUME, Severity.CRITICAL, 12)
    ]


def test_detection_is_deterministic(make_entry) -> None:
    state = AnalysisState()
    for m in range(3):
        _feed(state, make_entry, "cron job failed", m, 4)
    assert detect_patterns(state) == detect_patterns(state)
