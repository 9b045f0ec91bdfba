from __future__ import annotations

import io
import json
import sys
from pathlib import Path

import pytest

from jlog_analyzer.cli import format_entry, format_status, live_alerts, main
from jlog_analyzer.core.aggregator import AnalysisState
from jlog_analyzer.core.models import LogEntry


def test_analyze_prints_summary(tmp_path: Path, write_syslog, capsys) -> None:
    path = tmp_path / "syslog"
    write_syslog(path)

    main(["analyze", str(path), "-n", "3"])
    out = capsys.readouterr().out

    assert "SUMMARY" in out
    assert "Entries matched:        5" in out
    assert "TOP SERVICES" in out
    assert "sshd" in out
    assert "TOP ERROR MESSAGES" in out
    assert "LOG VOLUME OVER TIME" in out


def test_analyze_json_with_filters(tmp_path: Path, write_syslog, capsys) -> None:
    path = tmp_path / "syslog"
    write_syslog(path)

    main(["analyze", str(path), "-u", "sshd", "-P", "3", "--json"])
    report = json.loads(capsys.readouterr().out)

    assert report["total_entries"] == 2
    assert [s["service"] for s in report["top_services"]] == ["sshd"]


def test_analyze_missing_file_exits_2(tmp_path: Path, capsys) -> None:
    with pytest.raises(SystemExit) as exc:
        main(["analyze", str(tmp_path / "missing.log")])
    assert exc.value.code == 2
    assert "Log file not found" in capsys.readouterr().err


def test_analyze_bad_pattern_exits_2(tmp_path: Path, write_syslog, capsys) -> None:
    path = tmp_path / "syslog"
    write_syslog(path)
    with pytest.raises(SystemExit) as exc:
        main(["analyze", str(path), "--pattern", "("])
    assert exc.value.code == 2
    assert "Invalid pattern" in capsys.readouterr().err


def test_bad_priority_is_an_argument_error(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as exc:
        main(["analyze", str(tmp_path), "-P", "9"])
    assert exc.value.code == 2


def test_format_entry() -> None:
    line = format_entry(LogEntry(1, "", 4, "nginx", "x" * 150))
    assert line.startswith("WARNING nginx")
    assert line.endswith("...")
    assert len(line) == len("WARNING ") + 16 + 100


def _journal_line(service: str, priority: int, message: str) -> str:
    return json.dumps({"SYSLOG_IDENTIFIER": service, "PRIORITY": str(priority), "MESSAGE": message})


def test_monitor_reads_stdin_until_eof(monkeypatch, capsys) -> None:
    lines = [
        _journal_line("sshd", 3, "Failed password for root from 10.0.0.5 port 22 ssh2"),
        _journal_line("kernel", 2, "Out of memory: Killed process 4242 (java)"),
        _journal_line("app", 3, "disk error on /dev/sda"),
        _journal_line("nginx", 4, "upstream timed out"),
        _journal_line("cron", 6, "job ok"),
        "not a log line",
    ]
    monkeypatch.setattr(sys, "stdin", io.StringIO("".join(line + "\n" for line in lines)))

    main(["monitor", "-P", "4"])
    captured = capsys.readouterr()
    out = captured.out.splitlines()

    assert [line.split()[1] for line in out if line.startswith(("ERR", "CRIT", "WARNING"))] == [
        "sshd",
        "kernel",
        "app",
        "nginx",
    ]
    assert "  ! SSH auth failure detected" in out
    assert "  ! OOM event detected!" in out
    assert "  ! Error from app" in out
    assert "cron" not in captured.out
    assert "SUMMARY" in out
    assert "Reading from stdin" in captured.err
    assert "MONITORING | Total: 4 | Errors: 3 | Warnings: 1" in captured.err


def test_monitor_missing_file_exits_2(tmp_path: Path, capsys) -> None:
    with pytest.raises(SystemExit) as exc:
        main(["monitor", str(tmp_path / "missing.log")])
    assert exc.value.code == 2
    assert "Log file not found" in capsys.readouterr().err


def test_live_alerts() -> None:
    assert live_alerts(LogEntry(1, "", 3, "sshd", "Failed password for root")) == [
        "SSH auth failure detected"
    ]
    assert live_alerts(LogEntry(2, "", 0, "kernel", "OOM killer: ERROR")) == [
        "OOM event detected!",
        "Error from kernel",
    ]
    # Only errors and worse raise the service alert.
    assert live_alerts(LogEntry(3, "", 4, "app", "recoverable error")) == []


def test_format_status_counts_errors_and_worse() -> None:
    state = AnalysisState()
    for i, priority in enumerate((0, 3, 4, 6)):
        state.process_entry(LogEntry(i, "", priority, "app", "x"))
    assert format_status(state).startswith("MONITORING | Total: 4 | Errors: 2 | Warnings: 1")
