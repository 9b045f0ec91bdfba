from __future__ import annotations

import gzip
from pathlib import Path

import pytest

from jlog_analyzer.core.config import SessionConfig, resolve_session_config
from jlog_analyzer.core.filters import FilterCriteria
from jlog_analyzer.core.log_service import LogReadError, analyze_file, get_logs, iter_entries


@pytest.mark.asyncio
async def test_iter_entries_applies_criteria(tmp_path: Path, write_syslog) -> None:
    path = tmp_path / "syslog"
    write_syslog(path)

    entries = [e async for e in iter_entries(path, criteria=FilterCriteria.build(services=["sshd"]))]
    assert [e.line_no for e in entries] == [2, 3]


@pytest.mark.asyncio
async def test_iter_entries_missing_file_raises(tmp_path: Path) -> None:
    path = tmp_path / "missing.log"
    with pytest.raises(FileNotFoundError):
        _ = [e async for e in iter_entries(path)]


@pytest.mark.asyncio
async def test_iter_entries_early_exit_stops_reader(tmp_path: Path) -> None:
    path = tmp_path / "big.log"
    path.write_text("".join(f"svc[6]: line {i}\n" for i in range(1000)), encoding="utf-8")

    gen = iter_entries(path)
    first = await gen.__anext__()
    await gen.aclose()
    assert first.message == "line 0"


@pytest.mark.asyncio
async def test_get_logs_journal(tmp_path: Path, write_journal) -> None:
    path = tmp_path / "journal.json"
    write_journal(path)

    entries = await get_logs(path, criteria=FilterCriteria(max_priority=4))
    assert [(e.service, e.priority) for e in entries] == [("postgresql.service", 3), ("nginx", 4)]


@pytest.mark.asyncio
async def test_analyze_file_report(tmp_path: Path, write_journal) -> None:
    path = tmp_path / "journal.json"
    write_journal(path)
    path.write_text(path.read_text(encoding="utf-8") + "garbage line\n", encoding="utf-8")

    result = await analyze_file(path)
    report = result.report(top=2)

    assert report.lines_read == 4
    assert report.parse_errors == 1
    assert report.total_entries == 3
    assert report.errors == 1
    assert report.warnings == 1
    assert [s.service for s in report.top_services] == ["systemd", "postgresql.service"]
    assert [b.bucket for b in report.timeline] == ["2025-01-10 10:00", "2025-01-10 10:01"]
    assert report.timeline_resolution == "minute"
    assert report.model_dump()["priorities"][3] == {"priority": 3, "name": "ERR", "count": 1}


@pytest.mark.asyncio
async def test_analyze_file_with_filter_and_trends(tmp_path: Path, write_syslog) -> None:
    path = tmp_path / "syslog"
    write_syslog(path)

    result = await analyze_file(path, criteria=FilterCriteria.build(pattern="Failed"))
    report = result.report(include_trends=True)
    assert report.total_entries == 2
    assert [(m.message, m.count) for m in report.top_messages] == [
        ("Failed password for root from <IP> port <PORT> ssh2", 1),
        ("Failed password for admin from <IP> port <PORT> ssh2", 1),
    ]
    assert len(report.trends) == len(report.top_messages)


@pytest.mark.asyncio
async def test_analyze_file_missing(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        await analyze_file(tmp_path / "nope.log")


@pytest.mark.asyncio
async def test_analyze_file_keeps_going_past_out_of_range_timestamp(tmp_path: Path) -> None:
    good = "Jan 10 10:00:01 web01 app[1]: job failed\n"
    bad = '{"__REALTIME_TIMESTAMP": "300000000000000000", "PRIORITY": "3", "MESSAGE": "x"}\n'
    path = tmp_path / "mixed.log"
    path.write_text(good * 3 + bad + good * 5, encoding="utf-8")

    result = await analyze_file(path)
    assert result.status.error is None
    assert result.status.total_lines == 9
    assert result.state.total_entries == 9


@pytest.mark.asyncio
async def test_analyze_file_truncated_gzip_raises(tmp_path: Path) -> None:
    path = tmp_path / "syslog.gz"
    lines = "".join(f"Jan 10 10:00:01 web01 app[{i}]: request {i} failed\n" for i in range(2000))
    data = gzip.compress(lines.encode("utf-8"))
    path.write_bytes(data[: len(data) // 2])

    with pytest.raises(LogReadError, match="File read error"):
        await analyze_file(path)


def test_session_config_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("JLOG_DRAIN_BATCH", "100")
    monkeypatch.setenv("JLOG_TAIL_POLL_INTERVAL", "0.5")
    monkeypatch.setenv("JLOG_TOP_N", "3")
    monkeypatch.setenv("JLOG_REMOTE_COMMAND", "journalctl -u sshd -o json -f")

    cfg = resolve_session_config()
    assert (cfg.drain_batch, cfg.tail_poll_interval, cfg.top_n) == (100, 0.5, 3)
    assert cfg.remote_command == "journalctl -u sshd -o json -f"


def test_session_config_without_env_is_unchanged(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("JLOG_DRAIN_BATCH", "JLOG_TAIL_POLL_INTERVAL", "JLOG_TOP_N", "JLOG_REMOTE_COMMAND"):
        monkeypatch.delenv(name, raising=False)
    cfg = SessionConfig(top_n=5)
    assert resolve_session_config(cfg) is cfg


@pytest.mark.parametrize(
    ("name", "value", "message"),
    [
        ("JLOG_DRAIN_BATCH", "lots", "JLOG_DRAIN_BATCH must be an integer"),
        ("JLOG_DRAIN_BATCH", "0", "JLOG_DRAIN_BATCH must be >= 1"),
        ("JLOG_TAIL_POLL_INTERVAL", "-1", "JLOG_TAIL_POLL_INTERVAL must be > 0"),
        ("JLOG_TOP_N", "x", "JLOG_TOP_N must be an integer"),
    ],
)
def test_session_config_invalid_env(
    monkeypatch: pytest.MonkeyPatch, name: str, value: str, message: str
) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError, match=message):
        resolve_session_config()


def test_session_config_validates_fields() -> None:
    with pytest.raises(ValueError):
        SessionConfig(drain_batch=0)
