from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from collections.abc import Sequence
from pathlib import Path

from jlog_analyzer.core.aggregator import AnalysisState
from jlog_analyzer.core.config import resolve_session_config
from jlog_analyzer.core.filters import CombineMode, FilterCriteria
from jlog_analyzer.core.log_service import LogReadError, analyze_file
from jlog_analyzer.core.models import LogEntry, priority_name
from jlog_analyzer.core.normalize import truncate_display
from jlog_analyzer.core.producers import spawn_file_reader, spawn_stream_reader
from jlog_analyzer.core.report import AnalysisReport, build_report
from jlog_analyzer.core.session import AnalysisSession

BAR_WIDTH = 30
TIMELINE_ROWS = 24
MONITOR_MESSAGE_LIMIT = 100
STATUS_INTERVAL = 1.0
SEVERITY_MARKS = {"critical": "!!", "warning": "! ", "info": "i "}


def _priority(s: str) -> int:
    try:
        value = int(s)
    except ValueError as e:
        raise argparse.ArgumentTypeError("priority must be an integer 0..7") from e
    if not 0 <= value <= 7:
        raise argparse.ArgumentTypeError("priority must be an integer 0..7")
    return value


def _bar(count: int, max_count: int) -> str:
    width = int(count / max_count * BAR_WIDTH) if max_count else 0
    return "#" * max(width, 1)


def render_report(report: AnalysisReport) -> list[str]:
    """Terminal summary: totals, priorities, services, messages, timeline, patterns."""
    out = [
        "SUMMARY",
        f"  Lines read:             {report.lines_read}",
        f"  Entries matched:        {report.total_entries}",
        f"  Critical/Alert/Emerg:   {report.critical}",
        f"  Errors:                 {report.errors}",
        f"  Warnings:               {report.warnings}",
    ]
    if report.parse_errors:
        out.append(f"  Unparsed lines:         {report.parse_errors}")

    out += ["", "PRIORITY DISTRIBUTION"]
    max_p = max((p.count for p in report.priorities), default=0)
    for p in report.priorities:
        if p.count:
            out.append(f"  {p.name:<7} {_bar(p.count, max_p)} {p.count}")

    out += ["", "TOP SERVICES"]
    if not report.top_services:
        out.append("  No services found.")
    else:
        max_s = report.top_services[0].count
        for s in report.top_services:
            out.append(f"  {s.service:<15} {_bar(s.count, max_s)} {s.count}")

    if report.top_messages:
        out += ["", "TOP ERROR MESSAGES"]
        for i, m in enumerate(report.top_messages, start=1):
            out.append(f"  {i}. [{m.count}x] {m.message}")

    if report.timeline:
        out += ["", "LOG VOLUME OVER TIME"]
        max_t = max(b.total for b in report.timeline)
        for b in report.timeline[:TIMELINE_ROWS]:
            out.append(
                f"  {b.bucket} {_bar(b.total, max_t)} {b.total} (err:{b.errors}, warn:{b.warnings})"
            )

    out.append("")
    if not report.patterns:
        out.append("No concerning patterns detected.")
    else:
        out.append("PATTERNS DETECTED")
        for s in report.patterns:
            out.append(f"  {SEVERITY_MARKS.get(s.severity, '  ')} [{s.label}] {s.description}")
            out.append(f"      {s.subject}")
    return out


def format_entry(entry: LogEntry) -> str:
    """One monitor line: priority, service, message."""
    label = priority_name(entry.priority)
    return f"{label:<7} {entry.service:<15} {truncate_display(entry.message, MONITOR_MESSAGE_LIMIT)}"


def live_alerts(entry: LogEntry) -> list[str]:
    """Alerts worth calling out while entries scroll past."""
    msg = entry.message
    alerts = []
    if "Failed password" in msg:
        alerts.append("SSH auth failure detected")
    if "Out of memory" in msg or "OOM" in msg:
        alerts.append("OOM event detected!")
    if entry.priority <= 3 and ("error" in msg or "ERROR" in msg):
        alerts.append(f"Error from {entry.service}")
    return alerts


def format_status(state: AnalysisState) -> str:
    errors = state.critical_count + state.error_count
    return (
        f"MONITORING | Total: {state.total_entries} | Errors: {errors}"
        f" | Warnings: {state.warning_count} | Ctrl+C to stop"
    )


class _StatusLine:
    """Live totals on stderr, redrawn in place and cleared before entry output."""

    def __init__(self, state: AnalysisState) -> None:
        self.state = state
        self._width = 0

    def show(self) -> None:
        text = format_status(self.state)
        print(f"\r{text}", end="", file=sys.stderr, flush=True)
        self._width = len(text)

    def clear(self) -> None:
        if self._width:
            print("\r" + " " * self._width + "\r", end="", file=sys.stderr, flush=True)
            self._width = 0

    async def run(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self.show()


def _criteria_from_args(args: argparse.Namespace) -> FilterCriteria:
    return FilterCriteria.build(
        services=args.services,
        max_priority=args.priority,
        pattern=args.pattern,
        secondary_pattern=args.pattern2,
        combine_mode=args.mode,
    )


def _add_filter_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "-u",
        "--unit",
        dest="services",
        action="append",
        default=[],
        help="Only include this service (repeatable). Default: all services",
    )
    p.add_argument("-P", "--priority", type=_priority, default=7, help="Max priority 0..7 (default: 7)")
    p.add_argument("--pattern", default=None, help="Regex searched in the message")
    p.add_argument("--pattern2", default=None, help="Second regex, combined with --mode")
    p.add_argument(
        "--mode",
        choices=[m.value for m in CombineMode],
        default=CombineMode.MATCH.value,
        help="How --pattern and --pattern2 combine (default: match)",
    )


def _reads_stdin(log_path: str | None) -> bool:
    return log_path is None or log_path == "-"


async def _monitor(args: argparse.Namespace, criteria: FilterCriteria, state: AnalysisState) -> None:
    cfg = resolve_session_config()
    status_line = _StatusLine(state)

    def _print_entry(entry: LogEntry) -> None:
        status_line.clear()
        print(format_entry(entry), flush=True)
        for alert in live_alerts(entry):
            print(f"  ! {alert}", flush=True)

    if _reads_stdin(args.log_path):
        print("Reading from stdin (journalctl -f -o json | jlog monitor)", file=sys.stderr)
        handle = spawn_stream_reader(sys.stdin, cfg)
    else:
        print(f"Watching: {args.log_path}", file=sys.stderr)
        handle = spawn_file_reader(args.log_path, cfg, follow=True, from_end=not args.from_start)

    session = AnalysisSession(
        channel=handle.channel,
        criteria=criteria,
        state=state,
        drain_batch=cfg.drain_batch,
        on_entry=_print_entry,
    )
    ticker = asyncio.create_task(status_line.run(STATUS_INTERVAL))
    try:
        status = await session.run_until_complete()
    finally:
        ticker.cancel()
        handle.task.cancel()
        await asyncio.gather(ticker, handle.task, return_exceptions=True)
        status_line.clear()
        print(format_status(state), file=sys.stderr)
    if status.error is not None:
        raise LogReadError(status.error)


def _configure_logging() -> None:
    level_name = os.getenv("JLOG_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: Sequence[str] | None = None) -> None:
    p = argparse.ArgumentParser(prog="jlog", description="Systemd journal and syslog analyzer.")
    sub = p.add_subparsers(dest="command", required=True)

    pa = sub.add_parser("analyze", help="Aggregate a log file and detect patterns")
    pa.add_argument("log_path")
    _add_filter_args(pa)
    pa.add_argument("-n", "--top", type=int, default=None, help="Top N services/messages (default: 10)")
    pa.add_argument("--json", dest="as_json", action="store_true", help="Print the report as JSON")

    pm = sub.add_parser("monitor", help="Tail a log file (or read stdin) and print matching entries")
    pm.add_argument("log_path", nargs="?", default=None, help="File to follow; omit or use - for stdin")
    _add_filter_args(pm)
    pm.add_argument("--from-start", action="store_true", help="Read existing content before tailing")

    args = p.parse_args(argv)
    _configure_logging()

    try:
        if args.command == "analyze" or not _reads_stdin(args.log_path):
            path = Path(args.log_path)
            if not path.is_file():
                raise FileNotFoundError(f"Log file not found: {path}")
        criteria = _criteria_from_args(args)

        if args.command == "analyze":
            top = args.top if args.top is not None else resolve_session_config().top_n
            if top <= 0:
                raise ValueError("--top must be > 0")
            result = asyncio.run(analyze_file(path, criteria=criteria))
            report = result.report(top=top)
            if args.as_json:
                print(json.dumps(report.model_dump(), indent=2))
            else:
                print("\n".join(render_report(report)))
            return

        state = AnalysisState()
        try:
            asyncio.run(_monitor(args, criteria, state))
        except KeyboardInterrupt:
            print("", file=sys.stderr)
        print("\n".join(render_report(build_report(state))))
    except FileNotFoundError as e:
        print(str(e), file=sys.stderr)
        raise SystemExit(2)
    except LogReadError as e:
        print(str(e), file=sys.stderr)
        raise SystemExit(1)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(2)


if __name__ == "__main__":
    main()
