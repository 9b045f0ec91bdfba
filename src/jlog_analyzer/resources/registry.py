"""MCP resource registry.

Resources are addressable by URI and can be fetched by the MCP client on demand.
"""

from __future__ import annotations

import asyncio
import gzip
import os
from pathlib import Path
from typing import Any

from mcp.server.fastmcp import FastMCP

from jlog_analyzer.core.filters import PRIORITY_CHOICES, QUICK_PATTERNS
from jlog_analyzer.core.formats import PRIORITY_KEYWORDS
from jlog_analyzer.core.normalize import PLACEHOLDERS
from jlog_analyzer.core.report import AnalysisReport

ALLOWED_FILE_SUFFIXES = {".log", ".txt", ".json", ".jsonl"}
BASE_DIR_ENV = "JLOG_BASE_DIR"
TEXT_ENCODING = "utf-8"
TEXT_ERRORS = "replace"

SAMPLE_LOG = (
    "Jan 10 10:00:01 web01 systemd[1]: Started nginx.service.\n"
    "Jan 10 10:00:05 web01 sshd[812]: Failed password for root from 10.0.0.5 port 52211 ssh2\n"
    "Jan 10 10:00:09 web01 sshd[815]: Failed password for root from 10.0.0.7 port 52219 ssh2\n"
    "Jan 10 10:01:12 web01 kernel: Out of memory: Killed process 4242 (java)\n"
    '{"__REALTIME_TIMESTAMP":"1736503300000000","PRIORITY":"4","SYSLOG_IDENTIFIER":"nginx",'
    '"MESSAGE":"upstream timed out while reading response header"}\n'
    "2025-01-10 10:02:00 cron[6]: (root) CMD (run-parts /etc/cron.hourly)\n"
)


def _base_dir() -> Path:
    """Return the resolved base directory for file resources."""
    raw = os.getenv(BASE_DIR_ENV, os.getcwd())
    return Path(raw).resolve()


def safe_resolve(path: str | Path) -> Path:
    """Resolve a path under the configured base directory."""
    base = _base_dir()
    p = Path(path).expanduser()
    if not p.is_absolute():
        p = base / p
    p = p.resolve()
    if base not in p.parents and p != base:
        raise ValueError("Path escapes base dir")
    return p


def _allowed_suffix(path: Path) -> str:
    """Return the effective suffix for allowlist checks."""
    suffix = path.suffix.lower()
    if suffix == ".gz":
        suffix = path.with_suffix("").suffix.lower()
    return suffix


def resolve_log_path(path: str | Path) -> Path:
    """Resolve and validate a readable log path under the base directory."""
    resolved = safe_resolve(path)
    if not resolved.is_file():
        raise FileNotFoundError(f"File not found: {resolved}")
    # Rotated journals have no extension ("syslog", "messages").
    suffix = _allowed_suffix(resolved)
    if suffix and suffix not in ALLOWED_FILE_SUFFIXES:
        allowed = ", ".join(sorted(ALLOWED_FILE_SUFFIXES))
        raise ValueError(f"File type not allowed. Allowed: {allowed}, or no extension.")
    return resolved


def _read_text(path: Path) -> str:
    """Read text from a file, supporting optional gzip compression."""
    if path.suffix.lower() == ".gz":
        with gzip.open(path, mode="rt", encoding=TEXT_ENCODING, errors=TEXT_ERRORS) as f:
            return f.read()
    return path.read_text(encoding=TEXT_ENCODING, errors=TEXT_ERRORS)


def register_resources(mcp: FastMCP) -> None:
    """Register resource handlers on the MCP server."""

    @mcp.resource("app://jlog/help")
    def help_resource() -> str:
        """Return a short list of available resource URIs."""
        allowed = ", ".join(sorted(ALLOWED_FILE_SUFFIXES))
        base = _base_dir()
        return (
            "Resources:\n"
            "- app://jlog/help\n"
            "- app://jlog/config/filters\n"
            "- app://jlog/config/placeholders\n"
            "- app://jlog/schemas/analysis-report\n"
            "- app://jlog/examples/sample-log\n"
            f"- log://{{path}} (restricted to {BASE_DIR_ENV}; allowed: {allowed}, .gz, no extension)\n"
            f"\nBase directory: {base}\n"
        )

    @mcp.resource("app://jlog/examples/sample-log")
    def sample_log() -> str:
        """Return a tiny mixed-format journal sample for demos and tests."""
        return SAMPLE_LOG

    @mcp.resource("app://jlog/config/placeholders")
    def placeholders() -> list[str]:
        """Return the placeholders the message normalizer substitutes."""
        return list(PLACEHOLDERS)

    @mcp.resource("app://jlog/config/filters")
    def filter_presets() -> dict[str, Any]:
        """Return priority choices, quick patterns and priority keywords."""
        return {
            "priority_choices": [{"label": label, "max_priority": p} for label, p in PRIORITY_CHOICES],
            "quick_patterns": [{"label": label, "pattern": rx} for label, rx in QUICK_PATTERNS],
            "priority_keywords": {str(p): list(words) for p, words in PRIORITY_KEYWORDS},
        }

    @mcp.resource("app://jlog/schemas/analysis-report")
    def report_schema() -> dict[str, Any]:
        """Return the JSON schema of the analyze_log result."""
        return AnalysisReport.model_json_schema()

    @mcp.resource("log://{path}")
    async def read_log(path: str) -> str:
        """Return the full log contents."""
        p = resolve_log_path(path)
        return await asyncio.to_thread(_read_text, p)
