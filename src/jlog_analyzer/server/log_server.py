"""MCP server entrypoint (stdio transport).

This module wires together:
- Tools: analyze a journal file, search entries, export filtered entries
- Resources: help, report schema, normalizer placeholders, log contents by URI

Run locally (stdio):
    python -m jlog_analyzer
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Sequence
from typing import Any

from mcp.server.fastmcp import FastMCP

from jlog_analyzer.resources.registry import register_resources, resolve_log_path, safe_resolve
from jlog_analyzer.tools.analyze import analyze_log_impl, export_entries_impl, search_entries_impl

LOGGER = logging.getLogger(__name__)


def _configure_logging() -> None:
    """Configure a reasonable default logging setup.

    The MCP client typically captures stderr; keeping logs concise makes them easier to consume.
    """
    level_name = os.getenv("JLOG_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


mcp = FastMCP("jlog-analyzer", json_response=True)

register_resources(mcp)


@mcp.tool()
async def analyze_log(
    log_path: str,
    services: Sequence[str] | None = None,
    max_priority: int | None = None,
    pattern: str | None = None,
    secondary_pattern: str | None = None,
    combine_mode: str | None = None,
    top: int | None = None,
    include_trends: bool = False,
) -> dict[str, Any]:
    """Aggregate a journal or syslog file and detect message patterns.

    Parameters
    ----------
    log_path:
        Path to a journalctl JSON, syslog text or exported log (plain or .gz),
        restricted to JLOG_BASE_DIR.
    services:
        Only count entries from these services. Empty means all services.
    max_priority:
        Inclusive syslog priority ceiling, 0 (emerg) .. 7 (debug).
    pattern/secondary_pattern:
        Regular expressions searched in the message.
    combine_mode:
        match | and | or | not. How the two patterns are combined.
    top:
        Size of the top services/messages lists.
    include_trends:
        Include per-minute counts of the top messages.

    Returns
    -------
    dict:
        The AnalysisReport (see app://jlog/schemas/analysis-report).
    """
    return await analyze_log_impl(
        log_path=str(resolve_log_path(log_path)),
        services=services,
        max_priority=max_priority,
        pattern=pattern,
        secondary_pattern=secondary_pattern,
        combine_mode=combine_mode,
        top=top,
        include_trends=include_trends,
    )


@mcp.tool()
async def search_entries(
    log_path: str,
    services: Sequence[str] | None = None,
    max_priority: int | None = None,
    pattern: str | None = None,
    secondary_pattern: str | None = None,
    combine_mode: str | None = None,
    limit: int | None = None,
) -> dict[str, Any]:
    """Return parsed entries that pass the filter.

    Returns
    -------
    dict:
        {"count": int, "truncated": bool, "entries": list[dict]}
    """
    return await search_entries_impl(
        log_path=str(resolve_log_path(log_path)),
        services=services,
        max_priority=max_priority,
        pattern=pattern,
        secondary_pattern=secondary_pattern,
        combine_mode=combine_mode,
        limit=limit,
    )


@mcp.tool()
async def export_entries(
    log_path: str,
    output_path: str,
    fmt: str = "json",
    services: Sequence[str] | None = None,
    max_priority: int | None = None,
    pattern: str | None = None,
    secondary_pattern: str | None = None,
    combine_mode: str | None = None,
) -> dict[str, Any]:
    """Write filtered entries as JSON lines ("json") or plaintext ("text").

    Both paths are restricted to JLOG_BASE_DIR.
    """
    return await export_entries_impl(
        log_path=str(resolve_log_path(log_path)),
        output_path=safe_resolve(output_path),
        fmt=fmt,
        services=services,
        max_priority=max_priority,
        pattern=pattern,
        secondary_pattern=secondary_pattern,
        combine_mode=combine_mode,
    )


def main(argv: Sequence[str] | None = None) -> None:
    """Start the MCP server over stdio."""
    _configure_logging()
    LOGGER.debug("Starting MCP server (transport=stdio)")
    _ = argv or sys.argv[1:]
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
