"""MCP tool implementations.

This module contains the *implementation* behind the exposed MCP tools.
Keep this layer thin: validate inputs, translate them into core calls, and
return JSON-serializable data structures.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any

from jlog_analyzer.core.config import resolve_session_config
from jlog_analyzer.core.export import ExportFormat, write_entries
from jlog_analyzer.core.filters import CombineMode, FilterCriteria
from jlog_analyzer.core.log_service import analyze_file, get_logs, iter_entries
from jlog_analyzer.core.models import LogEntry, priority_name

DEFAULT_ENTRY_LIMIT = 200
HARD_LIMIT = 5000
MAX_TOP = 100


def _build_criteria(
    *,
    services: Sequence[str] | None,
    max_priority: int | None,
    pattern: str | None,
    secondary_pattern: str | None,
    combine_mode: str | None,
) -> FilterCriteria:
    """Translate tool arguments into filter criteria."""
    mode = (combine_mode or CombineMode.MATCH.value).strip().lower()
    try:
        mode_enum = CombineMode(mode)
    except ValueError as e:
        valid = ", ".join(m.value for m in CombineMode)
        raise ValueError(f"Unknown combine_mode '{combine_mode}'. Valid values: {valid}.") from e

    return FilterCriteria.build(
        services=[s.strip() for s in services or () if s.strip()],
        max_priority=7 if max_priority is None else max_priority,
        pattern=pattern,
        secondary_pattern=secondary_pattern,
        combine_mode=mode_enum,
    )


def _entry_to_dict(entry: LogEntry) -> dict[str, Any]:
    return {
        "line_no": entry.line_no,
        "timestamp": entry.timestamp or None,
        "priority": entry.priority,
        "priority_name": priority_name(entry.priority).lower(),
        "service": entry.service,
        "message": entry.message,
    }


async def analyze_log_impl(
    *,
    log_path: str,
    services: Sequence[str] | None = None,
    max_priority: int | None = None,
    pattern: str | None = None,
    secondary_pattern: str | None = None,
    combine_mode: str | None = None,
    top: int | None = None,
    include_trends: bool = False,
) -> dict[str, Any]:
    """Implementation for the `analyze_log` MCP tool.

    Notes
    -----
    - top defaults to JLOG_TOP_N (10) and is capped at MAX_TOP.
    - An invalid regex raises InvalidPatternError (a ValueError).
    """
    cfg = resolve_session_config()
    if top is None:
        top = cfg.top_n
    if top <= 0:
        raise ValueError("top must be > 0")
    top = min(top, MAX_TOP)

    criteria = _build_criteria(
        services=services,
        max_priority=max_priority,
        pattern=pattern,
        secondary_pattern=secondary_pattern,
        combine_mode=combine_mode,
    )
    result = await analyze_file(log_path, criteria=criteria, config=cfg)
    return result.report(top=top, include_trends=include_trends).model_dump()


async def search_entries_impl(
    *,
    log_path: str,
    services: Sequence[str] | None = None,
    max_priority: int | None = None,
    pattern: str | None = None,
    secondary_pattern: str | None = None,
    combine_mode: str | None = None,
    limit: int | None = None,
) -> dict[str, Any]:
    """Implementation for the `search_entries` MCP tool."""
    if limit is None:
        limit = DEFAULT_ENTRY_LIMIT
    if limit <= 0:
        raise ValueError("limit must be > 0")
    limit = min(limit, HARD_LIMIT)

    criteria = _build_criteria(
        services=services,
        max_priority=max_priority,
        pattern=pattern,
        secondary_pattern=secondary_pattern,
        combine_mode=combine_mode,
    )
    # Only the first `limit` matches are held; the rest are just counted.
    count = 0
    kept: list[dict[str, Any]] = []
    async for entry in iter_entries(log_path, criteria=criteria):
        count += 1
        if len(kept) < limit:
            kept.append(_entry_to_dict(entry))
    return {"count": count, "truncated": count > limit, "entries": kept}


async def export_entries_impl(
    *,
    log_path: str,
    output_path: str | Path,
    fmt: str = ExportFormat.JSON.value,
    services: Sequence[str] | None = None,
    max_priority: int | None = None,
    pattern: str | None = None,
    secondary_pattern: str | None = None,
    combine_mode: str | None = None,
) -> dict[str, Any]:
    """Implementation for the `export_entries` MCP tool."""
    try:
        export_format = ExportFormat(fmt.strip().lower())
    except ValueError as e:
        valid = ", ".join(f.value for f in ExportFormat)
        raise ValueError(f"Unknown format '{fmt}'. Valid values: {valid}.") from e

    criteria = _build_criteria(
        services=services,
        max_priority=max_priority,
        pattern=pattern,
        secondary_pattern=secondary_pattern,
        combine_mode=combine_mode,
    )
    entries = await get_logs(log_path, criteria=criteria)
    written = write_entries(entries, output_path, export_format)
    return {"written": written, "output_path": str(output_path), "format": export_format.value}
