"""Composable entry filter.

A `FilterCriteria` is immutable: every change builds a new one, so a pattern
that fails to compile leaves the previous criteria in effect.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, replace
from enum import Enum

from .models import LogEntry


class CombineMode(str, Enum):
    """How the primary and secondary patterns are combined."""

    MATCH = "match"
    AND = "and"
    OR = "or"
    NOT = "not"


class InvalidPatternError(ValueError):
    """A filter pattern is not a valid regular expression."""

    def __init__(self, pattern: str, error: re.error) -> None:
        super().__init__(f"Invalid pattern {pattern!r}: {error}")
        self.pattern = pattern


# Filter bar priority choices: label -> inclusive max priority.
PRIORITY_CHOICES: tuple[tuple[str, int], ...] = (
    ("All (debug+)", 7),
    ("INFO+", 6),
    ("NOTICE+", 5),
    ("WARN+", 4),
    ("ERR+", 3),
    ("CRIT+", 2),
)

QUICK_PATTERNS: tuple[tuple[str, str], ...] = (
    ("Errors", "(?i)(error|fail|fatal)"),
    ("Warnings", "(?i)(warn|timeout|denied)"),
    ("SSH", "(?i)(ssh|sshd|auth)"),
    ("Kernel", "(?i)(kernel|oom|segfault)"),
    ("Systemd", "(?i)(systemd|service|unit)"),
)


def coerce_mode(value: CombineMode | str) -> CombineMode:
    """Accept a CombineMode or its case-insensitive name."""
    if isinstance(value, CombineMode):
        return value
    return CombineMode(value.strip().lower())


def compile_pattern(text: str | None) -> re.Pattern[str] | None:
    """Compile a user pattern; empty text means no pattern."""
    if not text:
        return None
    try:
        return re.compile(text)
    except re.error as e:
        raise InvalidPatternError(text, e) from e


@dataclass(frozen=True, slots=True)
class FilterCriteria:
    """Priority ceiling, service allow-list and up to two regex patterns.

    The default instance admits every entry.
    """

    allowed_services: frozenset[str] = frozenset()  # empty = all services
    max_priority: int = 7
    primary: re.Pattern[str] | None = None
    secondary: re.Pattern[str] | None = None
    combine_mode: CombineMode = CombineMode.MATCH

    def __post_init__(self) -> None:
        if not 0 <= self.max_priority <= 7:
            raise ValueError("max_priority must be between 0 and 7")

    @classmethod
    def build(
        cls,
        *,
        services: Iterable[str] | None = None,
        max_priority: int = 7,
        pattern: str | None = None,
        secondary_pattern: str | None = None,
        combine_mode: CombineMode | str = CombineMode.MATCH,
    ) -> FilterCriteria:
        """Build criteria from raw user input."""
        return cls(
            allowed_services=frozenset(services or ()),
            max_priority=max_priority,
            primary=compile_pattern(pattern),
            secondary=compile_pattern(secondary_pattern),
            combine_mode=coerce_mode(combine_mode),
        )

    def with_primary(self, text: str | None) -> FilterCriteria:
        return replace(self, primary=compile_pattern(text))

    def with_secondary(self, text: str | None) -> FilterCriteria:
        return replace(self, secondary=compile_pattern(text))

    def with_services(self, services: Iterable[str]) -> FilterCriteria:
        return replace(self, allowed_services=frozenset(services))

    def with_max_priority(self, max_priority: int) -> FilterCriteria:
        return replace(self, max_priority=max_priority)

    def with_mode(self, mode: CombineMode | str) -> FilterCriteria:
        return replace(self, combine_mode=coerce_mode(mode))

    def matches(self, entry: LogEntry) -> bool:
        """Check if an entry passes all filters."""
        # Lower number = higher severity.
        if entry.priority > self.max_priority:
            return False

        if self.allowed_services and entry.service not in self.allowed_services:
            return False

        return self._patterns_match(entry.message)

    def _patterns_match(self, message: str) -> bool:
        first = self.primary.search(message) is not None if self.primary else None
        second = self.secondary.search(message) is not None if self.secondary else None

        mode = self.combine_mode
        if mode is CombineMode.MATCH:
            return first is not False
        if mode is CombineMode.AND:
            return first is not False and second is not False
        if mode is CombineMode.OR:
            if first is None and second is None:
                return True
            return bool(first) or bool(second)
        # NOT
        return first is not True
