"""Message normalizer for grouping.

Replaces variable substrings (addresses, ids, times, paths, sizes, counters)
with fixed placeholders so that structurally identical messages share one key.

Substitution order matters: every pattern assumes the ones before it already
collapsed the higher-precedence forms (UUIDs before hex runs, IPs before
versions, times before port suffixes). Placeholders contain no digits, hex
runs or separators the later patterns look for, so normalizing twice gives the
same key.
"""

from __future__ import annotations

import re

_HEX = "[0-9A-Fa-f]"

# (name, pattern, replacement), applied in this order.
_SUBSTITUTIONS: tuple[tuple[str, re.Pattern[str], str], ...] = (
    (
        "uuid",
        re.compile(rf"\b{_HEX}{{8}}-{_HEX}{{4}}-{_HEX}{{4}}-{_HEX}{{4}}-{_HEX}{{12}}\b"),
        "<UUID>",
    ),
    ("mac", re.compile(rf"\b(?:{_HEX}{{2}}[:-]){{5}}{_HEX}{{2}}\b"), "<MAC>"),
    (
        "ipv6",
        # Full form needs 4+ groups so HH:MM:SS times are left alone. Never
        # glued to a placeholder, which a later substitution may have made.
        re.compile(
            rf"(?<![\w:>])(?:"
            rf"(?:{_HEX}{{1,4}}:){{3,7}}{_HEX}{{1,4}}"
            rf"|(?:{_HEX}{{1,4}}:){{1,7}}:(?:{_HEX}{{1,4}}(?::{_HEX}{{1,4}})*)?"
            rf"|::{_HEX}{{1,4}}(?::{_HEX}{{1,4}})*"
            rf")(?![\w:<])"
        ),
        "<IPV6>",
    ),
    ("ipv4", re.compile(r"\b(?:\d{1,3}\.){3}\d{1,3}\b"), "<IP>"),
    ("time_frac", re.compile(r"(?<![\w:.])\d{1,2}:\d{2}:\d{2}[.,]\d+\b"), "<TIME>"),
    ("time", re.compile(r"(?<![\w:.])\d{1,2}:\d{2}(?::\d{2})?\b"), "<TIME>"),
    (
        "date",
        # ISO datetimes keep their time part: no word boundary follows the "T".
        re.compile(
            r"\b\d{4}-\d{2}-\d{2}(?:T\d{2}:\d{2}(?::\d{2})?(?:[.,]\d+)?(?:Z|[+-]\d{2}:?\d{2})?)?(?!\w)"
            r"|\b\d{1,4}/\d{1,2}/\d{2,4}\b"
        ),
        "<DATE>",
    ),
    ("long_hex", re.compile(rf"\b{_HEX}{{12,64}}\b"), "<ID>"),
    ("hex_literal", re.compile(rf"\b0[xX]{_HEX}+\b"), "<HEX>"),
    ("hex_run", re.compile(r"\b(?=[0-9a-fA-F]*[a-fA-F])(?=[0-9a-fA-F]*\d)[0-9a-fA-F]{8,}\b"), "<HEX>"),
    ("path", re.compile(r"(?<![\w:/.<>])(?:/[\w.@+-]+){2,}/?"), "<PATH>"),
    ("url", re.compile(r"\b[A-Za-z][A-Za-z0-9+.-]*://\S+"), "<URL>"),
    ("email", re.compile(r"\b[\w.+-]+@[\w-]+(?:\.[\w-]+)+\b"), "<EMAIL>"),
    (
        "size",
        re.compile(r"\b\d+(?:\.\d+)?\s?(?:[KMGTP]i?B|kB|[Bb]ytes?)\b"),
        "<SIZE>",
    ),
    (
        "duration",
        re.compile(
            r"\b\d+(?:\.\d+)?(?:ms|us|µs|ns|s|m|h)\b"
            r"|\b\d+(?:\.\d+)?\s?(?:secs?|seconds?|mins?|minutes?|hrs?|hours?|days?)\b"
        ),
        "<DURATION>",
    ),
    ("port", re.compile(r"\b([Pp]ort)\s+\d+\b"), r"\1 <PORT>"),
    ("port_suffix", re.compile(r"(?<=[\w>\]]):\d{1,5}\b"), ":<PORT>"),
    ("bracket_pid", re.compile(r"\[\d+\]"), "[<PID>]"),
    ("pid", re.compile(r"\b([Pp][Ii][Dd])([=:]\s?)\d+\b"), r"\1\2<PID>"),
    (
        "session_id",
        re.compile(
            r"\b((?:[Ss]ession|[Rr]equest|[Rr]eq|[Tt]ransaction|[Tt]xn|[Tt]race)(?:[ _-]?(?:id|ID|Id))?)"
            r"([=:#]\s?|\s+)(?=[\w-]*\d)[\w-]+"
        ),
        r"\1\2<ID>",
    ),
    ("counter_paren", re.compile(r"\(\d+/\d+\)"), "(<N>/<N>)"),
    ("counter", re.compile(r"\b\d+/\d+\b"), "<N>/<N>"),
    ("percent", re.compile(r"\b\d+(?:\.\d+)?%"), "<PCT>"),
    ("number", re.compile(r"\b\d{5,}\b"), "<NUM>"),
    ("version", re.compile(r"\bv?\d+(?:\.\d+)+\b"), "<VER>"),
)

_WS_RE = re.compile(r"\s+")

# Placeholders a normalized key may contain.
PLACEHOLDERS: tuple[str, ...] = tuple(
    dict.fromkeys(
        m.group(0)
        for _, _, repl in _SUBSTITUTIONS
        for m in re.finditer(r"<[A-Z0-9]+>", repl)
    )
)

DISPLAY_LIMIT = 50
TOP_MESSAGE_LIMIT = 70


def normalize_message(message: str) -> str:
    """Collapse variable parts of a message into a stable grouping key."""
    # Pre-collapsing keeps single-space patterns stable across passes.
    out = _WS_RE.sub(" ", message)
    for _, pattern, repl in _SUBSTITUTIONS:
        out = pattern.sub(repl, out)
    return _WS_RE.sub(" ", out).strip()


def truncate_display(text: str, limit: int = DISPLAY_LIMIT) -> str:
    """Bound a key for display, marking the cut with `...`."""
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."
