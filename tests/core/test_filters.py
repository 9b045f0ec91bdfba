from __future__ import annotations

import pytest

from jlog_analyzer.core.filters import CombineMode, FilterCriteria, InvalidPatternError


def test_default_criteria_admits_everything(make_entry) -> None:
    criteria = FilterCriteria()
    assert criteria.matches(make_entry("anything", priority=7, service="x"))


def test_max_priority_is_inclusive(make_entry) -> None:
    criteria = FilterCriteria(max_priority=4)
    assert criteria.matches(make_entry("w", priority=4))
    assert not criteria.matches(make_entry("n", priority=5))


def test_empty_service_set_means_all(make_entry) -> None:
    criteria = FilterCriteria.build(services=[])
    assert criteria.matches(make_entry("m", service="sshd"))

    only = criteria.with_services(["sshd"])
    assert only.matches(make_entry("m", service="sshd"))
    assert not only.matches(make_entry("m", service="sshd.service"))


@pytest.mark.parametrize(
    ("mode", "message", "expected"),
    [
        (CombineMode.MATCH, "disk error", True),
        (CombineMode.MATCH, "all good", False),
        (CombineMode.AND, "disk error", True),
        (CombineMode.AND, "net error", False),
        (CombineMode.OR, "net error", True),
        (CombineMode.OR, "disk full", True),
        (CombineMode.OR, "all good", False),
        (CombineMode.NOT, "disk error", False),
        (CombineMode.NOT, "all good", True),
    ],
)
def test_combine_modes(make_entry, mode: CombineMode, message: str, expected: bool) -> None:
    criteria = FilterCriteria.build(pattern="error", secondary_pattern="disk", combine_mode=mode)
    assert criteria.matches(make_entry(message)) is expected


def test_absent_patterns_do_not_reject(make_entry) -> None:
    entry = make_entry("anything")
    for mode in CombineMode:
        assert FilterCriteria.build(combine_mode=mode).matches(entry)

    # AND with only the secondary set behaves like matching the secondary.
    criteria = FilterCriteria.build(secondary_pattern="disk", combine_mode="and")
    assert criteria.matches(make_entry("disk full"))
    assert not criteria.matches(make_entry("net down"))


def test_patterns_are_searched_not_anchored(make_entry) -> None:
    criteria = FilterCriteria.build(pattern="(?i)timeout")
    assert criteria.matches(make_entry("upstream TIMEOUT after 3s"))


def test_invalid_pattern_keeps_previous_criteria() -> None:
    criteria = FilterCriteria.build(pattern="ok")
    with pytest.raises(InvalidPatternError):
        criteria = criteria.with_primary("(unclosed")
    assert criteria.primary is not None
    assert criteria.primary.pattern == "ok"


def test_invalid_pattern_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        FilterCriteria.build(secondary_pattern="[")


def test_mode_accepts_names() -> None:
    assert FilterCriteria().with_mode("OR").combine_mode is CombineMode.OR
    with pytest.raises(ValueError):
        FilterCriteria().with_mode("xor")


def test_max_priority_out_of_range() -> None:
    with pytest.raises(ValueError):
        FilterCriteria(max_priority=8)
