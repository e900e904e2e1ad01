from __future__ import annotations

import itertools

import pytest

from pm_command_center.estimation.lexicon import analyze_keywords

# Keywords chosen so that none is a substring of another tier's keywords.
_HIGH = ("refactor", "architecture", "distributed")
_MEDIUM = ("enhancement", "validation", "extend")
_LOW = ("typo", "documentation", "rename")


def _expected_points(high: int, medium: int, low: int) -> int:
    if high >= 2:
        return 13
    if high == 1:
        return 8
    if medium >= 2:
        return 5
    if medium == 1 or low == 0:
        return 3
    if low >= 2:
        return 1
    return 2


@pytest.mark.parametrize("high,medium,low", list(itertools.product(range(4), repeat=3)))
def test_decision_table_precedence(high: int, medium: int, low: int) -> None:
    text = " ".join(_HIGH[:high] + _MEDIUM[:medium] + _LOW[:low])
    result = analyze_keywords(text)

    assert result.points == _expected_points(high, medium, low)
    assert result.match_count == high + medium + low


def test_two_high_tier_keywords_score_thirteen() -> None:
    result = analyze_keywords("Refactor the distributed cache")

    assert result.points == 13
    assert result.matched_keywords == ("refactor", "distributed")
    assert result.reason.startswith("High complexity indicators")


def test_single_low_keyword_is_unclear_scope() -> None:
    result = analyze_keywords("fix")

    assert result.points == 2
    assert result.reason == "Default estimate for unclear scope"


def test_substring_containment_counts() -> None:
    # "prefix" contains "fix", "bugs" contains "bug"
    assert analyze_keywords("prefix bugs").points == 1
