from __future__ import annotations

from dataclasses import dataclass
from typing import Final

HIGH_COMPLEXITY: Final[tuple[str, ...]] = (
    "refactor",
    "migration",
    "architecture",
    "security",
    "performance",
    "database",
    "integration",
    "api redesign",
    "breaking change",
    "major",
    "infrastructure",
    "scalability",
    "distributed",
    "concurrent",
)

MEDIUM_COMPLEXITY: Final[tuple[str, ...]] = (
    "feature",
    "enhancement",
    "implement",
    "create",
    "add support",
    "update",
    "extend",
    "new endpoint",
    "authentication",
    "validation",
)

LOW_COMPLEXITY: Final[tuple[str, ...]] = (
    "fix",
    "bug",
    "typo",
    "update text",
    "documentation",
    "config",
    "minor",
    "small",
    "quick",
    "simple",
    "rename",
    "cleanup",
)


@dataclass(frozen=True)
class KeywordAnalysis:
    points: int
    reason: str
    match_count: int
    matched_keywords: tuple[str, ...]


def _matches(text: str, keywords: tuple[str, ...]) -> list[str]:
    return [kw for kw in keywords if kw in text]


def analyze_keywords(text: str) -> KeywordAnalysis:
    """Score text against the complexity tiers by plain substring containment."""
    lowered = text.lower()
    high = _matches(lowered, HIGH_COMPLEXITY)
    medium = _matches(lowered, MEDIUM_COMPLEXITY)
    low = _matches(lowered, LOW_COMPLEXITY)
    matched = tuple(high + medium + low)
    top = ", ".join(matched[:3])

    # Branch order is significant: "medium == 1 or low == 0" precedes the low tiers.
    if len(high) >= 2:
        points, reason = 13, f"High complexity indicators: {top}"
    elif len(high) == 1:
        points, reason = 8, f"Complexity indicator found: {matched[0]}"
    elif len(medium) >= 2:
        points, reason = 5, f"Medium complexity: {top}"
    elif len(medium) == 1 or len(low) == 0:
        points, reason = 3, "Standard feature complexity"
    elif len(low) >= 2:
        points, reason = 1, f"Low complexity indicators: {top}"
    else:
        points, reason = 2, "Default estimate for unclear scope"

    return KeywordAnalysis(
        points=points,
        reason=reason,
        match_count=len(matched),
        matched_keywords=matched,
    )
