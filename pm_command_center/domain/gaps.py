from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

SEVERITY_HIGH = "high"
SEVERITY_MEDIUM = "medium"
SEVERITY_LOW = "low"

SEVERITY_PENALTIES: Mapping[str, int] = {
    SEVERITY_HIGH: 25,
    SEVERITY_MEDIUM: 10,
    SEVERITY_LOW: 5,
}


@dataclass(frozen=True)
class Gap:
    category: str
    severity: str  # "high" | "medium" | "low"
    message: str
    suggestion: str
    kind: str = "coverage"  # "missing" | "coverage"


@dataclass(frozen=True)
class StoryGapReport:
    issue_id: str
    title: str
    url: str
    gaps: tuple[Gap, ...]
    score: int

    @property
    def gap_count(self) -> int:
        return len(self.gaps)

    @property
    def high_severity_count(self) -> int:
        return sum(1 for g in self.gaps if g.severity == SEVERITY_HIGH)

    def has_category(self, category: str) -> bool:
        return any(g.category == category for g in self.gaps)


@dataclass(frozen=True)
class GapSummary:
    total_stories: int
    total_gaps: int
    avg_score: int
    stories_with_high_gaps: int
    by_category: Mapping[str, int] = field(default_factory=dict)
