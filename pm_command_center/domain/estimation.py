from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from pm_command_center.domain.issues import IssueType, Platform


SCOPE_CROSS_ORG = "cross_org"
SCOPE_SINGLE_SOURCE = "single_source"

DEFAULT_CYCLE_TIME_DAYS: Mapping[IssueType, float] = {
    IssueType.FEATURE: 5.0,
    IssueType.BUG: 2.0,
    IssueType.TASK: 3.0,
}

DEFAULT_COMPLEXITY_MULTIPLIERS: Mapping[str, float] = {
    "api": 1.3,
    "db": 1.4,
    "auth": 1.5,
}

DEFAULT_POINTS_TO_DAYS_RATIO = 1.0


@dataclass(frozen=True)
class PlatformSample:
    platform: Platform
    count: int
    display_name: str


@dataclass(frozen=True)
class EstimationModel:
    """Statistics learned from a batch of closed issues.

    Built fresh for every estimation request and never mutated afterwards.
    """

    has_enough_data: bool
    sample_size: int
    platforms: tuple[PlatformSample, ...] = ()
    avg_cycle_time_by_type: Mapping[IssueType, float] = field(
        default_factory=lambda: dict(DEFAULT_CYCLE_TIME_DAYS)
    )
    complexity_multipliers: Mapping[str, float] = field(
        default_factory=lambda: dict(DEFAULT_COMPLEXITY_MULTIPLIERS)
    )
    points_to_days_ratio: float = DEFAULT_POINTS_TO_DAYS_RATIO
    pointed_issues_count: int = 0
    scope: str = SCOPE_CROSS_ORG  # "cross_org" | "single_source"

    def __post_init__(self) -> None:
        # read-only views over private copies
        for name in ("avg_cycle_time_by_type", "complexity_multipliers"):
            object.__setattr__(self, name, MappingProxyType(dict(getattr(self, name))))

    @property
    def learned_from(self) -> str:
        return ", ".join(f"{p.display_name} ({p.count})" for p in self.platforms)


@dataclass(frozen=True)
class SimilarIssue:
    title: str
    points: float
    similarity: float


@dataclass(frozen=True)
class EstimationBreakdown:
    type: str  # "Feature", "Bug", "Task" or "Unknown"
    base_days: float | None
    complexity_factors: tuple[str, ...] = ()
    learned_from: str = ""


@dataclass(frozen=True)
class EstimationResult:
    points: int
    label: str
    estimated_days: int
    confidence: int
    based_on: str
    factors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    similar_issues: tuple[SimilarIssue, ...] = ()
    breakdown: EstimationBreakdown | None = None
    is_heuristic: bool = False
