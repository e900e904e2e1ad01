from __future__ import annotations

import re
from dataclasses import dataclass
from typing import AbstractSet, Iterable, Sequence, Union

from pm_command_center.domain.estimation import SimilarIssue
from pm_command_center.domain.issues import (
    AzureDevOpsRawWorkItem,
    GitHubRawIssue,
    JiraRawIssue,
    RawIssue,
    UnifiedIssue,
)
from pm_command_center.normalization.normalizer import normalize

MIN_TOKEN_LENGTH = 4
SIMILARITY_FLOOR = 0.1
DEFAULT_HISTORICAL_POINTS = 3.0

_POINTS_IN_LABEL = re.compile(r"(\d+)\s*points?", re.IGNORECASE)


@dataclass(frozen=True)
class HistoricalIssue:
    """A completed story used as a reference for similarity search."""

    title: str
    body: str = ""
    labels: tuple[str, ...] = ()
    story_points: float | None = None
    cycle_time_days: int | None = None

    @classmethod
    def from_unified(cls, issue: UnifiedIssue) -> "HistoricalIssue":
        return cls(
            title=issue.title,
            body=issue.description,
            labels=issue.labels,
            story_points=issue.story_points,
            cycle_time_days=issue.cycle_time_days,
        )

    @property
    def text(self) -> str:
        return f"{self.title} {self.body} {' '.join(self.labels)}".lower()

    def reference_points(self) -> float:
        """Story points for comparison; a 'N points' label wins over the field."""
        points = self.story_points or DEFAULT_HISTORICAL_POINTS
        for label in self.labels:
            match = _POINTS_IN_LABEL.search(label)
            if match:
                return float(match.group(1))
        return float(points)


def tokenize(text: str) -> frozenset[str]:
    return frozenset(w for w in text.lower().split() if len(w) >= MIN_TOKEN_LENGTH)


def jaccard_similarity(a: AbstractSet[str], b: AbstractSet[str]) -> float:
    union = len(a | b)
    if union == 0:
        return 0.0
    return len(a & b) / union


def find_similar_issues(
    text: str,
    history: Sequence[HistoricalIssue],
    *,
    floor: float = SIMILARITY_FLOOR,
) -> list[SimilarIssue]:
    """Historical issues above the similarity floor, most similar first."""
    if not history:
        return []
    words = tokenize(text)
    scored: list[SimilarIssue] = []
    for issue in history:
        similarity = jaccard_similarity(words, tokenize(issue.text))
        if similarity > floor:
            scored.append(
                SimilarIssue(
                    title=issue.title,
                    points=issue.reference_points(),
                    similarity=similarity,
                )
            )
    return sorted(scored, key=lambda s: s.similarity, reverse=True)


HistorySource = Union[HistoricalIssue, UnifiedIssue, RawIssue]


def as_history(issues: Iterable[HistorySource]) -> list[HistoricalIssue]:
    """Accept completed stories as reference records, unified issues or raw payloads."""
    out: list[HistoricalIssue] = []
    for issue in issues:
        if isinstance(issue, (GitHubRawIssue, AzureDevOpsRawWorkItem, JiraRawIssue)):
            issue = normalize(issue)
        if isinstance(issue, UnifiedIssue):
            out.append(HistoricalIssue.from_unified(issue))
        else:
            out.append(issue)
    return out
