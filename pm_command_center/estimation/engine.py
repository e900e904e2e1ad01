from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Sequence

from pm_command_center.domain.estimation import EstimationResult
from pm_command_center.estimation.fibonacci import nearest_fibonacci, points_label
from pm_command_center.estimation.lexicon import analyze_keywords
from pm_command_center.estimation.similarity import (
    HistoricalIssue,
    HistorySource,
    as_history,
    find_similar_issues,
)

logger = logging.getLogger(__name__)

DAYS_PER_POINT = 0.75
BRIEF_TEXT_THRESHOLD = 50
STRONG_MATCH_SIMILARITY = 0.5
VERY_STRONG_MATCH_SIMILARITY = 0.7
WEAK_MATCH_SIMILARITY = 0.3

NO_HISTORY_WARNING = "No historical data available - estimate based on heuristics only"
INTEGRATION_WARNING = "Integration work often takes longer than expected"
SECURITY_WARNING = "Security features require thorough review and testing"
BRIEF_TEXT_WARNING = "Story description is brief - consider adding more detail"


@dataclass(frozen=True)
class EstimationStatistics:
    total_issues: int
    average_points: float
    points_distribution: Mapping[float, int]


@dataclass
class EstimationEngine:
    """Estimates a story against one collection of completed stories.

    Strong textual matches reuse historical points; weak matches are blended
    with keyword analysis; without matches the keyword tiers decide alone.
    """

    _history: list[HistoricalIssue] = field(default_factory=list)

    def load_historical_data(self, issues: Iterable[HistorySource]) -> None:
        self._history = as_history(issues)
        logger.debug("Loaded %d historical issues", len(self._history))

    def learn_from_history(self, issues: Iterable[HistorySource]) -> None:
        self.load_historical_data(issues)

    @property
    def history_size(self) -> int:
        return len(self._history)

    def estimate(
        self,
        story_text: str,
        description: str | None = None,
        labels: Sequence[str] | None = None,
    ) -> EstimationResult:
        text = f"{story_text} {description or ''} {' '.join(labels or ())}".lower()

        similar = find_similar_issues(text, self._history)
        keywords = analyze_keywords(text)

        factors: list[str] = []
        warnings: list[str] = []

        if len(similar) >= 3 and similar[0].similarity > STRONG_MATCH_SIMILARITY:
            avg_points = sum(s.points for s in similar[:3]) / 3
            points = nearest_fibonacci(avg_points)
            confidence = 85 if similar[0].similarity > VERY_STRONG_MATCH_SIMILARITY else 70
            based_on = f"{len(similar)} similar completed stories"
            factors.append(f"Found {len(similar)} similar historical issues")
        elif similar and similar[0].similarity > WEAK_MATCH_SIMILARITY:
            blended = (similar[0].points + keywords.points) / 2
            points = nearest_fibonacci(blended)
            confidence = 60
            based_on = f"{len(similar)} related stories + complexity analysis"
            factors.append("Blended estimate from historical data and keyword analysis")
        else:
            points = keywords.points
            confidence = 55 if keywords.match_count > 2 else 40
            based_on = keywords.reason
            factors.append(keywords.reason)
            if not self._history:
                warnings.append(NO_HISTORY_WARNING)

        if keywords.matched_keywords:
            factors.append(f"Complexity keywords: {', '.join(keywords.matched_keywords[:3])}")

        if "integration" in text and points < 5:
            warnings.append(INTEGRATION_WARNING)
        if "security" in text and points < 5:
            warnings.append(SECURITY_WARNING)
        if len(text) < BRIEF_TEXT_THRESHOLD:
            warnings.append(BRIEF_TEXT_WARNING)

        return EstimationResult(
            points=points,
            label=points_label(points),
            estimated_days=math.ceil(points * DAYS_PER_POINT),
            confidence=confidence,
            based_on=based_on,
            factors=tuple(factors),
            warnings=tuple(warnings),
            similar_issues=tuple(similar[:3]),
        )

    def batch_estimate(self, stories: Iterable[Mapping[str, object]]) -> list[tuple[str, EstimationResult]]:
        """Estimate many stories given as {"title", "description", "labels"} mappings."""
        out: list[tuple[str, EstimationResult]] = []
        for story in stories:
            title = str(story.get("title") or "")
            description = story.get("description")
            labels = story.get("labels") or ()
            out.append(
                (
                    title,
                    self.estimate(
                        title,
                        str(description) if description is not None else None,
                        [str(label) for label in labels],  # type: ignore[union-attr]
                    ),
                )
            )
        return out

    def statistics(self) -> EstimationStatistics:
        pointed = [i.story_points for i in self._history if i.story_points is not None]
        if not pointed:
            return EstimationStatistics(total_issues=0, average_points=0.0, points_distribution={})
        return EstimationStatistics(
            total_issues=len(pointed),
            average_points=sum(pointed) / len(pointed),
            points_distribution=dict(Counter(pointed)),
        )


def estimate(
    story_text: str,
    description: str | None = None,
    labels: Sequence[str] | None = None,
    historical_issues: Iterable[HistorySource] = (),
) -> EstimationResult:
    engine = EstimationEngine()
    engine.load_historical_data(historical_issues)
    return engine.estimate(story_text, description, labels)
