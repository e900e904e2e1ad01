from __future__ import annotations

import re
from dataclasses import replace
from typing import Sequence

from pm_command_center.common.time_utils import round_half_up
from pm_command_center.domain.estimation import (
    SCOPE_SINGLE_SOURCE,
    EstimationBreakdown,
    EstimationModel,
    EstimationResult,
)
from pm_command_center.domain.issues import IssueType
from pm_command_center.estimation.engine import EstimationEngine
from pm_command_center.estimation.fibonacci import nearest_fibonacci, points_label
from pm_command_center.estimation.model_builder import COMPLEXITY_TRIGGERS

MAX_CONFIDENCE = 95

_FEATURE_LABELS = frozenset({"feature", "enhancement", "story"})
_BUG_LABELS = frozenset({"bug", "fix"})
_FEATURE_TEXT = re.compile(r"new|create|implement|feature")
_BUG_TEXT = re.compile(r"bug|fix|broken")

_FACTOR_NAMES = {
    "api": "API/Integration work",
    "db": "Database changes",
    "auth": "Auth/Security",
}


def classify_story(title: str, description: str, labels: Sequence[str]) -> IssueType:
    text = f"{title} {description}".lower()
    lowered = {label.lower() for label in labels}
    if lowered & _FEATURE_LABELS or _FEATURE_TEXT.search(text):
        return IssueType.FEATURE
    if lowered & _BUG_LABELS or _BUG_TEXT.search(text):
        return IssueType.BUG
    return IssueType.TASK


def model_confidence(model: EstimationModel) -> int:
    if model.scope == SCOPE_SINGLE_SOURCE:
        return min(MAX_CONFIDENCE, 50 + model.sample_size * 2)
    return min(MAX_CONFIDENCE, 50 + model.sample_size)


def estimate_with_model(
    title: str,
    description: str | None,
    labels: Sequence[str] | None,
    model: EstimationModel,
) -> EstimationResult:
    """Estimate from learned cycle times, or from keywords when the model is too thin."""
    description = description or ""
    labels = list(labels or ())

    if not model.has_enough_data:
        return _heuristic_estimate(title, description, labels)

    story_type = classify_story(title, description, labels)
    base_days = model.avg_cycle_time_by_type[story_type]
    days = base_days

    text = f"{title} {description}"
    factors: list[str] = []
    for name, pattern in COMPLEXITY_TRIGGERS.items():
        if pattern.search(text):
            days *= model.complexity_multipliers[name]
            factors.append(_FACTOR_NAMES[name])

    points = nearest_fibonacci(days / model.points_to_days_ratio)
    breakdown = EstimationBreakdown(
        type=story_type.value.capitalize(),
        base_days=base_days,
        complexity_factors=tuple(factors),
        learned_from=model.learned_from,
    )
    return EstimationResult(
        points=points,
        label=points_label(points),
        estimated_days=round_half_up(days),
        confidence=model_confidence(model),
        based_on=f"Cycle times of {model.sample_size} closed issues ({model.learned_from})",
        factors=tuple(factors),
        breakdown=breakdown,
    )


def _heuristic_estimate(title: str, description: str, labels: Sequence[str]) -> EstimationResult:
    result = EstimationEngine().estimate(title, description, labels)
    return replace(
        result,
        breakdown=EstimationBreakdown(
            type="Unknown",
            base_days=None,
            complexity_factors=result.factors,
            learned_from="Heuristics only",
        ),
        is_heuristic=True,
    )
