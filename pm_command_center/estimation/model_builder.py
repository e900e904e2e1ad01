from __future__ import annotations

import logging
import re
from collections import Counter
from typing import Iterable, Sequence

import numpy as np

from pm_command_center.domain.estimation import (
    DEFAULT_COMPLEXITY_MULTIPLIERS,
    DEFAULT_CYCLE_TIME_DAYS,
    DEFAULT_POINTS_TO_DAYS_RATIO,
    SCOPE_CROSS_ORG,
    SCOPE_SINGLE_SOURCE,
    EstimationModel,
    PlatformSample,
)
from pm_command_center.domain.issues import IssueType, UnifiedIssue

logger = logging.getLogger(__name__)

MIN_SAMPLE_SIZE = 5
MIN_MULTIPLIER_MATCHES = 3
MIN_POINTED_ISSUES = 4

COMPLEXITY_TRIGGERS: dict[str, re.Pattern[str]] = {
    "api": re.compile(r"api|endpoint|integration", re.IGNORECASE),
    "db": re.compile(r"database|migration|schema", re.IGNORECASE),
    "auth": re.compile(r"auth|login|permission|security", re.IGNORECASE),
}


def qualifying_issues(issues: Iterable[UnifiedIssue]) -> list[UnifiedIssue]:
    """Closed issues with a known cycle time; the rest carry no timing signal."""
    return [i for i in issues if i.is_closed and i.cycle_time_days is not None]


def build_model(all_closed_issues: Iterable[UnifiedIssue]) -> EstimationModel:
    """Build a cross-organisation model from closed issues of every platform."""
    return _build(all_closed_issues, scope=SCOPE_CROSS_ORG)


def build_single_source_model(issues: Iterable[UnifiedIssue]) -> EstimationModel:
    """Build a model from one repository's closed issues."""
    return _build(issues, scope=SCOPE_SINGLE_SOURCE)


def _build(issues: Iterable[UnifiedIssue], *, scope: str) -> EstimationModel:
    closed = qualifying_issues(issues)
    if len(closed) < MIN_SAMPLE_SIZE:
        logger.info(
            "Not enough closed issues to build a model (%d < %d)", len(closed), MIN_SAMPLE_SIZE
        )
        return EstimationModel(has_enough_data=False, sample_size=len(closed), scope=scope)

    cycle_times = np.array([i.cycle_time_days for i in closed], dtype=float)
    base_avg = float(cycle_times.mean())

    avg_by_type: dict[IssueType, float] = {}
    for issue_type, fallback in DEFAULT_CYCLE_TIME_DAYS.items():
        bucket = [i.cycle_time_days for i in closed if i.type is issue_type]
        avg_by_type[issue_type] = float(np.mean(bucket)) if bucket else fallback

    multipliers: dict[str, float] = {}
    for name, pattern in COMPLEXITY_TRIGGERS.items():
        matching = [
            i.cycle_time_days for i in closed if pattern.search(f"{i.title} {i.description}")
        ]
        if len(matching) >= MIN_MULTIPLIER_MATCHES and base_avg > 0:
            multipliers[name] = float(np.mean(matching)) / base_avg
        else:
            multipliers[name] = DEFAULT_COMPLEXITY_MULTIPLIERS[name]

    pointed = [i for i in closed if i.story_points]
    ratio = DEFAULT_POINTS_TO_DAYS_RATIO
    if len(pointed) >= MIN_POINTED_ISSUES:
        fitted = float(np.mean([i.cycle_time_days / i.story_points for i in pointed]))
        if fitted > 0:
            ratio = fitted

    model = EstimationModel(
        has_enough_data=True,
        sample_size=len(closed),
        platforms=_platform_samples(closed),
        avg_cycle_time_by_type=avg_by_type,
        complexity_multipliers=multipliers,
        points_to_days_ratio=ratio,
        pointed_issues_count=len(pointed),
        scope=scope,
    )
    logger.info(
        "Built %s estimation model from %d issues (%s)",
        scope,
        model.sample_size,
        model.learned_from,
    )
    return model


def _platform_samples(issues: Sequence[UnifiedIssue]) -> tuple[PlatformSample, ...]:
    counts = Counter(i.platform for i in issues)
    return tuple(
        PlatformSample(platform=p, count=n, display_name=p.display_name) for p, n in counts.items()
    )
