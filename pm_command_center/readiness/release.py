from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable

from pm_command_center.common.time_utils import round_half_up
from pm_command_center.domain.issues import IssueState, Milestone, UnifiedIssue

BLOCKER_LABELS = frozenset({"blocker", "priority/critical", "priority/high", "bug"})
TEST_CASES_LABEL = "has-test-cases"
MAX_MISSING_TESTS = 5


@dataclass(frozen=True)
class IssueRef:
    id: str
    title: str
    url: str
    labels: tuple[str, ...] = ()


@dataclass(frozen=True)
class ReleaseReadiness:
    milestone: Milestone
    days_until_due: int | None
    total_stories: int
    completed_stories: int
    open_stories: int
    completion_percent: int
    blockers: tuple[IssueRef, ...]
    missing_tests: tuple[IssueRef, ...]


def _ref(issue: UnifiedIssue) -> IssueRef:
    return IssueRef(id=issue.id, title=issue.title, url=issue.url, labels=issue.labels)


def assess_release_readiness(
    milestone: Milestone,
    issues: Iterable[UnifiedIssue],
    today: datetime | None = None,
) -> ReleaseReadiness:
    """Summarize how close a milestone/sprint is to shipping.

    Issues belong to the milestone when their sprint name equals its title.
    """
    now = today or datetime.now(tz=timezone.utc)
    stories = [i for i in issues if i.sprint_name == milestone.title]
    completed = [i for i in stories if i.state is IssueState.CLOSED]
    still_open = [i for i in stories if i.state is not IssueState.CLOSED]

    blockers = [
        i for i in still_open if any(label.lower() in BLOCKER_LABELS for label in i.labels)
    ]
    missing_tests = [
        i for i in still_open if not any(label.lower() == TEST_CASES_LABEL for label in i.labels)
    ]

    days_until_due = None
    if milestone.due_date is not None:
        days_until_due = math.ceil((milestone.due_date - now).total_seconds() / 86400)

    return ReleaseReadiness(
        milestone=milestone,
        days_until_due=days_until_due,
        total_stories=len(stories),
        completed_stories=len(completed),
        open_stories=len(still_open),
        completion_percent=round_half_up(100 * len(completed) / len(stories)) if stories else 0,
        blockers=tuple(_ref(i) for i in blockers),
        missing_tests=tuple(_ref(i) for i in missing_tests[:MAX_MISSING_TESTS]),
    )
