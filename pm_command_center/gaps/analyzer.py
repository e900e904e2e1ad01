from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Sequence

from pm_command_center.common.time_utils import round_half_up
from pm_command_center.domain.gaps import (
    SEVERITY_HIGH,
    SEVERITY_LOW,
    SEVERITY_MEDIUM,
    SEVERITY_PENALTIES,
    Gap,
    GapSummary,
    StoryGapReport,
)
from pm_command_center.domain.issues import UnifiedIssue

logger = logging.getLogger(__name__)

SECURITY_KEYWORDS = (
    "password", "login", "auth", "payment", "credit", "personal",
    "email", "phone", "address", "admin", "delete", "export",
)
UI_KEYWORDS = (
    "button", "form", "modal", "dialog", "menu", "dropdown",
    "input", "display", "show", "ui", "page", "screen",
)
DATA_KEYWORDS = (
    "list", "search", "filter", "export", "import",
    "load", "fetch", "sync", "bulk", "batch",
)

SUMMARY_CATEGORIES = (
    "Acceptance Criteria",
    "Edge Cases",
    "Error Handling",
    "Security",
    "Accessibility",
    "Test Cases",
)


@dataclass(frozen=True)
class _StoryText:
    title: str
    body: str
    labels: frozenset[str]

    @property
    def full(self) -> str:
        return f"{self.title} {self.body}"

    def body_has(self, *phrases: str) -> bool:
        return any(p in self.body for p in phrases)


@dataclass(frozen=True)
class GapRule:
    gap: Gap
    applies: Callable[[_StoryText], bool]


def _missing_acceptance_criteria(s: _StoryText) -> bool:
    return not s.body_has("acceptance criteria", "- [ ]", "given", "when")


def _missing_edge_cases(s: _StoryText) -> bool:
    return "test/edge-cases" not in s.labels and not s.body_has("edge case", "boundary")


def _missing_error_handling(s: _StoryText) -> bool:
    return not s.body_has("error", "fail", "invalid") and "test/negative" not in s.labels


def _missing_security(s: _StoryText) -> bool:
    sensitive = any(kw in s.full for kw in SECURITY_KEYWORDS)
    return sensitive and "test/security" not in s.labels and not s.body_has("security")


def _missing_accessibility(s: _StoryText) -> bool:
    is_ui = any(kw in s.full for kw in UI_KEYWORDS)
    return (
        is_ui
        and "test/accessibility" not in s.labels
        and not s.body_has("accessibility", "a11y")
    )


def _missing_performance(s: _StoryText) -> bool:
    data_heavy = any(kw in s.full for kw in DATA_KEYWORDS)
    return data_heavy and not s.body_has("performance", "load time", "pagination")


def _missing_test_cases(s: _StoryText) -> bool:
    return "has-test-cases" not in s.labels


GAP_RULES: tuple[GapRule, ...] = (
    GapRule(
        Gap(
            category="Acceptance Criteria",
            severity=SEVERITY_HIGH,
            message="No acceptance criteria found",
            suggestion="Add clear acceptance criteria with checkboxes or Given/When/Then format",
            kind="missing",
        ),
        _missing_acceptance_criteria,
    ),
    GapRule(
        Gap(
            category="Edge Cases",
            severity=SEVERITY_MEDIUM,
            message="No edge cases documented",
            suggestion="Consider: empty states, max limits, special characters, concurrent users",
        ),
        _missing_edge_cases,
    ),
    GapRule(
        Gap(
            category="Error Handling",
            severity=SEVERITY_MEDIUM,
            message="No error scenarios defined",
            suggestion="Define behavior for: invalid input, network failures, permission denied",
        ),
        _missing_error_handling,
    ),
    GapRule(
        Gap(
            category="Security",
            severity=SEVERITY_HIGH,
            message="Security-sensitive feature without security requirements",
            suggestion="Add security requirements: input validation, authorization, data protection",
        ),
        _missing_security,
    ),
    GapRule(
        Gap(
            category="Accessibility",
            severity=SEVERITY_MEDIUM,
            message="UI feature without accessibility requirements",
            suggestion="Consider: keyboard navigation, screen reader support, color contrast",
        ),
        _missing_accessibility,
    ),
    GapRule(
        Gap(
            category="Performance",
            severity=SEVERITY_LOW,
            message="Data operation without performance requirements",
            suggestion="Define: pagination limits, response time expectations, large dataset handling",
        ),
        _missing_performance,
    ),
    GapRule(
        Gap(
            category="Test Cases",
            severity=SEVERITY_HIGH,
            message="No test cases generated",
            suggestion="Generate test cases covering happy path, edge cases, and error scenarios",
            kind="missing",
        ),
        _missing_test_cases,
    ),
)


def quality_score(gaps: Sequence[Gap]) -> int:
    penalty = sum(SEVERITY_PENALTIES.get(g.severity, 0) for g in gaps)
    return max(0, 100 - penalty)


def analyze_gaps(issue: UnifiedIssue) -> StoryGapReport:
    story = _StoryText(
        title=issue.title.lower(),
        body=issue.description.lower(),
        labels=frozenset(label.lower() for label in issue.labels),
    )
    gaps = tuple(rule.gap for rule in GAP_RULES if rule.applies(story))
    return StoryGapReport(
        issue_id=issue.id,
        title=issue.title,
        url=issue.url,
        gaps=gaps,
        score=quality_score(gaps),
    )


def summarize_gaps(reports: Sequence[StoryGapReport]) -> GapSummary:
    scores = [r.score for r in reports]
    return GapSummary(
        total_stories=len(reports),
        total_gaps=sum(r.gap_count for r in reports),
        avg_score=round_half_up(sum(scores) / len(scores)) if scores else 100,
        stories_with_high_gaps=sum(1 for r in reports if r.high_severity_count > 0),
        by_category={c: sum(1 for r in reports if r.has_category(c)) for c in SUMMARY_CATEGORIES},
    )


def analyze_backlog(issues: Iterable[UnifiedIssue]) -> tuple[list[StoryGapReport], GapSummary]:
    """Analyze every story, most gaps first."""
    reports = sorted((analyze_gaps(i) for i in issues), key=lambda r: r.gap_count, reverse=True)
    summary = summarize_gaps(reports)
    logger.info(
        "Analyzed %d stories: %d gaps, average score %d",
        summary.total_stories,
        summary.total_gaps,
        summary.avg_score,
    )
    return reports, summary
