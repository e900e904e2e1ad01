"""Label and field heuristics shared by the per-platform normalizers."""

from __future__ import annotations

import re
from typing import Any, Iterable, Sequence

from pm_command_center.domain.issues import IssueState, IssueType, Priority

_POINTS_LABEL_PATTERNS = (
    re.compile(r"^(sp|points?|story.?points?)[:\s-]?\d+$", re.IGNORECASE),
    re.compile(r"^\d+\s*(sp|points?)?$", re.IGNORECASE),
)
_DIGITS = re.compile(r"\d+")

_BUG_LABELS = frozenset({"bug", "fix", "type/bug"})
_FEATURE_LABELS = frozenset({"feature", "enhancement", "type/feature"})
_CHORE_LABELS = frozenset({"chore", "maintenance"})

_HIGH_PRIORITY = re.compile(r"priority.?(high|critical|urgent|p0|p1)")
_LOW_PRIORITY = re.compile(r"priority.?(low|minor|p3|p4)")

ADO_CLOSED_STATES = frozenset({"done", "closed", "resolved", "completed"})
ADO_ACTIVE_STATES = frozenset({"active", "in progress", "doing"})
JIRA_CLOSED_STATES = frozenset({"done", "closed", "resolved"})
JIRA_ACTIVE_STATES = frozenset({"in progress", "in review", "testing"})

_FEATURE_WORK_ITEM_TYPES = frozenset({"user story", "story", "feature"})

_JIRA_HIGH_PRIORITIES = frozenset({"highest", "high", "critical", "blocker", "urgent"})
_JIRA_LOW_PRIORITIES = frozenset({"low", "lowest", "minor", "trivial"})


def label_names(raw_labels: Iterable[Any] | None) -> tuple[str, ...]:
    """GitHub labels arrive either as objects with a name or as bare strings."""
    if not isinstance(raw_labels, (list, tuple)):
        return ()
    names: list[str] = []
    for label in raw_labels:
        if isinstance(label, dict):
            name = label.get("name")
        else:
            name = label
        if name:
            names.append(str(name))
    return tuple(names)


def story_points_from_labels(labels: Sequence[str]) -> int | None:
    for label in labels:
        if any(p.match(label) for p in _POINTS_LABEL_PATTERNS):
            digits = _DIGITS.search(label)
            return int(digits.group(0)) if digits else 0
    return None


def detect_issue_type(labels: Sequence[str], title: str) -> IssueType:
    lowered = [label.lower() for label in labels]
    text = f"{' '.join(labels)} {title}".lower()
    if any(label in _BUG_LABELS for label in lowered) or re.search(r"bug|fix", text):
        return IssueType.BUG
    if any(label in _FEATURE_LABELS for label in lowered) or re.search(r"feature|new", text):
        return IssueType.FEATURE
    if any(label in _CHORE_LABELS for label in lowered):
        return IssueType.CHORE
    return IssueType.TASK


def detect_priority(labels: Sequence[str]) -> Priority:
    joined = " ".join(labels).lower()
    if _HIGH_PRIORITY.search(joined) or any("blocker" in label.lower() for label in labels):
        return Priority.HIGH
    if _LOW_PRIORITY.search(joined):
        return Priority.LOW
    return Priority.MEDIUM


def bucket_ado_state(state: str) -> IssueState:
    s = state.strip().lower()
    if s in ADO_CLOSED_STATES:
        return IssueState.CLOSED
    if s in ADO_ACTIVE_STATES:
        return IssueState.IN_PROGRESS
    return IssueState.OPEN


def bucket_ado_type(work_item_type: str) -> IssueType:
    t = work_item_type.strip().lower()
    if t == "bug":
        return IssueType.BUG
    if t in _FEATURE_WORK_ITEM_TYPES:
        return IssueType.FEATURE
    return IssueType.TASK


def bucket_ado_priority(priority: Any) -> Priority:
    if isinstance(priority, bool) or not isinstance(priority, (int, float)):
        return Priority.MEDIUM
    if priority <= 1:
        return Priority.HIGH
    if priority >= 3:
        return Priority.LOW
    return Priority.MEDIUM


def bucket_jira_state(status: str) -> IssueState:
    s = status.strip().lower()
    if s in JIRA_CLOSED_STATES:
        return IssueState.CLOSED
    if s in JIRA_ACTIVE_STATES:
        return IssueState.IN_PROGRESS
    return IssueState.OPEN


def bucket_jira_type(issue_type: str) -> IssueType:
    t = issue_type.strip().lower()
    if t == "bug":
        return IssueType.BUG
    if t in _FEATURE_WORK_ITEM_TYPES:
        return IssueType.FEATURE
    if t == "epic":
        return IssueType.EPIC
    return IssueType.TASK


def bucket_jira_priority(name: str) -> Priority:
    p = name.strip().lower()
    if p in _JIRA_HIGH_PRIORITIES:
        return Priority.HIGH
    if p in _JIRA_LOW_PRIORITIES:
        return Priority.LOW
    return Priority.MEDIUM


def split_tags(tags: Any) -> tuple[str, ...]:
    if not isinstance(tags, str):
        return ()
    return tuple(t.strip() for t in tags.split(";") if t.strip())


def numeric_or_none(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)
