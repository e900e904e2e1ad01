from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Mapping, Union


class Platform(str, Enum):
    GITHUB = "github"
    AZURE_DEVOPS = "azuredevops"
    JIRA = "jira"

    @property
    def display_name(self) -> str:
        return PLATFORM_DISPLAY_NAMES[self]


PLATFORM_DISPLAY_NAMES: dict[Platform, str] = {
    Platform.GITHUB: "GitHub",
    Platform.AZURE_DEVOPS: "Azure DevOps",
    Platform.JIRA: "Jira",
}


class IssueState(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in-progress"
    CLOSED = "closed"


class IssueType(str, Enum):
    FEATURE = "feature"
    BUG = "bug"
    TASK = "task"
    CHORE = "chore"
    EPIC = "epic"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class UnknownPlatformError(ValueError):
    pass


def coerce_platform(value: Platform | str) -> Platform:
    if isinstance(value, Platform):
        return value
    try:
        return Platform(str(value).strip().lower())
    except ValueError:
        raise UnknownPlatformError(f"Unknown platform: {value}") from None


@dataclass(frozen=True)
class UnifiedIssue:
    """A unit of work normalized from any supported tracker."""

    id: str
    external_id: str
    platform: Platform
    title: str
    description: str = ""
    state: IssueState = IssueState.OPEN
    type: IssueType = IssueType.TASK
    priority: Priority = Priority.MEDIUM
    story_points: float | None = None
    labels: tuple[str, ...] = ()
    assignee: str = ""
    created_at: datetime | None = None
    closed_at: datetime | None = None  # only set when state == closed
    cycle_time_days: int | None = None
    url: str = ""
    project_key: str = ""
    sprint_name: str = ""

    @property
    def is_closed(self) -> bool:
        return self.state is IssueState.CLOSED


# --- Raw payloads, one variant per platform ---------------------------------


@dataclass(frozen=True)
class GitHubRawIssue:
    platform: ClassVar[Platform] = Platform.GITHUB

    payload: Mapping[str, Any]


@dataclass(frozen=True)
class AzureDevOpsRawWorkItem:
    platform: ClassVar[Platform] = Platform.AZURE_DEVOPS

    payload: Mapping[str, Any]


@dataclass(frozen=True)
class JiraRawIssue:
    platform: ClassVar[Platform] = Platform.JIRA

    payload: Mapping[str, Any]
    domain: str = ""


RawIssue = Union[GitHubRawIssue, AzureDevOpsRawWorkItem, JiraRawIssue]


def wrap_raw_issue(payload: Mapping[str, Any], platform: Platform | str) -> RawIssue:
    """Tag a bare platform payload with its variant type."""
    tag = coerce_platform(platform)
    if tag is Platform.GITHUB:
        return GitHubRawIssue(payload=payload)
    if tag is Platform.AZURE_DEVOPS:
        return AzureDevOpsRawWorkItem(payload=payload)
    return JiraRawIssue(payload=payload, domain=str(payload.get("_domain") or ""))


# --- Planning artefacts returned by connectors -------------------------------


@dataclass(frozen=True)
class Milestone:
    id: str
    title: str
    platform: Platform
    state: str = ""  # open/closed (GitHub), past/current/future (ADO), active/closed/future (Jira)
    start_date: datetime | None = None
    due_date: datetime | None = None
    url: str = ""
    description: str = ""


@dataclass(frozen=True)
class PullRequestSummary:
    id: str
    title: str
    platform: Platform
    state: str  # "open", "merged", "closed"
    author: str = ""
    created_at: datetime | None = None
    url: str = ""
    source_branch: str = ""
    target_branch: str = ""
    draft: bool = False
    labels: tuple[str, ...] = field(default_factory=tuple)
