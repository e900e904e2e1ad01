from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping

from pm_command_center.common.time_utils import cycle_time_days, parse_optional_timestamp
from pm_command_center.domain.issues import (
    AzureDevOpsRawWorkItem,
    GitHubRawIssue,
    IssueState,
    JiraRawIssue,
    Platform,
    RawIssue,
    UnifiedIssue,
    UnknownPlatformError,
    wrap_raw_issue,
)
from pm_command_center.normalization import rules

# Custom fields that commonly hold story points, in lookup order.
JIRA_STORY_POINT_FIELDS: tuple[str, ...] = (
    "customfield_10016",
    "customfield_10026",
    "customfield_10004",
    "Story Points",
)


def normalize(
    raw_issue: RawIssue | Mapping[str, Any],
    platform: Platform | str | None = None,
) -> UnifiedIssue:
    """Map a platform payload onto a UnifiedIssue.

    Tagged RawIssue variants dispatch on their own platform; bare mappings
    need an explicit platform.
    """
    if isinstance(raw_issue, Mapping):
        if platform is None:
            raise UnknownPlatformError("A platform is required to normalize an untagged payload")
        raw_issue = wrap_raw_issue(raw_issue, platform)

    if isinstance(raw_issue, GitHubRawIssue):
        return normalize_github_issue(raw_issue.payload)
    if isinstance(raw_issue, AzureDevOpsRawWorkItem):
        return normalize_azure_devops_work_item(raw_issue.payload)
    if isinstance(raw_issue, JiraRawIssue):
        return normalize_jira_issue(raw_issue.payload, domain=raw_issue.domain)
    raise UnknownPlatformError(f"Unknown platform: {platform or type(raw_issue).__name__}")


def normalize_github_issue(issue: Mapping[str, Any]) -> UnifiedIssue:
    labels = rules.label_names(issue.get("labels"))
    title = _text(issue.get("title"))
    state = IssueState.CLOSED if issue.get("state") == "closed" else IssueState.OPEN
    created = parse_optional_timestamp(issue.get("created_at"))
    closed = _closed_at(state, issue.get("closed_at"))
    points = rules.story_points_from_labels(labels)
    number = _text(issue.get("number"))

    return UnifiedIssue(
        id=f"github-{number}",
        external_id=number,
        platform=Platform.GITHUB,
        title=title,
        description=_text(issue.get("body")),
        state=state,
        type=rules.detect_issue_type(labels, title),
        priority=rules.detect_priority(labels),
        story_points=float(points) if points is not None else None,
        labels=labels,
        assignee=_text(_mapping(issue.get("assignee")).get("login")),
        created_at=created,
        closed_at=closed,
        cycle_time_days=cycle_time_days(created, closed),
        url=_text(issue.get("html_url")),
        project_key="",
        sprint_name=_text(_mapping(issue.get("milestone")).get("title")),
    )


def normalize_azure_devops_work_item(item: Mapping[str, Any]) -> UnifiedIssue:
    fields = _mapping(item.get("fields"))
    state = rules.bucket_ado_state(_text(fields.get("System.State")))
    created = parse_optional_timestamp(fields.get("System.CreatedDate"))
    closed = _closed_at(state, fields.get("Microsoft.VSTS.Common.ClosedDate"))
    item_id = _text(item.get("id"))

    html_link = _text(_mapping(_mapping(item.get("_links")).get("html")).get("href"))
    iteration = _text(fields.get("System.IterationPath"))

    return UnifiedIssue(
        id=f"ado-{item_id}",
        external_id=item_id,
        platform=Platform.AZURE_DEVOPS,
        title=_text(fields.get("System.Title")),
        description=_text(fields.get("System.Description")),
        state=state,
        type=rules.bucket_ado_type(_text(fields.get("System.WorkItemType"))),
        priority=rules.bucket_ado_priority(fields.get("Microsoft.VSTS.Common.Priority")),
        story_points=rules.numeric_or_none(fields.get("Microsoft.VSTS.Scheduling.StoryPoints")),
        labels=rules.split_tags(fields.get("System.Tags")),
        assignee=_text(_mapping(fields.get("System.AssignedTo")).get("displayName")),
        created_at=created,
        closed_at=closed,
        cycle_time_days=cycle_time_days(created, closed),
        url=html_link or _text(item.get("url")),
        project_key=_text(fields.get("System.TeamProject")),
        sprint_name=iteration.split("\\")[-1] if iteration else "",
    )


def normalize_jira_issue(issue: Mapping[str, Any], domain: str = "") -> UnifiedIssue:
    fields = _mapping(issue.get("fields"))
    state = rules.bucket_jira_state(_text(_mapping(fields.get("status")).get("name")))
    created = parse_optional_timestamp(fields.get("created"))
    closed = _closed_at(state, fields.get("resolutiondate"))
    key = _text(issue.get("key"))
    domain = domain or _text(issue.get("_domain"))

    story_points = None
    for field_id in JIRA_STORY_POINT_FIELDS:
        value = fields.get(field_id)
        if value is not None:
            story_points = rules.numeric_or_none(value)
            break

    labels = fields.get("labels")
    return UnifiedIssue(
        id=f"jira-{key}",
        external_id=key,
        platform=Platform.JIRA,
        title=_text(fields.get("summary")),
        description=_jira_description(fields.get("description")),
        state=state,
        type=rules.bucket_jira_type(_text(_mapping(fields.get("issuetype")).get("name"))),
        priority=rules.bucket_jira_priority(_text(_mapping(fields.get("priority")).get("name"))),
        story_points=story_points,
        labels=tuple(str(label) for label in labels) if isinstance(labels, list) else (),
        assignee=_text(_mapping(fields.get("assignee")).get("displayName")),
        created_at=created,
        closed_at=closed,
        cycle_time_days=cycle_time_days(created, closed),
        url=f"https://{domain}/browse/{key}" if domain and key else "",
        project_key=_text(_mapping(fields.get("project")).get("key")),
        sprint_name=_text(_mapping(fields.get("sprint")).get("name")),
    )


# --- helpers -----------------------------------------------------------------


def _closed_at(state: IssueState, value: Any) -> datetime | None:
    # A close timestamp on a reopened item is stale.
    if state is not IssueState.CLOSED:
        return None
    return parse_optional_timestamp(value)


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _jira_description(value: Any) -> str:
    """Jira v3 returns descriptions as Atlassian Document Format trees."""
    if isinstance(value, str):
        return value
    if not isinstance(value, Mapping):
        return ""
    parts: list[str] = []

    def walk(node: Any) -> None:
        if isinstance(node, Mapping):
            if node.get("type") == "text" and isinstance(node.get("text"), str):
                parts.append(node["text"])
            for child in node.get("content") or ():
                walk(child)
            if node.get("type") in ("paragraph", "heading", "listItem"):
                parts.append("\n")

    walk(value)
    return "".join(parts).strip()
