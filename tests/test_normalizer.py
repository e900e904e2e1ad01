from __future__ import annotations

from datetime import datetime, timezone

import pytest

from pm_command_center.domain.issues import (
    GitHubRawIssue,
    IssueState,
    IssueType,
    JiraRawIssue,
    Platform,
    Priority,
    UnknownPlatformError,
)
from pm_command_center.normalization.normalizer import normalize


def _github(**overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "number": 7,
        "title": "Login crashes on submit",
        "body": "Steps to reproduce...",
        "state": "closed",
        "labels": [{"name": "bug"}, {"name": "5 points"}],
        "created_at": "2024-01-01T00:00:00Z",
        "closed_at": "2024-01-04T00:00:00Z",
        "html_url": "https://github.com/acme/shop/issues/7",
        "assignee": {"login": "octocat"},
        "milestone": {"title": "v1.2"},
    }
    payload.update(overrides)
    return payload


def _ado_item() -> dict[str, object]:
    return {
        "id": 42,
        "url": "https://dev.azure.com/acme/_apis/wit/workItems/42",
        "_links": {"html": {"href": "https://dev.azure.com/acme/Shop/_workitems/edit/42"}},
        "fields": {
            "System.Title": "Checkout with saved cards",
            "System.Description": "<p>As a buyer...</p>",
            "System.State": "Resolved",
            "System.WorkItemType": "User Story",
            "Microsoft.VSTS.Common.Priority": 1,
            "Microsoft.VSTS.Scheduling.StoryPoints": 8,
            "System.Tags": "api; backend ;",
            "System.CreatedDate": "2024-02-01T09:00:00Z",
            "Microsoft.VSTS.Common.ClosedDate": "2024-02-03T10:00:00Z",
            "System.AssignedTo": {"displayName": "Dana"},
            "System.TeamProject": "Shop",
            "System.IterationPath": "Shop\\Sprint 4",
        },
    }


def _jira_issue() -> dict[str, object]:
    return {
        "key": "PROJ-9",
        "fields": {
            "summary": "Checkout redesign",
            "description": {
                "type": "doc",
                "content": [
                    {"type": "paragraph", "content": [{"type": "text", "text": "Hello"}]},
                    {"type": "paragraph", "content": [{"type": "text", "text": "World"}]},
                ],
            },
            "status": {"name": "In Review"},
            "issuetype": {"name": "Epic"},
            "priority": {"name": "Blocker"},
            "customfield_10016": None,
            "customfield_10026": 5,
            "customfield_10004": 13,
            "labels": ["ux"],
            "created": "2024-03-01T10:00:00.000+0000",
            "resolutiondate": "2024-03-02T10:00:00.000+0000",
            "project": {"key": "PROJ"},
        },
    }


def test_github_closed_bug_with_points_label() -> None:
    issue = normalize(_github(), Platform.GITHUB)

    assert issue.id == "github-7"
    assert issue.platform is Platform.GITHUB
    assert issue.type is IssueType.BUG
    assert issue.story_points == 5
    assert issue.state is IssueState.CLOSED
    assert issue.closed_at == datetime(2024, 1, 4, tzinfo=timezone.utc)
    assert issue.cycle_time_days == 3
    assert issue.assignee == "octocat"
    assert issue.sprint_name == "v1.2"


def test_github_open_issue_ignores_stale_close_timestamp() -> None:
    issue = normalize(GitHubRawIssue(payload=_github(state="open")))

    assert issue.state is IssueState.OPEN
    assert issue.closed_at is None
    assert issue.cycle_time_days is None


def test_github_story_point_label_variants() -> None:
    for label, expected in (("sp:3", 3), ("points-8", 8), ("Story Points 13", 13), ("2", 2)):
        issue = normalize(_github(labels=[{"name": label}]), "github")
        assert issue.story_points == expected, label

    assert normalize(_github(labels=["docs"]), "github").story_points is None


def test_github_type_and_priority_inference() -> None:
    feature = normalize(_github(title="Add new export", labels=[{"name": "priority/high"}]), "github")
    assert feature.type is IssueType.FEATURE
    assert feature.priority is Priority.HIGH

    chore = normalize(_github(title="Bump deps", labels=["maintenance", "priority-low"]), "github")
    assert chore.type is IssueType.CHORE
    assert chore.priority is Priority.LOW

    blocked = normalize(_github(title="Tidy readme", labels=["Blocker"]), "github")
    assert blocked.type is IssueType.TASK
    assert blocked.priority is Priority.HIGH


def test_azure_devops_work_item() -> None:
    issue = normalize(_ado_item(), "azuredevops")

    assert issue.id == "ado-42"
    assert issue.state is IssueState.CLOSED
    assert issue.type is IssueType.FEATURE
    assert issue.priority is Priority.HIGH
    assert issue.story_points == 8.0
    assert issue.labels == ("api", "backend")
    assert issue.cycle_time_days == 3
    assert issue.project_key == "Shop"
    assert issue.sprint_name == "Sprint 4"
    assert issue.url.endswith("/_workitems/edit/42")


def test_jira_issue_in_review() -> None:
    issue = normalize(JiraRawIssue(payload=_jira_issue(), domain="acme.atlassian.net"))

    assert issue.id == "jira-PROJ-9"
    assert issue.state is IssueState.IN_PROGRESS
    assert issue.closed_at is None
    assert issue.cycle_time_days is None
    assert issue.type is IssueType.EPIC
    assert issue.priority is Priority.HIGH
    # first non-null custom field wins
    assert issue.story_points == 5.0
    assert issue.description == "Hello\nWorld"
    assert issue.url == "https://acme.atlassian.net/browse/PROJ-9"


def test_jira_resolved_issue_has_cycle_time() -> None:
    payload = _jira_issue()
    payload["fields"]["status"] = {"name": "Done"}  # type: ignore[index]
    issue = normalize(payload, "jira")

    assert issue.state is IssueState.CLOSED
    assert issue.cycle_time_days == 1


def test_malformed_payloads_degrade_to_defaults() -> None:
    gh = normalize({}, "github")
    assert gh.title == ""
    assert gh.state is IssueState.OPEN
    assert gh.labels == ()

    ado = normalize({"id": 1, "fields": None}, "azuredevops")
    assert ado.type is IssueType.TASK
    assert ado.priority is Priority.MEDIUM

    jira = normalize({"key": "X-1", "fields": {"labels": "oops", "priority": None}}, "jira")
    assert jira.labels == ()
    assert jira.url == ""

    assert normalize({"number": 1, "title": "x", "labels": 42}, "github").labels == ()
    assert normalize({"number": 2, "title": "x", "labels": "bug"}, "github").labels == ()
    assert normalize({"key": "X-2", "fields": {"labels": {"a": 1}}}, "jira").labels == ()


def test_closed_state_implies_close_timestamp_and_cycle_time() -> None:
    issues = [
        normalize(_github(), "github"),
        normalize(_github(state="open"), "github"),
        normalize(_ado_item(), "azuredevops"),
        normalize(_jira_issue(), "jira"),
    ]
    for issue in issues:
        assert (issue.state is IssueState.CLOSED) == (issue.closed_at is not None)
        assert (issue.closed_at is not None) == (issue.cycle_time_days is not None)


def test_unknown_platform_is_rejected() -> None:
    with pytest.raises(UnknownPlatformError):
        normalize({}, "gitlab")
    with pytest.raises(UnknownPlatformError):
        normalize({})


def test_closed_before_created_leaves_cycle_time_empty() -> None:
    issue = normalize(
        _github(created_at="2024-01-10T00:00:00Z", closed_at="2024-01-04T00:00:00Z"),
        "github",
    )
    assert issue.state is IssueState.CLOSED
    assert issue.cycle_time_days is None
