from __future__ import annotations

from fastapi.testclient import TestClient

from pm_command_center.api.app import create_app
from pm_command_center.domain.issues import GitHubRawIssue, Platform
from pm_command_center.integration.platform_manager import PlatformManager


class _ClosedIssues:
    platform = Platform.GITHUB

    async def fetch_issues(self, state: str = "all") -> list[GitHubRawIssue]:
        return [
            GitHubRawIssue(
                payload={
                    "number": n,
                    "title": "Create settings screen",
                    "labels": ["feature"],
                    "state": "closed",
                    "created_at": "2024-01-01T00:00:00Z",
                    "closed_at": "2024-01-06T00:00:00Z",
                }
            )
            for n in range(5)
        ]

    async def fetch_closed_issues(self) -> list[GitHubRawIssue]:
        return await self.fetch_issues("closed")

    async def fetch_milestones(self) -> list:
        return []

    async def fetch_pull_requests(self, state: str = "all") -> list:
        return []

    async def test_connection(self) -> bool:
        return True


def test_health_and_keyword_estimate() -> None:
    client = TestClient(create_app())

    assert client.get("/health").json() == {"status": "ok", "platforms": [], "history_size": 0}

    resp = client.post("/estimate", json={"title": "Refactor the distributed cache architecture"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["points"] == 13
    assert body["estimated_days"] == 10
    assert body["is_heuristic"] is False


def test_estimate_against_supplied_history() -> None:
    client = TestClient(create_app())
    title = "Implement password reset email flow"

    resp = client.post(
        "/estimate",
        json={"title": title, "history": [{"title": title, "story_points": 8}] * 3},
    )

    body = resp.json()
    assert body["points"] == 8
    assert body["confidence"] == 85
    assert len(body["similar_issues"]) == 3


def test_model_endpoints_need_configured_platforms() -> None:
    client = TestClient(create_app())

    assert client.get("/model").status_code == 503
    assert client.post("/estimate/model", json={"title": "x"}).status_code == 503


def test_model_endpoints_learn_from_platforms() -> None:
    client = TestClient(create_app(manager=PlatformManager([_ClosedIssues()])))

    model = client.get("/model").json()
    assert model["has_enough_data"] is True
    assert model["sample_size"] == 5
    assert model["avg_cycle_time_by_type"]["feature"] == 5.0
    assert model["learned_from"] == "GitHub (5)"

    estimate = client.post("/estimate/model", json={"title": "Create billing screen"}).json()
    assert estimate["points"] == 5
    assert estimate["confidence"] == 55
    assert estimate["breakdown"]["type"] == "Feature"


def test_gap_analysis_endpoint() -> None:
    client = TestClient(create_app())

    resp = client.post(
        "/gaps",
        json={"stories": [{"id": "jira-P-1", "title": "Rename config key", "platform": "jira"}]},
    )

    body = resp.json()
    assert body["summary"]["avg_score"] == 30
    assert body["stories"][0]["issue_id"] == "jira-P-1"
    assert [g["category"] for g in body["stories"][0]["gaps"]] == [
        "Acceptance Criteria",
        "Edge Cases",
        "Error Handling",
        "Test Cases",
    ]
