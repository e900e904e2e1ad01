from __future__ import annotations

import asyncio

from pm_command_center.domain.issues import GitHubRawIssue, Milestone, Platform
from pm_command_center.integration.dashboard import DashboardService
from pm_command_center.integration.event_bus import InMemoryEventBus
from pm_command_center.integration.events import DashboardRefreshed
from pm_command_center.integration.platform_manager import PlatformManager


def _payloads() -> list[dict[str, object]]:
    closed = [
        {
            "number": n,
            "title": f"Tidy module {n}",
            "state": "closed",
            "created_at": "2024-01-01T00:00:00Z",
            "closed_at": "2024-01-05T00:00:00Z",
            "milestone": {"title": "v1"},
        }
        for n in range(5)
    ]
    open_ = [
        {"number": 10, "title": "Create export page", "state": "open", "milestone": {"title": "v1"}},
        {"number": 11, "title": "Tidy readme", "state": "open", "labels": ["3 points"]},
    ]
    return closed + open_


class _SlowGitHub:
    platform = Platform.GITHUB

    def __init__(self, gate: asyncio.Event | None = None) -> None:
        self.gate = gate
        self.calls = 0

    async def fetch_issues(self, state: str = "all") -> list[GitHubRawIssue]:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        return [GitHubRawIssue(payload=p) for p in _payloads()]

    async def fetch_closed_issues(self) -> list[GitHubRawIssue]:
        return await self.fetch_issues("closed")

    async def fetch_milestones(self) -> list[Milestone]:
        return [
            Milestone(id="1", title="v1", platform=Platform.GITHUB, state="open"),
            Milestone(id="0", title="v0", platform=Platform.GITHUB, state="closed"),
        ]

    async def fetch_pull_requests(self, state: str = "all") -> list:
        return []

    async def test_connection(self) -> bool:
        return True


def test_refresh_builds_a_snapshot() -> None:
    bus = InMemoryEventBus()
    refreshed: list[DashboardRefreshed] = []
    bus.subscribe(DashboardRefreshed, refreshed.append)
    service = DashboardService(PlatformManager([_SlowGitHub()]), bus=bus)

    snapshot = asyncio.run(service.refresh())

    assert snapshot is not None
    assert len(snapshot.issues) == 7
    assert [i.id for i in snapshot.open_issues] == ["github-10", "github-11"]
    assert snapshot.model.has_enough_data is True
    # only the unpointed open story needs an estimate
    assert list(snapshot.estimates) == ["github-10"]
    assert snapshot.estimates["github-10"].is_heuristic is False
    assert snapshot.gap_summary is not None
    assert snapshot.gap_summary.total_stories == 2
    assert [r.milestone.title for r in snapshot.readiness] == ["v1"]
    assert snapshot.readiness[0].total_stories == 6
    assert snapshot.errors == ()
    assert refreshed[0].issue_count == 7
    assert service.last_snapshot is snapshot


def test_overlapping_refresh_is_skipped() -> None:
    async def scenario() -> None:
        gate = asyncio.Event()
        github = _SlowGitHub(gate)
        service = DashboardService(PlatformManager([github]))

        first = asyncio.create_task(service.refresh())
        await asyncio.sleep(0)
        assert service.is_refreshing

        skipped = await service.refresh()
        assert skipped is None

        gate.set()
        snapshot = await first
        assert snapshot is not None
        assert github.calls == 1
        assert not service.is_refreshing

        # once idle, the next call refreshes again
        again = await service.refresh()
        assert again is not None and again is not snapshot
        assert github.calls == 2

    asyncio.run(scenario())


def test_run_refreshes_a_fixed_number_of_times() -> None:
    bus = InMemoryEventBus()
    refreshed: list[DashboardRefreshed] = []
    bus.subscribe(DashboardRefreshed, refreshed.append)
    service = DashboardService(PlatformManager([_SlowGitHub()]), bus=bus)

    asyncio.run(service.run(interval_seconds=0, iterations=3))

    assert len(refreshed) == 3
