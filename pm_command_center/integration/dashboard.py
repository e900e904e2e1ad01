from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone

from pm_command_center.domain.estimation import EstimationModel, EstimationResult
from pm_command_center.domain.gaps import GapSummary, StoryGapReport
from pm_command_center.domain.issues import Milestone, PullRequestSummary, UnifiedIssue
from pm_command_center.estimation.model_builder import build_model
from pm_command_center.estimation.trained import estimate_with_model
from pm_command_center.gaps.analyzer import analyze_backlog
from pm_command_center.integration.event_bus import EventBus
from pm_command_center.integration.events import DashboardRefreshed, EstimationModelBuilt
from pm_command_center.integration.platform_manager import FetchError, PlatformManager
from pm_command_center.readiness.release import ReleaseReadiness, assess_release_readiness

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DashboardSnapshot:
    refreshed_at: datetime
    issues: tuple[UnifiedIssue, ...]
    milestones: tuple[Milestone, ...]
    pull_requests: tuple[PullRequestSummary, ...]
    model: EstimationModel
    estimates: dict[str, EstimationResult] = field(default_factory=dict)
    gap_reports: tuple[StoryGapReport, ...] = ()
    gap_summary: GapSummary | None = None
    readiness: tuple[ReleaseReadiness, ...] = ()
    errors: tuple[FetchError, ...] = ()
    duration_seconds: float = 0.0

    @property
    def open_issues(self) -> list[UnifiedIssue]:
        return [i for i in self.issues if not i.is_closed]


class DashboardService:
    """Fetch, learn and estimate in one pass; at most one pass runs at a time."""

    def __init__(
        self,
        manager: PlatformManager,
        bus: EventBus | None = None,
        issue_state: str = "all",
    ) -> None:
        self.manager = manager
        self.bus = bus
        self.issue_state = issue_state
        self._in_flight = False
        self._last: DashboardSnapshot | None = None

    @property
    def last_snapshot(self) -> DashboardSnapshot | None:
        return self._last

    @property
    def is_refreshing(self) -> bool:
        return self._in_flight

    async def refresh(self) -> DashboardSnapshot | None:
        if self._in_flight:
            logger.info("Refresh already in progress; returning the previous snapshot")
            return self._last
        self._in_flight = True
        try:
            self._last = await self._refresh()
        finally:
            self._in_flight = False
        if self.bus is not None:
            self.bus.publish(
                DashboardRefreshed(
                    occurred_at=self._last.refreshed_at,
                    issue_count=len(self._last.issues),
                    error_count=len(self._last.errors),
                    duration_seconds=self._last.duration_seconds,
                )
            )
        return self._last

    async def run(self, interval_seconds: float, iterations: int | None = None) -> None:
        """Refresh on a fixed interval, forever unless `iterations` is given."""
        count = 0
        while True:
            await self.refresh()
            count += 1
            if iterations is not None and count >= iterations:
                return
            await asyncio.sleep(interval_seconds)

    async def _refresh(self) -> DashboardSnapshot:
        started = time.perf_counter()
        issues, milestones, prs = await asyncio.gather(
            self.manager.fetch_all_issues(self.issue_state),
            self.manager.fetch_all_milestones(),
            self.manager.fetch_all_pull_requests(),
        )
        errors = tuple(issues.errors + milestones.errors + prs.errors)

        model = build_model(issues.items)
        self._publish_model(model)

        open_issues = [i for i in issues.items if not i.is_closed]
        estimates = {
            i.id: estimate_with_model(i.title, i.description, i.labels, model)
            for i in open_issues
            if i.story_points is None
        }
        reports, summary = analyze_backlog(open_issues)
        readiness = tuple(
            assess_release_readiness(m, issues.items)
            for m in milestones.items
            if m.state.lower() not in ("closed", "past")
        )

        duration = time.perf_counter() - started
        snapshot = DashboardSnapshot(
            refreshed_at=datetime.now(tz=timezone.utc),
            issues=tuple(issues.items),
            milestones=tuple(milestones.items),
            pull_requests=tuple(prs.items),
            model=model,
            estimates=estimates,
            gap_reports=tuple(reports),
            gap_summary=summary,
            readiness=readiness,
            errors=errors,
            duration_seconds=duration,
        )
        logger.info(
            "Dashboard refreshed: %d issues, %d estimates, %d errors in %.2fs",
            len(snapshot.issues),
            len(estimates),
            len(errors),
            duration,
        )
        return snapshot

    def _publish_model(self, model: EstimationModel) -> None:
        if self.bus is None:
            return
        self.bus.publish(
            EstimationModelBuilt(
                occurred_at=datetime.now(tz=timezone.utc),
                sample_size=model.sample_size,
                has_enough_data=model.has_enough_data,
                learned_from=model.learned_from,
            )
        )
