from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Generic, Mapping, Sequence, TypeVar

from pm_command_center.adapters.azure_devops.ado_connector import AzureDevOpsConnector
from pm_command_center.adapters.connector import PlatformConnector
from pm_command_center.adapters.github.github_connector import GitHubConnector
from pm_command_center.adapters.jira.jira_connector import JiraConnector
from pm_command_center.common.config import AppConfig
from pm_command_center.domain.estimation import EstimationModel
from pm_command_center.domain.issues import Milestone, PullRequestSummary, RawIssue, UnifiedIssue
from pm_command_center.estimation.model_builder import build_model
from pm_command_center.integration.event_bus import EventBus
from pm_command_center.integration.events import (
    DomainEvent,
    EstimationModelBuilt,
    IssuesFetched,
    PlatformFetchFailed,
)
from pm_command_center.normalization.normalizer import normalize

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class FetchError:
    platform: str
    message: str


@dataclass(frozen=True)
class FanOutResult(Generic[T]):
    items: list[T] = field(default_factory=list)
    errors: list[FetchError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def build_connectors(
    config: AppConfig, env: Mapping[str, str] | None = None
) -> list[PlatformConnector]:
    """Instantiate a connector for every enabled and fully configured platform."""
    connectors: list[PlatformConnector] = []
    if config.github.is_configured(env):
        connectors.append(GitHubConnector.from_config(config.github, config.github.token(env)))
    if config.azure_devops.is_configured(env):
        connectors.append(
            AzureDevOpsConnector.from_config(config.azure_devops, config.azure_devops.token(env))
        )
    if config.jira.is_configured(env):
        connectors.append(JiraConnector.from_config(config.jira, config.jira.token(env)))
    logger.info("Configured platforms: %s", ", ".join(c.platform.value for c in connectors) or "none")
    return connectors


class PlatformManager:
    """Best-effort fan-out over every configured connector.

    Each platform is fetched concurrently; a failing platform contributes a
    FetchError and never aborts the others.
    """

    def __init__(
        self,
        connectors: Sequence[PlatformConnector],
        bus: EventBus | None = None,
    ) -> None:
        self.connectors = list(connectors)
        self.bus = bus

    @property
    def platforms(self) -> list[str]:
        return [c.platform.value for c in self.connectors]

    async def _fan_out(
        self,
        call: Callable[[PlatformConnector], Awaitable[Sequence[T]]],
        what: str,
    ) -> FanOutResult[T]:
        outcomes = await asyncio.gather(
            *(call(c) for c in self.connectors), return_exceptions=True
        )
        items: list[T] = []
        errors: list[FetchError] = []
        for connector, outcome in zip(self.connectors, outcomes):
            name = connector.platform.value
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.warning("Failed to fetch %s from %s: %s", what, name, outcome)
                errors.append(FetchError(platform=name, message=str(outcome)))
                self._publish(
                    PlatformFetchFailed(occurred_at=_now(), platform=name, message=str(outcome))
                )
                continue
            items.extend(outcome)
        return FanOutResult(items=items, errors=errors)

    async def fetch_all_issues(self, state: str = "all") -> FanOutResult[UnifiedIssue]:
        return await self._fetch_normalized(lambda c: c.fetch_issues(state))

    async def fetch_all_closed_issues(self) -> FanOutResult[UnifiedIssue]:
        return await self._fetch_normalized(lambda c: c.fetch_closed_issues())

    async def _fetch_normalized(
        self, call: Callable[[PlatformConnector], Awaitable[Sequence[RawIssue]]]
    ) -> FanOutResult[UnifiedIssue]:
        async def fetch(connector: PlatformConnector) -> list[UnifiedIssue]:
            raw = await call(connector)
            issues = [normalize(r) for r in raw]
            self._publish(
                IssuesFetched(
                    occurred_at=_now(), platform=connector.platform.value, issue_count=len(issues)
                )
            )
            return issues

        return await self._fan_out(fetch, "issues")

    async def fetch_all_milestones(self) -> FanOutResult[Milestone]:
        return await self._fan_out(lambda c: c.fetch_milestones(), "milestones")

    async def fetch_all_pull_requests(self, state: str = "all") -> FanOutResult[PullRequestSummary]:
        return await self._fan_out(lambda c: c.fetch_pull_requests(state), "pull requests")

    async def test_all_connections(self) -> dict[str, bool]:
        results = await asyncio.gather(*(c.test_connection() for c in self.connectors))
        return {c.platform.value: ok for c, ok in zip(self.connectors, results)}

    async def build_cross_org_model(self) -> tuple[EstimationModel, list[FetchError]]:
        """Learn an estimation model from closed issues across every platform."""
        closed = await self.fetch_all_closed_issues()
        model = build_model(closed.items)
        self._publish(
            EstimationModelBuilt(
                occurred_at=_now(),
                sample_size=model.sample_size,
                has_enough_data=model.has_enough_data,
                learned_from=model.learned_from,
            )
        )
        return model, closed.errors

    def _publish(self, event: DomainEvent) -> None:
        if self.bus is not None:
            self.bus.publish(event)


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)
