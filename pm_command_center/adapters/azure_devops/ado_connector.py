from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from pm_command_center.adapters.azure_devops.ado_client import AzureDevOpsClient
from pm_command_center.adapters.connector import CONNECTION_ERRORS, check_state
from pm_command_center.common.config import AzureDevOpsConfig
from pm_command_center.common.time_utils import parse_optional_timestamp
from pm_command_center.domain.issues import (
    AzureDevOpsRawWorkItem,
    Milestone,
    Platform,
    PullRequestSummary,
)

logger = logging.getLogger(__name__)

CLOSED_STATES = ("Done", "Closed", "Resolved", "Completed")
WORK_ITEM_TYPES = ("User Story", "Bug", "Task", "Feature")

_PR_STATUS = {"open": "active", "closed": "completed", "all": "all"}


def build_wiql(project: str, state: str) -> str:
    closed = ", ".join(f"'{s}'" for s in CLOSED_STATES)
    types = ", ".join(f"'{t}'" for t in WORK_ITEM_TYPES)
    if state == "closed":
        state_filter = f"AND [System.State] IN ({closed})"
    elif state == "open":
        state_filter = f"AND [System.State] NOT IN ({closed})"
    else:
        state_filter = ""
    project_literal = project.replace("'", "''")
    return (
        "SELECT [System.Id] FROM WorkItems "
        f"WHERE [System.TeamProject] = '{project_literal}' "
        f"AND [System.WorkItemType] IN ({types}) "
        f"{state_filter} "
        "ORDER BY [System.CreatedDate] DESC"
    )


@dataclass
class AzureDevOpsConnector:
    config: AzureDevOpsConfig
    client: AzureDevOpsClient
    platform: Platform = field(default=Platform.AZURE_DEVOPS, init=False)

    @classmethod
    def from_config(cls, config: AzureDevOpsConfig, token: str) -> "AzureDevOpsConnector":
        client = AzureDevOpsClient(
            organization=config.organization,
            project=config.project,
            token=token,
            api_base_url=config.api_base_url,
            api_version=config.api_version,
        )
        return cls(config=config, client=client)

    async def fetch_issues(self, state: str = "all") -> list[AzureDevOpsRawWorkItem]:
        return await asyncio.to_thread(self._fetch_issues, check_state(state))

    async def fetch_closed_issues(self) -> list[AzureDevOpsRawWorkItem]:
        return await self.fetch_issues("closed")

    async def fetch_milestones(self) -> list[Milestone]:
        return await asyncio.to_thread(self._fetch_iterations)

    async def fetch_pull_requests(self, state: str = "all") -> list[PullRequestSummary]:
        return await asyncio.to_thread(self._fetch_pull_requests, check_state(state))

    async def test_connection(self) -> bool:
        try:
            await asyncio.to_thread(self.client.get, "/_apis/wit/fields", {"$top": 1})
        except CONNECTION_ERRORS as exc:
            logger.warning("Azure DevOps connection test failed: %s", exc)
            return False
        return True

    def _fetch_issues(self, state: str) -> list[AzureDevOpsRawWorkItem]:
        logger.info("Fetching %s work items for %s", state, self.config.project)
        ids = self.client.query_work_item_ids(build_wiql(self.config.project, state))
        out: list[AzureDevOpsRawWorkItem] = []
        step = max(1, self.config.batch_size)
        for start in range(0, len(ids), step):
            for item in self.client.get_work_items(ids[start : start + step]):
                out.append(AzureDevOpsRawWorkItem(payload=item))
        return out

    def _fetch_iterations(self) -> list[Milestone]:
        team = f"/{self.config.team}" if self.config.team else ""
        data = self.client.get(f"{team}/_apis/work/teamsettings/iterations")
        return [_iteration(it) for it in data.get("value") or []]

    def _fetch_pull_requests(self, state: str) -> list[PullRequestSummary]:
        data = self.client.get(
            "/_apis/git/pullrequests", params={"searchCriteria.status": _PR_STATUS[state]}
        )
        return [_pull_request(pr, self.client.project_url) for pr in data.get("value") or []]


def _iteration(it: dict[str, Any]) -> Milestone:
    attributes = it.get("attributes") or {}
    return Milestone(
        id=str(it.get("id") or ""),
        title=str(it.get("name") or ""),
        platform=Platform.AZURE_DEVOPS,
        state=str(attributes.get("timeFrame") or ""),
        start_date=parse_optional_timestamp(attributes.get("startDate")),
        due_date=parse_optional_timestamp(attributes.get("finishDate")),
        url=str(it.get("url") or ""),
        description=str(it.get("path") or ""),
    )


def _pull_request(pr: dict[str, Any], project_url: str) -> PullRequestSummary:
    status = pr.get("status")
    state = "merged" if status == "completed" else "closed" if status == "abandoned" else "open"
    repo_name = (pr.get("repository") or {}).get("name") or ""
    pr_id = str(pr.get("pullRequestId") or "")
    return PullRequestSummary(
        id=pr_id,
        title=str(pr.get("title") or ""),
        platform=Platform.AZURE_DEVOPS,
        state=state,
        author=str((pr.get("createdBy") or {}).get("displayName") or ""),
        created_at=parse_optional_timestamp(pr.get("creationDate")),
        url=f"{project_url}/_git/{repo_name}/pullrequest/{pr_id}",
        source_branch=str(pr.get("sourceRefName") or "").replace("refs/heads/", ""),
        target_branch=str(pr.get("targetRefName") or "").replace("refs/heads/", ""),
        draft=bool(pr.get("isDraft")),
    )
