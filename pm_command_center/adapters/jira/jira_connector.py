from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from pm_command_center.adapters.connector import CONNECTION_ERRORS, check_state
from pm_command_center.adapters.jira.jira_client import JiraApiError, JiraClient
from pm_command_center.common.config import JiraConfig
from pm_command_center.common.time_utils import parse_optional_timestamp
from pm_command_center.domain.issues import JiraRawIssue, Milestone, Platform, PullRequestSummary

logger = logging.getLogger(__name__)

CLOSED_STATUSES = "(Done, Closed, Resolved)"


def build_jql(project_key: str, state: str) -> str:
    if state == "closed":
        state_jql = f" AND status IN {CLOSED_STATUSES}"
    elif state == "open":
        state_jql = f" AND status NOT IN {CLOSED_STATUSES}"
    else:
        state_jql = ""
    return f"project = {project_key}{state_jql} ORDER BY created DESC"


@dataclass
class JiraConnector:
    config: JiraConfig
    client: JiraClient
    platform: Platform = field(default=Platform.JIRA, init=False)
    _board_id: int | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        self._board_id = self.config.board_id

    @classmethod
    def from_config(cls, config: JiraConfig, token: str) -> "JiraConnector":
        client = JiraClient(domain=config.bare_domain, email=config.email, token=token)
        return cls(config=config, client=client)

    async def fetch_issues(self, state: str = "all") -> list[JiraRawIssue]:
        return await asyncio.to_thread(self._fetch_issues, check_state(state))

    async def fetch_closed_issues(self) -> list[JiraRawIssue]:
        return await self.fetch_issues("closed")

    async def fetch_milestones(self) -> list[Milestone]:
        return await asyncio.to_thread(self._fetch_sprints)

    async def fetch_pull_requests(self, state: str = "all") -> list[PullRequestSummary]:
        # Pull requests live in the linked code host, not in Jira.
        check_state(state)
        return []

    async def test_connection(self) -> bool:
        try:
            await asyncio.to_thread(self.client.get, "/rest/api/3/myself")
        except CONNECTION_ERRORS as exc:
            logger.warning("Jira connection test failed: %s", exc)
            return False
        return True

    def _fetch_issues(self, state: str) -> list[JiraRawIssue]:
        jql = build_jql(self.config.project_key, state)
        logger.info("Fetching Jira issues: %s", jql)
        return [
            JiraRawIssue(payload=issue, domain=self.client.domain)
            for issue in self.client.search(jql, page_size=self.config.page_size)
        ]

    def _resolve_board_id(self) -> int | None:
        if self._board_id is not None:
            return self._board_id
        try:
            boards = self.client.get(
                "/rest/agile/1.0/board", params={"projectKeyOrId": self.config.project_key}
            )
        except JiraApiError as exc:
            logger.warning("Could not look up a board for %s: %s", self.config.project_key, exc)
            return None
        values = boards.get("values") or []
        if values:
            self._board_id = int(values[0]["id"])
        return self._board_id

    def _fetch_sprints(self) -> list[Milestone]:
        board_id = self._resolve_board_id()
        if board_id is None:
            return []
        data = self.client.get(
            f"/rest/agile/1.0/board/{board_id}/sprint",
            params={"state": "active,future,closed"},
        )
        return [_sprint(s, self.client.base_url, board_id) for s in data.get("values") or []]


def _sprint(s: dict[str, Any], base_url: str, board_id: int) -> Milestone:
    return Milestone(
        id=str(s.get("id") or ""),
        title=str(s.get("name") or ""),
        platform=Platform.JIRA,
        state=str(s.get("state") or ""),
        start_date=parse_optional_timestamp(s.get("startDate")),
        due_date=parse_optional_timestamp(s.get("endDate")),
        url=f"{base_url}/jira/software/projects/boards/{board_id}",
        description=str(s.get("goal") or ""),
    )
