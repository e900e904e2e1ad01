from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from pm_command_center.adapters.connector import CONNECTION_ERRORS, check_state
from pm_command_center.adapters.github.github_client import GitHubClient
from pm_command_center.common.config import GithubConfig
from pm_command_center.common.time_utils import parse_optional_timestamp
from pm_command_center.domain.issues import GitHubRawIssue, Milestone, Platform, PullRequestSummary

logger = logging.getLogger(__name__)


@dataclass
class GitHubConnector:
    config: GithubConfig
    client: GitHubClient
    platform: Platform = field(default=Platform.GITHUB, init=False)

    @classmethod
    def from_config(cls, config: GithubConfig, token: str) -> "GitHubConnector":
        return cls(config=config, client=GitHubClient(token=token, api_base_url=config.api_base_url))

    @property
    def repo_path(self) -> str:
        return f"/repos/{self.config.owner}/{self.config.repo}"

    async def fetch_issues(self, state: str = "all") -> list[GitHubRawIssue]:
        return await asyncio.to_thread(self._fetch_issues, check_state(state))

    async def fetch_closed_issues(self) -> list[GitHubRawIssue]:
        return await self.fetch_issues("closed")

    async def fetch_milestones(self) -> list[Milestone]:
        return await asyncio.to_thread(self._fetch_milestones)

    async def fetch_pull_requests(self, state: str = "all") -> list[PullRequestSummary]:
        return await asyncio.to_thread(self._fetch_pull_requests, check_state(state))

    async def test_connection(self) -> bool:
        try:
            await asyncio.to_thread(self.client.get, self.repo_path)
        except CONNECTION_ERRORS as exc:
            logger.warning("GitHub connection test failed: %s", exc)
            return False
        return True

    def _fetch_issues(self, state: str) -> list[GitHubRawIssue]:
        logger.info("Fetching %s issues for %s/%s", state, self.config.owner, self.config.repo)
        out: list[GitHubRawIssue] = []
        for item in self.client.paginate(
            f"{self.repo_path}/issues",
            params={"state": state},
            per_page=100,
            max_pages=self.config.max_pages,
        ):
            # The issues endpoint also lists pull requests.
            if "pull_request" in item:
                continue
            out.append(GitHubRawIssue(payload=item))
        return out

    def _fetch_milestones(self) -> list[Milestone]:
        data = self.client.get(
            f"{self.repo_path}/milestones",
            params={"state": "all", "sort": "due_on", "direction": "asc"},
        )
        return [_milestone(m) for m in data or []]

    def _fetch_pull_requests(self, state: str) -> list[PullRequestSummary]:
        data = self.client.get(f"{self.repo_path}/pulls", params={"state": state, "per_page": 100})
        return [_pull_request(pr) for pr in data or []]


def _milestone(m: dict[str, Any]) -> Milestone:
    return Milestone(
        id=str(m.get("number") or m.get("id") or ""),
        title=str(m.get("title") or ""),
        platform=Platform.GITHUB,
        state=str(m.get("state") or ""),
        due_date=parse_optional_timestamp(m.get("due_on")),
        url=str(m.get("html_url") or ""),
        description=str(m.get("description") or ""),
    )


def _pull_request(pr: dict[str, Any]) -> PullRequestSummary:
    if pr.get("merged_at"):
        state = "merged"
    elif pr.get("state") == "closed":
        state = "closed"
    else:
        state = "open"
    return PullRequestSummary(
        id=str(pr.get("number") or ""),
        title=str(pr.get("title") or ""),
        platform=Platform.GITHUB,
        state=state,
        author=str((pr.get("user") or {}).get("login") or ""),
        created_at=parse_optional_timestamp(pr.get("created_at")),
        url=str(pr.get("html_url") or ""),
        source_branch=str((pr.get("head") or {}).get("ref") or ""),
        target_branch=str((pr.get("base") or {}).get("ref") or ""),
        draft=bool(pr.get("draft")),
        labels=tuple(
            str(label["name"]) for label in pr.get("labels") or [] if label.get("name")
        ),
    )
