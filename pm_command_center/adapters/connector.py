from __future__ import annotations

from typing import Protocol

import requests

from pm_command_center.adapters.errors import PlatformApiError
from pm_command_center.domain.issues import Milestone, Platform, PullRequestSummary, RawIssue

ISSUE_STATES = ("open", "closed", "all")

# Errors that mean "cannot reach the tracker" rather than a programming fault.
CONNECTION_ERRORS: tuple[type[Exception], ...] = (PlatformApiError, requests.RequestException)


class PlatformConnector(Protocol):
    """Async read access to one tracker, owning only its own configuration."""

    platform: Platform

    async def fetch_issues(self, state: str = "all") -> list[RawIssue]:
        ...

    async def fetch_closed_issues(self) -> list[RawIssue]:
        ...

    async def fetch_milestones(self) -> list[Milestone]:
        ...

    async def fetch_pull_requests(self, state: str = "all") -> list[PullRequestSummary]:
        ...

    async def test_connection(self) -> bool:
        ...


def check_state(state: str) -> str:
    if state not in ISSUE_STATES:
        raise ValueError(f"state must be one of: {', '.join(ISSUE_STATES)}")
    return state
