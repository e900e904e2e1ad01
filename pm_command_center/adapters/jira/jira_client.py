from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Iterator

import requests

from pm_command_center.adapters.errors import PlatformApiError

logger = logging.getLogger(__name__)

MAX_RATE_LIMIT_RETRIES = 3
DEFAULT_RETRY_AFTER_S = 10


def retry_after_seconds(value: str | None, now: datetime | None = None) -> int:
    """Seconds to wait for a Retry-After header given as seconds or an HTTP date."""
    if not value:
        return DEFAULT_RETRY_AFTER_S
    value = value.strip()
    if value.isdigit():
        return max(1, int(value))
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return DEFAULT_RETRY_AFTER_S
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    current = now or datetime.now(tz=timezone.utc)
    return max(1, math.ceil((when - current).total_seconds()))


class JiraApiError(PlatformApiError):
    pass


@dataclass
class JiraClient:
    domain: str
    email: str
    token: str

    @property
    def base_url(self) -> str:
        return f"https://{self.domain}"

    def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        attempts = 0
        while True:
            resp = requests.get(
                self.base_url + path,
                auth=(self.email, self.token),
                headers={"Accept": "application/json"},
                params=params,
                timeout=60,
            )
            if resp.status_code != 429 or attempts >= MAX_RATE_LIMIT_RETRIES:
                break
            attempts += 1
            wait_s = retry_after_seconds(resp.headers.get("Retry-After"))
            logger.warning("Jira rate limit hit. Sleeping %ss", wait_s)
            time.sleep(wait_s)
        if resp.status_code >= 400:
            raise JiraApiError(
                f"GET {path} failed: {resp.status_code} - {resp.text}", resp.status_code
            )
        return resp.json()

    def search(self, jql: str, *, page_size: int = 100) -> Iterator[dict[str, Any]]:
        """Page through /search until the reported total is reached."""
        start_at = 0
        while True:
            data = self.get(
                "/rest/api/3/search",
                params={
                    "jql": jql,
                    "startAt": start_at,
                    "maxResults": page_size,
                    "expand": "names",
                },
            )
            issues = data.get("issues") or []
            yield from issues
            total = int(data.get("total") or 0)
            if not issues or start_at + len(issues) >= total:
                return
            start_at += len(issues)
