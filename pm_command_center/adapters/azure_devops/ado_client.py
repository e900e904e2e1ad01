from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Any

import requests

from pm_command_center.adapters.errors import PlatformApiError

logger = logging.getLogger(__name__)


class AzureDevOpsApiError(PlatformApiError):
    pass


@dataclass
class AzureDevOpsClient:
    organization: str
    project: str
    token: str
    api_base_url: str = "https://dev.azure.com"
    api_version: str = "7.0"

    @property
    def project_url(self) -> str:
        return f"{self.api_base_url.rstrip('/')}/{self.organization}/{self.project}"

    def _headers(self) -> dict[str, str]:
        # Personal access tokens use Basic auth with an empty user name.
        auth = base64.b64encode(f":{self.token}".encode("utf-8")).decode("ascii")
        return {
            "Authorization": f"Basic {auth}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _check(self, resp: requests.Response, what: str) -> Any:
        if resp.status_code == 401:
            raise AzureDevOpsApiError("Azure DevOps authentication failed", resp.status_code)
        if resp.status_code >= 400:
            raise AzureDevOpsApiError(
                f"{what} failed: {resp.status_code} - {resp.text}", resp.status_code
            )
        return resp.json()

    def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        params = dict(params or {})
        params.setdefault("api-version", self.api_version)
        resp = requests.get(
            self.project_url + path, headers=self._headers(), params=params, timeout=60
        )
        return self._check(resp, f"GET {path}")

    def post(self, path: str, payload: dict[str, Any]) -> Any:
        resp = requests.post(
            self.project_url + path,
            headers=self._headers(),
            params={"api-version": self.api_version},
            json=payload,
            timeout=60,
        )
        return self._check(resp, f"POST {path}")

    def query_work_item_ids(self, wiql: str) -> list[int]:
        result = self.post("/_apis/wit/wiql", {"query": wiql})
        ids = [int(w["id"]) for w in result.get("workItems") or [] if "id" in w]
        logger.debug("WIQL matched %d work items in %s", len(ids), self.project)
        return ids

    def get_work_items(self, ids: list[int]) -> list[dict[str, Any]]:
        if not ids:
            return []
        data = self.get(
            "/_apis/wit/workitems",
            params={"ids": ",".join(str(i) for i in ids), "$expand": "all"},
        )
        return list(data.get("value") or [])
