from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Mapping

from pydantic import BaseModel, Field


def _read_toml(path: Path) -> dict[str, Any]:
    """Read TOML into a dict, supporting Python 3.10+.

    Uses tomllib when available, falls back to tomli.
    """
    data = path.read_bytes()
    try:
        import tomllib  # type: ignore[attr-defined]

        return tomllib.loads(data.decode("utf-8"))
    except ModuleNotFoundError:
        import tomli  # type: ignore[import-not-found]

        return tomli.loads(data.decode("utf-8"))


def _token(env_var: str, env: Mapping[str, str] | None) -> str:
    source = os.environ if env is None else env
    return source.get(env_var, "").strip()


class GithubConfig(BaseModel):
    enabled: bool = Field(default=False)
    owner: str = Field(default="")
    repo: str = Field(default="")
    token_env_var: str = Field(default="GITHUB_TOKEN")
    api_base_url: str = Field(default="https://api.github.com")
    max_pages: int = Field(default=50, description="Safety cap on paginated issue fetches.")

    def token(self, env: Mapping[str, str] | None = None) -> str:
        return _token(self.token_env_var, env)

    def is_configured(self, env: Mapping[str, str] | None = None) -> bool:
        return self.enabled and bool(self.owner and self.repo and self.token(env))


class AzureDevOpsConfig(BaseModel):
    enabled: bool = Field(default=False)
    organization: str = Field(default="")
    project: str = Field(default="")
    team: str = Field(default="", description="Team whose iterations are used as milestones.")
    token_env_var: str = Field(default="AZURE_DEVOPS_TOKEN")
    api_base_url: str = Field(default="https://dev.azure.com")
    api_version: str = Field(default="7.0")
    batch_size: int = Field(default=200, description="Work items fetched per request.")

    def token(self, env: Mapping[str, str] | None = None) -> str:
        return _token(self.token_env_var, env)

    def is_configured(self, env: Mapping[str, str] | None = None) -> bool:
        return self.enabled and bool(self.organization and self.project and self.token(env))


class JiraConfig(BaseModel):
    enabled: bool = Field(default=False)
    domain: str = Field(default="", description="e.g. acme.atlassian.net")
    email: str = Field(default="")
    project_key: str = Field(default="")
    board_id: int | None = Field(default=None, description="Looked up from the project when unset.")
    token_env_var: str = Field(default="JIRA_API_TOKEN")
    page_size: int = Field(default=100)

    def token(self, env: Mapping[str, str] | None = None) -> str:
        return _token(self.token_env_var, env)

    def is_configured(self, env: Mapping[str, str] | None = None) -> bool:
        return self.enabled and bool(
            self.domain and self.email and self.project_key and self.token(env)
        )

    @property
    def bare_domain(self) -> str:
        d = self.domain.strip()
        for prefix in ("https://", "http://"):
            if d.startswith(prefix):
                d = d[len(prefix):]
        return d.rstrip("/")


class RefreshConfig(BaseModel):
    interval_seconds: float = Field(default=300.0, description="Auto-refresh period.")
    issue_state: str = Field(default="all", description="open | closed | all")


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    log_dir: str | None = Field(default=None)


class ApiConfig(BaseModel):
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000)


class AppConfig(BaseModel):
    github: GithubConfig = Field(default_factory=GithubConfig)
    azure_devops: AzureDevOpsConfig = Field(default_factory=AzureDevOpsConfig)
    jira: JiraConfig = Field(default_factory=JiraConfig)
    refresh: RefreshConfig = Field(default_factory=RefreshConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)

    @classmethod
    def load(cls, path: Path) -> "AppConfig":
        raw = _read_toml(Path(os.path.expanduser(str(path))))
        return cls.model_validate(raw)

    def configured_platforms(self, env: Mapping[str, str] | None = None) -> list[str]:
        out: list[str] = []
        if self.github.is_configured(env):
            out.append("github")
        if self.azure_devops.is_configured(env):
            out.append("azuredevops")
        if self.jira.is_configured(env):
            out.append("jira")
        return out
