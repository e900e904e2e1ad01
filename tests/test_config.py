from __future__ import annotations

from pathlib import Path

from pm_command_center.common.config import AppConfig, JiraConfig


def test_load_config_from_toml(tmp_path: Path) -> None:
    path = tmp_path / "pm.toml"
    path.write_text(
        """
[github]
enabled = true
owner = "acme"
repo = "shop"

[jira]
enabled = true
domain = "acme.atlassian.net"
email = "pm@acme.io"
project_key = "PROJ"
token_env_var = "MY_JIRA_TOKEN"

[refresh]
interval_seconds = 60
""".strip()
    )

    cfg = AppConfig.load(path)

    assert cfg.github.owner == "acme"
    assert cfg.github.token_env_var == "GITHUB_TOKEN"
    assert cfg.azure_devops.enabled is False
    assert cfg.azure_devops.batch_size == 200
    assert cfg.refresh.interval_seconds == 60
    assert cfg.logging.level == "INFO"
    assert cfg.configured_platforms({"GITHUB_TOKEN": "x", "MY_JIRA_TOKEN": " y "}) == [
        "github",
        "jira",
    ]
    assert cfg.configured_platforms({"GITHUB_TOKEN": "  "}) == []


def test_defaults_leave_every_platform_disabled() -> None:
    cfg = AppConfig()

    assert cfg.configured_platforms({"GITHUB_TOKEN": "x"}) == []


def test_jira_domain_is_normalized() -> None:
    jira = JiraConfig(domain="https://acme.atlassian.net/")

    assert jira.bare_domain == "acme.atlassian.net"
