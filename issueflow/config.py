from __future__ import annotations

import os
import re
from typing import Any, Dict, Literal, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, field_validator

_DURATION_RE = re.compile(r"(\d+)([smhd])")
_DURATION_UNITS = {"s": 1, "m": 60, "h": 3600, "d": 86400}


class ConfigError(Exception):
    """Raised when the configuration cannot be used to start the service."""


def parse_seconds(value: Any) -> int:
    """Parse integer seconds or a duration such as ``48h`` or ``1h30m``."""
    if isinstance(value, bool):
        raise ValueError(f"invalid duration: {value!r}")
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if text.isdigit():
        return int(text)
    parts = _DURATION_RE.findall(text)
    if not parts or "".join(n + u for n, u in parts) != text:
        raise ValueError(f"invalid duration: {value!r}")
    return sum(int(n) * _DURATION_UNITS[u] for n, u in parts)


class RedisConfig(BaseModel):
    """Connection settings for the Redis queue."""

    model_config = ConfigDict(frozen=True)

    host: str = "host.docker.internal"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None


class ChannelConfig(BaseModel):
    """Pub/sub channels: six inbound plus the cleanup side channel."""

    model_config = ConfigDict(frozen=True)

    slash_commands: str = "slack-commands"
    view_submissions: str = "slack-relay-view-submission"
    reactions: str = "slack-relay-reaction-added"
    message_actions: str = "slack-relay-message-action"
    executor_output: str = "poppit:command-output"
    github_webhooks: str = "github-webhook-issues"
    cleanup: str = "timebomb-messages"


class QueueConfig(BaseModel):
    """Redis lists that outbound records are pushed onto."""

    model_config = ConfigDict(frozen=True)

    work: str = "poppit:commands"
    long_work: str = "poppit:long-commands"
    status: str = "slack_messages"
    reactions: str = "slack_reactions"


class SlackConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    bot_token: str = ""
    api_url: str = "https://slack.com/api"
    timeout: float = 10.0


class GitHubConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    org: str = ""
    automation_login: str = "Copilot"
    agent_repo: str = "issueflow"
    project_id: str = "1"
    project_org: str = "its-the-vibe"


class WorkflowConfig(BaseModel):
    """Knobs for the workflow steps themselves."""

    model_config = ConfigDict(frozen=True)

    working_dir: str = "/tmp"
    agent_working_dir: str = "/tmp/agent"
    status_channel_id: str = ""
    status_ttl: int = 48 * 3600
    search_limit: int = 100
    closed_ttl: int = 24 * 3600
    title_model: str = "gpt-4.1"

    @field_validator("status_ttl", "closed_ttl", mode="before")
    @classmethod
    def _parse_duration(cls, v: Any) -> int:
        return parse_seconds(v)

    @field_validator("search_limit")
    @classmethod
    def _positive_limit(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("search_limit must be positive")
        return v


class IssueflowConfig(BaseModel):
    """Top-level configuration model.

    Built once at start-up and handed to every listener and handler; it is
    frozen so nothing can change it while the service runs.
    """

    model_config = ConfigDict(frozen=True)

    transport: Literal["redis", "inmemory"] = "redis"
    redis: RedisConfig = RedisConfig()
    channels: ChannelConfig = ChannelConfig()
    queues: QueueConfig = QueueConfig()
    slack: SlackConfig = SlackConfig()
    github: GitHubConfig = GitHubConfig()
    workflow: WorkflowConfig = WorkflowConfig()
    log_level: str = "INFO"

    def validate_required(self) -> "IssueflowConfig":
        """Fail fast when a credential or the default organisation is missing."""
        missing = []
        if not self.slack.bot_token:
            missing.append("SLACK_BOT_TOKEN")
        if not self.github.org:
            missing.append("GITHUB_ORG")
        if missing:
            raise ConfigError(f"missing required configuration: {', '.join(missing)}")
        return self


# environment variable -> (section, field); section None means top level
ENV_OVERRIDES: Dict[str, Tuple[Optional[str], str]] = {
    "ISSUEFLOW_TRANSPORT": (None, "transport"),
    "REDIS_HOST": ("redis", "host"),
    "REDIS_PORT": ("redis", "port"),
    "REDIS_PASSWORD": ("redis", "password"),
    "SLACK_BOT_TOKEN": ("slack", "bot_token"),
    "GITHUB_ORG": ("github", "org"),
    "PROJECT_ID": ("github", "project_id"),
    "PROJECT_ORG": ("github", "project_org"),
    "WORKING_DIR": ("workflow", "working_dir"),
    "AGENT_WORKING_DIR": ("workflow", "agent_working_dir"),
    "CONFIRMATION_CHANNEL_ID": ("workflow", "status_channel_id"),
    "CONFIRMATION_TTL": ("workflow", "status_ttl"),
    "CONFIRMATION_SEARCH_LIMIT": ("workflow", "search_limit"),
    "LOG_LEVEL": (None, "log_level"),
}


def load_config(path: Optional[str] = None) -> IssueflowConfig:
    """Load configuration from YAML file, then apply environment overrides.

    Args:
        path: Optional path to config file. Falls back to ISSUEFLOW_CONFIG env
            variable or 'config.yaml' in the current directory.

    Raises:
        ConfigError: If the file or an override does not validate.
    """

    config_path = path or os.getenv("ISSUEFLOW_CONFIG", "config.yaml")
    data: Dict[str, Any] = {}
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

    for env_name, (section, field) in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if not value:
            continue
        if section is None:
            data[field] = value
        else:
            data.setdefault(section, {})[field] = value

    try:
        return IssueflowConfig(**data)
    except ValueError as e:
        raise ConfigError(f"invalid configuration: {e}") from e
