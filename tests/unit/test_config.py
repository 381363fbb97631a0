"""Tests for configuration loading."""

import pytest

from issueflow.config import ConfigError, IssueflowConfig, load_config, parse_seconds
from issueflow.transports import get_transport
from issueflow.transports.inmemory import InMemoryTransport
from issueflow.transports.redis import RedisTransport

ENV_VARS = [
    "ISSUEFLOW_CONFIG",
    "ISSUEFLOW_TRANSPORT",
    "SLACK_BOT_TOKEN",
    "GITHUB_ORG",
    "CONFIRMATION_TTL",
    "CONFIRMATION_SEARCH_LIMIT",
    "REDIS_HOST",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults_without_file(tmp_path):
    config = load_config(str(tmp_path / "missing.yaml"))
    assert config.channels.slash_commands == "slack-commands"
    assert config.channels.executor_output == "poppit:command-output"
    assert config.queues.work == "poppit:commands"
    assert config.workflow.status_ttl == 48 * 3600
    assert config.workflow.search_limit == 100


def test_load_config_from_env(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
redis:
  host: testhost
  port: 1234
workflow:
  status_ttl: 30m
  search_limit: 25
"""
    )
    monkeypatch.setenv("ISSUEFLOW_CONFIG", str(config_path))

    config = load_config()
    assert config.redis.host == "testhost"
    assert config.redis.port == 1234
    assert config.workflow.status_ttl == 1800
    assert config.workflow.search_limit == 25


def test_env_overrides_file(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("github:\n  org: from-file\n")
    monkeypatch.setenv("GITHUB_ORG", "from-env")
    monkeypatch.setenv("SLACK_BOT_TOKEN", "xoxb-1")
    monkeypatch.setenv("CONFIRMATION_TTL", "2h")

    config = load_config(str(config_path))
    assert config.github.org == "from-env"
    assert config.slack.bot_token == "xoxb-1"
    assert config.workflow.status_ttl == 7200


def test_invalid_value_is_config_error(tmp_path, monkeypatch):
    monkeypatch.setenv("CONFIRMATION_SEARCH_LIMIT", "lots")
    with pytest.raises(ConfigError):
        load_config(str(tmp_path / "missing.yaml"))


def test_validate_required_lists_missing_credentials():
    with pytest.raises(ConfigError) as exc:
        IssueflowConfig().validate_required()
    assert "SLACK_BOT_TOKEN" in str(exc.value)
    assert "GITHUB_ORG" in str(exc.value)


def test_validate_required_passes_with_credentials():
    config = IssueflowConfig(slack={"bot_token": "x"}, github={"org": "o"})
    assert config.validate_required() is config


@pytest.mark.parametrize(
    "value, expected",
    [(90, 90), ("90", 90), ("48h", 172800), ("1h30m", 5400), ("2d", 172800)],
)
def test_parse_seconds(value, expected):
    assert parse_seconds(value) == expected


@pytest.mark.parametrize("value", ["", "soon", "10x", "h"])
def test_parse_seconds_rejects_garbage(value):
    with pytest.raises(ValueError):
        parse_seconds(value)


def test_get_transport_uses_config(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
transport: redis
redis:
  host: confighost
  port: 6380
"""
    )
    monkeypatch.setenv("ISSUEFLOW_CONFIG", str(config_path))

    transport = get_transport()
    assert isinstance(transport, RedisTransport)
    assert transport.host == "confighost"
    assert transport.port == 6380


def test_get_transport_inmemory_override(tmp_path):
    transport = get_transport("inmemory", config=IssueflowConfig())
    assert isinstance(transport, InMemoryTransport)


def test_get_transport_follows_env_override_through_config(tmp_path, monkeypatch):
    monkeypatch.setenv("ISSUEFLOW_CONFIG", str(tmp_path / "missing.yaml"))
    monkeypatch.setenv("ISSUEFLOW_TRANSPORT", "inmemory")
    assert isinstance(get_transport(), InMemoryTransport)


def test_get_transport_uses_given_config_over_env(monkeypatch):
    monkeypatch.setenv("ISSUEFLOW_TRANSPORT", "inmemory")
    transport = get_transport(config=IssueflowConfig(transport="redis"))
    assert isinstance(transport, RedisTransport)


def test_get_transport_rejects_unknown_backend():
    with pytest.raises(ValueError):
        get_transport("carrier-pigeon", config=IssueflowConfig())
