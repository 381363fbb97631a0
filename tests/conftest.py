"""Shared fakes for handler, lookup and dispatch tests."""

from typing import Any, Dict, List, Optional

import pytest

from issueflow.config import GitHubConfig, IssueflowConfig, SlackConfig, WorkflowConfig
from issueflow.handlers import WorkflowHandlers
from issueflow.lookup import TranscriptSearch
from issueflow.transports.inmemory import InMemoryTransport

STATUS_CHANNEL = "C_STATUS"


class FakeSlack:
    """Stands in for SlackClient; history is newest first, like Slack's."""

    def __init__(self, messages: Optional[List[Dict[str, Any]]] = None) -> None:
        self.messages = messages or []
        self.opened: List[tuple] = []
        self.updated: List[tuple] = []
        self.history_calls: List[Dict[str, Any]] = []

    async def conversation_history(self, channel, limit, latest=None, inclusive=False):
        self.history_calls.append(
            {"channel": channel, "limit": limit, "latest": latest, "inclusive": inclusive}
        )
        if latest:
            return [m for m in self.messages if m.get("ts") == latest][:limit]
        return self.messages[:limit]

    async def open_view(self, trigger_id, view):
        self.opened.append((trigger_id, view))
        return "V123"

    async def update_view(self, view_id, view):
        self.updated.append((view_id, view))


def make_status_message(ts: str, issue_url: Optional[str], **payload: Any) -> Dict[str, Any]:
    message: Dict[str, Any] = {"type": "message", "ts": ts, "text": "issue created"}
    if issue_url is not None:
        message["metadata"] = {
            "event_type": "issue_created",
            "event_payload": {
                "state": "created",
                "repo": "org/repo",
                "title": "Fix login bug",
                "username": "alice",
                "issue_url": issue_url,
                **payload,
            },
        }
    return message


@pytest.fixture
def status_message():
    return make_status_message


@pytest.fixture
def config():
    return IssueflowConfig(
        transport="inmemory",
        slack=SlackConfig(bot_token="xoxb-test"),
        github=GitHubConfig(org="org"),
        workflow=WorkflowConfig(status_channel_id=STATUS_CHANNEL, search_limit=10),
    )


@pytest.fixture
def transport():
    return InMemoryTransport()


@pytest.fixture
def slack():
    return FakeSlack()


@pytest.fixture
def handlers(config, transport, slack):
    search = TranscriptSearch(
        slack, config.workflow.status_channel_id, config.workflow.search_limit
    )
    return WorkflowHandlers(config, transport, slack, search)
