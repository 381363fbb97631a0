"""Listener and router tests."""

import asyncio
import json

import pytest

from issueflow.classify import Channel, EventClassifier
from issueflow.dispatch import ChannelListener, EventRouter


class RecordingHandlers:
    def __init__(self, fail_on=None):
        self.seen = []
        self.fail_on = fail_on

    async def handle(self, event):
        self.seen.append(event.text)
        if event.text == self.fail_on:
            raise RuntimeError("handler blew up")


def slash(text):
    return json.dumps(
        {"command": "/issue", "text": text, "trigger_id": "T", "user_name": "alice"}
    )


async def run_until_drained(listener, transport, topic):
    stop = asyncio.Event()
    task = asyncio.create_task(listener.run(stop))
    for _ in range(100):
        if not transport.published(topic):
            break
        await asyncio.sleep(0.01)
    await asyncio.sleep(0.02)
    stop.set()
    await asyncio.wait_for(task, timeout=1)


@pytest.mark.asyncio
async def test_listener_handles_events_in_order(transport):
    handlers = RecordingHandlers()
    listener = ChannelListener(
        Channel.SLASH_COMMANDS, "slack-commands", transport, EventClassifier(), handlers
    )
    for text in ("one", "two", "three"):
        await transport.inject("slack-commands", slash(text))

    await run_until_drained(listener, transport, "slack-commands")

    assert handlers.seen == ["one", "two", "three"]


@pytest.mark.asyncio
async def test_listener_survives_handler_failure_and_bad_payloads(transport, caplog):
    handlers = RecordingHandlers(fail_on="two")
    listener = ChannelListener(
        Channel.SLASH_COMMANDS, "slack-commands", transport, EventClassifier(), handlers
    )
    await transport.inject("slack-commands", slash("one"))
    await transport.inject("slack-commands", "{not json")
    await transport.inject("slack-commands", slash("two"))
    await transport.inject("slack-commands", slash("three"))

    await run_until_drained(listener, transport, "slack-commands")

    assert handlers.seen == ["one", "two", "three"]
    assert "event dropped" in caplog.text


@pytest.mark.asyncio
async def test_router_builds_one_listener_per_channel(config, transport, slack):
    router = EventRouter(config, transport, slack)

    topics = {listener.channel: listener.topic for listener in router.listeners}
    assert topics == {
        Channel.SLASH_COMMANDS: "slack-commands",
        Channel.VIEW_SUBMISSIONS: "slack-relay-view-submission",
        Channel.REACTIONS: "slack-relay-reaction-added",
        Channel.MESSAGE_ACTIONS: "slack-relay-message-action",
        Channel.EXECUTOR_OUTPUT: "poppit:command-output",
        Channel.GITHUB_WEBHOOKS: "github-webhook-issues",
    }


@pytest.mark.asyncio
async def test_router_routes_form_submission_end_to_end(config, transport, slack):
    router = EventRouter(config, transport, slack)
    await transport.inject(
        "slack-relay-view-submission",
        json.dumps(
            {
                "type": "view_submission",
                "user": {"username": "alice"},
                "view": {
                    "callback_id": "create_github_issue_modal",
                    "state": {
                        "values": {
                            "repo_selection_block": {
                                "repo_select": {"selected_option": {"value": "repo"}}
                            },
                            "title_block": {"issue_title": {"value": "Fix login bug"}},
                        }
                    },
                },
            }
        ),
    )

    stop = asyncio.Event()
    task = asyncio.create_task(router.run(stop))
    for _ in range(100):
        if transport.pushed("poppit:commands"):
            break
        await asyncio.sleep(0.01)
    stop.set()
    await asyncio.wait_for(task, timeout=2)

    (item,) = transport.pushed("poppit:commands")
    assert item["repo"] == "org/repo"
    assert "'Fix login bug'" in item["commands"][0]


@pytest.mark.asyncio
async def test_router_stops_after_lifespan(config, transport, slack):
    router = EventRouter(config, transport, slack)
    await asyncio.wait_for(router.run(lifespan=0.05), timeout=2)


@pytest.mark.asyncio
async def test_router_survives_deeply_nested_payload(config, transport, slack):
    router = EventRouter(config, transport, slack)
    await transport.inject("slack-commands", "[" * 200000 + "]" * 200000)
    await transport.inject("slack-commands", slash("after"))

    await asyncio.wait_for(router.run(lifespan=0.3), timeout=2)

    assert transport.published("slack-commands") == []
    assert len(slack.opened) == 1


@pytest.mark.asyncio
async def test_listener_survives_classifier_failure(transport, caplog):
    class BrokenClassifier(EventClassifier):
        def classify(self, channel, raw):
            if raw == "boom":
                raise RuntimeError("classifier blew up")
            return super().classify(channel, raw)

    handlers = RecordingHandlers()
    listener = ChannelListener(
        Channel.SLASH_COMMANDS, "slack-commands", transport, BrokenClassifier(), handlers
    )
    await transport.inject("slack-commands", "boom")
    await transport.inject("slack-commands", slash("one"))

    await run_until_drained(listener, transport, "slack-commands")

    assert handlers.seen == ["one"]
    assert "event dropped" in caplog.text
