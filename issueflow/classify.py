"""Turn raw channel payloads into classified events.

Channels are shared with unrelated traffic, so anything without a known
discriminator is dropped quietly. Payloads that fail to decode are dropped
with a warning. :meth:`EventClassifier.classify` never raises.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Callable, Dict, Literal, Optional, Union

from pydantic import BaseModel, ValidationError

from .constants import (
    ISSUE_COMMAND,
    ISSUE_MODAL_CALLBACK_ID,
    MESSAGE_ACTION_CALLBACK_ID,
    TRIGGER_REACTIONS,
    WEBHOOK_ACTIONS,
    WORK_ITEM_KINDS,
)
from .contracts import (
    ExecutorOutputPayload,
    IssueWebhookPayload,
    MessageActionPayload,
    ReactionAddedPayload,
    SlashCommandPayload,
    ViewSubmissionPayload,
)
from .correlation import CorrelationContext, context_from_mapping
from .forms import IssueForm
from .urls import normalize_issue_url

logger = logging.getLogger(__name__)


class Channel(str, Enum):
    SLASH_COMMANDS = "slash_commands"
    VIEW_SUBMISSIONS = "view_submissions"
    EXECUTOR_OUTPUT = "executor_output"
    REACTIONS = "reactions"
    MESSAGE_ACTIONS = "message_actions"
    GITHUB_WEBHOOKS = "github_webhooks"


class SlashCommandEvent(BaseModel):
    kind: Literal["slash-command"] = "slash-command"
    command: str
    text: str
    trigger_id: str
    user_name: str


class FormSubmissionEvent(BaseModel):
    kind: Literal["form-submission"] = "form-submission"
    callback_id: str
    username: str
    form: IssueForm


class WorkerOutputEvent(BaseModel):
    kind: Literal["worker-output"] = "worker-output"
    type: str
    command: str
    output: str
    context: Optional[CorrelationContext] = None


class ReactionEvent(BaseModel):
    kind: Literal["emoji-reaction"] = "emoji-reaction"
    reaction: str
    user: str
    item_type: str
    channel: str
    ts: str
    from_bot: bool = False


class MessageActionEvent(BaseModel):
    kind: Literal["message-action"] = "message-action"
    callback_id: str
    trigger_id: str
    username: str
    text: str


class WebhookEvent(BaseModel):
    kind: Literal["external-webhook"] = "external-webhook"
    action: str
    issue_url: Optional[str] = None
    number: int = 0
    title: str = ""
    assignee: str = ""


ClassifiedEvent = Union[
    SlashCommandEvent,
    FormSubmissionEvent,
    WorkerOutputEvent,
    ReactionEvent,
    MessageActionEvent,
    WebhookEvent,
]


class EventClassifier:
    """Stateless mapping from (channel, raw payload) to a classified event."""

    def __init__(self) -> None:
        self._rules: Dict[Channel, Callable[[dict], Optional[ClassifiedEvent]]] = {
            Channel.SLASH_COMMANDS: self._slash_command,
            Channel.VIEW_SUBMISSIONS: self._view_submission,
            Channel.EXECUTOR_OUTPUT: self._executor_output,
            Channel.REACTIONS: self._reaction,
            Channel.MESSAGE_ACTIONS: self._message_action,
            Channel.GITHUB_WEBHOOKS: self._webhook,
        }

    def classify(
        self, channel: Channel, raw: Union[str, bytes]
    ) -> Optional[ClassifiedEvent]:
        """Return the classified event, or ``None`` to discard ``raw``."""
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError, RecursionError) as e:
            logger.warning(f"Discarding undecodable payload on {channel.value}: {e}")
            return None
        if not isinstance(data, dict):
            logger.warning(f"Discarding non-object payload on {channel.value}")
            return None

        try:
            event = self._rules[channel](data)
        except (ValidationError, ValueError) as e:
            logger.warning(f"Discarding malformed payload on {channel.value}: {e}")
            return None

        if event is None:
            logger.debug(f"No known discriminator on {channel.value}, discarding")
        return event

    # ------------------------------------------------------------------
    # Per-channel rules
    # ------------------------------------------------------------------

    def _slash_command(self, data: dict) -> Optional[ClassifiedEvent]:
        cmd = SlashCommandPayload.model_validate(data)
        if cmd.command != ISSUE_COMMAND:
            return None
        return SlashCommandEvent(
            command=cmd.command,
            text=cmd.text,
            trigger_id=cmd.trigger_id,
            user_name=cmd.user_name,
        )

    def _view_submission(self, data: dict) -> Optional[ClassifiedEvent]:
        submission = ViewSubmissionPayload.model_validate(data)
        if submission.view.callback_id != ISSUE_MODAL_CALLBACK_ID:
            return None
        return FormSubmissionEvent(
            callback_id=submission.view.callback_id,
            username=submission.user.username,
            form=IssueForm.from_state(submission.view.state.values),
        )

    def _executor_output(self, data: dict) -> Optional[ClassifiedEvent]:
        output = ExecutorOutputPayload.model_validate(data)
        if output.type not in WORK_ITEM_KINDS:
            return None
        context = (
            context_from_mapping(output.metadata) if output.metadata else None
        )
        return WorkerOutputEvent(
            type=output.type,
            command=output.command,
            output=output.output,
            context=context,
        )

    def _reaction(self, data: dict) -> Optional[ClassifiedEvent]:
        payload = ReactionAddedPayload.model_validate(data)
        body = payload.event
        if body.type != "reaction_added" or body.reaction not in TRIGGER_REACTIONS:
            return None
        return ReactionEvent(
            reaction=body.reaction,
            user=body.user,
            item_type=body.item.type,
            channel=body.item.channel,
            ts=body.item.ts,
            from_bot=payload.reacted_by_bot(),
        )

    def _message_action(self, data: dict) -> Optional[ClassifiedEvent]:
        action = MessageActionPayload.model_validate(data)
        if action.type != "message_action":
            return None
        if action.callback_id != MESSAGE_ACTION_CALLBACK_ID:
            return None
        return MessageActionEvent(
            callback_id=action.callback_id,
            trigger_id=action.trigger_id,
            username=action.user.username,
            text=action.message.text,
        )

    def _webhook(self, data: dict) -> Optional[ClassifiedEvent]:
        payload = IssueWebhookPayload.model_validate(data)
        if payload.action not in WEBHOOK_ACTIONS:
            return None
        issue = payload.issue
        return WebhookEvent(
            action=payload.action,
            issue_url=normalize_issue_url(issue.url) or normalize_issue_url(issue.html_url),
            number=issue.number,
            title=issue.title,
            assignee=payload.assignee.login if payload.assignee else "",
        )
