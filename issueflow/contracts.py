"""Wire contracts for everything issueflow reads from or writes to the queue."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .constants import DEFAULT_BRANCH


class WireModel(BaseModel):
    """Base for outbound records; serialises with wire field names."""

    model_config = ConfigDict(populate_by_name=True)

    def to_json(self) -> str:
        """Serialize record to JSON."""
        return self.model_dump_json(by_alias=True, exclude_none=True)

    @classmethod
    def from_json(cls, data: str | bytes):
        """Deserialize record from JSON."""
        return cls.model_validate_json(data)


# ----------------------------------------------------------------------
# Outbound
# ----------------------------------------------------------------------


class WorkItem(WireModel):
    """A unit of shell work submitted to the command executor."""

    resource: str = Field(alias="repo")
    ref: str = Field(default=DEFAULT_BRANCH, alias="branch")
    kind: str = Field(alias="type")
    working_dir: str = Field(alias="dir")
    command_lines: List[str] = Field(default_factory=list, alias="commands")
    correlation_context: Optional[Dict[str, Any]] = Field(
        default=None, alias="metadata"
    )


class SlackMessageMetadata(BaseModel):
    event_type: str
    event_payload: Dict[str, Any] = Field(default_factory=dict)


class StatusMessage(WireModel):
    """Message posted to chat by the status relay, with optional TTL."""

    destination: str = Field(alias="channel")
    text: str
    ttl_seconds: int = Field(default=0, alias="ttl")
    metadata: Optional[SlackMessageMetadata] = None


class ReactionRequest(WireModel):
    emoji: str = Field(alias="reaction")
    destination: str = Field(alias="channel")
    message_ref: str = Field(alias="ts")


class CleanupRequest(WireModel):
    """Deferred removal of a chat message once ``ttl`` seconds have passed."""

    destination: str = Field(alias="channel")
    message_ref: str = Field(alias="ts")
    ttl_seconds: int = Field(alias="ttl")


# ----------------------------------------------------------------------
# Inbound
# ----------------------------------------------------------------------


class SlashCommandPayload(BaseModel):
    command: str = ""
    text: str = ""
    response_url: str = ""
    trigger_id: str = ""
    user_id: str = ""
    user_name: str = ""
    channel_id: str = ""


class SlackUser(BaseModel):
    id: str = ""
    username: str = ""
    name: str = ""


class ViewState(BaseModel):
    values: Dict[str, Dict[str, Any]] = Field(default_factory=dict)


class SubmittedView(BaseModel):
    id: str = ""
    callback_id: str = ""
    state: ViewState = Field(default_factory=ViewState)


class ViewSubmissionPayload(BaseModel):
    type: str = ""
    view: SubmittedView = Field(default_factory=SubmittedView)
    user: SlackUser = Field(default_factory=SlackUser)


class ExecutorOutputPayload(BaseModel):
    metadata: Optional[Dict[str, Any]] = None
    type: str = ""
    command: str = ""
    output: str = ""


class ReactionItem(BaseModel):
    type: str = ""
    channel: str = ""
    ts: str = ""


class ReactionEventBody(BaseModel):
    type: str = ""
    user: str = ""
    reaction: str = ""
    item: ReactionItem = Field(default_factory=ReactionItem)
    item_user: str = ""
    event_ts: str = ""


class Authorization(BaseModel):
    user_id: str = ""
    is_bot: bool = False


class ReactionAddedPayload(BaseModel):
    type: str = ""
    event_id: str = ""
    event: ReactionEventBody = Field(default_factory=ReactionEventBody)
    authorizations: List[Authorization] = Field(default_factory=list)

    def reacted_by_bot(self) -> bool:
        return any(
            auth.is_bot and auth.user_id == self.event.user
            for auth in self.authorizations
        )


class ActionChannel(BaseModel):
    id: str = ""
    name: str = ""


class ActionMessage(BaseModel):
    type: str = ""
    user: str = ""
    ts: str = ""
    text: str = ""


class MessageActionPayload(BaseModel):
    type: str = ""
    callback_id: str = ""
    trigger_id: str = ""
    message_ts: str = ""
    user: SlackUser = Field(default_factory=SlackUser)
    channel: ActionChannel = Field(default_factory=ActionChannel)
    message: ActionMessage = Field(default_factory=ActionMessage)


class GitHubAccount(BaseModel):
    login: str = ""


class WebhookIssue(BaseModel):
    url: str = ""
    html_url: str = ""
    repository_url: str = ""
    number: int = 0
    title: str = ""
    assignees: List[GitHubAccount] = Field(default_factory=list)


class IssueWebhookPayload(BaseModel):
    action: str = ""
    issue: WebhookIssue = Field(default_factory=WebhookIssue)
    assignee: Optional[GitHubAccount] = None


class TitleGenerationOutput(BaseModel):
    """JSON document printed by the title-generation agent."""

    version: int = 0
    title: str = ""
    prompt: str = ""
