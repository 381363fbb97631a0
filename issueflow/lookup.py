"""Bounded search of the status channel, standing in for a workflow index.

Status messages carry the workflow's correlation context as Slack message
metadata. To get from an issue URL back to its chat message we scan the
``search_limit`` most recent messages of the status channel. Workflows older
than that window are simply not found.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from .constants import CLOSED_REACTION, SANITIZED_REACTION
from .correlation import CorrelationContext, WorkflowState, from_message_metadata
from .urls import normalize_issue_url

logger = logging.getLogger(__name__)


class HistorySource(Protocol):
    async def conversation_history(
        self,
        channel: str,
        limit: int,
        latest: Optional[str] = None,
        inclusive: bool = False,
    ) -> List[Dict[str, Any]]: ...


class LookupUnavailable(Exception):
    """No status channel is configured, so there is nothing to search."""


@dataclass(frozen=True)
class MessageLocation:
    channel: str
    ts: str


@dataclass(frozen=True)
class TranscriptMessage:
    """A chat message together with the context embedded in it, if any."""

    location: MessageLocation
    text: str = ""
    context: Optional[CorrelationContext] = None
    reactions: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_slack(cls, channel: str, message: Dict[str, Any]) -> "TranscriptMessage":
        reactions = frozenset(
            r.get("name", "") for r in message.get("reactions") or [] if isinstance(r, dict)
        )
        return cls(
            location=MessageLocation(channel=channel, ts=message.get("ts", "")),
            text=message.get("text", ""),
            context=from_message_metadata(message.get("metadata")),
            reactions=reactions,
        )

    def has_reaction(self, name: str) -> bool:
        return name in self.reactions

    @property
    def state(self) -> Optional[WorkflowState]:
        """Workflow state, including what later steps recorded as reactions.

        The embedded context never changes after the status message is
        posted. Closing an issue adds the closed reaction and a finished
        sanitize adds the sanitized one, which move the workflow to
        ``closed`` and ``idle``.
        """
        if self.context is None:
            return None
        if self.has_reaction(CLOSED_REACTION):
            return WorkflowState.CLOSED
        if self.has_reaction(SANITIZED_REACTION):
            return WorkflowState.IDLE
        return self.context.state


class TranscriptSearch:
    """Find status messages by issue URL or by exact location."""

    def __init__(self, history: HistorySource, channel: str, limit: int) -> None:
        self._history = history
        self._channel = channel
        self._limit = limit

    async def find_by_resource(self, issue_url: str) -> Optional[MessageLocation]:
        """Location of the first status message naming ``issue_url``.

        Returns ``None`` when no message inside the search window matches.

        Raises:
            LookupUnavailable: If no status channel is configured.
            SlackApiError: If the history call fails.
        """
        if not self._channel:
            raise LookupUnavailable("status channel ID not configured")

        wanted = normalize_issue_url(issue_url)
        if wanted is None:
            logger.info(f"Not an issue URL, skipping lookup: {issue_url}")
            return None

        messages = await self._history.conversation_history(self._channel, self._limit)
        for message in messages[: self._limit]:
            ctx = from_message_metadata(message.get("metadata"))
            if ctx is None:
                continue
            if normalize_issue_url(ctx.get_str("issue_url")) == wanted:
                return MessageLocation(channel=self._channel, ts=message.get("ts", ""))

        logger.info(
            f"No status message for {wanted} in the last {self._limit} messages"
        )
        return None

    async def fetch_message(self, channel: str, ts: str) -> Optional[TranscriptMessage]:
        """The single message at ``ts`` in ``channel``, if it still exists."""
        messages = await self._history.conversation_history(
            channel, 1, latest=ts, inclusive=True
        )
        for message in messages:
            if message.get("ts") == ts:
                return TranscriptMessage.from_slack(channel, message)
        return None
