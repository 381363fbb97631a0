"""Correlation context threaded through every step of an issue workflow.

Nothing about a workflow instance is stored locally. Each outbound work item,
status message and executor output carries a :class:`CorrelationContext`, and
the next step rebuilds everything it needs from it. The context is
append-only: steps add keys and move the ``state`` tag forward, they never
rewrite what an earlier step recorded.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict

from .constants import ISSUE_CREATED_EVENT_TYPE
from .contracts import SlackMessageMetadata

logger = logging.getLogger(__name__)


class WorkflowState(str, Enum):
    REQUESTED = "requested"
    SUBMITTED = "submitted"
    CREATED = "created"
    ASSIGN_PENDING = "assign_pending"
    SANITIZE_PENDING = "sanitize_pending"
    IDLE = "idle"
    CLOSED = "closed"


class MissingContextField(Exception):
    """A step needs a key that no earlier step recorded; the event is dropped."""

    def __init__(self, missing: list[str], state: Optional[WorkflowState] = None):
        self.missing = missing
        self.state = state
        super().__init__(f"missing correlation fields: {', '.join(missing)}")


class UnexpectedState(Exception):
    """The workflow is not in a state the step can continue from."""

    def __init__(self, state: Optional[WorkflowState], expected: tuple[WorkflowState, ...]):
        self.state = state
        self.expected = expected
        wanted = ", ".join(s.value for s in expected)
        got = state.value if state else "none"
        super().__init__(f"workflow is {got}, expected one of: {wanted}")


class CorrelationContext(BaseModel):
    """Open key/value bag plus an explicit workflow state tag.

    Unknown keys are kept as extras so that contexts written by newer
    producers survive a round trip through older code.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    state: WorkflowState

    @property
    def fields(self) -> Dict[str, Any]:
        """Everything except the state tag."""
        return dict(self.model_extra or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self.fields.get(key, default)

    def get_str(self, key: str) -> str:
        value = self.get(key)
        return value if isinstance(value, str) else ""

    def get_bool(self, key: str) -> bool:
        return self.get(key) is True

    def advance(self, state: WorkflowState, **added: Any) -> "CorrelationContext":
        """Return a copy in ``state`` with ``added`` keys appended.

        Raises:
            ValueError: If an added key would overwrite a different value.
        """
        current = self.fields
        for key, value in added.items():
            if key in current and current[key] != value:
                raise ValueError(
                    f"correlation key {key!r} already set to {current[key]!r}"
                )
        return CorrelationContext(state=state, **{**current, **added})

    def to_dict(self) -> Dict[str, Any]:
        return {"state": self.state.value, **self.fields}


def new_context(state: WorkflowState, **fields: Any) -> CorrelationContext:
    return CorrelationContext(state=state, **fields)


def require(ctx: CorrelationContext, *keys: str) -> None:
    """Ensure each key is present and non-empty.

    Raises:
        MissingContextField: Listing every absent key.
    """
    missing = [k for k in keys if ctx.get(k) in (None, "")]
    if missing:
        raise MissingContextField(missing, ctx.state)


def expect_state(state: Optional[WorkflowState], *expected: WorkflowState) -> None:
    """Ensure the workflow is in one of the ``expected`` states.

    Raises:
        UnexpectedState: If it is not.
    """
    if state not in expected:
        raise UnexpectedState(state, expected)


def _infer_state(fields: Mapping[str, Any]) -> WorkflowState:
    # contexts written before the state tag existed
    if fields.get("issue_url"):
        return WorkflowState.CREATED
    return WorkflowState.SUBMITTED


def context_from_mapping(data: Optional[Mapping[str, Any]]) -> CorrelationContext:
    """Build a context from a decoded mapping, tolerating absent keys.

    Raises:
        ValueError: If ``state`` names an unknown workflow state.
    """
    fields = dict(data or {})
    raw_state = fields.pop("state", None)
    state = WorkflowState(raw_state) if raw_state else _infer_state(fields)
    return CorrelationContext(state=state, **fields)


def encode_context(ctx: CorrelationContext) -> bytes:
    """Serialise a context for attaching to an outbound item."""
    return json.dumps(ctx.to_dict(), separators=(",", ":")).encode("utf-8")


def decode_context(raw: bytes | str) -> CorrelationContext:
    """Inverse of :func:`encode_context`.

    Raises:
        ValueError: If ``raw`` is not a JSON object or carries an unknown state.
    """
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("correlation context must be a JSON object")
    return context_from_mapping(data)


def to_message_metadata(
    ctx: CorrelationContext, event_type: str = ISSUE_CREATED_EVENT_TYPE
) -> SlackMessageMetadata:
    return SlackMessageMetadata(event_type=event_type, event_payload=ctx.to_dict())


def from_message_metadata(
    metadata: Optional[Mapping[str, Any]],
    event_type: str = ISSUE_CREATED_EVENT_TYPE,
) -> Optional[CorrelationContext]:
    """Context embedded in a chat message, or ``None`` when there is none."""
    if not metadata or metadata.get("event_type") != event_type:
        return None
    payload = metadata.get("event_payload")
    if not isinstance(payload, dict):
        return None
    try:
        return context_from_mapping(payload)
    except ValueError as e:
        logger.warning(f"Ignoring message metadata with bad context: {e}")
        return None
