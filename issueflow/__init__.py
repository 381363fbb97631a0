"""issueflow: chat-driven GitHub issue workflows routed over a message queue."""

from .classify import Channel, EventClassifier
from .config import ConfigError, IssueflowConfig, load_config
from .correlation import CorrelationContext, WorkflowState, decode_context, encode_context
from .dispatch import ChannelListener, EventRouter
from .handlers import WorkflowHandlers
from .lookup import MessageLocation, TranscriptSearch
from .slack import SlackApiError, SlackClient
from .transports import get_transport

__version__ = "0.1.0"
__all__ = [
    "Channel",
    "ChannelListener",
    "ConfigError",
    "CorrelationContext",
    "EventClassifier",
    "EventRouter",
    "IssueflowConfig",
    "MessageLocation",
    "SlackApiError",
    "SlackClient",
    "TranscriptSearch",
    "WorkflowHandlers",
    "WorkflowState",
    "decode_context",
    "encode_context",
    "get_transport",
    "load_config",
]
