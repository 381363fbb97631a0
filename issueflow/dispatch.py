"""One listener per inbound channel, all stopped by a shared event."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from .classify import Channel, EventClassifier
from .config import IssueflowConfig
from .handlers import WorkflowHandlers
from .lookup import TranscriptSearch
from .slack import SlackClient
from .transports import BaseTransport

logger = logging.getLogger(__name__)


class ChannelListener:
    """Receive loop for a single channel.

    Events are handled strictly one after another, in arrival order. A failing
    handler costs only its own event.
    """

    def __init__(
        self,
        channel: Channel,
        topic: str,
        transport: BaseTransport,
        classifier: EventClassifier,
        handlers: WorkflowHandlers,
    ) -> None:
        self.channel = channel
        self.topic = topic
        self._transport = transport
        self._classifier = classifier
        self._handlers = handlers

    async def run(
        self, stop: asyncio.Event, lifespan: Optional[float] = None
    ) -> None:
        logger.info(f"Listening for {self.channel.value} on {self.topic}")
        async for raw in self._transport.subscribe(self.topic, stop=stop, lifespan=lifespan):
            await self.process(raw)
        logger.info(f"Stopped listening on {self.topic}")

    async def process(self, raw: str | bytes) -> None:
        try:
            event = self._classifier.classify(self.channel, raw)
            if event is None:
                return
            await self._handlers.handle(event)
        except Exception:
            logger.exception(f"Error processing event from {self.topic}; event dropped")


class EventRouter:
    """Wires the six channel listeners to one set of handlers."""

    def __init__(
        self,
        config: IssueflowConfig,
        transport: BaseTransport,
        slack: SlackClient,
        search: Optional[TranscriptSearch] = None,
    ) -> None:
        self._config = config
        if search is None:
            search = TranscriptSearch(
                slack,
                config.workflow.status_channel_id,
                config.workflow.search_limit,
            )
        classifier = EventClassifier()
        handlers = WorkflowHandlers(config, transport, slack, search)
        self.listeners: List[ChannelListener] = [
            ChannelListener(
                channel,
                getattr(config.channels, channel.value),
                transport,
                classifier,
                handlers,
            )
            for channel in Channel
        ]

    async def run(
        self, stop: Optional[asyncio.Event] = None, lifespan: Optional[float] = None
    ) -> None:
        """Run every listener until ``stop`` is set or ``lifespan`` runs out.

        If one listener fails, the others are stopped cooperatively and the
        failure is re-raised once they have finished.
        """
        stop = stop or asyncio.Event()
        tasks = [
            asyncio.create_task(listener.run(stop, lifespan), name=listener.topic)
            for listener in self.listeners
        ]
        try:
            await asyncio.gather(*tasks)
        finally:
            stop.set()
            await asyncio.gather(*tasks, return_exceptions=True)
