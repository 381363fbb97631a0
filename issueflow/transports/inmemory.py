"""In-memory transport for testing."""

from __future__ import annotations

import asyncio
import json
from collections import defaultdict, deque
from typing import Any, AsyncIterator, Deque, Dict, List, Optional

from ..contracts import WireModel
from .base import BaseTransport, expired


class InMemoryTransport(BaseTransport):
    """Simple in-process queues for unit tests."""

    def __init__(self) -> None:
        self._lists: Dict[str, List[str]] = defaultdict(list)
        self._channels: Dict[str, Deque[str]] = defaultdict(deque)
        self._lock = asyncio.Lock()

    async def push(self, queue: str, record: WireModel) -> None:
        async with self._lock:
            self._lists[queue].append(record.to_json())

    async def publish(self, channel: str, record: WireModel) -> None:
        await self.inject(channel, record.to_json())

    async def inject(self, channel: str, raw: str) -> None:
        """Deliver a raw payload as if another service had published it."""
        async with self._lock:
            self._channels[channel].append(raw)

    def pushed(self, queue: str) -> List[Dict[str, Any]]:
        """Decoded records pushed onto ``queue`` so far."""
        return [json.loads(raw) for raw in self._lists[queue]]

    def published(self, channel: str) -> List[Dict[str, Any]]:
        """Decoded records still waiting on ``channel``."""
        return [json.loads(raw) for raw in self._channels[channel]]

    async def subscribe(
        self,
        channel: str,
        stop: Optional[asyncio.Event] = None,
        lifespan: Optional[float] = None,
    ) -> AsyncIterator[str]:
        """Subscribe to messages from channel."""
        start_time = asyncio.get_running_loop().time() if lifespan else None

        while not (stop and stop.is_set()) and not expired(start_time, lifespan):
            async with self._lock:
                raw = self._channels[channel].popleft() if self._channels[channel] else None
            if raw is not None:
                yield raw
                continue

            await asyncio.sleep(0.01)
