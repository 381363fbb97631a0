"""Base transport interface for issueflow messaging."""

from __future__ import annotations

import abc
import asyncio
from typing import AsyncIterator, Optional

from ..contracts import WireModel


class BaseTransport(metaclass=abc.ABCMeta):
    """Abstract queue transport.

    Inbound traffic arrives on pub/sub channels; outbound records are either
    pushed onto lists (work queues, status and reaction relays) or published
    on a channel (cleanup signals).
    """

    async def connect(self) -> None:
        """Open connection to broker (no-op by default)."""
        pass

    async def disconnect(self) -> None:
        """Close connection to broker (no-op by default)."""
        pass

    @abc.abstractmethod
    async def push(self, queue: str, record: WireModel) -> None:
        """Append a record to a list consumed by another service."""
        raise NotImplementedError

    @abc.abstractmethod
    async def publish(self, channel: str, record: WireModel) -> None:
        """Broadcast a record on a pub/sub channel."""
        raise NotImplementedError

    @abc.abstractmethod
    def subscribe(
        self,
        channel: str,
        stop: Optional[asyncio.Event] = None,
        lifespan: Optional[float] = None,
    ) -> AsyncIterator[str]:
        """Yield raw payloads received on ``channel`` in arrival order.

        Args:
            channel: The channel to subscribe to
            stop: Ends the subscription before the next receive once set.
            lifespan: Maximum time in seconds to keep connection open. If None, runs indefinitely.
        """
        raise NotImplementedError


def expired(start_time: Optional[float], lifespan: Optional[float]) -> bool:
    if not lifespan or start_time is None:
        return False
    return asyncio.get_running_loop().time() - start_time >= lifespan
