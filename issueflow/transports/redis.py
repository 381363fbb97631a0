"""Redis transport: pub/sub for inbound channels, lists for outbound queues."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, Optional

import redis.asyncio as redis

from ..contracts import WireModel
from .base import BaseTransport, expired

logger = logging.getLogger(__name__)


class RedisTransport(BaseTransport):
    """Redis-based transport shared with the chat relay and the executor."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        password: Optional[str] = None,
    ) -> None:
        self.host = host
        self.port = port
        self.db = db
        self.password = password
        self._redis: Optional[Any] = None

    async def connect(self) -> None:
        """Connect to Redis."""
        if self._redis:
            return
        self._redis = redis.Redis(
            host=self.host,
            port=self.port,
            db=self.db,
            password=self.password,
            decode_responses=True,
        )
        # Test connection
        await self._redis.ping()

    async def disconnect(self) -> None:
        """Disconnect from Redis."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    async def push(self, queue: str, record: WireModel) -> None:
        """Append record to the tail of a Redis list."""
        if not self._redis:
            await self.connect()
        await self._redis.rpush(queue, record.to_json())

    async def publish(self, channel: str, record: WireModel) -> None:
        if not self._redis:
            await self.connect()
        await self._redis.publish(channel, record.to_json())

    async def subscribe(
        self,
        channel: str,
        stop: Optional[asyncio.Event] = None,
        lifespan: Optional[float] = None,
    ) -> AsyncIterator[str]:
        """Subscribe to a Redis pub/sub channel."""
        if not self._redis:
            await self.connect()

        pubsub = self._redis.pubsub()
        await pubsub.subscribe(channel)
        logger.info(f"Subscribed to Redis channel: {channel}")
        start_time = asyncio.get_running_loop().time() if lifespan else None

        try:
            while not (stop and stop.is_set()) and not expired(start_time, lifespan):
                # Wait up to a second so the stop signal is noticed promptly
                message = await pubsub.get_message(
                    ignore_subscribe_messages=True, timeout=1.0
                )
                if message is None or message.get("type") != "message":
                    continue
                yield message["data"]
        finally:
            await pubsub.unsubscribe(channel)
            await pubsub.aclose()
