"""Queue transports and the factory that picks one from configuration."""

from __future__ import annotations

from typing import Optional

from ..config import IssueflowConfig, load_config
from .base import BaseTransport
from .inmemory import InMemoryTransport


def _redis_transport(config: IssueflowConfig) -> BaseTransport:
    from .redis import RedisTransport

    return RedisTransport(
        host=config.redis.host,
        port=config.redis.port,
        db=config.redis.db,
        password=config.redis.password,
    )


def get_transport(
    backend: Optional[str] = None, config: Optional[IssueflowConfig] = None
) -> BaseTransport:
    """Build the transport named by ``backend``, or by ``config.transport``.

    ``ISSUEFLOW_TRANSPORT`` is already folded into ``config.transport`` by
    :func:`load_config`.

    Raises:
        ValueError: For an unknown backend name.
    """
    config = config or load_config()
    name = (backend or config.transport).lower()
    if name == "inmemory":
        return InMemoryTransport()
    if name == "redis":
        return _redis_transport(config)
    raise ValueError(f"Unsupported transport backend: {name}")


__all__ = ["BaseTransport", "InMemoryTransport", "get_transport"]
