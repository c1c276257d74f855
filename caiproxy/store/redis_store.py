"""Redis-backed store (works with any redis:// or rediss:// endpoint)."""

from __future__ import annotations

import logging
from typing import Any, Optional

import redis.asyncio as redis

from .base import KeyValueStore

logger = logging.getLogger("caiproxy.store")


class RedisStore(KeyValueStore):
    """Store keys in Redis with ``SETEX`` so Redis enforces expiry."""

    backend_name = "redis"

    def __init__(self, client: Any) -> None:
        self.client = client

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        socket_timeout: Optional[float] = 5.0,
    ) -> "RedisStore":
        client = redis.from_url(
            url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=socket_timeout,
            socket_timeout=socket_timeout,
        )
        logger.info("Redis store configured for %s", url.split("@")[-1])
        return cls(client)

    async def get(self, key: str) -> Optional[str]:
        value = await self.client.get(key)
        if value is None:
            return None
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return str(value)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self.client.setex(key, int(ttl_seconds), value)

    async def close(self) -> None:
        await self.client.aclose()
