"""Shared redis.asyncio client. Holds the session revocation list."""

from __future__ import annotations

from typing import Optional

import redis.asyncio as redis

from scheduler.core.config import get_settings

_client: Optional[redis.Redis] = None


async def get_redis() -> redis.Redis:
    """Created on first use; connections are opened lazily by the pool."""
    global _client
    if _client is None:
        _client = redis.Redis.from_url(
            get_settings().redis_url,
            decode_responses=True,
            socket_timeout=5,
            health_check_interval=30,
        )
    return _client


async def close_redis() -> None:
    global _client
    client, _client = _client, None
    if client is not None:
        await client.aclose()
