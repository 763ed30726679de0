"""Redis client management for the URL shortener.

This module provides a lazily created, process-wide Redis client for the
URL cache.

How to Use
===========
**Step 1 — Get the client**::
    client = await get_redis()
    cache = RedisCacheRepository(client, settings.CACHE_TTL_SECONDS)

**Step 2 — Cleanup on shutdown**::
    await close_redis()

Key Behaviours
===============
- Redis client is created lazily on first access.
- Global client is reused across all requests.
- UTF-8 encoding with decode_responses for string operations.
- Socket timeouts follow STORE_TIMEOUT_SECONDS.

Functions:
    get_redis():  Return the shared client.
    close_redis():  Cleanup function for shutdown.
"""

import redis.asyncio as redis

from shortener.config import get_settings

__all__ = ["close_redis", "get_redis"]

redis_client: redis.Redis | None = None


async def get_redis() -> redis.Redis:
    global redis_client
    if redis_client is None:
        settings = get_settings()
        redis_client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=settings.STORE_TIMEOUT_SECONDS,
            socket_connect_timeout=settings.STORE_TIMEOUT_SECONDS,
        )
    return redis_client


async def close_redis() -> None:
    global redis_client
    if redis_client is not None:
        await redis_client.aclose()
        redis_client = None
