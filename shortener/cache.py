"""Redis-backed cache of URL records.

Values are ``CachedURLPayload`` JSON stored under ``url:{short_code}`` with a
TTL that is independent of the URL's own expiration.

Key Behaviours
===============
- ``get`` returns ``None`` for a missing key; that is a miss, not an error.
- Connectivity failures, timeouts and unreadable payloads raise
  ``CacheUnavailableError``. Whether that is fatal is the caller's choice.

Classes:
    CacheRepository:  Protocol consumed by the service layer.
    RedisCacheRepository:  redis.asyncio implementation.
"""

import asyncio
from typing import Optional, Protocol

import redis.asyncio as redis
from pydantic import ValidationError
from redis.exceptions import RedisError

from shortener.exceptions import CacheUnavailableError
from shortener.metrics import CACHE_ERRORS_TOTAL, CACHE_HITS_TOTAL, CACHE_MISSES_TOTAL
from shortener.models import URL
from shortener.schemas import CachedURLPayload

__all__ = ["CacheRepository", "RedisCacheRepository", "cache_key"]

URL_CACHE_PREFIX = "url:"


def cache_key(short_code: str) -> str:
    return f"{URL_CACHE_PREFIX}{short_code}"


class CacheRepository(Protocol):
    async def get(self, short_code: str) -> Optional[URL]: ...

    async def set(self, url: URL, ttl: int) -> None: ...

    async def delete(self, short_code: str) -> None: ...


class RedisCacheRepository:
    def __init__(self, client: redis.Redis, default_ttl: int, timeout: Optional[float] = None):
        self._client = client
        self._default_ttl = default_ttl
        self._timeout = timeout

    async def get(self, short_code: str) -> Optional[URL]:
        try:
            async with asyncio.timeout(self._timeout):
                data = await self._client.get(cache_key(short_code))
        except (RedisError, TimeoutError) as exc:
            CACHE_ERRORS_TOTAL.labels(operation="get").inc()
            raise CacheUnavailableError(f"Cache get failed for '{short_code}': {exc}") from exc

        if data is None:
            CACHE_MISSES_TOTAL.labels(operation="get").inc()
            return None

        try:
            payload = CachedURLPayload.model_validate_json(data)
        except ValidationError as exc:
            CACHE_ERRORS_TOTAL.labels(operation="get").inc()
            raise CacheUnavailableError(f"Corrupt cache entry for '{short_code}'") from exc

        CACHE_HITS_TOTAL.labels(operation="get").inc()
        return URL(**payload.model_dump())

    async def set(self, url: URL, ttl: Optional[int] = None) -> None:
        """Store ``url`` for ``ttl`` seconds, falling back to the default TTL."""
        payload = CachedURLPayload.model_validate(url)
        try:
            async with asyncio.timeout(self._timeout):
                await self._client.set(
                    cache_key(url.short_code),
                    payload.model_dump_json(),
                    ex=ttl or self._default_ttl,
                )
        except (RedisError, TimeoutError) as exc:
            CACHE_ERRORS_TOTAL.labels(operation="set").inc()
            raise CacheUnavailableError(f"Cache set failed for '{url.short_code}': {exc}") from exc

    async def delete(self, short_code: str) -> None:
        try:
            async with asyncio.timeout(self._timeout):
                await self._client.delete(cache_key(short_code))
        except (RedisError, TimeoutError) as exc:
            CACHE_ERRORS_TOTAL.labels(operation="delete").inc()
            raise CacheUnavailableError(f"Cache delete failed for '{short_code}': {exc}") from exc
