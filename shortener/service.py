"""Business logic layer for URL creation and resolution.

Flow Diagram — URL Creation
===========================
::
    ┌─────────────┐
    │ URLCreate   │
    └──────┬──────┘
           ▼
    custom alias allowed? ── YES ──▶ validate format (no existence check)
           │ NO
           ▼
    ┌─────────────┐
    │ Snowflake   │
    │ generate()  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ expires_at  │  min(expires_in, max_ttl) / default_ttl / never
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ PostgreSQL  │  duplicate ──▶ AlreadyExistsError
    │ insert      │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Redis set   │  failure ──▶ CacheUnavailableError (propagated)
    └──────┬──────┘
           ▼
    CreateURLResponse

Flow Diagram — URL Resolution
=============================
::
    ┌─────────────┐
    │ Redis get   │  error ──▶ log, treat as miss
    └──────┬──────┘
    HIT?  │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  expired? ── YES ──▶ evict, URLExpiredError
│ Postgres│      │ NO
│ (active)│      ▼
└────┬────┘  return (no DB access)
     ▼
  None ──▶ URLNotFoundError
  expired ──▶ URLExpiredError
  valid ──▶ Redis set (best effort) ──▶ return

Key Behaviours
===============
- A record is never returned past its expiration instant, on either path.
- Cache failures are absorbed on the read path and surfaced on the write path.
- Custom aliases rely solely on the unique constraint for collisions.
- Id generation runs in a worker thread and is cancelled with its task.

Classes:
    URLCreationService:  Write path.
    URLLookupService:  Read path.
"""

import asyncio
import datetime
import logging
import threading
import time
from typing import Optional, Union

from shortener.cache import CacheRepository
from shortener.config import Settings
from shortener.enums import CacheStatus, RequestStatus
from shortener.exceptions import (
    AlreadyExistsError,
    CacheUnavailableError,
    InvalidShortCodeError,
    URLExpiredError,
    URLNotFoundError,
)
from shortener.keygen import SnowflakeGenerator
from shortener.metrics import URL_CREATION_REQUESTS_TOTAL, URL_LOOKUP_DURATION, URL_LOOKUP_REQUESTS_TOTAL
from shortener.models import URL, utcnow
from shortener.repositories import URLRepository
from shortener.schemas import CreateURLResponse, URLCreate

__all__ = ["URLCreationService", "URLLookupService", "compute_expiration"]

Logger = Union[logging.Logger, logging.LoggerAdapter]


def compute_expiration(
    expires_in: Optional[int],
    default_ttl: int,
    max_ttl: int,
    now: Optional[datetime.datetime] = None,
) -> Optional[datetime.datetime]:
    """Return the expiration instant for a new record, or None for "never".

    Args:
        expires_in: Requested lifetime in seconds; zero or less is ignored.
        default_ttl: Lifetime applied when none is requested; 0 disables it.
        max_ttl: Upper clamp for a requested lifetime; 0 disables it.
        now: Reference instant, defaults to the current UTC time.
    """
    now = now or utcnow()
    if expires_in is not None and expires_in > 0:
        lifetime = expires_in
        if max_ttl > 0 and lifetime > max_ttl:
            lifetime = max_ttl
        return now + datetime.timedelta(seconds=lifetime)
    if default_ttl > 0:
        return now + datetime.timedelta(seconds=default_ttl)
    return None


class URLCreationService:
    """Allocates a short code and persists a new URL mapping.

    Args:
        repository: Durable store.
        cache: Cache store, populated write-through.
        generator: Snowflake short code generator.
        settings: Lifetimes, cache TTL, custom alias policy and base URL.
        logger: Logger or request-scoped adapter.
    """

    def __init__(
        self,
        repository: URLRepository,
        cache: CacheRepository,
        generator: SnowflakeGenerator,
        settings: Settings,
        logger: Logger,
    ):
        self._repository = repository
        self._cache = cache
        self._generator = generator
        self._settings = settings
        self._logger = logger
        self._base_url = settings.BASE_URL.rstrip("/")

    async def create(self, request: URLCreate) -> CreateURLResponse:
        """Create a short URL.

        Raises:
            InvalidShortCodeError: If the custom alias is malformed.
            AlreadyExistsError: If the short code is already stored.
            CacheUnavailableError: If the new record could not be cached.
        """
        try:
            short_code = await self._allocate_short_code(request)
            expires_at = compute_expiration(
                request.expires_in,
                self._settings.URL_DEFAULT_TTL_SECONDS,
                self._settings.URL_MAX_TTL_SECONDS,
            )

            url = URL(
                short_code=short_code,
                original_url=request.original_url,
                expires_at=expires_at,
                is_active=True,
                clicks=0,
            )
            url = await self._repository.create(url)
            # Write-through: a failure here fails the request.
            await self._cache.set(url, self._settings.CACHE_TTL_SECONDS)

        except CacheUnavailableError as exc:
            URL_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.ERROR).inc()
            self._logger.error(f"Failed to cache new URL: {exc}")
            raise
        except InvalidShortCodeError as exc:
            URL_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.VALIDATION_ERROR).inc()
            self._logger.warning(f"URL creation rejected: {exc}")
            raise
        except AlreadyExistsError as exc:
            URL_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.CONFLICT).inc()
            self._logger.warning(f"URL creation conflict: {exc}")
            raise
        except Exception as exc:
            URL_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.ERROR).inc()
            self._logger.error(f"URL creation error: {exc}")
            raise

        URL_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
        self._logger.info(f"URL created successfully: {short_code} -> {request.original_url}")

        return CreateURLResponse(
            short_code=short_code,
            short_url=f"{self._base_url}/{short_code}",
            original_url=url.original_url,
            expires_at=url.expires_at,
            created_at=url.created_at,
        )

    async def _allocate_short_code(self, request: URLCreate) -> str:
        if request.custom_alias:
            if self._settings.URL_ALLOW_CUSTOM:
                return self._generator.validate_custom_code(request.custom_alias)
            self._logger.info("Custom aliases are disabled, generating a short code instead")

        cancel = threading.Event()
        try:
            return await asyncio.to_thread(self._generator.generate, cancel)
        except asyncio.CancelledError:
            cancel.set()
            raise


class URLLookupService:
    """Resolves short codes through the cache, falling back to the database.

    Args:
        repository: Durable store, the source of truth for expiration.
        cache: Cache store, checked first and populated on a miss.
        settings: Provides the cache TTL.
        logger: Logger or request-scoped adapter.
    """

    def __init__(self, repository: URLRepository, cache: CacheRepository, settings: Settings, logger: Logger):
        self._repository = repository
        self._cache = cache
        self._settings = settings
        self._logger = logger

    async def resolve(self, short_code: str) -> URL:
        """Return the live URL record for ``short_code``.

        Raises:
            URLNotFoundError: If no active record exists.
            URLExpiredError: If the record is past its expiration instant.
        """
        start_time = time.perf_counter()

        try:
            cached = await self._cache.get(short_code)
        except CacheUnavailableError as exc:
            self._logger.warning(f"Cache unavailable for {short_code}, falling back to database: {exc}")
            cached = None

        if cached is not None:
            if cached.is_expired():
                await self._evict(short_code)
                self._record(RequestStatus.EXPIRED, CacheStatus.HIT, start_time)
                raise URLExpiredError(short_code)
            self._record(RequestStatus.SUCCESS, CacheStatus.HIT, start_time)
            self._logger.debug(f"Cache hit for {short_code}")
            return cached

        self._logger.debug(f"Cache miss for {short_code}")
        try:
            url = await self._repository.get_by_code(short_code)
        except Exception:
            self._record(RequestStatus.ERROR, CacheStatus.MISS, start_time)
            raise

        if url is None:
            self._record(RequestStatus.NOT_FOUND, CacheStatus.MISS, start_time)
            raise URLNotFoundError(short_code)
        if url.is_expired():
            self._record(RequestStatus.EXPIRED, CacheStatus.MISS, start_time)
            raise URLExpiredError(short_code)

        try:
            await self._cache.set(url, self._settings.CACHE_TTL_SECONDS)
        except CacheUnavailableError as exc:
            self._logger.warning(f"Failed to cache URL {short_code}: {exc}")

        self._record(RequestStatus.SUCCESS, CacheStatus.MISS, start_time)
        return url

    async def _evict(self, short_code: str) -> None:
        try:
            await self._cache.delete(short_code)
        except CacheUnavailableError as exc:
            self._logger.warning(f"Failed to evict expired URL {short_code}: {exc}")

    def _record(self, status: RequestStatus, cache_hit: CacheStatus, start_time: float) -> None:
        URL_LOOKUP_DURATION.observe(time.perf_counter() - start_time)
        URL_LOOKUP_REQUESTS_TOTAL.labels(status=status, cache_hit=cache_hit).inc()
