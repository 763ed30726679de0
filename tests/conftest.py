"""Shared pytest fixtures: in-memory stores, settings and an HTTP client."""

import logging
from typing import AsyncGenerator, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from shortener.config import Settings
from shortener.dependencies import get_creation_service, get_lookup_service, get_request_context
from shortener.exceptions import AlreadyExistsError, CacheUnavailableError
from shortener.keygen import SnowflakeGenerator
from shortener.main import app
from shortener.models import URL, utcnow
from shortener.schemas import CachedURLPayload
from shortener.service import URLCreationService, URLLookupService


class InMemoryURLRepository:
    """Durable store double enforcing short_code uniqueness."""

    def __init__(self) -> None:
        self.rows: dict[str, URL] = {}
        self.lookups = 0
        self._next_id = 1

    async def create(self, url: URL) -> URL:
        if url.short_code in self.rows:
            raise AlreadyExistsError(url.short_code)
        now = utcnow()
        url.id = self._next_id
        url.created_at = now
        url.updated_at = now
        url.is_active = True
        self._next_id += 1
        self.rows[url.short_code] = url
        return url

    async def get_by_code(self, short_code: str) -> Optional[URL]:
        self.lookups += 1
        url = self.rows.get(short_code)
        if url is None or not url.is_active:
            return None
        return url


class InMemoryCache:
    """Cache store double that round-trips records through the Redis payload schema."""

    def __init__(self) -> None:
        self.entries: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.fail_get = False
        self.fail_set = False
        self.fail_delete = False

    async def get(self, short_code: str) -> Optional[URL]:
        if self.fail_get:
            raise CacheUnavailableError("connection refused")
        data = self.entries.get(short_code)
        if data is None:
            return None
        return URL(**CachedURLPayload.model_validate_json(data).model_dump())

    async def set(self, url: URL, ttl: int) -> None:
        if self.fail_set:
            raise CacheUnavailableError("connection refused")
        self.entries[url.short_code] = CachedURLPayload.model_validate(url).model_dump_json()
        self.ttls[url.short_code] = ttl

    async def delete(self, short_code: str) -> None:
        if self.fail_delete:
            raise CacheUnavailableError("connection refused")
        self.entries.pop(short_code, None)
        self.ttls.pop(short_code, None)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        BASE_URL="https://sho.rt/",
        MACHINE_ID=7,
        URL_MIN_CODE_LENGTH=6,
        URL_MAX_CODE_LENGTH=10,
        URL_ALLOW_CUSTOM=True,
        URL_DEFAULT_TTL_SECONDS=3600,
        URL_MAX_TTL_SECONDS=5,
        CACHE_TTL_SECONDS=86400,
    )


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("urlshortener.tests")


@pytest.fixture
def generator(settings: Settings) -> SnowflakeGenerator:
    return SnowflakeGenerator(
        machine_id=settings.MACHINE_ID,
        min_length=settings.URL_MIN_CODE_LENGTH,
        max_length=settings.URL_MAX_CODE_LENGTH,
    )


@pytest.fixture
def repository() -> InMemoryURLRepository:
    return InMemoryURLRepository()


@pytest.fixture
def cache() -> InMemoryCache:
    return InMemoryCache()


@pytest.fixture
def creation_service(repository, cache, generator, settings, logger) -> URLCreationService:
    return URLCreationService(repository, cache, generator, settings, logger)


@pytest.fixture
def lookup_service(repository, cache, settings, logger) -> URLLookupService:
    return URLLookupService(repository, cache, settings, logger)


@pytest.fixture
def request_context(settings: Settings, logger: logging.Logger) -> MagicMock:
    ctx = MagicMock()
    ctx.settings = settings
    ctx.logger = logger
    ctx.get_duration.return_value = 0.0
    ctx.database = AsyncMock()
    ctx.cache_client = AsyncMock()
    return ctx


@pytest_asyncio.fixture
async def client(request_context, creation_service, lookup_service) -> AsyncGenerator[AsyncClient, None]:
    app.dependency_overrides[get_request_context] = lambda: request_context
    app.dependency_overrides[get_creation_service] = lambda: creation_service
    app.dependency_overrides[get_lookup_service] = lambda: lookup_service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
