"""Dependency injection with a singleton service manager.

Process-wide resources (settings, logger, Redis client, Snowflake generator)
live on the ``ServiceManager`` singleton; only the database session is
created per request.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

import redis.asyncio as redis
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from shortener.cache import RedisCacheRepository
from shortener.config import Settings, get_settings
from shortener.database import get_db
from shortener.keygen import SnowflakeGenerator
from shortener.redis import get_redis
from shortener.repositories import PostgresURLRepository
from shortener.service import URLCreationService, URLLookupService


# ============================================================================
# SINGLETON SERVICE MANAGER
# ============================================================================


class ServiceManager:
    """Singleton service manager for shared resources."""

    _instance: Optional["ServiceManager"] = None
    _initialized: bool = False

    def __new__(cls) -> "ServiceManager":
        """Implement singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    async def initialize(self) -> None:
        """Initialize shared resources once at startup.

        Raises:
            InvalidMachineIdError: If MACHINE_ID is out of range; startup must abort.
        """
        if not self._initialized:
            self.settings = get_settings()
            self.logger = self._setup_logger()
            self.generator = self._setup_generator()
            self.cache_client = await get_redis()
            self._initialized = True
            self.logger.info(f"Service manager initialized with machine ID {self.generator.machine_id}")

    def _setup_logger(self) -> logging.Logger:
        """Setup logger once."""
        logger = logging.getLogger("urlshortener")
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            handler.setFormatter(formatter)
            logger.addHandler(handler)
        logger.setLevel(self.settings.LOG_LEVEL.upper())
        return logger

    def _setup_generator(self) -> SnowflakeGenerator:
        """Build the Snowflake generator from settings."""
        return SnowflakeGenerator(
            machine_id=self.settings.MACHINE_ID,
            min_length=self.settings.URL_MIN_CODE_LENGTH,
            max_length=self.settings.URL_MAX_CODE_LENGTH,
            epoch=self.settings.SNOWFLAKE_EPOCH_MS,
            max_clock_wait=self.settings.SNOWFLAKE_MAX_CLOCK_WAIT_SECONDS,
        )

    async def cleanup(self) -> None:
        """Release shared resources at shutdown."""
        self._initialized = False


# Global singleton instance
_service_manager = ServiceManager()


# ============================================================================
# REQUEST CONTEXT
# ============================================================================


@dataclass
class RequestContext:
    """Per-request context with tracking information and shared resources.

    Attributes:
        database: Async database session (only per-request resource)
        service_manager: Singleton service manager with shared resources
        request_id: Unique identifier for this request
        user_agent: Client user agent string
        client_ip: Client IP address
        start_time: Request start timestamp
    """

    database: AsyncSession
    service_manager: ServiceManager
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    user_agent: Optional[str] = None
    client_ip: Optional[str] = None
    start_time: float = field(default_factory=lambda: time.time())

    @property
    def settings(self) -> Settings:
        return self.service_manager.settings

    @property
    def cache_client(self) -> redis.Redis:
        return self.service_manager.cache_client

    @property
    def generator(self) -> SnowflakeGenerator:
        return self.service_manager.generator

    @property
    def logger(self) -> logging.LoggerAdapter:
        """Get shared logger with request context."""
        return logging.LoggerAdapter(
            self.service_manager.logger,
            {
                "request_id": self.request_id,
                "client_ip": self.client_ip,
                "user_agent": self.user_agent,
            },
        )

    def get_duration(self) -> float:
        """Get request duration in milliseconds."""
        return (time.time() - self.start_time) * 1000

    def url_repository(self) -> PostgresURLRepository:
        return PostgresURLRepository(self.database, timeout=self.settings.STORE_TIMEOUT_SECONDS)

    def cache_repository(self) -> RedisCacheRepository:
        return RedisCacheRepository(
            self.cache_client,
            default_ttl=self.settings.CACHE_TTL_SECONDS,
            timeout=self.settings.STORE_TIMEOUT_SECONDS,
        )


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


async def get_service_manager() -> ServiceManager:
    if not _service_manager._initialized:
        await _service_manager.initialize()
    return _service_manager


async def get_request_context(
    request: Request,
    db: AsyncSession = Depends(get_db),
    manager: ServiceManager = Depends(get_service_manager),
) -> RequestContext:
    return RequestContext(
        database=db,
        service_manager=manager,
        request_id=request.headers.get("x-request-id") or str(uuid.uuid4()),
        user_agent=request.headers.get("user-agent"),
        client_ip=request.client.host if request.client else None,
    )


def get_creation_service(ctx: RequestContext = Depends(get_request_context)) -> URLCreationService:
    return URLCreationService(
        repository=ctx.url_repository(),
        cache=ctx.cache_repository(),
        generator=ctx.generator,
        settings=ctx.settings,
        logger=ctx.logger,
    )


def get_lookup_service(ctx: RequestContext = Depends(get_request_context)) -> URLLookupService:
    return URLLookupService(
        repository=ctx.url_repository(),
        cache=ctx.cache_repository(),
        settings=ctx.settings,
        logger=ctx.logger,
    )
