"""Durable storage of URL records in PostgreSQL.

Key Behaviours
===============
- ``create`` stamps ``created_at``/``updated_at`` and marks the row active.
- The unique constraint on ``short_code`` is the only collision guard; a
  duplicate insert raises ``AlreadyExistsError``.
- ``get_by_code`` only returns active rows. Expiration is left to the caller.
- Database errors other than the uniqueness violation propagate unchanged.

Classes:
    URLRepository:  Protocol consumed by the service layer.
    PostgresURLRepository:  SQLAlchemy async implementation.
"""

import asyncio
from typing import Optional, Protocol

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shortener.exceptions import AlreadyExistsError
from shortener.metrics import DATABASE_READS_TOTAL, DATABASE_WRITES_TOTAL
from shortener.models import URL, utcnow

__all__ = ["URLRepository", "PostgresURLRepository"]


class URLRepository(Protocol):
    async def create(self, url: URL) -> URL: ...

    async def get_by_code(self, short_code: str) -> Optional[URL]: ...


class PostgresURLRepository:
    def __init__(self, session: AsyncSession, timeout: Optional[float] = None):
        self._db = session
        self._timeout = timeout

    async def create(self, url: URL) -> URL:
        now = utcnow()
        url.created_at = now
        url.updated_at = now
        url.is_active = True
        if url.clicks is None:
            url.clicks = 0

        try:
            async with asyncio.timeout(self._timeout):
                self._db.add(url)
                await self._db.commit()
        except IntegrityError as exc:
            await self._db.rollback()
            raise AlreadyExistsError(url.short_code) from exc
        DATABASE_WRITES_TOTAL.inc()

        await self._db.refresh(url)
        return url

    async def get_by_code(self, short_code: str) -> Optional[URL]:
        async with asyncio.timeout(self._timeout):
            result = await self._db.execute(
                select(URL).where(URL.short_code == short_code, URL.is_active.is_(True))
            )
        DATABASE_READS_TOTAL.inc()
        return result.scalar_one_or_none()
