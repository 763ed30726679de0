"""SQLAlchemy ORM models for the URL shortener application.

Data Model Layout
=================
::
    urls table
    ├─ id (BIGSERIAL PRIMARY KEY)
    ├─ short_code (VARCHAR(20) UNIQUE, INDEXED)
    ├─ original_url (TEXT NOT NULL)
    ├─ expires_at (TIMESTAMPTZ NULL)
    ├─ is_active (BOOLEAN DEFAULT TRUE)
    ├─ clicks (BIGINT DEFAULT 0)
    ├─ created_at (TIMESTAMPTZ)
    └─ updated_at (TIMESTAMPTZ)

Key Behaviours
===============
- short_code is unique, so a duplicate insert surfaces as an IntegrityError.
- Expiration is evaluated lazily on read through ``URL.is_expired()``;
  nothing deletes expired rows.
- Only rows with is_active = TRUE are served.

Classes:
    URL:  A shortened URL mapping.
"""

import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from shortener.config import SHORT_CODE_COLUMN_LENGTH
from shortener.database import Base

__all__ = ["URL", "utcnow"]


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class URL(Base):
    __tablename__ = "urls"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    short_code: Mapped[str] = mapped_column(String(SHORT_CODE_COLUMN_LENGTH), unique=True, index=True, nullable=False)
    original_url: Mapped[str] = mapped_column(Text, nullable=False)
    expires_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    clicks: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    def is_expired(self, now: datetime.datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or utcnow()) > self.expires_at

    def __repr__(self) -> str:
        return f"<URL(id={self.id}, short_code='{self.short_code}', expires_at={self.expires_at})>"
