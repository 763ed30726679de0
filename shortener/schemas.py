"""Pydantic schemas for request/response validation in the URL shortener.

Schema Hierarchy
=================
::
    URLCreate (Input)
    ├─ original_url: str (validated URL)
    ├─ custom_alias: str | None
    └─ expires_in: int | None (seconds)

    CreateURLResponse (Output)
    ├─ short_code: str
    ├─ short_url: str
    ├─ original_url: str
    ├─ expires_at: datetime | None
    └─ created_at: datetime

    CachedURLPayload (Redis value)
    └─ every URL column, verbatim

    HealthResponse / ErrorResponse (Output)

Key Behaviours
===============
- URL validation uses the validators library for RFC compliance.
- Custom alias format is checked by the key generator, whose pattern
  follows the configured code length range.
- expires_in of zero or less means "not requested"; values above
  MAX_EXPIRES_IN_SECONDS are rejected with a 422.
- All datetime fields are timezone-aware.
"""

import datetime

import validators
from pydantic import BaseModel, Field, field_validator

from shortener.enums import HealthStatus

MAX_EXPIRES_IN_SECONDS = 60 * 60 * 24 * 365 * 100  # 100 years

__all__ = [
    "URLCreate",
    "CreateURLResponse",
    "CachedURLPayload",
    "HealthResponse",
    "ErrorResponse",
]


class URLCreate(BaseModel):
    original_url: str
    custom_alias: str | None = None
    expires_in: int | None = Field(None, le=MAX_EXPIRES_IN_SECONDS, description="Requested lifetime in seconds")

    @field_validator("original_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not validators.url(v):
            raise ValueError("Invalid URL provided")
        return v


class CreateURLResponse(BaseModel):
    short_code: str
    short_url: str
    original_url: str
    expires_at: datetime.datetime | None = None
    created_at: datetime.datetime


class CachedURLPayload(BaseModel):
    """Redis cache payload for a shortened URL."""

    id: int | None = None
    short_code: str
    original_url: str
    expires_at: datetime.datetime | None = None
    is_active: bool = True
    clicks: int = 0
    created_at: datetime.datetime | None = None
    updated_at: datetime.datetime | None = None

    model_config = {"from_attributes": True}


class HealthResponse(BaseModel):
    status: HealthStatus
    database: HealthStatus
    cache: HealthStatus


class ErrorResponse(BaseModel):
    error: str
    message: str
