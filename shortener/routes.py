"""FastAPI route definitions for the URL shortener REST API.

API Endpoint Overview
=====================
::
    GET  /health
        └─ HealthResponse (200)

    POST /api/v1/urls
        ├─ URLCreate (request body)
        └─ CreateURLResponse (201) or 400/409/422/500

    GET  /:short_code
        └─ 301 Redirect or 404/410

Error Mapping
=============
::
    URLNotFoundError       → 404 not_found
    URLExpiredError        → 410 expired
    InvalidShortCodeError  → 400 invalid_short_code
    AlreadyExistsError     → 409 conflict
    anything else          → 500 internal_error

Endpoints:
    /health:  Health check for monitoring.
    /api/v1/urls:  Create new short URLs.
    /:code:  Redirect to original URL.
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import RedirectResponse
from sqlalchemy import text

from shortener.dependencies import RequestContext, get_creation_service, get_lookup_service, get_request_context
from shortener.enums import HealthStatus
from shortener.exceptions import (
    AlreadyExistsError,
    InvalidShortCodeError,
    ShortenerError,
    URLExpiredError,
    URLNotFoundError,
)
from shortener.schemas import CreateURLResponse, ErrorResponse, HealthResponse, URLCreate
from shortener.service import URLCreationService, URLLookupService

__all__ = ["router", "to_http_exception"]

router = APIRouter()

_ERROR_MAPPING: list[tuple[type[ShortenerError], int, str, str]] = [
    (URLNotFoundError, 404, "not_found", "URL not found"),
    (URLExpiredError, 410, "expired", "URL has expired"),
    (InvalidShortCodeError, 400, "invalid_short_code", "Invalid short code format"),
    (AlreadyExistsError, 409, "conflict", "Short code already exists"),
]


def _is_client_error(exc: Exception) -> bool:
    return isinstance(exc, ShortenerError) and exc.is_client_error


def to_http_exception(exc: Exception) -> HTTPException:
    for error_type, status_code, error, message in _ERROR_MAPPING:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=ErrorResponse(error=error, message=message).model_dump())
    return HTTPException(
        status_code=500,
        detail=ErrorResponse(error="internal_error", message="An internal error occurred").model_dump(),
    )


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(ctx: RequestContext = Depends(get_request_context)) -> HealthResponse:
    db_status = HealthStatus.HEALTHY
    cache_status = HealthStatus.HEALTHY

    try:
        await ctx.database.execute(text("SELECT 1"))
    except Exception as e:
        ctx.logger.error(f"Database health check failed: {e}")
        db_status = HealthStatus.UNHEALTHY

    try:
        await ctx.cache_client.ping()
    except Exception as e:
        ctx.logger.error(f"Cache health check failed: {e}")
        cache_status = HealthStatus.UNHEALTHY

    status = (
        HealthStatus.HEALTHY
        if db_status is HealthStatus.HEALTHY and cache_status is HealthStatus.HEALTHY
        else HealthStatus.UNHEALTHY
    )
    return HealthResponse(status=status, database=db_status, cache=cache_status)


@router.post("/api/v1/urls", response_model=CreateURLResponse, status_code=201, tags=["urls"])
async def create_url(
    payload: URLCreate,
    ctx: RequestContext = Depends(get_request_context),
    service: URLCreationService = Depends(get_creation_service),
) -> CreateURLResponse:
    ctx.logger.info(
        f"URL shortening requested: {payload.original_url}",
        extra={
            "operation": "create_url",
            "target_url": payload.original_url,
            "custom_alias": payload.custom_alias,
        },
    )

    try:
        response = await service.create(payload)
    except Exception as exc:
        if not _is_client_error(exc):
            ctx.logger.exception(f"URL shortening failed: {exc}")
        raise to_http_exception(exc) from exc

    ctx.logger.info(
        f"URL shortened successfully: {response.short_code}",
        extra={
            "operation": "create_url",
            "short_code": response.short_code,
            "duration_ms": ctx.get_duration(),
        },
    )
    return response


@router.get("/{short_code}", tags=["redirect"])
async def redirect_to_url(
    short_code: str,
    ctx: RequestContext = Depends(get_request_context),
    service: URLLookupService = Depends(get_lookup_service),
) -> RedirectResponse:
    try:
        url = await service.resolve(short_code)
    except Exception as exc:
        http_exc = to_http_exception(exc)
        if not _is_client_error(exc):
            ctx.logger.exception(f"Redirect failed for {short_code}: {exc}")
        else:
            ctx.logger.info(
                f"Redirect rejected for {short_code}: {exc}",
                extra={"operation": "redirect", "short_code": short_code, "duration_ms": ctx.get_duration()},
            )
        raise http_exc from exc

    ctx.logger.info(
        f"Redirect successful: {short_code} -> {url.original_url}",
        extra={
            "operation": "redirect",
            "short_code": short_code,
            "duration_ms": ctx.get_duration(),
        },
    )
    return RedirectResponse(url=url.original_url, status_code=301)
