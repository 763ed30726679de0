"""FastAPI application entry point for the URL shortener service.

Application Lifecycle Diagram
===========================
::
    ┌─────────────┐
    │  uvicorn    │
    │  startup    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ lifespan()  │
    │ init_db()   │
    │ service     │
    │ manager     │  invalid MACHINE_ID ──▶ startup aborts
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Serve HTTP  │
    │ requests    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ lifespan()  │
    │ shutdown:   │
    │ close_db()  │
    │ close_redis()│
    └─────────────┘

How to Use
===========
**Run with uvicorn**::
    uvicorn shortener.main:app --host 0.0.0.0 --port 8080

**Shorten a URL**::
    curl -X POST http://localhost:8080/api/v1/urls \
         -H "Content-Type: application/json" \
         -d '{"original_url": "https://example.com", "expires_in": 3600}'

Key Behaviours
===============
- Database tables are created automatically on startup.
- A generator configuration error prevents the service from starting.
- Prometheus metrics are exposed at /metrics.
"""

__all__ = ["app"]

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator

from shortener.config import get_settings
from shortener.database import close_db, init_db
from shortener.dependencies import _service_manager
from shortener.exceptions import InvalidMachineIdError
from shortener.redis import close_redis
from shortener.routes import router

settings = get_settings()
logger = logging.getLogger("urlshortener")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    try:
        await _service_manager.initialize()
    except InvalidMachineIdError as exc:
        logger.critical(f"Failed to initialize key generator: {exc}")
        raise
    await init_db()
    yield
    # Shutdown
    await _service_manager.cleanup()
    await close_db()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description="Snowflake-based URL shortener API",
    lifespan=lifespan,
)

Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=False,
    should_respect_env_var=False,
).instrument(app).expose(app)

app.include_router(router)
