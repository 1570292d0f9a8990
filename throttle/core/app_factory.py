from __future__ import annotations

"""Application factory for the FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers and the
background limiter sweep) so tests can build isolated instances.
"""

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from throttle.api.routes import data_router, health_router, limits_router
from throttle.core.config import settings
from throttle.core.exception_handlers import setup_exception_handlers
from throttle.core.logging import configure_logging
from throttle.core.middleware import request_id_middleware
from throttle.core.openapi import apply_openapi_customizations
from throttle.core.rate_limit import get_limiter_registry

logger = logging.getLogger(__name__)


async def sweep_limiters_periodically(interval_seconds: float) -> None:
    """Purge expired keys from every limiter until cancelled."""

    while True:
        await asyncio.sleep(interval_seconds)
        removed = get_limiter_registry().sweep_all()
        if removed:
            logger.info("rate_limit.background_sweep", extra={"removed_keys": removed})


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    interval = settings.rate_limit.sweep_interval_seconds
    task: asyncio.Task | None = None
    if settings.rate_limit.enabled and interval > 0:
        task = asyncio.create_task(sweep_limiters_periodically(interval))

    logger.info(
        "app.startup",
        extra={
            "app_env": settings.app_env,
            "rate_limit_enabled": settings.rate_limit.enabled,
            "rate_limit_algorithm": settings.rate_limit.algorithm,
            "sweep_interval_s": interval,
        },
    )
    try:
        yield
    finally:
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Throttle API",
        description=(
            "Demo API gateway guarded by per-key sliding-window rate limiting. "
            "Every /v1 route is throttled per client IP; individual endpoints "
            "add their own quota keyed by IP or by API key. Rejected requests "
            "receive 429 with Retry-After and X-RateLimit-* headers."
        ),
        version="0.1.0",
        debug=settings.app.debug,
        lifespan=lifespan,
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
    )

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(data_router, prefix="/v1")
    app.include_router(limits_router, prefix="/v1")
    app.include_router(health_router)

    # OpenAPI customizations (security scheme, tags, exemptions)
    apply_openapi_customizations(app)

    return app
