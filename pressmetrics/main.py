from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from pressmetrics.api.admin import router as admin_router
from pressmetrics.api.dispatch import MetricsDispatchMiddleware, error_response
from pressmetrics.api.health import router as health_router
from pressmetrics.api.metrics_endpoint import router as metrics_router
from pressmetrics.core.config import SETTINGS
from pressmetrics.core.errors import AuthError, CredentialError, RateLimitError
from pressmetrics.core.logging import setup_logging
from pressmetrics.db.engine import engine, lifespan_db
from pressmetrics.db.redis import lifespan_redis, redis_pool
from pressmetrics.host.provider import build_host
from pressmetrics.middleware.metrics import MetricsMiddleware
from pressmetrics.middleware.request_context import RequestContextMiddleware
from pressmetrics.services.cache import RedisTransientStore
from pressmetrics.services.exporter import Exporter, build_exporter
from pressmetrics.services.option_store import RedisOptionStore

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


def default_exporter() -> Exporter:
    """Exporter wired to the configured Redis, database and host snapshot."""
    return build_exporter(
        SETTINGS,
        build_host(SETTINGS, engine=engine),
        transient=RedisTransientStore(redis_pool) if redis_pool is not None else None,
        options=RedisOptionStore(redis_pool) if redis_pool is not None else None,
    )


async def _exporter_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    return error_response(exc)  # type: ignore[arg-type]


def create_app(exporter: Exporter) -> FastAPI:
    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
        # Nested so teardown runs in reverse order even if one fails.
        async with lifespan_db():
            async with lifespan_redis():
                # Scrapers need credentials before the first request.
                await exporter.credentials.ensure_tokens()
                yield

    app = FastAPI(
        title="pressmetrics",
        lifespan=lifespan,
        docs_url="/docs" if exporter.settings.is_dev else None,
        redoc_url="/redoc" if exporter.settings.is_dev else None,
    )
    app.state.exporter = exporter

    # Middleware execution order: last-added runs first (outermost layer).
    # RequestContext (outermost) → Metrics → MetricsDispatch → route handler
    app.add_middleware(MetricsDispatchMiddleware)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestContextMiddleware)

    for exc_class in (AuthError, RateLimitError, CredentialError):
        app.add_exception_handler(exc_class, _exporter_error_handler)

    app.include_router(metrics_router)
    app.include_router(admin_router)
    app.include_router(health_router)
    return app


app = create_app(default_exporter())

logger.info(
    "pressmetrics started  env=%s log_level=%s port=%d site=%s prefix=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    SETTINGS.site_name,
    SETTINGS.metric_prefix,
)
