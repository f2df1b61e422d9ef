"""FastAPI application initialization and configuration module.

Builds the credit query API: logging and tracing setup, exception
handlers, middleware, the public and administrative routers and the
operational ``/health`` and ``/info`` endpoints.

Middleware execute in reverse order of registration, so the last one
added sees the request first.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Annotated, Any, cast

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from src.api.constants import CORRELATION_ID_HEADER, CORS_MAX_AGE_SECONDS
from src.api.middleware.error_handler import register_exception_handlers
from src.api.middleware.request_context import RequestContextMiddleware
from src.api.middleware.request_logging import RequestLoggingMiddleware
from src.api.routes import admin, credits
from src.api.utils.responses import ORJSONResponse
from src.core.config import Settings, get_settings
from src.core.logging import setup_logging
from src.core.observability import instrument_app, setup_tracing
from src.infrastructure.database.session import (
    check_database_connection,
    close_database,
    get_engine,
)


@asynccontextmanager
async def lifespan(app_instance: FastAPI) -> AsyncGenerator[None]:
    """Verify the database on startup and release the pool on shutdown.

    Raises:
        RuntimeError: If database connection fails during startup.
    """
    is_healthy, error_msg = await check_database_connection()

    if is_healthy:
        logger.info("Database connection successful")
    else:
        logger.error("Database connection failed during startup: {}", error_msg)
        msg = f"Database connection failed: {error_msg}"
        raise RuntimeError(msg)

    logger.info(
        "Application startup complete - {} v{}",
        app_instance.title,
        app_instance.version,
    )

    yield

    logger.info("Application shutdown initiated")
    await close_database()
    logger.info("Application shutdown complete")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings instance. If not provided, will use get_settings().

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    if settings is None:
        settings = get_settings()

    setup_logging(settings)
    setup_tracing(settings)

    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Consulta de créditos constituídos de ISSQN",
        debug=settings.debug,
        docs_url=settings.docs_url,
        redoc_url=settings.redoc_url,
        openapi_url=settings.openapi_url,
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    # Register exception handlers BEFORE middleware
    register_exception_handlers(application)

    # 3. Request logging middleware (request ID, timings)
    application.add_middleware(RequestLoggingMiddleware, log_config=settings.log_config)

    # 2. Request context middleware (correlation ID)
    application.add_middleware(RequestContextMiddleware)

    # 1. CORS, outermost so preflight requests never reach the app
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
        expose_headers=[CORRELATION_ID_HEADER],
        max_age=CORS_MAX_AGE_SECONDS,
    )

    application.include_router(credits.router)
    application.include_router(admin.router)

    @application.get("/health", tags=["Operational"])
    async def health() -> dict[str, object]:
        """Health check endpoint for probes and load balancers.

        Reports ``degraded`` rather than failing when the database is
        unreachable, so the process is not restarted for a database outage.
        """
        health_status: dict[str, object] = {"status": "healthy", "database": False}

        is_healthy, error_msg = await check_database_connection()
        health_status["database"] = is_healthy

        if is_healthy:
            pool = get_engine().pool
            logger.bind(
                metric_type="db.pool.health",
                checked_out=cast("Any", pool).checkedout(),
                size=cast("Any", pool).size(),
                overflow=cast("Any", pool).overflow(),
            ).info("Database pool health check")
        else:
            logger.warning("Database health check failed: {}", error_msg)
            health_status["status"] = "degraded"

        return health_status

    @application.get("/info", tags=["Operational"])
    async def info(
        app_settings: Annotated[Settings, Depends(get_settings)],
    ) -> dict[str, Any]:
        """Return application name, version and environment."""
        return {
            "app_name": app_settings.app_name,
            "version": app_settings.app_version,
            "environment": app_settings.environment,
            "debug": app_settings.debug,
            "cache_enabled": app_settings.cache_config.enabled,
        }

    instrument_app(application, settings)

    return application


app = create_app()
