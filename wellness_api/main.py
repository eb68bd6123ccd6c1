"""Wellness API - FastAPI Application Factory."""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from wellness_api.api import api_router
from wellness_api.api.health import router as health_router
from wellness_api.core import (
    SecurityConfig,
    Settings,
    build_security_config,
    register_exception_handlers,
    settings as default_settings,
    setup_logging,
    success_response,
)
from wellness_api.core.logging import get_logger
from wellness_api.middleware import (
    CSRFTokenMiddleware,
    RateLimitMiddleware,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
    rate_limit_cleanup_loop,
)
from wellness_api.services.auth import TokenService
from wellness_api.services.csrf import CSRF_HEADER, CSRFTokenCodec

logger = get_logger("main")


def task_done_callback(task: asyncio.Task[None]) -> None:
    """Log unhandled exceptions from background tasks."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(f"Background task {task.get_name()} failed: {exc}")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    app_settings: Settings = app.state.settings
    logger.info(f"Starting {app_settings.app_name} v{app_settings.app_version}")

    for warning in app_settings.check_security_configuration():
        logger.warning(f"SECURITY: {warning}")

    cleanup_task = asyncio.create_task(rate_limit_cleanup_loop(), name="rate-limit-cleanup")
    cleanup_task.add_done_callback(task_done_callback)

    yield

    logger.info("Shutting down...")
    cleanup_task.cancel()
    await asyncio.gather(cleanup_task, return_exceptions=True)


def create_app(
    app_settings: Settings | None = None,
    security: SecurityConfig | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Raises SystemExit (status 1) before anything is served when the JWT
    secret is missing or weak in production.
    """
    app_settings = app_settings or default_settings

    setup_logging(
        level=app_settings.log_level,
        format_type=app_settings.effective_log_format,
        environment=app_settings.environment,
    )

    security = security or build_security_config(app_settings)

    app = FastAPI(
        title=app_settings.app_name,
        description="Wellness center backend: authentication and request security",
        version=app_settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if app_settings.debug else None,
        redoc_url="/redoc" if app_settings.debug else None,
        openapi_url="/openapi.json" if app_settings.debug else None,
    )

    # Built once and shared read-only by every request
    app.state.settings = app_settings
    app.state.security = security
    app.state.csrf_codec = CSRFTokenCodec(security.csrf_secret)
    app.state.token_service = TokenService(security)

    register_exception_handlers(app, is_production=app_settings.is_production)

    # Starlette runs middleware in reverse order of registration:
    # CORS -> security headers -> request logging -> CSRF attach -> rate limit
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_minute=app_settings.rate_limit_requests_per_minute,
        enabled=app_settings.rate_limit_enabled,
    )

    app.add_middleware(CSRFTokenMiddleware)

    app.add_middleware(RequestLoggingMiddleware)

    app.add_middleware(SecurityHeadersMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept", CSRF_HEADER],
        expose_headers=[CSRF_HEADER, "Content-Range", "X-Content-Range"],
        max_age=600,
    )

    app.include_router(health_router)
    app.include_router(api_router)

    @app.get("/")
    async def root() -> dict:
        """Root endpoint with API information."""
        return success_response(
            {
                "name": app_settings.app_name,
                "version": app_settings.app_version,
                "endpoints": {
                    "health": "/health",
                    "auth": "/api/auth (csrf-token, token, verify)",
                },
            },
            f"Welcome to {app_settings.app_name}",
        )

    return app


# Application instance
app = create_app()
