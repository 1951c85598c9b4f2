"""
FastAPI Application Entry Points

This module builds the two HTTP surfaces of the service:
- redirect_app: public, latency-sensitive short code resolution
- app: authenticated link management, analytics and maintenance

Each app is configured with:
- API routes
- Middleware (logging, CORS)
- Rate limiting and error handlers
- Startup/shutdown hooks

Run with:
    uvicorn clicktrail.main:redirect_app
    uvicorn clicktrail.main:app
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from clicktrail import __version__
from clicktrail.api import admin_endpoints, redirect_endpoints
from clicktrail.api.errors import register_admin_error_handlers, register_redirect_error_handlers
from clicktrail.core.cleanup_scheduler import start_scheduler, stop_scheduler
from clicktrail.core.exceptions import ConfigurationError
from clicktrail.core.rate_limit import limiter
from clicktrail.core.setting import settings
from clicktrail.core.validators import is_valid_url
from clicktrail.db.session import create_all_tables, db_adapter
from clicktrail.middleware.logging import add_logging_middleware, configure_logging

logger = logging.getLogger(__name__)


def check_archived_redirect_url() -> None:
    """
    Validate the fallback destination used for archived links.

    Raises:
        ConfigurationError: If the URL is required but unset, or set but invalid
    """
    if settings.ARCHIVED_REDIRECT_URL is None:
        if settings.REQUIRE_ARCHIVED_REDIRECT_URL:
            raise ConfigurationError("ARCHIVED_REDIRECT_URL must be set")
        logger.warning(
            f"ARCHIVED_REDIRECT_URL is not set; archived links redirect to {settings.archived_redirect_url}"
        )
        return

    if not is_valid_url(settings.ARCHIVED_REDIRECT_URL):
        raise ConfigurationError(
            f"ARCHIVED_REDIRECT_URL is not a valid http(s) URL: {settings.ARCHIVED_REDIRECT_URL}"
        )


async def _prepare_database() -> None:
    logger.info(f"Using {db_adapter.get_dialect_name()} database")
    # Production schemas are managed by Alembic
    if not settings.is_production:
        await create_all_tables()


def _configure_common(app: FastAPI) -> None:
    app.state.limiter = limiter

    add_logging_middleware(app)


def create_redirect_app() -> FastAPI:
    configure_logging(settings.LOG_LEVEL)

    redirect = FastAPI(
        title="ClickTrail Redirect Service",
        description="Resolves short codes and records clicks",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    _configure_common(redirect)
    register_redirect_error_handlers(redirect)

    redirect.include_router(redirect_endpoints.router, tags=["Redirect"])

    @redirect.on_event("startup")
    async def startup_event():
        check_archived_redirect_url()
        await _prepare_database()
        logger.info("Redirect service started")

    return redirect


def create_admin_app() -> FastAPI:
    configure_logging(settings.LOG_LEVEL)

    admin = FastAPI(
        title="ClickTrail Admin API",
        description="Link management and click analytics",
        version=__version__,
        docs_url="/docs",  # Swagger UI documentation
        redoc_url="/redoc",  # ReDoc documentation
    )
    _configure_common(admin)
    admin.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    register_admin_error_handlers(admin)

    admin.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    admin.include_router(admin_endpoints.router)

    @admin.on_event("startup")
    async def startup_event():
        """Initialize services on startup."""
        await _prepare_database()
        await start_scheduler()
        logger.info("Admin service started")

    @admin.on_event("shutdown")
    async def shutdown_event():
        """Cleanup on shutdown."""
        await stop_scheduler()

    return admin


redirect_app = create_redirect_app()
app = create_admin_app()
