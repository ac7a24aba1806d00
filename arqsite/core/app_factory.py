"""Application factory.

Builds one self-contained app: its own rate limiter and session authority on
``app.state``, the request-id and admin-gateway middleware, the exception
handlers and every router. Tests create a fresh app per test.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from arqsite.api.routes import (
    admin_auth_router,
    admin_content_router,
    admin_router,
    chat_router,
    content_router,
    health_router,
    leads_router,
)
from arqsite.core.config import settings
from arqsite.core.exception_handlers import setup_exception_handlers
from arqsite.core.logging import configure_logging
from arqsite.core.middleware import request_id_middleware
from arqsite.core.openapi import apply_openapi_customizations
from arqsite.core.rate_limit import build_rate_limiter
from arqsite.core.security import AdminSessionAuthority
from arqsite.core.session_middleware import admin_session_middleware

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run the rate limiter's sweeper for the lifetime of the app."""
    limiter = app.state.rate_limiter
    limiter.start_sweeper(settings.app.rate_limit_sweep_interval_seconds)
    try:
        yield
    finally:
        limiter.stop_sweeper()
        logger.info("app.shutdown")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    The session authority is built here, so a production deployment without
    a usable JWT secret fails at startup instead of on the first login.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.

    Raises:
        ConfigurationAppError: In production when the JWT secret is missing
            or insecure, or when admin credentials are malformed.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="ArqAI Site API",
        description=(
            "Backend for the ArqAI marketing site: lead capture, gated resource "
            "downloads, published content, website chat, and the cookie-authenticated "
            "admin back-office (leads, CSV export, content, SEO and AI tools)."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    # Process-wide state shared by every request
    app.state.rate_limiter = build_rate_limiter()
    app.state.session_authority = AdminSessionAuthority.from_settings()

    # Middleware (last added runs first): CORS -> request id -> admin gateway
    app.middleware("http")(admin_session_middleware)
    app.middleware("http")(request_id_middleware)
    if settings.app.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.app.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(health_router)
    app.include_router(admin_auth_router)
    app.include_router(admin_router)
    app.include_router(admin_content_router)
    app.include_router(leads_router)
    app.include_router(chat_router)
    app.include_router(content_router)

    # OpenAPI customizations (security scheme, tags)
    apply_openapi_customizations(app)

    logger.info("app.created", extra={"app_env": settings.app_env})
    return app
