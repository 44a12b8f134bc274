"""
FastAPI application factory.
"""

import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from compliance_engine.config import settings
from compliance_engine.api.errors import register_exception_handlers
from compliance_engine.api.router import api_router
from compliance_engine.models.database import close_db
from compliance_engine.observability.logging import setup_logging

# Startup print - visible in platform logs before logging is configured
print(f"[STARTUP] Trade Compliance Engine v{settings.APP_VERSION}", flush=True)
print(f"[STARTUP] Python {sys.version.split()[0]}", flush=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    # Startup
    setup_logging()

    # Sentry init if configured
    if settings.SENTRY_DSN:
        import sentry_sdk
        from sentry_sdk.integrations.fastapi import FastApiIntegration
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            integrations=[FastApiIntegration()],
            traces_sample_rate=0.1,
        )

    yield

    # Shutdown
    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Trade Compliance Engine",
        description="Contractor compliance tracking, Gas Safe verification and compliance-gated payment runs.",
        version=settings.APP_VERSION,
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS.split(","),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Prometheus metrics endpoint
    if settings.PROMETHEUS_ENABLED:
        from prometheus_client import make_asgi_app
        metrics_app = make_asgi_app()
        app.mount("/metrics", metrics_app)

    register_exception_handlers(app)

    # Include all API routes
    app.include_router(api_router)

    return app


# Application instance
app = create_app()
