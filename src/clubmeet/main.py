"""FastAPI application factory.

Creates the app with logging middleware, CORS, domain error handlers,
lifespan wiring of the database and services, and the v1 API router.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.clubmeet.api.errors import register_exception_handlers
from src.clubmeet.api.v1.router import router as v1_router
from src.clubmeet.bootstrap import build_services
from src.clubmeet.config import get_settings
from src.clubmeet.core.database import Database
from src.clubmeet.core.logging import LoggingMiddleware, configure_structlog


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: build services on startup, dispose the engine on shutdown."""
    log = structlog.get_logger(__name__)
    settings = get_settings()
    configure_structlog()

    database = Database(settings.DATABASE_URL)
    services = build_services(settings, database)

    app.state.database = database
    app.state.platforms = services.platforms
    app.state.subscription_repository = services.subscription_repository
    app.state.meeting_repository = services.meeting_repository
    app.state.eligibility_service = services.eligibility_service
    app.state.calendar_synchronizer = services.calendar_synchronizer
    app.state.meeting_orchestrator = services.meeting_orchestrator
    app.state.daily_job = services.daily_job

    log.info(
        "app.started",
        environment=settings.ENVIRONMENT.value,
        platforms=len(services.platforms),
        cron_enabled=settings.ENABLE_CRON_JOBS,
    )

    yield

    await database.close()
    log.info("app.stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="ClubMeet API",
        version="0.1.0",
        description="Subscription-gated daily meeting scheduler",
        lifespan=lifespan,
    )

    # Middleware is added in reverse order (last added = outermost)

    if settings.CORS_ALLOWED_ORIGINS == "*":
        origins = ["*"]
    else:
        origins = [o.strip() for o in settings.CORS_ALLOWED_ORIGINS.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Logging middleware (logs every request with timing)
    app.add_middleware(LoggingMiddleware)

    register_exception_handlers(app)
    app.include_router(v1_router)

    return app


# Module-level app for uvicorn
app = create_app()
