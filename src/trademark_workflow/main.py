"""FastAPI application entry point for the trademark workflow service.

Lifecycle:
    1. Startup: logging, database (tables are created in development), Redis.
    2. Running: REST API under /api/v1/*.
    3. Shutdown: close database and Redis connections.

Run with:
    uvicorn trademark_workflow.main:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from trademark_workflow.api.middleware import setup_middleware
from trademark_workflow.api.routes.applications import router as applications_router
from trademark_workflow.api.routes.health import router as health_router
from trademark_workflow.api.routes.notifications import router as notifications_router
from trademark_workflow.api.routes.payments import router as payments_router
from trademark_workflow.api.routes.statuses import router as statuses_router
from trademark_workflow.config import get_settings
from trademark_workflow.infrastructure.database.engine import close_db, init_db
from trademark_workflow.infrastructure.redis_client import close_redis, init_redis
from trademark_workflow.logging_config import get_logger, setup_logging

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings = get_settings()

    setup_logging(
        log_level=settings.app_log_level,
        json_logs=not settings.is_development,
    )
    logger = get_logger(__name__)
    logger.info(
        "app.starting",
        env=settings.app_env,
        email_configured=settings.email_configured,
        sms_configured=settings.sms_configured,
    )

    await init_db()

    try:
        await init_redis()
    except Exception as exc:
        logger.warning("app.redis_unavailable", error=str(exc))

    logger.info("app.started", host=settings.app_host, port=settings.app_port)

    yield

    logger.info("app.shutting_down")
    await close_db()
    await close_redis()
    logger.info("app.stopped")


def create_app() -> FastAPI:
    """Application factory."""
    settings = get_settings()

    app = FastAPI(
        title="Trademark Workflow",
        description=(
            "Trademark application lifecycle: status transitions, stage "
            "payments and customer notifications."
        ),
        version="0.1.0",
        lifespan=lifespan,
        debug=settings.app_debug,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    setup_middleware(app, settings.cors_allowed_origins)

    app.include_router(health_router)
    app.include_router(statuses_router)
    app.include_router(applications_router)
    app.include_router(payments_router)
    app.include_router(notifications_router)

    return app


app = create_app()
