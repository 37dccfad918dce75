"""Health check endpoint.

Reports database and Redis connectivity. Redis only backs payment
idempotency keys, so a Redis outage degrades the service without taking it
down.
"""

from __future__ import annotations

from fastapi import APIRouter
from sqlalchemy import text

from trademark_workflow.infrastructure.database.engine import _get_engine
from trademark_workflow.infrastructure.redis_client import get_redis
from trademark_workflow.logging_config import get_logger
from trademark_workflow.schemas.notification import HealthResponse

router = APIRouter(tags=["Health"])
logger = get_logger(__name__)

VERSION = "0.1.0"


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns the health status of the service and its dependencies.",
)
async def health_check() -> HealthResponse:
    db_status = "unknown"
    redis_status = "unknown"

    try:
        async with _get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
        db_status = "healthy"
    except Exception as exc:
        db_status = f"unhealthy: {exc}"
        logger.error("health.db_check_failed", error=str(exc))

    try:
        await get_redis().ping()
        redis_status = "healthy"
    except Exception as exc:
        redis_status = f"unhealthy: {exc}"
        logger.error("health.redis_check_failed", error=str(exc))

    overall = "ok" if db_status == "healthy" and redis_status == "healthy" else "degraded"
    return HealthResponse(status=overall, version=VERSION, database=db_status, redis=redis_status)
