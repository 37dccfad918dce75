"""FastAPI dependency injection providers.

These are used with Depends() in route handlers to inject database sessions,
services, the notification dispatcher, Redis and configuration. Tests swap
any of them through ``app.dependency_overrides``.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator

import redis.asyncio as aioredis
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from trademark_workflow.config import Settings, get_settings
from trademark_workflow.infrastructure.database.engine import get_async_session
from trademark_workflow.infrastructure.redis_client import get_redis
from trademark_workflow.logging_config import get_logger
from trademark_workflow.notifications.dispatcher import (
    NotificationDispatcher,
    profile_recipient_lookup,
)
from trademark_workflow.services.ledger_service import PaymentLedger
from trademark_workflow.services.transition_service import TransitionExecutor

logger = get_logger(__name__)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session for a request."""
    async for session in get_async_session():
        yield session


def get_app_settings() -> Settings:
    """Provide the application settings."""
    return get_settings()


async def get_ledger(session: AsyncSession = Depends(get_db_session)) -> PaymentLedger:
    return PaymentLedger(session)


async def get_executor(
    session: AsyncSession = Depends(get_db_session),
) -> TransitionExecutor:
    """Provide a TransitionExecutor bound to the current session."""
    return TransitionExecutor(session)


async def get_dispatcher(
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> NotificationDispatcher:
    """Provide a dispatcher wired to the configured providers and the profiles table."""
    return NotificationDispatcher.from_settings(settings, profile_recipient_lookup(session))


def get_redis_client() -> aioredis.Redis | None:
    """Provide the Redis client, or None when Redis never came up."""
    try:
        return get_redis()
    except RuntimeError:
        logger.warning("redis.unavailable")
        return None
