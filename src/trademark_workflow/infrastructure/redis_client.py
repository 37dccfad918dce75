"""Redis client for idempotency keys on payment confirmation.

Usage:
    from trademark_workflow.infrastructure.redis_client import get_redis, claim_idempotency

    if not await claim_idempotency(get_redis(), "confirm:abc"):
        raise DuplicateOperationError("confirm:abc")
"""

from __future__ import annotations

import redis.asyncio as aioredis

from trademark_workflow.config import get_settings
from trademark_workflow.logging_config import get_logger

logger = get_logger(__name__)

_redis_client: aioredis.Redis | None = None

IDEMPOTENCY_PREFIX = "idempotency:"


async def init_redis() -> aioredis.Redis:
    """Initialize and return the Redis client. Called during app startup."""
    global _redis_client
    settings = get_settings()
    _redis_client = aioredis.from_url(settings.redis_url, decode_responses=True)
    await _redis_client.ping()
    logger.info("redis.connected", url=settings.redis_url)
    return _redis_client


def get_redis() -> aioredis.Redis:
    """Return the Redis client singleton. Must call init_redis() first."""
    if _redis_client is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis_client


async def close_redis() -> None:
    """Close the Redis connection. Called during app shutdown."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        logger.info("redis.disconnected")
        _redis_client = None


# --- Idempotency ---


async def claim_idempotency(client: aioredis.Redis, key: str, value: str = "1") -> bool:
    """Atomically claim ``key``. Returns False if it was already claimed."""
    settings = get_settings()
    claimed = await client.set(
        f"{IDEMPOTENCY_PREFIX}{key}",
        value,
        nx=True,
        ex=settings.redis_idempotency_ttl_seconds,
    )
    return bool(claimed)


async def release_idempotency(client: aioredis.Redis, key: str) -> None:
    """Drop a claim so the operation can be retried after a failure."""
    await client.delete(f"{IDEMPOTENCY_PREFIX}{key}")
