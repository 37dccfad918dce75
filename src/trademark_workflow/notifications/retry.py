"""Bounded retry for outbound deliveries.

Each attempt is cut off by ``asyncio.wait_for``; failed attempts back off
exponentially (base, 2*base, 4*base...) via tenacity. The final outcome is
returned as data rather than raised, so one failing channel never aborts a
dispatch.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING

from tenacity import AsyncRetrying, RetryCallState, stop_after_attempt, wait_exponential

from trademark_workflow.logging_config import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = get_logger(__name__)


@dataclass(frozen=True)
class DeliveryAttempt:
    success: bool
    attempts: int
    error: str | None = None


def _describe(exc: BaseException) -> str:
    if isinstance(exc, TimeoutError):
        return "timeout"
    return str(exc) or exc.__class__.__name__


def _log_retry(channel: str) -> Callable[[RetryCallState], None]:
    def before_sleep(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "notification.retrying",
            channel=channel,
            attempt=retry_state.attempt_number,
            wait_seconds=retry_state.next_action.sleep if retry_state.next_action else None,
            error=_describe(exc) if exc else None,
        )

    return before_sleep


async def deliver_with_retry(
    send: Callable[[], Awaitable[None]],
    *,
    channel: str,
    max_attempts: int = 3,
    base_delay: float = 0.4,
    attempt_timeout: float = 10.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> DeliveryAttempt:
    """Run ``send`` until it succeeds or ``max_attempts`` is exhausted."""
    attempts = 0
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=base_delay),
        sleep=sleep,
        before_sleep=_log_retry(channel),
        reraise=True,
    )
    try:
        async for attempt in retrying:
            with attempt:
                attempts = attempt.retry_state.attempt_number
                await asyncio.wait_for(send(), timeout=attempt_timeout)
    except Exception as exc:
        logger.error(
            "notification.delivery_failed",
            channel=channel,
            attempts=attempts,
            error=_describe(exc),
        )
        return DeliveryAttempt(success=False, attempts=attempts, error=_describe(exc))
    return DeliveryAttempt(success=True, attempts=attempts)
