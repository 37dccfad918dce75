"""Tests for the bounded retry helper."""

from __future__ import annotations

import asyncio

import pytest

from trademark_workflow.notifications.retry import deliver_with_retry


class Flaky:
    def __init__(self, failures: int) -> None:
        self.failures = failures
        self.calls = 0

    async def __call__(self) -> None:
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError(f"boom {self.calls}")


class TestDeliverWithRetry:
    @pytest.mark.asyncio
    async def test_first_try_success(self, sleep) -> None:
        result = await deliver_with_retry(Flaky(0), channel="email", sleep=sleep)
        assert (result.success, result.attempts, result.error) == (True, 1, None)
        assert sleep.waits == []

    @pytest.mark.asyncio
    async def test_backoff_is_exponential_and_bounded(self, sleep) -> None:
        send = Flaky(99)
        result = await deliver_with_retry(send, channel="email", sleep=sleep)

        assert send.calls == 3
        assert result.success is False
        assert result.attempts == 3
        assert result.error == "boom 3"
        assert sleep.waits == pytest.approx([0.4, 0.8])

    @pytest.mark.asyncio
    async def test_recovers_on_last_attempt(self, sleep) -> None:
        result = await deliver_with_retry(Flaky(2), channel="sms", sleep=sleep)
        assert result.success is True
        assert result.attempts == 3

    @pytest.mark.asyncio
    async def test_custom_attempts_and_delay(self, sleep) -> None:
        result = await deliver_with_retry(
            Flaky(99), channel="email", max_attempts=4, base_delay=1.0, sleep=sleep
        )
        assert result.attempts == 4
        assert sleep.waits == pytest.approx([1.0, 2.0, 4.0])

    @pytest.mark.asyncio
    async def test_hung_provider_is_cut_off(self, sleep) -> None:
        calls = 0

        async def hang() -> None:
            nonlocal calls
            calls += 1
            await asyncio.sleep(10)

        result = await deliver_with_retry(
            hang, channel="email", attempt_timeout=0.01, sleep=sleep
        )

        assert calls == 3
        assert result.success is False
        assert result.error == "timeout"

    @pytest.mark.asyncio
    async def test_exception_without_message_uses_class_name(self, sleep) -> None:
        async def fail() -> None:
            raise RuntimeError

        result = await deliver_with_retry(fail, channel="email", max_attempts=1, sleep=sleep)
        assert result.error == "RuntimeError"
