"""Shared test fixtures for the trademark workflow test suite.

Provides:
    - An in-memory SQLite engine and session (aiosqlite)
    - Profile / application factories
    - In-process email and SMS providers that record what they were given
    - A dispatcher wired to those providers with no real sleeping
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from decimal import Decimal

import pytest
import pytest_asyncio

from trademark_workflow.infrastructure.database.engine import (
    build_engine,
    build_session_factory,
    create_tables,
)
from trademark_workflow.infrastructure.database.orm_models import Profile
from trademark_workflow.notifications.dispatcher import (
    NotificationDispatcher,
    profile_recipient_lookup,
)
from trademark_workflow.notifications.protocol import EmailMessage, SmsMessage

OPS_EMAIL = "ops@opentm.kr"


# ---------------------------------------------------------------------------
# Database Fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def engine():
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def profile(session) -> Profile:
    profile = Profile(email="owner@example.com", phone="+821012345678", name="Hong Gildong")
    session.add(profile)
    await session.commit()
    return profile


# ---------------------------------------------------------------------------
# Delivery Fixtures
# ---------------------------------------------------------------------------


@dataclass
class RecordingEmailProvider:
    """Fails the first ``failures`` calls, then records messages."""

    failures: int = 0
    calls: int = 0
    sent: list[EmailMessage] = field(default_factory=list)

    async def send(self, message: EmailMessage) -> None:
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError(f"email outage {self.calls}")
        self.sent.append(message)


@dataclass
class RecordingSmsProvider:
    failures: int = 0
    calls: int = 0
    sent: list[SmsMessage] = field(default_factory=list)

    async def send(self, message: SmsMessage) -> None:
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError(f"sms outage {self.calls}")
        self.sent.append(message)


class SleepRecorder:
    """Stands in for asyncio.sleep and remembers the requested waits."""

    def __init__(self) -> None:
        self.waits: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.waits.append(seconds)


@pytest.fixture
def email_provider() -> RecordingEmailProvider:
    return RecordingEmailProvider()


@pytest.fixture
def sms_provider() -> RecordingSmsProvider:
    return RecordingSmsProvider()


@pytest.fixture
def sleep() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def dispatcher(session, email_provider, sms_provider, sleep) -> NotificationDispatcher:
    return NotificationDispatcher(
        email_provider=email_provider,
        sms_provider=sms_provider,
        recipient_lookup=profile_recipient_lookup(session),
        ops_email=OPS_EMAIL,
        sleep=sleep,
    )


# ---------------------------------------------------------------------------
# Domain Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def filing_fee() -> Decimal:
    return Decimal("50000")


@pytest.fixture
def unknown_id() -> uuid.UUID:
    """A deterministic UUID that matches no row."""
    return uuid.UUID("12345678-1234-5678-1234-567812345678")
