"""Notification types and provider protocols.

Providers are Protocols (structural subtyping): anything with a matching
``send`` coroutine can be plugged into the dispatcher, which keeps httpx and
vendor specifics out of the dispatch logic and makes stubbing trivial in tests.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime  # noqa: TC003 - dataclass field type
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from trademark_workflow.domain.enums import OPS_EMAIL_CHANNEL

if TYPE_CHECKING:
    from trademark_workflow.services.transition_service import TransitionResult


@dataclass(frozen=True)
class StatusChangeEvent:
    """A committed status change, as handed to the dispatcher.

    Attributes:
        application_id: The application that changed.
        to_status: Raw status string; validated by the dispatcher.
        from_status: Previous status (None for a brand-new application).
        user_id: Owning profile, used to resolve the recipient.
        brand_name / management_number: Template context.
        note: Admin note or automation note, quoted in ops escalations.
        status_detail: Human-readable detail shown to the customer.
        changed_at: When the change was written.
    """

    application_id: str
    to_status: str
    from_status: str | None = None
    user_id: str | None = None
    brand_name: str | None = None
    management_number: str | None = None
    note: str | None = None
    status_detail: str | None = None
    changed_at: datetime | None = None

    @classmethod
    def from_transition(cls, result: TransitionResult) -> StatusChangeEvent:
        application = result.application
        entry = result.log_entry
        return cls(
            application_id=str(application.id),
            to_status=entry.to_status,
            from_status=entry.from_status,
            user_id=str(application.user_id) if application.user_id else None,
            brand_name=application.brand_name,
            management_number=application.management_number,
            note=entry.note,
            status_detail=application.status_detail,
            changed_at=entry.changed_at,
        )


@dataclass(frozen=True)
class Recipient:
    email: str | None = None
    phone: str | None = None
    name: str | None = None


@dataclass(frozen=True)
class NotificationResult:
    """Outcome of one channel delivery.

    ``channel`` is "email", "sms" or "ops-email". ``attempts`` is zero when
    delivery was never tried (unconfigured provider, missing recipient).
    """

    channel: str
    success: bool
    target: str | None = None
    attempts: int = 0
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "channel": self.channel,
            "target": self.target,
            "success": self.success,
            "attempts": self.attempts,
            "error": self.error,
        }


@dataclass(frozen=True)
class DispatchOutcome:
    results: list[NotificationResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return any(r.success for r in self.results)

    @property
    def failed(self) -> bool:
        """No success at all, and at least one customer-facing channel failed."""
        if self.ok:
            return False
        return any(not r.success and r.channel != OPS_EMAIL_CHANNEL for r in self.results)

    def to_dict(self) -> dict:
        return {"ok": self.ok, "results": [r.to_dict() for r in self.results]}


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    text: str
    html: str | None = None


@dataclass(frozen=True)
class SmsMessage:
    to: str
    body: str


@runtime_checkable
class EmailProvider(Protocol):
    """Sends one email. Raises on failure; the dispatcher owns retries."""

    async def send(self, message: EmailMessage) -> None: ...


@runtime_checkable
class SmsProvider(Protocol):
    """Sends one SMS. Raises on failure; the dispatcher owns retries."""

    async def send(self, message: SmsMessage) -> None: ...


RecipientLookup = Callable[[str | None], Awaitable[Recipient | None]]
