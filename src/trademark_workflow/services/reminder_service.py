"""Payment reminders for stage fees that are due soon or already overdue.

Invoked on demand (admin endpoint or a scheduler hitting it); there is no
background loop here.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from trademark_workflow.domain.enums import PaymentStage
from trademark_workflow.domain.payments import STAGE_LABELS, is_overdue, remaining_amount
from trademark_workflow.infrastructure.database.repositories import (
    ApplicationRepository,
    PaymentRepository,
)
from trademark_workflow.logging_config import get_logger
from trademark_workflow.notifications.dispatcher import RECIPIENT_MISSING, profile_recipient_lookup
from trademark_workflow.notifications.templates import DEFAULT_DISPLAY_NAME
from trademark_workflow.services.ledger_service import storage_errors

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from trademark_workflow.infrastructure.database.orm_models import (
        TrademarkApplication,
        TrademarkPayment,
    )
    from trademark_workflow.notifications.dispatcher import NotificationDispatcher
    from trademark_workflow.notifications.protocol import Recipient, RecipientLookup

logger = get_logger(__name__)

_SECONDS_PER_DAY = 86400


@dataclass(frozen=True)
class ReminderResult:
    payment_id: str
    success: bool
    error: str | None = None

    def to_dict(self) -> dict:
        return {"payment_id": self.payment_id, "success": self.success, "error": self.error}


@dataclass(frozen=True)
class ReminderReport:
    sent: int = 0
    failed: int = 0
    total: int = 0
    results: list[ReminderResult] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "sent": self.sent,
            "failed": self.failed,
            "total": self.total,
            "results": [r.to_dict() for r in self.results],
        }


def days_until(due_at: datetime, now: datetime) -> int:
    if due_at.tzinfo is None:
        due_at = due_at.replace(tzinfo=UTC)
    return math.ceil((due_at - now).total_seconds() / _SECONDS_PER_DAY)


def build_reminder_message(
    application: TrademarkApplication,
    payment: TrademarkPayment,
    recipient: Recipient,
    now: datetime,
    portal_url: str,
) -> tuple[str, str]:
    stage_label = STAGE_LABELS[PaymentStage(payment.payment_stage)]
    remaining = remaining_amount(payment)
    remaining_days = days_until(payment.due_at, now) if payment.due_at else 0

    if is_overdue(payment, now):
        subject = f"[OpenTM] Payment overdue - {application.brand_name}"
        timing = f"was due {max(-remaining_days, 1)} day(s) ago"
    else:
        subject = f"[OpenTM] Payment reminder - {application.brand_name}"
        timing = f"is due in {remaining_days} day(s)"

    body = "\n".join(
        [
            f"Hello {recipient.name or DEFAULT_DISPLAY_NAME},",
            "",
            f"The {stage_label.lower()} for {application.brand_name} {timing}.",
            f"Outstanding amount: {remaining:,.0f} {payment.currency}",
            f"Management no.: {application.management_number or '-'}",
            "",
            f"Payment details: {portal_url}",
        ]
    )
    return subject, body


class PaymentReminderService:
    """Emails owners of open payments whose due date is near or past."""

    def __init__(
        self,
        session: AsyncSession,
        dispatcher: NotificationDispatcher,
        portal_url: str,
        recipient_lookup: RecipientLookup | None = None,
    ) -> None:
        self._application_repo = ApplicationRepository(session)
        self._payment_repo = PaymentRepository(session)
        self._dispatcher = dispatcher
        self._portal_url = portal_url
        self._recipient_lookup = recipient_lookup or profile_recipient_lookup(session)

    async def send_reminders(
        self,
        days_before_due: int = 3,
        include_overdue: bool = True,
        now: datetime | None = None,
    ) -> ReminderReport:
        now = now or datetime.now(UTC)
        window_end = now + timedelta(days=days_before_due)
        async with storage_errors("find_due_payments"):
            payments = await self._payment_repo.get_due_for_reminder(
                now, window_end, include_overdue=include_overdue
            )

        results = [await self._remind(payment, now) for payment in payments]
        sent = sum(1 for r in results if r.success)
        report = ReminderReport(
            sent=sent,
            failed=len(results) - sent,
            total=len(payments),
            results=results,
        )
        logger.info(
            "reminder.batch_completed",
            sent=report.sent,
            failed=report.failed,
            total=report.total,
            days_before_due=days_before_due,
            include_overdue=include_overdue,
        )
        return report

    async def _remind(self, payment: TrademarkPayment, now: datetime) -> ReminderResult:
        payment_id = str(payment.id)
        async with storage_errors("load_application"):
            application = await self._application_repo.get_by_id(payment.application_id)
        if application is None:
            return ReminderResult(payment_id, False, "application-missing")

        try:
            recipient = await self._recipient_lookup(
                str(application.user_id) if application.user_id else None
            )
        except Exception as exc:
            logger.warning("reminder.recipient_lookup_failed", payment_id=payment_id, error=str(exc))
            recipient = None
        if recipient is None or not recipient.email:
            return ReminderResult(payment_id, False, RECIPIENT_MISSING)

        subject, body = build_reminder_message(
            application, payment, recipient, now, self._portal_url
        )
        result = await self._dispatcher.send_email(recipient.email, subject, body)
        return ReminderResult(payment_id, result.success, result.error)
