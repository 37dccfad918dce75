"""Tests for payment reminders."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from trademark_workflow.infrastructure.database.orm_models import Profile
from trademark_workflow.notifications.dispatcher import RECIPIENT_MISSING
from trademark_workflow.notifications.protocol import Recipient
from trademark_workflow.services.ledger_service import PaymentLedger
from trademark_workflow.services.reminder_service import (
    PaymentReminderService,
    build_reminder_message,
    days_until,
)
from trademark_workflow.services.transition_service import TransitionExecutor

NOW = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)
PORTAL = "https://app.opentm.kr/mypage"


async def _open_payment(session, user_id, stage, due_at, brand="OPENTM"):  # noqa: ANN001, ANN202
    created = await TransitionExecutor(session).create_application(user_id, brand, "TM-0042")
    payment = await PaymentLedger(session).request_payment(
        created.application.id, stage, Decimal("300000"), due_at=due_at
    )
    await session.commit()
    return created.application, payment


class TestReminderMessage:
    @pytest.mark.asyncio
    async def test_upcoming(self, session, profile) -> None:
        application, payment = await _open_payment(
            session, profile.id, "office_action", NOW + timedelta(days=2)
        )
        subject, body = build_reminder_message(
            application, payment, Recipient(email=profile.email, name=profile.name), NOW, PORTAL
        )
        assert subject == "[OpenTM] Payment reminder - OPENTM"
        assert "office action response fee for OPENTM is due in 2 day(s)" in body
        assert "300,000 KRW" in body
        assert PORTAL in body

    @pytest.mark.asyncio
    async def test_overdue(self, session, profile) -> None:
        application, payment = await _open_payment(
            session, profile.id, "registration", NOW - timedelta(days=3)
        )
        subject, body = build_reminder_message(application, payment, Recipient(), NOW, PORTAL)
        assert subject == "[OpenTM] Payment overdue - OPENTM"
        assert "was due 3 day(s) ago" in body
        assert body.startswith("Hello Customer,")

    def test_days_until_rounds_up(self) -> None:
        assert days_until(NOW + timedelta(hours=30), NOW) == 2
        assert days_until(datetime(2026, 3, 2, 9, 0), NOW) == 1


class TestSendReminders:
    @pytest.mark.asyncio
    async def test_due_and_overdue_payments(self, session, profile, dispatcher, email_provider) -> None:
        await _open_payment(session, profile.id, "office_action", NOW + timedelta(days=2))
        await _open_payment(session, profile.id, "registration", NOW - timedelta(days=1))
        await _open_payment(session, profile.id, "filing", NOW + timedelta(days=20))

        service = PaymentReminderService(session, dispatcher, PORTAL)
        report = await service.send_reminders(days_before_due=3, now=NOW)

        assert (report.sent, report.failed, report.total) == (2, 0, 2)
        subjects = [m.subject for m in email_provider.sent]
        assert subjects == [
            "[OpenTM] Payment overdue - OPENTM",
            "[OpenTM] Payment reminder - OPENTM",
        ]
        assert all(m.to == "owner@example.com" for m in email_provider.sent)

    @pytest.mark.asyncio
    async def test_exclude_overdue(self, session, profile, dispatcher, email_provider) -> None:
        await _open_payment(session, profile.id, "office_action", NOW + timedelta(days=2))
        await _open_payment(session, profile.id, "registration", NOW - timedelta(days=1))

        service = PaymentReminderService(session, dispatcher, PORTAL)
        report = await service.send_reminders(days_before_due=3, include_overdue=False, now=NOW)

        assert report.total == 1
        assert len(email_provider.sent) == 1

    @pytest.mark.asyncio
    async def test_paid_payments_are_skipped(self, session, profile, dispatcher) -> None:
        _, payment = await _open_payment(
            session, profile.id, "office_action", NOW + timedelta(days=1)
        )
        await PaymentLedger(session).record_payment_confirmation(payment.id, Decimal("300000"))
        await session.commit()

        report = await PaymentReminderService(session, dispatcher, PORTAL).send_reminders(now=NOW)
        assert report.total == 0

    @pytest.mark.asyncio
    async def test_owner_without_email(self, session, dispatcher, email_provider) -> None:
        phone_only = Profile(phone="+821000000000", name="No Mail")
        session.add(phone_only)
        await session.commit()
        await _open_payment(session, phone_only.id, "filing", NOW + timedelta(days=1))

        report = await PaymentReminderService(session, dispatcher, PORTAL).send_reminders(now=NOW)

        assert (report.sent, report.failed) == (0, 1)
        assert report.results[0].error == RECIPIENT_MISSING
        assert email_provider.sent == []

    @pytest.mark.asyncio
    async def test_delivery_failure_is_reported(self, session, profile, dispatcher, email_provider) -> None:
        email_provider.failures = 99
        await _open_payment(session, profile.id, "filing", NOW + timedelta(days=1))

        report = await PaymentReminderService(session, dispatcher, PORTAL).send_reminders(now=NOW)

        assert report.failed == 1
        assert report.results[0].success is False
        assert "email outage" in report.results[0].error
        assert report.to_dict()["failed"] == 1
