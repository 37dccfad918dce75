"""Tests for the PaymentLedger service."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from trademark_workflow.domain.enums import PaymentStage, PaymentStatus
from trademark_workflow.domain.exceptions import (
    PaymentNotFoundError,
    PaymentValidationError,
    StorageError,
)
from trademark_workflow.services.ledger_service import PaymentLedger
from trademark_workflow.services.transition_service import TransitionExecutor


@pytest.fixture
def ledger(session) -> PaymentLedger:
    return PaymentLedger(session)


async def _application_id(session, profile):  # noqa: ANN001, ANN202
    result = await TransitionExecutor(session).create_application(profile.id, "OPENTM")
    return result.application.id


class TestRequestPayment:
    @pytest.mark.asyncio
    async def test_creates_unpaid_row(self, session, profile, ledger) -> None:
        app_id = await _application_id(session, profile)
        due = datetime(2026, 5, 1, tzinfo=UTC)

        payment = await ledger.request_payment(
            app_id, PaymentStage.OFFICE_ACTION, Decimal("300000"), due_at=due
        )

        assert payment.payment_status == PaymentStatus.UNPAID
        assert payment.amount == Decimal("300000")
        assert payment.paid_amount == Decimal("0")
        assert payment.currency == "KRW"

    @pytest.mark.asyncio
    async def test_quote_only(self, session, profile, ledger) -> None:
        app_id = await _application_id(session, profile)
        payment = await ledger.request_payment(
            app_id, "registration", Decimal("210000"), quote_only=True
        )
        assert payment.payment_status == PaymentStatus.QUOTE_SENT

    @pytest.mark.asyncio
    async def test_second_request_updates_same_row(self, session, profile, ledger) -> None:
        app_id = await _application_id(session, profile)
        first = await ledger.request_payment(app_id, "registration", Decimal("200000"), quote_only=True)
        second = await ledger.request_payment(app_id, "registration", Decimal("210000"))

        assert first.id == second.id
        assert second.amount == Decimal("210000")
        assert second.payment_status == PaymentStatus.UNPAID
        assert len(await ledger.fetch_payments(app_id)) == 1

    @pytest.mark.asyncio
    async def test_paid_stage_is_left_alone(self, session, profile, ledger) -> None:
        app_id = await _application_id(session, profile)
        payment = await ledger.request_payment(app_id, "registration", Decimal("210000"))
        await ledger.record_payment_confirmation(payment.id, Decimal("210000"))

        again = await ledger.request_payment(app_id, "registration", Decimal("999999"))
        assert again.payment_status == PaymentStatus.PAID
        assert again.amount == Decimal("210000")

    @pytest.mark.asyncio
    async def test_negative_amount_rejected(self, session, profile, ledger) -> None:
        app_id = await _application_id(session, profile)
        with pytest.raises(PaymentValidationError):
            await ledger.request_payment(app_id, "filing", Decimal("-1"))


class TestRecordPaymentConfirmation:
    @pytest.mark.asyncio
    async def test_full_payment(self, session, profile, ledger) -> None:
        app_id = await _application_id(session, profile)
        payment = await ledger.request_payment(app_id, "filing", Decimal("50000"))

        confirmed, newly_paid = await ledger.record_payment_confirmation(
            payment.id,
            Decimal("50000"),
            remitter_name="Hong Gildong",
            payment_method="bank_transfer",
            transaction_reference="TX-1",
        )

        assert newly_paid is True
        assert confirmed.payment_status == PaymentStatus.PAID
        assert confirmed.paid_at is not None
        assert confirmed.remitter_name == "Hong Gildong"
        assert confirmed.transaction_reference == "TX-1"
        assert await ledger.is_stage_completed(app_id, PaymentStage.FILING) is True

    @pytest.mark.asyncio
    async def test_partial_then_full(self, session, profile, ledger) -> None:
        app_id = await _application_id(session, profile)
        payment = await ledger.request_payment(app_id, "filing", Decimal("50000"))

        partial, newly_paid = await ledger.record_payment_confirmation(payment.id, Decimal("20000"))
        assert partial.payment_status == PaymentStatus.PARTIAL
        assert newly_paid is False
        assert await ledger.is_stage_completed(app_id, "filing") is False

        _, newly_paid = await ledger.record_payment_confirmation(payment.id, Decimal("50000"))
        assert newly_paid is True

    @pytest.mark.asyncio
    async def test_settled_payment_refuses_reconfirmation(self, session, profile, ledger) -> None:
        app_id = await _application_id(session, profile)
        payment = await ledger.request_payment(app_id, "filing", Decimal("50000"))
        await ledger.record_payment_confirmation(payment.id, Decimal("50000"))

        for amount in (Decimal("50000"), Decimal("1")):
            with pytest.raises(PaymentValidationError):
                await ledger.record_payment_confirmation(payment.id, amount)

        settled = await ledger.get_payment_by_stage(app_id, "filing")
        assert settled.payment_status == PaymentStatus.PAID
        assert settled.paid_amount == Decimal("50000")
        assert await ledger.is_stage_completed(app_id, "filing") is True

    @pytest.mark.asyncio
    async def test_refunded_payment_refuses_confirmation(self, session, profile, ledger) -> None:
        app_id = await _application_id(session, profile)
        payment = await ledger.request_payment(app_id, "filing", Decimal("50000"))
        payment.payment_status = PaymentStatus.REFUNDED.value
        await session.flush()

        with pytest.raises(PaymentValidationError):
            await ledger.record_payment_confirmation(payment.id, Decimal("50000"))

    @pytest.mark.asyncio
    async def test_zero_remittance_does_not_settle_unquoted_stage(
        self, session, profile, ledger
    ) -> None:
        app_id = await _application_id(session, profile)
        payment = await ledger.request_payment(app_id, "filing", None)

        with pytest.raises(PaymentValidationError):
            await ledger.record_payment_confirmation(payment.id, Decimal("0"))

        assert await ledger.is_stage_completed(app_id, "filing") is False

    @pytest.mark.asyncio
    async def test_unquoted_stage_settles_at_remitted_amount(self, session, profile, ledger) -> None:
        app_id = await _application_id(session, profile)
        payment = await ledger.request_payment(app_id, "office_action", None)

        confirmed, newly_paid = await ledger.record_payment_confirmation(
            payment.id, Decimal("120000")
        )
        assert newly_paid is True
        assert confirmed.amount == Decimal("120000")

    @pytest.mark.asyncio
    async def test_overpayment_rejected(self, session, profile, ledger) -> None:
        app_id = await _application_id(session, profile)
        payment = await ledger.request_payment(app_id, "filing", Decimal("50000"))

        with pytest.raises(PaymentValidationError):
            await ledger.record_payment_confirmation(payment.id, Decimal("60000"))

    @pytest.mark.asyncio
    async def test_missing_payment(self, ledger, unknown_id) -> None:
        with pytest.raises(PaymentNotFoundError):
            await ledger.record_payment_confirmation(unknown_id, Decimal("1"))


class TestReads:
    @pytest.mark.asyncio
    async def test_missing_stage_is_none(self, session, profile, ledger) -> None:
        app_id = await _application_id(session, profile)
        assert await ledger.get_payment_by_stage(app_id, "registration") is None
        assert await ledger.is_stage_completed(app_id, "registration") is False

    @pytest.mark.asyncio
    async def test_summary(self, session, profile, ledger) -> None:
        app_id = await _application_id(session, profile)
        now = datetime(2026, 3, 1, tzinfo=UTC)
        filing = await ledger.request_payment(app_id, "filing", Decimal("100000"))
        await ledger.record_payment_confirmation(filing.id, Decimal("100000"))
        await ledger.request_payment(
            app_id, "registration", Decimal("50000"), due_at=now - timedelta(days=2)
        )

        summary = await ledger.get_summary(app_id, now=now)

        assert summary.total_amount == Decimal("150000")
        assert summary.total_paid == Decimal("100000")
        assert summary.has_overdue is True
        assert summary.all_paid is False

    @pytest.mark.asyncio
    async def test_backend_failure_is_storage_error(self, ledger, unknown_id) -> None:
        failing = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("gone")))
        with patch.object(ledger._payment_repo, "get_by_stage", failing):
            with pytest.raises(StorageError):
                await ledger.get_payment_by_stage(unknown_id, "filing")
