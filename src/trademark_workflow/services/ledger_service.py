"""Payment Ledger: storage-backed access to stage payments.

The maths lives in domain/payments.py; this service loads rows, applies
confirmations and translates database failures into StorageError so callers
can tell "no such payment" apart from "the database is down".
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from trademark_workflow.domain.enums import PaymentStage, PaymentStatus
from trademark_workflow.domain.exceptions import (
    PaymentNotFoundError,
    PaymentValidationError,
    StorageError,
)
from trademark_workflow.domain.payments import (
    ApplicationPaymentSummary,
    summarize,
    validate_amounts,
)
from trademark_workflow.infrastructure.database.orm_models import TrademarkPayment
from trademark_workflow.infrastructure.database.repositories import PaymentRepository
from trademark_workflow.logging_config import get_logger

if TYPE_CHECKING:
    import uuid
    from collections.abc import AsyncIterator

    from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


@asynccontextmanager
async def storage_errors(operation: str) -> AsyncIterator[None]:
    """Re-raise SQLAlchemy failures as StorageError."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("storage.failed", operation=operation, error=str(exc))
        raise StorageError(f"{operation} failed: {exc.__class__.__name__}") from exc


class PaymentLedger:
    """Reads and writes stage payments for applications."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._payment_repo = PaymentRepository(session)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def fetch_payments(self, application_id: uuid.UUID) -> list[TrademarkPayment]:
        """All stage rows for an application, oldest first."""
        async with storage_errors("fetch_payments"):
            return await self._payment_repo.get_by_application(application_id)

    async def get_payment_by_stage(
        self, application_id: uuid.UUID, stage: PaymentStage | str
    ) -> TrademarkPayment | None:
        async with storage_errors("get_payment_by_stage"):
            return await self._payment_repo.get_by_stage(application_id, PaymentStage(stage))

    async def get_payment(self, payment_id: uuid.UUID) -> TrademarkPayment:
        async with storage_errors("get_payment"):
            payment = await self._payment_repo.get_by_id(payment_id)
        if payment is None:
            raise PaymentNotFoundError(str(payment_id))
        return payment

    async def is_stage_completed(
        self, application_id: uuid.UUID, stage: PaymentStage | str
    ) -> bool:
        payment = await self.get_payment_by_stage(application_id, stage)
        return payment is not None and payment.payment_status == PaymentStatus.PAID

    async def get_summary(
        self, application_id: uuid.UUID, now: datetime | None = None
    ) -> ApplicationPaymentSummary:
        payments = await self.fetch_payments(application_id)
        return summarize(payments, now=now)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def request_payment(
        self,
        application_id: uuid.UUID,
        stage: PaymentStage | str,
        amount: Decimal | None,
        due_at: datetime | None = None,
        currency: str = "KRW",
        quote_only: bool = False,
        notes: str | None = None,
    ) -> TrademarkPayment:
        """Open (or re-open) a stage payment as unpaid, or quote_sent when ``quote_only``."""
        stage = PaymentStage(stage)
        validate_amounts(amount, Decimal("0"))
        status = PaymentStatus.QUOTE_SENT if quote_only else PaymentStatus.UNPAID
        now = datetime.now(UTC)

        async with storage_errors("request_payment"):
            payment = await self._payment_repo.get_by_stage(application_id, stage)
            if payment is None:
                payment = await self._payment_repo.create(
                    TrademarkPayment(
                        application_id=application_id,
                        payment_stage=stage.value,
                        payment_status=status.value,
                        amount=amount,
                        paid_amount=Decimal("0"),
                        currency=currency,
                        quote_sent_at=now,
                        due_at=due_at,
                        notes=notes,
                        metadata_json={},
                    )
                )
            elif payment.payment_status == PaymentStatus.PAID:
                logger.warning(
                    "payment.request_on_paid_stage",
                    application_id=str(application_id),
                    stage=stage.value,
                )
                return payment
            else:
                payment.amount = amount
                payment.currency = currency
                payment.due_at = due_at
                payment.payment_status = status.value
                payment.quote_sent_at = now
                if notes is not None:
                    payment.notes = notes
                await self._payment_repo.save(payment)

        logger.info(
            "payment.requested",
            application_id=str(application_id),
            stage=stage.value,
            amount=str(amount) if amount is not None else None,
            status=status.value,
        )
        return payment

    async def record_payment_confirmation(
        self,
        payment_id: uuid.UUID,
        paid_amount: Decimal,
        remitter_name: str | None = None,
        payment_method: str | None = None,
        transaction_reference: str | None = None,
        paid_at: datetime | None = None,
    ) -> tuple[TrademarkPayment, bool]:
        """Record a remittance against a payment.

        Returns ``(payment, newly_paid)``. ``newly_paid`` is True when this
        call moved the row into ``paid``, which is the caller's cue to run the
        payment-completion transition. A row that is already ``paid`` or
        ``refunded`` is settled and refuses further confirmations.
        """
        payment = await self.get_payment(payment_id)
        if payment.payment_status in (PaymentStatus.PAID, PaymentStatus.REFUNDED):
            raise PaymentValidationError(
                f"Payment {payment_id} is already {payment.payment_status}"
            )
        validate_amounts(payment.amount, paid_amount)

        # An unquoted stage is settled by whatever was remitted.
        if payment.amount is None:
            if paid_amount <= 0:
                raise PaymentValidationError(
                    "An unquoted payment needs a positive remitted amount"
                )
            payment.amount = paid_amount

        payment.paid_amount = paid_amount
        payment.remitter_name = remitter_name
        if payment_method is not None:
            payment.payment_method = payment_method
        if transaction_reference is not None:
            payment.transaction_reference = transaction_reference

        if paid_amount >= payment.amount:
            payment.payment_status = PaymentStatus.PAID.value
            payment.paid_at = paid_at or datetime.now(UTC)
        else:
            payment.payment_status = PaymentStatus.PARTIAL.value

        async with storage_errors("record_payment_confirmation"):
            await self._payment_repo.save(payment)

        newly_paid = payment.payment_status == PaymentStatus.PAID
        logger.info(
            "payment.confirmed",
            payment_id=str(payment_id),
            stage=payment.payment_stage,
            status=payment.payment_status,
            paid_amount=str(paid_amount),
            newly_paid=newly_paid,
        )
        return payment, newly_paid
