"""Payment rules: stage gating, auto-transition targets and ledger maths.

Everything here is pure. The functions accept any object exposing the
payment columns (an ORM row or a plain dataclass), so they can run on
loaded rows without touching the session.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import Protocol

from trademark_workflow.domain.enums import ApplicationStatus, PaymentStage, PaymentStatus
from trademark_workflow.domain.exceptions import PaymentValidationError

S = ApplicationStatus
ZERO = Decimal("0")


class PaymentLike(Protocol):
    payment_stage: str
    payment_status: str
    amount: Decimal | None
    paid_amount: Decimal
    due_at: datetime | None


# ---------------------------------------------------------------------------
# Static tables
# ---------------------------------------------------------------------------

# Statuses that may only be entered once the listed stages are paid.
PAYMENT_GATES: dict[ApplicationStatus, tuple[PaymentStage, ...]] = {
    S.PAYMENT_RECEIVED: (PaymentStage.FILING,),
    S.RESPONDING_TO_OFFICE_ACTION: (PaymentStage.OFFICE_ACTION,),
    S.REGISTRATION_FEE_PAID: (PaymentStage.REGISTRATION,),
    S.REGISTERED: (PaymentStage.REGISTRATION,),
}

# Where an application moves once a stage is fully paid.
PAYMENT_COMPLETION_TRANSITIONS: dict[PaymentStage, ApplicationStatus] = {
    PaymentStage.FILING: S.PAYMENT_RECEIVED,
    PaymentStage.OFFICE_ACTION: S.RESPONDING_TO_OFFICE_ACTION,
    PaymentStage.REGISTRATION: S.REGISTRATION_FEE_PAID,
}

STAGE_LABELS: dict[PaymentStage, str] = {
    PaymentStage.FILING: "Filing fee",
    PaymentStage.OFFICE_ACTION: "Office action response fee",
    PaymentStage.REGISTRATION: "Registration fee",
}

STAGE_STATUS_DETAILS: dict[PaymentStage, str] = {
    PaymentStage.FILING: "Filing fee payment confirmed. Collecting applicant information.",
    PaymentStage.OFFICE_ACTION: "Office action response fee confirmed. Preparing the response.",
    PaymentStage.REGISTRATION: "Registration fee confirmed. We will remit it to the trademark office.",
}

_SETTLED_STATUSES = frozenset({PaymentStatus.PAID, PaymentStatus.REFUNDED})


def get_required_payment_stages(status: ApplicationStatus | str) -> list[PaymentStage]:
    """Stages that must be paid before ``status`` may be entered."""
    parsed = ApplicationStatus.parse(status)
    if parsed is None:
        return []
    return list(PAYMENT_GATES.get(parsed, ()))


# ---------------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PaymentStageSummary:
    stage: PaymentStage
    status: PaymentStatus
    amount: Decimal | None
    paid_amount: Decimal
    due_at: datetime | None
    is_overdue: bool
    is_paid: bool


@dataclass(frozen=True)
class ApplicationPaymentSummary:
    filing: PaymentStageSummary | None
    office_action: PaymentStageSummary | None
    registration: PaymentStageSummary | None
    total_amount: Decimal
    total_paid: Decimal
    has_overdue: bool
    all_paid: bool

    def stages(self) -> list[PaymentStageSummary]:
        return [s for s in (self.filing, self.office_action, self.registration) if s is not None]


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they are stored as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _decimal(value: Decimal | int | float | str | None) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def is_overdue(payment: PaymentLike, now: datetime | None = None) -> bool:
    """A payment is overdue when its due date passed and it is not paid."""
    if payment.due_at is None:
        return False
    if payment.payment_status == PaymentStatus.PAID:
        return False
    now = now or datetime.now(UTC)
    return _as_utc(now) > _as_utc(payment.due_at)


def summarize_stage(payment: PaymentLike, now: datetime | None = None) -> PaymentStageSummary:
    return PaymentStageSummary(
        stage=PaymentStage(payment.payment_stage),
        status=PaymentStatus(payment.payment_status),
        amount=None if payment.amount is None else _decimal(payment.amount),
        paid_amount=_decimal(payment.paid_amount),
        due_at=payment.due_at,
        is_overdue=is_overdue(payment, now),
        is_paid=payment.payment_status == PaymentStatus.PAID,
    )


def summarize(payments: list[PaymentLike], now: datetime | None = None) -> ApplicationPaymentSummary:
    """Aggregate stage rows into an application summary.

    ``all_paid`` stays true for an empty list and only flips when a row is
    neither paid nor refunded.
    """
    now = now or datetime.now(UTC)
    by_stage: dict[PaymentStage, PaymentStageSummary] = {}
    total_amount = ZERO
    total_paid = ZERO
    has_overdue = False
    all_paid = True

    for payment in payments:
        stage_summary = summarize_stage(payment, now)
        by_stage[stage_summary.stage] = stage_summary
        total_amount += stage_summary.amount or ZERO
        total_paid += stage_summary.paid_amount
        has_overdue = has_overdue or stage_summary.is_overdue
        if stage_summary.status not in _SETTLED_STATUSES:
            all_paid = False

    return ApplicationPaymentSummary(
        filing=by_stage.get(PaymentStage.FILING),
        office_action=by_stage.get(PaymentStage.OFFICE_ACTION),
        registration=by_stage.get(PaymentStage.REGISTRATION),
        total_amount=total_amount,
        total_paid=total_paid,
        has_overdue=has_overdue,
        all_paid=all_paid,
    )


def progress(payment: PaymentLike) -> float:
    """Percentage paid, clamped to [0, 100] and not rounded. Zero when no amount is quoted."""
    amount = _decimal(payment.amount)
    if amount <= 0:
        return 0.0
    ratio = _decimal(payment.paid_amount) / amount * 100
    return float(min(max(ratio, ZERO), Decimal(100)))


def remaining_amount(payment: PaymentLike) -> Decimal:
    if payment.amount is None:
        return ZERO
    return max(_decimal(payment.amount) - _decimal(payment.paid_amount), ZERO)


def validate_amounts(
    amount: Decimal | int | float | str | None,
    paid_amount: Decimal | int | float | str | None,
) -> None:
    """Reject negative values and overpayment."""
    paid = _decimal(paid_amount)
    if paid < 0:
        raise PaymentValidationError("Paid amount must be zero or greater")
    if amount is None:
        return
    quoted = _decimal(amount)
    if quoted < 0:
        raise PaymentValidationError("Payment amount must be zero or greater")
    if paid > quoted:
        raise PaymentValidationError(
            f"Paid amount {paid} exceeds the quoted amount {quoted}"
        )
