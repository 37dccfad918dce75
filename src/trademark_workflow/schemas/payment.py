"""Pydantic schemas for stage payments and payment summaries."""

from __future__ import annotations

import uuid  # noqa: TC003 - pydantic resolves annotations at runtime
from datetime import datetime  # noqa: TC003
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from trademark_workflow.domain.enums import PaymentStage
from trademark_workflow.schemas.application import TransitionResponse  # noqa: TC001

# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------


class RequestPaymentRequest(BaseModel):
    """Open a stage payment (quote or invoice)."""

    stage: PaymentStage = Field(..., examples=["office_action"])
    amount: Decimal = Field(..., ge=0, description="Quoted amount", examples=[300000])
    currency: str = Field(default="KRW", min_length=3, max_length=3)
    due_at: datetime | None = Field(default=None, description="Payment deadline")
    quote_only: bool = Field(
        default=False,
        description="Record as quote_sent instead of unpaid",
    )
    notes: str | None = Field(default=None, max_length=2000)


class ConfirmPaymentRequest(BaseModel):
    """Record a remittance against a payment."""

    paid_amount: Decimal = Field(..., ge=0, examples=[50000])
    remitter_name: str | None = Field(default=None, max_length=120, examples=["Hong Gildong"])
    payment_method: str | None = Field(default=None, max_length=40, examples=["bank_transfer"])
    transaction_reference: str | None = Field(default=None, max_length=120)
    actor: str | None = Field(default=None, max_length=64, description="Admin id confirming")
    idempotency_key: str | None = Field(
        default=None,
        max_length=200,
        description="Optional key; a repeated key is rejected with 409",
    )


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    application_id: uuid.UUID
    payment_stage: str
    payment_status: str
    amount: Decimal | None
    paid_amount: Decimal
    currency: str
    quote_sent_at: datetime | None
    due_at: datetime | None
    paid_at: datetime | None
    remitter_name: str | None
    payment_method: str | None
    transaction_reference: str | None
    notes: str | None


class StageSummaryResponse(BaseModel):
    stage: str
    status: str
    amount: Decimal | None
    paid_amount: Decimal
    due_at: datetime | None
    is_overdue: bool
    is_paid: bool
    progress: float = Field(..., ge=0, le=100, description="Percent paid, unrounded")
    remaining: Decimal


class PaymentSummaryResponse(BaseModel):
    application_id: uuid.UUID
    filing: StageSummaryResponse | None = None
    office_action: StageSummaryResponse | None = None
    registration: StageSummaryResponse | None = None
    total_amount: Decimal
    total_paid: Decimal
    has_overdue: bool
    all_paid: bool


class ConfirmPaymentResponse(BaseModel):
    """Payment after confirmation, plus the automatic transition if one ran.

    ``transition_error`` is set when the payment was recorded but the
    follow-up status change was refused.
    """

    payment: PaymentResponse
    newly_paid: bool
    transition: TransitionResponse | None = None
    transition_error: dict[str, Any] | None = None
