"""Payment confirmation route.

Routes:
    POST /api/v1/payments/{payment_id}/confirm   Record a remittance

A confirmation that settles a stage triggers the stage's automatic status
change. The payment is committed first; if the status change is refused the
payment stays recorded and the refusal is reported in ``transition_error``.
"""

from __future__ import annotations

import uuid

import redis.asyncio as aioredis  # noqa: TC002
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from trademark_workflow.api.deps import (
    get_db_session,
    get_dispatcher,
    get_executor,
    get_ledger,
    get_redis_client,
)
from trademark_workflow.api.routes.applications import build_transition_response, commit_and_notify
from trademark_workflow.domain.exceptions import (
    DuplicateOperationError,
    StorageError,
    TrademarkWorkflowError,
)
from trademark_workflow.infrastructure.redis_client import claim_idempotency, release_idempotency
from trademark_workflow.logging_config import get_logger
from trademark_workflow.notifications.dispatcher import NotificationDispatcher
from trademark_workflow.schemas.payment import (
    ConfirmPaymentRequest,
    ConfirmPaymentResponse,
    PaymentResponse,
)
from trademark_workflow.services.ledger_service import PaymentLedger
from trademark_workflow.services.transition_service import TransitionExecutor

router = APIRouter(prefix="/api/v1/payments", tags=["Payments"])
logger = get_logger(__name__)


@router.post(
    "/{payment_id}/confirm",
    response_model=ConfirmPaymentResponse,
    summary="Confirm a payment",
)
async def confirm_payment(
    payment_id: uuid.UUID,
    request: ConfirmPaymentRequest,
    session: AsyncSession = Depends(get_db_session),
    ledger: PaymentLedger = Depends(get_ledger),
    executor: TransitionExecutor = Depends(get_executor),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    redis: aioredis.Redis | None = Depends(get_redis_client),
) -> ConfirmPaymentResponse:
    """Record a remittance and, if it settles the stage, advance the application."""
    idempotency_key = None
    if request.idempotency_key:
        if redis is None:
            raise StorageError("Idempotency store unavailable")
        idempotency_key = f"payment-confirm:{request.idempotency_key}"
        if not await claim_idempotency(redis, idempotency_key, str(payment_id)):
            raise DuplicateOperationError(request.idempotency_key)

    try:
        payment, newly_paid = await ledger.record_payment_confirmation(
            payment_id,
            request.paid_amount,
            remitter_name=request.remitter_name,
            payment_method=request.payment_method,
            transaction_reference=request.transaction_reference,
        )
        await session.commit()
    except Exception:
        if idempotency_key and redis is not None:
            await release_idempotency(redis, idempotency_key)
        raise

    response = ConfirmPaymentResponse(
        payment=PaymentResponse.model_validate(payment),
        newly_paid=newly_paid,
    )
    if not newly_paid:
        return response

    try:
        result = await executor.auto_transition_on_payment_complete(
            payment.application_id,
            payment.payment_stage,
            changed_by=request.actor,
        )
    except TrademarkWorkflowError as exc:
        await session.rollback()
        logger.warning(
            "payment.auto_transition_refused",
            payment_id=str(payment_id),
            application_id=str(response.payment.application_id),
            code=exc.code,
            error=exc.message,
        )
        return response.model_copy(update={"transition_error": exc.to_dict()})

    outcome = await commit_and_notify(session, dispatcher, result)
    return response.model_copy(update={"transition": build_transition_response(result, outcome)})
