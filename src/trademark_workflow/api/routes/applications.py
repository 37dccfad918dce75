"""Trademark application REST API routes.

Status changes are committed before notifications go out, so a customer is
never told about a transition that was rolled back.

Routes:
    POST   /api/v1/applications                          Create an application
    GET    /api/v1/applications/{id}                     Application + allowed next statuses
    GET    /api/v1/applications/{id}/status-log          Ordered status history
    POST   /api/v1/applications/{id}/transition          Change status, then notify
    GET    /api/v1/applications/{id}/payments/summary    Payment summary per stage
    POST   /api/v1/applications/{id}/payments            Open a stage payment
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from trademark_workflow.api.deps import get_db_session, get_dispatcher, get_executor, get_ledger
from trademark_workflow.domain.payments import progress, remaining_amount, summarize_stage
from trademark_workflow.logging_config import get_logger
from trademark_workflow.notifications.dispatcher import NotificationDispatcher
from trademark_workflow.notifications.protocol import DispatchOutcome, StatusChangeEvent
from trademark_workflow.schemas.application import (
    ApplicationResponse,
    CreateApplicationRequest,
    StatusLogEntryResponse,
    TransitionRequest,
    TransitionResponse,
)
from trademark_workflow.schemas.notification import DispatchResponse
from trademark_workflow.schemas.payment import (
    PaymentResponse,
    PaymentSummaryResponse,
    RequestPaymentRequest,
    StageSummaryResponse,
)
from trademark_workflow.services.ledger_service import PaymentLedger
from trademark_workflow.services.transition_service import TransitionExecutor, TransitionResult

router = APIRouter(prefix="/api/v1/applications", tags=["Applications"])
logger = get_logger(__name__)


def application_response(application) -> ApplicationResponse:  # noqa: ANN001
    response = ApplicationResponse.model_validate(application)
    return response.model_copy(
        update={"allowed_statuses": TransitionExecutor.allowed_statuses(application)}
    )


def build_transition_response(
    result: TransitionResult, outcome: DispatchOutcome | None = None
) -> TransitionResponse:
    return TransitionResponse(
        application=application_response(result.application),
        log_entry=StatusLogEntryResponse.model_validate(result.log_entry),
        notifications=DispatchResponse.model_validate(outcome.to_dict()) if outcome else None,
    )


async def commit_and_notify(
    session: AsyncSession,
    dispatcher: NotificationDispatcher,
    result: TransitionResult,
) -> DispatchOutcome:
    """Make the transition durable, then dispatch exactly once for it."""
    await session.commit()
    outcome = await dispatcher.dispatch(StatusChangeEvent.from_transition(result))
    if outcome.failed:
        logger.warning(
            "notification.all_channels_failed",
            application_id=str(result.application.id),
            to_status=result.to_status,
        )
    return outcome


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


@router.post(
    "",
    response_model=TransitionResponse,
    status_code=201,
    summary="Submit a new trademark application",
)
async def create_application(
    request: CreateApplicationRequest,
    session: AsyncSession = Depends(get_db_session),
    executor: TransitionExecutor = Depends(get_executor),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> TransitionResponse:
    """Create the application in its initial status and notify the owner."""
    result = await executor.create_application(
        user_id=request.user_id,
        brand_name=request.brand_name,
        management_number=request.management_number,
        payment_amount=request.payment_amount,
        skip_payment_gate=request.skip_payment_gate,
        due_at=request.due_at,
    )
    outcome = await commit_and_notify(session, dispatcher, result)
    return build_transition_response(result, outcome)


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------


@router.get(
    "/{application_id}",
    response_model=ApplicationResponse,
    summary="Get application details",
)
async def get_application(
    application_id: uuid.UUID,
    executor: TransitionExecutor = Depends(get_executor),
) -> ApplicationResponse:
    application = await executor.get_application(application_id)
    return application_response(application)


@router.get(
    "/{application_id}/status-log",
    response_model=list[StatusLogEntryResponse],
    summary="Get the status history",
)
async def get_status_log(
    application_id: uuid.UUID,
    executor: TransitionExecutor = Depends(get_executor),
) -> list[StatusLogEntryResponse]:
    """Oldest first; the last entry's to_status is the current status."""
    entries = await executor.get_status_log(application_id)
    return [StatusLogEntryResponse.model_validate(e) for e in entries]


# ---------------------------------------------------------------------------
# Transition
# ---------------------------------------------------------------------------


@router.post(
    "/{application_id}/transition",
    response_model=TransitionResponse,
    summary="Change the application status",
)
async def transition_application(
    application_id: uuid.UUID,
    request: TransitionRequest,
    session: AsyncSession = Depends(get_db_session),
    executor: TransitionExecutor = Depends(get_executor),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> TransitionResponse:
    """Apply a status change and send the status notification.

    Errors: 404 unknown application, 409 invalid edge / unpaid stage /
    concurrent change, 422 rollback without a note.
    """
    result = await executor.request_transition(
        application_id,
        request.target_status,
        note=request.note,
        actor=request.actor,
        metadata=request.metadata,
        status_detail=request.status_detail,
    )
    outcome = await commit_and_notify(session, dispatcher, result)
    return build_transition_response(result, outcome)


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------


@router.get(
    "/{application_id}/payments/summary",
    response_model=PaymentSummaryResponse,
    summary="Get the payment summary",
)
async def get_payment_summary(
    application_id: uuid.UUID,
    executor: TransitionExecutor = Depends(get_executor),
    ledger: PaymentLedger = Depends(get_ledger),
) -> PaymentSummaryResponse:
    await executor.get_application(application_id)
    payments = await ledger.fetch_payments(application_id)
    summary = await ledger.get_summary(application_id)

    stages: dict[str, StageSummaryResponse] = {}
    for payment in payments:
        stage_summary = summarize_stage(payment)
        stages[stage_summary.stage.value] = StageSummaryResponse(
            stage=stage_summary.stage.value,
            status=stage_summary.status.value,
            amount=stage_summary.amount,
            paid_amount=stage_summary.paid_amount,
            due_at=stage_summary.due_at,
            is_overdue=stage_summary.is_overdue,
            is_paid=stage_summary.is_paid,
            progress=progress(payment),
            remaining=remaining_amount(payment),
        )

    return PaymentSummaryResponse(
        application_id=application_id,
        filing=stages.get("filing"),
        office_action=stages.get("office_action"),
        registration=stages.get("registration"),
        total_amount=summary.total_amount,
        total_paid=summary.total_paid,
        has_overdue=summary.has_overdue,
        all_paid=summary.all_paid,
    )


@router.post(
    "/{application_id}/payments",
    response_model=PaymentResponse,
    status_code=201,
    summary="Open a stage payment",
)
async def request_payment(
    application_id: uuid.UUID,
    request: RequestPaymentRequest,
    executor: TransitionExecutor = Depends(get_executor),
    ledger: PaymentLedger = Depends(get_ledger),
) -> PaymentResponse:
    await executor.get_application(application_id)
    payment = await ledger.request_payment(
        application_id,
        request.stage,
        request.amount,
        due_at=request.due_at,
        currency=request.currency,
        quote_only=request.quote_only,
        notes=request.notes,
    )
    return PaymentResponse.model_validate(payment)
