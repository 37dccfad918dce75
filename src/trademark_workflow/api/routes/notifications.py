"""Notification routes.

Routes:
    POST /api/v1/notifications/dispatch            Send the templates for a status event
    POST /api/v1/notifications/payment-reminders   Email owners of due or overdue payments
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from trademark_workflow.api.deps import get_app_settings, get_db_session, get_dispatcher
from trademark_workflow.config import Settings
from trademark_workflow.logging_config import get_logger
from trademark_workflow.notifications.dispatcher import NotificationDispatcher
from trademark_workflow.notifications.protocol import StatusChangeEvent
from trademark_workflow.schemas.notification import (
    DispatchRequest,
    DispatchResponse,
    ReminderReportResponse,
)
from trademark_workflow.services.reminder_service import PaymentReminderService

router = APIRouter(prefix="/api/v1/notifications", tags=["Notifications"])
logger = get_logger(__name__)


@router.post(
    "/dispatch",
    response_model=DispatchResponse,
    summary="Dispatch status notifications",
    responses={500: {"model": DispatchResponse, "description": "Every customer channel failed"}},
)
async def dispatch_notification(
    request: DispatchRequest,
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> DispatchResponse | JSONResponse:
    """Render and send the templates registered for ``to_status``.

    Returns 422 for an unknown status, 500 when no customer channel
    succeeded, 200 otherwise. Per-channel results are always included.
    """
    event = StatusChangeEvent(**request.model_dump())
    outcome = await dispatcher.dispatch(event)
    body = DispatchResponse.model_validate(outcome.to_dict())
    if outcome.failed:
        return JSONResponse(status_code=500, content=body.model_dump(mode="json"))
    return body


@router.post(
    "/payment-reminders",
    response_model=ReminderReportResponse,
    summary="Send payment reminders",
)
async def send_payment_reminders(
    days_before_due: int | None = Query(default=None, ge=0, le=60),
    include_overdue: bool = Query(default=True),
    session: AsyncSession = Depends(get_db_session),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    settings: Settings = Depends(get_app_settings),
) -> ReminderReportResponse:
    service = PaymentReminderService(session, dispatcher, settings.status_portal_url)
    report = await service.send_reminders(
        days_before_due=(
            days_before_due
            if days_before_due is not None
            else settings.payment_reminder_days_before_due
        ),
        include_overdue=include_overdue,
    )
    return ReminderReportResponse.model_validate(report.to_dict())
