"""Pydantic API schemas."""

from trademark_workflow.schemas.application import (
    ApplicationResponse,
    CreateApplicationRequest,
    StatusLogEntryResponse,
    TransitionRequest,
    TransitionResponse,
)
from trademark_workflow.schemas.notification import (
    DispatchRequest,
    DispatchResponse,
    HealthResponse,
    ReminderReportResponse,
    StatusMetadataResponse,
)
from trademark_workflow.schemas.payment import (
    ConfirmPaymentRequest,
    ConfirmPaymentResponse,
    PaymentResponse,
    PaymentSummaryResponse,
    RequestPaymentRequest,
)

__all__ = [
    "ApplicationResponse",
    "ConfirmPaymentRequest",
    "ConfirmPaymentResponse",
    "CreateApplicationRequest",
    "DispatchRequest",
    "DispatchResponse",
    "HealthResponse",
    "PaymentResponse",
    "PaymentSummaryResponse",
    "ReminderReportResponse",
    "RequestPaymentRequest",
    "StatusLogEntryResponse",
    "StatusMetadataResponse",
    "TransitionRequest",
    "TransitionResponse",
]
