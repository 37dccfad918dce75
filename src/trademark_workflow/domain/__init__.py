"""Domain layer: statuses, transition rules and payment maths. No framework imports."""

from trademark_workflow.domain.enums import (
    ApplicationStatus,
    NotificationChannel,
    PaymentStage,
    PaymentStatus,
)
from trademark_workflow.domain.exceptions import (
    ApplicationNotFoundError,
    InvalidTransitionError,
    PaymentIncompleteError,
    TrademarkWorkflowError,
)
from trademark_workflow.domain.payments import (
    PAYMENT_COMPLETION_TRANSITIONS,
    get_required_payment_stages,
    summarize,
)
from trademark_workflow.domain.state_machine import (
    ApplicationStateMachine,
    can_transition,
    is_rollback,
    resolve_initial_status,
)
from trademark_workflow.domain.status_registry import (
    get_notification_template,
    get_status_metadata,
)

__all__ = [
    "ApplicationStatus",
    "NotificationChannel",
    "PaymentStage",
    "PaymentStatus",
    "ApplicationNotFoundError",
    "InvalidTransitionError",
    "PaymentIncompleteError",
    "TrademarkWorkflowError",
    "PAYMENT_COMPLETION_TRANSITIONS",
    "get_required_payment_stages",
    "summarize",
    "ApplicationStateMachine",
    "can_transition",
    "is_rollback",
    "resolve_initial_status",
    "get_notification_template",
    "get_status_metadata",
]
