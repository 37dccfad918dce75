"""Application services: status transitions, the payment ledger and reminders."""

from trademark_workflow.services.ledger_service import PaymentLedger
from trademark_workflow.services.reminder_service import PaymentReminderService
from trademark_workflow.services.transition_service import TransitionExecutor, TransitionResult

__all__ = ["PaymentLedger", "PaymentReminderService", "TransitionExecutor", "TransitionResult"]
