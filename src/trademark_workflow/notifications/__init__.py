"""Status-change notifications: templates, retrying delivery and providers.

Two providers:
    - ResendEmailProvider:  Email via the Resend REST API
    - TwilioSmsProvider:    SMS via the Twilio Messages API

NotificationDispatcher picks channels from the status template and reports
one NotificationResult per channel (plus "ops-email" for escalations).
"""

from trademark_workflow.notifications.dispatcher import NotificationDispatcher
from trademark_workflow.notifications.email import ResendEmailProvider
from trademark_workflow.notifications.protocol import (
    DispatchOutcome,
    NotificationResult,
    Recipient,
    StatusChangeEvent,
)
from trademark_workflow.notifications.sms import TwilioSmsProvider

__all__ = [
    "DispatchOutcome",
    "NotificationDispatcher",
    "NotificationResult",
    "Recipient",
    "ResendEmailProvider",
    "StatusChangeEvent",
    "TwilioSmsProvider",
]
