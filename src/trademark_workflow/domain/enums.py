"""Domain enumerations for the trademark workflow.

These enums define the canonical states and types used throughout the system.
They are framework-agnostic (no SQLAlchemy, no FastAPI imports).
"""

import enum


class ApplicationStatus(enum.StrEnum):
    """Lifecycle states of a trademark application.

    Legal moves between them are guarded by the ApplicationStateMachine.
    See domain/state_machine.py for the transition table.
    """

    # Intake
    SUBMITTED = "submitted"
    AWAITING_PAYMENT = "awaiting_payment"
    PAYMENT_RECEIVED = "payment_received"
    AWAITING_APPLICANT_INFO = "awaiting_applicant_info"
    AWAITING_DOCUMENTS = "awaiting_documents"

    # Filing
    PREPARING_FILING = "preparing_filing"
    AWAITING_CLIENT_SIGNATURE = "awaiting_client_signature"
    FILED = "filed"

    # Accelerated examination (not wired into the transition graph yet)
    AWAITING_ACCELERATION = "awaiting_acceleration"
    PREPARING_ACCELERATION = "preparing_acceleration"

    # Examination
    UNDER_EXAMINATION = "under_examination"
    AWAITING_OFFICE_ACTION = "awaiting_office_action"
    RESPONDING_TO_OFFICE_ACTION = "responding_to_office_action"
    PUBLICATION_ANNOUNCED = "publication_announced"

    # Registration
    REGISTRATION_DECIDED = "registration_decided"
    AWAITING_REGISTRATION_FEE = "awaiting_registration_fee"
    REGISTRATION_FEE_PAID = "registration_fee_paid"

    # Terminal
    REGISTERED = "registered"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    WITHDRAWN = "withdrawn"

    @classmethod
    def parse(cls, value: object) -> "ApplicationStatus | None":
        """Normalise a raw value (enum, padded/upper-case string) or return None."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


TERMINAL_STATUSES: frozenset[ApplicationStatus] = frozenset(
    {
        ApplicationStatus.REGISTERED,
        ApplicationStatus.REJECTED,
        ApplicationStatus.CANCELLED,
        ApplicationStatus.WITHDRAWN,
    }
)


class PaymentStage(enum.StrEnum):
    """The three fee checkpoints in an application's life."""

    FILING = "filing"
    OFFICE_ACTION = "office_action"
    REGISTRATION = "registration"


class PaymentStatus(enum.StrEnum):
    """Stored state of a single stage payment.

    Only PAID is consumed by transition gating. OVERDUE may be stored by
    admins, but overdue-ness is always derived from due_at on read.
    """

    NOT_REQUESTED = "not_requested"
    QUOTE_SENT = "quote_sent"
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"
    OVERDUE = "overdue"
    REFUND_REQUESTED = "refund_requested"
    REFUNDED = "refunded"


class NotificationChannel(enum.StrEnum):
    """Customer-facing delivery channels declared by templates."""

    EMAIL = "email"
    SMS = "sms"


# Result-only channel for the operations escalation mail.
OPS_EMAIL_CHANNEL = "ops-email"


class StatusTone(enum.StrEnum):
    """Visual tone used by badges and timelines."""

    NEUTRAL = "neutral"
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    DANGER = "danger"
