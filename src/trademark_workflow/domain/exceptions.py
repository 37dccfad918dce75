"""Domain exceptions for the trademark workflow.

These exceptions are framework-agnostic and represent business rule violations.
They are caught and translated to HTTP responses by the API layer's middleware.
"""

from __future__ import annotations


class TrademarkWorkflowError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, code: str = "TRADEMARK_WORKFLOW_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Serialize for the JSON error body."""
        return {"error": self.code, "message": self.message}


# --- Not Found Errors ---


class ApplicationNotFoundError(TrademarkWorkflowError):
    """Raised when an application ID does not exist."""

    def __init__(self, application_id: str) -> None:
        super().__init__(
            message=f"Application not found: {application_id}",
            code="APPLICATION_NOT_FOUND",
        )
        self.application_id = application_id


class PaymentNotFoundError(TrademarkWorkflowError):
    """Raised when a payment ID does not exist."""

    def __init__(self, payment_id: str) -> None:
        super().__init__(
            message=f"Payment not found: {payment_id}",
            code="PAYMENT_NOT_FOUND",
        )
        self.payment_id = payment_id


# --- Transition Errors ---


class InvalidTransitionError(TrademarkWorkflowError):
    """Raised when the target status is not a legal next step.

    Example: submitted -> registered (must go through filing and examination)
    """

    def __init__(self, current_status: str, target_status: str) -> None:
        super().__init__(
            message=f"Invalid status transition: {current_status} -> {target_status}",
            code="INVALID_TRANSITION",
        )
        self.current_status = current_status
        self.target_status = target_status


class PaymentIncompleteError(TrademarkWorkflowError):
    """Raised when a payment-gated status is entered before its stages are paid."""

    def __init__(self, target_status: str, missing_stages: list[str]) -> None:
        super().__init__(
            message=(
                f"Cannot enter {target_status}: "
                f"unpaid payment stages: {', '.join(missing_stages)}"
            ),
            code="PAYMENT_INCOMPLETE",
        )
        self.target_status = target_status
        self.missing_stages = missing_stages

    def to_dict(self) -> dict:
        return {**super().to_dict(), "missing_stages": self.missing_stages}


class MissingMemoError(TrademarkWorkflowError):
    """Raised when a rollback is requested without an explanatory note."""

    def __init__(self, current_status: str, target_status: str) -> None:
        super().__init__(
            message=(
                f"Moving back from {current_status} to {target_status} "
                "requires a note explaining the rollback"
            ),
            code="MISSING_MEMO",
        )
        self.current_status = current_status
        self.target_status = target_status


class ConcurrentTransitionError(TrademarkWorkflowError):
    """Raised when another writer changed the application first."""

    def __init__(self, application_id: str) -> None:
        super().__init__(
            message=f"Application {application_id} was modified concurrently; reload and retry",
            code="CONCURRENT_TRANSITION",
        )
        self.application_id = application_id


# --- Configuration Errors ---


class UnmappedStageError(TrademarkWorkflowError):
    """Raised when a payment stage has no auto-transition target."""

    def __init__(self, stage: str) -> None:
        super().__init__(
            message=f"No auto-transition defined for payment stage: {stage}",
            code="UNMAPPED_STAGE",
        )
        self.stage = stage


class UnsupportedStatusError(TrademarkWorkflowError):
    """Raised when a notification event names an unknown status."""

    def __init__(self, status: str | None) -> None:
        super().__init__(
            message=f"Unsupported status: {status!r}",
            code="UNSUPPORTED_STATUS",
        )
        self.status = status


# --- Payment Errors ---


class PaymentValidationError(TrademarkWorkflowError):
    """Raised when payment amounts are inconsistent."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="PAYMENT_VALIDATION_ERROR")


# --- Infrastructure Errors ---


class StorageError(TrademarkWorkflowError):
    """Raised when the backing store fails (distinct from a missing row)."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="STORAGE_ERROR")


class DeliveryError(TrademarkWorkflowError):
    """Raised by a notification provider when the upstream API rejects a send."""

    def __init__(self, provider: str, status_code: int, body: str = "") -> None:
        super().__init__(
            message=f"{provider} request failed: {status_code} {body}".strip(),
            code="DELIVERY_ERROR",
        )
        self.provider = provider
        self.status_code = status_code


# --- Idempotency Errors ---


class DuplicateOperationError(TrademarkWorkflowError):
    """Raised when a duplicate idempotency key is detected."""

    def __init__(self, idempotency_key: str) -> None:
        super().__init__(
            message=f"Duplicate operation detected for key: {idempotency_key}",
            code="DUPLICATE_OPERATION",
        )
