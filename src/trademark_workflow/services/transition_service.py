"""Transition Executor: the single writer of application status.

Every status change (admin action, payment automation, application creation)
goes through this module. It checks the transition graph and the payment
gates, enforces rollback notes, then writes the status columns and the
status-log entry in one flush inside the caller's transaction.

It never dispatches notifications. Callers do that once the transition has
been committed.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from trademark_workflow.domain.enums import ApplicationStatus, PaymentStage, PaymentStatus
from trademark_workflow.domain.exceptions import (
    ApplicationNotFoundError,
    ConcurrentTransitionError,
    InvalidTransitionError,
    MissingMemoError,
    PaymentIncompleteError,
    StorageError,
    UnmappedStageError,
)
from trademark_workflow.domain.payments import (
    PAYMENT_COMPLETION_TRANSITIONS,
    STAGE_LABELS,
    STAGE_STATUS_DETAILS,
    get_required_payment_stages,
)
from trademark_workflow.domain.state_machine import (
    allowed_next_statuses,
    can_transition,
    is_rollback,
    resolve_initial_status,
)
from trademark_workflow.infrastructure.database.orm_models import (
    StatusLogEntry,
    TrademarkApplication,
)
from trademark_workflow.infrastructure.database.repositories import (
    ApplicationRepository,
    StatusLogRepository,
)
from trademark_workflow.logging_config import get_logger
from trademark_workflow.services.ledger_service import PaymentLedger, storage_errors

if TYPE_CHECKING:
    import uuid
    from decimal import Decimal

    from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of a committed-in-session status change."""

    application: TrademarkApplication
    log_entry: StatusLogEntry

    @property
    def from_status(self) -> str | None:
        return self.log_entry.from_status

    @property
    def to_status(self) -> str:
        return self.log_entry.to_status


class TransitionExecutor:
    """Validates and applies application status changes."""

    def __init__(self, session: AsyncSession, ledger: PaymentLedger | None = None) -> None:
        self._session = session
        self._application_repo = ApplicationRepository(session)
        self._log_repo = StatusLogRepository(session)
        self._ledger = ledger or PaymentLedger(session)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create_application(
        self,
        user_id: uuid.UUID | None,
        brand_name: str,
        management_number: str | None = None,
        payment_amount: Decimal | None = None,
        skip_payment_gate: bool = False,
        due_at: datetime | None = None,
    ) -> TransitionResult:
        """Create an application in its initial status and write the first log entry.

        When an upfront filing fee applies, the filing payment is opened too.
        """
        initial = resolve_initial_status(payment_amount, skip_payment_gate)
        now = datetime.now(UTC)
        application = TrademarkApplication(
            user_id=user_id,
            brand_name=brand_name,
            management_number=management_number,
            status=initial.value,
            status_updated_at=now,
        )
        async with storage_errors("create_application"):
            await self._application_repo.add(application)
            await self._session.flush()
            entry = await self._log_repo.record(
                StatusLogEntry(
                    application_id=application.id,
                    from_status=None,
                    to_status=initial.value,
                    note=None,
                    metadata_json={"automated": True, "trigger": "application_created"},
                    changed_by=str(user_id) if user_id else None,
                    changed_at=now,
                )
            )

        if initial is ApplicationStatus.AWAITING_PAYMENT:
            await self._ledger.request_payment(
                application.id, PaymentStage.FILING, payment_amount, due_at=due_at
            )

        logger.info(
            "application.created",
            application_id=str(application.id),
            status=initial.value,
            upfront_fee=str(payment_amount) if payment_amount is not None else None,
        )
        return TransitionResult(application=application, log_entry=entry)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def request_transition(
        self,
        application_id: uuid.UUID,
        target_status: ApplicationStatus | str,
        *,
        note: str | None = None,
        actor: str | None = None,
        metadata: dict[str, Any] | None = None,
        status_detail: str | None = None,
    ) -> TransitionResult:
        """Move an application to ``target_status``.

        Raises:
            ApplicationNotFoundError: no such application.
            InvalidTransitionError: the edge is not in the graph.
            PaymentIncompleteError: a required payment stage is not paid.
            MissingMemoError: a rollback without a note.
            ConcurrentTransitionError: another writer changed the row first.
            StorageError: any other database failure.
        """
        async with storage_errors("load_application"):
            application = await self._application_repo.get_for_update(application_id)
        if application is None:
            raise ApplicationNotFoundError(str(application_id))

        current = application.status
        target = ApplicationStatus.parse(target_status)
        if target is None or not can_transition(current, target):
            raise InvalidTransitionError(current, str(target_status))

        missing = await self._missing_payment_stages(application_id, target)
        if missing:
            raise PaymentIncompleteError(target.value, missing)

        if is_rollback(current, target) and not (note and note.strip()):
            raise MissingMemoError(current, target.value)

        entry = await self._apply_status_change(
            application,
            target,
            note=(note or "").strip() or None,
            actor=actor,
            metadata=metadata,
            status_detail=status_detail,
        )

        logger.info(
            "transition.applied",
            application_id=str(application_id),
            from_status=current,
            to_status=target.value,
            automated=entry.metadata_json.get("automated", False),
            actor=actor,
        )
        return TransitionResult(application=application, log_entry=entry)

    async def auto_transition_on_payment_complete(
        self,
        application_id: uuid.UUID,
        stage: PaymentStage | str,
        changed_by: str | None = None,
    ) -> TransitionResult:
        """Advance the application after a stage has been fully paid."""
        try:
            payment_stage = PaymentStage(stage)
        except ValueError:
            raise UnmappedStageError(str(stage)) from None
        target = PAYMENT_COMPLETION_TRANSITIONS.get(payment_stage)
        if target is None:
            raise UnmappedStageError(payment_stage.value)

        return await self.request_transition(
            application_id,
            target,
            note=f"{STAGE_LABELS[payment_stage]} payment received",
            actor=changed_by,
            metadata={
                "automated": True,
                "trigger": "payment_completed",
                "payment_stage": payment_stage.value,
            },
            status_detail=STAGE_STATUS_DETAILS[payment_stage],
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_application(self, application_id: uuid.UUID) -> TrademarkApplication:
        async with storage_errors("get_application"):
            application = await self._application_repo.get_by_id(application_id)
        if application is None:
            raise ApplicationNotFoundError(str(application_id))
        return application

    async def get_status_log(self, application_id: uuid.UUID) -> list[StatusLogEntry]:
        """Ordered history; raises ApplicationNotFoundError for unknown ids."""
        await self.get_application(application_id)
        async with storage_errors("get_status_log"):
            return await self._log_repo.get_by_application(application_id)

    @staticmethod
    def allowed_statuses(application: TrademarkApplication) -> list[str]:
        return [s.value for s in allowed_next_statuses(application.status)]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _missing_payment_stages(
        self, application_id: uuid.UUID, target: ApplicationStatus
    ) -> list[str]:
        required = get_required_payment_stages(target)
        if not required:
            return []
        payments = await self._ledger.fetch_payments(application_id)
        paid = {
            p.payment_stage for p in payments if p.payment_status == PaymentStatus.PAID
        }
        return [stage.value for stage in required if stage.value not in paid]

    async def _apply_status_change(
        self,
        application: TrademarkApplication,
        target: ApplicationStatus,
        *,
        note: str | None,
        actor: str | None,
        metadata: dict[str, Any] | None,
        status_detail: str | None,
    ) -> StatusLogEntry:
        """Write status columns and the log entry in a single flush."""
        now = datetime.now(UTC)
        from_status = application.status
        log_metadata = {"automated": False, **(metadata or {})}

        application.status = target.value
        application.status_updated_at = now
        if status_detail is not None:
            application.status_detail = status_detail
        elif from_status != target.value:
            application.status_detail = None

        entry = StatusLogEntry(
            application_id=application.id,
            from_status=from_status,
            to_status=target.value,
            note=note,
            metadata_json=log_metadata,
            changed_by=actor,
            changed_at=now,
        )
        try:
            return await self._log_repo.record(entry)
        except StaleDataError as exc:
            logger.warning(
                "transition.concurrent_write",
                application_id=str(application.id),
                to_status=target.value,
            )
            raise ConcurrentTransitionError(str(application.id)) from exc
        except SQLAlchemyError as exc:
            logger.error(
                "transition.persist_failed",
                application_id=str(application.id),
                error=str(exc),
            )
            raise StorageError(f"Could not persist transition: {exc.__class__.__name__}") from exc
