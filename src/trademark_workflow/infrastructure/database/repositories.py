"""Repository classes for database access.

Repositories encapsulate all SQL queries and provide a clean interface
to the service layer. They accept an AsyncSession and never manage
their own transactions (that's the caller's responsibility).

Status columns and status-log rows are written only through
TransitionExecutor; nothing here exposes a public status setter.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import or_, select

from trademark_workflow.domain.enums import PaymentStatus
from trademark_workflow.infrastructure.database.orm_models import (
    Profile,
    StatusLogEntry,
    TrademarkApplication,
    TrademarkPayment,
)

if TYPE_CHECKING:
    import uuid
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncSession

    from trademark_workflow.domain.enums import PaymentStage


class ApplicationRepository:
    """Data access for trademark applications."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, application: TrademarkApplication) -> TrademarkApplication:
        """Stage a new application; the caller flushes."""
        self._session.add(application)
        return application

    async def get_by_id(self, application_id: uuid.UUID) -> TrademarkApplication | None:
        result = await self._session.execute(
            select(TrademarkApplication).where(TrademarkApplication.id == application_id)
        )
        return result.scalar_one_or_none()

    async def get_for_update(self, application_id: uuid.UUID) -> TrademarkApplication | None:
        """Fetch with a row lock and refresh any identity-map copy.

        SQLite ignores FOR UPDATE; the version column still catches stale writers.
        """
        result = await self._session.execute(
            select(TrademarkApplication)
            .where(TrademarkApplication.id == application_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_by_user(self, user_id: uuid.UUID) -> list[TrademarkApplication]:
        result = await self._session.execute(
            select(TrademarkApplication)
            .where(TrademarkApplication.user_id == user_id)
            .order_by(TrademarkApplication.created_at.desc())
        )
        return list(result.scalars().all())


class StatusLogRepository:
    """Data access for the append-only status log."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def record(self, entry: StatusLogEntry) -> StatusLogEntry:
        """Append an entry and flush everything pending on the session.

        This is the only write this repository offers.
        """
        self._session.add(entry)
        await self._session.flush()
        return entry

    async def get_by_application(self, application_id: uuid.UUID) -> list[StatusLogEntry]:
        """All entries for an application, oldest first."""
        result = await self._session.execute(
            select(StatusLogEntry)
            .where(StatusLogEntry.application_id == application_id)
            .order_by(StatusLogEntry.changed_at.asc(), StatusLogEntry.id.asc())
        )
        return list(result.scalars().all())


class PaymentRepository:
    """Data access for stage payments."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, payment: TrademarkPayment) -> TrademarkPayment:
        self._session.add(payment)
        await self._session.flush()
        return payment

    async def save(self, payment: TrademarkPayment) -> TrademarkPayment:
        """Flush pending changes on an already-loaded payment."""
        await self._session.flush()
        return payment

    async def get_by_id(self, payment_id: uuid.UUID) -> TrademarkPayment | None:
        result = await self._session.execute(
            select(TrademarkPayment).where(TrademarkPayment.id == payment_id)
        )
        return result.scalar_one_or_none()

    async def get_by_application(self, application_id: uuid.UUID) -> list[TrademarkPayment]:
        result = await self._session.execute(
            select(TrademarkPayment)
            .where(TrademarkPayment.application_id == application_id)
            .order_by(TrademarkPayment.created_at.asc())
        )
        return list(result.scalars().all())

    async def get_by_stage(
        self, application_id: uuid.UUID, stage: PaymentStage
    ) -> TrademarkPayment | None:
        result = await self._session.execute(
            select(TrademarkPayment).where(
                TrademarkPayment.application_id == application_id,
                TrademarkPayment.payment_stage == stage.value,
            )
        )
        return result.scalar_one_or_none()

    async def get_due_for_reminder(
        self,
        now: datetime,
        window_end: datetime,
        include_overdue: bool = True,
    ) -> list[TrademarkPayment]:
        """Open payments due before ``window_end`` (and not already overdue unless asked)."""
        due_filter = TrademarkPayment.due_at <= window_end
        if not include_overdue:
            due_filter = due_filter & (TrademarkPayment.due_at >= now)
        result = await self._session.execute(
            select(TrademarkPayment)
            .where(
                TrademarkPayment.due_at.is_not(None),
                TrademarkPayment.payment_status.not_in(
                    [PaymentStatus.PAID.value, PaymentStatus.REFUNDED.value]
                ),
                due_filter,
            )
            .order_by(TrademarkPayment.due_at.asc())
        )
        return list(result.scalars().all())


class ProfileRepository:
    """Read access to customer contact details."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, profile: Profile) -> Profile:
        self._session.add(profile)
        await self._session.flush()
        return profile

    async def get_by_id(self, profile_id: uuid.UUID) -> Profile | None:
        result = await self._session.execute(select(Profile).where(Profile.id == profile_id))
        return result.scalar_one_or_none()

    async def find_contact(self, profile_id: uuid.UUID) -> Profile | None:
        """Profile with at least one usable contact field."""
        result = await self._session.execute(
            select(Profile).where(
                Profile.id == profile_id,
                or_(Profile.email.is_not(None), Profile.phone.is_not(None)),
            )
        )
        return result.scalar_one_or_none()
