"""SQLAlchemy 2.0 ORM models for the trademark workflow.

Four tables:
    1. profiles                 - Customer contact details (notification recipients).
    2. trademark_applications   - One row per application, carrying the current status.
    3. trademark_status_logs    - Append-only history of every status change.
    4. trademark_payments       - One row per application x payment stage.

Column types are portable (Uuid, JSON with a JSONB variant) so the same
models run on PostgreSQL/asyncpg in production and SQLite/aiosqlite in tests.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from decimal import Decimal  # noqa: TC003 - needed at runtime by SQLAlchemy Mapped[]

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    event,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from trademark_workflow.domain.enums import ApplicationStatus, PaymentStage, PaymentStatus

JSONType = JSON().with_variant(JSONB(), "postgresql")


def _in_list(column: str, values: list[str]) -> str:
    quoted = ", ".join(f"'{v}'" for v in values)
    return f"{column} IN ({quoted})"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def _set_updated_at(mapper, connection, target):  # noqa: ANN001
    """SQLAlchemy event listener that updates `updated_at` before flush."""
    if hasattr(target, "updated_at"):
        target.updated_at = _utcnow()


# ---------------------------------------------------------------------------
# 1. profiles
# ---------------------------------------------------------------------------
class Profile(Base):
    """Customer contact record. Only read to resolve notification recipients."""

    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    name: Mapped[str | None] = mapped_column(String(120), nullable=True)

    def __repr__(self) -> str:
        return f"<Profile id={self.id} name={self.name}>"


# ---------------------------------------------------------------------------
# 2. trademark_applications
# ---------------------------------------------------------------------------
class TrademarkApplication(Base):
    """A customer's trademark application and its current workflow status."""

    __tablename__ = "trademark_applications"

    # --- Primary Key ---
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # --- Owner ---
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
        comment="Owning customer profile",
    )

    # --- Mark ---
    brand_name: Mapped[str] = mapped_column(String(200), nullable=False)
    management_number: Mapped[str | None] = mapped_column(
        String(40),
        nullable=True,
        comment="Human-facing reference quoted in notifications",
    )

    # --- Status (written only by TransitionExecutor) ---
    status: Mapped[str] = mapped_column(
        String(40),
        nullable=False,
        default=ApplicationStatus.SUBMITTED.value,
        comment="Current lifecycle state (guarded by ApplicationStateMachine)",
    )
    status_detail: Mapped[str | None] = mapped_column(Text, nullable=True)
    status_updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    # --- Optimistic concurrency ---
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # --- Timestamps ---
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        CheckConstraint(
            _in_list("status", [s.value for s in ApplicationStatus]),
            name="ck_application_valid_status",
        ),
        Index("idx_application_status", "status"),
        Index("idx_application_user", "user_id"),
        Index("idx_application_management_number", "management_number"),
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return (
            f"<TrademarkApplication id={self.id} brand={self.brand_name!r} "
            f"status={self.status}>"
        )


# ---------------------------------------------------------------------------
# 3. trademark_status_logs (append-only)
# ---------------------------------------------------------------------------
class StatusLogEntry(Base):
    """Immutable record of one status change. Never updated or deleted."""

    __tablename__ = "trademark_status_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    application_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("trademark_applications.id", ondelete="CASCADE"),
        nullable=False,
    )

    from_status: Mapped[str | None] = mapped_column(
        String(40),
        nullable=True,
        comment="Null only on the entry written at creation",
    )
    to_status: Mapped[str] = mapped_column(String(40), nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    metadata_json: Mapped[dict] = mapped_column(
        "metadata",
        JSONType,
        nullable=False,
        default=dict,
        comment='Always has "automated"; automated entries also carry "trigger"',
    )
    changed_by: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        comment="Actor id; null means the system",
    )
    changed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (
        Index("idx_status_log_application", "application_id", "changed_at", "id"),
    )

    def __repr__(self) -> str:
        return (
            f"<StatusLogEntry id={self.id} application={self.application_id} "
            f"{self.from_status}->{self.to_status}>"
        )


# ---------------------------------------------------------------------------
# 4. trademark_payments
# ---------------------------------------------------------------------------
class TrademarkPayment(Base):
    """Fee record for one stage of one application."""

    __tablename__ = "trademark_payments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    application_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("trademark_applications.id", ondelete="CASCADE"),
        nullable=False,
    )

    payment_stage: Mapped[str] = mapped_column(String(20), nullable=False)
    payment_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PaymentStatus.NOT_REQUESTED.value,
        comment="Only 'paid' is consumed by transition gating",
    )

    # --- Amounts ---
    amount: Mapped[Decimal | None] = mapped_column(
        Numeric(14, 2), nullable=True, comment="Null until quoted"
    )
    paid_amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="KRW")

    # --- Dates ---
    quote_sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    due_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # --- Remittance ---
    remitter_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    payment_method: Mapped[str | None] = mapped_column(String(40), nullable=True)
    transaction_reference: Mapped[str | None] = mapped_column(String(120), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    metadata_json: Mapped[dict] = mapped_column(
        "metadata", JSONType, nullable=False, default=dict
    )

    # --- Timestamps ---
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        UniqueConstraint("application_id", "payment_stage", name="uq_payment_application_stage"),
        CheckConstraint(
            _in_list("payment_stage", [s.value for s in PaymentStage]),
            name="ck_payment_valid_stage",
        ),
        CheckConstraint(
            _in_list("payment_status", [s.value for s in PaymentStatus]),
            name="ck_payment_valid_status",
        ),
        CheckConstraint("paid_amount >= 0", name="ck_payment_non_negative_paid"),
        Index("idx_payment_due_at", "due_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<TrademarkPayment id={self.id} stage={self.payment_stage} "
            f"status={self.payment_status} {self.paid_amount}/{self.amount} {self.currency}>"
        )


event.listen(TrademarkApplication, "before_update", _set_updated_at)
event.listen(TrademarkPayment, "before_update", _set_updated_at)
