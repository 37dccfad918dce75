"""Pydantic schemas for applications, transitions and the status log.

Separate from the ORM models to keep the API contract independent of the
table layout.
"""

from __future__ import annotations

import uuid  # noqa: TC003 - pydantic resolves annotations at runtime
from datetime import datetime  # noqa: TC003
from decimal import Decimal  # noqa: TC003
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from trademark_workflow.schemas.notification import DispatchResponse  # noqa: TC001

# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------


class CreateApplicationRequest(BaseModel):
    """Request body for submitting a new trademark application."""

    user_id: uuid.UUID | None = Field(
        default=None,
        description="Owning customer profile; notifications go to its contacts",
    )
    brand_name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="The mark being applied for",
        examples=["OpenTM"],
    )
    management_number: str | None = Field(
        default=None,
        max_length=40,
        description="Human-facing reference quoted in notifications",
        examples=["TM-2026-00042"],
    )
    payment_amount: Decimal | None = Field(
        default=None,
        ge=0,
        description="Upfront filing fee. A positive amount parks the application in awaiting_payment",
        examples=[50000],
    )
    skip_payment_gate: bool = Field(
        default=False,
        description="Start in awaiting_documents even when a fee is set",
    )
    due_at: datetime | None = Field(
        default=None,
        description="Due date of the filing fee, if one is opened",
    )


class TransitionRequest(BaseModel):
    """Request body for moving an application to another status."""

    target_status: str = Field(
        ...,
        description="ApplicationStatus value to move to",
        examples=["preparing_filing"],
    )
    note: str | None = Field(
        default=None,
        max_length=2000,
        description="Required when moving back to an earlier status",
    )
    metadata: dict[str, Any] | None = Field(
        default=None,
        description="Extra context stored on the status-log entry",
    )
    status_detail: str | None = Field(
        default=None,
        max_length=2000,
        description="Customer-facing detail message",
    )
    actor: str | None = Field(
        default=None,
        max_length=64,
        description="Admin id performing the change",
    )


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------


class ApplicationResponse(BaseModel):
    """Full application details."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID | None
    brand_name: str
    management_number: str | None
    status: str
    status_detail: str | None
    status_updated_at: datetime
    created_at: datetime
    updated_at: datetime
    version: int
    allowed_statuses: list[str] = Field(default_factory=list)


class StatusLogEntryResponse(BaseModel):
    """A single status-log entry."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    application_id: uuid.UUID
    from_status: str | None
    to_status: str
    note: str | None
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="metadata_json")
    changed_by: str | None
    changed_at: datetime


class TransitionResponse(BaseModel):
    """Result of a transition, plus the notification outcome when one was sent."""

    application: ApplicationResponse
    log_entry: StatusLogEntryResponse
    notifications: DispatchResponse | None = None
