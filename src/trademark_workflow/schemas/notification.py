"""Pydantic schemas for notifications, reminders and the status registry export."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - pydantic resolves annotations at runtime

from pydantic import BaseModel, Field


class NotificationResultResponse(BaseModel):
    channel: str = Field(..., description='"email", "sms" or "ops-email"')
    target: str | None = None
    success: bool
    attempts: int
    error: str | None = None


class DispatchResponse(BaseModel):
    ok: bool
    results: list[NotificationResultResponse]


class DispatchRequest(BaseModel):
    """A raw status-change event, for callers that own their own event plumbing."""

    application_id: str = Field(..., description="Application that changed")
    to_status: str = Field(..., examples=["awaiting_documents"])
    from_status: str | None = None
    user_id: str | None = Field(default=None, description="Owning profile id")
    brand_name: str | None = None
    management_number: str | None = None
    note: str | None = None
    status_detail: str | None = None
    changed_at: datetime | None = None


class ReminderResultResponse(BaseModel):
    payment_id: str
    success: bool
    error: str | None = None


class ReminderReportResponse(BaseModel):
    sent: int
    failed: int
    total: int
    results: list[ReminderResultResponse]


class StatusMetadataResponse(BaseModel):
    """Display metadata for one status, consumed by the portal and admin UI."""

    key: str
    label: str
    short_label: str | None = None
    help_text: str
    tone: str
    badge: dict[str, str]
    timeline: dict[str, str]
    terminal: bool = False
    allowed_next: list[str] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., examples=["ok"])
    version: str = Field(..., examples=["0.1.0"])
    database: str = Field(..., examples=["healthy"])
    redis: str = Field(..., examples=["healthy"])
