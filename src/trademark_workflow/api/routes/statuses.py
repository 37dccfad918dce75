"""Status registry export for the customer portal and admin UI."""

from __future__ import annotations

from fastapi import APIRouter

from trademark_workflow.domain.enums import TERMINAL_STATUSES, ApplicationStatus
from trademark_workflow.domain.state_machine import allowed_next_statuses
from trademark_workflow.domain.status_registry import get_status_metadata
from trademark_workflow.schemas.notification import StatusMetadataResponse

router = APIRouter(prefix="/api/v1/statuses", tags=["Statuses"])


@router.get(
    "",
    response_model=list[StatusMetadataResponse],
    summary="List every status with its display metadata",
)
async def list_statuses() -> list[StatusMetadataResponse]:
    return [
        StatusMetadataResponse(
            **get_status_metadata(status).to_dict(),
            terminal=status in TERMINAL_STATUSES,
            allowed_next=[s.value for s in allowed_next_statuses(status)],
        )
        for status in ApplicationStatus
    ]
