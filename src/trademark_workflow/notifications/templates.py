"""Template rendering for status notifications.

``{{key}}`` tokens are replaced from a flat context dict. Unknown keys render
as an empty string; rendering never raises.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from trademark_workflow.domain.status_registry import get_status_metadata

if TYPE_CHECKING:
    from trademark_workflow.notifications.protocol import Recipient, StatusChangeEvent

_TOKEN = re.compile(r"\{\{\s*(\w+)\s*\}\}")

DEFAULT_DISPLAY_NAME = "Customer"


def render_template(template: str | None, context: dict[str, str]) -> str:
    if not template:
        return ""
    return _TOKEN.sub(lambda match: context.get(match.group(1), "") or "", template)


def to_html(text: str) -> str:
    """Escape the three HTML-significant characters and keep line breaks."""
    escaped = text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
    return escaped.replace("\n", "<br/>")


def format_changed_at(value: datetime | None) -> str:
    value = value or datetime.now(UTC)
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).strftime("%Y-%m-%d %H:%M UTC")


def build_context(
    event: StatusChangeEvent,
    recipient: Recipient | None,
    portal_url: str,
) -> dict[str, str]:
    metadata = get_status_metadata(event.to_status)
    return {
        "brandName": event.brand_name or "",
        "managementNumber": event.management_number or "",
        "status": event.to_status,
        "statusLabel": metadata.label,
        "statusHelpText": metadata.help_text,
        "statusDetail": event.status_detail or "",
        "portalUrl": portal_url,
        "changedAt": format_changed_at(event.changed_at),
        "displayName": (recipient.name if recipient and recipient.name else DEFAULT_DISPLAY_NAME),
    }


def build_ops_summary(event: StatusChangeEvent, context: dict[str, str]) -> tuple[str, str]:
    """Subject and plaintext body for the operations escalation mail."""
    subject = f"[OpenTM][ops] {context['statusLabel']} - {context['brandName'] or event.application_id}"
    lines = [
        f"Status: {context['statusLabel']} ({event.to_status})",
        f"Brand: {context['brandName'] or '-'}",
        f"Management no.: {context['managementNumber'] or '-'}",
        f"Changed at: {context['changedAt']}",
        f"Note: {event.note or '-'}",
        f"Detail: {event.status_detail or '-'}",
        f"Link: {context['portalUrl']}",
    ]
    return subject, "\n".join(lines)
