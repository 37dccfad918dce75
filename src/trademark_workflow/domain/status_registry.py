"""Status Registry: display metadata and notification templates per status.

Pure lookup tables. Both are exhaustive over ApplicationStatus; a missing entry
fails at import time rather than silently falling through to a default.

Templates use ``{{placeholder}}`` tokens rendered by notifications/templates.py.
Available keys: brandName, managementNumber, status, statusLabel,
statusHelpText, statusDetail, portalUrl, changedAt, displayName.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from trademark_workflow.domain.enums import (
    ApplicationStatus,
    NotificationChannel,
    StatusTone,
)

S = ApplicationStatus
EMAIL = NotificationChannel.EMAIL
SMS = NotificationChannel.SMS


@dataclass(frozen=True)
class StatusBadge:
    background_class: str
    dot_class: str


@dataclass(frozen=True)
class StatusTimeline:
    accent_color: str
    icon_background: str
    icon_color: str
    icon: str


@dataclass(frozen=True)
class StatusMetadata:
    """Read-only display fields consumed by the portal and admin UI."""

    key: str
    label: str
    help_text: str
    tone: StatusTone
    badge: StatusBadge
    timeline: StatusTimeline
    short_label: str | None = None

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "label": self.label,
            "short_label": self.short_label,
            "help_text": self.help_text,
            "tone": self.tone.value,
            "badge": {
                "background_class": self.badge.background_class,
                "dot_class": self.badge.dot_class,
            },
            "timeline": {
                "accent_color": self.timeline.accent_color,
                "icon_background": self.timeline.icon_background,
                "icon_color": self.timeline.icon_color,
                "icon": self.timeline.icon,
            },
        }


@dataclass(frozen=True)
class NotificationTemplate:
    """Per-status notification recipe."""

    channels: tuple[NotificationChannel, ...] = field(default_factory=tuple)
    email_subject: str | None = None
    email_body: str | None = None
    sms_body: str | None = None
    escalate_to_ops: bool = False


# ---------------------------------------------------------------------------
# Badge / timeline palettes
# ---------------------------------------------------------------------------

DEFAULT_BADGE = StatusBadge("bg-slate-100 text-slate-700", "bg-slate-500")
DEFAULT_TIMELINE = StatusTimeline("#cbd5f5", "#e2e8f0", "#334155", "document")

_AMBER = StatusBadge("bg-amber-100 text-amber-700", "bg-amber-500")
_EMERALD = StatusBadge("bg-emerald-100 text-emerald-700", "bg-emerald-500")
_SKY = StatusBadge("bg-sky-100 text-sky-700", "bg-sky-500")
_INDIGO = StatusBadge("bg-indigo-100 text-indigo-700", "bg-indigo-500")
_BLUE = StatusBadge("bg-blue-100 text-blue-700", "bg-blue-500")
_ORANGE = StatusBadge("bg-orange-100 text-orange-700", "bg-orange-500")
_YELLOW = StatusBadge("bg-yellow-100 text-yellow-700", "bg-yellow-500")
_VIOLET = StatusBadge("bg-violet-100 text-violet-700", "bg-violet-500")
_ROSE = StatusBadge("bg-rose-100 text-rose-700", "bg-rose-500")
_SLATE = StatusBadge("bg-slate-100 text-slate-600", "bg-slate-400")


def _meta(
    status: ApplicationStatus,
    label: str,
    help_text: str,
    tone: StatusTone,
    badge: StatusBadge = DEFAULT_BADGE,
    timeline: StatusTimeline = DEFAULT_TIMELINE,
    short_label: str | None = None,
) -> StatusMetadata:
    return StatusMetadata(
        key=status.value,
        label=label,
        help_text=help_text,
        tone=tone,
        badge=badge,
        timeline=timeline,
        short_label=short_label,
    )


STATUS_METADATA: dict[ApplicationStatus, StatusMetadata] = {
    S.SUBMITTED: _meta(
        S.SUBMITTED,
        "Submitted",
        "We received your application and will review it shortly.",
        StatusTone.NEUTRAL,
    ),
    S.AWAITING_PAYMENT: _meta(
        S.AWAITING_PAYMENT,
        "Awaiting payment",
        "We will move to the next step once your deposit is confirmed.",
        StatusTone.WARNING,
        _AMBER,
        StatusTimeline("#fbbf24", "#fef3c7", "#b45309", "payment"),
    ),
    S.PAYMENT_RECEIVED: _meta(
        S.PAYMENT_RECEIVED,
        "Payment received",
        "Payment is complete. Your attorney is preparing the documents.",
        StatusTone.SUCCESS,
        _EMERALD,
        StatusTimeline("#34d399", "#d1fae5", "#047857", "check"),
    ),
    S.AWAITING_APPLICANT_INFO: _meta(
        S.AWAITING_APPLICANT_INFO,
        "Applicant info needed",
        "Please complete the applicant details in your portal.",
        StatusTone.INFO,
        _SKY,
        StatusTimeline("#38bdf8", "#e0f2fe", "#0284c7", "clipboard"),
        short_label="Applicant info",
    ),
    S.AWAITING_DOCUMENTS: _meta(
        S.AWAITING_DOCUMENTS,
        "Documents requested",
        "Please upload the documents needed for filing. We will guide you through it.",
        StatusTone.INFO,
        _SKY,
        StatusTimeline("#38bdf8", "#e0f2fe", "#0284c7", "document"),
    ),
    S.PREPARING_FILING: _meta(
        S.PREPARING_FILING,
        "Preparing filing",
        "We are reviewing the submitted documents.",
        StatusTone.INFO,
        _INDIGO,
        StatusTimeline("#818cf8", "#eef2ff", "#4338ca", "clipboard"),
    ),
    S.AWAITING_CLIENT_SIGNATURE: _meta(
        S.AWAITING_CLIENT_SIGNATURE,
        "Awaiting signature",
        "Please review the documents and complete the e-signature.",
        StatusTone.WARNING,
        _AMBER,
        StatusTimeline("#f59e0b", "#fef3c7", "#b45309", "contract"),
    ),
    S.FILED: _meta(
        S.FILED,
        "Filed",
        "Your application has been filed with the trademark office.",
        StatusTone.INFO,
        _BLUE,
        StatusTimeline("#60a5fa", "#dbeafe", "#1d4ed8", "plane"),
    ),
    S.AWAITING_ACCELERATION: _meta(
        S.AWAITING_ACCELERATION,
        "Acceleration requested",
        "We are waiting on the request for accelerated examination.",
        StatusTone.INFO,
        _VIOLET,
        StatusTimeline("#a78bfa", "#ede9fe", "#6d28d9", "plane"),
    ),
    S.PREPARING_ACCELERATION: _meta(
        S.PREPARING_ACCELERATION,
        "Preparing acceleration",
        "We are preparing the accelerated examination request.",
        StatusTone.INFO,
        _VIOLET,
        StatusTimeline("#a78bfa", "#ede9fe", "#6d28d9", "clipboard"),
    ),
    S.UNDER_EXAMINATION: _meta(
        S.UNDER_EXAMINATION,
        "Under examination",
        "The trademark office is examining your application.",
        StatusTone.INFO,
        _BLUE,
        StatusTimeline("#60a5fa", "#dbeafe", "#1d4ed8", "search"),
    ),
    S.AWAITING_OFFICE_ACTION: _meta(
        S.AWAITING_OFFICE_ACTION,
        "Office action received",
        "The examiner raised an objection. A response fee is needed to prepare the reply.",
        StatusTone.WARNING,
        _ORANGE,
        StatusTimeline("#fb923c", "#ffedd5", "#c2410c", "alert"),
    ),
    S.RESPONDING_TO_OFFICE_ACTION: _meta(
        S.RESPONDING_TO_OFFICE_ACTION,
        "Preparing response",
        "Your attorney is drafting the response to the office action.",
        StatusTone.INFO,
        _INDIGO,
        StatusTimeline("#818cf8", "#eef2ff", "#4338ca", "clipboard"),
    ),
    S.PUBLICATION_ANNOUNCED: _meta(
        S.PUBLICATION_ANNOUNCED,
        "Published for opposition",
        "Your mark has been published. Third parties may file oppositions.",
        StatusTone.INFO,
        _BLUE,
        StatusTimeline("#60a5fa", "#dbeafe", "#1d4ed8", "handshake"),
    ),
    S.REGISTRATION_DECIDED: _meta(
        S.REGISTRATION_DECIDED,
        "Registration decided",
        "The office decided to register your mark. The registration fee comes next.",
        StatusTone.SUCCESS,
        _EMERALD,
        StatusTimeline("#34d399", "#d1fae5", "#047857", "check"),
    ),
    S.AWAITING_REGISTRATION_FEE: _meta(
        S.AWAITING_REGISTRATION_FEE,
        "Registration fee due",
        "Please pay the remaining registration fee before the deadline.",
        StatusTone.WARNING,
        _YELLOW,
        StatusTimeline("#facc15", "#fef9c3", "#ca8a04", "payment"),
    ),
    S.REGISTRATION_FEE_PAID: _meta(
        S.REGISTRATION_FEE_PAID,
        "Registration fee paid",
        "We received the registration fee and will remit it to the office.",
        StatusTone.SUCCESS,
        _EMERALD,
        StatusTimeline("#34d399", "#d1fae5", "#047857", "payment"),
    ),
    S.REGISTERED: _meta(
        S.REGISTERED,
        "Registered",
        "Your trademark is registered.",
        StatusTone.SUCCESS,
        _EMERALD,
        StatusTimeline("#34d399", "#d1fae5", "#047857", "shield"),
    ),
    S.REJECTED: _meta(
        S.REJECTED,
        "Rejected",
        "The application was rejected. Please talk to your attorney about next steps.",
        StatusTone.DANGER,
        _ROSE,
        StatusTimeline("#f87171", "#fee2e2", "#b91c1c", "alert"),
    ),
    S.CANCELLED: _meta(
        S.CANCELLED,
        "Cancelled",
        "The request was cancelled.",
        StatusTone.NEUTRAL,
        _SLATE,
        StatusTimeline("#cbd5f5", "#f1f5f9", "#475569", "ban"),
    ),
    S.WITHDRAWN: _meta(
        S.WITHDRAWN,
        "Withdrawn",
        "The application was withdrawn from the trademark office.",
        StatusTone.NEUTRAL,
        _SLATE,
        StatusTimeline("#cbd5f5", "#f1f5f9", "#475569", "ban"),
    ),
}

FALLBACK_METADATA = StatusMetadata(
    key="unknown",
    label="In progress",
    help_text="We are checking on the progress of your application.",
    tone=StatusTone.NEUTRAL,
    badge=DEFAULT_BADGE,
    timeline=DEFAULT_TIMELINE,
)


# ---------------------------------------------------------------------------
# Notification templates
# ---------------------------------------------------------------------------

EMPTY_TEMPLATE = NotificationTemplate()

NOTIFICATION_TEMPLATES: dict[ApplicationStatus, NotificationTemplate] = {
    S.SUBMITTED: NotificationTemplate(
        channels=(EMAIL,),
        email_subject="[OpenTM] Application received - {{brandName}}",
        email_body=(
            "Hello {{displayName}},\n\nWe received your application for "
            "{{brandName}} ({{managementNumber}}). Track it at {{portalUrl}}."
        ),
    ),
    S.AWAITING_PAYMENT: NotificationTemplate(
        channels=(EMAIL, SMS),
        email_subject="[OpenTM] Payment pending - {{brandName}}",
        email_body=(
            "Please transfer the filing fee for {{brandName}} to the account we sent you. "
            "Document review starts as soon as the deposit is confirmed.\n\n{{portalUrl}}"
        ),
        sms_body="[OpenTM] {{brandName}}: deposit needed. See account details at {{portalUrl}}",
    ),
    S.PAYMENT_RECEIVED: NotificationTemplate(
        channels=(EMAIL,),
        email_subject="[OpenTM] Payment confirmed - {{brandName}}",
        email_body=(
            "Your payment was confirmed. {{statusDetail}}\n\n"
            "Follow the progress at {{portalUrl}}."
        ),
    ),
    S.AWAITING_APPLICANT_INFO: NotificationTemplate(
        channels=(EMAIL, SMS),
        email_subject="[OpenTM] Applicant details needed - {{brandName}}",
        email_body=(
            "To file {{brandName}} we need the applicant details. "
            "Please complete them at {{portalUrl}}."
        ),
        sms_body="[OpenTM] {{brandName}}: please enter the applicant details at {{portalUrl}}",
    ),
    S.AWAITING_DOCUMENTS: NotificationTemplate(
        channels=(EMAIL, SMS),
        email_subject="[OpenTM] Documents requested - {{brandName}}",
        email_body=(
            "We need additional documents to file {{brandName}}. "
            "Check the checklist and upload them at {{portalUrl}}."
        ),
        sms_body="[OpenTM] {{brandName}}: documents requested. Details at {{portalUrl}}",
        escalate_to_ops=True,
    ),
    S.PREPARING_FILING: NotificationTemplate(
        channels=(EMAIL,),
        email_subject="[OpenTM] Filing in preparation - {{brandName}}",
        email_body=(
            "Your attorney is reviewing the documents for {{brandName}}. "
            "We will contact you if anything else is needed."
        ),
    ),
    S.AWAITING_CLIENT_SIGNATURE: NotificationTemplate(
        channels=(EMAIL, SMS),
        email_subject="[OpenTM] Signature requested - {{brandName}}",
        email_body="The filing documents are ready. Please sign them at {{portalUrl}}.",
        sms_body="[OpenTM] {{brandName}}: e-signature needed before we can file.",
    ),
    S.FILED: NotificationTemplate(
        channels=(EMAIL,),
        email_subject="[OpenTM] Application filed - {{brandName}}",
        email_body=(
            "{{brandName}} has been filed with the trademark office. "
            "The receipt number and expected schedule are at {{portalUrl}}."
        ),
    ),
    S.AWAITING_ACCELERATION: EMPTY_TEMPLATE,
    S.PREPARING_ACCELERATION: EMPTY_TEMPLATE,
    S.UNDER_EXAMINATION: NotificationTemplate(
        channels=(EMAIL,),
        email_subject="[OpenTM] Examination started - {{brandName}}",
        email_body=(
            "The trademark office is examining {{brandName}}. "
            "We will let you know as soon as we hear back."
        ),
    ),
    S.AWAITING_OFFICE_ACTION: NotificationTemplate(
        channels=(EMAIL, SMS),
        email_subject="[OpenTM] Office action received - {{brandName}}",
        email_body=(
            "The examiner raised an objection to {{brandName}}. "
            "A response fee is needed before we draft the reply. "
            "Please check the deadline at {{portalUrl}}."
        ),
        sms_body="[OpenTM] {{brandName}}: office action received. Response fee details at {{portalUrl}}",
        escalate_to_ops=True,
    ),
    S.RESPONDING_TO_OFFICE_ACTION: NotificationTemplate(
        channels=(EMAIL,),
        email_subject="[OpenTM] Response in preparation - {{brandName}}",
        email_body="{{statusDetail}}\n\nFollow the progress at {{portalUrl}}.",
    ),
    S.PUBLICATION_ANNOUNCED: NotificationTemplate(
        channels=(EMAIL,),
        email_subject="[OpenTM] Published for opposition - {{brandName}}",
        email_body=(
            "{{brandName}} has been published. If no opposition is filed, "
            "registration will be decided after the opposition period."
        ),
    ),
    S.REGISTRATION_DECIDED: NotificationTemplate(
        channels=(EMAIL, SMS),
        email_subject="[OpenTM] Registration decided - {{brandName}}",
        email_body=(
            "Good news: the office decided to register {{brandName}}. "
            "The registration fee is the last step."
        ),
        sms_body="[OpenTM] {{brandName}}: registration decided!",
    ),
    S.AWAITING_REGISTRATION_FEE: NotificationTemplate(
        channels=(EMAIL, SMS),
        email_subject="[OpenTM] Registration fee due - {{brandName}}",
        email_body=(
            "The remaining registration fee for {{brandName}} is due. "
            "Please check the deadline at {{portalUrl}}."
        ),
        sms_body="[OpenTM] {{brandName}}: registration fee due. Details at {{portalUrl}}",
    ),
    S.REGISTRATION_FEE_PAID: NotificationTemplate(
        channels=(EMAIL,),
        email_subject="[OpenTM] Registration fee confirmed - {{brandName}}",
        email_body="{{statusDetail}}",
    ),
    S.REGISTERED: NotificationTemplate(
        channels=(EMAIL, SMS),
        email_subject="[OpenTM] Congratulations, {{brandName}} is registered",
        email_body=(
            "{{brandName}} is now a registered trademark. "
            "Certificate delivery and renewal dates are at {{portalUrl}}."
        ),
        sms_body="[OpenTM] {{brandName}} is registered. Congratulations!",
    ),
    S.REJECTED: NotificationTemplate(
        channels=(EMAIL, SMS),
        email_subject="[OpenTM] Examination result - {{brandName}}",
        email_body=(
            "The trademark office rejected {{brandName}}. "
            "We will review the options with you."
        ),
        sms_body="[OpenTM] {{brandName}}: rejected by the office. Your attorney will contact you.",
        escalate_to_ops=True,
    ),
    S.CANCELLED: NotificationTemplate(
        channels=(EMAIL,),
        email_subject="[OpenTM] Application cancelled - {{brandName}}",
        email_body="Your application for {{brandName}} was cancelled. You can start a new one anytime.",
    ),
    S.WITHDRAWN: NotificationTemplate(
        channels=(EMAIL,),
        email_subject="[OpenTM] Application withdrawn - {{brandName}}",
        email_body="Your application for {{brandName}} was withdrawn from the trademark office.",
        escalate_to_ops=True,
    ),
}


def _check_exhaustive() -> None:
    for table_name, table in (
        ("STATUS_METADATA", STATUS_METADATA),
        ("NOTIFICATION_TEMPLATES", NOTIFICATION_TEMPLATES),
    ):
        missing = set(ApplicationStatus) - set(table)
        if missing:
            raise RuntimeError(f"{table_name} is missing statuses: {sorted(missing)}")


_check_exhaustive()

ESCALATION_STATUSES: frozenset[ApplicationStatus] = frozenset(
    status for status, template in NOTIFICATION_TEMPLATES.items() if template.escalate_to_ops
)


def get_status_metadata(status: ApplicationStatus | str | None) -> StatusMetadata:
    """Return display metadata, or the neutral "In progress" fallback. Never raises."""
    parsed = ApplicationStatus.parse(status)
    if parsed is None:
        return FALLBACK_METADATA
    return STATUS_METADATA[parsed]


def get_notification_template(status: ApplicationStatus | str | None) -> NotificationTemplate:
    """Return the configured template, or an empty-channel template."""
    parsed = ApplicationStatus.parse(status)
    if parsed is None:
        return EMPTY_TEMPLATE
    return NOTIFICATION_TEMPLATES[parsed]
