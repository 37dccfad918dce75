"""Notification Dispatcher: status change -> templated, retried deliveries.

One call per committed transition. The dispatcher never raises for delivery
problems: an unconfigured provider, a missing recipient or an exhausted retry
each become a failed NotificationResult, and the remaining channels still run.
The only error it raises is UnsupportedStatusError, before any delivery.
"""

from __future__ import annotations

import asyncio
import uuid
from typing import TYPE_CHECKING

from trademark_workflow.domain.enums import OPS_EMAIL_CHANNEL, ApplicationStatus, NotificationChannel
from trademark_workflow.domain.exceptions import UnsupportedStatusError
from trademark_workflow.domain.status_registry import get_notification_template
from trademark_workflow.infrastructure.database.repositories import ProfileRepository
from trademark_workflow.logging_config import get_logger
from trademark_workflow.notifications.protocol import (
    DispatchOutcome,
    EmailMessage,
    NotificationResult,
    Recipient,
    SmsMessage,
)
from trademark_workflow.notifications.retry import deliver_with_retry
from trademark_workflow.notifications.templates import (
    build_context,
    build_ops_summary,
    render_template,
    to_html,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    import httpx
    from sqlalchemy.ext.asyncio import AsyncSession

    from trademark_workflow.config import Settings
    from trademark_workflow.notifications.protocol import (
        EmailProvider,
        RecipientLookup,
        SmsProvider,
        StatusChangeEvent,
    )

logger = get_logger(__name__)

EMAIL_NOT_CONFIGURED = "email-not-configured"
SMS_NOT_CONFIGURED = "sms-not-configured"
RECIPIENT_MISSING = "recipient-missing"


def profile_recipient_lookup(session: AsyncSession) -> RecipientLookup:
    """Resolve recipients from the ``profiles`` table."""
    repo = ProfileRepository(session)

    async def lookup(user_id: str | None) -> Recipient | None:
        if not user_id:
            return None
        profile = await repo.find_contact(uuid.UUID(user_id))
        if profile is None:
            return None
        return Recipient(email=profile.email, phone=profile.phone, name=profile.name)

    return lookup


async def _no_recipient(_user_id: str | None) -> Recipient | None:
    return None


class NotificationDispatcher:
    """Renders the status template and delivers it on every declared channel.

    Usage:
        dispatcher = NotificationDispatcher.from_settings(settings, lookup)
        outcome = await dispatcher.dispatch(StatusChangeEvent.from_transition(result))
        outcome.ok, outcome.failed
    """

    def __init__(
        self,
        *,
        email_provider: EmailProvider | None = None,
        sms_provider: SmsProvider | None = None,
        recipient_lookup: RecipientLookup | None = None,
        portal_url: str = "https://app.opentm.kr/mypage",
        ops_email: str | None = None,
        max_attempts: int = 3,
        base_delay: float = 0.4,
        attempt_timeout: float = 10.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._email_provider = email_provider
        self._sms_provider = sms_provider
        self._recipient_lookup = recipient_lookup or _no_recipient
        self._portal_url = portal_url
        self._ops_email = ops_email or None
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._attempt_timeout = attempt_timeout
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        recipient_lookup: RecipientLookup | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> NotificationDispatcher:
        from trademark_workflow.notifications.email import ResendEmailProvider
        from trademark_workflow.notifications.sms import TwilioSmsProvider

        return cls(
            email_provider=ResendEmailProvider.from_settings(settings, client),
            sms_provider=TwilioSmsProvider.from_settings(settings, client),
            recipient_lookup=recipient_lookup,
            portal_url=settings.status_portal_url,
            ops_email=settings.status_notifier_ops_email,
            max_attempts=settings.notification_max_attempts,
            base_delay=settings.notification_base_delay_seconds,
            attempt_timeout=settings.notification_attempt_timeout_seconds,
        )

    @property
    def email_configured(self) -> bool:
        return self._email_provider is not None

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def dispatch(self, event: StatusChangeEvent) -> DispatchOutcome:
        """Deliver notifications for one status change.

        Raises:
            UnsupportedStatusError: ``event.to_status`` is not a known status.
        """
        status = ApplicationStatus.parse(event.to_status)
        if status is None:
            raise UnsupportedStatusError(event.to_status)

        template = get_notification_template(status)
        recipient = await self._resolve_recipient(event)
        context = build_context(event, recipient, self._portal_url)
        results: list[NotificationResult] = []

        for channel in template.channels:
            if channel is NotificationChannel.EMAIL:
                results.append(
                    await self._send_customer_email(
                        recipient,
                        render_template(template.email_subject, context),
                        render_template(template.email_body, context),
                    )
                )
            elif channel is NotificationChannel.SMS:
                results.append(
                    await self._send_customer_sms(
                        recipient, render_template(template.sms_body, context)
                    )
                )

        if template.escalate_to_ops and self._ops_email:
            subject, body = build_ops_summary(event, context)
            results.append(await self.send_email(self._ops_email, subject, body, OPS_EMAIL_CHANNEL))

        outcome = DispatchOutcome(results=results)
        logger.info(
            "notification.dispatched",
            application_id=event.application_id,
            to_status=status.value,
            ok=outcome.ok,
            failed=outcome.failed,
            channels=[r.channel for r in results],
        )
        return outcome

    async def send_email(
        self,
        to: str,
        subject: str,
        text: str,
        channel: str = NotificationChannel.EMAIL.value,
    ) -> NotificationResult:
        """Retried email delivery shared by dispatch, escalation and reminders."""
        if self._email_provider is None:
            return NotificationResult(channel=channel, success=False, target=to, error=EMAIL_NOT_CONFIGURED)
        provider = self._email_provider
        message = EmailMessage(to=to, subject=subject, text=text, html=to_html(text))
        attempt = await deliver_with_retry(
            lambda: provider.send(message),
            channel=channel,
            max_attempts=self._max_attempts,
            base_delay=self._base_delay,
            attempt_timeout=self._attempt_timeout,
            sleep=self._sleep,
        )
        return NotificationResult(
            channel=channel,
            success=attempt.success,
            target=to,
            attempts=attempt.attempts,
            error=attempt.error,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _resolve_recipient(self, event: StatusChangeEvent) -> Recipient | None:
        try:
            return await self._recipient_lookup(event.user_id)
        except Exception as exc:
            logger.warning(
                "notification.recipient_lookup_failed",
                application_id=event.application_id,
                error=str(exc),
            )
            return None

    async def _send_customer_email(
        self, recipient: Recipient | None, subject: str, body: str
    ) -> NotificationResult:
        channel = NotificationChannel.EMAIL.value
        if self._email_provider is None:
            return NotificationResult(channel=channel, success=False, error=EMAIL_NOT_CONFIGURED)
        if recipient is None or not recipient.email:
            return NotificationResult(channel=channel, success=False, error=RECIPIENT_MISSING)
        return await self.send_email(recipient.email, subject, body, channel)

    async def _send_customer_sms(
        self, recipient: Recipient | None, body: str
    ) -> NotificationResult:
        channel = NotificationChannel.SMS.value
        if self._sms_provider is None:
            return NotificationResult(channel=channel, success=False, error=SMS_NOT_CONFIGURED)
        if recipient is None or not recipient.phone:
            return NotificationResult(channel=channel, success=False, error=RECIPIENT_MISSING)
        provider = self._sms_provider
        message = SmsMessage(to=recipient.phone, body=body)
        attempt = await deliver_with_retry(
            lambda: provider.send(message),
            channel=channel,
            max_attempts=self._max_attempts,
            base_delay=self._base_delay,
            attempt_timeout=self._attempt_timeout,
            sleep=self._sleep,
        )
        return NotificationResult(
            channel=channel,
            success=attempt.success,
            target=recipient.phone,
            attempts=attempt.attempts,
            error=attempt.error,
        )
