"""Email delivery through the Resend REST API."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx

from trademark_workflow.domain.exceptions import DeliveryError
from trademark_workflow.logging_config import get_logger
from trademark_workflow.notifications.templates import to_html

if TYPE_CHECKING:
    from trademark_workflow.config import Settings
    from trademark_workflow.notifications.protocol import EmailMessage

logger = get_logger(__name__)


class ResendEmailProvider:
    """Sends one message per call. Retrying is the dispatcher's job."""

    name = "resend"

    def __init__(
        self,
        api_key: str,
        from_email: str,
        api_url: str = "https://api.resend.com/emails",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._from_email = from_email
        self._api_url = api_url
        self._client = client

    @classmethod
    def from_settings(
        cls, settings: Settings, client: httpx.AsyncClient | None = None
    ) -> ResendEmailProvider | None:
        """Return a provider, or None when Resend is not configured."""
        if not settings.email_configured:
            return None
        return cls(
            api_key=settings.resend_api_key,
            from_email=settings.resend_from_email,
            api_url=settings.resend_api_url,
            client=client,
        )

    async def send(self, message: EmailMessage) -> None:
        payload = {
            "from": self._from_email,
            "to": [message.to],
            "subject": message.subject,
            "text": message.text,
            "html": message.html or to_html(message.text),
        }
        headers = {"Authorization": f"Bearer {self._api_key}"}

        if self._client is not None:
            response = await self._client.post(self._api_url, json=payload, headers=headers)
        else:
            async with httpx.AsyncClient() as client:
                response = await client.post(self._api_url, json=payload, headers=headers)

        if not response.is_success:
            raise DeliveryError(self.name, response.status_code, response.text[:500])
        logger.debug("notification.email_sent", target=message.to, status_code=response.status_code)
