"""SMS delivery through the Twilio Messages API."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx

from trademark_workflow.domain.exceptions import DeliveryError
from trademark_workflow.logging_config import get_logger

if TYPE_CHECKING:
    from trademark_workflow.config import Settings
    from trademark_workflow.notifications.protocol import SmsMessage

logger = get_logger(__name__)


class TwilioSmsProvider:
    """Sends from a messaging service when one is set, otherwise from a number."""

    name = "twilio"

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        messaging_service_sid: str = "",
        from_number: str = "",
        base_url: str = "https://api.twilio.com/2010-04-01",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not (messaging_service_sid or from_number):
            raise ValueError("Twilio needs a messaging service SID or a from number")
        self._account_sid = account_sid
        self._auth_token = auth_token
        self._messaging_service_sid = messaging_service_sid
        self._from_number = from_number
        self._url = f"{base_url.rstrip('/')}/Accounts/{account_sid}/Messages.json"
        self._client = client

    @classmethod
    def from_settings(
        cls, settings: Settings, client: httpx.AsyncClient | None = None
    ) -> TwilioSmsProvider | None:
        """Return a provider, or None when Twilio is not configured."""
        if not settings.sms_configured:
            return None
        return cls(
            account_sid=settings.twilio_account_sid,
            auth_token=settings.twilio_auth_token,
            messaging_service_sid=settings.twilio_messaging_service_sid,
            from_number=settings.twilio_from_number,
            base_url=settings.twilio_api_base_url,
            client=client,
        )

    async def send(self, message: SmsMessage) -> None:
        form = {"To": message.to, "Body": message.body}
        if self._messaging_service_sid:
            form["MessagingServiceSid"] = self._messaging_service_sid
        else:
            form["From"] = self._from_number
        auth = httpx.BasicAuth(self._account_sid, self._auth_token)

        if self._client is not None:
            response = await self._client.post(self._url, data=form, auth=auth)
        else:
            async with httpx.AsyncClient() as client:
                response = await client.post(self._url, data=form, auth=auth)

        if not response.is_success:
            raise DeliveryError(self.name, response.status_code, response.text[:500])
        logger.debug("notification.sms_sent", target=message.to, status_code=response.status_code)
