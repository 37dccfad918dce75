"""Tests for the Resend and Twilio providers using httpx.MockTransport."""

from __future__ import annotations

import base64
import json
from urllib.parse import parse_qs

import httpx
import pytest

from trademark_workflow.config import Settings
from trademark_workflow.domain.exceptions import DeliveryError
from trademark_workflow.notifications.email import ResendEmailProvider
from trademark_workflow.notifications.protocol import EmailMessage, SmsMessage
from trademark_workflow.notifications.sms import TwilioSmsProvider


def client_returning(status_code: int, captured: list[httpx.Request], body: str = "{}"):  # noqa: ANN201
    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(status_code, text=body)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestResendEmailProvider:
    @pytest.mark.asyncio
    async def test_sends_json_payload(self) -> None:
        captured: list[httpx.Request] = []
        async with client_returning(200, captured) as client:
            provider = ResendEmailProvider("re_test", "OpenTM <no-reply@opentm.kr>", client=client)
            await provider.send(EmailMessage(to="owner@example.com", subject="Hi", text="a < b"))

        request = captured[0]
        assert str(request.url) == "https://api.resend.com/emails"
        assert request.headers["Authorization"] == "Bearer re_test"
        payload = json.loads(request.content)
        assert payload["to"] == ["owner@example.com"]
        assert payload["from"] == "OpenTM <no-reply@opentm.kr>"
        assert payload["text"] == "a < b"
        assert payload["html"] == "a &lt; b"

    @pytest.mark.asyncio
    async def test_error_status_raises(self) -> None:
        captured: list[httpx.Request] = []
        async with client_returning(422, captured, body='{"message":"invalid to"}') as client:
            provider = ResendEmailProvider("re_test", "no-reply@opentm.kr", client=client)
            with pytest.raises(DeliveryError) as exc_info:
                await provider.send(EmailMessage(to="bad", subject="Hi", text="x"))

        assert exc_info.value.status_code == 422
        assert "invalid to" in exc_info.value.message

    def test_from_settings_requires_key(self) -> None:
        assert ResendEmailProvider.from_settings(Settings(resend_api_key="")) is None
        assert isinstance(
            ResendEmailProvider.from_settings(Settings(resend_api_key="re_test")),
            ResendEmailProvider,
        )


class TestTwilioSmsProvider:
    @pytest.mark.asyncio
    async def test_messaging_service_sender(self) -> None:
        captured: list[httpx.Request] = []
        async with client_returning(201, captured) as client:
            provider = TwilioSmsProvider("AC123", "secret", messaging_service_sid="MG1", client=client)
            await provider.send(SmsMessage(to="+821012345678", body="hello"))

        request = captured[0]
        assert request.url.path == "/2010-04-01/Accounts/AC123/Messages.json"
        form = parse_qs(request.content.decode())
        assert form == {"To": ["+821012345678"], "Body": ["hello"], "MessagingServiceSid": ["MG1"]}
        expected_auth = base64.b64encode(b"AC123:secret").decode()
        assert request.headers["Authorization"] == f"Basic {expected_auth}"

    @pytest.mark.asyncio
    async def test_from_number_sender(self) -> None:
        captured: list[httpx.Request] = []
        async with client_returning(201, captured) as client:
            provider = TwilioSmsProvider("AC123", "secret", from_number="+15550000000", client=client)
            await provider.send(SmsMessage(to="+821012345678", body="hello"))

        form = parse_qs(captured[0].content.decode())
        assert form["From"] == ["+15550000000"]
        assert "MessagingServiceSid" not in form

    @pytest.mark.asyncio
    async def test_error_status_raises(self) -> None:
        captured: list[httpx.Request] = []
        async with client_returning(400, captured, body="invalid number") as client:
            provider = TwilioSmsProvider("AC123", "secret", from_number="+1555", client=client)
            with pytest.raises(DeliveryError) as exc_info:
                await provider.send(SmsMessage(to="nope", body="hello"))
        assert exc_info.value.provider == "twilio"

    def test_requires_a_sender(self) -> None:
        with pytest.raises(ValueError):
            TwilioSmsProvider("AC123", "secret")

    def test_from_settings(self) -> None:
        assert TwilioSmsProvider.from_settings(Settings(twilio_account_sid="AC123")) is None
        configured = Settings(
            twilio_account_sid="AC123", twilio_auth_token="secret", twilio_from_number="+1555"
        )
        assert isinstance(TwilioSmsProvider.from_settings(configured), TwilioSmsProvider)
