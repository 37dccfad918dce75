"""HTTP-level tests for the REST API.

The app runs on httpx.ASGITransport (no lifespan), with the database,
dispatcher and Redis swapped through ``app.dependency_overrides``.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

import pytest
import pytest_asyncio
from fastapi import Depends
from httpx import ASGITransport, AsyncClient

from trademark_workflow.api.deps import get_db_session, get_dispatcher, get_redis_client
from trademark_workflow.main import create_app
from trademark_workflow.notifications.dispatcher import (
    RECIPIENT_MISSING,
    NotificationDispatcher,
    profile_recipient_lookup,
)
from trademark_workflow.services.ledger_service import PaymentLedger

APPLICATIONS = "/api/v1/applications"


class FakeRedis:
    """Just enough of redis.asyncio.Redis for SET NX and DELETE."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}

    async def set(self, key, value, nx=False, ex=None):  # noqa: ANN001, ANN201
        if nx and key in self.store:
            return None
        self.store[key] = value
        return True

    async def delete(self, key):  # noqa: ANN001, ANN201
        return 1 if self.store.pop(key, None) is not None else 0


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest_asyncio.fixture
async def client(session_factory, email_provider, sms_provider, sleep, fake_redis):
    app = create_app()

    async def override_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def override_dispatcher(session=Depends(get_db_session)):  # noqa: ANN001
        return NotificationDispatcher(
            email_provider=email_provider,
            sms_provider=sms_provider,
            recipient_lookup=profile_recipient_lookup(session),
            ops_email="ops@opentm.kr",
            sleep=sleep,
        )

    app.dependency_overrides[get_db_session] = override_session
    app.dependency_overrides[get_dispatcher] = override_dispatcher
    app.dependency_overrides[get_redis_client] = lambda: fake_redis

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http


async def _create(client, profile, **overrides):  # noqa: ANN001, ANN202
    body = {
        "user_id": str(profile.id),
        "brand_name": "OPENTM",
        "management_number": "TM-0001",
        "payment_amount": 50000,
    }
    body.update(overrides)
    response = await client.post(APPLICATIONS, json=body)
    assert response.status_code == 201, response.text
    return response.json()


class TestApplications:
    @pytest.mark.asyncio
    async def test_create_parks_in_awaiting_payment(self, client, profile, email_provider) -> None:
        data = await _create(client, profile)

        assert data["application"]["status"] == "awaiting_payment"
        assert data["log_entry"]["from_status"] is None
        assert data["notifications"]["ok"] is True
        assert email_provider.sent[0].to == "owner@example.com"

    @pytest.mark.asyncio
    async def test_create_without_fee(self, client, profile) -> None:
        data = await _create(client, profile, payment_amount=None)
        assert data["application"]["status"] == "awaiting_documents"

    @pytest.mark.asyncio
    async def test_get_and_status_log(self, client, profile) -> None:
        app_id = (await _create(client, profile))["application"]["id"]

        response = await client.get(f"{APPLICATIONS}/{app_id}")
        assert response.status_code == 200
        assert response.json()["brand_name"] == "OPENTM"

        log = (await client.get(f"{APPLICATIONS}/{app_id}/status-log")).json()
        assert [entry["to_status"] for entry in log] == ["awaiting_payment"]

    @pytest.mark.asyncio
    async def test_unknown_application_is_404(self, client, unknown_id) -> None:
        response = await client.get(f"{APPLICATIONS}/{unknown_id}")
        assert response.status_code == 404
        assert response.json()["error"] == "APPLICATION_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_transition_gated_on_payment(self, client, profile) -> None:
        app_id = (await _create(client, profile))["application"]["id"]

        response = await client.post(
            f"{APPLICATIONS}/{app_id}/transition", json={"target_status": "payment_received"}
        )
        assert response.status_code == 409
        assert response.json()["error"] == "PAYMENT_INCOMPLETE"

    @pytest.mark.asyncio
    async def test_invalid_edge_is_409(self, client, profile) -> None:
        app_id = (await _create(client, profile))["application"]["id"]
        response = await client.post(
            f"{APPLICATIONS}/{app_id}/transition", json={"target_status": "registered"}
        )
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_valid_transition_notifies(self, client, profile, email_provider) -> None:
        app_id = (await _create(client, profile, payment_amount=None))["application"]["id"]

        response = await client.post(
            f"{APPLICATIONS}/{app_id}/transition",
            json={"target_status": "preparing_filing", "actor": "admin-1"},
        )

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["application"]["status"] == "preparing_filing"
        assert data["log_entry"]["changed_by"] == "admin-1"
        assert data["notifications"] is not None
        assert len((await client.get(f"{APPLICATIONS}/{app_id}/status-log")).json()) == 2


class TestPayments:
    @pytest.mark.asyncio
    async def test_confirm_triggers_auto_transition(self, client, session, profile, email_provider) -> None:
        app_id = (await _create(client, profile))["application"]["id"]
        summary = (await client.get(f"{APPLICATIONS}/{app_id}/payments/summary")).json()
        assert summary["filing"]["status"] == "unpaid"
        assert Decimal(summary["filing"]["remaining"]) == Decimal("50000")
        assert summary["all_paid"] is False

        payment = (
            await client.post(
                f"{APPLICATIONS}/{app_id}/payments",
                json={"stage": "registration", "amount": 210000},
            )
        ).json()
        assert payment["payment_status"] == "unpaid"

        filing_id = await _filing_payment_id(session, app_id)

        response = await client.post(
            f"/api/v1/payments/{filing_id}/confirm",
            json={"paid_amount": 50000, "remitter_name": "Hong Gildong", "actor": "admin-1"},
        )

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["newly_paid"] is True
        assert data["transition"]["application"]["status"] == "payment_received"
        assert data["transition"]["log_entry"]["changed_by"] == "admin-1"
        assert data["transition_error"] is None
        subjects = [m.subject for m in email_provider.sent]
        assert "[OpenTM] Payment confirmed - OPENTM" in subjects

    @pytest.mark.asyncio
    async def test_partial_confirmation_does_not_transition(self, client, session, profile) -> None:
        app_id = (await _create(client, profile))["application"]["id"]
        filing_id = await _filing_payment_id(session, app_id)

        data = (
            await client.post(f"/api/v1/payments/{filing_id}/confirm", json={"paid_amount": 20000})
        ).json()

        assert data["newly_paid"] is False
        assert data["payment"]["payment_status"] == "partial"
        assert data["transition"] is None

    @pytest.mark.asyncio
    async def test_duplicate_idempotency_key(self, client, session, profile, fake_redis) -> None:
        app_id = (await _create(client, profile))["application"]["id"]
        filing_id = await _filing_payment_id(session, app_id)
        body = {"paid_amount": 10000, "idempotency_key": "remit-1"}

        first = await client.post(f"/api/v1/payments/{filing_id}/confirm", json=body)
        second = await client.post(f"/api/v1/payments/{filing_id}/confirm", json=body)

        assert first.status_code == 200
        assert second.status_code == 409
        assert second.json()["error"] == "DUPLICATE_OPERATION"
        assert "idempotency:payment-confirm:remit-1" in fake_redis.store

    @pytest.mark.asyncio
    async def test_failed_confirmation_releases_key(self, client, session, profile, fake_redis) -> None:
        app_id = (await _create(client, profile))["application"]["id"]
        filing_id = await _filing_payment_id(session, app_id)

        response = await client.post(
            f"/api/v1/payments/{filing_id}/confirm",
            json={"paid_amount": 999999, "idempotency_key": "remit-2"},
        )

        assert response.status_code == 400
        assert fake_redis.store == {}

    @pytest.mark.asyncio
    async def test_settled_payment_cannot_be_reconfirmed(self, client, session, profile) -> None:
        app_id = (await _create(client, profile))["application"]["id"]
        filing_id = await _filing_payment_id(session, app_id)
        confirm_url = f"/api/v1/payments/{filing_id}/confirm"

        first = await client.post(confirm_url, json={"paid_amount": 50000})
        assert first.json()["transition"]["application"]["status"] == "payment_received"

        again = await client.post(confirm_url, json={"paid_amount": 1})
        assert again.status_code == 400
        assert again.json()["error"] == "PAYMENT_VALIDATION_ERROR"

        summary = (await client.get(f"{APPLICATIONS}/{app_id}/payments/summary")).json()
        assert summary["filing"]["status"] == "paid"
        assert summary["filing"]["progress"] == 100

    @pytest.mark.asyncio
    async def test_unknown_payment(self, client, unknown_id) -> None:
        response = await client.post(
            f"/api/v1/payments/{unknown_id}/confirm", json={"paid_amount": 1}
        )
        assert response.status_code == 404


async def _filing_payment_id(session, app_id):  # noqa: ANN001, ANN202
    payment = await PaymentLedger(session).get_payment_by_stage(uuid.UUID(app_id), "filing")
    await session.commit()
    return payment.id


class TestNotificationRoutes:
    @pytest.mark.asyncio
    async def test_dispatch_unknown_status_is_422(self, client) -> None:
        response = await client.post(
            "/api/v1/notifications/dispatch",
            json={"application_id": "a-1", "to_status": "approved"},
        )
        assert response.status_code == 422
        assert response.json()["error"] == "UNSUPPORTED_STATUS"

    @pytest.mark.asyncio
    async def test_dispatch_all_channels_failed_is_500(self, client) -> None:
        response = await client.post(
            "/api/v1/notifications/dispatch",
            json={"application_id": "a-1", "to_status": "filed", "user_id": None},
        )
        assert response.status_code == 500
        body = response.json()
        assert body["ok"] is False
        assert body["results"][0]["error"] == RECIPIENT_MISSING

    @pytest.mark.asyncio
    async def test_dispatch_success(self, client, profile, email_provider) -> None:
        response = await client.post(
            "/api/v1/notifications/dispatch",
            json={
                "application_id": "a-1",
                "to_status": "filed",
                "user_id": str(profile.id),
                "brand_name": "OPENTM",
            },
        )
        assert response.status_code == 200
        assert response.json()["ok"] is True
        assert email_provider.sent[-1].to == "owner@example.com"

    @pytest.mark.asyncio
    async def test_payment_reminders(self, client) -> None:
        response = await client.post("/api/v1/notifications/payment-reminders?days_before_due=5")
        assert response.status_code == 200
        assert response.json() == {"sent": 0, "failed": 0, "total": 0, "results": []}


class TestStatuses:
    @pytest.mark.asyncio
    async def test_lists_every_status(self, client) -> None:
        statuses = (await client.get("/api/v1/statuses")).json()
        by_key = {s["key"]: s for s in statuses}

        assert len(statuses) == 21
        assert by_key["registered"]["terminal"] is True
        assert "payment_received" in by_key["awaiting_payment"]["allowed_next"]
