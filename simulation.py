#!/usr/bin/env python3
"""Trademark Workflow: End-to-End Simulation.

Drives applications through the service layer with an AdminBot and a
CustomerBot. Deliveries go to an in-process outbox instead of Resend/Twilio.

    Scenario 1: Happy Path
        - Customer submits with an upfront filing fee -> awaiting_payment
        - Admin confirms the remittance -> payment_received (automatic)
        - Admin walks the application to registration_decided
        - Registration fee is invoiced and paid -> registration_fee_paid
        - Admin completes registration -> registered

    Scenario 2: Guard Rails
        - Admin rolls back without a note -> MissingMemoError
        - Admin rolls back with a note -> accepted
        - Admin responds to the office action unpaid -> PaymentIncompleteError
        - Admin jumps across the graph -> InvalidTransitionError

    Scenario 3: Flaky Email Provider
        - The email provider fails twice, then succeeds (3 attempts)
        - An escalating status also emails the operations inbox

Usage:
    # Option A: PostgreSQL from DATABASE_URL
    python simulation.py

    # Option B: SQLite in-memory
    python simulation.py --sqlite

    # Run a specific scenario:
    python simulation.py --sqlite --scenario 2
"""

from __future__ import annotations

import argparse
import asyncio
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from trademark_workflow.domain.enums import PaymentStage
from trademark_workflow.domain.exceptions import TrademarkWorkflowError
from trademark_workflow.infrastructure.database.engine import (
    _get_session_factory,
    build_engine,
    build_session_factory,
    close_db,
    create_tables,
    init_db,
)
from trademark_workflow.infrastructure.database.orm_models import Profile
from trademark_workflow.logging_config import get_logger, setup_logging
from trademark_workflow.notifications.dispatcher import (
    NotificationDispatcher,
    profile_recipient_lookup,
)
from trademark_workflow.notifications.protocol import (
    EmailMessage,
    SmsMessage,
    StatusChangeEvent,
)
from trademark_workflow.services.ledger_service import PaymentLedger
from trademark_workflow.services.transition_service import TransitionExecutor

setup_logging(log_level="INFO", json_logs=False)
logger = get_logger("simulation")

# Module-level state
_sqlite_engine = None
_sqlite_session_factory = None

OPS_INBOX = "ops@opentm.kr"


# ---------------------------------------------------------------------------
# Database lifecycle helpers
# ---------------------------------------------------------------------------
async def init_database(use_sqlite: bool = False) -> None:
    global _sqlite_engine, _sqlite_session_factory

    if use_sqlite:
        _sqlite_engine = build_engine("sqlite+aiosqlite:///:memory:")
        _sqlite_session_factory = build_session_factory(_sqlite_engine)
        await create_tables(_sqlite_engine)
        logger.info("database.sqlite_initialized")
    else:
        await init_db()


def get_session() -> Any:
    if _sqlite_session_factory is not None:
        return _sqlite_session_factory()
    return _get_session_factory()()


async def shutdown_database() -> None:
    global _sqlite_engine, _sqlite_session_factory

    if _sqlite_engine is not None:
        await _sqlite_engine.dispose()
        _sqlite_engine = None
        _sqlite_session_factory = None
    else:
        await close_db()


# ---------------------------------------------------------------------------
# In-process delivery providers
# ---------------------------------------------------------------------------
@dataclass
class Outbox:
    """Collects every message the dispatcher hands to a provider."""

    emails: list[EmailMessage] = field(default_factory=list)
    sms: list[SmsMessage] = field(default_factory=list)


@dataclass
class OutboxEmailProvider:
    outbox: Outbox
    failures_before_success: int = 0
    calls: int = 0

    async def send(self, message: EmailMessage) -> None:
        self.calls += 1
        if self.calls <= self.failures_before_success:
            raise ConnectionError(f"simulated outage (call {self.calls})")
        self.outbox.emails.append(message)


@dataclass
class OutboxSmsProvider:
    outbox: Outbox

    async def send(self, message: SmsMessage) -> None:
        self.outbox.sms.append(message)


async def _no_wait(_seconds: float) -> None:
    return None


def build_dispatcher(session: Any, outbox: Outbox, email_failures: int = 0) -> NotificationDispatcher:
    return NotificationDispatcher(
        email_provider=OutboxEmailProvider(outbox, failures_before_success=email_failures),
        sms_provider=OutboxSmsProvider(outbox),
        recipient_lookup=profile_recipient_lookup(session),
        ops_email=OPS_INBOX,
        sleep=_no_wait,
    )


# ---------------------------------------------------------------------------
# Bot Agents
# ---------------------------------------------------------------------------
@dataclass
class CustomerBot:
    """Simulated applicant who owns a profile and submits applications."""

    name: str = "Hong Gildong"
    email: str = "gildong@example.com"
    phone: str = "+821012345678"
    profile_id: uuid.UUID | None = None

    async def register(self, session: Any) -> uuid.UUID:
        profile = Profile(email=self.email, phone=self.phone, name=self.name)
        session.add(profile)
        await session.commit()
        self.profile_id = profile.id
        logger.info("CUSTOMER: Profile registered", profile_id=str(profile.id))
        return profile.id

    async def submit(
        self,
        session: Any,
        dispatcher: NotificationDispatcher,
        brand_name: str,
        filing_fee: Decimal | None,
    ) -> uuid.UUID:
        executor = TransitionExecutor(session)
        result = await executor.create_application(
            user_id=self.profile_id,
            brand_name=brand_name,
            management_number=f"TM-{uuid.uuid4().hex[:6].upper()}",
            payment_amount=filing_fee,
        )
        await session.commit()
        await dispatcher.dispatch(StatusChangeEvent.from_transition(result))
        logger.info(
            "CUSTOMER: Application submitted",
            application_id=str(result.application.id),
            status=result.to_status,
        )
        return result.application.id


@dataclass
class AdminBot:
    """Simulated back-office operator."""

    admin_id: str = "admin-01"

    async def move(
        self,
        session: Any,
        dispatcher: NotificationDispatcher,
        application_id: uuid.UUID,
        target: str,
        note: str | None = None,
    ) -> str:
        executor = TransitionExecutor(session)
        result = await executor.request_transition(
            application_id, target, note=note, actor=self.admin_id
        )
        await session.commit()
        outcome = await dispatcher.dispatch(StatusChangeEvent.from_transition(result))
        logger.info(
            "ADMIN: Status changed",
            from_status=result.from_status,
            to_status=result.to_status,
            notified=outcome.ok,
        )
        return result.to_status

    async def try_move(
        self,
        session: Any,
        dispatcher: NotificationDispatcher,
        application_id: uuid.UUID,
        target: str,
        note: str | None = None,
    ) -> TrademarkWorkflowError | None:
        """Attempt a move and return the refusal instead of raising it."""
        try:
            await self.move(session, dispatcher, application_id, target, note)
        except TrademarkWorkflowError as exc:
            await session.rollback()
            logger.info("ADMIN: Move refused", target=target, code=exc.code)
            return exc
        return None

    async def invoice(
        self,
        session: Any,
        application_id: uuid.UUID,
        stage: PaymentStage,
        amount: Decimal,
    ) -> uuid.UUID:
        payment = await PaymentLedger(session).request_payment(application_id, stage, amount)
        await session.commit()
        logger.info("ADMIN: Payment requested", stage=stage.value, amount=str(amount))
        return payment.id

    async def confirm_payment(
        self,
        session: Any,
        dispatcher: NotificationDispatcher,
        payment_id: uuid.UUID,
        amount: Decimal,
        remitter: str,
    ) -> str | None:
        """Record a remittance; returns the new status if it triggered one."""
        ledger = PaymentLedger(session)
        payment, newly_paid = await ledger.record_payment_confirmation(
            payment_id, amount, remitter_name=remitter, payment_method="bank_transfer"
        )
        await session.commit()
        if not newly_paid:
            logger.info("ADMIN: Partial payment recorded", status=payment.payment_status)
            return None

        executor = TransitionExecutor(session, ledger)
        result = await executor.auto_transition_on_payment_complete(
            payment.application_id, payment.payment_stage, changed_by=self.admin_id
        )
        await session.commit()
        await dispatcher.dispatch(StatusChangeEvent.from_transition(result))
        logger.info("ADMIN: Payment completed", to_status=result.to_status)
        return result.to_status


# ---------------------------------------------------------------------------
# Print helpers
# ---------------------------------------------------------------------------
def banner(text: str) -> None:
    width = 70
    print("\n" + "=" * width)
    print(f"  {text}")
    print("=" * width + "\n")


def section(text: str) -> None:
    print(f"\n--- {text} ---\n")


def print_outbox(outbox: Outbox) -> None:
    print(f"\n  Outbox: {len(outbox.emails)} email(s), {len(outbox.sms)} SMS")
    for message in outbox.emails:
        print(f"    [email] {message.to}: {message.subject}")
    for message in outbox.sms:
        print(f"    [sms]   {message.to}: {message.body[:60]}")


async def print_status_log(session: Any, application_id: uuid.UUID) -> None:
    entries = await TransitionExecutor(session).get_status_log(application_id)
    print("\n  Status log:")
    for i, entry in enumerate(entries, 1):
        old = entry.from_status or "-"
        auto = " (auto)" if entry.metadata_json.get("automated") else ""
        print(f"    {i}. {old} -> {entry.to_status} by {entry.changed_by}{auto}")
        if entry.note:
            print(f"       note: {entry.note}")
    print()


# ===========================================================================
# Scenario 1: Happy Path
# ===========================================================================
async def scenario_1_happy_path() -> None:
    banner("SCENARIO 1: Happy Path (filing fee to registration)")

    customer = CustomerBot()
    admin = AdminBot()
    outbox = Outbox()

    async with get_session() as session:
        dispatcher = build_dispatcher(session, outbox)
        await customer.register(session)

        section("Step 1: Customer submits with a filing fee")
        application_id = await customer.submit(
            session, dispatcher, "OPENTM", filing_fee=Decimal("50000")
        )
        filing = await PaymentLedger(session).get_payment_by_stage(
            application_id, PaymentStage.FILING
        )

        section("Step 2: Filing fee arrives in two remittances")
        await admin.confirm_payment(session, dispatcher, filing.id, Decimal("20000"), customer.name)
        await admin.confirm_payment(session, dispatcher, filing.id, Decimal("50000"), customer.name)

        section("Step 3: Filing and examination")
        for target in (
            "preparing_filing",
            "filed",
            "under_examination",
            "publication_announced",
            "registration_decided",
            "awaiting_registration_fee",
        ):
            await admin.move(session, dispatcher, application_id, target)

        section("Step 4: Registration fee")
        registration_id = await admin.invoice(
            session, application_id, PaymentStage.REGISTRATION, Decimal("210000")
        )
        await admin.confirm_payment(
            session, dispatcher, registration_id, Decimal("210000"), customer.name
        )

        section("Step 5: Registration")
        await admin.move(session, dispatcher, application_id, "registered")

        summary = await PaymentLedger(session).get_summary(application_id)
        print(f"  Paid {summary.total_paid} of {summary.total_amount}; all paid: {summary.all_paid}")
        await print_status_log(session, application_id)
        print_outbox(outbox)


# ===========================================================================
# Scenario 2: Guard Rails
# ===========================================================================
async def scenario_2_guard_rails() -> None:
    banner("SCENARIO 2: Guard Rails (payment gate, rollback memo, bad edges)")

    customer = CustomerBot(email="guard@example.com", phone="")
    admin = AdminBot()
    outbox = Outbox()

    async with get_session() as session:
        dispatcher = build_dispatcher(session, outbox)
        await customer.register(session)

        section("Step 1: Submit without an upfront fee")
        application_id = await customer.submit(session, dispatcher, "GUARDRAIL", filing_fee=None)
        for target in ("preparing_filing", "filed", "under_examination", "publication_announced"):
            await admin.move(session, dispatcher, application_id, target)

        section("Step 2: Roll back without a note")
        error = await admin.try_move(session, dispatcher, application_id, "awaiting_office_action")
        print(f"  Refused: {error.to_dict() if error else None}")

        section("Step 3: Roll back with a note")
        await admin.move(
            session,
            dispatcher,
            application_id,
            "awaiting_office_action",
            note="Opposition filed during publication",
        )

        section("Step 4: Respond before the office action fee is paid")
        error = await admin.try_move(
            session, dispatcher, application_id, "responding_to_office_action"
        )
        print(f"  Refused: {error.to_dict() if error else None}")

        section("Step 5: Jump straight to registered")
        error = await admin.try_move(session, dispatcher, application_id, "registered")
        print(f"  Refused: {error.to_dict() if error else None}")

        await print_status_log(session, application_id)
        print_outbox(outbox)


# ===========================================================================
# Scenario 3: Flaky Email Provider
# ===========================================================================
async def scenario_3_flaky_email() -> None:
    banner("SCENARIO 3: Flaky Email Provider (retries and ops escalation)")

    customer = CustomerBot(email="flaky@example.com")
    admin = AdminBot()
    outbox = Outbox()

    async with get_session() as session:
        await customer.register(session)
        steady = build_dispatcher(session, outbox)
        application_id = await customer.submit(session, steady, "FLAKY", filing_fee=None)
        await admin.move(session, steady, application_id, "preparing_filing")
        await admin.move(session, steady, application_id, "filed")
        await admin.move(session, steady, application_id, "under_examination")

        section("Office action issued while the email provider is failing")
        flaky = build_dispatcher(session, outbox, email_failures=2)
        executor = TransitionExecutor(session)
        result = await executor.request_transition(
            application_id,
            "awaiting_office_action",
            actor=admin.admin_id,
            status_detail="Distinctiveness objection; response due in 2 months",
        )
        await session.commit()
        outcome = await flaky.dispatch(StatusChangeEvent.from_transition(result))
        for channel_result in outcome.results:
            print(
                f"  {channel_result.channel:<10} success={channel_result.success} "
                f"attempts={channel_result.attempts} error={channel_result.error}"
            )
        print_outbox(outbox)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------
SCENARIOS = {
    1: scenario_1_happy_path,
    2: scenario_2_guard_rails,
    3: scenario_3_flaky_email,
}


async def main(use_sqlite: bool = False, scenario: int | None = None) -> None:
    await init_database(use_sqlite=use_sqlite)
    try:
        targets = [SCENARIOS[scenario]] if scenario else list(SCENARIOS.values())
        for run in targets:
            await run()
    finally:
        await shutdown_database()
    banner("SIMULATION COMPLETE")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Trademark Workflow Simulation")
    parser.add_argument("--sqlite", action="store_true", help="Use SQLite in-memory")
    parser.add_argument(
        "--scenario", type=int, choices=sorted(SCENARIOS), help="Run a single scenario"
    )
    args = parser.parse_args()
    asyncio.run(main(use_sqlite=args.sqlite, scenario=args.scenario))
