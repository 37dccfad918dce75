"""Tests for the ApplicationStateMachine and the derived transition table.

These tests verify that:
    1. The nominal lifecycle runs through named events.
    2. Illegal events are blocked by the state machine.
    3. can_transition is total, reflexive, and closed at terminal statuses.
    4. Rollback detection and initial status resolution behave as documented.
"""

from __future__ import annotations

import itertools

import pytest
from statemachine.exceptions import TransitionNotAllowed

from trademark_workflow.domain.enums import TERMINAL_STATUSES, ApplicationStatus
from trademark_workflow.domain.state_machine import (
    ALLOWED_TRANSITIONS,
    FORWARD_SEQUENCE,
    WIRED_STATUSES,
    ApplicationStateMachine,
    allowed_next_statuses,
    can_transition,
    is_rollback,
    resolve_initial_status,
)

S = ApplicationStatus


class TestHappyPath:
    """Submitted with an upfront fee through to registered."""

    def test_full_lifecycle(self) -> None:
        sm = ApplicationStateMachine("submitted")

        sm.request_payment()
        assert sm.status == "awaiting_payment"

        sm.confirm_filing_payment()
        assert sm.status == "payment_received"

        sm.start_filing_preparation()
        sm.file_application()
        assert sm.status == "filed"

        sm.start_examination()
        sm.announce_publication()
        sm.decide_registration()
        sm.request_registration_fee()
        sm.confirm_registration_payment()
        assert sm.status == "registration_fee_paid"

        sm.complete_registration()
        assert sm.status == "registered"

    def test_office_action_loop(self) -> None:
        sm = ApplicationStateMachine("under_examination")
        sm.receive_office_action()
        sm.confirm_office_action_payment()
        assert sm.status == "responding_to_office_action"

        sm.start_examination()
        assert sm.status == "under_examination"


class TestInvalidTransitions:
    def test_cannot_register_from_filed(self) -> None:
        sm = ApplicationStateMachine("filed")
        with pytest.raises(TransitionNotAllowed):
            sm.complete_registration()

    def test_cannot_leave_registered(self) -> None:
        sm = ApplicationStateMachine("registered")
        with pytest.raises(TransitionNotAllowed):
            sm.withdraw_application()

    def test_unknown_status_rejected(self) -> None:
        with pytest.raises(ValueError, match="Unknown status"):
            ApplicationStateMachine("approved")

    def test_unwired_status_rejected(self) -> None:
        with pytest.raises(ValueError):
            ApplicationStateMachine("awaiting_acceleration")


class TestCanTransition:
    def test_reflexive_for_every_status(self) -> None:
        for status in ApplicationStatus:
            assert can_transition(status, status) is True

    def test_terminal_statuses_have_no_exits(self) -> None:
        for terminal, target in itertools.product(TERMINAL_STATUSES, ApplicationStatus):
            if target is not terminal:
                assert can_transition(terminal, target) is False

    def test_totality_matches_table(self) -> None:
        for current, target in itertools.product(ApplicationStatus, ApplicationStatus):
            expected = current is target or target in ALLOWED_TRANSITIONS[current]
            assert can_transition(current, target) is expected

    def test_accepts_raw_strings(self) -> None:
        assert can_transition(" FILED", "under_examination") is True

    def test_unknown_statuses_are_false(self) -> None:
        assert can_transition("filed", "approved") is False
        assert can_transition("approved", "approved") is False

    def test_skipping_examination_is_blocked(self) -> None:
        assert can_transition(S.FILED, S.REGISTERED) is False

    def test_cancel_not_allowed_after_filing(self) -> None:
        assert can_transition(S.FILED, S.CANCELLED) is False
        assert can_transition(S.FILED, S.WITHDRAWN) is True


class TestUnwiredStatuses:
    @pytest.mark.parametrize("status", [S.AWAITING_ACCELERATION, S.PREPARING_ACCELERATION])
    def test_no_edges_in_or_out(self, status: ApplicationStatus) -> None:
        assert status not in WIRED_STATUSES
        assert ALLOWED_TRANSITIONS[status] == ()
        assert all(status not in targets for targets in ALLOWED_TRANSITIONS.values())
        assert can_transition(status, status) is True

    def test_allowed_next_is_empty(self) -> None:
        assert allowed_next_statuses(S.PREPARING_ACCELERATION) == []


class TestAllowedNextStatuses:
    def test_awaiting_payment(self) -> None:
        assert set(allowed_next_statuses("awaiting_payment")) == {
            S.PAYMENT_RECEIVED,
            S.AWAITING_DOCUMENTS,
            S.CANCELLED,
            S.WITHDRAWN,
        }

    def test_unknown_gives_empty(self) -> None:
        assert allowed_next_statuses("nope") == []

    def test_matches_state_machine_view(self) -> None:
        sm = ApplicationStateMachine("publication_announced")
        assert set(sm.allowed_statuses) == {s.value for s in allowed_next_statuses(sm.status)}


class TestIsRollback:
    def test_backwards_on_sequence(self) -> None:
        assert is_rollback(S.PUBLICATION_ANNOUNCED, S.AWAITING_OFFICE_ACTION) is True
        assert is_rollback(S.PREPARING_FILING, S.AWAITING_DOCUMENTS) is True

    def test_forward_is_not_rollback(self) -> None:
        assert is_rollback(S.UNDER_EXAMINATION, S.AWAITING_OFFICE_ACTION) is False

    def test_same_status_is_not_rollback(self) -> None:
        assert is_rollback(S.FILED, S.FILED) is False

    def test_off_sequence_statuses_are_not_rollbacks(self) -> None:
        assert is_rollback(S.FILED, S.WITHDRAWN) is False
        assert is_rollback(S.AWAITING_ACCELERATION, S.SUBMITTED) is False

    def test_sequence_is_ordered_and_wired(self) -> None:
        assert FORWARD_SEQUENCE[0] is S.SUBMITTED
        assert FORWARD_SEQUENCE[-1] is S.REGISTERED
        assert set(FORWARD_SEQUENCE) <= WIRED_STATUSES


class TestResolveInitialStatus:
    def test_positive_fee_waits_for_payment(self) -> None:
        assert resolve_initial_status(payment_amount=50000) is S.AWAITING_PAYMENT

    def test_no_fee_goes_to_documents(self) -> None:
        assert resolve_initial_status() is S.AWAITING_DOCUMENTS
        assert resolve_initial_status(payment_amount=0) is S.AWAITING_DOCUMENTS

    def test_skip_overrides_fee(self) -> None:
        assert resolve_initial_status(payment_amount=50000, skip_payment_gate=True) is (
            S.AWAITING_DOCUMENTS
        )
