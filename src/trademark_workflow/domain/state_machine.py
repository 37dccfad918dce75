"""Trademark Application State Machine Guard.

Uses python-statemachine to enforce legal status transitions at the domain
level. The class below IS the transition table: every wired status is a State,
every legal edge belongs to exactly one named event. ALLOWED_TRANSITIONS is
derived from it so the graph can be reviewed (and exhaustively tested) in one
place.

Nominal forward sequence:
    submitted -> awaiting_payment -> payment_received -> awaiting_applicant_info
    -> awaiting_documents -> preparing_filing -> awaiting_client_signature
    -> filed -> under_examination -> awaiting_office_action
    -> responding_to_office_action -> publication_announced
    -> registration_decided -> awaiting_registration_fee
    -> registration_fee_paid -> registered

Lateral exits: cancelled (before filing), withdrawn (any live status),
rejected (during examination). These never count as rollbacks.

awaiting_acceleration / preparing_acceleration are known statuses but are not
wired: they have no edges in or out and only accept reflexive moves.
"""

from __future__ import annotations

from statemachine import State, StateMachine

from trademark_workflow.domain.enums import ApplicationStatus

S = ApplicationStatus


class ApplicationStateMachine(StateMachine):
    """State machine that guards trademark application lifecycle transitions.

    Usage:
        sm = ApplicationStateMachine(current_status="awaiting_payment")
        sm.allowed_statuses        # ["payment_received", "awaiting_documents", ...]
        sm.confirm_filing_payment()
        sm.status                  # "payment_received"
    """

    # --- States (attribute name == status value) ---
    submitted = State("Submitted", initial=True)
    awaiting_payment = State("Awaiting payment")
    payment_received = State("Payment received")
    awaiting_applicant_info = State("Awaiting applicant info")
    awaiting_documents = State("Awaiting documents")
    preparing_filing = State("Preparing filing")
    awaiting_client_signature = State("Awaiting client signature")
    filed = State("Filed")
    under_examination = State("Under examination")
    awaiting_office_action = State("Awaiting office action")
    responding_to_office_action = State("Responding to office action")
    publication_announced = State("Publication announced")
    registration_decided = State("Registration decided")
    awaiting_registration_fee = State("Awaiting registration fee")
    registration_fee_paid = State("Registration fee paid")
    registered = State("Registered", final=True)
    rejected = State("Rejected", final=True)
    cancelled = State("Cancelled", final=True)
    withdrawn = State("Withdrawn", final=True)

    # --- Events / Transitions ---

    # Intake
    request_payment = submitted.to(awaiting_payment)
    confirm_filing_payment = submitted.to(payment_received) | awaiting_payment.to(
        payment_received
    )
    request_applicant_info = (
        submitted.to(awaiting_applicant_info)
        | payment_received.to(awaiting_applicant_info)
        | awaiting_documents.to(awaiting_applicant_info)
    )
    request_documents = (
        submitted.to(awaiting_documents)
        | awaiting_payment.to(awaiting_documents)
        | payment_received.to(awaiting_documents)
        | awaiting_applicant_info.to(awaiting_documents)
        | preparing_filing.to(awaiting_documents)
    )

    # Filing
    start_filing_preparation = (
        submitted.to(preparing_filing)
        | payment_received.to(preparing_filing)
        | awaiting_applicant_info.to(preparing_filing)
        | awaiting_documents.to(preparing_filing)
        | awaiting_client_signature.to(preparing_filing)
    )
    request_signature = preparing_filing.to(awaiting_client_signature)
    file_application = preparing_filing.to(filed) | awaiting_client_signature.to(filed)

    # Examination
    start_examination = (
        filed.to(under_examination)
        | awaiting_office_action.to(under_examination)
        | responding_to_office_action.to(under_examination)
    )
    receive_office_action = (
        under_examination.to(awaiting_office_action)
        | publication_announced.to(awaiting_office_action)
    )
    confirm_office_action_payment = awaiting_office_action.to(responding_to_office_action)
    announce_publication = under_examination.to(publication_announced) | (
        responding_to_office_action.to(publication_announced)
    )

    # Registration
    decide_registration = (
        under_examination.to(registration_decided)
        | responding_to_office_action.to(registration_decided)
        | publication_announced.to(registration_decided)
    )
    request_registration_fee = registration_decided.to(awaiting_registration_fee)
    confirm_registration_payment = registration_decided.to(
        registration_fee_paid
    ) | awaiting_registration_fee.to(registration_fee_paid)
    complete_registration = registration_fee_paid.to(registered)

    # Lateral exits
    reject_application = (
        under_examination.to(rejected)
        | awaiting_office_action.to(rejected)
        | responding_to_office_action.to(rejected)
        | publication_announced.to(rejected)
    )
    cancel_application = (
        submitted.to(cancelled)
        | awaiting_payment.to(cancelled)
        | payment_received.to(cancelled)
        | awaiting_applicant_info.to(cancelled)
        | awaiting_documents.to(cancelled)
        | preparing_filing.to(cancelled)
        | awaiting_client_signature.to(cancelled)
        | awaiting_registration_fee.to(cancelled)
    )
    withdraw_application = (
        submitted.to(withdrawn)
        | awaiting_payment.to(withdrawn)
        | payment_received.to(withdrawn)
        | awaiting_applicant_info.to(withdrawn)
        | awaiting_documents.to(withdrawn)
        | preparing_filing.to(withdrawn)
        | awaiting_client_signature.to(withdrawn)
        | filed.to(withdrawn)
        | under_examination.to(withdrawn)
        | awaiting_office_action.to(withdrawn)
        | responding_to_office_action.to(withdrawn)
        | publication_announced.to(withdrawn)
        | registration_decided.to(withdrawn)
        | awaiting_registration_fee.to(withdrawn)
    )

    def __init__(self, current_status: str = "submitted") -> None:
        """Initialize the state machine at a given status.

        Args:
            current_status: The current ApplicationStatus value (e.g., "filed").
                           Must be a wired state value.
        """
        valid_values = {s.value for s in self.states}
        if current_status not in valid_values:
            valid = ", ".join(sorted(valid_values))
            raise ValueError(
                f"Unknown status '{current_status}'. Valid states: {valid}"
            )
        super().__init__(start_value=current_status)

    @property
    def status(self) -> str:
        """Return the current state value as a string (matches ApplicationStatus)."""
        return str(self.current_state.value)

    @property
    def allowed_statuses(self) -> list[str]:
        """Statuses reachable in one step from the current state."""
        return [str(t.target.value) for t in self.current_state.transitions]


def _build_adjacency() -> dict[ApplicationStatus, tuple[ApplicationStatus, ...]]:
    table: dict[ApplicationStatus, tuple[ApplicationStatus, ...]] = {
        status: () for status in ApplicationStatus
    }
    for state in ApplicationStateMachine.states:
        targets = dict.fromkeys(S(t.target.value) for t in state.transitions)
        table[S(state.value)] = tuple(targets)
    return table


ALLOWED_TRANSITIONS: dict[ApplicationStatus, tuple[ApplicationStatus, ...]] = _build_adjacency()

WIRED_STATUSES: frozenset[ApplicationStatus] = frozenset(
    S(state.value) for state in ApplicationStateMachine.states
)

FORWARD_SEQUENCE: tuple[ApplicationStatus, ...] = (
    S.SUBMITTED,
    S.AWAITING_PAYMENT,
    S.PAYMENT_RECEIVED,
    S.AWAITING_APPLICANT_INFO,
    S.AWAITING_DOCUMENTS,
    S.PREPARING_FILING,
    S.AWAITING_CLIENT_SIGNATURE,
    S.FILED,
    S.UNDER_EXAMINATION,
    S.AWAITING_OFFICE_ACTION,
    S.RESPONDING_TO_OFFICE_ACTION,
    S.PUBLICATION_ANNOUNCED,
    S.REGISTRATION_DECIDED,
    S.AWAITING_REGISTRATION_FEE,
    S.REGISTRATION_FEE_PAID,
    S.REGISTERED,
)

_SEQUENCE_INDEX = {status: index for index, status in enumerate(FORWARD_SEQUENCE)}


def can_transition(current: ApplicationStatus | str, target: ApplicationStatus | str) -> bool:
    """Return True if moving from ``current`` to ``target`` is legal.

    Re-applying the current status is always legal. Unknown statuses never are.
    """
    current_status = S.parse(current)
    target_status = S.parse(target)
    if current_status is None or target_status is None:
        return False
    if current_status is target_status:
        return True
    return target_status in ALLOWED_TRANSITIONS[current_status]


def allowed_next_statuses(current: ApplicationStatus | str) -> list[ApplicationStatus]:
    """Statuses reachable in one step (excluding the reflexive move)."""
    current_status = S.parse(current)
    if current_status is None:
        return []
    return list(ALLOWED_TRANSITIONS[current_status])


def is_rollback(current: ApplicationStatus | str, target: ApplicationStatus | str) -> bool:
    """True when ``target`` sits earlier than ``current`` on the forward sequence."""
    current_status = S.parse(current)
    target_status = S.parse(target)
    if current_status is None or target_status is None:
        return False
    current_index = _SEQUENCE_INDEX.get(current_status)
    target_index = _SEQUENCE_INDEX.get(target_status)
    if current_index is None or target_index is None:
        return False
    return target_index < current_index


def resolve_initial_status(
    payment_amount: float | int | None = None,
    skip_payment_gate: bool = False,
) -> ApplicationStatus:
    """Derive the status a freshly submitted application starts in.

    Total over its inputs: a positive upfront fee parks the application in
    awaiting_payment unless the gate is explicitly skipped.
    """
    if skip_payment_gate:
        return S.AWAITING_DOCUMENTS
    if payment_amount is not None and payment_amount > 0:
        return S.AWAITING_PAYMENT
    return S.AWAITING_DOCUMENTS
