"""Payroll period and receipt state machines with transition validation."""

from __future__ import annotations

from funeral_payroll.enums import PeriodState, ReceiptStatus, value_of
from funeral_payroll.errors import InvalidTransitionError


class PeriodStateMachine:
    """State machine for payroll period transitions.

    Allowed transitions (forward only):
    - open → closed
    - closed → processed
    - processed → paid
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        PeriodState.OPEN.value: [PeriodState.CLOSED.value],
        PeriodState.CLOSED.value: [PeriodState.PROCESSED.value],
        PeriodState.PROCESSED.value: [PeriodState.PAID.value],
        PeriodState.PAID.value: [],  # Terminal state
    }

    # States where records can be computed or adjusted
    COMPUTATION_ALLOWED = {PeriodState.OPEN.value}

    # States where the period definition itself is editable
    DEFINITION_MUTABLE = {PeriodState.OPEN.value}

    @classmethod
    def can_transition(cls, from_state: str, to_state: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(value_of(from_state), [])
        return value_of(to_state) in allowed

    @classmethod
    def validate_transition(cls, from_state: str, to_state: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_state, to_state):
            raise InvalidTransitionError(value_of(from_state), value_of(to_state))

    @classmethod
    def can_compute(cls, state: str) -> bool:
        """Check if record computation/adjustment is allowed in this state."""
        return value_of(state) in cls.COMPUTATION_ALLOWED

    @classmethod
    def require_computable(cls, state: str) -> None:
        """Raise unless records of a period in this state may be written."""
        if not cls.can_compute(state):
            raise InvalidTransitionError(
                value_of(state), value_of(state), "period is no longer open for computation"
            )

    @classmethod
    def can_edit_definition(cls, state: str) -> bool:
        return value_of(state) in cls.DEFINITION_MUTABLE

    @classmethod
    def get_next_states(cls, current_state: str) -> list[str]:
        """Get list of valid next states from current state."""
        return cls.VALID_TRANSITIONS.get(value_of(current_state), [])


class ReceiptStatusMachine:
    """Tracking states for issued receipts.

    Allowed transitions:
    - pending → issued
    - issued → sent
    - issued → paid
    - sent → paid
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        ReceiptStatus.PENDING.value: [ReceiptStatus.ISSUED.value],
        ReceiptStatus.ISSUED.value: [ReceiptStatus.SENT.value, ReceiptStatus.PAID.value],
        ReceiptStatus.SENT.value: [ReceiptStatus.PAID.value],
        ReceiptStatus.PAID.value: [],
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        return value_of(to_status) in cls.VALID_TRANSITIONS.get(value_of(from_status), [])

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(value_of(from_status), value_of(to_status))
