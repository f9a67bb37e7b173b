"""Property-based tests for payroll invariants.

These tests use hypothesis to generate random amounts and transition
sequences and check that the totals arithmetic and the state machines
hold their invariants for every input.
"""

from decimal import Decimal

from hypothesis import given, settings, strategies as st

from funeral_payroll.models import PayrollRecord
from funeral_payroll.services.state_machine import PeriodStateMachine, ReceiptStatusMachine

money = st.decimals(
    min_value=Decimal("0"),
    max_value=Decimal("100000000"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)

PERIOD_ORDER = ["open", "closed", "processed", "paid"]
RECEIPT_ORDER = ["pending", "issued", "sent", "paid"]


class TestTotalsProperties:
    @given(
        base_salary=money,
        extras=money,
        bonuses=money,
        commissions=money,
        deductions=money,
        advances=money,
    )
    @settings(max_examples=100)
    def test_net_is_gross_minus_deductions(
        self, base_salary, extras, bonuses, commissions, deductions, advances
    ):
        record = PayrollRecord(
            base_salary=base_salary,
            extras_total=extras,
            bonuses=bonuses,
            commissions=commissions,
            deductions=deductions,
            advances=advances,
        )

        record.recalculate_totals()

        assert record.gross_total == base_salary + extras + bonuses + commissions
        assert record.total_deductions == deductions + advances
        assert record.net_total == record.gross_total - record.total_deductions

    @given(base_salary=money, extras=money, bonuses=money)
    @settings(max_examples=50)
    def test_recalculation_is_stable(self, base_salary, extras, bonuses):
        record = PayrollRecord(
            base_salary=base_salary,
            extras_total=extras,
            bonuses=bonuses,
            commissions=Decimal("0"),
            deductions=Decimal("0"),
            advances=Decimal("0"),
        )

        record.recalculate_totals()
        first = (record.gross_total, record.total_deductions, record.net_total)
        record.recalculate_totals()

        assert (record.gross_total, record.total_deductions, record.net_total) == first


class TestTransitionProperties:
    @given(transitions=st.lists(st.sampled_from(PERIOD_ORDER), min_size=1, max_size=20))
    @settings(max_examples=100)
    def test_period_state_never_moves_backwards(self, transitions):
        state = "open"
        for target in transitions:
            if PeriodStateMachine.can_transition(state, target):
                assert PERIOD_ORDER.index(target) == PERIOD_ORDER.index(state) + 1
                state = target

    @given(transitions=st.lists(st.sampled_from(RECEIPT_ORDER), min_size=1, max_size=20))
    @settings(max_examples=100)
    def test_receipt_status_never_moves_backwards(self, transitions):
        status = "pending"
        for target in transitions:
            if ReceiptStatusMachine.can_transition(status, target):
                assert RECEIPT_ORDER.index(target) > RECEIPT_ORDER.index(status)
                status = target
