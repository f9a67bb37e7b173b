"""Tests for payroll record totals and small pure helpers."""

import re
from decimal import Decimal
from uuid import uuid4

import pytest

from funeral_payroll.enums import EmploymentType
from funeral_payroll.errors import ConflictError, NotFoundError, retry_on_conflict
from funeral_payroll.models import Collaborator, PayrollRecord, compute_gross
from funeral_payroll.models.base import round_money
from funeral_payroll.services.computation_service import base_salary_for
from funeral_payroll.services.directory import day_bounds
from funeral_payroll.services.receipt_service import generate_verification_code


class TestRecalculateTotals:
    """Derived totals follow the stored components."""

    def test_gross_deductions_net(self):
        record = PayrollRecord(
            base_salary=Decimal("500000"),
            extras_total=Decimal("75000"),
            bonuses=Decimal("20000"),
            commissions=Decimal("5000"),
            deductions=Decimal("30000"),
            advances=Decimal("10000"),
        )

        record.recalculate_totals()

        assert record.gross_total == Decimal("600000")
        assert record.total_deductions == Decimal("40000")
        assert record.net_total == Decimal("560000")

    def test_net_may_go_negative(self):
        record = PayrollRecord(
            base_salary=Decimal("0"),
            extras_total=Decimal("10000"),
            bonuses=Decimal("0"),
            commissions=Decimal("0"),
            deductions=Decimal("0"),
            advances=Decimal("25000"),
        )

        record.recalculate_totals()

        assert record.net_total == Decimal("-15000")

    def test_unset_components_count_as_zero(self):
        record = PayrollRecord(base_salary=Decimal("100"), extras_total=Decimal("50"))

        record.recalculate_totals()

        assert record.gross_total == Decimal("150")
        assert record.total_deductions == Decimal("0")
        assert record.net_total == Decimal("150")


def test_compute_gross_treats_none_as_zero():
    assert compute_gross(None, Decimal("10"), None, Decimal("2.50")) == Decimal("12.50")
    assert compute_gross(None, None, None, None) == Decimal("0")


class TestBaseSalary:
    def test_employee_draws_base_salary(self):
        collaborator = Collaborator(
            employment_type=EmploymentType.EMPLOYEE.value,
            base_salary=Decimal("450000"),
        )
        assert base_salary_for(collaborator) == Decimal("450000")

    def test_employee_without_salary_draws_zero(self):
        collaborator = Collaborator(employment_type=EmploymentType.EMPLOYEE.value)
        assert base_salary_for(collaborator) == Decimal("0")

    def test_fee_for_service_draws_nothing(self):
        collaborator = Collaborator(
            employment_type=EmploymentType.FEE_FOR_SERVICE.value,
            base_salary=Decimal("450000"),
        )
        assert base_salary_for(collaborator) == Decimal("0")


def test_day_bounds_cover_whole_end_day():
    from datetime import date

    start, end = day_bounds(date(2024, 1, 1), date(2024, 1, 31))

    assert start.isoformat() == "2024-01-01T00:00:00+00:00"
    assert end.isoformat() == "2024-02-01T00:00:00+00:00"


def test_verification_code_format():
    code = generate_verification_code()

    assert re.fullmatch(r"\d{13}-[A-Z0-9]{9}", code)
    assert code != generate_verification_code()


class TestRetryOnConflict:
    async def test_retries_once(self):
        calls = []

        async def flaky():
            calls.append(1)
            if len(calls) == 1:
                raise ConflictError("busy")
            return "ok"

        assert await retry_on_conflict(flaky) == "ok"
        assert len(calls) == 2

    async def test_second_conflict_propagates(self):
        async def always_conflicts():
            raise ConflictError("busy")

        with pytest.raises(ConflictError):
            await retry_on_conflict(always_conflicts)

    async def test_other_errors_are_not_retried(self):
        calls = []

        async def missing():
            calls.append(1)
            raise NotFoundError("Payroll period", uuid4())

        with pytest.raises(NotFoundError):
            await retry_on_conflict(missing)
        assert len(calls) == 1


class TestRoundMoney:
    def test_rounds_half_up_to_cents(self):
        assert round_money(Decimal("0.005")) == Decimal("0.01")
        assert round_money(Decimal("10.004")) == Decimal("10.00")
        assert round_money(Decimal("0.1") + Decimal("0.2")) == Decimal("0.30")

    def test_none_is_zero(self):
        assert round_money(None) == Decimal("0.00")

    def test_recalculate_rounds_components(self):
        record = PayrollRecord(
            base_salary=Decimal("0.10"),
            extras_total=Decimal("0.20"),
            bonuses=Decimal("0.005"),
            advances=Decimal("0.015"),
        )

        record.recalculate_totals()

        assert record.bonuses == Decimal("0.01")
        assert record.gross_total == Decimal("0.31")
        assert record.total_deductions == Decimal("0.02")
        assert record.net_total == Decimal("0.29")
