"""Period store and lifecycle tests against the database."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from funeral_payroll.enums import PeriodState
from funeral_payroll.errors import InvalidRangeError, InvalidTransitionError, NotFoundError
from funeral_payroll.services import ComputationService, PeriodFilter, PeriodService


class TestPeriodStore:
    async def test_create_starts_open(self, session: AsyncSession, organization_id):
        period = await PeriodService(session).create(
            organization_id, "February 2024", date(2024, 2, 1), date(2024, 2, 29), "leap"
        )

        assert period.state == PeriodState.OPEN.value
        assert period.closed_at is None
        assert period.total_gross == Decimal("0")
        assert period.collaborator_count == 0
        assert period.notes == "leap"

    async def test_single_day_period_is_valid(self, session: AsyncSession, organization_id):
        period = await PeriodService(session).create(
            organization_id, "Day one", date(2024, 3, 1), date(2024, 3, 1)
        )
        assert period.start_date == period.end_date

    async def test_end_before_start_rejected(self, session: AsyncSession, organization_id):
        with pytest.raises(InvalidRangeError) as exc_info:
            await PeriodService(session).create(
                organization_id, "Backwards", date(2024, 2, 1), date(2024, 1, 31)
            )
        assert exc_info.value.code == "INVALID_RANGE"

    async def test_get_unknown_period(self, session: AsyncSession):
        with pytest.raises(NotFoundError):
            await PeriodService(session).get(uuid4())

    async def test_get_other_organization_is_not_found(
        self, session: AsyncSession, january_period
    ):
        with pytest.raises(NotFoundError):
            await PeriodService(session).get(january_period.payroll_period_id, uuid4())

    async def test_list_filters(self, session: AsyncSession, organization_id, january_period):
        service = PeriodService(session)
        february = await service.create(
            organization_id, "February 2024", date(2024, 2, 1), date(2024, 2, 29)
        )
        await service.create(uuid4(), "Other home", date(2024, 2, 1), date(2024, 2, 29))
        await service.close(february.payroll_period_id, "closer")

        everything = await service.list(organization_id)
        assert [p.name for p in everything] == ["February 2024", "January 2024"]

        open_only = await service.list(organization_id, PeriodFilter(state=PeriodState.OPEN))
        assert [p.name for p in open_only] == ["January 2024"]

        from_feb = await service.list(organization_id, PeriodFilter(date_from=date(2024, 2, 1)))
        assert [p.name for p in from_feb] == ["February 2024"]

        to_jan = await service.list(organization_id, PeriodFilter(date_to=date(2024, 1, 31)))
        assert [p.name for p in to_jan] == ["January 2024"]

        searched = await service.list(organization_id, PeriodFilter(search="febr"))
        assert [p.name for p in searched] == ["February 2024"]

    async def test_update_open_period(self, session: AsyncSession, january_period):
        period = await PeriodService(session).update(
            january_period.payroll_period_id, name="Enero 2024", end_date=date(2024, 1, 30)
        )

        assert period.name == "Enero 2024"
        assert period.start_date == date(2024, 1, 1)
        assert period.end_date == date(2024, 1, 30)

    async def test_update_rejects_inverted_range(self, session: AsyncSession, january_period):
        with pytest.raises(InvalidRangeError):
            await PeriodService(session).update(
                january_period.payroll_period_id, end_date=date(2023, 12, 31)
            )

    async def test_update_closed_period_rejected(self, session: AsyncSession, january_period):
        service = PeriodService(session)
        await service.close(january_period.payroll_period_id, "closer")

        with pytest.raises(InvalidTransitionError):
            await service.update(january_period.payroll_period_id, name="Renamed")

    async def test_delete_empty_period(self, session: AsyncSession, january_period):
        service = PeriodService(session)
        await service.delete(january_period.payroll_period_id)

        with pytest.raises(NotFoundError):
            await service.get(january_period.payroll_period_id)

    async def test_delete_period_with_records_rejected(
        self, session: AsyncSession, organization_id, january_period, make_collaborator
    ):
        await make_collaborator()
        await ComputationService(session).compute(
            january_period.payroll_period_id, organization_id
        )

        with pytest.raises(InvalidTransitionError):
            await PeriodService(session).delete(january_period.payroll_period_id)


class TestPeriodLifecycle:
    async def test_close_stamps_and_totals(
        self, session: AsyncSession, organization_id, january_period, make_collaborator
    ):
        await make_collaborator("Ana Rojas", base_salary=Decimal("500000"))
        await make_collaborator("Luis Vera", base_salary=Decimal("300000"))
        await ComputationService(session).compute(
            january_period.payroll_period_id, organization_id
        )

        period = await PeriodService(session).close(
            january_period.payroll_period_id, "manager-1", "final", organization_id
        )

        assert period.state == PeriodState.CLOSED.value
        assert period.closed_at is not None
        assert period.closed_by == "manager-1"
        assert period.notes == "final"
        assert period.collaborator_count == 2
        assert period.total_gross == Decimal("800000")
        assert period.total_net == Decimal("800000")

    async def test_second_close_fails_and_keeps_first_stamp(
        self, session: AsyncSession, january_period
    ):
        service = PeriodService(session)
        await service.close(january_period.payroll_period_id, "manager-1")
        await session.commit()
        await session.refresh(january_period)
        first_closed_at = january_period.closed_at

        with pytest.raises(InvalidTransitionError):
            await service.close(january_period.payroll_period_id, "manager-2")

        await session.refresh(january_period)
        assert january_period.closed_at == first_closed_at
        assert january_period.closed_by == "manager-1"

    async def test_forward_only_lifecycle(self, session: AsyncSession, january_period):
        service = PeriodService(session)
        period_id = january_period.payroll_period_id

        with pytest.raises(InvalidTransitionError):
            await service.mark_processed(period_id)

        await service.close(period_id, "manager-1")
        with pytest.raises(InvalidTransitionError):
            await service.mark_paid(period_id)

        processed = await service.mark_processed(period_id)
        assert processed.state == PeriodState.PROCESSED.value

        paid = await service.mark_paid(period_id)
        assert paid.state == PeriodState.PAID.value

        with pytest.raises(InvalidTransitionError):
            await service.mark_paid(period_id)

    async def test_refresh_totals_without_records(self, session: AsyncSession, january_period):
        period = await PeriodService(session).refresh_totals(january_period.payroll_period_id)

        assert period.total_gross == Decimal("0")
        assert period.total_deductions == Decimal("0")
        assert period.total_net == Decimal("0")
        assert period.collaborator_count == 0
