"""Payroll period store and period closer."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from funeral_payroll.enums import PeriodState, value_of
from funeral_payroll.errors import InvalidRangeError, InvalidTransitionError, NotFoundError
from funeral_payroll.models import PayrollPeriod, PayrollRecord
from funeral_payroll.models.base import round_money, utcnow
from funeral_payroll.services.state_machine import PeriodStateMachine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PeriodFilter:
    """Filters for listing payroll periods."""

    state: PeriodState | None = None
    date_from: date | None = None
    date_to: date | None = None
    search: str | None = None


class PeriodService:
    """Service for the payroll period lifecycle.

    Operations:
    - create / get / list / update / delete: the period store
    - refresh_totals: recompute aggregates from child records
    - close: open → closed, freezing the period against computation
    - mark_processed / mark_paid: forward steps driven by the payment pipeline
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        organization_id: UUID,
        name: str,
        start_date: date,
        end_date: date,
        notes: str | None = None,
    ) -> PayrollPeriod:
        """Create an open period, rejecting ranges that end before they start."""
        if end_date < start_date:
            raise InvalidRangeError(start_date, end_date)

        period = PayrollPeriod(
            organization_id=organization_id,
            name=name,
            start_date=start_date,
            end_date=end_date,
            state=PeriodState.OPEN.value,
            notes=notes,
        )
        self.session.add(period)
        await self.session.flush()

        logger.info(
            "Created payroll period %s (%s..%s) for organization %s",
            period.payroll_period_id,
            start_date,
            end_date,
            organization_id,
        )
        return period

    async def get(self, period_id: UUID, organization_id: UUID | None = None) -> PayrollPeriod:
        """Load a period, raising NotFoundError when missing or foreign."""
        period = await self.session.get(PayrollPeriod, period_id)
        if period is None or (
            organization_id is not None and period.organization_id != organization_id
        ):
            raise NotFoundError("Payroll period", period_id)
        return period

    async def list(
        self,
        organization_id: UUID,
        filters: PeriodFilter | None = None,
    ) -> list[PayrollPeriod]:
        """List an organization's periods, newest first."""
        filters = filters or PeriodFilter()
        query = select(PayrollPeriod).where(PayrollPeriod.organization_id == organization_id)

        if filters.state is not None:
            query = query.where(PayrollPeriod.state == value_of(filters.state))
        if filters.date_from is not None:
            query = query.where(PayrollPeriod.start_date >= filters.date_from)
        if filters.date_to is not None:
            query = query.where(PayrollPeriod.end_date <= filters.date_to)
        if filters.search:
            query = query.where(PayrollPeriod.name.ilike(f"%{filters.search}%"))

        result = await self.session.execute(
            query.order_by(PayrollPeriod.start_date.desc(), PayrollPeriod.name)
        )
        return list(result.scalars().all())

    async def update(
        self,
        period_id: UUID,
        organization_id: UUID | None = None,
        *,
        name: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        notes: str | None = None,
    ) -> PayrollPeriod:
        """Edit an open period's definition."""
        period = await self.get(period_id, organization_id)
        if not PeriodStateMachine.can_edit_definition(period.state):
            raise InvalidTransitionError(
                period.state, period.state, "only open periods can be edited"
            )

        new_start = start_date or period.start_date
        new_end = end_date or period.end_date
        if new_end < new_start:
            raise InvalidRangeError(new_start, new_end)

        if name is not None:
            period.name = name
        if notes is not None:
            period.notes = notes
        period.start_date = new_start
        period.end_date = new_end
        await self.session.flush()
        return period

    async def delete(self, period_id: UUID, organization_id: UUID | None = None) -> None:
        """Delete a period that has no payroll records yet."""
        period = await self.get(period_id, organization_id)
        record_count = await self._record_count(period_id)
        if record_count:
            raise InvalidTransitionError(
                period.state,
                "deleted",
                f"period has {record_count} payroll record(s)",
            )
        await self.session.delete(period)
        await self.session.flush()
        logger.info("Deleted payroll period %s", period_id)

    async def refresh_totals(self, period_id: UUID) -> PayrollPeriod:
        """Recompute the period aggregates from its payroll records."""
        period = await self.get(period_id)

        result = await self.session.execute(
            select(
                func.coalesce(func.sum(PayrollRecord.gross_total), 0),
                func.coalesce(func.sum(PayrollRecord.total_deductions), 0),
                func.coalesce(func.sum(PayrollRecord.net_total), 0),
                func.count(PayrollRecord.payroll_record_id),
            ).where(PayrollRecord.payroll_period_id == period_id)
        )
        gross, deductions, net, count = result.one()

        period.total_gross = round_money(Decimal(str(gross)))
        period.total_deductions = round_money(Decimal(str(deductions)))
        period.total_net = round_money(Decimal(str(net)))
        period.collaborator_count = count
        await self.session.flush()
        return period

    async def close(
        self,
        period_id: UUID,
        actor: str,
        notes: str | None = None,
        organization_id: UUID | None = None,
    ) -> PayrollPeriod:
        """Close an open period.

        The state change is a conditional update on ``state = 'open'`` so that
        two concurrent closes cannot both stamp ``closed_at``.
        """
        period = await self.get(period_id, organization_id)
        PeriodStateMachine.validate_transition(period.state, PeriodState.CLOSED)

        await self.refresh_totals(period_id)

        closed_at = utcnow()
        values: dict[str, object] = {
            "state": PeriodState.CLOSED.value,
            "closed_at": closed_at,
            "closed_by": actor,
        }
        if notes is not None:
            values["notes"] = notes

        result = await self.session.execute(
            update(PayrollPeriod)
            .where(
                PayrollPeriod.payroll_period_id == period_id,
                PayrollPeriod.state == PeriodState.OPEN.value,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.session.refresh(period)
            raise InvalidTransitionError(
                period.state, PeriodState.CLOSED.value, "state changed during close"
            )

        period.state = PeriodState.CLOSED.value
        period.closed_at = closed_at
        period.closed_by = actor
        if notes is not None:
            period.notes = notes

        logger.info("Closed payroll period %s by %s", period_id, actor)
        return period

    async def mark_processed(
        self, period_id: UUID, organization_id: UUID | None = None
    ) -> PayrollPeriod:
        """Record that the payment pipeline has processed a closed period."""
        return await self._advance(period_id, PeriodState.PROCESSED, organization_id)

    async def mark_paid(
        self, period_id: UUID, organization_id: UUID | None = None
    ) -> PayrollPeriod:
        """Record that a processed period has been paid out."""
        return await self._advance(period_id, PeriodState.PAID, organization_id)

    async def _advance(
        self,
        period_id: UUID,
        to_state: PeriodState,
        organization_id: UUID | None,
    ) -> PayrollPeriod:
        period = await self.get(period_id, organization_id)
        from_state = period.state
        PeriodStateMachine.validate_transition(from_state, to_state)

        result = await self.session.execute(
            update(PayrollPeriod)
            .where(
                PayrollPeriod.payroll_period_id == period_id,
                PayrollPeriod.state == from_state,
            )
            .values(state=to_state.value)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.session.refresh(period)
            raise InvalidTransitionError(
                period.state, to_state.value, "state changed concurrently"
            )

        period.state = to_state.value
        logger.info("Payroll period %s moved %s -> %s", period_id, from_state, to_state.value)
        return period

    async def _record_count(self, period_id: UUID) -> int:
        result = await self.session.execute(
            select(func.count(PayrollRecord.payroll_record_id)).where(
                PayrollRecord.payroll_period_id == period_id
            )
        )
        return result.scalar_one()
