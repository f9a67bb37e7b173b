"""Payroll record reads and operator adjustments."""

from __future__ import annotations

import logging
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from funeral_payroll.errors import NotFoundError
from funeral_payroll.models import PayrollRecord
from funeral_payroll.models.base import round_money
from funeral_payroll.services.period_service import PeriodService
from funeral_payroll.services.state_machine import PeriodStateMachine

logger = logging.getLogger(__name__)

MAX_DAYS_WORKED = 31


class RecordService:
    """Service for reading payroll records and entering manual adjustments."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.periods = PeriodService(session)

    async def get(
        self,
        record_id: UUID,
        organization_id: UUID | None = None,
    ) -> PayrollRecord:
        """Load a record with its collaborator and period, freshly from the store."""
        result = await self.session.execute(
            select(PayrollRecord)
            .where(PayrollRecord.payroll_record_id == record_id)
            .options(
                selectinload(PayrollRecord.collaborator),
                selectinload(PayrollRecord.period),
            )
            .execution_options(populate_existing=True)
        )
        record = result.scalar_one_or_none()
        if record is None or (
            organization_id is not None and record.organization_id != organization_id
        ):
            raise NotFoundError("Payroll record", record_id)
        return record

    async def list_records(
        self,
        period_id: UUID,
        approved: bool | None = None,
        organization_id: UUID | None = None,
    ) -> list[PayrollRecord]:
        """List a period's records with their collaborators, optionally by approval."""
        await self.periods.get(period_id, organization_id)

        query = (
            select(PayrollRecord)
            .where(PayrollRecord.payroll_period_id == period_id)
            .options(selectinload(PayrollRecord.collaborator))
            .execution_options(populate_existing=True)
        )
        if approved is not None:
            query = query.where(PayrollRecord.approved.is_(approved))
        result = await self.session.execute(query.order_by(PayrollRecord.created_at))
        return list(result.scalars().all())

    async def update_adjustments(
        self,
        record_id: UUID,
        organization_id: UUID | None = None,
        *,
        bonuses: Decimal | None = None,
        commissions: Decimal | None = None,
        deductions: Decimal | None = None,
        advances: Decimal | None = None,
        days_worked: int | None = None,
        notes: str | None = None,
    ) -> PayrollRecord:
        """Set operator-entered amounts on a record of an open period.

        Raises:
            ValueError: If an amount is negative or days_worked is out of range
            InvalidTransitionError: If the period is no longer open
        """
        entered = {
            "bonuses": bonuses,
            "commissions": commissions,
            "deductions": deductions,
            "advances": advances,
        }
        amounts = {
            name: round_money(value) for name, value in entered.items() if value is not None
        }
        for name, value in amounts.items():
            if value < 0:
                raise ValueError(f"{name} must not be negative")
        if days_worked is not None and not 0 <= days_worked <= MAX_DAYS_WORKED:
            raise ValueError(f"days_worked must be between 0 and {MAX_DAYS_WORKED}")

        record = await self.get(record_id, organization_id)
        PeriodStateMachine.require_computable(record.period.state)

        for name, value in amounts.items():
            setattr(record, name, value)
        if days_worked is not None:
            record.days_worked = days_worked
        if notes is not None:
            record.notes = notes

        record.recalculate_totals()
        await self.session.flush()

        logger.info("Updated adjustments on payroll record %s", record_id)
        return record
