"""Idempotent payroll record computation for a period."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession

from funeral_payroll.database import dialect_insert
from funeral_payroll.errors import ConflictError
from funeral_payroll.models import Collaborator, PayrollRecord
from funeral_payroll.models.base import round_money
from funeral_payroll.services.directory import (
    AssignmentLedger,
    AssignmentSummary,
    CollaboratorDirectory,
)
from funeral_payroll.services.period_service import PeriodService
from funeral_payroll.services.state_machine import PeriodStateMachine

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass
class ComputeResult:
    """Outcome of a computation run."""

    created: int = 0
    updated: int = 0


class ComputationService:
    """Derives one payroll record per (period, collaborator).

    Key invariants:
    1. One payroll_record per (period, collaborator), enforced by a unique
       constraint and written with INSERT ... ON CONFLICT DO NOTHING
    2. Re-runs only refresh base_salary, service_count and extras_total;
       operator-entered bonuses, commissions, deductions and advances survive
    3. Each collaborator's write is committed on its own, so an interrupted run
       keeps what it wrote and can simply be run again
    4. Only open periods can be computed
    """

    def __init__(self, session: AsyncSession, commit_each: bool = True):
        self.session = session
        self.commit_each = commit_each
        self.periods = PeriodService(session)
        self.directory = CollaboratorDirectory(session)
        self.ledger = AssignmentLedger(session)

    async def compute(
        self,
        period_id: UUID,
        organization_id: UUID,
        include_inactive: bool = False,
    ) -> ComputeResult:
        """Compute or refresh the payroll records of an open period."""
        period = await self.periods.get(period_id, organization_id)
        PeriodStateMachine.require_computable(period.state)

        collaborators = await self.directory.list_collaborators(
            organization_id, include_inactive=include_inactive
        )
        summaries = await self.ledger.summarize_by_collaborator(
            organization_id, period.start_date, period.end_date
        )

        outcome = ComputeResult()
        for collaborator in collaborators:
            summary = summaries.get(collaborator.collaborator_id, AssignmentSummary())
            created = await self.upsert_record(
                period_id=period_id,
                organization_id=organization_id,
                collaborator=collaborator,
                summary=summary,
            )
            if created:
                outcome.created += 1
            else:
                outcome.updated += 1
            if self.commit_each:
                await self.session.commit()

        logger.info(
            "Computed payroll period %s: %d created, %d updated",
            period_id,
            outcome.created,
            outcome.updated,
        )
        return outcome

    async def upsert_record(
        self,
        period_id: UUID,
        organization_id: UUID,
        collaborator: Collaborator,
        summary: AssignmentSummary,
    ) -> bool:
        """Insert or refresh one collaborator's record.

        Returns True if a new record was created, False if one was updated.

        Raises:
            ConflictError: If the conflicting row disappeared before the update
        """
        base_salary = base_salary_for(collaborator)
        extras_total = round_money(summary.extras_total)

        # Try to insert record (idempotent)
        record_insert = (
            dialect_insert(self.session, PayrollRecord)
            .values(
                payroll_period_id=period_id,
                collaborator_id=collaborator.collaborator_id,
                organization_id=organization_id,
                base_salary=base_salary,
                service_count=summary.service_count,
                extras_total=extras_total,
                days_worked=0,
                bonuses=ZERO,
                commissions=ZERO,
                deductions=ZERO,
                advances=ZERO,
                gross_total=base_salary + extras_total,
                total_deductions=ZERO,
                net_total=base_salary + extras_total,
                approved=False,
            )
            .on_conflict_do_nothing(index_elements=["payroll_period_id", "collaborator_id"])
        )
        result = await self.session.execute(record_insert)
        if result.rowcount:
            return True

        # Record exists - refresh the computed fields only, in one statement
        gross = base_salary + extras_total + PayrollRecord.bonuses + PayrollRecord.commissions
        net = gross - PayrollRecord.total_deductions
        refresh = await self.session.execute(
            update(PayrollRecord)
            .where(
                PayrollRecord.payroll_period_id == period_id,
                PayrollRecord.collaborator_id == collaborator.collaborator_id,
            )
            .values(
                base_salary=base_salary,
                service_count=summary.service_count,
                extras_total=extras_total,
                gross_total=func.round(gross, 2),
                net_total=func.round(net, 2),
            )
            .execution_options(synchronize_session=False)
        )
        if refresh.rowcount == 0:
            logger.warning(
                "Payroll record for period %s collaborator %s vanished during upsert",
                period_id,
                collaborator.collaborator_id,
            )
            raise ConflictError(
                f"Payroll record for collaborator {collaborator.collaborator_id} "
                f"changed concurrently in period {period_id}"
            )
        return False


def base_salary_for(collaborator: Collaborator) -> Decimal:
    """Employees draw their base salary; fee-for-service collaborators draw none."""
    if collaborator.is_employee:
        return round_money(collaborator.base_salary)
    return round_money(ZERO)
