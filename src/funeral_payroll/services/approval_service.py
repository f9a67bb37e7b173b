"""Approval gate for payroll records."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from funeral_payroll.errors import NotFoundError
from funeral_payroll.models import PayrollRecord
from funeral_payroll.models.base import utcnow
from funeral_payroll.services.period_service import PeriodService

logger = logging.getLogger(__name__)


class ApprovalService:
    """Moves payroll records from computed to approved.

    Approval is monotonic: there is no unapprove, and approving an approved
    record leaves its original ``approved_at``/``approved_by`` untouched.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def approve(
        self,
        record_id: UUID,
        actor: str,
        organization_id: UUID | None = None,
    ) -> PayrollRecord:
        """Approve a single record. Idempotent."""
        record = await self.session.get(PayrollRecord, record_id, populate_existing=True)
        if record is None or (
            organization_id is not None and record.organization_id != organization_id
        ):
            raise NotFoundError("Payroll record", record_id)

        result = await self.session.execute(
            update(PayrollRecord)
            .where(
                PayrollRecord.payroll_record_id == record_id,
                PayrollRecord.approved.is_(False),
            )
            .values(approved=True, approved_at=utcnow(), approved_by=actor)
            .execution_options(synchronize_session=False)
        )
        await self.session.refresh(record)

        if result.rowcount:
            logger.info("Approved payroll record %s by %s", record_id, actor)
        return record

    async def approve_all(
        self,
        period_id: UUID,
        actor: str,
        organization_id: UUID | None = None,
    ) -> int:
        """Approve every unapproved record of a period.

        Returns the count of records approved by this call.
        """
        await PeriodService(self.session).get(period_id, organization_id)

        result = await self.session.execute(
            update(PayrollRecord)
            .where(
                PayrollRecord.payroll_period_id == period_id,
                PayrollRecord.approved.is_(False),
            )
            .values(approved=True, approved_at=utcnow(), approved_by=actor)
            .execution_options(synchronize_session="evaluate")
        )
        approved_count = result.rowcount or 0

        logger.info(
            "Approved %d payroll record(s) in period %s by %s",
            approved_count,
            period_id,
            actor,
        )
        return approved_count
