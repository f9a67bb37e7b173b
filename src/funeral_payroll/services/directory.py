"""Read-only access to the collaborator directory and the assignment ledger."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from funeral_payroll.models import Collaborator, ServiceAssignment
from funeral_payroll.models.base import round_money


@dataclass
class AssignmentSummary:
    """A collaborator's assignments within a date range."""

    service_count: int = 0
    extras_total: Decimal = field(default_factory=lambda: Decimal("0"))


def day_bounds(start: date, end: date) -> tuple[datetime, datetime]:
    """Half-open datetime range covering whole days ``start`` through ``end``."""
    lower = datetime.combine(start, time.min, tzinfo=timezone.utc)
    upper = datetime.combine(end + timedelta(days=1), time.min, tzinfo=timezone.utc)
    return lower, upper


class CollaboratorDirectory:
    """Collaborators of an organization, as maintained by the staff module."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_collaborators(
        self,
        organization_id: UUID,
        include_inactive: bool = False,
    ) -> list[Collaborator]:
        query = select(Collaborator).where(Collaborator.organization_id == organization_id)
        if not include_inactive:
            query = query.where(Collaborator.active.is_(True))
        result = await self.session.execute(query.order_by(Collaborator.full_name))
        return list(result.scalars().all())

    async def get_collaborator(self, collaborator_id: UUID) -> Collaborator | None:
        return await self.session.get(Collaborator, collaborator_id)


class AssignmentLedger:
    """Service assignments and their extra payments."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_in_range(
        self,
        organization_id: UUID,
        start: date,
        end: date,
    ) -> list[ServiceAssignment]:
        """Assignments made between ``start`` and ``end``, both days inclusive."""
        lower, upper = day_bounds(start, end)
        result = await self.session.execute(
            select(ServiceAssignment).where(
                ServiceAssignment.organization_id == organization_id,
                ServiceAssignment.assigned_at >= lower,
                ServiceAssignment.assigned_at < upper,
            )
        )
        return list(result.scalars().all())

    async def summarize_by_collaborator(
        self,
        organization_id: UUID,
        start: date,
        end: date,
    ) -> dict[UUID, AssignmentSummary]:
        """Service count and extras total per collaborator for the range."""
        summaries: dict[UUID, AssignmentSummary] = defaultdict(AssignmentSummary)
        for assignment in await self.list_in_range(organization_id, start, end):
            summary = summaries[assignment.collaborator_id]
            summary.service_count += 1
            summary.extras_total += round_money(assignment.extra_amount)
        return summaries
