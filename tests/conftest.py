"""Pytest fixtures for funeral payroll tests."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import AsyncGenerator, Awaitable, Callable
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from funeral_payroll.database import create_all, make_session_factory
from funeral_payroll.enums import EmploymentType, PaymentMethod
from funeral_payroll.models import Collaborator, PayrollPeriod, ServiceAssignment
from funeral_payroll.services import PeriodService

# Use in-memory SQLite for tests (with async support)
# For full Postgres features, point DATABASE_URL at a test Postgres database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh test database per test."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)

    await create_all(engine)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    factory = make_session_factory(engine)
    async with factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def organization_id() -> UUID:
    return uuid4()


CollaboratorFactory = Callable[..., Awaitable[Collaborator]]
AssignmentFactory = Callable[..., Awaitable[ServiceAssignment]]


@pytest.fixture
def make_collaborator(session: AsyncSession, organization_id: UUID) -> CollaboratorFactory:
    """Factory for directory collaborators."""

    async def _make(
        full_name: str = "Ana Rojas",
        employment_type: EmploymentType = EmploymentType.EMPLOYEE,
        base_salary: Decimal | None = Decimal("500000"),
        active: bool = True,
        payment_method: PaymentMethod | None = PaymentMethod.TRANSFER,
        org_id: UUID | None = None,
    ) -> Collaborator:
        collaborator = Collaborator(
            collaborator_id=uuid4(),
            organization_id=org_id or organization_id,
            full_name=full_name,
            tax_id=f"{abs(hash(full_name)) % 30000000:08d}-K",
            employment_type=employment_type.value,
            base_salary=base_salary,
            payment_method=payment_method.value if payment_method else None,
            active=active,
        )
        session.add(collaborator)
        await session.flush()
        return collaborator

    return _make


@pytest.fixture
def make_assignment(session: AsyncSession, organization_id: UUID) -> AssignmentFactory:
    """Factory for service assignments with an extra payment."""

    async def _make(
        collaborator: Collaborator,
        extra_amount: Decimal,
        assigned_at: datetime,
    ) -> ServiceAssignment:
        assignment = ServiceAssignment(
            service_assignment_id=uuid4(),
            organization_id=collaborator.organization_id,
            collaborator_id=collaborator.collaborator_id,
            service_id=uuid4(),
            role="conductor",
            extra_amount=extra_amount,
            assigned_at=assigned_at,
        )
        session.add(assignment)
        await session.flush()
        return assignment

    return _make


def utc(year: int, month: int, day: int, hour: int = 12, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def january_period(session: AsyncSession, organization_id: UUID) -> PayrollPeriod:
    """Open period 2024-01-01..2024-01-31."""
    return await PeriodService(session).create(
        organization_id,
        "January 2024",
        date(2024, 1, 1),
        date(2024, 1, 31),
    )
