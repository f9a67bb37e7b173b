"""Collaborator directory and service assignment ledger models.

These tables belong to the staff and service modules of the back office.
The payroll core only reads them.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from funeral_payroll.enums import EmploymentType, PaymentMethod, sql_in
from funeral_payroll.models.base import Base, TimestampMixin, utcnow


class Collaborator(Base, TimestampMixin):
    """Staff member assignable to funeral services."""

    __tablename__ = "collaborator"

    collaborator_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    organization_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    full_name: Mapped[str] = mapped_column(String, nullable=False)
    tax_id: Mapped[str] = mapped_column(String, nullable=False)
    employment_type: Mapped[str] = mapped_column(String, nullable=False)
    position: Mapped[str | None] = mapped_column(String, nullable=True)
    base_salary: Mapped[Decimal | None] = mapped_column(nullable=True)
    payment_method: Mapped[str | None] = mapped_column(String, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint(
            f"employment_type IN {sql_in(EmploymentType)}",
            name="collaborator_employment_type_check",
        ),
        CheckConstraint(
            f"payment_method IS NULL OR payment_method IN {sql_in(PaymentMethod)}",
            name="collaborator_payment_method_check",
        ),
        CheckConstraint(
            "base_salary IS NULL OR base_salary >= 0",
            name="collaborator_base_salary_check",
        ),
    )

    assignments: Mapped[list[ServiceAssignment]] = relationship(
        back_populates="collaborator"
    )

    @property
    def is_employee(self) -> bool:
        return self.employment_type == EmploymentType.EMPLOYEE


class ServiceAssignment(Base):
    """A collaborator's assignment to a funeral service, with its extra payment."""

    __tablename__ = "service_assignment"

    service_assignment_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    organization_id: Mapped[UUID] = mapped_column(nullable=False)
    collaborator_id: Mapped[UUID] = mapped_column(
        ForeignKey("collaborator.collaborator_id", ondelete="CASCADE"),
        nullable=False,
    )
    service_id: Mapped[UUID] = mapped_column(nullable=False)
    role: Mapped[str | None] = mapped_column(String, nullable=True)
    extra_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("extra_amount >= 0", name="service_assignment_extra_check"),
        Index("service_assignment_org_assigned_idx", "organization_id", "assigned_at"),
    )

    collaborator: Mapped[Collaborator] = relationship(back_populates="assignments")
