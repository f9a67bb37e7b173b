"""Payroll period and payroll record models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from funeral_payroll.enums import PeriodState, sql_in
from funeral_payroll.models.base import Base, TimestampMixin, UpdatedAtMixin, round_money

if TYPE_CHECKING:
    from funeral_payroll.models.directory import Collaborator
    from funeral_payroll.models.receipts import PaymentReceipt

ZERO = Decimal("0")

MONEY_COMPONENTS = (
    "base_salary",
    "extras_total",
    "bonuses",
    "commissions",
    "deductions",
    "advances",
)


# ===== Payroll Periods =====


class PayrollPeriod(Base, TimestampMixin, UpdatedAtMixin):
    """A fixed date range over which payroll is computed and settled."""

    __tablename__ = "payroll_period"

    payroll_period_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    organization_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    state: Mapped[str] = mapped_column(String, nullable=False, default=PeriodState.OPEN.value)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Aggregates, recomputed from child records
    total_gross: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    total_deductions: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    total_net: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    collaborator_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    closed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    closed_by: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        CheckConstraint(f"state IN {sql_in(PeriodState)}", name="payroll_period_state_check"),
        CheckConstraint("end_date >= start_date", name="payroll_period_dates_check"),
    )

    # Relationships
    records: Mapped[list[PayrollRecord]] = relationship(back_populates="period")


# ===== Payroll Records =====


class PayrollRecord(Base, TimestampMixin, UpdatedAtMixin):
    """One collaborator's payroll for one period."""

    __tablename__ = "payroll_record"

    payroll_record_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    payroll_period_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_period.payroll_period_id", ondelete="RESTRICT"),
        nullable=False,
    )
    collaborator_id: Mapped[UUID] = mapped_column(
        ForeignKey("collaborator.collaborator_id", ondelete="RESTRICT"),
        nullable=False,
    )
    organization_id: Mapped[UUID] = mapped_column(nullable=False)

    # Computed from the directory and the assignment ledger
    base_salary: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    service_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    extras_total: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)

    # Entered by an operator, preserved across recomputation
    days_worked: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    bonuses: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    commissions: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    deductions: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    advances: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Derived
    gross_total: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    total_deductions: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    net_total: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)

    approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    approved_by: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "payroll_period_id",
            "collaborator_id",
            name="payroll_record_period_collaborator_unique",
        ),
        CheckConstraint(
            "ROUND(gross_total, 2) = ROUND(base_salary + extras_total + bonuses + commissions, 2)",
            name="payroll_record_gross_check",
        ),
        CheckConstraint(
            "ROUND(total_deductions, 2) = ROUND(deductions + advances, 2)",
            name="payroll_record_deductions_check",
        ),
        CheckConstraint(
            "ROUND(net_total, 2) = ROUND(gross_total - total_deductions, 2)",
            name="payroll_record_net_check",
        ),
        CheckConstraint(
            "days_worked >= 0 AND days_worked <= 31",
            name="payroll_record_days_worked_check",
        ),
        CheckConstraint(
            "approved = false OR approved_at IS NOT NULL",
            name="payroll_record_approval_stamp_check",
        ),
    )

    # Relationships
    period: Mapped[PayrollPeriod] = relationship(back_populates="records")
    collaborator: Mapped[Collaborator] = relationship()
    receipt: Mapped[PaymentReceipt | None] = relationship(back_populates="record")

    def recalculate_totals(self) -> None:
        """Round the components to cents and refresh the derived totals from them."""
        for name in MONEY_COMPONENTS:
            setattr(self, name, round_money(getattr(self, name)))
        self.gross_total = compute_gross(
            self.base_salary, self.extras_total, self.bonuses, self.commissions
        )
        self.total_deductions = self.deductions + self.advances
        self.net_total = self.gross_total - self.total_deductions


def compute_gross(
    base_salary: Decimal | None,
    extras_total: Decimal | None,
    bonuses: Decimal | None,
    commissions: Decimal | None,
) -> Decimal:
    """Gross pay: base salary plus extras, bonuses and commissions, in cents."""
    return sum(
        (round_money(value) for value in (base_salary, extras_total, bonuses, commissions)),
        ZERO,
    )
