"""Payment receipt model."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
    event,
    func,
    inspect,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from funeral_payroll.enums import PaymentMethod, ReceiptStatus, sql_in
from funeral_payroll.errors import InvalidTransitionError
from funeral_payroll.models.base import Base, TimestampMixin, UpdatedAtMixin, utcnow

if TYPE_CHECKING:
    from funeral_payroll.models.payroll import PayrollRecord

SNAPSHOT_FIELDS = (
    "payroll_record_id",
    "receipt_number",
    "verification_code",
    "issued_at",
    "collaborator_name",
    "collaborator_tax_id",
    "period_name",
    "base_salary",
    "extras",
    "bonuses",
    "commissions",
    "gross_total",
    "deductions",
    "advances",
    "total_deductions",
    "net_total",
)


class PaymentReceipt(Base, TimestampMixin, UpdatedAtMixin):
    """Immutable financial snapshot of an approved payroll record.

    Only ``status``, ``payment_method``, ``paid_at`` and ``notes`` change after
    issuance.
    """

    __tablename__ = "payment_receipt"

    payment_receipt_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    payroll_record_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_record.payroll_record_id", ondelete="RESTRICT"),
        nullable=False,
        unique=True,
    )
    organization_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    receipt_number: Mapped[str] = mapped_column(String, nullable=False)
    verification_code: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    issued_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    # Display snapshot
    collaborator_name: Mapped[str] = mapped_column(String, nullable=False)
    collaborator_tax_id: Mapped[str] = mapped_column(String, nullable=False)
    period_name: Mapped[str] = mapped_column(String, nullable=False)

    # Financial snapshot
    base_salary: Mapped[Decimal] = mapped_column(nullable=False)
    extras: Mapped[Decimal] = mapped_column(nullable=False)
    bonuses: Mapped[Decimal] = mapped_column(nullable=False)
    commissions: Mapped[Decimal] = mapped_column(nullable=False)
    gross_total: Mapped[Decimal] = mapped_column(nullable=False)
    deductions: Mapped[Decimal] = mapped_column(nullable=False)
    advances: Mapped[Decimal] = mapped_column(nullable=False)
    total_deductions: Mapped[Decimal] = mapped_column(nullable=False)
    net_total: Mapped[Decimal] = mapped_column(nullable=False)

    # Tracking
    status: Mapped[str] = mapped_column(String, nullable=False, default=ReceiptStatus.ISSUED.value)
    payment_method: Mapped[str | None] = mapped_column(String, nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "organization_id", "receipt_number", name="payment_receipt_org_number_unique"
        ),
        CheckConstraint(f"status IN {sql_in(ReceiptStatus)}", name="payment_receipt_status_check"),
        CheckConstraint(
            f"payment_method IS NULL OR payment_method IN {sql_in(PaymentMethod)}",
            name="payment_receipt_payment_method_check",
        ),
        CheckConstraint(
            "ROUND(net_total, 2) = ROUND(gross_total - total_deductions, 2)",
            name="payment_receipt_net_check",
        ),
    )

    record: Mapped[PayrollRecord] = relationship(back_populates="receipt")


@event.listens_for(PaymentReceipt, "before_update")
def _reject_snapshot_changes(mapper, connection, target: PaymentReceipt) -> None:
    state = inspect(target)
    changed = [name for name in SNAPSHOT_FIELDS if state.attrs[name].history.has_changes()]
    if changed:
        raise InvalidTransitionError(
            target.status,
            target.status,
            f"receipt {target.receipt_number} is immutable ({', '.join(changed)})",
        )
