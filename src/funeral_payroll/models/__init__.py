"""ORM models."""

from funeral_payroll.models.base import Base, TimestampMixin, UpdatedAtMixin
from funeral_payroll.models.directory import Collaborator, ServiceAssignment
from funeral_payroll.models.payroll import PayrollPeriod, PayrollRecord, compute_gross
from funeral_payroll.models.receipts import PaymentReceipt

__all__ = [
    "Base",
    "TimestampMixin",
    "UpdatedAtMixin",
    "Collaborator",
    "ServiceAssignment",
    "PayrollPeriod",
    "PayrollRecord",
    "PaymentReceipt",
    "compute_gross",
]
