"""Closed enumerations for the categorical payroll fields."""

from __future__ import annotations

from enum import Enum


class EmploymentType(str, Enum):
    """How a collaborator is engaged."""

    EMPLOYEE = "employee"
    FEE_FOR_SERVICE = "fee_for_service"


class PaymentMethod(str, Enum):
    """How a collaborator is paid."""

    TRANSFER = "transfer"
    CHEQUE = "cheque"
    CASH = "cash"


class PeriodState(str, Enum):
    """Payroll period lifecycle states."""

    OPEN = "open"
    CLOSED = "closed"
    PROCESSED = "processed"
    PAID = "paid"


class ReceiptStatus(str, Enum):
    """Payment receipt tracking states."""

    PENDING = "pending"
    ISSUED = "issued"
    SENT = "sent"
    PAID = "paid"


def sql_in(enum_cls: type[Enum]) -> str:
    """Render enum values as a SQL IN list for check constraints."""
    return "(" + ", ".join(f"'{member.value}'" for member in enum_cls) + ")"


def value_of(member: str | Enum) -> str:
    """Plain string value of an enum member or raw string."""
    return member.value if isinstance(member, Enum) else member
