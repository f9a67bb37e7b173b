"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from funeral_payroll.enums import PaymentMethod, PeriodState, ReceiptStatus


class ErrorResponse(BaseModel):
    """Error body returned for domain errors."""

    detail: str
    code: str


# ============================================================================
# Payroll Period schemas
# ============================================================================


class PeriodCreate(BaseModel):
    """Schema for creating a new payroll period."""

    name: str = Field(min_length=3)
    start_date: date
    end_date: date
    notes: str | None = None


class PeriodUpdate(BaseModel):
    """Schema for editing an open payroll period."""

    name: str | None = Field(default=None, min_length=3)
    start_date: date | None = None
    end_date: date | None = None
    notes: str | None = None


class PeriodResponse(BaseModel):
    """Schema for payroll period response."""

    model_config = ConfigDict(from_attributes=True)

    payroll_period_id: UUID
    organization_id: UUID
    name: str
    start_date: date
    end_date: date
    state: PeriodState
    notes: str | None = None
    total_gross: Decimal
    total_deductions: Decimal
    total_net: Decimal
    collaborator_count: int
    closed_at: datetime | None = None
    closed_by: str | None = None
    created_at: datetime
    updated_at: datetime


class PeriodListResponse(BaseModel):
    """Schema for listing payroll periods."""

    items: list[PeriodResponse]
    total: int


class ComputeRequest(BaseModel):
    """Options for computing a period's records."""

    include_inactive: bool = False


class ComputeResponse(BaseModel):
    created: int
    updated: int


class CloseRequest(BaseModel):
    """Schema for closing a payroll period."""

    notes: str | None = None


class ApproveAllResponse(BaseModel):
    approved: int


# ============================================================================
# Payroll Record schemas
# ============================================================================


class RecordResponse(BaseModel):
    """Schema for payroll record response."""

    model_config = ConfigDict(from_attributes=True)

    payroll_record_id: UUID
    payroll_period_id: UUID
    collaborator_id: UUID
    collaborator_name: str | None = None
    base_salary: Decimal
    days_worked: int
    service_count: int
    extras_total: Decimal
    bonuses: Decimal
    commissions: Decimal
    deductions: Decimal
    advances: Decimal
    gross_total: Decimal
    total_deductions: Decimal
    net_total: Decimal
    approved: bool
    approved_at: datetime | None = None
    approved_by: str | None = None
    notes: str | None = None


class RecordListResponse(BaseModel):
    """Schema for listing a period's payroll records."""

    items: list[RecordResponse]
    total: int


class RecordAdjustmentRequest(BaseModel):
    """Operator-entered amounts for a payroll record."""

    bonuses: Decimal | None = Field(default=None, ge=0, max_digits=14, decimal_places=2)
    commissions: Decimal | None = Field(default=None, ge=0, max_digits=14, decimal_places=2)
    deductions: Decimal | None = Field(default=None, ge=0, max_digits=14, decimal_places=2)
    advances: Decimal | None = Field(default=None, ge=0, max_digits=14, decimal_places=2)
    days_worked: int | None = Field(default=None, ge=0, le=31)
    notes: str | None = None


# ============================================================================
# Payment Receipt schemas
# ============================================================================


class ReceiptResponse(BaseModel):
    """Schema for payment receipt response."""

    model_config = ConfigDict(from_attributes=True)

    payment_receipt_id: UUID
    payroll_record_id: UUID
    receipt_number: str
    verification_code: str
    issued_at: datetime
    collaborator_name: str
    collaborator_tax_id: str
    period_name: str
    base_salary: Decimal
    extras: Decimal
    bonuses: Decimal
    commissions: Decimal
    gross_total: Decimal
    deductions: Decimal
    advances: Decimal
    total_deductions: Decimal
    net_total: Decimal
    status: ReceiptStatus
    payment_method: PaymentMethod | None = None
    paid_at: datetime | None = None


class ReceiptListResponse(BaseModel):
    items: list[ReceiptResponse]
    total: int


class ReceiptBatchResponse(BaseModel):
    generated: int
    skipped: int


class ReceiptStatusUpdate(BaseModel):
    """External status change for a receipt."""

    status: ReceiptStatus
    payment_method: PaymentMethod | None = None
    paid_at: datetime | None = None


class ReceiptVerification(BaseModel):
    """Public authenticity check result for a receipt."""

    model_config = ConfigDict(from_attributes=True)

    receipt_number: str
    collaborator_name: str
    period_name: str
    net_total: Decimal
    status: ReceiptStatus
    issued_at: datetime
