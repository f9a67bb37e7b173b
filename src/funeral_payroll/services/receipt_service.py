"""Payment receipt generation and tracking."""

from __future__ import annotations

import functools
import logging
import secrets
import string
import time
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from funeral_payroll.config import get_settings
from funeral_payroll.database import dialect_insert
from funeral_payroll.enums import PaymentMethod, ReceiptStatus, value_of
from funeral_payroll.errors import (
    AlreadyExistsError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    retry_on_conflict,
)
from funeral_payroll.models import PaymentReceipt, PayrollRecord
from funeral_payroll.models.base import utcnow
from funeral_payroll.services.period_service import PeriodService
from funeral_payroll.services.record_service import RecordService
from funeral_payroll.services.state_machine import ReceiptStatusMachine

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_SUFFIX_LENGTH = 9


def generate_verification_code() -> str:
    """Millisecond timestamp plus a random suffix, e.g. ``1706745600000-K3J9XQ2LM``."""
    suffix = "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_SUFFIX_LENGTH))
    return f"{int(time.time() * 1000)}-{suffix}"


@dataclass
class ReceiptBatchResult:
    """Outcome of generating receipts for a period."""

    generated: int = 0
    skipped: int = 0


class ReceiptService:
    """Service for issuing immutable payment receipts.

    Key invariants:
    1. One payment_receipt per payroll_record (unique constraint, checked by a
       conditional insert rather than a separate existence query)
    2. verification_code is globally unique; a collision is retried with a
       fresh code and surfaces as ConflictError once attempts run out
    3. Financial fields are copied at issuance and never rewritten
    """

    def __init__(self, session: AsyncSession, code_attempts: int | None = None):
        self.session = session
        self.code_attempts = code_attempts or get_settings().receipt_code_attempts
        self.records = RecordService(session)

    async def generate_one(
        self,
        record_id: UUID,
        organization_id: UUID | None = None,
    ) -> PaymentReceipt:
        """Issue the receipt for an approved record.

        Raises:
            NotFoundError: If the record does not exist
            AlreadyExistsError: If the record already has a receipt
            InvalidTransitionError: If the record is not approved
            ConflictError: If no unique verification code could be written
        """
        record = await self.records.get(record_id, organization_id)
        return await self._issue(record)

    async def generate_all(
        self,
        period_id: UUID,
        organization_id: UUID | None = None,
    ) -> ReceiptBatchResult:
        """Issue receipts for every approved record of a period.

        Records that already have a receipt are counted as skipped, so the
        call can be repeated after approving more records. A verification
        code conflict is retried once for the record that hit it, so records
        issued earlier in the batch are still counted.
        """
        await PeriodService(self.session).get(period_id, organization_id)

        result = await self.session.execute(
            select(PayrollRecord)
            .where(
                PayrollRecord.payroll_period_id == period_id,
                PayrollRecord.approved.is_(True),
            )
            .options(
                selectinload(PayrollRecord.collaborator),
                selectinload(PayrollRecord.period),
            )
            .order_by(PayrollRecord.created_at)
            .execution_options(populate_existing=True)
        )

        outcome = ReceiptBatchResult()
        for record in result.scalars().all():
            try:
                await retry_on_conflict(functools.partial(self._issue, record))
            except AlreadyExistsError:
                outcome.skipped += 1
            else:
                outcome.generated += 1

        logger.info(
            "Generated receipts for period %s: %d generated, %d skipped",
            period_id,
            outcome.generated,
            outcome.skipped,
        )
        return outcome

    async def get(
        self,
        receipt_id: UUID,
        organization_id: UUID | None = None,
    ) -> PaymentReceipt:
        receipt = await self.session.get(PaymentReceipt, receipt_id)
        if receipt is None or (
            organization_id is not None and receipt.organization_id != organization_id
        ):
            raise NotFoundError("Payment receipt", receipt_id)
        return receipt

    async def verify(self, verification_code: str) -> PaymentReceipt:
        """Look up a receipt by its verification code for authenticity checks."""
        result = await self.session.execute(
            select(PaymentReceipt).where(
                PaymentReceipt.verification_code == verification_code.strip().upper()
            )
        )
        receipt = result.scalar_one_or_none()
        if receipt is None:
            raise NotFoundError("Payment receipt with verification code", verification_code)
        return receipt

    async def list(
        self,
        organization_id: UUID,
        period_id: UUID | None = None,
        status: ReceiptStatus | None = None,
    ) -> list[PaymentReceipt]:
        """List an organization's receipts, most recently issued first."""
        query = select(PaymentReceipt).where(PaymentReceipt.organization_id == organization_id)
        if period_id is not None:
            query = query.join(PayrollRecord).where(
                PayrollRecord.payroll_period_id == period_id
            )
        if status is not None:
            query = query.where(PaymentReceipt.status == value_of(status))

        result = await self.session.execute(
            query.order_by(PaymentReceipt.issued_at.desc(), PaymentReceipt.receipt_number.desc())
        )
        return list(result.scalars().all())

    async def update_status(
        self,
        receipt_id: UUID,
        status: ReceiptStatus,
        organization_id: UUID | None = None,
        payment_method: PaymentMethod | None = None,
        paid_at: datetime | None = None,
    ) -> PaymentReceipt:
        """Record an external status change. Financial fields are untouched."""
        receipt = await self.get(receipt_id, organization_id)
        from_status = receipt.status
        ReceiptStatusMachine.validate_transition(from_status, status)

        receipt.status = value_of(status)
        if payment_method is not None:
            receipt.payment_method = value_of(payment_method)
        if value_of(status) == ReceiptStatus.PAID.value:
            receipt.paid_at = paid_at or utcnow()
        await self.session.flush()

        logger.info(
            "Receipt %s moved %s -> %s", receipt.receipt_number, from_status, receipt.status
        )
        return receipt

    async def _issue(self, record: PayrollRecord) -> PaymentReceipt:
        if await self._receipt_for(record.payroll_record_id) is not None:
            raise AlreadyExistsError("Payment receipt", record.payroll_record_id)
        if not record.approved:
            raise InvalidTransitionError(
                "computed", ReceiptStatus.ISSUED.value, "payroll record is not approved"
            )

        collaborator = record.collaborator
        period = record.period

        for attempt in range(1, self.code_attempts + 1):
            receipt_insert = (
                dialect_insert(self.session, PaymentReceipt)
                .values(
                    payroll_record_id=record.payroll_record_id,
                    organization_id=record.organization_id,
                    receipt_number=await self._next_receipt_number(
                        record.organization_id, period.start_date.year
                    ),
                    verification_code=generate_verification_code(),
                    issued_at=utcnow(),
                    collaborator_name=collaborator.full_name,
                    collaborator_tax_id=collaborator.tax_id,
                    period_name=period.name,
                    base_salary=record.base_salary,
                    extras=record.extras_total,
                    bonuses=record.bonuses,
                    commissions=record.commissions,
                    gross_total=record.gross_total,
                    deductions=record.deductions,
                    advances=record.advances,
                    total_deductions=record.total_deductions,
                    net_total=record.net_total,
                    status=ReceiptStatus.ISSUED.value,
                    payment_method=collaborator.payment_method,
                )
                .on_conflict_do_nothing()
            )
            result = await self.session.execute(receipt_insert)

            receipt = await self._receipt_for(record.payroll_record_id)
            if result.rowcount and receipt is not None:
                logger.info(
                    "Issued receipt %s for payroll record %s",
                    receipt.receipt_number,
                    record.payroll_record_id,
                )
                return receipt
            if receipt is not None:
                raise AlreadyExistsError("Payment receipt", record.payroll_record_id)

            logger.warning(
                "Receipt code collision for payroll record %s (attempt %d of %d)",
                record.payroll_record_id,
                attempt,
                self.code_attempts,
            )

        raise ConflictError(
            f"Could not issue a unique receipt for payroll record {record.payroll_record_id}"
        )

    async def _receipt_for(self, record_id: UUID) -> PaymentReceipt | None:
        result = await self.session.execute(
            select(PaymentReceipt).where(PaymentReceipt.payroll_record_id == record_id)
        )
        return result.scalar_one_or_none()

    async def _next_receipt_number(self, organization_id: UUID, year: int) -> str:
        prefix = f"REC-{year}-"
        result = await self.session.execute(
            select(func.count(PaymentReceipt.payment_receipt_id)).where(
                PaymentReceipt.organization_id == organization_id,
                PaymentReceipt.receipt_number.like(f"{prefix}%"),
            )
        )
        return f"{prefix}{result.scalar_one() + 1:06d}"
