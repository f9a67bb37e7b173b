"""Payment receipt API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from funeral_payroll.api.dependencies import DbSession, OrganizationId
from funeral_payroll.api.schemas import (
    ErrorResponse,
    ReceiptListResponse,
    ReceiptResponse,
    ReceiptStatusUpdate,
    ReceiptVerification,
)
from funeral_payroll.enums import ReceiptStatus
from funeral_payroll.errors import retry_on_conflict
from funeral_payroll.services import ReceiptService

router = APIRouter(tags=["payment-receipts"])


@router.post(
    "/records/{record_id}/receipt",
    response_model=ReceiptResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def generate_receipt(
    db: DbSession,
    organization_id: OrganizationId,
    record_id: Annotated[UUID, Path()],
) -> ReceiptResponse:
    """Issue the receipt for an approved record."""
    service = ReceiptService(db)
    receipt = await retry_on_conflict(
        lambda: service.generate_one(record_id, organization_id)
    )
    await db.commit()
    return ReceiptResponse.model_validate(receipt)


@router.get("/receipts", response_model=ReceiptListResponse)
async def list_receipts(
    db: DbSession,
    organization_id: OrganizationId,
    period_id: Annotated[UUID | None, Query()] = None,
    receipt_status: Annotated[ReceiptStatus | None, Query(alias="status")] = None,
) -> ReceiptListResponse:
    receipts = await ReceiptService(db).list(organization_id, period_id, receipt_status)
    items = [ReceiptResponse.model_validate(r) for r in receipts]
    return ReceiptListResponse(items=items, total=len(items))


@router.get(
    "/receipts/verify/{verification_code}",
    response_model=ReceiptVerification,
    responses={404: {"model": ErrorResponse}},
)
async def verify_receipt(
    db: DbSession,
    verification_code: Annotated[str, Path()],
) -> ReceiptVerification:
    """Confirm a receipt is authentic. Needs no organization header."""
    receipt = await ReceiptService(db).verify(verification_code)
    return ReceiptVerification.model_validate(receipt)


@router.get(
    "/receipts/{receipt_id}",
    response_model=ReceiptResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_receipt(
    db: DbSession,
    organization_id: OrganizationId,
    receipt_id: Annotated[UUID, Path()],
) -> ReceiptResponse:
    receipt = await ReceiptService(db).get(receipt_id, organization_id)
    return ReceiptResponse.model_validate(receipt)


@router.patch(
    "/receipts/{receipt_id}/status",
    response_model=ReceiptResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def update_receipt_status(
    db: DbSession,
    organization_id: OrganizationId,
    receipt_id: Annotated[UUID, Path()],
    body: ReceiptStatusUpdate,
) -> ReceiptResponse:
    """Record that a receipt was sent or paid."""
    receipt = await ReceiptService(db).update_status(
        receipt_id,
        body.status,
        organization_id,
        payment_method=body.payment_method,
        paid_at=body.paid_at,
    )
    await db.commit()
    return ReceiptResponse.model_validate(receipt)
