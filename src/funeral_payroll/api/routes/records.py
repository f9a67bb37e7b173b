"""Payroll record API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query

from funeral_payroll.api.dependencies import ActorId, DbSession, OrganizationId
from funeral_payroll.api.schemas import (
    ErrorResponse,
    RecordAdjustmentRequest,
    RecordListResponse,
    RecordResponse,
)
from funeral_payroll.models import PayrollRecord
from funeral_payroll.services import ApprovalService, RecordService

router = APIRouter(tags=["payroll-records"])


def to_response(record: PayrollRecord) -> RecordResponse:
    resp = RecordResponse.model_validate(record)
    resp.collaborator_name = record.collaborator.full_name
    return resp


@router.get(
    "/periods/{period_id}/records",
    response_model=RecordListResponse,
    responses={404: {"model": ErrorResponse}},
)
async def list_records(
    db: DbSession,
    organization_id: OrganizationId,
    period_id: Annotated[UUID, Path()],
    approved: Annotated[bool | None, Query()] = None,
) -> RecordListResponse:
    """List a period's records with approval state."""
    records = await RecordService(db).list_records(period_id, approved, organization_id)
    items = [to_response(r) for r in records]
    return RecordListResponse(items=items, total=len(items))


@router.get(
    "/records/{record_id}",
    response_model=RecordResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_record(
    db: DbSession,
    organization_id: OrganizationId,
    record_id: Annotated[UUID, Path()],
) -> RecordResponse:
    record = await RecordService(db).get(record_id, organization_id)
    return to_response(record)


@router.patch(
    "/records/{record_id}",
    response_model=RecordResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def update_record(
    db: DbSession,
    organization_id: OrganizationId,
    record_id: Annotated[UUID, Path()],
    body: RecordAdjustmentRequest,
) -> RecordResponse:
    """Enter bonuses, commissions, deductions or advances."""
    record = await RecordService(db).update_adjustments(
        record_id, organization_id, **body.model_dump(exclude_unset=True)
    )
    await db.commit()
    return to_response(record)


@router.post(
    "/records/{record_id}/approve",
    response_model=RecordResponse,
    responses={404: {"model": ErrorResponse}},
)
async def approve_record(
    db: DbSession,
    organization_id: OrganizationId,
    actor: ActorId,
    record_id: Annotated[UUID, Path()],
) -> RecordResponse:
    """Approve a record. Approving twice is a no-op."""
    await ApprovalService(db).approve(record_id, actor, organization_id)
    await db.commit()
    record = await RecordService(db).get(record_id, organization_id)
    return to_response(record)
