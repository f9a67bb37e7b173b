"""Payroll period API endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from funeral_payroll.api.dependencies import ActorId, DbSession, OrganizationId
from funeral_payroll.api.schemas import (
    ApproveAllResponse,
    CloseRequest,
    ComputeRequest,
    ComputeResponse,
    ErrorResponse,
    PeriodCreate,
    PeriodListResponse,
    PeriodResponse,
    PeriodUpdate,
    ReceiptBatchResponse,
)
from funeral_payroll.enums import PeriodState
from funeral_payroll.errors import retry_on_conflict
from funeral_payroll.services import (
    ApprovalService,
    ComputationService,
    PeriodFilter,
    PeriodService,
    ReceiptService,
)

router = APIRouter(prefix="/periods", tags=["payroll-periods"])

NOT_FOUND = {404: {"model": ErrorResponse}}
CONFLICTS = {404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}}


@router.post(
    "",
    response_model=PeriodResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def create_period(
    db: DbSession,
    organization_id: OrganizationId,
    body: PeriodCreate,
) -> PeriodResponse:
    """Create an open payroll period."""
    period = await PeriodService(db).create(
        organization_id, body.name, body.start_date, body.end_date, body.notes
    )
    await db.commit()
    return PeriodResponse.model_validate(period)


@router.get("", response_model=PeriodListResponse)
async def list_periods(
    db: DbSession,
    organization_id: OrganizationId,
    state: Annotated[PeriodState | None, Query()] = None,
    date_from: Annotated[date | None, Query()] = None,
    date_to: Annotated[date | None, Query()] = None,
    search: Annotated[str | None, Query()] = None,
) -> PeriodListResponse:
    """List payroll periods with their aggregate totals."""
    periods = await PeriodService(db).list(
        organization_id,
        PeriodFilter(state=state, date_from=date_from, date_to=date_to, search=search),
    )
    items = [PeriodResponse.model_validate(p) for p in periods]
    return PeriodListResponse(items=items, total=len(items))


@router.get("/{period_id}", response_model=PeriodResponse, responses=NOT_FOUND)
async def get_period(
    db: DbSession,
    organization_id: OrganizationId,
    period_id: Annotated[UUID, Path()],
) -> PeriodResponse:
    """Get a period with freshly recomputed totals."""
    service = PeriodService(db)
    await service.get(period_id, organization_id)
    period = await service.refresh_totals(period_id)
    await db.commit()
    return PeriodResponse.model_validate(period)


@router.patch("/{period_id}", response_model=PeriodResponse, responses=CONFLICTS)
async def update_period(
    db: DbSession,
    organization_id: OrganizationId,
    period_id: Annotated[UUID, Path()],
    body: PeriodUpdate,
) -> PeriodResponse:
    """Edit an open period."""
    period = await PeriodService(db).update(
        period_id,
        organization_id,
        name=body.name,
        start_date=body.start_date,
        end_date=body.end_date,
        notes=body.notes,
    )
    await db.commit()
    return PeriodResponse.model_validate(period)


@router.delete(
    "/{period_id}", status_code=status.HTTP_204_NO_CONTENT, responses=CONFLICTS
)
async def delete_period(
    db: DbSession,
    organization_id: OrganizationId,
    period_id: Annotated[UUID, Path()],
) -> None:
    """Delete a period that has no records."""
    await PeriodService(db).delete(period_id, organization_id)
    await db.commit()


# ============================================================================
# Period processing
# ============================================================================


@router.post("/{period_id}/compute", response_model=ComputeResponse, responses=CONFLICTS)
async def compute_period(
    db: DbSession,
    organization_id: OrganizationId,
    period_id: Annotated[UUID, Path()],
    body: ComputeRequest | None = None,
) -> ComputeResponse:
    """Compute or refresh payroll records. Idempotent."""
    include_inactive = body.include_inactive if body else False
    service = ComputationService(db)
    result = await retry_on_conflict(
        lambda: service.compute(period_id, organization_id, include_inactive)
    )
    await db.commit()
    return ComputeResponse(created=result.created, updated=result.updated)


@router.post(
    "/{period_id}/approve-all", response_model=ApproveAllResponse, responses=NOT_FOUND
)
async def approve_all_records(
    db: DbSession,
    organization_id: OrganizationId,
    actor: ActorId,
    period_id: Annotated[UUID, Path()],
) -> ApproveAllResponse:
    """Approve every unapproved record of the period."""
    approved = await ApprovalService(db).approve_all(period_id, actor, organization_id)
    await db.commit()
    return ApproveAllResponse(approved=approved)


@router.post(
    "/{period_id}/receipts", response_model=ReceiptBatchResponse, responses=CONFLICTS
)
async def generate_period_receipts(
    db: DbSession,
    organization_id: OrganizationId,
    period_id: Annotated[UUID, Path()],
) -> ReceiptBatchResponse:
    """Issue receipts for all approved records, skipping those already issued."""
    service = ReceiptService(db)
    result = await service.generate_all(period_id, organization_id)
    await db.commit()
    return ReceiptBatchResponse(generated=result.generated, skipped=result.skipped)


@router.post("/{period_id}/close", response_model=PeriodResponse, responses=CONFLICTS)
async def close_period(
    db: DbSession,
    organization_id: OrganizationId,
    actor: ActorId,
    period_id: Annotated[UUID, Path()],
    body: CloseRequest | None = None,
) -> PeriodResponse:
    """Close an open period. Irreversible."""
    period = await PeriodService(db).close(
        period_id, actor, body.notes if body else None, organization_id
    )
    await db.commit()
    return PeriodResponse.model_validate(period)


@router.post("/{period_id}/process", response_model=PeriodResponse, responses=CONFLICTS)
async def mark_period_processed(
    db: DbSession,
    organization_id: OrganizationId,
    period_id: Annotated[UUID, Path()],
) -> PeriodResponse:
    """Record that the payment pipeline processed a closed period."""
    period = await PeriodService(db).mark_processed(period_id, organization_id)
    await db.commit()
    return PeriodResponse.model_validate(period)


@router.post("/{period_id}/pay", response_model=PeriodResponse, responses=CONFLICTS)
async def mark_period_paid(
    db: DbSession,
    organization_id: OrganizationId,
    period_id: Annotated[UUID, Path()],
) -> PeriodResponse:
    """Record that a processed period has been paid out."""
    period = await PeriodService(db).mark_paid(period_id, organization_id)
    await db.commit()
    return PeriodResponse.model_validate(period)
