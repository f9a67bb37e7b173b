"""Health check endpoints."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Response, status
from pydantic import BaseModel, Field
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from funeral_payroll import __version__
from funeral_payroll.api.dependencies import DbSession
from funeral_payroll.config import get_settings
from funeral_payroll.database import missing_tables

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: datetime
    database: str
    engine_version: str


class ReadinessResponse(BaseModel):
    """Whether the payroll schema is in place."""

    status: str
    missing_tables: list[str] = Field(default_factory=list)


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
)
async def health_check(db: DbSession) -> HealthResponse:
    """Check API and database health."""
    db_status = "unhealthy"
    try:
        await db.execute(text("SELECT 1"))
        db_status = "healthy"
    except SQLAlchemyError:
        logger.exception("Database health check failed")

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        timestamp=datetime.now(timezone.utc),
        database=db_status,
        engine_version=get_settings().engine_version,
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={503: {"model": ReadinessResponse}},
)
async def readiness_check(db: DbSession, response: Response) -> ReadinessResponse:
    """Ready once every payroll table exists (run ``funeral-payroll init-db`` first)."""
    try:
        missing = await missing_tables(db)
    except SQLAlchemyError:
        logger.exception("Readiness check could not inspect the schema")
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return ReadinessResponse(status="unavailable")

    if missing:
        logger.warning("Not ready, missing tables: %s", ", ".join(missing))
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return ReadinessResponse(status="not_ready", missing_tables=missing)
    return ReadinessResponse(status="ready")


@router.get("/live", status_code=status.HTTP_200_OK)
async def liveness_check() -> dict[str, str]:
    """Liveness check for container orchestration."""
    return {"status": "alive", "version": __version__}
