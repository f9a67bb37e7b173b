"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from funeral_payroll.database import init_db


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    _, factory = init_db()
    async with factory() as session:
        try:
            yield session
        finally:
            await session.close()


async def get_organization_id(
    x_organization_id: Annotated[str | None, Header()] = None
) -> UUID:
    """Extract organization ID from header."""
    if not x_organization_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Organization-ID header is required",
        )
    try:
        return UUID(x_organization_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid X-Organization-ID format",
        )


async def get_actor_id(x_actor_id: Annotated[str | None, Header()] = None) -> str:
    """Extract the acting user's opaque ID for audit stamps."""
    if not x_actor_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Actor-ID header is required",
        )
    return x_actor_id


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
OrganizationId = Annotated[UUID, Depends(get_organization_id)]
ActorId = Annotated[str, Depends(get_actor_id)]
