"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from funeral_payroll import __version__
from funeral_payroll.api.routes import (
    health_router,
    periods_router,
    receipts_router,
    records_router,
)
from funeral_payroll.database import init_db
from funeral_payroll.errors import (
    AlreadyExistsError,
    ConflictError,
    InvalidRangeError,
    InvalidTransitionError,
    NotFoundError,
    PayrollError,
)

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    InvalidRangeError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidTransitionError: status.HTTP_409_CONFLICT,
    AlreadyExistsError: status.HTTP_409_CONFLICT,
    ConflictError: status.HTTP_409_CONFLICT,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    init_db()
    yield


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Funeral Payroll API",
        description="Payroll period processing for funeral home back offices",
        version=__version__,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(PayrollError)
    async def payroll_error_handler(request: Request, exc: PayrollError) -> JSONResponse:
        """Map domain errors to 4xx responses."""
        status_code = ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
        logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc)
        return JSONResponse(
            status_code=status_code,
            content={"detail": str(exc), "code": exc.code},
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": str(exc), "code": "INVALID_INPUT"},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(periods_router, prefix="/api/v1")
    app.include_router(records_router, prefix="/api/v1")
    app.include_router(receipts_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
