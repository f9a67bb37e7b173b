"""API routes."""

from funeral_payroll.api.routes.health import router as health_router
from funeral_payroll.api.routes.periods import router as periods_router
from funeral_payroll.api.routes.receipts import router as receipts_router
from funeral_payroll.api.routes.records import router as records_router

__all__ = ["health_router", "periods_router", "receipts_router", "records_router"]
