"""Health check API routes.

``GET /health`` reports database connectivity plus the row count of each
CRM table, so an empty or half-migrated database shows up at a glance.
"""

import structlog
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dealstack.config import get_config
from dealstack.db.connection import get_db
from dealstack.db.models import (
    CustomerModel,
    InvoiceModel,
    OrderModel,
    SupportTicketModel,
    WorksheetModel,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/health", tags=["Health"])

# response key -> table
COUNTED_TABLES = {
    "customers": CustomerModel,
    "worksheets": WorksheetModel,
    "invoices": InvoiceModel,
    "orders": OrderModel,
    "tickets": SupportTicketModel,
}


@router.get("", status_code=status.HTTP_200_OK)
async def health_check(db: AsyncSession = Depends(get_db)):
    """Check application health.

    Answers 503 with ``database: disconnected`` when the tables cannot be read.
    """
    config = get_config()
    body = {"environment": config.environment, "apiBasePath": config.api.base_path}
    try:
        counts = {
            key: (await db.execute(select(func.count()).select_from(model))).scalar_one()
            for key, model in COUNTED_TABLES.items()
        }
    except SQLAlchemyError as e:
        logger.error("health_check_failed", error=str(e))
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={**body, "status": "error", "database": "disconnected", "detail": str(e)},
        )
    return {**body, "status": "ok", "database": "connected", "records": counts}
