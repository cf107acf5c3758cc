"""DealStack API route modules.

Each module exports a ``router`` (APIRouter instance) that ``create_app()``
mounts under the configured API base path.

Pattern:
    from fastapi import APIRouter
    router = APIRouter(tags=["feature"])

    @router.get("/endpoint")
    async def handler(...):
        pass

Usage:
    from dealstack.web.routes import customers
    app.include_router(customers.router, prefix="/api")
"""

from dealstack.web.routes import (
    auth,
    customers,
    dashboard,
    health,
    invoices,
    orders,
    tickets,
    worksheets,
)

__all__ = [
    "auth",
    "customers",
    "dashboard",
    "health",
    "invoices",
    "orders",
    "tickets",
    "worksheets",
]
