"""Customer routes.

Routes:
- GET    /customers       - List customers (search: name/email/company, status)
- POST   /customers       - Create a customer
- GET    /customers/{id}  - Customer detail
- PUT    /customers/{id}  - Replace a customer
- DELETE /customers/{id}  - Delete a customer with its invoices, orders and tickets (admin)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy import delete, select

from dealstack.core.activity import record_activity
from dealstack.db.connection import get_session
from dealstack.db.models import CustomerModel, InvoiceModel, OrderModel, SupportTicketModel
from dealstack.models import CustomerStatus
from dealstack.query.filters import FilterSpec, ListFilter, apply_list_filter
from dealstack.web.dependencies import CurrentUser, get_admin_user, get_current_user, get_or_404
from dealstack.web.models import CustomerPayload
from dealstack.web.serializers import serialize_customer

router = APIRouter(tags=["customers"])

CUSTOMER_FILTERS = FilterSpec(
    search_columns=(CustomerModel.name, CustomerModel.email, CustomerModel.company),
    status_column=CustomerModel.status,
)


@router.get("/customers")
async def list_customers(
    search: str | None = Query(default=None),
    status: CustomerStatus | None = Query(default=None),
    user: CurrentUser = Depends(get_current_user),
):
    """List customers, newest first."""
    list_filter = ListFilter(search=search, status=status)

    async with get_session() as session:
        stmt = select(CustomerModel).where(CustomerModel.org_id == user.org_id)
        stmt = apply_list_filter(stmt, CUSTOMER_FILTERS, list_filter)
        result = await session.execute(stmt.order_by(CustomerModel.created_at.desc()))
        customers = result.scalars().all()

    return {"data": [serialize_customer(c) for c in customers]}


@router.post("/customers", status_code=201)
async def create_customer(
    payload: CustomerPayload,
    user: CurrentUser = Depends(get_current_user),
):
    async with get_session() as session:
        customer = CustomerModel(
            org_id=user.org_id,
            name=payload.name,
            email=payload.email,
            phone=payload.phone,
            company=payload.company,
            location=payload.location,
            status=payload.status.value,
        )
        session.add(customer)
        await session.flush()
        record_activity(
            session,
            user.org_id,
            "customer",
            "created",
            f"New customer {customer.name} added",
            entity_id=customer.id,
            username=user.username,
        )

    return {"data": serialize_customer(customer)}


@router.get("/customers/{customer_id}")
async def get_customer(customer_id: str, user: CurrentUser = Depends(get_current_user)):
    async with get_session() as session:
        customer = await get_or_404(session, CustomerModel, user.org_id, customer_id, "customer")
    return {"data": serialize_customer(customer)}


@router.put("/customers/{customer_id}")
async def update_customer(
    customer_id: str,
    payload: CustomerPayload,
    user: CurrentUser = Depends(get_current_user),
):
    """Full replace. Order totals are derived and cannot be set here."""
    async with get_session() as session:
        customer = await get_or_404(session, CustomerModel, user.org_id, customer_id, "customer")
        customer.name = payload.name
        customer.email = payload.email
        customer.phone = payload.phone
        customer.company = payload.company
        customer.location = payload.location
        customer.status = payload.status.value
        await session.flush()
        record_activity(
            session,
            user.org_id,
            "customer",
            "updated",
            f"Customer {customer.name} updated",
            entity_id=customer.id,
            username=user.username,
        )

    return {"data": serialize_customer(customer)}


@router.delete("/customers/{customer_id}")
async def delete_customer(customer_id: str, user: CurrentUser = Depends(get_admin_user)):
    """Hard delete. The customer's invoices, orders and tickets go with it."""
    async with get_session() as session:
        customer = await get_or_404(session, CustomerModel, user.org_id, customer_id, "customer")
        for model in (InvoiceModel, OrderModel, SupportTicketModel):
            await session.execute(delete(model).where(model.customer_id == customer.id))
        await session.delete(customer)
        record_activity(
            session,
            user.org_id,
            "customer",
            "deleted",
            f"Customer {customer.name} deleted",
            entity_id=customer.id,
            username=user.username,
        )

    return {"success": True}
