"""Order routes.

Routes:
- GET    /orders              - List orders (search, status, type) with stats
- POST   /orders              - Create an order (number and total derived)
- GET    /orders/{id}         - Order detail
- PUT    /orders/{id}         - Replace an order (total recomputed)
- PATCH  /orders/{id}/status  - Change order status
- DELETE /orders/{id}         - Delete an order

Every write refreshes the owning customer's totalOrders / totalSpent.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select

from dealstack.billing.totals import order_totals
from dealstack.core.activity import record_activity
from dealstack.db.connection import get_session
from dealstack.db.models import CustomerModel, OrderModel
from dealstack.db.queries import next_number, refresh_customer_totals
from dealstack.models import OrderStatus, OrderType, utcnow
from dealstack.query.filters import FilterSpec, ListFilter, apply_list_filter
from dealstack.reporting.collection_stats import order_stats
from dealstack.web.dependencies import (
    CurrentUser,
    get_current_user,
    get_or_404,
    resolve_assignee,
    resolve_customer,
)
from dealstack.web.models import OrderPayload, OrderStatusUpdate
from dealstack.web.serializers import serialize_order, store_line_items

router = APIRouter(tags=["orders"])

ORDER_FILTERS = FilterSpec(
    search_columns=(OrderModel.order_number, CustomerModel.name),
    status_column=OrderModel.status,
    discriminators={"type": OrderModel.type},
)


@router.get("/orders")
async def list_orders(
    search: str | None = Query(default=None),
    status: OrderStatus | None = Query(default=None),
    type: OrderType | None = Query(default=None),
    user: CurrentUser = Depends(get_current_user),
):
    """List orders, newest first. Stats cover the filtered rows only."""
    list_filter = ListFilter(search=search, status=status, type=type)

    async with get_session() as session:
        stmt = (
            select(OrderModel)
            .outerjoin(CustomerModel, OrderModel.customer_id == CustomerModel.id)
            .where(OrderModel.org_id == user.org_id)
        )
        stmt = apply_list_filter(stmt, ORDER_FILTERS, list_filter)
        result = await session.execute(stmt.order_by(OrderModel.created_at.desc()))
        orders = result.scalars().all()

    return {
        "data": [serialize_order(o) for o in orders],
        "stats": order_stats(orders),
    }


@router.post("/orders", status_code=201)
async def create_order(
    payload: OrderPayload,
    user: CurrentUser = Depends(get_current_user),
):
    async with get_session() as session:
        customer = await resolve_customer(session, user.org_id, payload.customer_id)
        assignee = await resolve_assignee(session, user.org_id, payload.assigned_to)
        order = OrderModel(
            org_id=user.org_id,
            order_number=await next_number(
                session, OrderModel.order_number, OrderModel.org_id, user.org_id, "ORD"
            ),
            customer=customer,
            type=payload.type.value,
            items=store_line_items(payload.items, "name"),
            total=order_totals(payload.items).total,
            assignee=assignee,
            status=payload.status.value,
            order_date=payload.order_date or utcnow().date(),
            delivery_date=payload.delivery_date,
        )
        session.add(order)
        await session.flush()
        await refresh_customer_totals(session, customer.id)
        record_activity(
            session,
            user.org_id,
            "order",
            "created",
            f"Order {order.order_number} placed by {customer.name}",
            entity_id=order.id,
            username=user.username,
        )

    return {"data": serialize_order(order)}


@router.get("/orders/{order_id}")
async def get_order(order_id: str, user: CurrentUser = Depends(get_current_user)):
    async with get_session() as session:
        order = await get_or_404(session, OrderModel, user.org_id, order_id, "order")
    return {"data": serialize_order(order)}


@router.put("/orders/{order_id}")
async def update_order(
    order_id: str,
    payload: OrderPayload,
    user: CurrentUser = Depends(get_current_user),
):
    """Full replace. Moving an order to another customer refreshes both."""
    async with get_session() as session:
        order = await get_or_404(session, OrderModel, user.org_id, order_id, "order")
        previous_customer_id = order.customer_id
        order.customer = await resolve_customer(session, user.org_id, payload.customer_id)
        order.assignee = await resolve_assignee(session, user.org_id, payload.assigned_to)
        order.type = payload.type.value
        order.items = store_line_items(payload.items, "name")
        order.total = order_totals(payload.items).total
        order.status = payload.status.value
        order.order_date = payload.order_date or order.order_date
        order.delivery_date = payload.delivery_date
        await session.flush()

        await refresh_customer_totals(session, order.customer_id)
        if previous_customer_id != order.customer_id:
            await refresh_customer_totals(session, previous_customer_id)
        record_activity(
            session,
            user.org_id,
            "order",
            "updated",
            f"Order {order.order_number} updated",
            entity_id=order.id,
            username=user.username,
        )

    return {"data": serialize_order(order)}


@router.patch("/orders/{order_id}/status")
async def update_order_status(
    order_id: str,
    payload: OrderStatusUpdate,
    user: CurrentUser = Depends(get_current_user),
):
    async with get_session() as session:
        order = await get_or_404(session, OrderModel, user.org_id, order_id, "order")
        order.status = payload.status.value
        await session.flush()
        await refresh_customer_totals(session, order.customer_id)
        record_activity(
            session,
            user.org_id,
            "order",
            "status",
            f"Order {order.order_number} is now {order.status}",
            entity_id=order.id,
            username=user.username,
        )

    return {"data": serialize_order(order)}


@router.delete("/orders/{order_id}")
async def delete_order(order_id: str, user: CurrentUser = Depends(get_current_user)):
    async with get_session() as session:
        order = await get_or_404(session, OrderModel, user.org_id, order_id, "order")
        customer_id = order.customer_id
        await session.delete(order)
        await session.flush()
        await refresh_customer_totals(session, customer_id)
        record_activity(
            session,
            user.org_id,
            "order",
            "deleted",
            f"Order {order.order_number} deleted",
            entity_id=order.id,
            username=user.username,
        )

    return {"success": True}
