"""Invoice routes.

Routes:
- GET    /invoices              - List invoices with {total, paid, pending} stats
- POST   /invoices              - Create an invoice (number and totals derived)
- GET    /invoices/{id}         - Invoice detail
- PUT    /invoices/{id}         - Replace an invoice (totals recomputed)
- PATCH  /invoices/{id}/status  - Change invoice status
- DELETE /invoices/{id}         - Delete an invoice
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select

from dealstack.billing.totals import invoice_totals
from dealstack.core.activity import record_activity
from dealstack.db.connection import get_session
from dealstack.db.models import CustomerModel, InvoiceModel
from dealstack.db.queries import next_number
from dealstack.models import InvoiceStatus, utcnow
from dealstack.query.filters import FilterSpec, ListFilter, apply_list_filter
from dealstack.reporting.collection_stats import invoice_stats
from dealstack.web.dependencies import (
    CurrentUser,
    get_current_user,
    get_or_404,
    resolve_customer,
)
from dealstack.web.models import InvoicePayload, InvoiceStatusUpdate
from dealstack.web.serializers import serialize_invoice, store_line_items

router = APIRouter(tags=["invoices"])

INVOICE_FILTERS = FilterSpec(
    search_columns=(InvoiceModel.invoice_number, CustomerModel.name),
    status_column=InvoiceModel.status,
)


def _apply_totals(invoice: InvoiceModel, payload: InvoicePayload) -> None:
    totals = invoice_totals(payload.items, payload.tax, payload.discount)
    invoice.items = store_line_items(payload.items, "description")
    invoice.subtotal = totals.subtotal
    invoice.tax = totals.tax
    invoice.discount = totals.discount
    invoice.total = totals.total


@router.get("/invoices")
async def list_invoices(
    search: str | None = Query(default=None),
    status: InvoiceStatus | None = Query(default=None),
    user: CurrentUser = Depends(get_current_user),
):
    """List invoices, newest first. Stats cover the filtered rows only."""
    list_filter = ListFilter(search=search, status=status)

    async with get_session() as session:
        stmt = (
            select(InvoiceModel)
            .outerjoin(CustomerModel, InvoiceModel.customer_id == CustomerModel.id)
            .where(InvoiceModel.org_id == user.org_id)
        )
        stmt = apply_list_filter(stmt, INVOICE_FILTERS, list_filter)
        result = await session.execute(stmt.order_by(InvoiceModel.created_at.desc()))
        invoices = result.scalars().all()

    return {
        "data": [serialize_invoice(i) for i in invoices],
        "stats": invoice_stats(invoices),
    }


@router.post("/invoices", status_code=201)
async def create_invoice(
    payload: InvoicePayload,
    user: CurrentUser = Depends(get_current_user),
):
    async with get_session() as session:
        customer = await resolve_customer(session, user.org_id, payload.customer_id)
        invoice = InvoiceModel(
            org_id=user.org_id,
            invoice_number=await next_number(
                session, InvoiceModel.invoice_number, InvoiceModel.org_id, user.org_id, "INV"
            ),
            customer=customer,
            issue_date=payload.issue_date or utcnow().date(),
            due_date=payload.due_date,
            status=payload.status.value,
        )
        _apply_totals(invoice, payload)
        session.add(invoice)
        await session.flush()
        record_activity(
            session,
            user.org_id,
            "invoice",
            "created",
            f"Invoice {invoice.invoice_number} created for {customer.name}",
            entity_id=invoice.id,
            username=user.username,
        )

    return {"data": serialize_invoice(invoice)}


@router.get("/invoices/{invoice_id}")
async def get_invoice(invoice_id: str, user: CurrentUser = Depends(get_current_user)):
    async with get_session() as session:
        invoice = await get_or_404(session, InvoiceModel, user.org_id, invoice_id, "invoice")
    return {"data": serialize_invoice(invoice)}


@router.put("/invoices/{invoice_id}")
async def update_invoice(
    invoice_id: str,
    payload: InvoicePayload,
    user: CurrentUser = Depends(get_current_user),
):
    """Full replace. The invoice number is kept; totals are recomputed."""
    async with get_session() as session:
        invoice = await get_or_404(session, InvoiceModel, user.org_id, invoice_id, "invoice")
        invoice.customer = await resolve_customer(session, user.org_id, payload.customer_id)
        invoice.issue_date = payload.issue_date or invoice.issue_date
        invoice.due_date = payload.due_date
        invoice.status = payload.status.value
        _apply_totals(invoice, payload)
        await session.flush()
        record_activity(
            session,
            user.org_id,
            "invoice",
            "updated",
            f"Invoice {invoice.invoice_number} updated",
            entity_id=invoice.id,
            username=user.username,
        )

    return {"data": serialize_invoice(invoice)}


@router.patch("/invoices/{invoice_id}/status")
async def update_invoice_status(
    invoice_id: str,
    payload: InvoiceStatusUpdate,
    user: CurrentUser = Depends(get_current_user),
):
    async with get_session() as session:
        invoice = await get_or_404(session, InvoiceModel, user.org_id, invoice_id, "invoice")
        invoice.status = payload.status.value
        await session.flush()
        record_activity(
            session,
            user.org_id,
            "invoice",
            "status",
            f"Invoice {invoice.invoice_number} marked as {invoice.status}",
            entity_id=invoice.id,
            username=user.username,
        )

    return {"data": serialize_invoice(invoice)}


@router.delete("/invoices/{invoice_id}")
async def delete_invoice(invoice_id: str, user: CurrentUser = Depends(get_current_user)):
    async with get_session() as session:
        invoice = await get_or_404(session, InvoiceModel, user.org_id, invoice_id, "invoice")
        await session.delete(invoice)
        record_activity(
            session,
            user.org_id,
            "invoice",
            "deleted",
            f"Invoice {invoice.invoice_number} deleted",
            entity_id=invoice.id,
            username=user.username,
        )

    return {"success": True}
