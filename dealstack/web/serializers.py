"""ORM rows to the camelCase JSON shapes returned by the API."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from dealstack.billing.totals import line_amount, parse_line_items
from dealstack.db.models import (
    CustomerModel,
    InvoiceModel,
    OrderModel,
    SupportTicketModel,
    UserModel,
    WorksheetModel,
)
from dealstack.models import LineItem


def _iso(value: date | datetime | None) -> str | None:
    if value is None:
        return None
    if isinstance(value, datetime) and value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def _money(value: Decimal | None) -> float:
    return float(value) if value is not None else 0.0


def user_ref(user: UserModel | None) -> dict[str, Any] | None:
    if user is None:
        return None
    return {"id": str(user.id), "name": user.name, "role": user.role}


def customer_ref(customer: CustomerModel | None) -> dict[str, Any] | None:
    if customer is None:
        return None
    return {
        "id": str(customer.id),
        "name": customer.name,
        "email": customer.email,
        "company": customer.company,
    }


def serialize_user(user: UserModel) -> dict[str, Any]:
    return {
        "id": str(user.id),
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "isActive": user.is_active,
    }


def serialize_customer(customer: CustomerModel) -> dict[str, Any]:
    return {
        "id": str(customer.id),
        "name": customer.name,
        "email": customer.email,
        "phone": customer.phone,
        "company": customer.company,
        "location": customer.location,
        "status": customer.status,
        "totalOrders": customer.total_orders or 0,
        "totalSpent": _money(customer.total_spent),
        "createdAt": _iso(customer.created_at),
        "updatedAt": _iso(customer.updated_at),
    }


def serialize_worksheet(worksheet: WorksheetModel) -> dict[str, Any]:
    return {
        "id": str(worksheet.id),
        "title": worksheet.title,
        "description": worksheet.description,
        "assignedTo": user_ref(worksheet.assignee),
        "status": worksheet.status,
        "priority": worksheet.priority,
        "dueDate": _iso(worksheet.due_date),
        "progress": worksheet.progress,
        "createdAt": _iso(worksheet.created_at),
        "updatedAt": _iso(worksheet.updated_at),
    }


def store_line_items(items: list[LineItem], label_key: str) -> list[dict[str, Any]]:
    """Line items as persisted in the JSON column (prices kept as exact strings)."""
    return [
        {
            label_key: item.description,
            "quantity": item.quantity,
            "unitPrice": str(item.unit_price),
        }
        for item in items
    ]


def _line_items_out(stored: list[dict[str, Any]], label_key: str) -> list[dict[str, Any]]:
    items = parse_line_items(stored or [])
    return [
        {
            label_key: item.description,
            "quantity": item.quantity,
            "unitPrice": float(item.unit_price),
            "amount": float(line_amount(item)),
        }
        for item in items
    ]


def serialize_invoice(invoice: InvoiceModel) -> dict[str, Any]:
    return {
        "id": str(invoice.id),
        "invoiceNumber": invoice.invoice_number,
        "customer": customer_ref(invoice.customer),
        "items": _line_items_out(invoice.items, "description"),
        "subtotal": _money(invoice.subtotal),
        "tax": _money(invoice.tax),
        "discount": _money(invoice.discount),
        "total": _money(invoice.total),
        "issueDate": _iso(invoice.issue_date),
        "dueDate": _iso(invoice.due_date),
        "status": invoice.status,
        "createdAt": _iso(invoice.created_at),
        "updatedAt": _iso(invoice.updated_at),
    }


def serialize_order(order: OrderModel) -> dict[str, Any]:
    return {
        "id": str(order.id),
        "orderNumber": order.order_number,
        "customer": customer_ref(order.customer),
        "type": order.type,
        "items": _line_items_out(order.items, "name"),
        "total": _money(order.total),
        "assignedTo": user_ref(order.assignee),
        "status": order.status,
        "orderDate": _iso(order.order_date),
        "deliveryDate": _iso(order.delivery_date),
        "createdAt": _iso(order.created_at),
        "updatedAt": _iso(order.updated_at),
    }


def serialize_ticket(ticket: SupportTicketModel) -> dict[str, Any]:
    return {
        "id": str(ticket.id),
        "ticketNumber": ticket.ticket_number,
        "customer": customer_ref(ticket.customer),
        "subject": ticket.subject,
        "description": ticket.description,
        "assignedTo": user_ref(ticket.assignee),
        "priority": ticket.priority,
        "status": ticket.status,
        "messages": list(ticket.messages or []),
        "rating": ticket.rating,
        "createdAt": _iso(ticket.created_at),
        "updatedAt": _iso(ticket.updated_at),
    }
