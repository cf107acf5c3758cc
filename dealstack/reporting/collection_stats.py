"""Stat cards for the invoice, order and ticket list pages.

Computed over the records a list request returned (i.e. after search and
filters), so the cards always agree with the table beneath them.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal
from typing import Any

from dealstack.models import OrderStatus, TicketStatus
from dealstack.reporting.dashboard_metrics import (
    ZERO,
    average_rating,
    field_value,
    revenue_split,
    status_of,
    to_decimal,
)

EMPTY_INVOICE_STATS = {"total": 0.0, "paid": 0.0, "pending": 0.0}
EMPTY_ORDER_STATS = {"total": 0, "processing": 0, "completed": 0, "totalRevenue": 0.0}
EMPTY_TICKET_STATS = {"total": 0, "open": 0, "inProgress": 0, "resolved": 0, "avgRating": 0.0}


def _count_status(records: list[Any], status: str) -> int:
    return sum(1 for record in records if status_of(record) == status)


def invoice_stats(invoices: Iterable[Any]) -> dict[str, float]:
    """``{total, paid, pending}`` money totals."""
    return revenue_split(invoices).as_dict()


def order_stats(orders: Iterable[Any]) -> dict[str, Any]:
    """``{total, processing, completed, totalRevenue}``.

    ``total`` is a count; ``totalRevenue`` sums every order that was not
    cancelled.
    """
    orders = list(orders)
    revenue: Decimal = sum(
        (
            to_decimal(field_value(order, "total"))
            for order in orders
            if status_of(order) != OrderStatus.CANCELLED.value
        ),
        ZERO,
    )
    return {
        "total": len(orders),
        "processing": _count_status(orders, OrderStatus.PROCESSING.value),
        "completed": _count_status(orders, OrderStatus.COMPLETED.value),
        "totalRevenue": float(revenue),
    }


def ticket_stats(tickets: Iterable[Any]) -> dict[str, Any]:
    """``{total, open, inProgress, resolved, avgRating}``."""
    tickets = list(tickets)
    return {
        "total": len(tickets),
        "open": _count_status(tickets, TicketStatus.OPEN.value),
        "inProgress": _count_status(tickets, TicketStatus.IN_PROGRESS.value),
        "resolved": _count_status(tickets, TicketStatus.RESOLVED.value),
        "avgRating": average_rating(tickets),
    }
