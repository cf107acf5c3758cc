"""Dashboard metrics: counts, period-over-period change, revenue and order performance.

Two halves share this module:

- pure functions over fetched records (``revenue_split``, ``conversion_rate``,
  ``average_order_value``, ``format_time_ago`` ...). Records are JSON-shaped
  mappings as returned by the API; any missing, null or non-numeric money
  field counts as zero and empty collections never raise.
- ``compute_dashboard_stats`` / ``recent_activity``, which run the SQL behind
  ``GET /dashboard/stats`` and ``GET /dashboard/recent``.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from dealstack.db.models import (
    ActivityModel,
    CustomerModel,
    InvoiceModel,
    OrderModel,
    WorksheetModel,
)
from dealstack.models import (
    ACTIVE_ORDER_STATUSES,
    InvoiceStatus,
    OrderStatus,
    WorksheetStatus,
)

ZERO = Decimal("0")
ONE_DECIMAL = Decimal("0.1")
WHOLE = Decimal("1")


# ============================================================================
# Field access
# ============================================================================

def field_value(record: Any, key: str) -> Any:
    """Read ``key`` from a mapping or an object, None when absent."""
    if isinstance(record, Mapping):
        return record.get(key)
    return getattr(record, key, None)


def to_decimal(value: Any) -> Decimal:
    """Money/number coercion for aggregates: anything unusable is zero."""
    if value is None or isinstance(value, bool):
        return ZERO
    try:
        number = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        return ZERO
    return number if number.is_finite() else ZERO


def status_of(record: Any) -> str | None:
    status = field_value(record, "status")
    if isinstance(status, Enum):
        return status.value
    return status


# ============================================================================
# Period-over-period change
# ============================================================================

def change_percent(current: Any, previous: Any) -> float:
    """(current - previous) / previous * 100, or 0.0 when previous is zero."""
    previous_value = to_decimal(previous)
    if previous_value == 0:
        return 0.0
    current_value = to_decimal(current)
    return float((current_value - previous_value) / previous_value * 100)


def format_change(change: float | None) -> str:
    """Render a change as "+12.5%" / "-3.0%"; zero or unusable input is "0%"."""
    if change is None:
        return "0%"
    try:
        change = float(change)
    except (TypeError, ValueError):
        return "0%"
    if math.isnan(change) or math.isinf(change) or change == 0:
        return "0%"
    sign = "+" if change > 0 else ""
    return f"{sign}{change:.1f}%"


# ============================================================================
# Revenue and order performance
# ============================================================================

@dataclass(frozen=True)
class RevenueSplit:
    total: Decimal
    paid: Decimal
    pending: Decimal

    def as_dict(self) -> dict[str, float]:
        return {
            "total": float(self.total),
            "paid": float(self.paid),
            "pending": float(self.pending),
        }


def revenue_split(invoices: Iterable[Any]) -> RevenueSplit:
    """Total invoiced, paid, and pending (= total - paid) revenue."""
    total = ZERO
    paid = ZERO
    for invoice in invoices:
        amount = to_decimal(field_value(invoice, "total"))
        total += amount
        if status_of(invoice) == InvoiceStatus.PAID.value:
            paid += amount
    return RevenueSplit(total=total, paid=paid, pending=total - paid)


def _completed(orders: Iterable[Any]) -> list[Any]:
    return [o for o in orders if status_of(o) == OrderStatus.COMPLETED.value]


def conversion_rate(orders: Iterable[Any]) -> float:
    """Completed orders as a percentage of all orders, one decimal place."""
    orders = list(orders)
    if not orders:
        return 0.0
    rate = Decimal(len(_completed(orders)) * 100) / Decimal(len(orders))
    return float(rate.quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP))


def average_order_value(orders: Iterable[Any]) -> int:
    """Mean total of completed orders, rounded to whole currency units."""
    completed = _completed(orders)
    if not completed:
        return 0
    mean = sum((to_decimal(field_value(o, "total")) for o in completed), ZERO) / len(completed)
    return int(mean.quantize(WHOLE, rounding=ROUND_HALF_UP))


def average_rating(tickets: Iterable[Any]) -> float:
    """Mean 1-5 rating over rated tickets, one decimal place (0.0 if none)."""
    ratings = [
        to_decimal(rating)
        for rating in (field_value(t, "rating") for t in tickets)
        if rating is not None and to_decimal(rating) > 0
    ]
    if not ratings:
        return 0.0
    mean = sum(ratings, ZERO) / len(ratings)
    return float(mean.quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP))


# ============================================================================
# Display formatting
# ============================================================================

def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_timestamp(value: datetime | str) -> datetime:
    if isinstance(value, datetime):
        return _as_utc(value)
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return _as_utc(datetime.fromisoformat(text))


def format_time_ago(timestamp: datetime | str | None, now: datetime | None = None) -> str:
    """Bucket elapsed time: "Just now", "N minutes ago", "N hours ago", "N days ago".

    Uses floor division, so 90 seconds is "1 minutes ago". Timestamps in the
    future read as "Just now"; missing or unparseable ones give "".
    """
    now = _as_utc(now) if now is not None else datetime.now(timezone.utc)
    try:
        then = parse_timestamp(timestamp)
    except (AttributeError, TypeError, ValueError):
        return ""
    seconds = math.floor((now - then).total_seconds())

    if seconds < 60:
        return "Just now"
    if seconds < 3600:
        return f"{seconds // 60} minutes ago"
    if seconds < 86400:
        return f"{seconds // 3600} hours ago"
    return f"{seconds // 86400} days ago"


def format_count(value: Any) -> str:
    return f"{int(to_decimal(value)):,}"


def format_money(value: Any, symbol: str = "$") -> str:
    amount = to_decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def format_whole_money(value: Any, symbol: str = "$") -> str:
    amount = int(to_decimal(value).quantize(WHOLE, rounding=ROUND_HALF_UP))
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,}"


# ============================================================================
# Server-side dashboard statistics
# ============================================================================

@dataclass
class DashboardStats:
    """Counts, change percentages and revenue for ``GET /dashboard/stats``."""

    total_customers: int
    total_customers_change: float
    active_worksheets: int
    active_worksheets_change: float
    pending_invoices: int
    pending_invoices_change: float
    active_orders: int
    active_orders_change: float
    total_revenue: Decimal
    paid_invoices: Decimal  # paid revenue, not a count
    comparison_days: int
    computed_at: datetime

    @property
    def pending_revenue(self) -> Decimal:
        return self.total_revenue - self.paid_invoices

    def as_dict(self) -> dict[str, Any]:
        return {
            "totalCustomers": self.total_customers,
            "totalCustomersChange": self.total_customers_change,
            "activeWorksheets": self.active_worksheets,
            "activeWorksheetsChange": self.active_worksheets_change,
            "pendingInvoices": self.pending_invoices,
            "pendingInvoicesChange": self.pending_invoices_change,
            "activeOrders": self.active_orders,
            "activeOrdersChange": self.active_orders_change,
            "totalRevenue": float(self.total_revenue),
            "paidInvoices": float(self.paid_invoices),
            "pendingRevenue": float(self.pending_revenue),
            "comparisonDays": self.comparison_days,
            "computedAt": self.computed_at.isoformat(),
        }


async def _count(
    session: AsyncSession,
    model: type,
    org_id: str,
    *criteria: Any,
    since: datetime | None = None,
    until: datetime | None = None,
) -> int:
    stmt = select(func.count(model.id)).where(model.org_id == org_id, *criteria)
    if since is not None:
        stmt = stmt.where(model.created_at >= since)
    if until is not None:
        stmt = stmt.where(model.created_at < until)
    return (await session.execute(stmt)).scalar_one() or 0


async def _count_with_change(
    session: AsyncSession,
    model: type,
    org_id: str,
    *criteria: Any,
    now: datetime,
    window: timedelta,
) -> tuple[int, float]:
    """Current count plus change of records created this window vs the last."""
    current = await _count(session, model, org_id, *criteria)
    this_period = await _count(
        session, model, org_id, *criteria, since=now - window, until=now
    )
    last_period = await _count(
        session, model, org_id, *criteria, since=now - 2 * window, until=now - window
    )
    return current, change_percent(this_period, last_period)


async def compute_dashboard_stats(
    session: AsyncSession,
    org_id: str,
    now: datetime | None = None,
    comparison_days: int = 30,
) -> DashboardStats:
    """Calculate dashboard counts and revenue for one organisation.

    Each count's change compares records created in the last
    ``comparison_days`` with those created in the window before it.

    Args:
        session: Database session
        org_id: Organisation ID
        now: Reference time (defaults to the current UTC time)
        comparison_days: Length of each comparison window

    Returns:
        DashboardStats
    """
    now = _as_utc(now) if now is not None else datetime.now(timezone.utc)
    window = timedelta(days=comparison_days)

    total_customers, customers_change = await _count_with_change(
        session, CustomerModel, org_id, now=now, window=window
    )
    active_worksheets, worksheets_change = await _count_with_change(
        session,
        WorksheetModel,
        org_id,
        WorksheetModel.status != WorksheetStatus.COMPLETED.value,
        now=now,
        window=window,
    )
    pending_invoices, invoices_change = await _count_with_change(
        session,
        InvoiceModel,
        org_id,
        InvoiceModel.status == InvoiceStatus.PENDING.value,
        now=now,
        window=window,
    )
    active_orders, orders_change = await _count_with_change(
        session,
        OrderModel,
        org_id,
        OrderModel.status.in_([s.value for s in ACTIVE_ORDER_STATUSES]),
        now=now,
        window=window,
    )

    revenue_row = (
        await session.execute(
            select(
                func.coalesce(func.sum(InvoiceModel.total), 0),
                func.coalesce(
                    func.sum(
                        case(
                            (InvoiceModel.status == InvoiceStatus.PAID.value, InvoiceModel.total),
                            else_=0,
                        )
                    ),
                    0,
                ),
            ).where(InvoiceModel.org_id == org_id)
        )
    ).one()

    return DashboardStats(
        total_customers=total_customers,
        total_customers_change=customers_change,
        active_worksheets=active_worksheets,
        active_worksheets_change=worksheets_change,
        pending_invoices=pending_invoices,
        pending_invoices_change=invoices_change,
        active_orders=active_orders,
        active_orders_change=orders_change,
        total_revenue=to_decimal(revenue_row[0]),
        paid_invoices=to_decimal(revenue_row[1]),
        comparison_days=comparison_days,
        computed_at=now,
    )


async def recent_activity(
    session: AsyncSession, org_id: str, limit: int = 10
) -> list[dict[str, Any]]:
    """Newest activity feed entries, most recent first."""
    result = await session.execute(
        select(ActivityModel)
        .where(ActivityModel.org_id == org_id)
        .order_by(ActivityModel.created_at.desc())
        .limit(limit)
    )
    return [
        {
            "id": str(entry.id),
            "type": entry.entity_type,
            "action": entry.action,
            "entityId": entry.entity_id,
            "message": entry.message,
            "user": entry.username,
            "time": _as_utc(entry.created_at).isoformat(),
        }
        for entry in result.scalars()
    ]
