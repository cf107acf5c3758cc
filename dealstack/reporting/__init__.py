"""Reporting module for DealStack.

Aggregate statistics over customers, worksheets, invoices, orders and tickets.
"""

from dealstack.reporting.collection_stats import invoice_stats, order_stats, ticket_stats
from dealstack.reporting.dashboard_metrics import (
    DashboardStats,
    compute_dashboard_stats,
    recent_activity,
)

__all__ = [
    "DashboardStats",
    "compute_dashboard_stats",
    "recent_activity",
    "invoice_stats",
    "order_stats",
    "ticket_stats",
]
