"""View models for the dashboard and the entity list pages.

A view fetches everything it shows as one batch of concurrent requests,
joins on all of them, and only then derives its state with a pure merge
function. Results can therefore complete in any order.

Every refresh is tagged with a generation number. When a newer refresh has
started (search text or filter changed) or the view was closed, the older
results are discarded instead of being applied.

A failed batch never propagates: it is logged, the view gets an ``error``
banner and falls back to zero/empty state.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Generic, TypeVar

import structlog

from dealstack.client.api import ApiError, DealStackClient, ListResult
from dealstack.client.badges import Tone
from dealstack.query.filters import ListFilter
from dealstack.reporting.collection_stats import (
    EMPTY_INVOICE_STATS,
    EMPTY_ORDER_STATS,
    EMPTY_TICKET_STATS,
)
from dealstack.reporting.dashboard_metrics import (
    ZERO,
    RevenueSplit,
    average_order_value,
    average_rating,
    conversion_rate,
    format_change,
    format_count,
    format_time_ago,
    format_whole_money,
    revenue_split,
    to_decimal,
)

logger = structlog.get_logger()

T = TypeVar("T")

EMPTY_STATS: dict[str, dict[str, Any] | None] = {
    "customers": None,
    "worksheets": None,
    "invoices": EMPTY_INVOICE_STATS,
    "orders": EMPTY_ORDER_STATS,
    "tickets": EMPTY_TICKET_STATS,
}

_FILTER_NAMES = ("status", "type", "priority")


async def gather_named(fetches: Mapping[str, Awaitable[Any]]) -> dict[str, Any]:
    """Await all fetches concurrently and return their results by name.

    Waits for every fetch to settle before reporting a failure, so no request
    of the batch is left running. The first failure (in mapping order) is
    re-raised.
    """
    names = list(fetches)
    results = await asyncio.gather(*fetches.values(), return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return dict(zip(names, results))


def _rows(value: Any) -> list[Any]:
    if isinstance(value, ListResult):
        return value.data
    if isinstance(value, list):
        return value
    return []


# ============================================================================
# Dashboard
# ============================================================================


@dataclass(frozen=True)
class StatCard:
    label: str
    value: str
    change: str
    is_positive: bool
    tone: Tone


@dataclass
class DashboardModel:
    stat_cards: list[StatCard] = field(default_factory=list)
    revenue: RevenueSplit = field(default_factory=lambda: RevenueSplit(ZERO, ZERO, ZERO))
    conversion_rate: float = 0.0
    avg_order_value: int = 0
    customer_satisfaction: float = 0.0
    activities: list[dict[str, Any]] = field(default_factory=list)
    currency_symbol: str = "$"
    error: str | None = None

    @property
    def performance(self) -> dict[str, str]:
        """Display strings for the performance panel."""
        return {
            "conversionRate": f"{self.conversion_rate:.1f}%",
            "avgOrderValue": format_whole_money(self.avg_order_value, self.currency_symbol),
            "customerSatisfaction": f"{self.customer_satisfaction:.1f}/5",
        }


# label, count key, change key, tone
_STAT_CARDS = (
    ("Total Customers", "totalCustomers", "totalCustomersChange", Tone.PRIMARY),
    ("Active Worksheets", "activeWorksheets", "activeWorksheetsChange", Tone.INFO),
    ("Pending Invoices", "pendingInvoices", "pendingInvoicesChange", Tone.WARNING),
    ("Active Orders", "activeOrders", "activeOrdersChange", Tone.SUCCESS),
)


def stat_cards(stats: Mapping[str, Any]) -> list[StatCard]:
    cards = []
    for label, count_key, change_key, tone in _STAT_CARDS:
        change = stats.get(change_key)
        cards.append(
            StatCard(
                label=label,
                value=format_count(stats.get(count_key)),
                change=format_change(change),
                is_positive=to_decimal(change) >= 0,
                tone=tone,
            )
        )
    return cards


def merge_dashboard(
    results: Mapping[str, Any],
    now: datetime | None = None,
    currency_symbol: str = "$",
) -> DashboardModel:
    """Combine the dashboard fetch batch into a DashboardModel.

    ``results`` is keyed by fetch name (``stats``, ``recent``, ``invoices``,
    ``orders``, ``tickets``); any key may be missing. The merge depends only
    on the names, never on the order in which fetches completed.
    """
    stats = results.get("stats") or {}
    orders = _rows(results.get("orders"))
    tickets = _rows(results.get("tickets"))

    if "totalRevenue" in stats:
        total = to_decimal(stats.get("totalRevenue"))
        paid = to_decimal(stats.get("paidInvoices"))
        revenue = RevenueSplit(total=total, paid=paid, pending=total - paid)
    else:
        # No server stats in the batch: derive from the invoice list
        revenue = revenue_split(_rows(results.get("invoices")))

    activities = [
        {**entry, "timeAgo": format_time_ago(entry.get("time"), now)}
        for entry in _rows(results.get("recent"))
        if isinstance(entry, Mapping)
    ]

    return DashboardModel(
        stat_cards=stat_cards(stats),
        revenue=revenue,
        conversion_rate=conversion_rate(orders),
        avg_order_value=average_order_value(orders),
        customer_satisfaction=average_rating(tickets),
        activities=activities,
        currency_symbol=currency_symbol,
    )


# ============================================================================
# Controllers
# ============================================================================


class ViewController(Generic[T]):
    """Applies fetched state only while it is still wanted."""

    def __init__(self, name: str):
        self.name = name
        self.state: T | None = None
        self._generation = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def begin(self) -> int:
        """Start a refresh; any refresh still in flight becomes stale."""
        self._generation += 1
        return self._generation

    def is_current(self, generation: int) -> bool:
        return not self._closed and generation == self._generation

    def apply(self, generation: int, state: T) -> bool:
        """Store ``state`` if its refresh is still current. Returns whether it was applied."""
        if not self.is_current(generation):
            logger.debug(
                "stale_result_discarded",
                view=self.name,
                generation=generation,
                current=self._generation,
                closed=self._closed,
            )
            return False
        self.state = state
        return True

    def close(self) -> None:
        """Stop accepting results; in-flight refreshes are discarded on arrival."""
        self._closed = True
        self._generation += 1

    async def run(
        self,
        load: Callable[[], Awaitable[T]],
        fallback: Callable[[str], T],
    ) -> bool:
        generation = self.begin()
        try:
            state = await load()
        except ApiError as exc:
            logger.error("view_fetch_failed", view=self.name, status=exc.status, error=exc.message)
            state = fallback(f"Failed to load {self.name}: {exc.message}")
        return self.apply(generation, state)


class DashboardView(ViewController[DashboardModel]):
    """Dashboard: server stats, activity feed and client-side order/ticket metrics."""

    def __init__(self, client: DealStackClient, currency_symbol: str = "$"):
        super().__init__("dashboard")
        self.client = client
        self.currency_symbol = currency_symbol

    async def _load(self) -> DashboardModel:
        results = await gather_named(
            {
                "stats": self.client.dashboard_stats(),
                "recent": self.client.recent_activity(),
                "invoices": self.client.list("invoices"),
                "orders": self.client.list("orders"),
                "tickets": self.client.list("tickets"),
            }
        )
        return merge_dashboard(results, currency_symbol=self.currency_symbol)

    async def refresh(self) -> bool:
        return await self.run(
            self._load,
            lambda message: DashboardModel(currency_symbol=self.currency_symbol, error=message),
        )


@dataclass
class ListState:
    items: list[dict[str, Any]] = field(default_factory=list)
    stats: dict[str, Any] | None = None
    list_filter: ListFilter = field(default_factory=ListFilter)
    error: str | None = None


class EntityListView(ViewController[ListState]):
    """A searchable, filterable collection page.

    Every search or filter change re-issues the list request; nothing is
    cached client-side and no debounce is applied.
    """

    def __init__(self, client: DealStackClient, collection: str):
        if collection not in EMPTY_STATS:
            raise ValueError(f"Unknown collection: {collection}")
        super().__init__(collection)
        self.client = client
        self.collection = collection
        self.list_filter = ListFilter()

    def _empty(self, list_filter: ListFilter, message: str) -> ListState:
        empty = EMPTY_STATS[self.collection]
        return ListState(
            stats=dict(empty) if empty is not None else None,
            list_filter=list_filter,
            error=message,
        )

    async def refresh(self) -> bool:
        list_filter = self.list_filter

        async def load() -> ListState:
            result = await self.client.list(self.collection, list_filter)
            return ListState(items=result.data, stats=result.stats, list_filter=list_filter)

        return await self.run(load, lambda message: self._empty(list_filter, message))

    async def set_search(self, term: str) -> bool:
        self.list_filter = replace(self.list_filter, search=term)
        return await self.refresh()

    async def set_filter(self, name: str, value: str) -> bool:
        """Change ``status``, ``type`` or ``priority``; ``"all"`` clears it."""
        if name not in _FILTER_NAMES:
            raise ValueError(f"Unknown filter: {name}")
        self.list_filter = replace(self.list_filter, **{name: value})
        return await self.refresh()
