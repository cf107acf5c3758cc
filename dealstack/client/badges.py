"""Status and priority badges.

Each status/priority enumeration maps to its badge attributes in one table.
The tables are checked for exhaustiveness when the module is imported, so a
new enum member without a badge fails immediately instead of falling back
to a default colour.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TypeVar

from dealstack.models import (
    CustomerStatus,
    InvoiceStatus,
    OrderStatus,
    Priority,
    TicketStatus,
    WorksheetStatus,
)

E = TypeVar("E", bound=Enum)


class Tone(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    INFO = "info"
    PRIMARY = "primary"
    MUTED = "muted"


@dataclass(frozen=True)
class Badge:
    tone: Tone
    icon: str | None = None


def _exhaustive(enum: type[E], table: dict[E, Badge]) -> dict[E, Badge]:
    missing = set(enum) - set(table)
    if missing:
        names = ", ".join(sorted(m.value for m in missing))
        raise ValueError(f"{enum.__name__} has no badge for: {names}")
    return table


CUSTOMER_STATUS_BADGES = _exhaustive(
    CustomerStatus,
    {
        CustomerStatus.ACTIVE: Badge(Tone.SUCCESS),
        CustomerStatus.INACTIVE: Badge(Tone.MUTED),
    },
)

WORKSHEET_STATUS_BADGES = _exhaustive(
    WorksheetStatus,
    {
        WorksheetStatus.PENDING: Badge(Tone.WARNING),
        WorksheetStatus.IN_PROGRESS: Badge(Tone.INFO),
        WorksheetStatus.COMPLETED: Badge(Tone.SUCCESS),
    },
)

INVOICE_STATUS_BADGES = _exhaustive(
    InvoiceStatus,
    {
        InvoiceStatus.PAID: Badge(Tone.SUCCESS),
        InvoiceStatus.PENDING: Badge(Tone.WARNING),
        InvoiceStatus.OVERDUE: Badge(Tone.ERROR),
    },
)

ORDER_STATUS_BADGES = _exhaustive(
    OrderStatus,
    {
        OrderStatus.PENDING: Badge(Tone.WARNING, "clock"),
        OrderStatus.PROCESSING: Badge(Tone.INFO, "clock"),
        OrderStatus.SHIPPED: Badge(Tone.PRIMARY, "package"),
        OrderStatus.COMPLETED: Badge(Tone.SUCCESS, "check-circle"),
        OrderStatus.CANCELLED: Badge(Tone.ERROR, "x-circle"),
    },
)

TICKET_STATUS_BADGES = _exhaustive(
    TicketStatus,
    {
        TicketStatus.OPEN: Badge(Tone.WARNING, "alert-circle"),
        TicketStatus.IN_PROGRESS: Badge(Tone.INFO, "clock"),
        TicketStatus.RESOLVED: Badge(Tone.SUCCESS, "check-circle"),
        TicketStatus.CLOSED: Badge(Tone.MUTED, "x-circle"),
    },
)

PRIORITY_BADGES = _exhaustive(
    Priority,
    {
        Priority.HIGH: Badge(Tone.ERROR, "flag"),
        Priority.MEDIUM: Badge(Tone.WARNING, "flag"),
        Priority.LOW: Badge(Tone.SUCCESS, "flag"),
    },
)

_TABLES: dict[type[Enum], dict] = {
    CustomerStatus: CUSTOMER_STATUS_BADGES,
    WorksheetStatus: WORKSHEET_STATUS_BADGES,
    InvoiceStatus: INVOICE_STATUS_BADGES,
    OrderStatus: ORDER_STATUS_BADGES,
    TicketStatus: TICKET_STATUS_BADGES,
    Priority: PRIORITY_BADGES,
}


def badge_for(enum: type[E], value: E | str) -> Badge:
    """Badge for a status or priority.

    Raises:
        ValueError: if ``value`` is not a member of ``enum``
    """
    return _TABLES[enum][enum(value)]
