"""DealStack Pydantic models and status enumerations.

The enumerations are the single source of truth for every fixed-set field
(status, type, priority, role) used by the ORM, the API and the client.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class CustomerStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class WorksheetStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class InvoiceStatus(str, Enum):
    PAID = "paid"
    PENDING = "pending"
    OVERDUE = "overdue"


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class OrderType(str, Enum):
    PRODUCT = "product"
    SERVICE = "service"


class TicketStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class UserRole(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    AGENT = "agent"
    VIEWER = "viewer"


# Orders still being worked on (dashboard "Active Orders")
ACTIVE_ORDER_STATUSES = (OrderStatus.PENDING, OrderStatus.PROCESSING, OrderStatus.SHIPPED)

# A rating may only be recorded once a ticket reaches one of these
RATEABLE_TICKET_STATUSES = (TicketStatus.RESOLVED, TicketStatus.CLOSED)


def clamp_progress(value: int | None) -> int:
    """Clamp worksheet progress into [0, 100]."""
    if value is None:
        return 0
    return max(0, min(100, int(value)))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LineItem(BaseModel):
    """A quantity/unit-price pair on an invoice or order.

    Accepts the keys used by both entity forms: ``description`` (invoices) or
    ``name`` (orders), and ``unitPrice`` or ``price``. The label must not be blank.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    description: str = Field(validation_alias=AliasChoices("description", "name"))
    quantity: int = Field(gt=0)
    unit_price: Decimal = Field(
        ge=0, validation_alias=AliasChoices("unit_price", "unitPrice", "price")
    )

    @field_validator("description")
    @classmethod
    def require_label(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("is required")
        return v

    @field_validator("quantity", mode="before")
    @classmethod
    def reject_bool_quantity(cls, v: Any) -> Any:
        if isinstance(v, bool):
            raise ValueError("quantity must be a whole number")
        return v

    @field_validator("unit_price", mode="before")
    @classmethod
    def reject_non_numeric_price(cls, v: Any) -> Any:
        if isinstance(v, bool) or v is None or v == "":
            raise ValueError("price must be a number")
        return v

    @field_validator("unit_price")
    @classmethod
    def require_finite_price(cls, v: Decimal) -> Decimal:
        if not v.is_finite():
            raise ValueError("price must be a finite number")
        return v

    @property
    def amount(self) -> Decimal:
        return self.quantity * self.unit_price


class TicketMessage(BaseModel):
    """One entry in a support ticket conversation."""

    author: str
    body: str = Field(min_length=1)
    created_at: datetime = Field(default_factory=utcnow)

    def to_json(self) -> dict[str, Any]:
        return {
            "author": self.author,
            "body": self.body,
            "createdAt": self.created_at.isoformat(),
        }
