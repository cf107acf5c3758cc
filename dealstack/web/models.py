"""Request payload models for the DealStack API.

Payloads use the camelCase keys the browser client sends (``customerId``,
``dueDate``). Form fields left blank arrive as empty strings and are read as
"not given".

Usage:
    from dealstack.web.models import InvoicePayload

    @router.post("/invoices")
    async def create_invoice(payload: InvoicePayload):
        ...
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from dealstack.models import (
    CustomerStatus,
    InvoiceStatus,
    LineItem,
    OrderStatus,
    OrderType,
    Priority,
    TicketStatus,
    WorksheetStatus,
    clamp_progress,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


# ============================================================================
# Auth
# ============================================================================


class LoginRequest(CamelModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


# ============================================================================
# Customers
# ============================================================================


class CustomerPayload(CamelModel):
    """Create / full replace of a customer."""

    name: str = Field(min_length=1)
    email: str | None = None
    phone: str | None = None
    company: str | None = None
    location: str | None = None
    status: CustomerStatus = CustomerStatus.ACTIVE

    @field_validator("email", "phone", "company", "location", mode="before")
    @classmethod
    def empty_string_to_none(cls, v):
        return _blank_to_none(v)


# ============================================================================
# Worksheets
# ============================================================================


class WorksheetPayload(CamelModel):
    """Create / full replace of a worksheet. Progress is clamped to 0-100."""

    title: str = Field(min_length=1)
    description: str | None = None
    assigned_to: UUID | None = None
    status: WorksheetStatus = WorksheetStatus.PENDING
    priority: Priority = Priority.MEDIUM
    due_date: date | None = None
    progress: int = 0

    @field_validator("description", "assigned_to", "due_date", mode="before")
    @classmethod
    def empty_string_to_none(cls, v):
        return _blank_to_none(v)

    @field_validator("progress")
    @classmethod
    def clamp(cls, v: int) -> int:
        return clamp_progress(v)


class WorksheetProgressUpdate(CamelModel):
    """Partial edit of a worksheet's status and/or progress."""

    status: WorksheetStatus | None = None
    progress: int | None = None

    @field_validator("progress")
    @classmethod
    def clamp(cls, v: int | None) -> int | None:
        return None if v is None else clamp_progress(v)

    @model_validator(mode="after")
    def require_change(self):
        if self.status is None and self.progress is None:
            raise ValueError("status or progress is required")
        return self


# ============================================================================
# Invoices & Orders
# ============================================================================


class InvoicePayload(CamelModel):
    """Create / full replace of an invoice. Totals are always recomputed."""

    customer_id: UUID
    items: list[LineItem] = Field(min_length=1)
    tax: Decimal = Field(default=Decimal("0"), ge=0)
    discount: Decimal = Field(default=Decimal("0"), ge=0)
    issue_date: date | None = None
    due_date: date | None = None
    status: InvoiceStatus = InvoiceStatus.PENDING

    @field_validator("issue_date", "due_date", mode="before")
    @classmethod
    def empty_string_to_none(cls, v):
        return _blank_to_none(v)

    @field_validator("tax", "discount", mode="before")
    @classmethod
    def blank_amount_is_zero(cls, v):
        return "0" if _blank_to_none(v) is None else v

    @model_validator(mode="after")
    def due_after_issue(self):
        if self.issue_date and self.due_date and self.due_date < self.issue_date:
            raise ValueError("dueDate must not be before issueDate")
        return self


class OrderPayload(CamelModel):
    """Create / full replace of an order. Orders carry no tax or discount."""

    customer_id: UUID
    type: OrderType = OrderType.PRODUCT
    items: list[LineItem] = Field(min_length=1)
    assigned_to: UUID | None = None
    status: OrderStatus = OrderStatus.PENDING
    order_date: date | None = None
    delivery_date: date | None = None

    @field_validator("assigned_to", "order_date", "delivery_date", mode="before")
    @classmethod
    def empty_string_to_none(cls, v):
        return _blank_to_none(v)


class InvoiceStatusUpdate(CamelModel):
    status: InvoiceStatus


class OrderStatusUpdate(CamelModel):
    status: OrderStatus


# ============================================================================
# Support tickets
# ============================================================================


class TicketPayload(CamelModel):
    """Create / full replace of a support ticket."""

    customer_id: UUID
    subject: str = Field(min_length=1)
    description: str | None = None
    assigned_to: UUID | None = None
    priority: Priority = Priority.MEDIUM
    status: TicketStatus = TicketStatus.OPEN

    @field_validator("description", "assigned_to", mode="before")
    @classmethod
    def empty_string_to_none(cls, v):
        return _blank_to_none(v)


class TicketStatusUpdate(CamelModel):
    status: TicketStatus


class TicketMessageCreate(CamelModel):
    body: str = Field(min_length=1)


class TicketRatingUpdate(CamelModel):
    rating: int = Field(ge=1, le=5)
