"""Invoice and order form drafts.

A draft holds the raw values typed into the line item rows and recomputes
its totals after every add, remove or edit. Values that cannot be parsed are
reported per field (``items.1.quantity``) and leave the totals unset; they
are never counted as zero.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from typing import Any

from dealstack.billing.totals import (
    LineItemValidationError,
    Totals,
    invoice_totals,
    order_totals,
    parse_amount,
    parse_line_items,
)
from dealstack.models import InvoiceStatus, LineItem, OrderStatus, OrderType


@dataclass(frozen=True)
class DraftItem:
    """One editable line item row, exactly as entered."""

    label: str = ""
    quantity: Any = 1
    price: Any = 0


class _LineItemDraft:
    label_key = "description"

    def __init__(self, items: list[DraftItem] | None = None):
        self.items: list[DraftItem] = list(items) if items else [DraftItem()]
        self.errors: dict[str, str] = {}
        self.totals: Totals | None = None
        self._recompute()

    def add_item(self, item: DraftItem | None = None) -> None:
        self.items.append(item or DraftItem())
        self._recompute()

    def remove_item(self, index: int) -> bool:
        """Remove a row. The last remaining row is kept; returns whether one was removed."""
        if len(self.items) <= 1:
            return False
        del self.items[index]
        self._recompute()
        return True

    def edit_item(self, index: int, **changes: Any) -> None:
        """Change ``label``, ``quantity`` and/or ``price`` of one row."""
        self.items[index] = replace(self.items[index], **changes)
        self._recompute()

    def _rows(self) -> list[dict[str, Any]]:
        return [
            {self.label_key: item.label, "quantity": item.quantity, "price": item.price}
            for item in self.items
        ]

    def _parse_items(self) -> list[LineItem]:
        errors: dict[str, str] = {}
        for index, item in enumerate(self.items):
            if not str(item.label).strip():
                errors[f"items.{index}.description"] = "is required"
        try:
            items = parse_line_items(self._rows())
        except LineItemValidationError as exc:
            raise LineItemValidationError({**exc.errors, **errors}) from None
        if errors:
            raise LineItemValidationError(errors)
        return items

    def _calculate(self) -> Totals:
        raise NotImplementedError

    def _recompute(self) -> None:
        try:
            self.totals = self._calculate()
            self.errors = {}
        except LineItemValidationError as exc:
            self.totals = None
            self.errors = exc.errors

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def _require_valid(self) -> Totals:
        if self.totals is None:
            raise LineItemValidationError(self.errors)
        return self.totals

    def _item_payload(self) -> list[dict[str, Any]]:
        return [
            {self.label_key: item.description, "quantity": item.quantity, "unitPrice": str(item.unit_price)}
            for item in self._parse_items()
        ]


class InvoiceDraft(_LineItemDraft):
    """Invoice form: line items plus tax and discount."""

    def __init__(
        self,
        customer_id: str | None = None,
        items: list[DraftItem] | None = None,
        tax: Any = 0,
        discount: Any = 0,
        issue_date: date | None = None,
        due_date: date | None = None,
        status: InvoiceStatus = InvoiceStatus.PENDING,
    ):
        self.customer_id = customer_id
        self.tax = tax
        self.discount = discount
        self.issue_date = issue_date
        self.due_date = due_date
        self.status = status
        super().__init__(items)

    def set_amounts(self, tax: Any = None, discount: Any = None) -> None:
        if tax is not None:
            self.tax = tax
        if discount is not None:
            self.discount = discount
        self._recompute()

    def _calculate(self) -> Totals:
        errors: dict[str, str] = {}
        for name, value in (("tax", self.tax), ("discount", self.discount)):
            try:
                parse_amount(value, name)
            except LineItemValidationError as exc:
                errors.update(exc.errors)
        try:
            items = self._parse_items()
        except LineItemValidationError as exc:
            raise LineItemValidationError({**errors, **exc.errors}) from None
        if errors:
            raise LineItemValidationError(errors)
        return invoice_totals(items, self.tax, self.discount)

    def to_payload(self) -> dict[str, Any]:
        """Request body for ``POST/PUT /invoices``.

        Raises:
            LineItemValidationError: while any field is invalid
        """
        totals = self._require_valid()
        return {
            "customerId": self.customer_id,
            "items": self._item_payload(),
            "tax": str(totals.tax),
            "discount": str(totals.discount),
            "issueDate": self.issue_date.isoformat() if self.issue_date else None,
            "dueDate": self.due_date.isoformat() if self.due_date else None,
            "status": InvoiceStatus(self.status).value,
        }


class OrderDraft(_LineItemDraft):
    """Order form. Orders have no tax or discount; the total is the subtotal."""

    label_key = "name"

    def __init__(
        self,
        customer_id: str | None = None,
        items: list[DraftItem] | None = None,
        type: OrderType = OrderType.PRODUCT,
        assigned_to: str | None = None,
        status: OrderStatus = OrderStatus.PENDING,
        order_date: date | None = None,
        delivery_date: date | None = None,
    ):
        self.customer_id = customer_id
        self.type = type
        self.assigned_to = assigned_to
        self.status = status
        self.order_date = order_date
        self.delivery_date = delivery_date
        super().__init__(items)

    def _calculate(self) -> Totals:
        return order_totals(self._parse_items())

    def to_payload(self) -> dict[str, Any]:
        self._require_valid()
        return {
            "customerId": self.customer_id,
            "type": OrderType(self.type).value,
            "items": self._item_payload(),
            "assignedTo": self.assigned_to,
            "status": OrderStatus(self.status).value,
            "orderDate": self.order_date.isoformat() if self.order_date else None,
            "deliveryDate": self.delivery_date.isoformat() if self.delivery_date else None,
        }
