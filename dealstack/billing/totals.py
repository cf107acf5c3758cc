"""Invoice and order total calculation.

Totals are computed with exact Decimal arithmetic from an ordered sequence of
line items. Invoices carry tax and discount; orders do not, so an order's
total is always its subtotal.

Inputs are validated by ``parse_line_items`` / ``parse_amount`` before any
arithmetic happens. Bad quantities or prices raise; they are never treated
as zero.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from pydantic import ValidationError

from dealstack.models import LineItem

CENT = Decimal("0.01")
ZERO = Decimal("0")

# pydantic reports aliased fields under several names; the client keys
# inline errors by these
_FIELD_NAMES = {
    "description": "description",
    "name": "description",
    "quantity": "quantity",
    "unit_price": "price",
    "unitPrice": "price",
    "price": "price",
}


def normalize_field_name(name: str) -> str:
    """Public name of a line item field, whichever alias it arrived under."""
    return _FIELD_NAMES.get(name, name)


class LineItemValidationError(ValueError):
    """Raised when line items, tax or discount fail input validation.

    ``errors`` maps a field path (``items.0.quantity``, ``tax``) to a message.
    """

    def __init__(self, errors: dict[str, str]):
        self.errors = errors
        detail = "; ".join(f"{key}: {msg}" for key, msg in errors.items())
        super().__init__(f"Invalid line items: {detail}")


@dataclass(frozen=True)
class Totals:
    """Derived totals for an invoice or order."""

    subtotal: Decimal
    tax: Decimal
    discount: Decimal
    total: Decimal

    def as_dict(self) -> dict[str, float]:
        return {
            "subtotal": float(self.subtotal),
            "tax": float(self.tax),
            "discount": float(self.discount),
            "total": float(self.total),
        }


def _quantize(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def parse_line_items(rows: Iterable[Mapping[str, Any] | LineItem]) -> list[LineItem]:
    """Validate raw line item rows, preserving their order.

    Raises:
        LineItemValidationError: with every failing field of every row
    """
    items: list[LineItem] = []
    errors: dict[str, str] = {}

    for index, row in enumerate(rows):
        if isinstance(row, LineItem):
            items.append(row)
            continue
        try:
            items.append(LineItem.model_validate(row))
        except ValidationError as exc:
            for err in exc.errors():
                loc = err["loc"][0] if err["loc"] else "item"
                field = normalize_field_name(str(loc))
                errors.setdefault(f"items.{index}.{field}", err["msg"])

    if errors:
        raise LineItemValidationError(errors)
    return items


def parse_amount(value: Any, field: str) -> Decimal:
    """Validate a non-negative money scalar such as tax or discount.

    ``None`` and blank strings mean "not given" and yield zero; anything else
    must be a finite, non-negative number.
    """
    if value is None or value == "":
        return ZERO
    if isinstance(value, bool):
        raise LineItemValidationError({field: "must be a number"})
    try:
        amount = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise LineItemValidationError({field: "must be a number"}) from None
    if not amount.is_finite():
        raise LineItemValidationError({field: "must be a finite number"})
    if amount < 0:
        raise LineItemValidationError({field: "must not be negative"})
    return amount


def line_amount(item: LineItem) -> Decimal:
    return _quantize(item.amount)


def calculate_subtotal(items: Iterable[LineItem]) -> Decimal:
    """Sum of quantity x unit price over all items."""
    return _quantize(sum((item.amount for item in items), ZERO))


def invoice_totals(
    items: Iterable[LineItem],
    tax: Decimal | int | str | None = None,
    discount: Decimal | int | str | None = None,
) -> Totals:
    """Totals for an invoice: subtotal + tax - discount.

    The total is not clamped; a discount larger than subtotal plus tax yields
    a negative total.
    """
    tax_amount = _quantize(parse_amount(tax, "tax"))
    discount_amount = _quantize(parse_amount(discount, "discount"))
    subtotal = calculate_subtotal(items)
    return Totals(
        subtotal=subtotal,
        tax=tax_amount,
        discount=discount_amount,
        total=subtotal + tax_amount - discount_amount,
    )


def order_totals(items: Iterable[LineItem]) -> Totals:
    """Totals for an order. Orders have no tax or discount."""
    subtotal = calculate_subtotal(items)
    return Totals(subtotal=subtotal, tax=ZERO, discount=ZERO, total=subtotal)
