"""Unit tests for dealstack.billing.totals."""

from __future__ import annotations

from decimal import Decimal

import pytest

from dealstack.billing.totals import (
    LineItemValidationError,
    calculate_subtotal,
    invoice_totals,
    normalize_field_name,
    order_totals,
    parse_amount,
    parse_line_items,
)


class TestInvoiceTotals:
    """Test subtotal + tax - discount."""

    def test_subtotal_tax_and_discount(self, sample_items):
        totals = invoice_totals(sample_items, tax="10", discount="5")

        assert totals.subtotal == Decimal("125.00")
        assert totals.total == Decimal("130.00")

    def test_item_order_does_not_change_total(self, sample_items):
        forward = invoice_totals(sample_items, tax=3)
        backward = invoice_totals(list(reversed(sample_items)), tax=3)

        assert forward == backward

    def test_no_items(self):
        totals = invoice_totals([], tax=10, discount=4)

        assert totals.subtotal == 0
        assert totals.total == Decimal("6.00")

    def test_discount_may_exceed_subtotal(self, sample_items):
        totals = invoice_totals(sample_items, discount=200)

        assert totals.total == Decimal("-75.00")

    def test_blank_tax_is_zero(self, sample_items):
        assert invoice_totals(sample_items, tax="", discount=None).total == Decimal("125.00")

    def test_cents_are_exact(self):
        items = parse_line_items(
            [{"name": "Nut", "quantity": 3, "price": "0.10"}, {"name": "Bolt", "quantity": 1, "price": "0.20"}]
        )

        assert calculate_subtotal(items) == Decimal("0.50")

    def test_as_dict(self, sample_items):
        assert invoice_totals(sample_items, tax=10, discount=5).as_dict() == {
            "subtotal": 125.0,
            "tax": 10.0,
            "discount": 5.0,
            "total": 130.0,
        }


def test_order_total_is_subtotal(sample_items):
    totals = order_totals(sample_items)

    assert totals.total == totals.subtotal == Decimal("125.00")
    assert totals.tax == totals.discount == 0


class TestParseLineItems:
    """Validation reports every failing field, keyed by row."""

    def test_collects_errors_from_every_row(self):
        with pytest.raises(LineItemValidationError) as exc_info:
            parse_line_items(
                [
                    {"description": "ok", "quantity": 1, "price": 1},
                    {"description": "bad qty", "quantity": 0, "price": 1},
                    {"description": "bad price", "quantity": 1, "unitPrice": "abc"},
                ]
            )

        assert set(exc_info.value.errors) == {"items.1.quantity", "items.2.price"}

    def test_blank_order_item_name_is_a_description_error(self):
        with pytest.raises(LineItemValidationError) as exc_info:
            parse_line_items([{"name": " ", "quantity": 1, "price": 1}])

        assert list(exc_info.value.errors) == ["items.0.description"]

    def test_preserves_order(self):
        items = parse_line_items(
            [{"name": "b", "quantity": 1, "price": 2}, {"name": "a", "quantity": 1, "price": 1}]
        )

        assert [item.description for item in items] == ["b", "a"]

    def test_empty_list(self):
        assert parse_line_items([]) == []


class TestParseAmount:
    @pytest.mark.parametrize("value", [None, ""])
    def test_not_given_is_zero(self, value):
        assert parse_amount(value, "tax") == 0

    @pytest.mark.parametrize(
        "value,message",
        [
            ("ten", "must be a number"),
            (True, "must be a number"),
            ("NaN", "must be a finite number"),
            ("-1", "must not be negative"),
        ],
    )
    def test_invalid(self, value, message):
        with pytest.raises(LineItemValidationError) as exc_info:
            parse_amount(value, "discount")

        assert exc_info.value.errors == {"discount": message}

    def test_float_goes_through_string(self):
        assert parse_amount(0.1, "tax") == Decimal("0.1")


@pytest.mark.parametrize(
    "name,expected",
    [("unitPrice", "price"), ("unit_price", "price"), ("name", "description"), ("quantity", "quantity"), ("tax", "tax")],
)
def test_normalize_field_name(name, expected):
    assert normalize_field_name(name) == expected
