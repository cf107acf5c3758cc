"""Unit tests for dealstack.client.forms - invoice and order drafts."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from dealstack.billing.totals import LineItemValidationError
from dealstack.client.forms import DraftItem, InvoiceDraft, OrderDraft


class TestInvoiceDraft:
    """Totals recompute after every change."""

    def test_totals_follow_edits(self):
        draft = InvoiceDraft(items=[DraftItem("Consulting", 2, "50")], tax="10", discount="5")
        assert draft.totals.total == Decimal("105.00")

        draft.add_item(DraftItem("Setup fee", 1, 25))
        assert draft.totals.total == Decimal("130.00")

        draft.remove_item(0)
        assert draft.totals.subtotal == Decimal("25.00")

    def test_last_row_cannot_be_removed(self):
        draft = InvoiceDraft(items=[DraftItem("Only", 1, 1)])

        assert draft.remove_item(0) is False
        assert len(draft.items) == 1

    def test_new_draft_has_one_blank_row(self):
        draft = InvoiceDraft()

        assert len(draft.items) == 1
        assert draft.errors == {"items.0.description": "is required"}

    def test_invalid_values_reported_per_field(self):
        draft = InvoiceDraft(items=[DraftItem("A", 1, 10), DraftItem("B", "two", 10)])
        draft.set_amounts(tax="abc")

        assert draft.totals is None
        assert set(draft.errors) == {"items.1.quantity", "tax"}

    def test_fixing_a_row_clears_errors(self):
        draft = InvoiceDraft(items=[DraftItem("A", 0, 10)])
        assert not draft.is_valid

        draft.edit_item(0, quantity=3)

        assert draft.is_valid
        assert draft.totals.total == Decimal("30.00")

    def test_payload(self):
        draft = InvoiceDraft(
            customer_id="c-1",
            items=[DraftItem("Consulting", 2, "49.995")],
            tax=1,
            issue_date=date(2024, 6, 1),
        )

        payload = draft.to_payload()

        assert payload["items"] == [{"description": "Consulting", "quantity": 2, "unitPrice": "49.995"}]
        assert payload["tax"] == "1.00"
        assert payload["issueDate"] == "2024-06-01"
        assert payload["dueDate"] is None
        assert payload["status"] == "pending"

    def test_payload_refused_while_invalid(self):
        draft = InvoiceDraft(items=[DraftItem("A", -1, 1)])

        with pytest.raises(LineItemValidationError) as exc_info:
            draft.to_payload()

        assert "items.0.quantity" in exc_info.value.errors


class TestOrderDraft:
    def test_total_is_subtotal(self):
        draft = OrderDraft(items=[DraftItem("Widget", 4, "2.50")])

        assert draft.totals.total == Decimal("10.00")
        assert draft.totals.tax == 0

    def test_payload_uses_name_key(self):
        draft = OrderDraft(customer_id="c-1", items=[DraftItem("Widget", 1, 5)], type="service")

        payload = draft.to_payload()

        assert payload["items"] == [{"name": "Widget", "quantity": 1, "unitPrice": "5"}]
        assert payload["type"] == "service"
        assert payload["assignedTo"] is None
