"""Tests for dealstack.web.routes.invoices - Invoice routes."""

from __future__ import annotations

from datetime import date

import pytest
import pytest_asyncio

from dealstack.db.models import CustomerModel, InvoiceModel
from dealstack.web.routes import invoices


@pytest.fixture
def app(make_app):
    """Create test FastAPI app with invoices router."""
    return make_app(invoices.router)


def invoice_body(customer_id, **overrides):
    body = {
        "customerId": str(customer_id),
        "items": [
            {"description": "Consulting", "quantity": 2, "unitPrice": 50},
            {"description": "Setup fee", "quantity": 1, "unitPrice": 25},
        ],
        "tax": 10,
        "discount": 5,
        "issueDate": "2024-06-01",
        "dueDate": "2024-07-01",
    }
    body.update(overrides)
    return body


class TestCreateInvoice:
    """Tests for POST /invoices."""

    @pytest.mark.asyncio
    async def test_totals_are_derived_from_items(self, client, customer):
        response = await client.post("/invoices", json=invoice_body(customer.id))

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["subtotal"] == 125.0
        assert data["tax"] == 10.0
        assert data["discount"] == 5.0
        assert data["total"] == 130.0
        assert data["customer"]["name"] == "Acme Corp"
        assert [item["amount"] for item in data["items"]] == [100.0, 25.0]

    @pytest.mark.asyncio
    async def test_client_supplied_total_is_ignored(self, client, customer):
        response = await client.post("/invoices", json=invoice_body(customer.id, total=999))

        assert response.json()["data"]["total"] == 130.0

    @pytest.mark.asyncio
    async def test_invoice_numbers_are_sequential(self, client, customer):
        first = await client.post("/invoices", json=invoice_body(customer.id))
        second = await client.post("/invoices", json=invoice_body(customer.id))

        assert first.json()["data"]["invoiceNumber"] == "INV-0001"
        assert second.json()["data"]["invoiceNumber"] == "INV-0002"

    @pytest.mark.asyncio
    async def test_discount_larger_than_subtotal_is_not_clamped(self, client, customer):
        body = invoice_body(
            customer.id,
            items=[{"description": "Tiny", "quantity": 1, "unitPrice": 5}],
            tax=0,
            discount=20,
        )
        response = await client.post("/invoices", json=body)

        assert response.status_code == 201
        assert response.json()["data"]["total"] == -15.0

    @pytest.mark.asyncio
    async def test_zero_quantity_rejected_per_field(self, client, customer):
        body = invoice_body(
            customer.id,
            items=[{"description": "Broken", "quantity": 0, "unitPrice": 10}],
        )
        response = await client.post("/invoices", json=body)

        assert response.status_code == 422
        assert "items.0.quantity" in response.json()["errors"]

    @pytest.mark.asyncio
    async def test_non_numeric_price_rejected_per_field(self, client, customer):
        body = invoice_body(
            customer.id,
            items=[
                {"description": "Fine", "quantity": 1, "price": 10},
                {"description": "Broken", "quantity": 1, "price": "abc"},
            ],
        )
        response = await client.post("/invoices", json=body)

        assert response.status_code == 422
        errors = response.json()["errors"]
        assert "items.1.price" in errors
        assert not any(key.startswith("items.0") for key in errors)

    @pytest.mark.asyncio
    async def test_blank_item_description_rejected(self, client, customer):
        body = invoice_body(
            customer.id,
            items=[{"description": "  ", "quantity": 1, "unitPrice": 10}],
        )
        response = await client.post("/invoices", json=body)

        assert response.status_code == 422
        assert response.json()["errors"] == {"items.0.description": "is required"}

    @pytest.mark.asyncio
    async def test_negative_tax_rejected(self, client, customer):
        response = await client.post("/invoices", json=invoice_body(customer.id, tax=-1))

        assert response.status_code == 422
        assert "tax" in response.json()["errors"]

    @pytest.mark.asyncio
    async def test_due_date_before_issue_date_rejected(self, client, customer):
        body = invoice_body(customer.id, issueDate="2024-06-10", dueDate="2024-06-01")
        response = await client.post("/invoices", json=body)

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_unknown_customer_rejected(self, client, database):
        response = await client.post(
            "/invoices", json=invoice_body("00000000-0000-0000-0000-000000000000")
        )

        assert response.status_code == 400
        assert response.json() == {"message": "Customer does not exist"}


class TestListInvoices:
    """Tests for GET /invoices."""

    @pytest_asyncio.fixture()
    async def seeded_invoices(self, seed, customer, test_org_id):
        other = CustomerModel(org_id=test_org_id, name="Globex", status="active")
        await seed(other)
        return await seed(
            InvoiceModel(
                org_id=test_org_id, invoice_number="INV-0001", customer_id=customer.id,
                items=[], total=130, status="paid", issue_date=date.fromisoformat("2024-06-01"),
            ),
            InvoiceModel(
                org_id=test_org_id, invoice_number="INV-0002", customer_id=customer.id,
                items=[], total=70, status="pending", issue_date=date.fromisoformat("2024-06-02"),
            ),
            InvoiceModel(
                org_id=test_org_id, invoice_number="INV-0003", customer_id=other.id,
                items=[], total=50, status="overdue", issue_date=date.fromisoformat("2024-06-03"),
            ),
        )

    @pytest.mark.asyncio
    async def test_stats_over_all_invoices(self, client, seeded_invoices):
        response = await client.get("/invoices")

        body = response.json()
        assert len(body["data"]) == 3
        assert body["stats"] == {"total": 250.0, "paid": 130.0, "pending": 120.0}

    @pytest.mark.asyncio
    async def test_status_filter_and_stats_follow_filter(self, client, seeded_invoices):
        response = await client.get("/invoices", params={"status": "paid"})

        body = response.json()
        assert [i["invoiceNumber"] for i in body["data"]] == ["INV-0001"]
        assert body["stats"] == {"total": 130.0, "paid": 130.0, "pending": 0.0}

    @pytest.mark.asyncio
    async def test_search_matches_customer_name_case_insensitively(self, client, seeded_invoices):
        response = await client.get("/invoices", params={"search": "GLOB"})

        assert [i["invoiceNumber"] for i in response.json()["data"]] == ["INV-0003"]

    @pytest.mark.asyncio
    async def test_search_matches_invoice_number(self, client, seeded_invoices):
        response = await client.get("/invoices", params={"search": "inv-0002"})

        assert [i["invoiceNumber"] for i in response.json()["data"]] == ["INV-0002"]

    @pytest.mark.asyncio
    async def test_unknown_status_rejected(self, client, seeded_invoices):
        response = await client.get("/invoices", params={"status": "archived"})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_empty_list_has_zero_stats(self, client, database):
        response = await client.get("/invoices")

        assert response.json() == {
            "data": [],
            "stats": {"total": 0.0, "paid": 0.0, "pending": 0.0},
        }


class TestInvoiceDetail:
    """Tests for GET/PUT/PATCH/DELETE /invoices/{id}."""

    @pytest.mark.asyncio
    async def test_malformed_id_is_400(self, client, database):
        response = await client.get("/invoices/not-a-uuid")

        assert response.status_code == 400
        assert response.json() == {"message": "Invalid invoice ID format"}

    @pytest.mark.asyncio
    async def test_missing_invoice_is_404(self, client, database):
        response = await client.get("/invoices/00000000-0000-0000-0000-000000000000")

        assert response.status_code == 404
        assert response.json() == {"message": "Invoice not found"}

    @pytest.mark.asyncio
    async def test_replace_recomputes_totals_and_keeps_number(self, client, customer):
        created = (await client.post("/invoices", json=invoice_body(customer.id))).json()["data"]

        body = invoice_body(
            customer.id,
            items=[{"description": "Retainer", "quantity": 3, "unitPrice": "19.99"}],
            tax=0,
            discount=0,
        )
        response = await client.put(f"/invoices/{created['id']}", json=body)

        data = response.json()["data"]
        assert data["invoiceNumber"] == created["invoiceNumber"]
        assert data["total"] == 59.97

    @pytest.mark.asyncio
    async def test_status_patch(self, client, customer):
        created = (await client.post("/invoices", json=invoice_body(customer.id))).json()["data"]

        response = await client.patch(f"/invoices/{created['id']}/status", json={"status": "paid"})

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "paid"

    @pytest.mark.asyncio
    async def test_delete_is_hard(self, client, customer):
        created = (await client.post("/invoices", json=invoice_body(customer.id))).json()["data"]

        response = await client.delete(f"/invoices/{created['id']}")
        assert response.json() == {"success": True}

        response = await client.get(f"/invoices/{created['id']}")
        assert response.status_code == 404
