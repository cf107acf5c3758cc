"""Tests for dealstack.web.routes.orders - Order routes and customer totals."""

from __future__ import annotations

import pytest

from dealstack.web.routes import customers, orders


@pytest.fixture
def app(make_app):
    """Create test FastAPI app with orders and customers routers."""
    return make_app(orders.router, customers.router)


def order_body(customer_id, **overrides):
    body = {
        "customerId": str(customer_id),
        "type": "product",
        "items": [
            {"name": "Widget", "quantity": 2, "price": 50},
            {"name": "Cable", "quantity": 1, "price": 25},
        ],
        "status": "pending",
    }
    body.update(overrides)
    return body


async def create_order(client, customer_id, **overrides):
    response = await client.post("/orders", json=order_body(customer_id, **overrides))
    assert response.status_code == 201
    return response.json()["data"]


class TestCreateOrder:
    """Tests for POST /orders."""

    @pytest.mark.asyncio
    async def test_total_is_subtotal_without_tax_or_discount(self, client, customer):
        data = await create_order(client, customer.id, tax=10, discount=5)

        assert data["total"] == 125.0
        assert "tax" not in data
        assert data["orderNumber"] == "ORD-0001"
        assert [item["name"] for item in data["items"]] == ["Widget", "Cable"]

    @pytest.mark.asyncio
    async def test_order_date_defaults_to_today(self, client, customer):
        data = await create_order(client, customer.id)

        assert data["orderDate"] is not None

    @pytest.mark.asyncio
    async def test_assignee_must_exist(self, client, customer):
        response = await client.post(
            "/orders",
            json=order_body(customer.id, assignedTo="00000000-0000-0000-0000-000000000000"),
        )

        assert response.status_code == 400
        assert response.json() == {"message": "Assigned user does not exist"}

    @pytest.mark.asyncio
    async def test_assignee_is_serialized_as_reference(self, client, customer, agent):
        data = await create_order(client, customer.id, assignedTo=str(agent.id))

        assert data["assignedTo"] == {"id": str(agent.id), "name": "Alex Agent", "role": "agent"}

    @pytest.mark.asyncio
    async def test_fractional_quantity_rejected(self, client, customer):
        body = order_body(customer.id, items=[{"name": "Half", "quantity": 1.5, "price": 10}])
        response = await client.post("/orders", json=body)

        assert response.status_code == 422
        assert "items.0.quantity" in response.json()["errors"]

    @pytest.mark.asyncio
    async def test_missing_item_name_rejected(self, client, customer):
        body = order_body(customer.id, items=[{"quantity": 1, "price": 10}])
        response = await client.post("/orders", json=body)

        assert response.status_code == 422
        assert "items.0.description" in response.json()["errors"]


class TestCustomerTotals:
    """Order writes keep totalOrders / totalSpent in step."""

    @pytest.mark.asyncio
    async def test_create_updates_customer(self, client, customer):
        await create_order(client, customer.id)
        await create_order(client, customer.id, items=[{"name": "Bolt", "quantity": 4, "price": 2.5}])

        data = (await client.get(f"/customers/{customer.id}")).json()["data"]
        assert data["totalOrders"] == 2
        assert data["totalSpent"] == 135.0

    @pytest.mark.asyncio
    async def test_cancelled_orders_do_not_count(self, client, customer):
        order = await create_order(client, customer.id)
        await client.patch(f"/orders/{order['id']}/status", json={"status": "cancelled"})

        data = (await client.get(f"/customers/{customer.id}")).json()["data"]
        assert data["totalOrders"] == 0
        assert data["totalSpent"] == 0.0

    @pytest.mark.asyncio
    async def test_delete_updates_customer(self, client, customer):
        first = await create_order(client, customer.id)
        await create_order(client, customer.id)

        await client.delete(f"/orders/{first['id']}")

        data = (await client.get(f"/customers/{customer.id}")).json()["data"]
        assert data["totalOrders"] == 1


class TestListOrders:
    """Tests for GET /orders."""

    @pytest.mark.asyncio
    async def test_stats_exclude_cancelled_revenue(self, client, customer):
        await create_order(client, customer.id, status="completed")
        await create_order(client, customer.id, status="processing")
        await create_order(client, customer.id, status="cancelled")

        stats = (await client.get("/orders")).json()["stats"]

        assert stats == {"total": 3, "processing": 1, "completed": 1, "totalRevenue": 250.0}

    @pytest.mark.asyncio
    async def test_type_filter(self, client, customer):
        await create_order(client, customer.id, type="product")
        service = await create_order(client, customer.id, type="service")

        body = (await client.get("/orders", params={"type": "service"})).json()

        assert [o["id"] for o in body["data"]] == [service["id"]]
        assert body["stats"]["total"] == 1

    @pytest.mark.asyncio
    async def test_unknown_type_rejected(self, client, database):
        response = await client.get("/orders", params={"type": "subscription"})

        assert response.status_code == 422
        assert "type" in response.json()["errors"]
