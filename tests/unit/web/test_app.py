"""Tests for dealstack.web.app - application factory and error bodies."""

from __future__ import annotations

import httpx
import pytest
from fastapi.exceptions import RequestValidationError

from dealstack.web.app import _field_key, create_app, validation_errors


class TestFieldKey:
    """Validation error locations become dotted field paths."""

    def test_strips_request_location(self):
        assert _field_key(("body", "customerId")) == "customerId"

    def test_nested_line_item_path(self):
        assert _field_key(("body", "items", 0, "quantity")) == "items.0.quantity"

    def test_price_aliases_normalised(self):
        assert _field_key(("body", "items", 1, "unitPrice")) == "items.1.price"

    def test_top_level_name_kept(self):
        assert _field_key(("body", "name")) == "name"

    def test_order_item_name_is_description(self):
        assert _field_key(("body", "items", 0, "name")) == "items.0.description"

    def test_empty_location(self):
        assert _field_key(("body",)) == "request"


def test_validation_errors_first_message_wins():
    exc = RequestValidationError(
        [
            {"loc": ("body", "tax"), "msg": "Value error, must be a number", "type": "value_error"},
            {"loc": ("body", "tax"), "msg": "second", "type": "value_error"},
            {"loc": ("query", "status"), "msg": "Input should be 'paid'", "type": "enum"},
        ]
    )

    assert validation_errors(exc) == {
        "tax": "must be a number",
        "status": "Input should be 'paid'",
    }


@pytest.mark.asyncio
async def test_create_app_mounts_routes_under_base_path():
    app = create_app()
    transport = httpx.ASGITransport(app=app)

    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        missing = await client.get("/customers")
        response = await client.get("/api/nowhere", headers={"X-Request-ID": "req-42"})

    assert missing.status_code == 404
    assert missing.json() == {"message": "Not Found"}
    assert response.headers["X-Request-ID"] == "req-42"
    paths = set(app.openapi()["paths"])
    assert {"/api/customers", "/api/dashboard/stats", "/api/health"} <= paths
