"""Pytest configuration and fixtures for DealStack tests.

Provides common fixtures for testing.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from dealstack.config import reset_config
from dealstack.models import LineItem


@pytest.fixture(autouse=True)
def test_env(monkeypatch):
    """In-memory database, no auth, memory sessions."""
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite://")
    monkeypatch.setenv("DEFAULT_ORG_ID", "test-org")
    monkeypatch.setenv("DEALSTACK_AUTH_DISABLED", "true")
    monkeypatch.setenv("REDIS_URL", "memory://")
    monkeypatch.setenv("ENVIRONMENT", "test")
    reset_config()
    yield
    reset_config()


@pytest.fixture
def test_org_id() -> str:
    """Test organization ID."""
    return "test-org"


@pytest.fixture
def now() -> datetime:
    """Fixed reference time."""
    return datetime(2024, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_items() -> list[LineItem]:
    """Two line items: 2 x 50 and 1 x 25."""
    return [
        LineItem(description="Consulting", quantity=2, unit_price=Decimal("50")),
        LineItem(description="Setup fee", quantity=1, unit_price=Decimal("25")),
    ]


@pytest.fixture
def sample_orders() -> list[dict]:
    """Orders as returned by GET /orders."""
    return [
        {"orderNumber": "ORD-0001", "status": "completed", "total": 100.0},
        {"orderNumber": "ORD-0002", "status": "completed", "total": 251.0},
        {"orderNumber": "ORD-0003", "status": "cancelled", "total": 80.0},
        {"orderNumber": "ORD-0004", "status": "processing", "total": 40.0},
    ]


@pytest.fixture
def sample_invoices() -> list[dict]:
    """Invoices as returned by GET /invoices."""
    return [
        {"invoiceNumber": "INV-0001", "status": "paid", "total": 130.0},
        {"invoiceNumber": "INV-0002", "status": "pending", "total": 70.5},
        {"invoiceNumber": "INV-0003", "status": "overdue", "total": None},
    ]
