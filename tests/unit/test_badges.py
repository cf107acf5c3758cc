"""Unit tests for dealstack.client.badges."""

from __future__ import annotations

from enum import Enum

import pytest

from dealstack.client.badges import Badge, Tone, _exhaustive, badge_for
from dealstack.models import OrderStatus, Priority, TicketStatus


def test_every_order_status_has_an_icon():
    for status in OrderStatus:
        assert badge_for(OrderStatus, status).icon


def test_lookup_by_raw_value():
    assert badge_for(TicketStatus, "in-progress") == Badge(Tone.INFO, "clock")
    assert badge_for(Priority, "high").tone is Tone.ERROR


def test_unknown_value_rejected():
    with pytest.raises(ValueError):
        badge_for(OrderStatus, "lost")


def test_incomplete_table_fails_fast():
    class Light(str, Enum):
        RED = "red"
        GREEN = "green"

    with pytest.raises(ValueError, match="Light has no badge for: green"):
        _exhaustive(Light, {Light.RED: Badge(Tone.ERROR)})
