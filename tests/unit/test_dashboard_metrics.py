"""Unit tests for the pure half of dealstack.reporting.dashboard_metrics."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest

from dealstack.reporting.dashboard_metrics import (
    average_order_value,
    average_rating,
    change_percent,
    conversion_rate,
    format_change,
    format_count,
    format_money,
    format_time_ago,
    format_whole_money,
    revenue_split,
    to_decimal,
)


class TestChangePercent:
    """Test period-over-period change."""

    def test_growth(self):
        assert change_percent(3, 2) == 50.0

    def test_decline(self):
        assert change_percent(1, 4) == -75.0

    def test_previous_zero_is_no_change(self):
        assert change_percent(12, 0) == 0.0
        assert change_percent(0, None) == 0.0


@pytest.mark.parametrize(
    "change,expected",
    [
        (12.5, "+12.5%"),
        (-3, "-3.0%"),
        (0, "0%"),
        (None, "0%"),
        (float("nan"), "0%"),
        (float("inf"), "0%"),
        ("oops", "0%"),
    ],
)
def test_format_change(change, expected):
    assert format_change(change) == expected


class TestRevenue:
    """Revenue split over invoices."""

    def test_paid_and_pending(self, sample_invoices):
        split = revenue_split(sample_invoices)

        assert split.total == Decimal("200.5")
        assert split.paid == Decimal("130.0")
        assert split.pending == Decimal("70.5")

    def test_empty(self):
        assert revenue_split([]).as_dict() == {"total": 0.0, "paid": 0.0, "pending": 0.0}

    def test_unusable_totals_count_as_zero(self):
        split = revenue_split([{"status": "paid", "total": "n/a"}, {"status": "paid", "total": True}])

        assert split.total == 0


class TestOrderPerformance:
    def test_conversion_rate(self, sample_orders):
        assert conversion_rate(sample_orders) == 50.0

    def test_all_completed_is_full_conversion(self):
        assert conversion_rate([{"status": "completed"}] * 3) == 100.0

    def test_conversion_rate_rounds_to_one_decimal(self):
        orders = [{"status": "completed"}, {"status": "pending"}, {"status": "pending"}]

        assert conversion_rate(orders) == 33.3

    def test_average_order_value_over_completed_only(self, sample_orders):
        # (100 + 251) / 2 = 175.5 rounds half up
        assert average_order_value(sample_orders) == 176

    def test_no_orders(self):
        assert conversion_rate([]) == 0.0
        assert average_order_value([]) == 0


def test_average_rating_ignores_unrated():
    tickets = [{"rating": 5}, {"rating": None}, {"rating": 4}, {}, {"rating": 4}]

    assert average_rating(tickets) == 4.3
    assert average_rating([]) == 0.0


class TestFormatTimeAgo:
    """Recency buckets use floor division."""

    @pytest.mark.parametrize(
        "seconds,expected",
        [
            (30, "Just now"),
            (90, "1 minutes ago"),
            (7200, "2 hours ago"),
            (172800, "2 days ago"),
        ],
    )
    def test_buckets(self, now, seconds, expected):
        assert format_time_ago(now - timedelta(seconds=seconds), now=now) == expected

    def test_future_is_just_now(self, now):
        assert format_time_ago(now + timedelta(hours=1), now=now) == "Just now"

    def test_iso_string_with_z_suffix(self, now):
        assert format_time_ago("2024-06-15T11:00:00Z", now=now) == "1 hours ago"

    def test_naive_timestamp_is_utc(self, now):
        naive = (now - timedelta(minutes=5)).replace(tzinfo=None)

        assert format_time_ago(naive, now=now) == "5 minutes ago"

    @pytest.mark.parametrize("value", [None, "", "yesterday", 42])
    def test_unreadable_timestamp_is_blank(self, value, now):
        assert format_time_ago(value, now=now) == ""


class TestFormatting:
    def test_count(self):
        assert format_count(1234567) == "1,234,567"

    def test_money(self):
        assert format_money(1234.5) == "$1,234.50"
        assert format_money(-3, symbol="£") == "-£3.00"
        assert format_money(None) == "$0.00"

    def test_whole_money(self):
        assert format_whole_money(175.5) == "$176"

    def test_to_decimal_rejects_non_finite(self):
        assert to_decimal(float("inf")) == 0
        assert to_decimal("12.5") == Decimal("12.5")
