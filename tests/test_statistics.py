"""Tests for on-request order statistics."""

from datetime import datetime

import pytest

from restohub.core.exceptions import ValidationError
from restohub.services.statistics import compute_order_statistics, estimated_completion_minutes

NOW = datetime(2024, 3, 15, 21, 0)

ORDERS = [
    {
        "id": "today_1", "timestamp": "2024-03-15T09:30:00", "total": 300, "status": "delivered",
        "orderType": "dine-in", "customerName": "Asha Rao",
        "items": [{"name": "Masala Dosa", "price": 100, "quantity": 3}],
    },
    {
        "id": "today_2", "timestamp": "2024-03-15T13:10:00", "total": 150, "status": "pending",
        "orderType": "delivery",
        "items": [{"name": "Chicken Biryani", "price": 150, "quantity": 1}],
    },
    {
        "id": "last_week", "timestamp": "2024-03-10T12:00:00", "total": 200, "status": "delivered",
        "orderType": "dine-in",
        "items": [{"name": "Masala Dosa", "price": 100, "quantity": 2}],
    },
    {
        "id": "last_month", "timestamp": "2024-02-01T10:00:00", "total": 80, "status": "cancelled",
        "orderType": "takeaway",
        "items": [{"name": "Gulab Jamun", "price": 80, "quantity": 1}],
    },
]


class TestPeriods:

    @pytest.mark.parametrize("period,expected", [
        ("today", 2),
        ("week", 3),
        ("month", 3),
        ("all", 4),
    ])
    def test_window_sizes(self, period, expected):
        assert compute_order_statistics(ORDERS, period, now=NOW)["totalOrders"] == expected

    def test_unknown_period(self):
        with pytest.raises(ValidationError):
            compute_order_statistics(ORDERS, "decade", now=NOW)


class TestFigures:

    def test_today(self):
        stats = compute_order_statistics(ORDERS, "today", now=NOW)

        assert stats["totalRevenue"] == 450
        assert stats["averageOrderValue"] == 225
        assert stats["statusBreakdown"] == {"delivered": 1, "pending": 1}
        assert stats["orderTypeBreakdown"] == {"dine-in": 1, "delivery": 1}
        assert stats["ordersByHour"] == {9: 1, 13: 1}
        assert stats["revenueByDay"] == {"2024-03-15": 450}

    def test_popular_items_and_recent_orders(self):
        stats = compute_order_statistics(ORDERS, "all", now=NOW)

        assert stats["popularItems"][0]["name"] == "Masala Dosa"
        assert stats["popularItems"][0]["totalQuantity"] == 5
        assert stats["popularItems"][0]["orderCount"] == 2
        assert [o["id"] for o in stats["recentOrders"]] == ["today_2", "today_1", "last_week", "last_month"]
        assert stats["recentOrders"][1]["itemCount"] == 3
        assert stats["recentOrders"][0]["customerName"] == "Anonymous"

    def test_completion_time_from_delivered_orders(self):
        stats = compute_order_statistics(ORDERS, "all", now=NOW)
        # (15 + 3*3) and (15 + 3*2)
        assert stats["averageCompletionTime"] == 22.5

    def test_completion_estimate_is_capped(self):
        assert estimated_completion_minutes({"items": [{"quantity": 40}]}) == 60
        assert estimated_completion_minutes({"items": []}) == 15

    def test_empty(self):
        stats = compute_order_statistics([], "all", now=NOW)
        assert stats["totalOrders"] == 0
        assert stats["averageOrderValue"] == 0
        assert stats["recentOrders"] == []

    def test_malformed_legacy_values_count_as_zero(self):
        legacy = {
            "id": "legacy", "timestamp": "2024-01-05T12:00:00+00:00", "total": "", "status": "delivered",
            "items": [{"name": "Tea", "price": "n/a", "quantity": "1"}, "Samosa", {"quantity": 2}],
        }
        stats = compute_order_statistics(ORDERS + [legacy], "all", now=NOW)

        assert stats["totalOrders"] == 5
        assert stats["totalRevenue"] == 730
        tea = next(p for p in stats["popularItems"] if p["name"] == "Tea")
        assert tea["totalQuantity"] == 1
        assert tea["totalRevenue"] == 0
