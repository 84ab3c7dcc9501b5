"""
Order statistics for the staff dashboard.

Unlike the analytics snapshot this is computed on request for a time window
and never persisted.
"""

from datetime import datetime, timedelta
from typing import Any, Optional

from restohub.core.exceptions import ValidationError
from restohub.services.analytics import coerce_number, parse_timestamp

PERIODS = ("today", "week", "month", "all")


def _local(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


def period_window(period: str, now: datetime) -> tuple[datetime, datetime]:
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "today":
        return today, today + timedelta(days=1)
    if period == "week":
        return today - timedelta(days=7), now
    if period == "month":
        return today.replace(day=1), now
    if period == "all":
        return datetime.min, now
    raise ValidationError(f"Unknown period '{period}'", detail={"allowed": list(PERIODS)})


def _items(order: dict[str, Any]) -> list[dict[str, Any]]:
    return [item for item in order.get("items") or [] if isinstance(item, dict)]


def _item_count(order: dict[str, Any]) -> int:
    return sum(coerce_number(item.get("quantity"), int) for item in _items(order))


def estimated_completion_minutes(order: dict[str, Any]) -> int:
    """No status timestamps are kept, so completion time is estimated from size."""
    return min(15 + 3 * _item_count(order), 60)


def compute_order_statistics(
    orders: list[dict[str, Any]],
    period: str = "all",
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    now = _local(now) or datetime.now()
    start, end = period_window(period, now)

    selected = []
    for order in orders:
        when = parse_timestamp(order.get("timestamp"))
        if when is not None and start <= when <= end:
            selected.append((when, order))

    total_orders = len(selected)
    total_revenue = sum(coerce_number(o.get("total")) for _, o in selected)

    delivered = [o for _, o in selected if o.get("status") == "delivered"]
    completion = (
        sum(estimated_completion_minutes(o) for o in delivered) / len(delivered) if delivered else 0
    )

    status_breakdown: dict[str, int] = {}
    type_breakdown: dict[str, int] = {}
    item_stats: dict[str, dict[str, Any]] = {}
    revenue_by_day: dict[str, float] = {}
    orders_by_day: dict[str, int] = {}
    orders_by_hour: dict[int, int] = {}

    for when, order in selected:
        status = order.get("status", "pending")
        status_breakdown[status] = status_breakdown.get(status, 0) + 1
        order_type = order.get("orderType", "dine-in")
        type_breakdown[order_type] = type_breakdown.get(order_type, 0) + 1

        day = when.date().isoformat()
        revenue_by_day[day] = round(revenue_by_day.get(day, 0) + coerce_number(order.get("total")), 2)
        orders_by_day[day] = orders_by_day.get(day, 0) + 1
        orders_by_hour[when.hour] = orders_by_hour.get(when.hour, 0) + 1

        for item in _items(order):
            if not item.get("name"):
                continue
            price = coerce_number(item.get("price"))
            quantity = coerce_number(item.get("quantity"), int)
            stats = item_stats.setdefault(item["name"], {
                "name": item["name"],
                "totalQuantity": 0,
                "totalRevenue": 0.0,
                "orderCount": 0,
                "averagePrice": price,
            })
            stats["totalQuantity"] += quantity
            stats["totalRevenue"] = round(stats["totalRevenue"] + price * quantity, 2)
            stats["orderCount"] += 1

    popular = sorted(item_stats.values(), key=lambda s: s["totalQuantity"], reverse=True)[:10]

    recent = sorted(selected, key=lambda pair: pair[0], reverse=True)[:10]
    recent_orders = [
        {
            "id": order.get("id"),
            "customerName": order.get("customerName") or "Anonymous",
            "total": order.get("total"),
            "status": order.get("status"),
            "orderType": order.get("orderType"),
            "tableNumber": order.get("tableNumber"),
            "timestamp": order.get("timestamp"),
            "itemCount": _item_count(order),
        }
        for _, order in recent
    ]

    return {
        "totalOrders": total_orders,
        "totalRevenue": round(total_revenue, 2),
        "averageOrderValue": round(total_revenue / total_orders, 2) if total_orders else 0,
        "averageCompletionTime": round(completion, 2),
        "statusBreakdown": status_breakdown,
        "orderTypeBreakdown": type_breakdown,
        "popularItems": popular,
        "revenueByDay": dict(sorted(revenue_by_day.items())),
        "ordersByDay": dict(sorted(orders_by_day.items())),
        "ordersByHour": dict(sorted(orders_by_hour.items())),
        "recentOrders": recent_orders,
    }
