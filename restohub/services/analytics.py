"""
Analytics Aggregator

Rebuilds the analytics snapshot from the full order log. There is no
incremental path: every recompute starts from the orders, so the snapshot
cannot drift from them.

Usage:
    snapshot = build_snapshot(orders)            # pure
    result = await data.recompute_analytics()    # read orders, persist snapshot

Version: 1.0.0
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from restohub.core.exceptions import DataAccessError

logger = logging.getLogger(__name__)

MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

DEFAULT_STAFF = "Customer Orders"
POPULAR_ITEMS_LIMIT = 15


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an order timestamp into naive server-local time.

    Naive timestamps are taken to be local already; offset timestamps are
    converted and stripped, so every result compares with every other.
    Unparseable values give None.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def daypart_for(hour: int) -> Optional[str]:
    """Daypart bucket for an hour, or None for the small hours (0-5)."""
    if 6 <= hour < 12:
        return "morning"
    if 12 <= hour < 18:
        return "noon"
    if 18 <= hour < 24:
        return "night"
    return None


def _money(value: float) -> float:
    rounded = round(value, 2)
    return int(rounded) if rounded == int(rounded) else rounded


def coerce_number(value: Any, cast=float):
    """Coerce a stored number; legacy records may hold blanks or junk, which count as 0."""
    try:
        return cast(value or 0)
    except (TypeError, ValueError):
        return cast(0)


def _order_total(order: dict[str, Any]) -> float:
    return coerce_number(order.get("total"))


def _bump(bucket: dict[str, Any], staff: str, total: float) -> None:
    bucket["orders"] += 1
    bucket["revenue"] += total
    breakdown = bucket["staffBreakdown"].setdefault(staff, {"orders": 0, "revenue": 0.0})
    breakdown["orders"] += 1
    breakdown["revenue"] += total


def build_snapshot(orders: list[dict[str, Any]]) -> dict[str, Any]:
    """
    Build the analytics snapshot for an order log.

    Deterministic: the same orders always give the same snapshot, including
    ``lastUpdated``, which is the newest order timestamp rather than the wall clock.
    """
    monthly: dict[str, dict[str, float]] = {}
    staff_revenue: dict[str, float] = {}
    revenue_by_day: dict[str, float] = {}
    item_stats: dict[str, dict[str, Any]] = {}
    dayparts = {
        name: {"orders": 0, "revenue": 0.0, "staffBreakdown": {}}
        for name in ("morning", "noon", "night", "fullDay")
    }
    total_revenue = 0.0
    latest: Optional[datetime] = None
    latest_raw: Optional[str] = None

    for order in orders:
        total = _order_total(order)
        total_revenue += total
        staff = order.get("staffMember") or DEFAULT_STAFF
        staff_revenue[staff] = staff_revenue.get(staff, 0.0) + total

        when = parse_timestamp(order.get("timestamp"))
        if when is not None:
            month = MONTHS[when.month - 1]
            bucket = monthly.setdefault(month, {"orders": 0, "revenue": 0.0})
            bucket["orders"] += 1
            bucket["revenue"] += total

            day = when.date().isoformat()
            revenue_by_day[day] = revenue_by_day.get(day, 0.0) + total

            part = daypart_for(when.hour)
            if part is not None:
                _bump(dayparts[part], staff, total)

            if latest is None or when > latest:
                latest, latest_raw = when, str(order.get("timestamp"))

        _bump(dayparts["fullDay"], staff, total)

        for item in order.get("items") or []:
            if not isinstance(item, dict):
                continue
            name = item.get("name")
            if not name:
                continue
            price = coerce_number(item.get("price"))
            quantity = coerce_number(item.get("quantity"), int)
            stats = item_stats.setdefault(
                name,
                {"name": name, "totalQuantity": 0, "totalRevenue": 0.0, "orderCount": 0},
            )
            stats["totalQuantity"] += quantity
            stats["totalRevenue"] += price * quantity
            stats["orderCount"] += 1

    # sorted() is stable, so equal quantities keep encounter order
    popular = sorted(item_stats.values(), key=lambda s: s["totalQuantity"], reverse=True)
    popular_items = [
        {
            "name": s["name"],
            "totalQuantity": s["totalQuantity"],
            "totalRevenue": _money(s["totalRevenue"]),
            "orderCount": s["orderCount"],
            "averagePrice": _money(s["totalRevenue"] / s["totalQuantity"]) if s["totalQuantity"] else 0,
        }
        for s in popular[:POPULAR_ITEMS_LIMIT]
    ]

    month_order = sorted(monthly, key=MONTHS.index)
    revenue_by_month = {
        m: {"orders": monthly[m]["orders"], "revenue": _money(monthly[m]["revenue"])}
        for m in month_order
    }

    for bucket in dayparts.values():
        bucket["revenue"] = _money(bucket["revenue"])
        for breakdown in bucket["staffBreakdown"].values():
            breakdown["revenue"] = _money(breakdown["revenue"])

    total_orders = len(orders)
    return {
        "lastUpdated": latest_raw,
        "fullRecord": {
            "totalOrders": total_orders,
            "totalRevenue": _money(total_revenue),
            "orders": orders,
        },
        "ordersOverTime": [
            {"month": m, **revenue_by_month[m]} for m in month_order
        ],
        "revenueAnalytics": {
            "totalRevenue": _money(total_revenue),
            "revenueByStaff": {k: _money(v) for k, v in staff_revenue.items()},
            "revenueByMonth": revenue_by_month,
            "revenueByDay": {k: _money(v) for k, v in sorted(revenue_by_day.items())},
            "averageOrderValue": round(total_revenue / total_orders) if total_orders else 0,
        },
        "dailyAnalytics": dayparts,
        "popularItems": popular_items,
    }


@dataclass
class RecomputeResult:
    success: bool
    warning: Optional[str] = None
    snapshot: Optional[dict[str, Any]] = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": self.success}
        if self.warning:
            payload["warning"] = self.warning
        return payload


class AnalyticsService:
    """Reads the order log through the data service and persists the snapshot."""

    def __init__(self, data):
        self.data = data

    async def recompute(self) -> RecomputeResult:
        try:
            orders = (await self.data.read_collection("orders")).records
            snapshot = build_snapshot(orders)
            await self.data.replace_document("analytics", snapshot)
        except DataAccessError as e:
            logger.warning(f"⚠️ Analytics recompute failed: {e.message}")
            return RecomputeResult(success=False, warning=f"Analytics not updated: {e.message}")
        except Exception as e:
            logger.exception(f"❌ Analytics recompute crashed: {e}")
            return RecomputeResult(success=False, warning=f"Analytics not updated: {e}")

        logger.info(
            f"📊 Analytics updated: {snapshot['fullRecord']['totalOrders']} orders, "
            f"₹{snapshot['revenueAnalytics']['totalRevenue']} revenue"
        )
        return RecomputeResult(success=True, snapshot=snapshot)
