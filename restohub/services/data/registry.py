"""
Collection Registry

Static configuration for every persisted collection: where it lives on disk,
which field is its id, how long reads stay cached and whether it is a record
list or a single document.

Version: 1.0.0
"""

from dataclasses import dataclass, field
from typing import Any, Callable

from restohub.core.exceptions import ValidationError
from restohub.services.backend_selector import DOCUMENT, RECORDS


def empty_analytics() -> dict[str, Any]:
    """Snapshot shape for an empty order log."""
    empty_daypart = {"orders": 0, "revenue": 0, "staffBreakdown": {}}
    return {
        "lastUpdated": None,
        "fullRecord": {"totalOrders": 0, "totalRevenue": 0, "orders": []},
        "ordersOverTime": [],
        "revenueAnalytics": {
            "totalRevenue": 0,
            "revenueByStaff": {},
            "revenueByMonth": {},
            "revenueByDay": {},
            "averageOrderValue": 0,
        },
        "dailyAnalytics": {
            "morning": dict(empty_daypart),
            "noon": dict(empty_daypart),
            "night": dict(empty_daypart),
            "fullDay": dict(empty_daypart),
        },
        "popularItems": [],
    }


@dataclass(frozen=True)
class CollectionSpec:
    """
    Attributes:
        name: Collection name, also the remote collection id
        filename: JSON file under the data directory
        key: Top-level key holding the payload inside the file
        id_field: Record field used as document id
        ttl_minutes: Cache lifetime for reads
        kind: ``records`` (list of records) or ``document`` (one object)
    """
    name: str
    filename: str
    key: str
    id_field: str = "id"
    ttl_minutes: int = 5
    kind: str = RECORDS
    default_factory: Callable[[], Any] = field(default=list, compare=False, repr=False)

    @property
    def cache_key(self) -> str:
        return f"collection:{self.name}"

    def default_payload(self) -> Any:
        return self.default_factory()


MENU = CollectionSpec("menu", "menu.json", "menu", id_field="itemNo", ttl_minutes=15)
AVAILABILITY = CollectionSpec(
    "availability", "menu-availability.json", "items", id_field="itemNo", ttl_minutes=2,
)
ORDERS = CollectionSpec("orders", "orders.json", "orders", ttl_minutes=5)
INVENTORY = CollectionSpec("inventory", "inventory.json", "inventory", ttl_minutes=5)
COMBOS = CollectionSpec("combos", "combos.json", "combos", ttl_minutes=15)
OFFERS = CollectionSpec("offers", "offers.json", "offers", ttl_minutes=5)
SPECIALS = CollectionSpec("specials", "todays-special.json", "specials", ttl_minutes=10)
TASKS = CollectionSpec("tasks", "tasks.json", "tasks", ttl_minutes=2)
STAFF = CollectionSpec("staff", "staff-credentials.json", "users", ttl_minutes=15)
ANALYTICS = CollectionSpec(
    "analytics", "analytics_data.json", "analytics",
    ttl_minutes=10, kind=DOCUMENT, default_factory=empty_analytics,
)

COLLECTIONS: dict[str, CollectionSpec] = {
    spec.name: spec
    for spec in (
        MENU, AVAILABILITY, ORDERS, INVENTORY, COMBOS,
        OFFERS, SPECIALS, TASKS, STAFF, ANALYTICS,
    )
}


def get_collection(name: str) -> CollectionSpec:
    """Look up a collection by name; unknown names are a caller error."""
    try:
        return COLLECTIONS[name]
    except KeyError:
        raise ValidationError(
            f"Unknown collection '{name}'",
            detail={"known": sorted(COLLECTIONS)},
        )
