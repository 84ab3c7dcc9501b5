"""
Inventory repository.

``status`` is always derived from ``currentStock`` and ``minimumStock`` at
write time. Item names are unique regardless of case.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable

from restohub.core.exceptions import DuplicateConflictError, ValidationError
from restohub.schemas import InventoryItemCreate, InventoryItemUpdate, StockAdjustment, StockStatus
from restohub.services.data.records import RecordBatch, WriteResult, new_id, now_iso, parse_model

logger = logging.getLogger(__name__)


def stock_status(current: float, minimum: float) -> str:
    """
    >>> stock_status(0, 5), stock_status(3, 5), stock_status(10, 5)
    ('out_of_stock', 'low_stock', 'in_stock')
    """
    if current <= 0:
        return StockStatus.OUT_OF_STOCK.value
    if current <= minimum:
        return StockStatus.LOW_STOCK.value
    return StockStatus.IN_STOCK.value


def _with_status(item: dict[str, Any]) -> dict[str, Any]:
    item["status"] = stock_status(
        float(item.get("currentStock") or 0), float(item.get("minimumStock") or 0)
    )
    return item


def _distinct(items: list[dict[str, Any]], field: str) -> list[str]:
    seen: list[str] = []
    for item in items:
        value = item.get(field)
        if value and value not in seen:
            seen.append(value)
    return seen


class InventoryRepository:
    collection = "inventory"

    def __init__(self, data):
        self.data = data

    async def list_items(self) -> list[dict[str, Any]]:
        return await self.data.records(self.collection)

    async def summary(self) -> dict[str, Any]:
        """Items plus the category, supplier and unit lists derived from them."""
        items = await self.list_items()
        return {
            "inventory": items,
            "categories": _distinct(items, "category"),
            "suppliers": _distinct(items, "supplier"),
            "units": _distinct(items, "unit"),
        }

    @staticmethod
    def _check_unique_name(batch: RecordBatch, name: str, exclude_id: Any = None) -> None:
        wanted = name.strip().lower()
        clash = batch.find(
            lambda r: str(r.get("name", "")).strip().lower() == wanted
            and str(r.get("id")) != str(exclude_id)
        )
        if clash is not None:
            raise DuplicateConflictError(
                f"Inventory item named '{clash['name']}' already exists",
                detail={"id": clash.get("id")},
            )

    async def add_item(self, payload: Any) -> dict[str, Any]:
        item = parse_model(InventoryItemCreate, payload)
        record = item.to_record()
        record["id"] = new_id("inv")
        record.setdefault("lastRestocked", now_iso())
        record.setdefault(
            "expiryDate", (datetime.now(timezone.utc) + timedelta(days=365)).isoformat()
        )
        record.setdefault("finalPrice", item.unit_price)
        record["updatedAt"] = now_iso()
        _with_status(record)

        def apply(batch: RecordBatch):
            self._check_unique_name(batch, item.name)
            return batch.add(record)

        result = await self.data.write_collection(self.collection, apply)
        logger.info(f"📦 Inventory item added: {record['name']} ({record['status']})")
        return result.value

    async def update_item(self, item_id: str, payload: Any) -> dict[str, Any]:
        changes = parse_model(InventoryItemUpdate, payload).changes()
        if not changes:
            raise ValidationError("No fields to update")

        def apply(batch: RecordBatch):
            batch.require(item_id)
            if changes.get("name"):
                self._check_unique_name(batch, changes["name"], exclude_id=item_id)
            return batch.update(
                item_id, lambda current: _with_status({**current, **changes, "updatedAt": now_iso()})
            )

        return (await self.data.write_collection(self.collection, apply)).value

    async def delete_item(self, item_id: str) -> dict[str, Any]:
        def apply(batch: RecordBatch):
            item = batch.require(item_id)
            batch.delete(item_id)
            return item

        deleted = (await self.data.write_collection(self.collection, apply)).value
        logger.info(f"Inventory item deleted: {deleted.get('name')}")
        return deleted

    async def bulk_adjust_stock(self, adjustments: Iterable[Any]) -> WriteResult:
        """
        Apply stock changes to many items in one batch.

        Unknown ids are skipped and counted. A malformed adjustment rejects
        the request before anything is written.
        """
        parsed = [parse_model(StockAdjustment, raw) for raw in adjustments]

        def adjust(adj: StockAdjustment):
            def change(current: dict[str, Any]) -> dict[str, Any]:
                if adj.delta is not None:
                    current["currentStock"] = float(current.get("currentStock") or 0) + adj.delta
                else:
                    current["currentStock"] = adj.current_stock
                if adj.delta is None or adj.delta > 0:
                    current["lastRestocked"] = now_iso()
                current["updatedAt"] = now_iso()
                return _with_status(current)
            return change

        def apply(batch: RecordBatch):
            for adj in parsed:
                batch.update(adj.id, adjust(adj))

        return await self.data.write_collection(self.collection, apply)
