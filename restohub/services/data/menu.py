"""
Menu and availability repositories.

The menu is stored flat, one record per item keyed by ``itemNo``; grouping by
category is a read-side view. Availability entries override ``available``
and/or ``price`` for a menu item and are created on first write.
"""

import logging
from typing import Any, Iterable, Optional

from restohub.core.exceptions import NotFoundError, ValidationError
from restohub.schemas import AvailabilityUpdate, MenuItemCreate, MenuItemUpdate
from restohub.services.data.records import RecordBatch, WriteResult, parse_model

logger = logging.getLogger(__name__)


class MenuRepository:
    collection = "menu"

    def __init__(self, data):
        self.data = data

    async def list_items(self) -> list[dict[str, Any]]:
        return await self.data.records(self.collection)

    async def get_item(self, item_no: Any) -> dict[str, Any]:
        for item in await self.list_items():
            if str(item.get("itemNo")) == str(item_no):
                return item
        raise NotFoundError(f"Menu item '{item_no}' not found")

    async def by_category(self, category: str) -> list[dict[str, Any]]:
        wanted = category.strip().lower()
        return [i for i in await self.list_items() if str(i.get("category", "")).lower() == wanted]

    async def grouped(self) -> dict[str, list[dict[str, Any]]]:
        """Items grouped by category, categories in first-seen order."""
        groups: dict[str, list[dict[str, Any]]] = {}
        for item in await self.list_items():
            groups.setdefault(item.get("category") or "Uncategorized", []).append(item)
        return groups

    async def add_item(self, payload: Any) -> dict[str, Any]:
        item = parse_model(MenuItemCreate, payload).to_record()
        result = await self.data.write_collection(self.collection, lambda batch: batch.add(item))
        logger.info(f"Menu item added: {item['itemNo']} {item['name']}")
        return result.value

    async def update_item(self, item_no: Any, payload: Any) -> dict[str, Any]:
        changes = parse_model(MenuItemUpdate, payload).changes()
        if not changes:
            raise ValidationError("No fields to update")

        def apply(batch: RecordBatch):
            batch.require(item_no)
            return batch.update(item_no, lambda current: {**current, **changes})

        return (await self.data.write_collection(self.collection, apply)).value

    async def delete_item(self, item_no: Any) -> None:
        def apply(batch: RecordBatch):
            batch.require(item_no)
            batch.delete(item_no)

        await self.data.write_collection(self.collection, apply)
        logger.info(f"Menu item deleted: {item_no}")


class AvailabilityRepository:
    collection = "availability"

    def __init__(self, data):
        self.data = data

    async def get_all(self) -> dict[str, dict[str, Any]]:
        """Availability keyed by ``itemNo``."""
        return {
            str(entry["itemNo"]): {k: v for k, v in entry.items() if k != "itemNo"}
            for entry in await self.data.records(self.collection)
            if entry.get("itemNo") is not None
        }

    @staticmethod
    def _merge(batch: RecordBatch, update: AvailabilityUpdate) -> dict[str, Any]:
        current = batch.get(update.item_no) or {"itemNo": update.item_no}
        merged = dict(current)
        if update.available is not None:
            merged["available"] = update.available
        if update.price is not None:
            merged["price"] = update.price
        return batch.put(merged)

    async def set_item(
        self,
        item_no: Any,
        available: Optional[bool] = None,
        price: Optional[Any] = None,
    ) -> dict[str, Any]:
        update = parse_model(
            AvailabilityUpdate, {"itemNo": item_no, "available": available, "price": price}
        )
        result = await self.data.write_collection(
            self.collection, lambda batch: self._merge(batch, update)
        )
        return result.value

    async def bulk_update(self, updates: Iterable[dict[str, Any]]) -> WriteResult:
        """
        Apply many availability changes in one batch.

        Entries without an ``itemNo`` are skipped and counted; any other
        invalid entry rejects the whole request.
        """
        parsed = []
        missing = []
        for position, raw in enumerate(updates):
            if not isinstance(raw, dict) or raw.get("itemNo") in (None, ""):
                missing.append(f"#{position}")
                continue
            parsed.append(parse_model(AvailabilityUpdate, raw))

        def apply(batch: RecordBatch):
            for label in missing:
                batch.skip(label)
            for update in parsed:
                self._merge(batch, update)

        return await self.data.write_collection(self.collection, apply)
