"""
Combo, offer and today's-special repositories.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from restohub.core.exceptions import DuplicateConflictError, ValidationError
from restohub.schemas import (
    ComboCreate,
    ComboUpdate,
    OfferCreate,
    OfferItemType,
    OfferUpdate,
    TodaysSpecialCreate,
    TodaysSpecialUpdate,
)
from restohub.services.data.records import RecordBatch, new_id, now_iso, parse_model

logger = logging.getLogger(__name__)


def _check_unique_name(batch: RecordBatch, name: str, label: str, exclude_id: Any = None) -> None:
    wanted = name.strip().lower()
    clash = batch.find(
        lambda r: str(r.get("name", "")).strip().lower() == wanted
        and str(r.get("id")) != str(exclude_id)
    )
    if clash is not None:
        raise DuplicateConflictError(f"{label} named '{clash['name']}' already exists")


# =============================================================================
# COMBOS
# =============================================================================

def _reprice_combo(combo: dict[str, Any]) -> dict[str, Any]:
    original = float(combo.get("originalTotal") or 0)
    price = float(combo.get("comboPrice") or 0)
    if original <= 0 or price >= original:
        raise ValidationError("Combo price must be less than original total")
    combo["discountAmount"] = round(original - price, 2)
    combo["discountPercentage"] = round((original - price) / original * 100)
    return combo


class ComboRepository:
    collection = "combos"

    def __init__(self, data):
        self.data = data

    async def list_combos(self, active_only: bool = False) -> list[dict[str, Any]]:
        combos = await self.data.records(self.collection)
        return [c for c in combos if c.get("isActive")] if active_only else combos

    async def add_combo(self, payload: Any) -> dict[str, Any]:
        combo = parse_model(ComboCreate, payload)
        record = combo.to_record()
        record["id"] = new_id("combo")
        record["createdAt"] = record["updatedAt"] = now_iso()

        def apply(batch: RecordBatch):
            _check_unique_name(batch, combo.name, "Combo")
            return batch.add(record)

        result = await self.data.write_collection(self.collection, apply)
        logger.info(f"🍱 Combo created: {record['name']} (₹{record['comboPrice']})")
        return result.value

    async def update_combo(self, combo_id: str, payload: Any) -> dict[str, Any]:
        changes = parse_model(ComboUpdate, payload).changes()
        if not changes:
            raise ValidationError("No fields to update")

        def apply(batch: RecordBatch):
            batch.require(combo_id)
            if changes.get("name"):
                _check_unique_name(batch, changes["name"], "Combo", exclude_id=combo_id)
            return batch.update(
                combo_id, lambda current: _reprice_combo({**current, **changes, "updatedAt": now_iso()})
            )

        return (await self.data.write_collection(self.collection, apply)).value

    async def delete_combo(self, combo_id: str) -> None:
        def apply(batch: RecordBatch):
            batch.require(combo_id)
            batch.delete(combo_id)

        await self.data.write_collection(self.collection, apply)


# =============================================================================
# OFFERS
# =============================================================================

def _offer_in_window(offer: dict[str, Any], now: datetime) -> bool:
    for field, inside in (("startDate", lambda d: d <= now), ("endDate", lambda d: now <= d)):
        value = offer.get(field)
        if not value:
            continue
        try:
            when = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            continue
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        if not inside(when):
            return False
    return True


def apply_offer(price: float, offer: Optional[dict[str, Any]]) -> dict[str, Any]:
    """
    Price shown to the customer for an item, given its offer (if any).

    >>> apply_offer(200, None)["finalPrice"]
    200
    """
    if not offer:
        return {
            "finalPrice": price,
            "hasOffer": False,
            "discountPercentage": 0,
            "originalPrice": price,
        }
    return {
        "finalPrice": offer["offerPrice"],
        "hasOffer": True,
        "discountPercentage": offer.get("discountPercentage", 0),
        "originalPrice": offer.get("originalPrice", price),
    }


class OfferRepository:
    collection = "offers"

    def __init__(self, data):
        self.data = data

    async def list_offers(self) -> list[dict[str, Any]]:
        return await self.data.records(self.collection)

    async def active_offers(self, now: Optional[datetime] = None) -> list[dict[str, Any]]:
        now = now or datetime.now(timezone.utc)
        return [
            o for o in await self.list_offers()
            if o.get("isActive") and _offer_in_window(o, now)
        ]

    async def offer_for_item(
        self,
        item_id: Any,
        item_type: str = OfferItemType.MENU.value,
    ) -> Optional[dict[str, Any]]:
        for offer in await self.active_offers():
            if str(offer.get("itemId")) == str(item_id) and offer.get("itemType") == item_type:
                return offer
        return None

    async def add_offer(self, payload: Any) -> dict[str, Any]:
        """Create an offer; any previous offer for the same item is replaced."""
        offer = parse_model(OfferCreate, payload)
        record = offer.to_record()
        record["id"] = new_id("offer")
        record["createdAt"] = record["updatedAt"] = now_iso()

        def apply(batch: RecordBatch):
            for existing in list(batch.records):
                if str(existing.get("itemId")) == record["itemId"] and existing.get("itemType") == record["itemType"]:
                    batch.delete(existing["id"])
            return batch.add(record)

        result = await self.data.write_collection(self.collection, apply)
        logger.info(
            f"🏷️ Offer for {record['itemName']}: ₹{record['originalPrice']} → ₹{record['offerPrice']}"
        )
        return result.value

    async def update_offer(self, offer_id: str, payload: Any) -> dict[str, Any]:
        changes = parse_model(OfferUpdate, payload).changes()
        if not changes:
            raise ValidationError("No fields to update")

        def change(current: dict[str, Any]) -> dict[str, Any]:
            updated = {**current, **changes, "updatedAt": now_iso()}
            original = float(updated["originalPrice"])
            price = float(updated["offerPrice"])
            if price >= original:
                raise ValidationError("Offer price must be less than original price")
            updated["discountPercentage"] = round((original - price) / original * 100)
            return updated

        def apply(batch: RecordBatch):
            batch.require(offer_id)
            return batch.update(offer_id, change)

        return (await self.data.write_collection(self.collection, apply)).value

    async def delete_offer(self, offer_id: str) -> None:
        def apply(batch: RecordBatch):
            batch.require(offer_id)
            batch.delete(offer_id)

        await self.data.write_collection(self.collection, apply)


# =============================================================================
# TODAY'S SPECIAL
# =============================================================================

class SpecialRepository:
    collection = "specials"

    def __init__(self, data):
        self.data = data

    async def list_specials(self, active_only: bool = False) -> list[dict[str, Any]]:
        specials = await self.data.records(self.collection)
        return [s for s in specials if s.get("isActive")] if active_only else specials

    async def add_special(self, payload: Any) -> dict[str, Any]:
        record = parse_model(TodaysSpecialCreate, payload).to_record()
        record["id"] = new_id("special")
        result = await self.data.write_collection(self.collection, lambda batch: batch.add(record))
        return result.value

    async def update_special(self, special_id: str, payload: Any) -> dict[str, Any]:
        changes = parse_model(TodaysSpecialUpdate, payload).changes()
        if not changes:
            raise ValidationError("No fields to update")

        def apply(batch: RecordBatch):
            batch.require(special_id)
            return batch.update(special_id, lambda current: {**current, **changes})

        return (await self.data.write_collection(self.collection, apply)).value

    async def delete_special(self, special_id: str) -> None:
        def apply(batch: RecordBatch):
            batch.require(special_id)
            batch.delete(special_id)

        await self.data.write_collection(self.collection, apply)
