"""Tests for inventory stock tracking."""

import pytest

from restohub.core.exceptions import DuplicateConflictError, NotFoundError, ValidationError
from restohub.services.data import DataService
from restohub.services.data.inventory import stock_status

from tests.conftest import inventory_payload


class TestStockStatus:

    @pytest.mark.parametrize("current,minimum,expected", [
        (0, 5, "out_of_stock"),
        (-2, 5, "out_of_stock"),
        (3, 5, "low_stock"),
        (5, 5, "low_stock"),
        (10, 5, "in_stock"),
    ])
    def test_thresholds(self, current, minimum, expected):
        assert stock_status(current, minimum) == expected


class TestInventoryItems:

    @pytest.mark.asyncio
    async def test_add_item_derives_fields(self, data: DataService):
        item = await data.inventory.add_item(inventory_payload())

        assert item["id"].startswith("inv_")
        assert item["status"] == "in_stock"
        assert item["finalPrice"] == 45
        assert item["lastRestocked"]
        assert item["expiryDate"]

    @pytest.mark.asyncio
    async def test_duplicate_name_rejected_case_insensitive(self, data: DataService):
        await data.inventory.add_item(inventory_payload())

        with pytest.raises(DuplicateConflictError):
            await data.inventory.add_item(inventory_payload(name="  sugar "))
        assert len(await data.inventory.list_items()) == 1

    @pytest.mark.asyncio
    async def test_missing_required_field(self, data: DataService):
        payload = inventory_payload()
        del payload["supplier"]
        with pytest.raises(ValidationError) as exc_info:
            await data.inventory.add_item(payload)
        assert exc_info.value.detail["errors"][0]["field"] == "supplier"

    @pytest.mark.asyncio
    async def test_update_recomputes_status(self, data: DataService):
        item = await data.inventory.add_item(inventory_payload())
        updated = await data.inventory.update_item(item["id"], {"currentStock": 2})

        assert updated["currentStock"] == 2
        assert updated["status"] == "low_stock"
        assert updated["name"] == "Sugar"

    @pytest.mark.asyncio
    async def test_rename_to_existing_name_conflicts(self, data: DataService):
        await data.inventory.add_item(inventory_payload())
        rice = await data.inventory.add_item(inventory_payload(name="Rice"))

        with pytest.raises(DuplicateConflictError):
            await data.inventory.update_item(rice["id"], {"name": "SUGAR"})

    @pytest.mark.asyncio
    async def test_update_unknown_item(self, data: DataService):
        with pytest.raises(NotFoundError):
            await data.inventory.update_item("inv_missing", {"currentStock": 1})

    @pytest.mark.asyncio
    async def test_delete(self, data: DataService):
        item = await data.inventory.add_item(inventory_payload())
        deleted = await data.inventory.delete_item(item["id"])

        assert deleted["name"] == "Sugar"
        assert await data.inventory.list_items() == []

    @pytest.mark.asyncio
    async def test_summary_lists(self, data: DataService):
        await data.inventory.add_item(inventory_payload())
        await data.inventory.add_item(inventory_payload(name="Milk", category="Dairy", unit="l"))

        summary = await data.inventory.summary()
        assert summary["categories"] == ["Dry Goods", "Dairy"]
        assert summary["suppliers"] == ["Metro Wholesale"]
        assert summary["units"] == ["kg", "l"]


class TestBulkStockAdjustment:

    @pytest.mark.asyncio
    async def test_unknown_ids_are_skipped(self, data: DataService):
        sugar = await data.inventory.add_item(inventory_payload())

        result = await data.inventory.bulk_adjust_stock([
            {"id": sugar["id"], "delta": -10},
            {"id": "inv_missing", "currentStock": 5},
        ])

        assert result.updated == 1
        assert result.skipped == 1
        assert result.skipped_ids == ["inv_missing"]
        items = await data.inventory.list_items()
        assert items[0]["currentStock"] == 10
        assert items[0]["status"] == "in_stock"

    @pytest.mark.asyncio
    async def test_set_and_delta_in_one_batch(self, data: DataService):
        sugar = await data.inventory.add_item(inventory_payload())
        rice = await data.inventory.add_item(inventory_payload(name="Rice"))

        result = await data.inventory.bulk_adjust_stock([
            {"id": sugar["id"], "currentStock": 0},
            {"id": rice["id"], "delta": -16},
        ])
        assert result.updated == 2

        by_name = {i["name"]: i for i in await data.inventory.list_items()}
        assert by_name["Sugar"]["status"] == "out_of_stock"
        assert by_name["Rice"]["currentStock"] == 4
        assert by_name["Rice"]["status"] == "low_stock"

    @pytest.mark.asyncio
    async def test_malformed_adjustment_rejects_everything(self, data: DataService):
        sugar = await data.inventory.add_item(inventory_payload())

        with pytest.raises(ValidationError):
            await data.inventory.bulk_adjust_stock([
                {"id": sugar["id"], "delta": -1},
                {"id": sugar["id"], "delta": 1, "currentStock": 3},
            ])
        assert (await data.inventory.list_items())[0]["currentStock"] == 20

    @pytest.mark.asyncio
    async def test_non_numeric_stock_rejected(self, data: DataService):
        sugar = await data.inventory.add_item(inventory_payload())
        with pytest.raises(ValidationError):
            await data.inventory.bulk_adjust_stock([{"id": sugar["id"], "currentStock": "abc"}])
