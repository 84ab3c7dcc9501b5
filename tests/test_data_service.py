"""Tests for the data access façade: cache-through reads and batched writes."""

import pytest

from restohub.core.cache import TTLCache
from restohub.core.exceptions import DuplicateConflictError, NotFoundError, ValidationError
from restohub.services.data import DataService, RecordBatch


class TestRecordBatch:

    def test_update_missing_id_is_skipped(self):
        batch = RecordBatch([{"id": "a", "n": 1}])
        assert batch.update("b", lambda r: r) is None
        assert batch.skipped == 1
        assert batch.skipped_ids == ["b"]
        assert batch.mutations == []

    def test_update_keeps_id(self):
        batch = RecordBatch([{"id": "a", "n": 1}])
        updated = batch.update("a", lambda r: {"id": "changed", "n": 2})
        assert updated == {"id": "a", "n": 2}

    def test_updated_counts_distinct_records(self):
        batch = RecordBatch([{"id": "a", "n": 1}])
        batch.update("a", lambda r: {**r, "n": 2})
        batch.update("a", lambda r: {**r, "n": 3})
        assert batch.updated == 1
        assert len(batch.mutations) == 2

    def test_add_duplicate_conflicts(self):
        batch = RecordBatch([{"id": "a"}])
        with pytest.raises(DuplicateConflictError):
            batch.add({"id": "a"})

    def test_add_without_id_is_rejected(self):
        with pytest.raises(ValueError):
            RecordBatch([]).add({"name": "no id"})

    def test_batch_works_on_a_copy(self):
        source = [{"id": "a", "n": 1}]
        batch = RecordBatch(source)
        batch.update("a", lambda r: {**r, "n": 9})
        assert source == [{"id": "a", "n": 1}]

    def test_custom_id_field(self):
        batch = RecordBatch([{"itemNo": "7", "name": "Lassi"}], id_field="itemNo")
        assert batch.require(7)["name"] == "Lassi"
        with pytest.raises(NotFoundError):
            batch.require("8")


class TestCachedReads:

    @pytest.mark.asyncio
    async def test_second_read_is_served_from_cache(self, data: DataService, remote):
        first = await data.read_collection("menu")
        second = await data.read_collection("menu")

        assert first.backend == "remote"
        assert first.cached is False
        assert second.backend == "cache"
        assert second.cached is True
        assert remote.reads == 1

    @pytest.mark.asyncio
    async def test_cached_records_cannot_be_mutated_by_callers(self, data: DataService, remote):
        await remote.set("menu", "1", {"itemNo": "1", "name": "Dosa"})
        records = await data.records("menu")
        records[0]["name"] = "changed"

        assert (await data.records("menu"))[0]["name"] == "Dosa"

    @pytest.mark.asyncio
    async def test_read_again_after_ttl(self, data: DataService, remote, clock):
        await data.read_collection("availability")
        clock.advance(2 * 60)
        result = await data.read_collection("availability")

        assert result.cached is False
        assert remote.reads == 2

    @pytest.mark.asyncio
    async def test_fallback_reads_are_not_cached(self, data: DataService, remote, cache: TTLCache):
        remote.go_offline()

        result = await data.read_collection("orders")
        assert result.fallback is True
        assert len(cache) == 0

        remote.go_online()
        assert (await data.read_collection("orders")).backend == "remote"

    @pytest.mark.asyncio
    async def test_cache_can_be_disabled(self, selector, cache):
        data = DataService(selector, cache, cache_enabled=False)
        await data.read_collection("menu")
        await data.read_collection("menu")
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_unknown_collection(self, data: DataService):
        with pytest.raises(ValidationError, match="Unknown collection"):
            await data.read_collection("reservations")

    @pytest.mark.asyncio
    async def test_kind_mismatch(self, data: DataService):
        with pytest.raises(ValidationError):
            await data.read_collection("analytics")
        with pytest.raises(ValidationError):
            await data.read_document("orders")


class TestWrites:

    @pytest.mark.asyncio
    async def test_write_invalidates_cache(self, data: DataService):
        assert await data.records("menu") == []

        await data.menu.add_item({"itemNo": 1, "name": "Masala Dosa", "category": "South Indian", "price": 120})

        menu = await data.records("menu")
        assert [item["itemNo"] for item in menu] == ["1"]

    @pytest.mark.asyncio
    async def test_write_reads_fresh_not_from_cache(self, data: DataService, remote):
        await data.records("menu")
        # Changed behind the cache's back
        await remote.set("menu", "9", {"itemNo": "9", "name": "Idli"})

        result = await data.write_collection("menu", lambda batch: batch.add({"itemNo": "10", "name": "Vada"}))
        assert sorted(r["itemNo"] for r in result.records) == ["10", "9"]

    @pytest.mark.asyncio
    async def test_write_without_changes_skips_backend(self, data: DataService, remote):
        result = await data.write_collection("orders", lambda batch: batch.update("ghost", lambda r: r))

        assert result.updated == 0
        assert result.skipped == 1
        assert remote.writes == 0

    @pytest.mark.asyncio
    async def test_async_mutation_function(self, data: DataService):
        async def add(batch: RecordBatch):
            return batch.add({"id": "t1", "title": "Clean grill"})

        result = await data.write_collection("tasks", add)
        assert result.value["title"] == "Clean grill"

    @pytest.mark.asyncio
    async def test_aborted_mutation_writes_nothing(self, data: DataService, remote):
        def apply(batch: RecordBatch):
            batch.add({"itemNo": "1", "name": "Dosa"})
            raise ValidationError("nope")

        with pytest.raises(ValidationError):
            await data.write_collection("menu", apply)
        assert await remote.list_documents("menu") == []

    @pytest.mark.asyncio
    async def test_write_during_outage_stays_local(self, data: DataService, remote, local_store):
        remote.go_offline()
        result = await data.write_collection("orders", lambda batch: batch.add({"id": "o1"}))
        remote.go_online()

        assert result.fallback is True
        assert result.backend == "local"
        assert remote.writes == 0

        from restohub.services.data.registry import ORDERS
        assert local_store.read_records(ORDERS) == [{"id": "o1"}]

    @pytest.mark.asyncio
    async def test_write_result_to_dict(self, data: DataService):
        result = await data.write_collection("tasks", lambda batch: batch.skip("x"))
        assert result.to_dict() == {
            "success": True,
            "updated": 0,
            "skipped": 1,
            "skippedIds": ["x"],
            "backend": "local",
            "fallback": False,
        }


class TestDiagnostics:

    @pytest.mark.asyncio
    async def test_cache_info_and_clear(self, data: DataService):
        await data.read_collection("menu")
        info = data.cache_info()
        assert info["enabled"] is True
        assert "collection:menu" in info["entries"]

        data.clear_cache()
        assert data.cache_info()["entries"] == {}

    @pytest.mark.asyncio
    async def test_health(self, data: DataService):
        await data.read_collection("menu")
        status = await data.health()
        assert status["remote"] == "healthy"
        assert status["cacheEntries"] == 1
