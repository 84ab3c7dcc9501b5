"""Tests for remote/local routing and the JSON-file fallback."""

import json

import pytest

from restohub.core.exceptions import PersistenceError, ValidationError
from restohub.services.backend_selector import DOCUMENT_ID, LOCAL, REMOTE, BackendSelector
from restohub.services.data.registry import ANALYTICS, INVENTORY, ORDERS
from restohub.services.store import InMemoryDocumentStore, JsonFileStore, Mutation


class TestJsonFileStore:

    def test_missing_file_is_created_with_default(self, local_store: JsonFileStore, data_dir):
        assert local_store.ensure_file(INVENTORY) is True

        content = json.loads((data_dir / "inventory.json").read_text(encoding="utf-8"))
        assert content["inventory"] == []
        assert "lastUpdated" in content

    def test_file_initialization_happens_once(self, local_store: JsonFileStore, data_dir):
        local_store.ensure_file(INVENTORY)
        local_store.apply(INVENTORY, [Mutation.set("inv_1", {"id": "inv_1", "name": "Rice"})])

        assert local_store.ensure_file(INVENTORY) is False
        assert local_store.read_records(INVENTORY) == [{"id": "inv_1", "name": "Rice"}]

    def test_document_default_payload(self, local_store: JsonFileStore):
        snapshot = local_store.read_payload(ANALYTICS)
        assert snapshot["fullRecord"]["totalOrders"] == 0
        assert snapshot["lastUpdated"] is None

    def test_apply_set_and_delete(self, local_store: JsonFileStore):
        local_store.apply(INVENTORY, [
            Mutation.set("a", {"id": "a", "n": 1}),
            Mutation.set("b", {"id": "b", "n": 2}),
        ])
        local_store.apply(INVENTORY, [
            Mutation.set("a", {"id": "a", "n": 10}),
            Mutation.delete("b"),
            Mutation.delete("missing"),
        ])
        assert local_store.read_records(INVENTORY) == [{"id": "a", "n": 10}]

    def test_corrupt_file_raises_persistence_error(self, local_store: JsonFileStore, data_dir):
        data_dir.mkdir(parents=True)
        (data_dir / "inventory.json").write_text("{not json", encoding="utf-8")

        with pytest.raises(PersistenceError):
            local_store.read_records(INVENTORY)

    def test_missing_key_raises_persistence_error(self, local_store: JsonFileStore, data_dir):
        data_dir.mkdir(parents=True)
        (data_dir / "inventory.json").write_text('{"items": []}', encoding="utf-8")

        with pytest.raises(PersistenceError, match="inventory"):
            local_store.read_records(INVENTORY)


class TestRouting:

    @pytest.mark.asyncio
    async def test_remote_collection_reads_remote(self, selector: BackendSelector, remote):
        await remote.set("orders", "o1", {"id": "o1", "total": 100})

        result = await selector.read(ORDERS)
        assert result.backend == REMOTE
        assert result.fallback is False
        assert result.data == [{"id": "o1", "total": 100}]

    @pytest.mark.asyncio
    async def test_local_collection_never_touches_remote(self, selector: BackendSelector, remote):
        result = await selector.read(INVENTORY)
        assert result.backend == LOCAL
        assert result.fallback is False
        assert remote.reads == 0

    @pytest.mark.asyncio
    async def test_no_remote_store_means_local(self, local_store: JsonFileStore):
        selector = BackendSelector(local_store, None, ["orders"])
        result = await selector.read(ORDERS)
        assert result.backend == LOCAL
        assert result.fallback is False

    @pytest.mark.asyncio
    async def test_remote_write_is_one_batch(self, selector: BackendSelector, remote):
        await selector.write(ORDERS, [
            Mutation.set("o1", {"id": "o1"}),
            Mutation.set("o2", {"id": "o2"}),
        ])
        assert remote.writes == 1
        assert len(await remote.list_documents("orders")) == 2

    @pytest.mark.asyncio
    async def test_force_local_skips_remote(self, selector: BackendSelector, remote, local_store):
        result = await selector.write(ORDERS, [Mutation.set("o1", {"id": "o1"})], force_local=True)

        assert result.backend == LOCAL
        assert result.fallback is True
        assert remote.writes == 0
        assert local_store.read_records(ORDERS) == [{"id": "o1"}]

    @pytest.mark.asyncio
    async def test_remote_document_uses_fixed_id(self, local_store: JsonFileStore, remote):
        selector = BackendSelector(local_store, remote, ["analytics"])

        empty = await selector.read(ANALYTICS)
        assert empty.backend == REMOTE
        assert empty.data["fullRecord"]["totalOrders"] == 0

        await selector.replace(ANALYTICS, {"lastUpdated": "x"})
        assert await remote.get("analytics", DOCUMENT_ID) == {"lastUpdated": "x"}

    @pytest.mark.asyncio
    async def test_wrong_kind_is_rejected(self, selector: BackendSelector):
        with pytest.raises(ValueError):
            await selector.write(ANALYTICS, [])
        with pytest.raises(ValueError):
            await selector.replace(ORDERS, {})


class TestFallback:

    @pytest.mark.asyncio
    async def test_read_falls_back_when_remote_offline(self, selector: BackendSelector, remote):
        remote.go_offline()

        result = await selector.read(ORDERS)
        assert result.backend == LOCAL
        assert result.fallback is True
        assert result.data == []

    @pytest.mark.asyncio
    async def test_write_in_fallback_is_visible_locally(self, selector, remote, local_store):
        remote.go_offline()

        written = await selector.write(ORDERS, [Mutation.set("o1", {"id": "o1", "total": 50})])
        assert written.fallback is True

        remote.go_online()
        assert local_store.read_records(ORDERS) == [{"id": "o1", "total": 50}]
        assert await remote.list_documents("orders") == []

    @pytest.mark.asyncio
    async def test_simulated_failures_fall_back(self, local_store: JsonFileStore):
        flaky = InMemoryDocumentStore(failure_rate=1.0)
        selector = BackendSelector(local_store, flaky, ["orders"])

        result = await selector.read(ORDERS)
        assert result.fallback is True

    @pytest.mark.asyncio
    async def test_both_backends_failing_raises(self, selector, remote, data_dir):
        remote.go_offline()
        data_dir.mkdir(parents=True)
        (data_dir / "orders.json").write_text("garbage", encoding="utf-8")

        with pytest.raises(PersistenceError):
            await selector.read(ORDERS)

    @pytest.mark.asyncio
    async def test_health(self, selector: BackendSelector, remote):
        assert (await selector.health())["remote"] == "healthy"
        remote.go_offline()
        assert (await selector.health())["remote"] == "unhealthy"

        no_remote = BackendSelector(selector.local)
        assert (await no_remote.health())["remote"] == "disabled"


class TestBatchLimit:
    """Batches larger than the remote store accepts are refused, never diverted."""

    @pytest.mark.asyncio
    async def test_oversized_batch_is_rejected(self, local_store: JsonFileStore):
        capped = InMemoryDocumentStore(max_batch_writes=2)
        selector = BackendSelector(local_store, capped, ["orders"])
        mutations = [Mutation.set(f"o{i}", {"id": f"o{i}", "total": 10}) for i in range(3)]

        with pytest.raises(ValidationError) as exc_info:
            await selector.write(ORDERS, mutations)

        assert exc_info.value.detail["limit"] == 2
        assert await capped.list_documents("orders") == []
        assert local_store.read_records(ORDERS) == []

    @pytest.mark.asyncio
    async def test_batch_at_limit_goes_remote(self, local_store: JsonFileStore):
        capped = InMemoryDocumentStore(max_batch_writes=2)
        selector = BackendSelector(local_store, capped, ["orders"])
        mutations = [Mutation.set(f"o{i}", {"id": f"o{i}", "total": 10}) for i in range(2)]

        written = await selector.write(ORDERS, mutations)
        assert written.backend == REMOTE
        assert len(await capped.list_documents("orders")) == 2

    @pytest.mark.asyncio
    async def test_local_collections_ignore_remote_limit(self, local_store: JsonFileStore):
        capped = InMemoryDocumentStore(max_batch_writes=1)
        selector = BackendSelector(local_store, capped, ["orders"])
        mutations = [Mutation.set(f"inv_{i}", {"id": f"inv_{i}", "name": "Rice"}) for i in range(3)]

        written = await selector.write(INVENTORY, mutations)
        assert written.backend == LOCAL
        assert len(local_store.read_records(INVENTORY)) == 3
