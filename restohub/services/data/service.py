"""
Data Access Façade

Every collection read goes: cache → (miss) backend selector → cache fill.
Every write reads the collection fresh from the backend, lets the caller's
mutation function plan changes on a RecordBatch, applies them in one batch
and invalidates the cache entry before and after.

Usage:
    data = build_data_service(get_settings(), TTLCache())
    menu = await data.menu.list_items()
    result = await data.write_collection("inventory", restock)

Version: 1.0.0
"""

import copy
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from restohub.core.cache import MISS, TTLCache
from restohub.core.config import RecomputeMode, Settings
from restohub.core.exceptions import ValidationError
from restohub.services.analytics import AnalyticsService, RecomputeResult
from restohub.services.backend_selector import DOCUMENT, RECORDS, BackendResult, BackendSelector
from restohub.services.data.inventory import InventoryRepository
from restohub.services.data.menu import AvailabilityRepository, MenuRepository
from restohub.services.data.orders import OrderRepository
from restohub.services.data.promotions import ComboRepository, OfferRepository, SpecialRepository
from restohub.services.data.records import CollectionRead, RecordBatch, WriteResult
from restohub.services.data.registry import CollectionSpec, get_collection
from restohub.services.data.staff import StaffRepository, TaskRepository
from restohub.services.store.base import BaseDocumentStore
from restohub.services.store.json_files import JsonFileStore

logger = logging.getLogger(__name__)

CACHED = "cache"

MutationFn = Callable[[RecordBatch], Union[Any, Awaitable[Any]]]


class DataService:
    """
    Uniform access to every collection, plus the typed repositories.

    The cache is constructed by the caller and passed in; the service never
    reaches for a module-level instance.
    """

    def __init__(
        self,
        selector: BackendSelector,
        cache: TTLCache,
        cache_enabled: bool = True,
        recompute_mode: RecomputeMode = RecomputeMode.SYNC,
        analytics_scheduler: Optional[Callable[[], Any]] = None,
    ):
        self.selector = selector
        self.cache = cache
        self.cache_enabled = cache_enabled
        self.recompute_mode = recompute_mode
        self.analytics_scheduler = analytics_scheduler

        self.analytics = AnalyticsService(self)
        self.menu = MenuRepository(self)
        self.availability = AvailabilityRepository(self)
        self.orders = OrderRepository(self)
        self.inventory = InventoryRepository(self)
        self.combos = ComboRepository(self)
        self.offers = OfferRepository(self)
        self.specials = SpecialRepository(self)
        self.tasks = TaskRepository(self)
        self.staff = StaffRepository(self)

    # =========================================================================
    # READS
    # =========================================================================

    async def _read(self, spec: CollectionSpec) -> CollectionRead:
        if self.cache_enabled:
            cached = self.cache.get(spec.cache_key)
            if cached is not MISS:
                return CollectionRead(copy.deepcopy(cached), backend=CACHED, cached=True)

        result = await self.selector.read(spec)

        # Fallback data is not cached so the next read retries the remote store
        if self.cache_enabled and not result.fallback:
            self.cache.set(spec.cache_key, copy.deepcopy(result.data), spec.ttl_minutes)

        return CollectionRead(result.data, backend=result.backend, fallback=result.fallback)

    async def read_collection(self, name: str) -> CollectionRead:
        """Read a record collection (cached)."""
        spec = get_collection(name)
        if spec.kind != RECORDS:
            raise ValidationError(f"'{name}' is a document collection")
        return await self._read(spec)

    async def records(self, name: str) -> list[dict[str, Any]]:
        return (await self.read_collection(name)).records

    async def read_document(self, name: str) -> CollectionRead:
        spec = get_collection(name)
        if spec.kind != DOCUMENT:
            raise ValidationError(f"'{name}' is a record collection")
        return await self._read(spec)

    # =========================================================================
    # WRITES
    # =========================================================================

    async def write_collection(self, name: str, mutation_fn: MutationFn) -> WriteResult:
        """
        Read-modify-write one record collection as a single batch.

        The mutation function may raise a DataAccessError to abort the whole
        write; ids it could not find are skipped and counted instead.
        """
        spec = get_collection(name)
        if spec.kind != RECORDS:
            raise ValidationError(f"'{name}' is a document collection")

        current = await self.selector.read(spec)
        batch = RecordBatch(current.data, spec.id_field)

        value = mutation_fn(batch)
        if inspect.isawaitable(value):
            value = await value

        if not batch.mutations:
            return WriteResult(
                success=True,
                updated=0,
                skipped=batch.skipped,
                skipped_ids=batch.skipped_ids,
                backend=current.backend,
                fallback=current.fallback,
                records=batch.records,
                value=value,
            )

        self.cache.invalidate(spec.cache_key)
        # Keep the write on the backend the plan was read from
        written = await self.selector.write(spec, batch.mutations, force_local=current.fallback)
        self.cache.invalidate(spec.cache_key)

        if batch.skipped:
            logger.warning(
                f"⚠️ {name}: {batch.updated} record(s) written, "
                f"{batch.skipped} skipped ({', '.join(batch.skipped_ids)})"
            )
        else:
            logger.info(f"✅ {name}: {batch.updated} record(s) written via {written.backend}")

        return WriteResult(
            success=True,
            updated=batch.updated,
            skipped=batch.skipped,
            skipped_ids=batch.skipped_ids,
            backend=written.backend,
            fallback=written.fallback,
            records=batch.records,
            value=value,
        )

    async def replace_document(self, name: str, document: Any) -> BackendResult:
        spec = get_collection(name)
        self.cache.invalidate(spec.cache_key)
        result = await self.selector.replace(spec, document)
        self.cache.invalidate(spec.cache_key)
        return result

    # =========================================================================
    # ANALYTICS
    # =========================================================================

    async def get_analytics(self) -> dict[str, Any]:
        return (await self.read_document("analytics")).records

    async def recompute_analytics(self) -> RecomputeResult:
        return await self.analytics.recompute()

    async def after_order_mutation(self) -> Optional[str]:
        """
        Refresh analytics after the order log changed.

        Returns a warning message when the refresh failed; the order change
        itself has already been written and stays.
        """
        if self.recompute_mode == RecomputeMode.DEFERRED and self.analytics_scheduler:
            try:
                self.analytics_scheduler()
            except Exception as e:
                logger.warning(f"⚠️ Could not queue analytics recompute: {e}")
                return f"Analytics recompute not queued: {e}"
            return None

        result = await self.analytics.recompute()
        return result.warning

    # =========================================================================
    # DIAGNOSTICS
    # =========================================================================

    def cache_info(self) -> dict[str, Any]:
        return {
            "enabled": self.cache_enabled,
            "entries": self.cache.get_info(),
        }

    def clear_cache(self) -> None:
        self.cache.invalidate_all()

    async def health(self) -> dict[str, Any]:
        status = await self.selector.health()
        status["cacheEntries"] = len(self.cache)
        return status


def build_data_service(
    settings: Settings,
    cache: Optional[TTLCache] = None,
    remote: Optional[BaseDocumentStore] = None,
    analytics_scheduler: Optional[Callable[[], Any]] = None,
) -> DataService:
    """
    Wire a DataService from settings.

    When ``remote`` is not given and the remote store is enabled, the
    configured document store from the factory is used.
    """
    if remote is None and settings.remote_store_enabled:
        from restohub.services.store import get_document_store
        remote = get_document_store()

    remote_collections = settings.remote_collections_list if settings.remote_store_enabled else []
    selector = BackendSelector(
        local=JsonFileStore(settings.data_directory, settings.file_lock_timeout),
        remote=remote,
        remote_collections=remote_collections,
    )

    logger.info(
        f"Data service ready: data dir '{settings.data_directory}', "
        f"remote={'on' if remote else 'off'} for {remote_collections or 'no collections'}"
    )
    return DataService(
        selector=selector,
        cache=cache if cache is not None else TTLCache(),
        cache_enabled=settings.cache_enabled,
        recompute_mode=settings.analytics_recompute_mode,
        analytics_scheduler=analytics_scheduler,
    )
