"""
Mock Document Store Implementation

Keeps documents in process memory instead of Firestore.
Used in development mode (ENV_MODE=development) and by the test suite.

Behavior:
    - Deep-copies documents on the way in and out, like a real wire hop
    - Optional simulated latency and random failure rate
    - Can be switched offline to exercise the JSON-file fallback

Version: 1.0.0
"""

import asyncio
import copy
import random
import logging
from typing import Any, Optional

from restohub.services.store.base import BaseDocumentStore, Mutation, SET, DELETE

logger = logging.getLogger(__name__)


class RemoteStoreUnavailable(ConnectionError):
    """Raised by the mock store when it is offline or a failure is simulated."""


class InMemoryDocumentStore(BaseDocumentStore):
    """
    Mock implementation of the document store.

    Attributes:
        failure_rate: Probability of a simulated failure per call (0.0-1.0)
        min_latency: Minimum response time in seconds
        max_latency: Maximum response time in seconds
        online: When False every call raises RemoteStoreUnavailable
        reads: Number of read calls served, for cache-effectiveness checks
        max_batch_writes: Optional cap on mutations per commit_batch call

    Example:
        >>> store = InMemoryDocumentStore()
        >>> store.go_offline()
        >>> await store.list_documents("orders")
        Traceback (most recent call last):
        RemoteStoreUnavailable: ...
    """

    def __init__(
        self,
        failure_rate: float = 0.0,
        min_latency: float = 0.0,
        max_latency: float = 0.0,
        max_batch_writes: Optional[int] = None,
    ):
        self.failure_rate = failure_rate
        self.max_batch_writes = max_batch_writes
        self.min_latency = min_latency
        self.max_latency = max_latency
        self.online = True
        self.reads = 0
        self.writes = 0
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}

        logger.info(
            f"InMemoryDocumentStore initialized "
            f"(failure_rate={failure_rate:.0%})"
        )

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "memory"

    def go_offline(self) -> None:
        self.online = False

    def go_online(self) -> None:
        self.online = True

    async def _round_trip(self) -> None:
        """Simulate latency and failures for one call."""
        if self.max_latency > 0:
            await asyncio.sleep(random.uniform(self.min_latency, self.max_latency))
        if not self.online:
            raise RemoteStoreUnavailable("Document store is offline")
        if self.failure_rate and random.random() < self.failure_rate:
            raise RemoteStoreUnavailable("Simulated document store failure")

    def _collection(self, name: str) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(name, {})

    async def get(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        await self._round_trip()
        self.reads += 1
        doc = self._collection(collection).get(str(doc_id))
        return copy.deepcopy(doc)

    async def list_documents(self, collection: str) -> list[dict[str, Any]]:
        await self._round_trip()
        self.reads += 1
        return [copy.deepcopy(doc) for doc in self._collection(collection).values()]

    async def query(self, collection: str, field: str, value: Any) -> list[dict[str, Any]]:
        await self._round_trip()
        self.reads += 1
        return [
            copy.deepcopy(doc)
            for doc in self._collection(collection).values()
            if doc.get(field) == value
        ]

    async def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        await self._round_trip()
        self.writes += 1
        self._collection(collection)[str(doc_id)] = copy.deepcopy(data)

    async def update(self, collection: str, doc_id: str, changes: dict[str, Any]) -> None:
        await self._round_trip()
        docs = self._collection(collection)
        if str(doc_id) not in docs:
            raise KeyError(f"No document to update: {collection}/{doc_id}")
        self.writes += 1
        docs[str(doc_id)].update(copy.deepcopy(changes))

    async def delete(self, collection: str, doc_id: str) -> None:
        await self._round_trip()
        self.writes += 1
        self._collection(collection).pop(str(doc_id), None)

    async def commit_batch(self, collection: str, mutations: list[Mutation]) -> None:
        await self._round_trip()
        if self.max_batch_writes is not None and len(mutations) > self.max_batch_writes:
            raise ValueError(
                f"Batch of {len(mutations)} writes exceeds the limit of {self.max_batch_writes}"
            )
        staged = dict(self._collection(collection))
        for mutation in mutations:
            if mutation.op == SET:
                staged[mutation.record_id] = copy.deepcopy(mutation.data)
            elif mutation.op == DELETE:
                staged.pop(mutation.record_id, None)
            else:
                raise ValueError(f"Unknown mutation op: {mutation.op}")
        self.writes += 1
        self._collections[collection] = staged
        logger.debug(f"Memory: committed {len(mutations)} mutation(s) to {collection}")

    async def health_check(self) -> bool:
        """Mock health check reflects the online flag."""
        return self.online
