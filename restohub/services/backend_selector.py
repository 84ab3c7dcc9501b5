"""
Backend Selector

Routes every collection read/write to exactly one backend:

    1. The remote document store, when one is configured and the collection
       is marked remote-preferred.
    2. The local JSON file, otherwise, or when the remote call raised.

A fallback re-runs the whole operation against the JSON file; results are
tagged so callers can tell. If the JSON file fails as well, PersistenceError
is raised and nothing is retried at this layer.

Version: 1.0.0
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Optional

from restohub.core.exceptions import PersistenceError, ValidationError
from restohub.services.store.base import BaseDocumentStore, Mutation
from restohub.services.store.json_files import JsonFileStore

logger = logging.getLogger(__name__)

REMOTE = "remote"
LOCAL = "local"

RECORDS = "records"
DOCUMENT = "document"

# Document id used for single-document collections in the remote store
DOCUMENT_ID = "current"


@dataclass
class BackendResult:
    """
    Outcome of one routed operation.

    Attributes:
        data: Records (list) or document (dict) for reads; None for writes
        backend: "remote" or "local"
        fallback: True if the remote path failed and local served the call
    """
    data: Any
    backend: str
    fallback: bool = False


class BackendSelector:
    """
    Uniform read/write over the remote store and the JSON files.

    Collection specs must provide ``name``, ``kind`` (records/document),
    ``id_field`` and what JsonFileStore needs.

    Example:
        >>> selector = BackendSelector(JsonFileStore("jsonfiles"), remote, ["orders"])
        >>> result = await selector.read(ORDERS)
        >>> result.backend, result.fallback
        ('remote', False)
    """

    def __init__(
        self,
        local: JsonFileStore,
        remote: Optional[BaseDocumentStore] = None,
        remote_collections: Iterable[str] = (),
    ):
        self.local = local
        self.remote = remote
        self.remote_collections = set(remote_collections)

    def uses_remote(self, spec) -> bool:
        return self.remote is not None and spec.name in self.remote_collections

    # =========================================================================
    # PUBLIC OPERATIONS
    # =========================================================================

    async def read(self, spec) -> BackendResult:
        """Read a whole collection (records list, or the single document)."""
        if spec.kind == DOCUMENT:
            return await self._route(
                spec, "read",
                remote_op=lambda: self._remote_read_document(spec),
                local_op=lambda: self.local.read_payload(spec),
            )
        return await self._route(
            spec, "read",
            remote_op=lambda: self.remote.list_documents(spec.name),
            local_op=lambda: self.local.read_records(spec),
        )

    async def write(
        self,
        spec,
        mutations: list[Mutation],
        force_local: bool = False,
    ) -> BackendResult:
        """
        Apply record mutations in one atomic batch (remote) or one file write (local).

        Args:
            spec: Collection spec (records kind)
            mutations: Changes to apply together
            force_local: Skip the remote path, used when the read that planned
                these mutations was itself served by the JSON file

        Raises:
            ValidationError: If the batch is larger than the remote store accepts.
                Oversized batches never fall back to the JSON file.
        """
        if spec.kind != RECORDS:
            raise ValueError(f"{spec.name} is a document collection; use replace()")

        limit = self.remote.max_batch_writes if self.remote is not None else None
        if self.uses_remote(spec) and not force_local and limit is not None and len(mutations) > limit:
            raise ValidationError(
                f"Batch of {len(mutations)} changes to '{spec.name}' exceeds the "
                f"{self.remote.provider_name} limit of {limit}",
                detail={"collection": spec.name, "mutations": len(mutations), "limit": limit},
            )

        async def remote_op():
            await self.remote.commit_batch(spec.name, mutations)

        def local_op():
            self.local.apply(spec, mutations)

        return await self._route(
            spec, "write", remote_op=remote_op, local_op=local_op, force_local=force_local,
        )

    async def replace(self, spec, document: Any) -> BackendResult:
        """Overwrite a single-document collection."""
        if spec.kind != DOCUMENT:
            raise ValueError(f"{spec.name} is a record collection; use write()")

        async def remote_op():
            await self.remote.set(spec.name, DOCUMENT_ID, document)

        return await self._route(
            spec, "write",
            remote_op=remote_op,
            local_op=lambda: self.local.write_payload(spec, document),
        )

    async def health(self) -> dict[str, str]:
        status = {"local": "healthy" if self.local.data_directory.exists() else "uninitialized"}
        if self.remote is None:
            status["remote"] = "disabled"
        else:
            healthy = await self.remote.health_check()
            status["remote"] = "healthy" if healthy else "unhealthy"
        return status

    # =========================================================================
    # ROUTING
    # =========================================================================

    async def _remote_read_document(self, spec) -> Any:
        document = await self.remote.get(spec.name, DOCUMENT_ID)
        return spec.default_payload() if document is None else document

    async def _route(
        self,
        spec,
        action: str,
        remote_op: Callable[[], Awaitable[Any]],
        local_op: Callable[[], Any],
        force_local: bool = False,
    ) -> BackendResult:
        fallback = False

        if self.uses_remote(spec):
            if force_local:
                fallback = True
            else:
                try:
                    data = await remote_op()
                    logger.debug(f"Remote {action} served '{spec.name}'")
                    return BackendResult(data=data, backend=REMOTE)
                except Exception as e:
                    logger.warning(
                        f"⚠️ Remote {action} failed for '{spec.name}', "
                        f"falling back to local JSON: {e}"
                    )
                    fallback = True

        try:
            data = local_op()
        except PersistenceError as e:
            logger.error(f"Local {action} failed for '{spec.name}': {e.message}")
            raise

        return BackendResult(data=data, backend=LOCAL, fallback=fallback)
