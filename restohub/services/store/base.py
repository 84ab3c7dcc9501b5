"""
Document Store Abstract Base Class

Defines the interface contract for the remote document store.
Both InMemoryDocumentStore and FirestoreDocumentStore implement these methods.

Records are plain dicts. Within a collection each record is one document
whose id is the record's id field, so a whole collection can be read back
as a list of records.

Version: 1.0.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional


SET = "set"
DELETE = "delete"


@dataclass
class Mutation:
    """
    One record-level change inside a collection write.

    Attributes:
        op: ``set`` (full-record upsert) or ``delete``
        record_id: Id of the affected record/document
        data: The complete record for ``set``; ``None`` for ``delete``
    """
    op: str
    record_id: str
    data: Optional[dict[str, Any]] = field(default=None)

    @classmethod
    def set(cls, record_id: str, data: dict[str, Any]) -> "Mutation":
        return cls(SET, str(record_id), data)

    @classmethod
    def delete(cls, record_id: str) -> "Mutation":
        return cls(DELETE, str(record_id))


def apply_mutations(
    records: list[dict[str, Any]],
    mutations: list[Mutation],
    id_field: str,
) -> list[dict[str, Any]]:
    """
    Apply mutations to a record list and return the new list.

    ``set`` replaces the record with the same id in place or appends it.
    ``delete`` of an absent id is a no-op.
    """
    result = list(records)
    index = {str(r.get(id_field)): i for i, r in enumerate(result)}

    for mutation in mutations:
        position = index.get(mutation.record_id)
        if mutation.op == SET:
            if position is None:
                index[mutation.record_id] = len(result)
                result.append(mutation.data)
            else:
                result[position] = mutation.data
        elif mutation.op == DELETE:
            if position is not None:
                del result[position]
                index = {str(r.get(id_field)): i for i, r in enumerate(result)}
        else:
            raise ValueError(f"Unknown mutation op: {mutation.op}")

    return result


class BaseDocumentStore(ABC):
    """
    Abstract base class for remote document stores.

    Implementations raise ordinary exceptions on failure; the backend
    selector decides what a failure means (fall back to the JSON files).

    Example:
        >>> store = get_document_store()
        >>> await store.set("orders", "order_1", {"id": "order_1", "total": 250})
        >>> await store.get("orders", "order_1")
        {'id': 'order_1', 'total': 250}
    """

    # Largest batch commit_batch accepts; None means unbounded
    max_batch_writes: Optional[int] = None

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """
        Return the name of the store provider.

        Returns:
            str: Provider name (e.g., "memory", "firestore")
        """
        pass

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        """Fetch one document, or None if it does not exist."""
        pass

    @abstractmethod
    async def list_documents(self, collection: str) -> list[dict[str, Any]]:
        """Fetch every document in a collection."""
        pass

    @abstractmethod
    async def query(self, collection: str, field: str, value: Any) -> list[dict[str, Any]]:
        """Fetch documents whose ``field`` equals ``value``."""
        pass

    @abstractmethod
    async def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """Create or overwrite one document."""
        pass

    @abstractmethod
    async def update(self, collection: str, doc_id: str, changes: dict[str, Any]) -> None:
        """
        Merge ``changes`` into an existing document.

        Raises:
            KeyError: If the document does not exist
        """
        pass

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> None:
        """Delete one document. Deleting a missing document is not an error."""
        pass

    @abstractmethod
    async def commit_batch(self, collection: str, mutations: list[Mutation]) -> None:
        """
        Apply several mutations to one collection atomically.

        Either every mutation is applied or none is.
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Verify connectivity to the store.

        Returns:
            bool: True if the store is operational
        """
        pass
