"""
Record batches and façade result types.

A RecordBatch is what a write_collection mutation function works on: a
private copy of the collection plus the list of mutations it produced.
Missing ids are skipped and counted instead of aborting the batch.
"""

import copy
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Type, TypeVar

import pydantic

from restohub.core.exceptions import DuplicateConflictError, NotFoundError, ValidationError
from restohub.services.store.base import Mutation

M = TypeVar("M", bound=pydantic.BaseModel)


def parse_model(model: Type[M], payload: Any) -> M:
    """Validate a payload, turning pydantic errors into a façade ValidationError."""
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except pydantic.ValidationError as e:
        errors = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ]
        summary = "; ".join(f"{err['field'] or 'body'}: {err['message']}" for err in errors)
        raise ValidationError(f"Invalid {model.__name__}: {summary}", detail={"errors": errors})


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_id(prefix: str) -> str:
    """Time-ordered id, e.g. ``order_1718000000000_3f9c2a1b7``."""
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


@dataclass
class CollectionRead:
    records: Any
    backend: str
    fallback: bool = False
    cached: bool = False


@dataclass
class WriteResult:
    success: bool
    updated: int
    skipped: int
    backend: str
    fallback: bool = False
    skipped_ids: list[str] = field(default_factory=list)
    records: list[dict[str, Any]] = field(default_factory=list, repr=False)
    value: Any = field(default=None, repr=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "updated": self.updated,
            "skipped": self.skipped,
            "skippedIds": self.skipped_ids,
            "backend": self.backend,
            "fallback": self.fallback,
        }


class RecordBatch:
    """
    Working copy of a record collection for one write.

    Example:
        >>> def restock(batch):
        ...     for adj in adjustments:
        ...         batch.update(adj["id"], lambda r: {**r, "currentStock": adj["qty"]})
        >>> result = await data.write_collection("inventory", restock)
        >>> result.updated, result.skipped
        (3, 1)
    """

    def __init__(self, records: list[dict[str, Any]], id_field: str = "id"):
        self.id_field = id_field
        self._records = copy.deepcopy(records)
        self.mutations: list[Mutation] = []
        self.skipped_ids: list[str] = []

    @property
    def records(self) -> list[dict[str, Any]]:
        return self._records

    @property
    def skipped(self) -> int:
        return len(self.skipped_ids)

    def _index_of(self, record_id: Any) -> Optional[int]:
        key = str(record_id)
        for i, record in enumerate(self._records):
            if str(record.get(self.id_field)) == key:
                return i
        return None

    def get(self, record_id: Any) -> Optional[dict[str, Any]]:
        position = self._index_of(record_id)
        return None if position is None else self._records[position]

    def require(self, record_id: Any) -> dict[str, Any]:
        record = self.get(record_id)
        if record is None:
            raise NotFoundError(f"No record with {self.id_field} '{record_id}'")
        return record

    def find(self, predicate: Callable[[dict[str, Any]], bool]) -> Optional[dict[str, Any]]:
        return next((r for r in self._records if predicate(r)), None)

    def add(self, record: dict[str, Any], first: bool = False) -> dict[str, Any]:
        """Insert a new record; an existing id is a conflict."""
        record_id = record.get(self.id_field)
        if record_id is None or str(record_id) == "":
            raise ValueError(f"Record is missing its '{self.id_field}' field")
        if self._index_of(record_id) is not None:
            raise DuplicateConflictError(
                f"A record with {self.id_field} '{record_id}' already exists"
            )
        if first:
            self._records.insert(0, record)
        else:
            self._records.append(record)
        self.mutations.append(Mutation.set(record_id, record))
        return record

    def put(self, record: dict[str, Any]) -> dict[str, Any]:
        """Upsert a full record."""
        record_id = record[self.id_field]
        position = self._index_of(record_id)
        if position is None:
            self._records.append(record)
        else:
            self._records[position] = record
        self.mutations.append(Mutation.set(record_id, record))
        return record

    def update(
        self,
        record_id: Any,
        change: Callable[[dict[str, Any]], dict[str, Any]],
    ) -> Optional[dict[str, Any]]:
        """
        Replace a record with ``change(current)``.

        Returns the new record, or None when the id is unknown (counted as skipped).
        """
        position = self._index_of(record_id)
        if position is None:
            self.skip(record_id)
            return None
        updated = change(copy.deepcopy(self._records[position]))
        updated[self.id_field] = self._records[position][self.id_field]
        self._records[position] = updated
        self.mutations.append(Mutation.set(record_id, updated))
        return updated

    def delete(self, record_id: Any) -> bool:
        position = self._index_of(record_id)
        if position is None:
            self.skip(record_id)
            return False
        del self._records[position]
        self.mutations.append(Mutation.delete(record_id))
        return True

    def skip(self, record_id: Any) -> None:
        self.skipped_ids.append(str(record_id))

    @property
    def updated(self) -> int:
        return len({m.record_id for m in self.mutations})
