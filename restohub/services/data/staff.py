"""
Staff task board and staff credential repositories.
"""

import logging
from typing import Any, Iterable

from restohub.core.exceptions import DuplicateConflictError, ValidationError
from restohub.schemas import StaffCredential, TaskCreate, TaskStatus, TaskUpdate
from restohub.services.data.records import RecordBatch, new_id, now_iso, parse_model

logger = logging.getLogger(__name__)


class TaskRepository:
    collection = "tasks"

    def __init__(self, data):
        self.data = data

    async def list_tasks(self) -> list[dict[str, Any]]:
        """Newest first."""
        tasks = await self.data.records(self.collection)
        return sorted(tasks, key=lambda t: t.get("createdAt") or "", reverse=True)

    async def create_task(self, payload: Any) -> dict[str, Any]:
        record = parse_model(TaskCreate, payload).to_record()
        record["id"] = new_id("task")
        record["createdAt"] = record["updatedAt"] = now_iso()
        result = await self.data.write_collection(
            self.collection, lambda batch: batch.add(record, first=True)
        )
        return result.value

    async def update_task(self, task_id: str, payload: Any) -> dict[str, Any]:
        changes = parse_model(TaskUpdate, payload).changes()
        if not changes:
            raise ValidationError("No fields to update")

        def apply(batch: RecordBatch):
            batch.require(task_id)
            return batch.update(task_id, lambda t: {**t, **changes, "updatedAt": now_iso()})

        return (await self.data.write_collection(self.collection, apply)).value

    async def update_status(self, task_id: str, status: Any) -> dict[str, Any]:
        try:
            new_status = TaskStatus(status).value
        except ValueError:
            raise ValidationError(f"Invalid task status '{status}'")
        return await self.update_task(task_id, {"status": new_status})

    async def delete_task(self, task_id: str) -> None:
        def apply(batch: RecordBatch):
            batch.require(task_id)
            batch.delete(task_id)

        await self.data.write_collection(self.collection, apply)


class StaffRepository:
    collection = "staff"

    def __init__(self, data):
        self.data = data

    async def load_credentials(self) -> dict[str, list[dict[str, Any]]]:
        return {"users": await self.data.records(self.collection)}

    async def save_credentials(self, users: Iterable[Any]) -> int:
        """
        Replace the whole credential set in one batch.

        Users keep their id when the username already exists. Returns the
        number of users saved.
        """
        if users is None or isinstance(users, (str, dict)):
            raise ValidationError("users must be a list")
        parsed = [parse_model(StaffCredential, u) for u in users]

        seen = set()
        for user in parsed:
            key = user.username.strip().lower()
            if key in seen:
                raise DuplicateConflictError(f"Duplicate username '{user.username}'")
            seen.add(key)

        def apply(batch: RecordBatch):
            by_username = {
                str(r.get("username", "")).strip().lower(): r for r in batch.records
            }
            keep = set()
            for user in parsed:
                record = user.to_record()
                existing = by_username.get(user.username.strip().lower())
                record["id"] = record.get("id") or (existing or {}).get("id") or new_id("staff")
                keep.add(str(record["id"]))
                batch.put(record)
            for record in list(batch.records):
                if str(record.get("id")) not in keep:
                    batch.delete(record.get("id"))
            return len(parsed)

        saved = (await self.data.write_collection(self.collection, apply)).value
        logger.info(f"🔐 Staff credentials saved ({saved} users)")
        return saved
