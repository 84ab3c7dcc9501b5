"""
Firestore Customer Profile Store

Profiles live in the ``customers`` collection. Each profile's order history
is the ``orders`` sub-collection; migrated entries use the original order id
as document id, which is what makes re-appending a no-op.

Version: 1.0.0
"""

import logging
from typing import Any, Optional

from google.cloud.firestore_v1.base_query import FieldFilter

from restohub.core.config import get_settings
from restohub.services.profiles.base import BaseProfileStore
from restohub.services.store.firestore import firestore_client

logger = logging.getLogger(__name__)

CUSTOMERS = "customers"
HISTORY = "orders"


class FirestoreProfileStore(BaseProfileStore):

    def __init__(self, credentials_path: Optional[str] = None, project_id: Optional[str] = None):
        settings = get_settings()
        self._credentials_path = credentials_path or settings.firebase_credentials_path
        self._project_id = project_id or settings.firebase_project_id
        self._client = None

    @property
    def provider_name(self) -> str:
        return "firestore"

    def _customers(self):
        if self._client is None:
            self._client = firestore_client(self._credentials_path, self._project_id)
        return self._client.collection(CUSTOMERS)

    @staticmethod
    def _with_id(snapshot) -> dict[str, Any]:
        return {"id": snapshot.id, **(snapshot.to_dict() or {})}

    async def get_profile(self, profile_id: str) -> Optional[dict[str, Any]]:
        snapshot = await self._customers().document(profile_id).get()
        return self._with_id(snapshot) if snapshot.exists else None

    async def list_profiles(self) -> list[dict[str, Any]]:
        return [self._with_id(s) async for s in self._customers().stream()]

    async def find_by_field(self, field: str, value: Any) -> list[dict[str, Any]]:
        query = self._customers().where(filter=FieldFilter(field, "==", value))
        return [self._with_id(s) async for s in query.stream()]

    async def append_order(self, profile_id: str, order: dict[str, Any]) -> bool:
        ref = self._customers().document(profile_id).collection(HISTORY).document(
            str(order["originalOrderId"])
        )
        if (await ref.get()).exists:
            return False
        await ref.set({**order, "customerId": profile_id})
        return True

    async def order_history(self, profile_id: str) -> list[dict[str, Any]]:
        history = self._customers().document(profile_id).collection(HISTORY)
        return [self._with_id(s) async for s in history.stream()]

    async def health_check(self) -> bool:
        try:
            await self._customers().limit(1).get()
            return True
        except Exception as e:
            logger.error(f"Firestore profile store health check failed: {e}")
            return False
