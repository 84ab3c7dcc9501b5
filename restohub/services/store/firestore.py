"""
Firestore Document Store Implementation

Production implementation using the firebase-admin async Firestore client.
Used when ENV_MODE=production or ENV_MODE=staging.

Requirements:
    - FIREBASE_CREDENTIALS_PATH pointing to a service-account JSON file, or
      application default credentials plus FIREBASE_PROJECT_ID
    - Firestore enabled on the Firebase project

The client is created lazily on first use, so a misconfigured project shows
up as a failed call (which the backend selector turns into a JSON-file
fallback) rather than as a crash at startup.

Version: 1.0.0
"""

import logging
from typing import Any, Optional

import firebase_admin
from firebase_admin import credentials, firestore_async
from google.cloud.firestore_v1.base_query import FieldFilter

from restohub.core.config import get_settings
from restohub.services.store.base import BaseDocumentStore, Mutation, SET, DELETE

logger = logging.getLogger(__name__)

# Firestore rejects write batches above this size
MAX_BATCH_WRITES = 500

APP_NAME = "restohub"


def firestore_client(credentials_path: Optional[str] = None, project_id: Optional[str] = None):
    """
    Async Firestore client for the shared "restohub" Firebase app.

    The app is initialized on the first call and reused afterwards.
    """
    try:
        app = firebase_admin.get_app(APP_NAME)
    except ValueError:
        cred = (
            credentials.Certificate(credentials_path)
            if credentials_path
            else credentials.ApplicationDefault()
        )
        options = {"projectId": project_id} if project_id else None
        app = firebase_admin.initialize_app(cred, options, name=APP_NAME)
        logger.info("Firebase Admin SDK initialized")

    return firestore_async.client(app)


class FirestoreDocumentStore(BaseDocumentStore):
    """
    Production Firestore document store.

    Example:
        >>> store = FirestoreDocumentStore()
        >>> await store.query("customers", "phoneNumber", "+919876543210")
        [{'id': 'cust_1', 'displayName': 'Asha Rao', ...}]
    """

    max_batch_writes = MAX_BATCH_WRITES

    def __init__(
        self,
        credentials_path: Optional[str] = None,
        project_id: Optional[str] = None,
    ):
        settings = get_settings()
        self._credentials_path = credentials_path or settings.firebase_credentials_path
        self._project_id = project_id or settings.firebase_project_id
        self._client = None

        logger.info("FirestoreDocumentStore configured")

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "firestore"

    def _get_client(self):
        """Initialize the Firebase app and async client on first use."""
        if self._client is None:
            self._client = firestore_client(self._credentials_path, self._project_id)
        return self._client

    def _doc_ref(self, collection: str, doc_id: str):
        return self._get_client().collection(collection).document(str(doc_id))

    async def get(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        snapshot = await self._doc_ref(collection, doc_id).get()
        return snapshot.to_dict() if snapshot.exists else None

    async def list_documents(self, collection: str) -> list[dict[str, Any]]:
        stream = self._get_client().collection(collection).stream()
        return [snapshot.to_dict() async for snapshot in stream]

    async def query(self, collection: str, field: str, value: Any) -> list[dict[str, Any]]:
        query = self._get_client().collection(collection).where(
            filter=FieldFilter(field, "==", value)
        )
        return [snapshot.to_dict() async for snapshot in query.stream()]

    async def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        await self._doc_ref(collection, doc_id).set(data)

    async def update(self, collection: str, doc_id: str, changes: dict[str, Any]) -> None:
        await self._doc_ref(collection, doc_id).update(changes)

    async def delete(self, collection: str, doc_id: str) -> None:
        await self._doc_ref(collection, doc_id).delete()

    async def commit_batch(self, collection: str, mutations: list[Mutation]) -> None:
        if len(mutations) > MAX_BATCH_WRITES:
            raise ValueError(
                f"Batch of {len(mutations)} writes exceeds the Firestore limit "
                f"of {MAX_BATCH_WRITES}"
            )

        batch = self._get_client().batch()
        for mutation in mutations:
            ref = self._doc_ref(collection, mutation.record_id)
            if mutation.op == SET:
                batch.set(ref, mutation.data)
            elif mutation.op == DELETE:
                batch.delete(ref)
            else:
                raise ValueError(f"Unknown mutation op: {mutation.op}")

        await batch.commit()
        logger.debug(f"Firestore: committed {len(mutations)} mutation(s) to {collection}")

    async def health_check(self) -> bool:
        try:
            await self._doc_ref("_health", "ping").get()
            return True
        except Exception as e:
            logger.error(f"Firestore health check failed: {e}")
            return False
