"""
Document Store Factory

Provides a single entry point for obtaining the remote document store.
Automatically selects the in-memory mock or Firestore based on ENV_MODE.

Usage:
    from restohub.services.store import get_document_store

    store = get_document_store()
    orders = await store.list_documents("orders")

Environment Switching:
    - ENV_MODE=development → InMemoryDocumentStore
    - ENV_MODE=staging/production → FirestoreDocumentStore
    - REMOTE_STORE_ENABLED=false → no remote store at all (JSON files only)

Version: 1.0.0
"""

import logging
from functools import lru_cache
from typing import Optional

from restohub.core.config import get_settings
from restohub.services.store.base import (
    BaseDocumentStore,
    Mutation,
    apply_mutations,
)
from restohub.services.store.json_files import JsonFileStore
from restohub.services.store.mock import InMemoryDocumentStore, RemoteStoreUnavailable

logger = logging.getLogger(__name__)


@lru_cache()
def get_document_store() -> Optional[BaseDocumentStore]:
    """
    Get the configured remote document store.

    Returns:
        BaseDocumentStore, or None when the remote store is disabled
    """
    settings = get_settings()

    if not settings.remote_store_enabled:
        logger.info("Document Store: disabled (local JSON files only)")
        return None

    if settings.is_development:
        logger.info("Document Store: Using InMemoryDocumentStore (development mode)")
        return InMemoryDocumentStore()

    from restohub.services.store.firestore import FirestoreDocumentStore

    logger.info(
        f"Document Store: Using FirestoreDocumentStore "
        f"({settings.env_mode.value} mode)"
    )
    return FirestoreDocumentStore()


def reset_document_store() -> None:
    """
    Clear the cached document store instance.

    Useful for testing or when configuration changes at runtime.
    """
    get_document_store.cache_clear()
    logger.debug("Document store cache cleared")


__all__ = [
    "get_document_store",
    "reset_document_store",
    "BaseDocumentStore",
    "Mutation",
    "apply_mutations",
    "JsonFileStore",
    "InMemoryDocumentStore",
    "RemoteStoreUnavailable",
]
