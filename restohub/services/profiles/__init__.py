"""
Customer Profile Store Factory

Usage:
    from restohub.services.profiles import get_profile_store

    profiles = get_profile_store()
    await profiles.append_order(profile_id, entry)

Environment Switching:
    - ENV_MODE=development → InMemoryProfileStore (empty)
    - ENV_MODE=staging/production → FirestoreProfileStore

Version: 1.0.0
"""

import logging
from functools import lru_cache

from restohub.core.config import get_settings
from restohub.services.profiles.base import BaseProfileStore
from restohub.services.profiles.mock import InMemoryProfileStore, ProfileWriteError

logger = logging.getLogger(__name__)


@lru_cache()
def get_profile_store() -> BaseProfileStore:
    settings = get_settings()

    if settings.is_development:
        logger.info("Profile Store: Using InMemoryProfileStore (development mode)")
        return InMemoryProfileStore()

    from restohub.services.profiles.firestore import FirestoreProfileStore

    logger.info(f"Profile Store: Using FirestoreProfileStore ({settings.env_mode.value} mode)")
    return FirestoreProfileStore()


def reset_profile_store() -> None:
    get_profile_store.cache_clear()
    logger.debug("Profile store cache cleared")


__all__ = [
    "get_profile_store",
    "reset_profile_store",
    "BaseProfileStore",
    "InMemoryProfileStore",
    "ProfileWriteError",
]
