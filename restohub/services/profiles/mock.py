"""
In-Memory Customer Profile Store

Used in development mode and by the test suite. Profiles can be seeded at
construction; individual profiles can be made to fail on write to exercise
per-order error handling in the migrator.

Version: 1.0.0
"""

import copy
import logging
from typing import Any, Iterable, Optional

from restohub.services.profiles.base import BaseProfileStore

logger = logging.getLogger(__name__)


class ProfileWriteError(RuntimeError):
    """Simulated failure writing to a profile's order history."""


class InMemoryProfileStore(BaseProfileStore):
    """
    Example:
        >>> store = InMemoryProfileStore([{"id": "cust_1", "displayName": "Asha Rao"}])
        >>> await store.append_order("cust_1", {"originalOrderId": "order_1", "total": 250})
        True
    """

    def __init__(
        self,
        profiles: Optional[Iterable[dict[str, Any]]] = None,
        failing_profiles: Iterable[str] = (),
    ):
        self._profiles: dict[str, dict[str, Any]] = {}
        self._history: dict[str, list[dict[str, Any]]] = {}
        self.failing_profiles = set(failing_profiles)
        for profile in profiles or []:
            self.add_profile(profile)

        logger.info(f"InMemoryProfileStore initialized ({len(self._profiles)} profiles)")

    @property
    def provider_name(self) -> str:
        return "memory"

    def add_profile(self, profile: dict[str, Any]) -> None:
        self._profiles[profile["id"]] = copy.deepcopy(profile)
        self._history.setdefault(profile["id"], [])

    async def get_profile(self, profile_id: str) -> Optional[dict[str, Any]]:
        profile = self._profiles.get(profile_id)
        return copy.deepcopy(profile) if profile else None

    async def list_profiles(self) -> list[dict[str, Any]]:
        return [copy.deepcopy(p) for p in self._profiles.values()]

    async def find_by_field(self, field: str, value: Any) -> list[dict[str, Any]]:
        return [copy.deepcopy(p) for p in self._profiles.values() if p.get(field) == value]

    async def append_order(self, profile_id: str, order: dict[str, Any]) -> bool:
        if profile_id in self.failing_profiles:
            raise ProfileWriteError(f"Simulated write failure for profile {profile_id}")
        if profile_id not in self._profiles:
            raise KeyError(f"Profile {profile_id} not found")

        history = self._history[profile_id]
        original_id = order["originalOrderId"]
        if any(entry.get("originalOrderId") == original_id for entry in history):
            logger.debug(f"Order {original_id} already in history of {profile_id}")
            return False

        history.append(copy.deepcopy(order))
        return True

    async def order_history(self, profile_id: str) -> list[dict[str, Any]]:
        return copy.deepcopy(self._history.get(profile_id, []))

    async def health_check(self) -> bool:
        return True
