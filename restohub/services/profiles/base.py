"""
Customer Profile Store Abstract Base Class

Defines the interface contract for customer profile stores.
Both InMemoryProfileStore and FirestoreProfileStore implement these methods.

A profile owns an order history. Orders appended there carry the id of the
order they were copied from as ``originalOrderId``; appending the same
original order twice leaves a single history entry.

Version: 1.0.0
"""

from abc import ABC, abstractmethod
from typing import Any, Optional


class BaseProfileStore(ABC):
    """
    Abstract base class for customer profile stores.

    All implementations must provide these methods to ensure
    consistent behavior across development and production environments.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of the profile provider (e.g., 'memory', 'firestore')."""
        pass

    @abstractmethod
    async def get_profile(self, profile_id: str) -> Optional[dict[str, Any]]:
        """Look up one profile by id; None when absent."""
        pass

    @abstractmethod
    async def list_profiles(self) -> list[dict[str, Any]]:
        """Return every profile, each including its ``id``."""
        pass

    @abstractmethod
    async def find_by_field(self, field: str, value: Any) -> list[dict[str, Any]]:
        """Profiles whose top-level ``field`` equals ``value``."""
        pass

    @abstractmethod
    async def append_order(self, profile_id: str, order: dict[str, Any]) -> bool:
        """
        Add an order to a profile's history.

        Args:
            profile_id: Target profile
            order: History entry; must contain ``originalOrderId``

        Returns:
            bool: True if added, False if the original order was already there
        """
        pass

    @abstractmethod
    async def order_history(self, profile_id: str) -> list[dict[str, Any]]:
        pass

    async def migrated_order_count(self, profile_id: str) -> int:
        """Number of history entries that came from migrated orders."""
        history = await self.order_history(profile_id)
        return sum(1 for entry in history if entry.get("originalOrderId"))

    @abstractmethod
    async def health_check(self) -> bool:
        pass
