"""Abstract interface for the remote shopping list store."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from .models import ItemUpdate, LoyaltyCard, TripReport


class ListBackend(ABC):
    """Remote list operations the trip engine depends on.

    Mutating calls raise BackendError on failure. No transactional guarantee
    spans more than one call.
    """

    @abstractmethod
    async def update_item(self, item_id: int, update: ItemUpdate) -> None:
        """PATCH a list item."""

    @abstractmethod
    async def delete_item(self, item_id: int) -> None:
        """DELETE a list item."""

    @abstractmethod
    async def record_trip(self, report: TripReport) -> None:
        """Submit trip analytics."""

    @abstractmethod
    async def get_loyalty_card(self, retailer_name: str) -> LoyaltyCard | None:
        """Return the user's loyalty card for a retailer, or None."""

    @abstractmethod
    async def get_list(self, list_id: str) -> dict[str, Any]:
        """Fetch a shopping list with its items."""
