"""Backend List API: interface, payload models and HTTP client."""

from .base import ListBackend
from .client import ListAPIClient
from .models import ItemUpdate, LoyaltyCard, MovedItem, TripReport, UncompletedItem

__all__ = [
    "ItemUpdate",
    "ListAPIClient",
    "ListBackend",
    "LoyaltyCard",
    "MovedItem",
    "TripReport",
    "UncompletedItem",
]
