"""Request and response shapes for the Backend List API."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ItemUpdate:
    """Partial update for a list item. Unset fields are not sent."""

    is_completed: bool | None = None
    quantity: int | None = None
    notes: str | None = None
    suggested_retailer_id: int | None = None
    category: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload = {
            "isCompleted": self.is_completed,
            "quantity": self.quantity,
            "notes": self.notes,
            "suggestedRetailerId": self.suggested_retailer_id,
            "category": self.category,
        }
        return {k: v for k, v in payload.items() if v is not None}


@dataclass
class UncompletedItem:
    id: int
    product_name: str
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "productName": self.product_name, "reason": self.reason}


@dataclass
class MovedItem:
    id: int
    product_name: str
    from_store: str
    to_store: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "productName": self.product_name,
            "fromStore": self.from_store,
            "toStore": self.to_store,
        }


@dataclass
class TripReport:
    """Analytics record posted when a store segment or a whole trip ends."""

    list_id: str
    retailer_name: str
    plan_type: str
    total_stores: int
    start_time: str
    end_time: str
    completed_item_ids: list[int] = field(default_factory=list)
    uncompleted_items: list[UncompletedItem] = field(default_factory=list)
    moved_items: list[MovedItem] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {
            "listId": self.list_id,
            "completedItemIds": list(self.completed_item_ids),
            "uncompletedItems": [i.to_dict() for i in self.uncompleted_items],
            "movedItems": [i.to_dict() for i in self.moved_items],
            "startTime": self.start_time,
            "endTime": self.end_time,
            "retailerName": self.retailer_name,
            "planType": self.plan_type,
            "totalStores": self.total_stores,
        }


@dataclass(frozen=True)
class LoyaltyCard:
    retailer_name: str
    card_number: str = ""
    barcode_data: str = ""
    member_id: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any], retailer_name: str) -> LoyaltyCard:
        return cls(
            retailer_name=data.get("retailerName") or retailer_name,
            card_number=data.get("cardNumber") or "",
            barcode_data=data.get("barcodeData") or "",
            member_id=data.get("memberId") or "",
        )
