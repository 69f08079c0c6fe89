"""Data models for shopping items, store segments and routes."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any


@dataclass
class Retailer:
    id: int | None
    name: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass
class ShoppingItem:
    """A single line of a shopping list as it moves through a trip.

    Negative ids are temporary and never exist on the backend.
    """

    id: int
    product_name: str
    quantity: int = 1
    unit: str = "item"
    category: str | None = None
    confidence: float = 0.0
    shelf_location: str = ""
    is_completed: bool = False
    suggested_retailer_id: int | None = None
    suggested_price: float = 0.0
    notes: str = ""
    moved_from: str | None = None
    # "list" (authoritative), "heuristic" (fast path) or "lookup" (async)
    category_source: str = "list"

    @property
    def is_temporary(self) -> bool:
        return self.id < 0

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the camelCase shape used by the list API."""
        return {
            "id": self.id,
            "productName": self.product_name,
            "quantity": self.quantity,
            "unit": self.unit,
            "category": self.category,
            "confidence": self.confidence,
            "shelfLocation": self.shelf_location,
            "isCompleted": self.is_completed,
            "suggestedRetailerId": self.suggested_retailer_id,
            "suggestedPrice": self.suggested_price,
            "notes": self.notes,
            "movedFrom": self.moved_from,
            "categorySource": self.category_source,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ShoppingItem:
        """Build an item from a list API or snapshot payload.

        Raises:
            KeyError: If ``id`` is missing.
            ValueError: If ``quantity`` is not a positive integer.
        """
        quantity = int(data.get("quantity") or 1)
        if quantity < 1:
            raise ValueError(f"quantity must be positive: {quantity}")
        category = data.get("category") or None
        return cls(
            id=int(data["id"]),
            product_name=data.get("productName") or "Unknown Product",
            quantity=quantity,
            unit=data.get("unit") or "item",
            category=category,
            confidence=float(data.get("confidence") or 0.0),
            shelf_location=data.get("shelfLocation") or "",
            is_completed=bool(data.get("isCompleted", False)),
            suggested_retailer_id=data.get("suggestedRetailerId"),
            suggested_price=float(data.get("suggestedPrice") or 0.0),
            notes=data.get("notes") or "",
            moved_from=data.get("movedFrom"),
            category_source=data.get("categorySource") or "list",
        )


@dataclass
class AisleGroup:
    """Items clustered by store section."""

    name: str
    section_label: str
    order: int
    items: list[ShoppingItem] = field(default_factory=list)

    def completion(self, completed_ids: set[int]) -> dict[str, Any]:
        """Return completed/total counts for this aisle."""
        done = sum(
            1 for i in self.items if i.id in completed_ids or i.is_completed
        )
        return {
            "completed": done,
            "total": len(self.items),
            "is_complete": done == len(self.items),
        }


@dataclass
class StoreSegment:
    """The subset of a plan's items assigned to one retailer."""

    retailer: Retailer
    items: list[ShoppingItem] = field(default_factory=list)

    @property
    def retailer_name(self) -> str:
        return self.retailer.name

    @property
    def subtotal(self) -> float:
        return round(
            sum(i.suggested_price * i.quantity for i in self.items), 2
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "retailer": self.retailer.to_dict(),
            "items": [i.to_dict() for i in self.items],
            "subtotal": self.subtotal,
        }


@dataclass(frozen=True)
class ItemLocation:
    """Where an item currently lives in a route.

    ``aisle_index`` is None for items in segments other than the active one,
    since only the active segment is laid out into aisles.
    """

    store_index: int
    aisle_index: int | None


@dataclass
class Route:
    """An ordered, traversable view over a plan's store segments.

    ``aisle_groups`` always describes ``stores[active_index]``. Every
    structural change goes through the methods below so the item location
    index stays in step with the nested lists.
    """

    stores: list[StoreSegment]
    aisle_groups: list[AisleGroup] = field(default_factory=list)
    active_index: int = 0
    estimated_minutes: int = 0
    plan_type: str = "Shopping Plan"
    _locations: dict[int, ItemLocation] = field(
        default_factory=dict, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        self.reindex()

    @property
    def is_multi_store(self) -> bool:
        return len(self.stores) > 1

    @property
    def active_store(self) -> StoreSegment:
        return self.stores[self.active_index]

    @property
    def retailer_name(self) -> str:
        return self.active_store.retailer_name

    @property
    def has_next_store(self) -> bool:
        return self.active_index < len(self.stores) - 1

    def reindex(self) -> None:
        """Rebuild the item id → location index from the nested lists."""
        locations: dict[int, ItemLocation] = {}
        for s_idx, store in enumerate(self.stores):
            for item in store.items:
                locations[item.id] = ItemLocation(s_idx, None)
        for a_idx, aisle in enumerate(self.aisle_groups):
            for item in aisle.items:
                locations[item.id] = ItemLocation(self.active_index, a_idx)
        self._locations = locations

    def locate(self, item_id: int) -> ItemLocation | None:
        return self._locations.get(item_id)

    def find_item(self, item_id: int) -> ShoppingItem | None:
        loc = self._locations.get(item_id)
        if loc is None:
            return None
        for item in self.stores[loc.store_index].items:
            if item.id == item_id:
                return item
        return None

    def all_items(self) -> list[ShoppingItem]:
        return [item for store in self.stores for item in store.items]

    def remove_item(self, item_id: int) -> ShoppingItem | None:
        """Remove an item from its segment and aisle, pruning empty aisles.

        Returns:
            The removed item, or None if it is not on the route.
        """
        loc = self._locations.get(item_id)
        if loc is None:
            return None
        store = self.stores[loc.store_index]
        removed = next(i for i in store.items if i.id == item_id)
        store.items = [i for i in store.items if i.id != item_id]
        if loc.aisle_index is not None:
            aisle = self.aisle_groups[loc.aisle_index]
            aisle.items = [i for i in aisle.items if i.id != item_id]
            if not aisle.items:
                del self.aisle_groups[loc.aisle_index]
        self.reindex()
        return removed

    def place_item(
        self, item_id: int, name: str, section_label: str, order: int
    ) -> None:
        """Move an item of the active segment into the named aisle.

        The target aisle is created in sort position if it does not exist;
        the source aisle is pruned if it becomes empty.
        """
        loc = self._locations.get(item_id)
        if loc is None or loc.aisle_index is None:
            raise KeyError(item_id)
        source = self.aisle_groups[loc.aisle_index]
        if source.name == name:
            return
        item = next(i for i in source.items if i.id == item_id)
        source.items = [i for i in source.items if i.id != item_id]
        if not source.items:
            del self.aisle_groups[loc.aisle_index]

        target = next((a for a in self.aisle_groups if a.name == name), None)
        if target is None:
            target = AisleGroup(name=name, section_label=section_label, order=order)
            self.aisle_groups.append(target)
            self.aisle_groups.sort(key=lambda a: a.order)
        target.items.append(item)
        self.reindex()

    def append_to_segment(self, store_index: int, item: ShoppingItem) -> bool:
        """Append an item to a non-active segment, deduplicated by id.

        Returns:
            False if the segment already holds an item with that id.
        """
        if store_index == self.active_index:
            raise ValueError("cannot append directly to the active segment")
        store = self.stores[store_index]
        if any(i.id == item.id for i in store.items):
            return False
        store.items.append(item)
        self.reindex()
        return True

    def clone(self) -> Route:
        """Deep copy used as a rollback snapshot."""
        return copy.deepcopy(self)
