"""Normalization of incoming plan payloads.

A trip can be started from three payload shapes:

- a single-store plan: ``{"stores": [{"retailer": {...}, "items": [...]}]}``
- a multi-store plan: the same with two or more stores
- a bare item list: ``{"items": [...], "retailerName": "..."}``

They are resolved once, here, into one of three plan variants so the rest of
the engine never inspects raw payloads.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .models import Retailer, ShoppingItem, StoreSegment

if TYPE_CHECKING:
    from .models import Route

DEFAULT_RETAILER = "Store"


@dataclass
class SingleStorePlan:
    store: StoreSegment
    plan_type: str = "Shopping Plan"


@dataclass
class MultiStorePlan:
    stores: list[StoreSegment]
    plan_type: str = "Shopping Plan"


@dataclass
class ItemListPlan:
    items: list[ShoppingItem]
    retailer_name: str = DEFAULT_RETAILER
    retailer_id: int | None = None
    plan_type: str = "Shopping List"


TripPlan = SingleStorePlan | MultiStorePlan | ItemListPlan


@dataclass
class _TempIds:
    """Hands out temporary negative ids for items that arrive without one."""

    counter: itertools.count = field(default_factory=lambda: itertools.count(1))

    def next(self) -> int:
        return -next(self.counter)


def _parse_items(raw_items: list[dict], temp_ids: _TempIds) -> list[ShoppingItem]:
    items: list[ShoppingItem] = []
    seen: set[int] = set()
    for raw in raw_items:
        data = dict(raw)
        if data.get("id") is None:
            data["id"] = temp_ids.next()
        item = ShoppingItem.from_dict(data)
        # An item belongs to one segment only
        if item.id in seen:
            continue
        seen.add(item.id)
        items.append(item)
    return items


def _parse_store(
    raw: dict, temp_ids: _TempIds, default_retailer: str
) -> StoreSegment:
    retailer = raw.get("retailer") or {}
    name = retailer.get("name") or raw.get("retailerName") or default_retailer
    retailer_id = retailer.get("id", raw.get("suggestedRetailerId"))
    return StoreSegment(
        retailer=Retailer(id=retailer_id, name=name),
        items=_parse_items(raw.get("items") or [], temp_ids),
    )


def parse_plan(
    payload: dict[str, Any], default_retailer: str = DEFAULT_RETAILER
) -> TripPlan:
    """Resolve a raw plan payload into one of the plan variants.

    Raises:
        ValueError: If the payload carries neither stores nor items, or an
            item is malformed.
    """
    if not isinstance(payload, dict):
        raise ValueError(f"plan payload must be an object, got {type(payload).__name__}")

    temp_ids = _TempIds()
    plan_type = payload.get("planType") or "Shopping Plan"
    raw_stores = payload.get("stores") or []

    try:
        if raw_stores:
            stores = [_parse_store(s, temp_ids, default_retailer) for s in raw_stores]
            # Migration never copies, so drop ids already claimed by an
            # earlier segment.
            claimed: set[int] = set()
            for store in stores:
                store.items = [i for i in store.items if i.id not in claimed]
                claimed.update(i.id for i in store.items)
            if len(stores) == 1:
                return SingleStorePlan(store=stores[0], plan_type=plan_type)
            return MultiStorePlan(stores=stores, plan_type=plan_type)

        if "items" in payload:
            return ItemListPlan(
                items=_parse_items(payload.get("items") or [], temp_ids),
                retailer_name=payload.get("retailerName") or default_retailer,
                retailer_id=payload.get("retailerId"),
                plan_type=payload.get("planType") or "Shopping List",
            )
    except (KeyError, TypeError) as e:
        raise ValueError(f"malformed plan payload: {e}") from e

    raise ValueError("plan payload has neither stores nor items")


def plan_segments(plan: TripPlan) -> list[StoreSegment]:
    """Return the store segments a plan describes, in visiting order."""
    match plan:
        case SingleStorePlan(store=store):
            return [store]
        case MultiStorePlan(stores=stores):
            return list(stores)
        case ItemListPlan(items=items, retailer_name=name, retailer_id=rid):
            return [StoreSegment(retailer=Retailer(id=rid, name=name), items=items)]
    raise TypeError(f"unknown plan variant: {plan!r}")


def plan_from_list(
    list_payload: dict[str, Any], default_retailer: str = DEFAULT_RETAILER
) -> ItemListPlan:
    """Build a plan from a shopping list when no plan was supplied.

    Completed list items are left out.
    """
    raw_items = [
        i for i in (list_payload.get("items") or []) if not i.get("isCompleted")
    ]
    try:
        items = _parse_items(raw_items, _TempIds())
    except (KeyError, TypeError) as e:
        raise ValueError(f"malformed shopping list: {e}") from e
    return ItemListPlan(items=items, retailer_name=default_retailer)


def plan_from_route(route: Route) -> dict[str, Any]:
    """Serialize the live route back into a plan payload.

    The payload reflects migrations and removals made during the trip, so a
    resumed session starts from the current item placement rather than the
    plan the trip began with.
    """
    return {
        "planType": route.plan_type,
        "stores": [store.to_dict() for store in route.stores],
    }
