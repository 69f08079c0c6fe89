"""Resolution of items that could not be picked up as planned."""

from __future__ import annotations

import enum
import logging
from typing import TYPE_CHECKING

from .backend import ItemUpdate, MovedItem, UncompletedItem
from .errors import BackendError, InvalidTransitionError
from .models import Route, ShoppingItem
from .phases import Shopping
from .route import shelf_location

if TYPE_CHECKING:
    from .machine import TripStateMachine

logger = logging.getLogger(__name__)

LEAVE_NOTE = "Left for future trip due to out-of-stock"


class DispositionAction(enum.Enum):
    FOUND = "found"
    LEAVE_FOR_FUTURE_TRIP = "leave_for_future_trip"
    REMOVE_FROM_LIST = "remove_from_list"
    MIGRATE_TO_NEXT_STORE = "migrate_to_next_store"


def migration_note(from_store: str, to_store: str) -> str:
    return f"Moved from {from_store} - not available. Trying at {to_store}"


def migrate_item(route: Route, item_id: int, target_index: int) -> MovedItem:
    """Move an item from the active segment to another segment in place.

    The item leaves its aisle and segment and is appended to the target
    segment with an audit note and a shelf hint for that store.

    Raises:
        InvalidTransitionError: If the item is not in the active segment or
            the target segment does not exist.
    """
    if not 0 <= target_index < len(route.stores) or target_index == route.active_index:
        raise InvalidTransitionError(f"no store segment {target_index} to move to")
    loc = route.locate(item_id)
    if loc is None or loc.store_index != route.active_index:
        raise InvalidTransitionError(f"item {item_id} is not in the current store")

    from_store = route.retailer_name
    target = route.stores[target_index]
    item = route.remove_item(item_id)
    item.is_completed = False
    item.suggested_retailer_id = target.retailer.id
    item.notes = migration_note(from_store, target.retailer_name)
    item.moved_from = from_store
    item.shelf_location = shelf_location(item.product_name, item.category)
    route.append_to_segment(target_index, item)
    return MovedItem(
        id=item.id,
        product_name=item.product_name,
        from_store=from_store,
        to_store=target.retailer_name,
    )


def migration_update(item: ShoppingItem) -> ItemUpdate:
    return ItemUpdate(
        is_completed=False,
        suggested_retailer_id=item.suggested_retailer_id,
        notes=item.notes,
    )


class DispositionHandler:
    """Applies found / defer / remove / migrate decisions to a running trip."""

    def __init__(self, machine: TripStateMachine) -> None:
        self._machine = machine

    async def dispose(self, item_id: int, action: DispositionAction) -> bool:
        """Resolve an item in the current store.

        Returns:
            True if the decision was applied; False if it was rejected or a
            backend call failed. Failures are reported as notices.
        """
        m = self._machine
        if not isinstance(m.phase, Shopping):
            m.notify("Not shopping", "Items can only be resolved while shopping.")
            return False
        loc = m.route.locate(item_id)
        if loc is None or loc.store_index != m.route.active_index:
            m.notify("Item not found", f"Item {item_id} is not in this store.")
            return False

        logger.info("Disposition %s for item %d", action.value, item_id)
        match action:
            case DispositionAction.FOUND:
                return await m.set_completed(item_id, True)
            case DispositionAction.LEAVE_FOR_FUTURE_TRIP:
                return await self._leave(item_id)
            case DispositionAction.REMOVE_FROM_LIST:
                return await self._remove(item_id)
            case DispositionAction.MIGRATE_TO_NEXT_STORE:
                return await self._migrate(item_id)
        raise ValueError(f"Unknown disposition action: {action!r}")

    async def _leave(self, item_id: int) -> bool:
        m = self._machine
        anchor = m.current_aisle_name()
        m.completed_item_ids.discard(item_id)
        item = m.route.remove_item(item_id)
        item.is_completed = False
        item.notes = LEAVE_NOTE
        m.deferred.append(
            UncompletedItem(id=item.id, product_name=item.product_name, reason="out_of_stock")
        )
        ok = True
        try:
            await m.push_update(item, ItemUpdate(is_completed=False, notes=LEAVE_NOTE))
        except BackendError as e:
            logger.warning("Failed to save note for item %d: %s", item_id, e)
            m.notify("Update failed", f"Could not save a note for {item.product_name}.")
            ok = False

        await m.after_removal(anchor)
        m.checkpoint()
        return ok

    async def _remove(self, item_id: int) -> bool:
        m = self._machine
        item = m.route.find_item(item_id)
        if not item.is_temporary:
            try:
                await m.backend.delete_item(item_id)
            except BackendError as e:
                logger.warning("Failed to delete item %d: %s", item_id, e)
                m.notify(
                    "Delete failed",
                    f"Could not remove {item.product_name} from the list. Try again.",
                )
                return False

        # The delete may have raced with other edits, so re-read the route.
        if m.route.locate(item_id) is None:
            return True
        anchor = m.current_aisle_name()
        m.completed_item_ids.discard(item_id)
        m.route.remove_item(item_id)
        await m.after_removal(anchor)
        m.checkpoint()
        return True

    async def _migrate(self, item_id: int) -> bool:
        m = self._machine
        route = m.route
        if not route.has_next_store:
            m.notify("No next store", "This is the last store on the trip.")
            return False

        snapshot = route.clone()
        aisle_index = m.aisle_index
        anchor = m.current_aisle_name()
        was_completed = item_id in m.completed_item_ids
        try:
            moved = migrate_item(route, item_id, route.active_index + 1)
        except InvalidTransitionError as e:
            m.notify("Cannot move item", str(e))
            return False
        m.completed_item_ids.discard(item_id)
        m.clamp_aisle()

        item = route.find_item(item_id)
        try:
            await m.push_update(item, migration_update(item))
        except BackendError as e:
            logger.warning("Failed to move item %d: %s", item_id, e)
            m.route = snapshot
            m.aisle_index = aisle_index
            if was_completed:
                m.completed_item_ids.add(item_id)
            m.enter_shopping()
            m.notify(
                "Move failed",
                f"Could not move {moved.product_name} to {moved.to_store}. Try again.",
            )
            return False

        m.moved_items.append(moved)
        await m.after_removal(anchor, aisle_index)
        m.checkpoint()
        return True
