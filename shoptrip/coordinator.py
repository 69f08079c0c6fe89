"""Store segment sequencing and end-of-store resolution."""

from __future__ import annotations

import asyncio
import enum
import logging
from datetime import date
from typing import TYPE_CHECKING

from .backend import ItemUpdate, MovedItem, TripReport, UncompletedItem
from .disposition import migrate_item, migration_update
from .errors import BackendError
from .phases import AwaitingUncompletedDecision, TripComplete
from .session import now_ms

if TYPE_CHECKING:
    from .machine import TripStateMachine
    from .models import ShoppingItem

logger = logging.getLogger(__name__)

SAVE_NOTE = "Saved for future trip - not needed this time"
MULTI_STORE_NAME = "Multi-Store"


class UncompletedAction(enum.Enum):
    MARK_ALL_FOUND = "mark_all_found"
    MOVE_TO_NEXT_STORE = "move_to_next_store"
    SAVE_FOR_NEXT_TRIP = "save_for_next_trip"
    END_TRIP_NOW = "end_trip_now"


def not_purchased_note(store_name: str, on: date | None = None) -> str:
    on = on or date.today()
    return f"Not purchased during shopping trip on {on.isoformat()} at {store_name}"


class MultiStoreCoordinator:
    """Completes store segments and carries unresolved items forward."""

    def __init__(self, machine: TripStateMachine) -> None:
        self._machine = machine

    async def resolve(self, action: UncompletedAction) -> bool:
        """Apply the shopper's choice for items left at the end of a store.

        Returns:
            True if the choice was applied, False if it was rejected or
            rolled back.
        """
        m = self._machine
        if not isinstance(m.phase, AwaitingUncompletedDecision):
            m.notify("Nothing to resolve", "There are no unresolved items right now.")
            return False
        pending = [
            i for i in m.route.active_store.items
            if i.id in m.phase.item_ids and i.id not in m.completed_item_ids
        ]
        logger.info("Resolving %d uncompleted items: %s", len(pending), action.value)

        match action:
            case UncompletedAction.MARK_ALL_FOUND:
                for item in pending:
                    m.completed_item_ids.add(item.id)
                    item.is_completed = True
                m.mark_started()
                await self._push_all(
                    [(i, ItemUpdate(is_completed=True)) for i in pending]
                )
                await self.complete_store_segment()
            case UncompletedAction.MOVE_TO_NEXT_STORE:
                if not await self._move_to_next_store(pending):
                    return False
                await self.complete_store_segment()
            case UncompletedAction.SAVE_FOR_NEXT_TRIP:
                for item in pending:
                    m.route.remove_item(item.id)
                    item.notes = SAVE_NOTE
                    m.deferred.append(
                        UncompletedItem(
                            id=item.id,
                            product_name=item.product_name,
                            reason="saved_for_next_trip",
                        )
                    )
                await self._push_all([(i, ItemUpdate(notes=SAVE_NOTE)) for i in pending])
                await self.complete_store_segment()
            case UncompletedAction.END_TRIP_NOW:
                await self.complete_store_segment(final=True)
            case _:
                raise ValueError(f"Unknown uncompleted action: {action!r}")
        return True

    async def _move_to_next_store(self, pending: list[ShoppingItem]) -> bool:
        m = self._machine
        route = m.route
        if not route.has_next_store:
            m.notify("No next store", "This is the last store on the trip.")
            return False

        snapshot = route.clone()
        target = route.active_index + 1
        moved = [migrate_item(route, item.id, target) for item in pending]
        results = await asyncio.gather(
            *(
                m.push_update(route.find_item(mv.id), migration_update(route.find_item(mv.id)))
                for mv in moved
            ),
            return_exceptions=True,
        )
        failures = [r for r in results if isinstance(r, BaseException)]
        for failure in failures:
            if not isinstance(failure, BackendError):
                raise failure
        if failures:
            logger.warning(
                "Rolling back move of %d items: %s", len(moved), failures[0]
            )
            m.route = snapshot
            m.notify(
                "Move failed",
                f"Could not move items to {route.stores[target].retailer_name}. Try again.",
            )
            return False

        m.moved_items.extend(moved)
        return True

    async def _push_all(self, updates: list[tuple[ShoppingItem, ItemUpdate]]) -> None:
        """Send updates in parallel. Failures are logged and reported once."""
        m = self._machine
        results = await asyncio.gather(
            *(m.push_update(item, update) for item, update in updates),
            return_exceptions=True,
        )
        failed = 0
        for (item, _), result in zip(updates, results):
            if isinstance(result, BackendError):
                logger.warning("Failed to update item %d: %s", item.id, result)
                failed += 1
            elif isinstance(result, BaseException):
                raise result
        if failed:
            m.notify("Update failed", f"{failed} item(s) could not be updated.")

    async def _delete_completed(self, item: ShoppingItem) -> None:
        if item.is_temporary:
            return
        try:
            await self._machine.backend.delete_item(item.id)
        except BackendError as e:
            logger.warning("Failed to delete completed item %d: %s", item.id, e)

    async def complete_store_segment(self, final: bool = False) -> None:
        """Finish the active store and move on.

        Completed items are deleted from the list. Uncompleted items are
        reassigned to the next store when one remains, otherwise they get a
        "not purchased" note. With ``final`` the trip ends here regardless and
        items still waiting in later stores are noted the same way.
        """
        m = self._machine
        if isinstance(m.phase, TripComplete):
            return
        route = m.route
        store = route.active_store
        index = route.active_index
        completed = [i for i in store.items if i.id in m.completed_item_ids]
        uncompleted = [i for i in store.items if i.id not in m.completed_item_ids]
        continuing = route.has_next_store and not final

        logger.info(
            "Completing %s: %d completed, %d uncompleted",
            store.retailer_name,
            len(completed),
            len(uncompleted),
        )
        await asyncio.gather(*(self._delete_completed(i) for i in completed))

        # The deletes yielded control; take the current route, not the one
        # captured above.
        route = m.route
        store = route.active_store
        uncompleted = [i for i in store.items if i.id not in m.completed_item_ids]

        moved: list[MovedItem] = []
        if continuing:
            moved = [migrate_item(route, i.id, index + 1) for i in uncompleted]
            m.moved_items.extend(moved)
            await self._push_all(
                [
                    (route.find_item(mv.id), migration_update(route.find_item(mv.id)))
                    for mv in moved
                ]
            )
        else:
            # Ending here returns this store's leftovers and every later
            # segment's items to the list.
            updates: list[tuple[ShoppingItem, ItemUpdate]] = []
            for segment in route.stores[index:]:
                note = not_purchased_note(segment.retailer_name)
                for item in segment.items:
                    if item.id in m.completed_item_ids:
                        continue
                    item.notes = note
                    m.unpurchased.append(
                        UncompletedItem(
                            id=item.id,
                            product_name=item.product_name,
                            reason="not_purchased",
                        )
                    )
                    updates.append((item, ItemUpdate(notes=note)))
            await self._push_all(updates)

        if continuing:
            moved_here = [
                mv for mv in m.moved_items if mv.from_store == store.retailer_name
            ]
            m.spawn(
                self._send_report(
                    TripReport(
                        list_id=m.list_id,
                        retailer_name=store.retailer_name,
                        plan_type=route.plan_type,
                        total_stores=len(route.stores),
                        start_time=m.segment_started_at,
                        end_time=m.timestamp(),
                        completed_item_ids=[i.id for i in completed],
                        uncompleted_items=[
                            UncompletedItem(
                                id=mv.id, product_name=mv.product_name, reason="moved"
                            )
                            for mv in moved_here
                        ],
                        moved_items=moved_here,
                    )
                )
            )
            await self.advance(index + 1)
        else:
            await self.end_trip()

    async def advance(self, store_index: int) -> None:
        """Activate the next store segment, completing it at once if empty."""
        m = self._machine
        m.builder.activate_segment(m.route, store_index)
        m.loyalty_acknowledged = False
        m.segment_started_at = m.timestamp()
        m.aisle_index = 0
        m.enter_shopping()
        m.mark_started()
        m.checkpoint()
        logger.info(
            "Now shopping at %s (store %d of %d)",
            m.route.retailer_name,
            store_index + 1,
            len(m.route.stores),
        )
        if not m.route.active_store.items:
            await self.complete_store_segment()
            return
        m.schedule_refinement()

    async def end_trip(self) -> None:
        """Mark the trip complete, report it, and retire its session."""
        m = self._machine
        if isinstance(m.phase, TripComplete):
            return
        route = m.route
        m.phase = TripComplete()
        all_ids = {i.id for i in route.all_items()}
        report = TripReport(
            list_id=m.list_id,
            retailer_name=MULTI_STORE_NAME if route.is_multi_store else route.retailer_name,
            plan_type=route.plan_type,
            total_stores=len(route.stores),
            start_time=m.started_at,
            end_time=m.timestamp(),
            completed_item_ids=sorted(m.completed_item_ids & all_ids),
            uncompleted_items=list(m.deferred) + list(m.unpurchased),
            moved_items=list(m.moved_items),
        )
        m.spawn(self._send_report(report))

        if m.sessions is not None:
            if m.has_started_shopping:
                session = m.snapshot()
                session.is_completed = True
                session.timestamp = now_ms()
                m.sessions.save(m.list_id, session)
            m.sessions.clear(m.list_id)
        logger.info("Trip for list %s complete", m.list_id)

    async def _send_report(self, report: TripReport) -> None:
        try:
            await self._machine.backend.record_trip(report)
        except Exception as e:
            # Analytics never affect the trip.
            logger.warning("Failed to record trip analytics: %s", e)
