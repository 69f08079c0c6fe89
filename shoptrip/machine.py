"""Trip state machine: traversal, item toggling and session checkpoints."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Coroutine

from .backend import ItemUpdate, ListBackend, LoyaltyCard, MovedItem, UncompletedItem
from .coordinator import MultiStoreCoordinator, UncompletedAction
from .disposition import DispositionAction, DispositionHandler
from .errors import BackendError
from .models import Route, ShoppingItem
from .phases import (
    AwaitingLoyaltyAck,
    AwaitingUncompletedDecision,
    Notice,
    Phase,
    Shopping,
    TripComplete,
)
from .plan import parse_plan, plan_from_list, plan_from_route
from .route import RouteBuilder, estimate_minutes
from .session import (
    MAX_SESSION_AGE_HOURS,
    SessionStore,
    TripSession,
    load_resumable_session,
)

logger = logging.getLogger(__name__)


class TripStateMachine:
    """Owns the live route and drives a shopper through it.

    The route and the persisted session are only changed through this class
    (and the disposition handler and coordinator it owns). Network calls may
    finish late and out of order; every mutation that follows an ``await``
    reads ``self.route`` afresh instead of a value captured before it.
    """

    def __init__(
        self,
        route: Route,
        builder: RouteBuilder,
        backend: ListBackend,
        sessions: SessionStore | None = None,
        list_id: str = "",
    ) -> None:
        self.route = route
        self.builder = builder
        self.backend = backend
        self.sessions = sessions
        self.list_id = list_id

        self.aisle_index = 0
        self.phase: Phase = Shopping(route.active_index, 0)
        # Trip-wide; the current store's share is completed_items.
        self.completed_item_ids: set[int] = set()
        self.has_started_shopping = False
        self.loyalty_acknowledged = False
        self.started_at = self.timestamp()
        self.segment_started_at = self.started_at

        self.deferred: list[UncompletedItem] = []
        self.unpurchased: list[UncompletedItem] = []
        self.moved_items: list[MovedItem] = []
        self.notices: list[Notice] = []

        self._tasks: set[asyncio.Task] = set()
        self.disposition = DispositionHandler(self)
        self.coordinator = MultiStoreCoordinator(self)

    # ------------------------------------------------------------------
    # Construction

    @classmethod
    def resume(
        cls,
        session: TripSession,
        builder: RouteBuilder,
        backend: ListBackend,
        sessions: SessionStore | None = None,
    ) -> TripStateMachine:
        """Rebuild a machine from a persisted session.

        Raises:
            ValueError: If the session's plan snapshot cannot be parsed.
        """
        plan = parse_plan(session.plan_snapshot)
        route = builder.build_plan_route(plan, store_index=session.current_store_index)
        machine = cls(route, builder, backend, sessions, session.list_id)
        known = {i.id for i in route.all_items()}
        machine.completed_item_ids = set(session.completed_item_ids) & known
        for item in route.all_items():
            item.is_completed = item.id in machine.completed_item_ids
        # Restoring positions is not itself progress.
        machine.has_started_shopping = session.has_started_shopping
        machine.aisle_index = session.current_aisle_index
        machine.clamp_aisle()
        machine.enter_shopping()
        logger.info(
            "Resumed list %s at store %d aisle %d",
            session.list_id,
            route.active_index,
            machine.aisle_index,
        )
        return machine

    # ------------------------------------------------------------------
    # Derived state

    @property
    def store_index(self) -> int:
        return self.route.active_index

    @property
    def completed_items(self) -> set[int]:
        """Completed ids within the current store segment."""
        return {
            i.id for i in self.route.active_store.items
            if i.id in self.completed_item_ids
        }

    def current_aisle_name(self) -> str | None:
        if 0 <= self.aisle_index < len(self.route.aisle_groups):
            return self.route.aisle_groups[self.aisle_index].name
        return None

    def uncompleted_ids(self) -> list[int]:
        return [
            i.id for aisle in self.route.aisle_groups for i in aisle.items
            if i.id not in self.completed_item_ids
        ]

    def progress(self) -> dict[str, Any]:
        """Completed versus total items across every store segment."""
        items = self.route.all_items()
        done = sum(1 for i in items if i.id in self.completed_item_ids)
        total = len(items)
        return {
            "completed": done,
            "total": total,
            "percent": round(done / total * 100) if total else 0,
        }

    def aisle_status(self) -> list[dict[str, Any]]:
        return [
            {"name": a.name, **a.completion(self.completed_item_ids)}
            for a in self.route.aisle_groups
        ]

    @staticmethod
    def timestamp() -> str:
        return datetime.now(timezone.utc).isoformat()

    # ------------------------------------------------------------------
    # Internal helpers shared with the handler and coordinator

    def notify(self, title: str, message: str, level: str = "error") -> None:
        logger.info("Notice (%s): %s - %s", level, title, message)
        self.notices.append(Notice(title=title, message=message, level=level))

    def pop_notices(self) -> list[Notice]:
        notices, self.notices = self.notices, []
        return notices

    def enter_shopping(self) -> None:
        self.phase = Shopping(self.route.active_index, self.aisle_index)

    def clamp_aisle(self) -> None:
        last = len(self.route.aisle_groups) - 1
        self.aisle_index = min(max(self.aisle_index, 0), max(last, 0))
        if isinstance(self.phase, Shopping):
            self.enter_shopping()

    def mark_started(self) -> None:
        """Progress is real once an item is done or the shopper has moved."""
        if self.has_started_shopping:
            return
        if self.completed_item_ids or self.aisle_index > 0 or self.store_index > 0:
            self.has_started_shopping = True
            logger.debug("Shopping started on list %s", self.list_id)

    def snapshot(self) -> TripSession:
        return TripSession(
            list_id=self.list_id,
            plan_snapshot=plan_from_route(self.route),
            current_store_index=self.route.active_index,
            current_aisle_index=self.aisle_index,
            completed_item_ids=set(self.completed_item_ids),
            has_started_shopping=self.has_started_shopping,
        )

    def checkpoint(self) -> None:
        """Persist the session if the shopper has engaged with the trip."""
        if self.sessions is None or not self.has_started_shopping:
            return
        if isinstance(self.phase, TripComplete):
            return
        try:
            self.sessions.save(self.list_id, self.snapshot())
        except Exception:
            logger.exception("Failed to save session for list %s", self.list_id)

    def suspend(self) -> None:
        """Checkpoint on visibility loss or shutdown."""
        self.checkpoint()

    async def push_update(self, item: ShoppingItem, update: ItemUpdate) -> None:
        """PATCH an item unless its id only exists locally."""
        if item.is_temporary:
            return
        await self.backend.update_item(item.id, update)

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain_background(self) -> None:
        """Wait for refinement and analytics tasks, including ones they start."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def after_removal(self, anchor: str | None, index: int | None = None) -> None:
        """Settle the aisle position after an item left the route.

        Stays on the anchor aisle if it still exists, otherwise lands on the
        aisle that followed it. With no aisles left, the store is finished.
        """
        if not isinstance(self.phase, Shopping):
            return
        aisles = self.route.aisle_groups
        index = self.aisle_index if index is None else index
        names = [a.name for a in aisles]
        if anchor in names:
            self.aisle_index = names.index(anchor)
        elif index < len(aisles):
            self.aisle_index = index
        else:
            self.aisle_index = max(len(aisles) - 1, 0)
            await self.request_end_of_store()
            return
        self.enter_shopping()
        self.mark_started()

    # ------------------------------------------------------------------
    # Transitions

    def jump_to_aisle(self, index: int) -> None:
        """Go to an aisle of the current store; out-of-range is a no-op."""
        if not isinstance(self.phase, Shopping):
            return
        if not 0 <= index < len(self.route.aisle_groups):
            return
        self.aisle_index = index
        self.enter_shopping()
        self.mark_started()
        self.checkpoint()

    async def move_aisle(self, delta: int) -> None:
        """Step through aisles. Stepping past the last one ends the store."""
        if not isinstance(self.phase, Shopping):
            return
        target = self.aisle_index + delta
        if target >= len(self.route.aisle_groups):
            await self.request_end_of_store()
            return
        if target < 0:
            return
        self.jump_to_aisle(target)

    async def toggle_item(self, item_id: int) -> bool:
        """Check or uncheck an item; both take effect immediately."""
        return await self.set_completed(item_id, item_id not in self.completed_item_ids)

    async def set_completed(self, item_id: int, completed: bool) -> bool:
        """Set an item's completion locally, then on the list service.

        A failed PATCH leaves the local state in place and raises a notice;
        toggling again retries.
        """
        if not isinstance(self.phase, Shopping):
            return False
        loc = self.route.locate(item_id)
        if loc is None or loc.store_index != self.route.active_index:
            return False
        item = self.route.find_item(item_id)
        if completed:
            self.completed_item_ids.add(item_id)
        else:
            self.completed_item_ids.discard(item_id)
        item.is_completed = completed
        self.mark_started()
        self.checkpoint()

        try:
            await self.push_update(item, ItemUpdate(is_completed=completed))
        except BackendError as e:
            logger.warning("Failed to update item %d: %s", item_id, e)
            self.notify(
                "Update failed",
                f"Could not save {item.product_name}. Tap it again to retry.",
            )
            return False
        return True

    async def dispose(self, item_id: int, action: DispositionAction) -> bool:
        return await self.disposition.dispose(item_id, action)

    async def _loyalty_card(self) -> LoyaltyCard | None:
        try:
            return await self.backend.get_loyalty_card(self.route.retailer_name)
        except BackendError as e:
            logger.warning(
                "Loyalty lookup for %s failed: %s", self.route.retailer_name, e
            )
            return None

    async def request_end_of_store(self) -> None:
        """Start finishing the current store, pausing at the loyalty card."""
        if not isinstance(self.phase, Shopping):
            return
        if not self.loyalty_acknowledged:
            card = await self._loyalty_card()
            if card is not None and card.retailer_name == self.route.retailer_name:
                self.phase = AwaitingLoyaltyAck(self.route.active_index, card)
                self.checkpoint()
                return
        await self._evaluate_uncompleted()

    async def acknowledge_loyalty(self) -> None:
        if not isinstance(self.phase, AwaitingLoyaltyAck):
            self.notify("Nothing to acknowledge", "No loyalty card is being shown.")
            return
        self.loyalty_acknowledged = True
        await self._evaluate_uncompleted()

    async def _evaluate_uncompleted(self) -> None:
        pending = [
            i.id for i in self.route.active_store.items
            if i.id not in self.completed_item_ids
        ]
        if not pending:
            await self.coordinator.complete_store_segment()
            return
        self.phase = AwaitingUncompletedDecision(self.route.active_index, tuple(pending))
        self.checkpoint()

    def continue_shopping(self) -> None:
        """Back out of the end-of-store flow to the current aisle."""
        if isinstance(self.phase, (AwaitingLoyaltyAck, AwaitingUncompletedDecision)):
            self.clamp_aisle()
            self.enter_shopping()

    async def resolve_uncompleted(self, action: UncompletedAction) -> bool:
        return await self.coordinator.resolve(action)

    async def complete_store_segment(self) -> None:
        await self.coordinator.complete_store_segment()

    async def end_trip(self) -> None:
        await self.coordinator.complete_store_segment(final=True)

    # ------------------------------------------------------------------
    # Background refinement

    def schedule_refinement(self) -> asyncio.Task:
        return self.spawn(self.refine_route())

    async def refine_route(self) -> int:
        """Re-classify fast-path items and move those with a better aisle.

        Results are applied to whatever the route is when each lookup
        returns; items that have since left the current store are skipped.

        Returns:
            Number of items that changed aisle.
        """
        candidates = self.builder.refinement_candidates(self.route)
        if not candidates:
            return 0
        classifier = self.builder.classifier

        async def lookup(item: ShoppingItem):
            return item.id, await classifier.classify_async(item.product_name)

        moved = 0
        for next_result in asyncio.as_completed([lookup(i) for i in candidates]):
            try:
                item_id, result = await next_result
            except Exception as e:
                logger.warning("Background classification failed: %s", e)
                continue
            if isinstance(self.phase, TripComplete):
                break
            anchor = self.current_aisle_name()
            if self.builder.apply_classification(self.route, item_id, result):
                moved += 1
                names = [a.name for a in self.route.aisle_groups]
                if anchor in names:
                    self.aisle_index = names.index(anchor)
                self.clamp_aisle()

        if moved:
            self.route.estimated_minutes = estimate_minutes(
                len(self.route.aisle_groups), self.route.active_store.items
            )
            logger.info("Refinement moved %d items", moved)
        return moved


async def start_trip(
    list_id: str,
    builder: RouteBuilder,
    backend: ListBackend,
    sessions: SessionStore | None = None,
    plan_payload: dict[str, Any] | None = None,
    *,
    resume: bool = True,
    default_retailer: str = "Store",
    max_age_hours: float = MAX_SESSION_AGE_HOURS,
    refine: bool = True,
) -> TripStateMachine:
    """Resume a saved trip for the list, or start one from a plan.

    Without a plan payload the shopping list itself is fetched and used as a
    single store. With ``resume=False`` any saved session is discarded.
    """
    machine: TripStateMachine | None = None
    if sessions is not None:
        if resume:
            session = load_resumable_session(sessions, list_id, max_age_hours=max_age_hours)
            if session is not None:
                try:
                    machine = TripStateMachine.resume(session, builder, backend, sessions)
                except ValueError as e:
                    logger.warning("Saved session for list %s unusable: %s", list_id, e)
                    sessions.clear(list_id)
        else:
            sessions.clear(list_id)

    if machine is None:
        if plan_payload is not None:
            plan = parse_plan(plan_payload, default_retailer=default_retailer)
        else:
            plan = plan_from_list(await backend.get_list(list_id), default_retailer)
        route = builder.build_plan_route(plan)
        machine = TripStateMachine(route, builder, backend, sessions, list_id)

    if not machine.route.active_store.items:
        await machine.coordinator.complete_store_segment()
    elif refine:
        machine.schedule_refinement()
    return machine
