"""Tests for item disposition decisions."""

import pytest

from conftest import SIX_ITEMS
from shoptrip.backend import ItemUpdate
from shoptrip.disposition import LEAVE_NOTE, DispositionAction, migrate_item
from shoptrip.errors import BackendError, InvalidTransitionError
from shoptrip.models import ItemLocation
from shoptrip.phases import AwaitingUncompletedDecision, Shopping, TripComplete

TWO_STORES = (
    ("A", [(1, "Bananas"), (2, "Whole Milk")]),
    ("B", [(10, "Bread")]),
)


class TestFound:
    @pytest.mark.asyncio
    async def test_marks_completed(self, make_trip, backend):
        trip = make_trip(("Fresh Mart", SIX_ITEMS))
        assert await trip.dispose(3, DispositionAction.FOUND) is True
        assert trip.completed_items == {3}
        assert len(trip.route.aisle_groups) == 3
        backend.update_item.assert_awaited_once_with(3, ItemUpdate(is_completed=True))


class TestLeaveForFutureTrip:
    @pytest.mark.asyncio
    async def test_complete_four_leave_two(self, make_trip, backend):
        trip = make_trip(("Fresh Mart", SIX_ITEMS))
        assert [a.section_label for a in trip.route.aisle_groups] == [
            "Fresh Produce", "Dairy & Eggs", "Meat & Seafood",
        ]
        for item_id in (1, 4, 2, 5):
            await trip.toggle_item(item_id)
        trip.jump_to_aisle(2)

        await trip.dispose(3, DispositionAction.LEAVE_FOR_FUTURE_TRIP)
        assert trip.phase == Shopping(0, 2)
        await trip.dispose(6, DispositionAction.LEAVE_FOR_FUTURE_TRIP)
        await trip.drain_background()

        assert [a.section_label for a in trip.route.aisle_groups] == [
            "Fresh Produce", "Dairy & Eggs",
        ]
        assert isinstance(trip.phase, TripComplete)
        backend.update_item.assert_any_await(3, ItemUpdate(is_completed=False, notes=LEAVE_NOTE))
        backend.update_item.assert_any_await(6, ItemUpdate(is_completed=False, notes=LEAVE_NOTE))
        deleted = sorted(c.args[0] for c in backend.delete_item.await_args_list)
        assert deleted == [1, 2, 4, 5]
        report = backend.record_trip.await_args.args[0]
        assert [(u.id, u.reason) for u in report.uncompleted_items] == [
            (3, "out_of_stock"), (6, "out_of_stock"),
        ]

    @pytest.mark.asyncio
    async def test_lands_on_next_aisle(self, make_trip):
        trip = make_trip(("A", [(1, "Bananas"), (2, "Whole Milk"), (3, "Beef")]))
        trip.jump_to_aisle(1)
        await trip.dispose(2, DispositionAction.LEAVE_FOR_FUTURE_TRIP)
        assert trip.phase == Shopping(0, 1)
        assert trip.route.aisle_groups[1].section_label == "Meat & Seafood"

    @pytest.mark.asyncio
    async def test_last_aisle_emptied_ends_store(self, make_trip):
        trip = make_trip(("A", [(1, "Bananas"), (2, "Whole Milk")]))
        trip.jump_to_aisle(1)
        await trip.dispose(2, DispositionAction.LEAVE_FOR_FUTURE_TRIP)
        assert trip.phase == AwaitingUncompletedDecision(0, (1,))

    @pytest.mark.asyncio
    async def test_multi_store_removes_from_segment(self, make_trip):
        trip = make_trip(*TWO_STORES)
        await trip.dispose(1, DispositionAction.LEAVE_FOR_FUTURE_TRIP)
        assert [i.id for i in trip.route.stores[0].items] == [2]
        assert [i.id for i in trip.route.stores[1].items] == [10]

    @pytest.mark.asyncio
    async def test_note_failure_is_reported_without_rollback(self, make_trip, backend):
        backend.update_item.side_effect = BackendError("down", 503)
        trip = make_trip(("Fresh Mart", SIX_ITEMS))
        assert await trip.dispose(1, DispositionAction.LEAVE_FOR_FUTURE_TRIP) is False
        assert trip.route.locate(1) is None
        assert trip.pop_notices()[0].title == "Update failed"


class TestRemoveFromList:
    @pytest.mark.asyncio
    async def test_deletes_then_removes(self, make_trip, backend):
        trip = make_trip(("Fresh Mart", SIX_ITEMS))
        assert await trip.dispose(5, DispositionAction.REMOVE_FROM_LIST) is True
        backend.delete_item.assert_awaited_once_with(5)
        assert trip.route.locate(5) is None
        assert [i.id for i in trip.route.aisle_groups[1].items] == [2]

    @pytest.mark.asyncio
    async def test_delete_failure_leaves_item_pending(self, make_trip, backend):
        backend.delete_item.side_effect = BackendError("down", 500)
        trip = make_trip(("Fresh Mart", SIX_ITEMS))

        assert await trip.dispose(5, DispositionAction.REMOVE_FROM_LIST) is False
        assert trip.route.locate(5) == ItemLocation(0, 1)
        [notice] = trip.pop_notices()
        assert notice.title == "Delete failed"

    @pytest.mark.asyncio
    async def test_completed_item_removed(self, make_trip):
        trip = make_trip(("Fresh Mart", SIX_ITEMS))
        await trip.toggle_item(1)
        await trip.dispose(1, DispositionAction.REMOVE_FROM_LIST)
        assert 1 not in trip.completed_item_ids


class TestMigrateToNextStore:
    @pytest.mark.asyncio
    async def test_moves_item_to_next_store(self, make_trip, builder, backend):
        trip = make_trip(*TWO_STORES)
        assert await trip.dispose(1, DispositionAction.MIGRATE_TO_NEXT_STORE) is True

        route = trip.route
        assert [i.id for i in route.stores[0].items] == [2]
        assert [i.id for a in route.aisle_groups for i in a.items] == [2]
        assert [i.id for i in route.stores[1].items] == [10, 1]
        assert route.locate(1) == ItemLocation(1, None)

        item = route.find_item(1)
        assert item.notes == "Moved from A - not available. Trying at B"
        assert item.suggested_retailer_id == 2
        assert item.moved_from == "A"
        assert item.shelf_location == "Front entrance display"
        backend.update_item.assert_awaited_once_with(
            1,
            ItemUpdate(
                is_completed=False,
                suggested_retailer_id=2,
                notes="Moved from A - not available. Trying at B",
            ),
        )
        assert trip.moved_items[0].to_store == "B"

        next_store = route.clone()
        builder.activate_segment(next_store, 1)
        placements = [a for a in next_store.aisle_groups if any(i.id == 1 for i in a.items)]
        assert len(placements) == 1

    @pytest.mark.asyncio
    async def test_backend_failure_rolls_back(self, make_trip, backend):
        backend.update_item.side_effect = BackendError("down", 500)
        trip = make_trip(*TWO_STORES)
        before = [(a.name, [i.id for i in a.items]) for a in trip.route.aisle_groups]

        assert await trip.dispose(1, DispositionAction.MIGRATE_TO_NEXT_STORE) is False

        assert [(a.name, [i.id for i in a.items]) for a in trip.route.aisle_groups] == before
        assert [i.id for i in trip.route.stores[0].items] == [1, 2]
        assert [i.id for i in trip.route.stores[1].items] == [10]
        assert trip.route.locate(1) == ItemLocation(0, 0)
        assert trip.route.find_item(1).notes == ""
        assert trip.moved_items == []
        assert trip.pop_notices()[0].title == "Move failed"

    @pytest.mark.asyncio
    async def test_last_store_rejected(self, make_trip, backend):
        trip = make_trip(("Fresh Mart", SIX_ITEMS))
        assert await trip.dispose(1, DispositionAction.MIGRATE_TO_NEXT_STORE) is False
        assert trip.route.locate(1) == ItemLocation(0, 0)
        assert trip.pop_notices()[0].title == "No next store"
        backend.update_item.assert_not_awaited()

    def test_migrate_item_rejects_foreign_item(self, make_trip):
        trip = make_trip(*TWO_STORES)
        with pytest.raises(InvalidTransitionError):
            migrate_item(trip.route, 10, 1)

    def test_migrate_item_rejects_missing_store(self, make_trip):
        trip = make_trip(*TWO_STORES)
        with pytest.raises(InvalidTransitionError):
            migrate_item(trip.route, 1, 5)


class TestRejections:
    @pytest.mark.asyncio
    async def test_item_from_other_store(self, make_trip, backend):
        trip = make_trip(*TWO_STORES)
        assert await trip.dispose(10, DispositionAction.REMOVE_FROM_LIST) is False
        backend.delete_item.assert_not_awaited()
        assert trip.pop_notices()[0].title == "Item not found"

    @pytest.mark.asyncio
    async def test_not_while_awaiting_decision(self, make_trip):
        trip = make_trip(("A", [(1, "Bananas")]))
        await trip.request_end_of_store()
        assert await trip.dispose(1, DispositionAction.FOUND) is False
        assert trip.pop_notices()[0].title == "Not shopping"
