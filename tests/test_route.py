"""Tests for RouteBuilder."""

import pytest

from shoptrip.classifier import Classification
from shoptrip.classifier.heuristic import HeuristicClassifier
from shoptrip.models import Retailer, ShoppingItem, StoreSegment
from shoptrip.plan import MultiStorePlan, parse_plan
from shoptrip.route import (
    AISLE_LAYOUT,
    UNCLASSIFIED,
    RouteBuilder,
    estimate_minutes,
    render_route,
    shelf_location,
)


def _items() -> list[ShoppingItem]:
    names = ["Bananas", "Whole Milk", "Chicken Breast", "Apples", "Eggs", "Ground Beef"]
    return [ShoppingItem(id=i + 1, product_name=n) for i, n in enumerate(names)]


@pytest.fixture
def builder():
    return RouteBuilder(HeuristicClassifier())


class TestBuildRoute:
    def test_groups_in_fixed_section_order(self, builder):
        route = builder.build_route(_items(), "Fresh Mart")

        assert [a.section_label for a in route.aisle_groups] == [
            "Fresh Produce",
            "Dairy & Eggs",
            "Meat & Seafood",
        ]
        assert [i.product_name for i in route.aisle_groups[0].items] == ["Bananas", "Apples"]
        assert route.retailer_name == "Fresh Mart"
        assert not route.is_multi_store

    def test_default_retailer(self, builder):
        assert builder.build_route(_items()).retailer_name == "Store"

    def test_each_item_in_exactly_one_aisle(self, builder):
        route = builder.build_route(_items())
        ids = [i.id for a in route.aisle_groups for i in a.items]
        assert sorted(ids) == [1, 2, 3, 4, 5, 6]

    def test_idempotent(self, builder):
        first = builder.build_route(_items())
        second = builder.build_route(_items())
        assert [(a.name, [i.id for i in a.items]) for a in first.aisle_groups] == [
            (a.name, [i.id for i in a.items]) for a in second.aisle_groups
        ]
        assert [i.shelf_location for i in first.all_items()] == [
            i.shelf_location for i in second.all_items()
        ]

    def test_list_category_is_authoritative(self, builder):
        item = ShoppingItem(id=1, product_name="Bananas", category="Bakery")
        route = builder.build_route([item])
        assert route.aisle_groups[0].section_label == "Bakery"
        assert item.confidence == 0.9
        assert item.category_source == "list"

    def test_fast_path_marks_source(self, builder):
        item = ShoppingItem(id=1, product_name="Bananas")
        builder.build_route([item])
        assert item.category == "Produce"
        assert item.confidence == 0.8
        assert item.category_source == "heuristic"

    def test_low_confidence_goes_to_unclassified_last(self, builder):
        items = [
            ShoppingItem(id=1, product_name="Flux Capacitor"),
            ShoppingItem(id=2, product_name="Shampoo"),
        ]
        route = builder.build_route(items)
        assert [a.name for a in route.aisle_groups] == [
            AISLE_LAYOUT["Personal Care"].name,
            UNCLASSIFIED.name,
        ]

    def test_unknown_category_goes_to_unclassified(self, builder):
        item = ShoppingItem(id=1, product_name="Gift Card", category="Services")
        route = builder.build_route([item])
        assert route.aisle_groups[0].name == UNCLASSIFIED.name
        assert item.shelf_location == "Check store directory"

    def test_empty_aisles_never_created(self, builder):
        route = builder.build_route([ShoppingItem(id=1, product_name="Bananas")])
        assert len(route.aisle_groups) == 1

    def test_layout_table_untouched(self, builder):
        before = dict(AISLE_LAYOUT)
        route = builder.build_route(_items())
        route.remove_item(1)
        route.remove_item(4)
        assert AISLE_LAYOUT == before

    def test_shelf_hints(self, builder):
        route = builder.build_route(_items())
        hints = {i.product_name: i.shelf_location for i in route.all_items()}
        assert hints["Bananas"] == "Front entrance display"
        assert hints["Whole Milk"] == "Back wall - dairy cooler"
        assert hints["Chicken Breast"] == "Poultry case - left side"


class TestPlanRoutes:
    def _plan(self):
        return parse_plan(
            {
                "stores": [
                    {"retailer": {"id": 1, "name": "A"}, "items": [{"id": 1, "productName": "Milk"}]},
                    {"retailer": {"id": 2, "name": "B"}, "items": [{"id": 2, "productName": "Bread"}]},
                ]
            }
        )

    def test_only_active_segment_laid_out(self, builder):
        route = builder.build_plan_route(self._plan())
        assert route.is_multi_store
        assert route.active_index == 0
        assert [i.id for a in route.aisle_groups for i in a.items] == [1]
        assert route.locate(2).aisle_index is None

    def test_activate_segment(self, builder):
        route = builder.build_plan_route(self._plan())
        builder.activate_segment(route, 1)
        assert route.retailer_name == "B"
        assert route.aisle_groups[0].section_label == "Bakery"
        assert route.locate(1).aisle_index is None

    def test_store_index_clamped(self, builder):
        route = builder.build_plan_route(self._plan(), store_index=7)
        assert route.active_index == 1

    def test_empty_plan_rejected(self, builder):
        with pytest.raises(ValueError):
            builder.build_plan_route(MultiStorePlan(stores=[]))


class TestApplyClassification:
    def test_moves_item_on_better_result(self, builder):
        item = ShoppingItem(id=1, product_name="Kombucha")
        other = ShoppingItem(id=2, product_name="Bananas")
        route = builder.build_route([item, other])
        assert route.aisle_groups[-1].name == UNCLASSIFIED.name

        moved = builder.apply_classification(route, 1, Classification("Beverages", 0.95))

        assert moved is True
        assert [a.section_label for a in route.aisle_groups] == ["Fresh Produce", "Beverages"]
        assert item.category_source == "lookup"
        assert item.shelf_location == "Beverage aisle - main section"

    def test_ignores_lower_confidence(self, builder):
        route = builder.build_route([ShoppingItem(id=1, product_name="Bananas")])
        assert builder.apply_classification(route, 1, Classification("Bakery", 0.5)) is False
        assert route.aisle_groups[0].section_label == "Fresh Produce"

    def test_same_aisle_updates_confidence_only(self, builder):
        item = ShoppingItem(id=1, product_name="Bananas")
        route = builder.build_route([item])
        assert builder.apply_classification(route, 1, Classification("Produce", 0.99)) is False
        assert item.confidence == 0.99

    def test_missing_item(self, builder):
        route = builder.build_route([ShoppingItem(id=1, product_name="Bananas")])
        assert builder.apply_classification(route, 99, Classification("Produce", 0.99)) is False

    def test_refinement_candidates(self, builder):
        items = [
            ShoppingItem(id=1, product_name="Bananas"),
            ShoppingItem(id=2, product_name="Rolls", category="Bakery"),
        ]
        route = builder.build_route(items)
        assert [i.id for i in builder.refinement_candidates(route)] == [1]


class TestEstimates:
    def test_minimum_fifteen_minutes(self):
        assert estimate_minutes(1, [ShoppingItem(1, "Rice")]) == 15

    def test_scales_with_aisles_and_items(self):
        items = [ShoppingItem(i, "Rice") for i in range(10)]
        assert estimate_minutes(4, items) == 17

    def test_surcharges(self):
        items = [ShoppingItem(1, "Organic Fresh Kale"), ShoppingItem(2, "Imported Cheese")]
        assert estimate_minutes(1, items) == 15 + 3 + 1

    def test_shelf_location_default_for_category(self):
        assert shelf_location("Kiwi", "Produce") == "Main produce area"


def test_render_route(builder):
    plan = MultiStorePlan(
        stores=[
            StoreSegment(Retailer(1, "A"), [ShoppingItem(1, "Bananas")]),
            StoreSegment(Retailer(2, "B"), [ShoppingItem(2, "Bread")]),
        ]
    )
    route = builder.build_plan_route(plan)
    text = render_route(route, completed_ids={1})
    assert "A (store 1 of 2)" in text
    assert "[✓] Bananas" in text
    assert "next: B (1 items)" in text
