"""Shopping route construction: aisle grouping, shelf hints and timing."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .classifier import Classification, Classifier
from .models import AisleGroup, Retailer, Route, ShoppingItem, StoreSegment
from .plan import DEFAULT_RETAILER, TripPlan, plan_segments

logger = logging.getLogger(__name__)

# Confidence given to a category that arrives on the item itself
LIST_CATEGORY_CONFIDENCE = 0.9


@dataclass(frozen=True)
class AisleSpec:
    name: str
    section_label: str
    order: int


# Canonical section order. Never mutated at runtime.
AISLE_LAYOUT: dict[str, AisleSpec] = {
    "Produce": AisleSpec("Aisle 1", "Fresh Produce", 1),
    "Dairy & Eggs": AisleSpec("Aisle 2", "Dairy & Eggs", 2),
    "Meat & Seafood": AisleSpec("Aisle 3", "Meat & Seafood", 3),
    "Pantry & Canned Goods": AisleSpec("Aisle 4-6", "Pantry & Canned Goods", 4),
    "Beverages": AisleSpec("Aisle 7", "Beverages", 5),
    "Frozen Foods": AisleSpec("Aisle 8", "Frozen Foods", 6),
    "Bakery": AisleSpec("Aisle 9", "Bakery", 7),
    "Health & Wellness": AisleSpec("Aisle 10", "Health & Wellness", 8),
    "Personal Care": AisleSpec("Aisle 11", "Personal Care", 9),
    "Household Items": AisleSpec("Aisle 12", "Household Items", 10),
}

UNCLASSIFIED = AisleSpec("Unclassified", "Unclassified Items", 99)

# category → [(keywords, hint)], first match wins, then the category default
_SHELF_HINTS: dict[str, tuple[list[tuple[tuple[str, ...], str]], str]] = {
    "Produce": (
        [
            (("banana", "apple", "orange"), "Front entrance display"),
            (("lettuce", "spinach", "salad"), "Refrigerated greens wall"),
            (("pepper", "onion", "tomato"), "Center produce bins"),
            (("avocado", "lime", "lemon"), "Citrus & specialty section"),
        ],
        "Main produce area",
    ),
    "Dairy & Eggs": (
        [
            (("milk",), "Back wall - dairy cooler"),
            (("egg",), "Dairy cooler - middle shelf"),
            (("cheese",), "Specialty cheese section"),
            (("yogurt",), "Dairy cooler - top shelf"),
            (("butter",), "Dairy cooler - bottom shelf"),
        ],
        "Main dairy section",
    ),
    "Meat & Seafood": (
        [
            (("chicken", "turkey"), "Poultry case - left side"),
            (("beef", "ground"), "Beef case - center"),
            (("fish", "salmon", "seafood", "shrimp"), "Seafood counter"),
        ],
        "Meat department",
    ),
    "Frozen Foods": (
        [
            (("ice cream",), "Frozen desserts aisle"),
            (("pizza",), "Frozen meals - left side"),
            (("vegetable",), "Frozen vegetables"),
        ],
        "Frozen foods section",
    ),
    "Bakery": (
        [(("bread", "loaf"), "Bread aisle - packaged goods")],
        "Fresh bakery counter",
    ),
    "Pantry & Canned Goods": (
        [
            (("cereal",), "Cereal aisle - eye level"),
            (("pasta",), "Pasta & sauce aisle"),
            (("rice", "quinoa"), "Grains & rice section"),
            (("oil", "vinegar"), "Cooking oils & condiments"),
            (("can", "soup"), "Canned goods - center aisles"),
        ],
        "Center store aisles",
    ),
    "Beverages": (
        [(("sparkling", "carbonated", "soda"), "Beverage aisle - carbonated drinks")],
        "Beverage aisle - main section",
    ),
    "Personal Care": (
        [
            (("shampoo", "soap"), "Health & beauty - left wall"),
            (("toothpaste",), "Oral care section"),
        ],
        "Health & beauty department",
    ),
    "Household Items": (
        [
            (("detergent", "cleaner"), "Cleaning supplies aisle"),
            (("paper", "towel"), "Paper goods aisle"),
        ],
        "Household goods section",
    ),
    "Health & Wellness": ([], "Pharmacy & wellness aisle"),
}

_COMPLEX_KEYWORDS = ("organic", "specialty", "imported")
_FRESH_KEYWORDS = ("fresh", "produce", "meat", "seafood")


def shelf_location(product_name: str, category: str | None) -> str:
    """Return a static shelf hint for a product within its category."""
    name = product_name.lower()
    hints = _SHELF_HINTS.get(category or "")
    if hints is None:
        return "Check store directory"
    rules, default = hints
    for keywords, hint in rules:
        if any(k in name for k in keywords):
            return hint
    return default


def estimate_minutes(aisle_count: int, items: list[ShoppingItem]) -> int:
    """Estimate trip duration for one store.

    Base time is ``max(15, 3 * aisles + 0.5 * items)``; items that take longer
    to pick (organic/specialty/imported, or fresh counters) add a surcharge.
    """
    minutes = max(15.0, aisle_count * 3 + len(items) * 0.5)
    names = [i.product_name.lower() for i in items]
    complex_count = sum(1 for n in names if any(k in n for k in _COMPLEX_KEYWORDS))
    fresh_count = sum(1 for n in names if any(k in n for k in _FRESH_KEYWORDS))
    minutes += complex_count * 1.5 + fresh_count * 1.0
    return round(minutes)


class RouteBuilder:
    """Turns item lists into aisle-ordered routes."""

    def __init__(self, classifier: Classifier, min_confidence: float = 0.5) -> None:
        self._classifier = classifier
        self._min_confidence = min_confidence

    @property
    def classifier(self) -> Classifier:
        return self._classifier

    def aisle_for(self, category: str | None, confidence: float) -> AisleSpec:
        """Map a category to its aisle; unknown or weak ones are Unclassified."""
        if confidence < self._min_confidence:
            return UNCLASSIFIED
        return AISLE_LAYOUT.get(category or "", UNCLASSIFIED)

    def _classify_item(self, item: ShoppingItem) -> None:
        """Set category, confidence and shelf hint on the item in place."""
        if item.category and item.category_source != "heuristic":
            if item.category_source == "list":
                item.confidence = LIST_CATEGORY_CONFIDENCE
        else:
            result = self._classifier.classify(item.product_name)
            item.category = result.category
            item.confidence = result.confidence
            item.category_source = "heuristic"
        item.shelf_location = shelf_location(item.product_name, item.category)

    def group_items(self, items: list[ShoppingItem]) -> list[AisleGroup]:
        """Group items into aisles sorted by the canonical section order."""
        groups: dict[str, AisleGroup] = {}
        for item in items:
            self._classify_item(item)
            spec = self.aisle_for(item.category, item.confidence)
            group = groups.get(spec.name)
            if group is None:
                group = AisleGroup(
                    name=spec.name, section_label=spec.section_label, order=spec.order
                )
                groups[spec.name] = group
            group.items.append(item)
        return sorted(groups.values(), key=lambda g: g.order)

    def build_route(
        self, items: list[ShoppingItem], retailer_name: str | None = None
    ) -> Route:
        """Build a single-store route for an item list."""
        store = StoreSegment(
            retailer=Retailer(id=None, name=retailer_name or DEFAULT_RETAILER),
            items=list(items),
        )
        return self._route_for([store], plan_type="Shopping Plan")

    def build_plan_route(self, plan: TripPlan, store_index: int = 0) -> Route:
        """Build a route for a normalized plan, laid out for one segment."""
        return self._route_for(
            plan_segments(plan), plan_type=plan.plan_type, store_index=store_index
        )

    def _route_for(
        self, stores: list[StoreSegment], plan_type: str, store_index: int = 0
    ) -> Route:
        if not stores:
            raise ValueError("a route needs at least one store segment")
        store_index = min(max(store_index, 0), len(stores) - 1)
        route = Route(stores=stores, active_index=store_index, plan_type=plan_type)
        self.activate_segment(route, store_index)
        return route

    def activate_segment(self, route: Route, store_index: int) -> None:
        """Lay out the given segment into aisles and make it the active one."""
        store = route.stores[store_index]
        route.active_index = store_index
        route.aisle_groups = self.group_items(store.items)
        route.estimated_minutes = estimate_minutes(
            len(route.aisle_groups), store.items
        )
        route.reindex()
        logger.debug(
            "Laid out %s: %d aisles, %d items",
            store.retailer_name,
            len(route.aisle_groups),
            len(store.items),
        )

    def refinement_candidates(self, route: Route) -> list[ShoppingItem]:
        """Items of the active segment whose category came from the fast path."""
        return [
            item
            for aisle in route.aisle_groups
            for item in aisle.items
            if item.category_source == "heuristic"
        ]

    def apply_classification(
        self, route: Route, item_id: int, result: Classification
    ) -> bool:
        """Apply a better classification to an item on the given route.

        The item is updated only if the new confidence is higher. It moves
        to another aisle only when the new category implies one.

        Returns:
            True if the item changed aisle.
        """
        loc = route.locate(item_id)
        if loc is None or loc.aisle_index is None:
            return False
        aisle = route.aisle_groups[loc.aisle_index]
        item = next(i for i in aisle.items if i.id == item_id)
        if result.confidence <= item.confidence:
            return False

        item.category = result.category
        item.confidence = result.confidence
        item.category_source = "lookup"
        item.shelf_location = shelf_location(item.product_name, result.category)

        spec = self.aisle_for(result.category, result.confidence)
        if spec.name == aisle.name:
            return False
        route.place_item(item_id, spec.name, spec.section_label, spec.order)
        return True


def render_route(route: Route, completed_ids: set[int] | None = None) -> str:
    """Format the active segment of a route for terminal display."""
    completed_ids = completed_ids or set()
    lines: list[str] = []
    header = f"🛒 {route.retailer_name}"
    if route.is_multi_store:
        header += f" (store {route.active_index + 1} of {len(route.stores)})"
    lines.append(header)
    lines.append(f"⏱  about {route.estimated_minutes} min")

    for aisle in route.aisle_groups:
        status = aisle.completion(completed_ids)
        lines.append(f"{'─' * 50}")
        lines.append(
            f"  {aisle.name} · {aisle.section_label} "
            f"({status['completed']}/{status['total']})"
        )
        for item in aisle.items:
            mark = "✓" if item.id in completed_ids or item.is_completed else " "
            lines.append(
                f"   [{mark}] {item.product_name:<24} x{item.quantity:<3} "
                f"{item.shelf_location}"
            )

    if route.is_multi_store and route.has_next_store:
        lines.append(f"{'─' * 50}")
        for store in route.stores[route.active_index + 1:]:
            lines.append(f"  next: {store.retailer_name} ({len(store.items)} items)")
    return "\n".join(lines)
