"""Shared fixtures for trip engine tests."""

from unittest.mock import AsyncMock

import pytest

from shoptrip.backend import ListBackend
from shoptrip.classifier.heuristic import HeuristicClassifier
from shoptrip.machine import TripStateMachine
from shoptrip.plan import parse_plan
from shoptrip.route import RouteBuilder
from shoptrip.session import MemorySessionStore

# id: name; the heuristic puts these into three sections
SIX_ITEMS = [
    (1, "Bananas"),
    (2, "Whole Milk"),
    (3, "Chicken Breast"),
    (4, "Apples"),
    (5, "Eggs"),
    (6, "Ground Beef"),
]


def plan_payload(*stores: tuple[str, list[tuple[int, str]]]) -> dict:
    return {
        "planType": "Shopping Plan",
        "stores": [
            {
                "retailer": {"id": index + 1, "name": name},
                "items": [{"id": i, "productName": n} for i, n in items],
            }
            for index, (name, items) in enumerate(stores)
        ],
    }


def seed_raw_session(store, list_id: str, payload: str) -> None:
    """Write an unvalidated payload straight into a SQLiteSessionStore."""
    conn = store._get_conn()
    conn.execute(
        "INSERT OR REPLACE INTO trip_sessions (list_id, payload) VALUES (?, ?)",
        (list_id, payload),
    )
    conn.commit()


@pytest.fixture
def backend():
    """A ListBackend whose calls all succeed and that knows no loyalty cards."""
    mock = AsyncMock(spec=ListBackend)
    mock.get_loyalty_card.return_value = None
    return mock


@pytest.fixture
def builder():
    return RouteBuilder(HeuristicClassifier())


@pytest.fixture
def sessions():
    return MemorySessionStore()


@pytest.fixture
def make_trip(builder, backend, sessions):
    """Build a TripStateMachine from (retailer, [(id, name), ...]) stores."""

    def make(*stores, list_id="42"):
        plan = parse_plan(plan_payload(*stores))
        route = builder.build_plan_route(plan)
        return TripStateMachine(route, builder, backend, sessions, list_id)

    return make
