"""Shopping trip orchestration: aisle routes, resumable sessions, multi-store trips."""

from .backend import ItemUpdate, ListAPIClient, ListBackend, LoyaltyCard, TripReport
from .classifier import Classification, Classifier, create_classifier
from .config import TripConfig, load_config
from .coordinator import MultiStoreCoordinator, UncompletedAction
from .db import SQLiteSessionStore
from .disposition import DispositionAction, DispositionHandler
from .errors import BackendError, InvalidTransitionError, SessionCorruptError, TripError
from .machine import TripStateMachine, start_trip
from .models import AisleGroup, ItemLocation, Retailer, Route, ShoppingItem, StoreSegment
from .phases import (
    AwaitingLoyaltyAck,
    AwaitingUncompletedDecision,
    Notice,
    Shopping,
    TripComplete,
)
from .plan import ItemListPlan, MultiStorePlan, SingleStorePlan, TripPlan, parse_plan
from .route import RouteBuilder, render_route
from .session import MemorySessionStore, SessionStore, TripSession, load_resumable_session

__all__ = [
    "ShoppingItem",
    "AisleGroup",
    "StoreSegment",
    "Route",
    "Retailer",
    "ItemLocation",
    "TripPlan",
    "SingleStorePlan",
    "MultiStorePlan",
    "ItemListPlan",
    "parse_plan",
    "Classification",
    "Classifier",
    "create_classifier",
    "RouteBuilder",
    "render_route",
    "TripSession",
    "SessionStore",
    "MemorySessionStore",
    "SQLiteSessionStore",
    "load_resumable_session",
    "ListBackend",
    "ListAPIClient",
    "ItemUpdate",
    "TripReport",
    "LoyaltyCard",
    "TripStateMachine",
    "start_trip",
    "Shopping",
    "AwaitingLoyaltyAck",
    "AwaitingUncompletedDecision",
    "TripComplete",
    "Notice",
    "DispositionAction",
    "DispositionHandler",
    "UncompletedAction",
    "MultiStoreCoordinator",
    "TripError",
    "BackendError",
    "SessionCorruptError",
    "InvalidTransitionError",
    "TripConfig",
    "load_config",
]
