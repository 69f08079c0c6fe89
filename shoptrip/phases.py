"""Trip phases and user-facing notices."""

from __future__ import annotations

from dataclasses import dataclass

from .backend import LoyaltyCard


@dataclass(frozen=True)
class Shopping:
    store: int
    aisle: int


@dataclass(frozen=True)
class AwaitingLoyaltyAck:
    store: int
    card: LoyaltyCard


@dataclass(frozen=True)
class AwaitingUncompletedDecision:
    store: int
    item_ids: tuple[int, ...]


@dataclass(frozen=True)
class TripComplete:
    pass


Phase = Shopping | AwaitingLoyaltyAck | AwaitingUncompletedDecision | TripComplete


@dataclass(frozen=True)
class Notice:
    """A transient message for the shopper. Failures never end the trip."""

    title: str
    message: str
    level: str = "error"
