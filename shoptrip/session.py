"""Persisted trip snapshots and the session repository interface."""

from __future__ import annotations

import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from .errors import SessionCorruptError

logger = logging.getLogger(__name__)

MAX_SESSION_AGE_HOURS = 24.0


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class TripSession:
    """A resumable snapshot of trip progress for one shopping list."""

    list_id: str
    plan_snapshot: dict[str, Any]
    current_store_index: int = 0
    current_aisle_index: int = 0
    completed_item_ids: set[int] = field(default_factory=set)
    has_started_shopping: bool = False
    is_completed: bool = False
    timestamp: int = field(default_factory=now_ms)

    def to_dict(self) -> dict[str, Any]:
        return {
            "listId": self.list_id,
            "planSnapshot": self.plan_snapshot,
            "currentStoreIndex": self.current_store_index,
            "currentAisleIndex": self.current_aisle_index,
            "completedItemIds": sorted(self.completed_item_ids),
            "hasStartedShopping": self.has_started_shopping,
            "isCompleted": self.is_completed,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TripSession:
        """Rebuild a session from its persisted form.

        Raises:
            SessionCorruptError: If a required field is missing or mistyped.
        """
        try:
            snapshot = data["planSnapshot"]
            if not isinstance(snapshot, dict):
                raise TypeError("planSnapshot must be an object")
            return cls(
                list_id=str(data["listId"]),
                plan_snapshot=snapshot,
                current_store_index=int(data.get("currentStoreIndex", 0)),
                current_aisle_index=int(data.get("currentAisleIndex", 0)),
                completed_item_ids={int(i) for i in data.get("completedItemIds", [])},
                has_started_shopping=bool(data.get("hasStartedShopping", False)),
                is_completed=bool(data.get("isCompleted", False)),
                timestamp=int(data["timestamp"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise SessionCorruptError(f"invalid session record: {e}") from e

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_json(cls, raw: str) -> TripSession:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise SessionCorruptError(f"unparsable session record: {e}") from e
        if not isinstance(data, dict):
            raise SessionCorruptError("session record is not an object")
        return cls.from_dict(data)

    def age_hours(self, now: int | None = None) -> float:
        now = now_ms() if now is None else now
        return (now - self.timestamp) / (60 * 60 * 1000)


class SessionStore(ABC):
    """Key-value persistence for trip sessions, scoped by list id."""

    @abstractmethod
    def load(self, list_id: str) -> TripSession | None:
        """Return the stored session, or None if there is none.

        Raises:
            SessionCorruptError: If the stored record cannot be parsed.
        """

    @abstractmethod
    def save(self, list_id: str, session: TripSession) -> None:
        """Store a session, replacing any previous one for the list."""

    @abstractmethod
    def clear(self, list_id: str) -> None:
        """Delete the stored session for the list, if any."""


class MemorySessionStore(SessionStore):
    """In-process store holding serialized records."""

    def __init__(self) -> None:
        self._records: dict[str, str] = {}

    def load(self, list_id: str) -> TripSession | None:
        raw = self._records.get(list_id)
        if raw is None:
            return None
        return TripSession.from_json(raw)

    def save(self, list_id: str, session: TripSession) -> None:
        self._records[list_id] = session.to_json()

    def clear(self, list_id: str) -> None:
        self._records.pop(list_id, None)


def load_resumable_session(
    store: SessionStore,
    list_id: str,
    now: int | None = None,
    max_age_hours: float = MAX_SESSION_AGE_HOURS,
) -> TripSession | None:
    """Read the session for a list and decide whether it can be offered.

    Completed and expired sessions are discarded. A corrupt record is
    deleted so the trip starts fresh from the supplied plan.
    """
    try:
        session = store.load(list_id)
    except SessionCorruptError as e:
        logger.warning("Discarding corrupt session for list %s: %s", list_id, e)
        store.clear(list_id)
        return None

    if session is None:
        return None
    if session.is_completed:
        logger.info("Session for list %s already completed, discarding", list_id)
        store.clear(list_id)
        return None
    if session.age_hours(now) > max_age_hours:
        logger.info(
            "Session for list %s is %.1fh old, discarding",
            list_id,
            session.age_hours(now),
        )
        store.clear(list_id)
        return None
    return session
