"""In-memory classification cache with expiry and a size bound."""

from __future__ import annotations

import time
from collections import OrderedDict
from collections.abc import Callable

from . import Classification


def _normalize(product_name: str) -> str:
    return product_name.lower().strip()


class ClassificationCache:
    """Caches lookup results per normalized product name.

    Entries expire ``ttl`` seconds after they are stored. When more than
    ``max_size`` entries are held, the oldest are evicted first.
    """

    def __init__(
        self,
        ttl: float = 24 * 60 * 60,
        max_size: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl
        self._max_size = max_size
        self._clock = clock
        self._entries: OrderedDict[str, tuple[Classification, float]] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, product_name: str) -> Classification | None:
        key = _normalize(product_name)
        entry = self._entries.get(key)
        if entry is None:
            return None
        result, stored_at = entry
        if self._clock() >= stored_at + self._ttl:
            del self._entries[key]
            return None
        return result

    def put(self, product_name: str, result: Classification) -> None:
        key = _normalize(product_name)
        # Re-storing a name refreshes its age
        self._entries.pop(key, None)
        self._entries[key] = (result, self._clock())
        self._evict()

    def invalidate(self, product_name: str) -> None:
        self._entries.pop(_normalize(product_name), None)

    def _evict(self) -> None:
        now = self._clock()
        expired = [k for k, (_, t) in self._entries.items() if now >= t + self._ttl]
        for key in expired:
            del self._entries[key]
        while len(self._entries) > self._max_size:
            self._entries.popitem(last=False)
