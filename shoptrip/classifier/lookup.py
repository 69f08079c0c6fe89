"""Base class for classifiers backed by a slower, more accurate lookup."""

from __future__ import annotations

import logging
from abc import abstractmethod

from . import Classification, Classifier
from .cache import ClassificationCache
from .heuristic import HeuristicClassifier

logger = logging.getLogger(__name__)


class LookupClassifier(Classifier):
    """Heuristic fast path plus a cached asynchronous lookup.

    Lookup failures are never surfaced: the heuristic result is returned
    instead and nothing is cached, so the next call retries the lookup.
    """

    def __init__(
        self,
        cache_ttl: float = 24 * 60 * 60,
        cache_max_size: int = 1000,
        fallback: Classifier | None = None,
        cache: ClassificationCache | None = None,
    ) -> None:
        self._fallback = fallback or HeuristicClassifier()
        self._cache = cache or ClassificationCache(
            ttl=cache_ttl, max_size=cache_max_size
        )

    @property
    def cache(self) -> ClassificationCache:
        return self._cache

    def classify(self, product_name: str) -> Classification:
        return self._fallback.classify(product_name)

    async def classify_async(self, product_name: str) -> Classification:
        cached = self._cache.get(product_name)
        if cached is not None:
            return cached

        try:
            result = await self._lookup(product_name)
        except Exception as e:
            logger.warning("Classification lookup failed for %r: %s", product_name, e)
            return self._fallback.classify(product_name)

        self._cache.put(product_name, result)
        return result

    @abstractmethod
    async def _lookup(self, product_name: str) -> Classification:
        """Perform the uncached lookup. May raise; callers fall back."""
        ...
