"""Product classifier base class, data types, and factory."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..config import TripConfig


@dataclass(frozen=True)
class Classification:
    category: str  # "Produce", "Dairy & Eggs", ...
    confidence: float  # 0.0 - 1.0


class Classifier(ABC):
    """Maps a product name to a store category.

    ``classify`` is the synchronous fast path. ``classify_async`` may do a
    slower, more accurate lookup; by default it returns the fast result.
    """

    @abstractmethod
    def classify(self, product_name: str) -> Classification:
        ...

    async def classify_async(self, product_name: str) -> Classification:
        return self.classify(product_name)

    async def aclose(self) -> None:
        """Release any network resources held by the classifier."""


def create_classifier(config: TripConfig) -> Classifier:
    """Create a classifier based on configuration."""
    backend_name = config.classifier.backend

    match backend_name:
        case "heuristic":
            from .heuristic import HeuristicClassifier

            return HeuristicClassifier()
        case "remote":
            from .remote import RemoteClassifier

            return RemoteClassifier(
                base_url=config.backend.base_url,
                api_key=config.backend.api_key,
                timeout=config.backend.timeout,
                cache_ttl=config.classifier.cache_ttl_seconds,
                cache_max_size=config.classifier.cache_max_size,
            )
        case "claude":
            from .claude import ClaudeClassifier

            return ClaudeClassifier(
                api_key=config.classifier.claude.api_key,
                model=config.classifier.claude.model,
                cache_ttl=config.classifier.cache_ttl_seconds,
                cache_max_size=config.classifier.cache_max_size,
            )
        case _:
            raise ValueError(
                f"Unknown classifier backend: {backend_name!r} "
                f"(choose heuristic / remote / claude)"
            )


__all__ = ["Classification", "Classifier", "create_classifier"]
