"""Classifier backed by the list service's batch categorization endpoint."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from . import Classification
from .lookup import LookupClassifier

logger = logging.getLogger(__name__)

_BATCH_PATH = "/api/products/batch-categorize"
_FEEDBACK_PATH = "/api/products/categorization-feedback"


def _parse_result(data: dict[str, Any]) -> Classification:
    """Extract a Classification from one batch-categorize result entry."""
    category = data["category"]
    return Classification(
        category=category["category"],
        confidence=float(category["confidence"]),
    )


class RemoteClassifier(LookupClassifier):
    """Look up categories via ``POST /api/products/batch-categorize``."""

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:5000",
        api_key: str = "",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self._base_url = base_url
        self._api_key = api_key
        self._timeout = timeout
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {}
            if self._api_key:
                headers["X-API-Key"] = self._api_key
            self._client = httpx.AsyncClient(
                base_url=self._base_url, timeout=self._timeout, headers=headers
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _post_batch(self, names: list[str]) -> list[dict[str, Any]]:
        resp = await self._get_client().post(
            _BATCH_PATH,
            json={"products": [{"productName": n, "quantity": 1, "unit": "COUNT"} for n in names]},
        )
        resp.raise_for_status()
        results = resp.json()
        if not isinstance(results, list) or len(results) != len(names):
            raise ValueError(
                f"expected {len(names)} categorization results, got {results!r}"
            )
        return results

    async def _lookup(self, product_name: str) -> Classification:
        results = await self._post_batch([product_name])
        return _parse_result(results[0])

    async def classify_many(self, product_names: list[str]) -> list[Classification]:
        """Classify several names, sending only cache misses in one request.

        On failure the uncached names get their heuristic classification.
        """
        results: list[Classification | None] = [
            self._cache.get(n) for n in product_names
        ]
        missing = [i for i, r in enumerate(results) if r is None]

        if missing:
            names = [product_names[i] for i in missing]
            try:
                raw = await self._post_batch(names)
                fetched = [_parse_result(r) for r in raw]
            except Exception as e:
                logger.warning("Batch categorization failed: %s", e)
                fetched = [self._fallback.classify(n) for n in names]
            else:
                for name, result in zip(names, fetched):
                    self._cache.put(name, result)
            for i, result in zip(missing, fetched):
                results[i] = result

        return [r for r in results if r is not None]

    async def submit_feedback(
        self,
        product_name: str,
        original_category: str,
        corrected_category: str,
        confidence: float = 1.0,
    ) -> bool:
        """Report a user correction and drop the cached result for the name."""
        try:
            resp = await self._get_client().post(
                _FEEDBACK_PATH,
                json={
                    "productName": product_name,
                    "originalCategory": original_category,
                    "correctedCategory": corrected_category,
                    "confidence": confidence,
                },
            )
            resp.raise_for_status()
        except Exception as e:
            logger.warning("Failed to submit categorization feedback: %s", e)
            return False

        self._cache.invalidate(product_name)
        return True
