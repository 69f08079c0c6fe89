"""HTTP implementation of ListBackend.

Thin wrapper around httpx for the list service's REST endpoints. Error
responses and transport failures raise BackendError.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from ..errors import BackendError
from .base import ListBackend
from .models import ItemUpdate, LoyaltyCard, TripReport

logger = logging.getLogger(__name__)


class ListAPIClient(ListBackend):
    """ListBackend that talks to the list service over HTTP."""

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:5000",
        api_key: str = "",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {}
            if self._api_key:
                headers["X-API-Key"] = self._api_key
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers=headers,
                transport=self._transport,
            )
        return self._client

    async def __aenter__(self) -> ListAPIClient:
        self._get_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _raise_for_status(self, resp: httpx.Response) -> None:
        """Raise BackendError on non-2xx responses."""
        if resp.status_code >= 400:
            try:
                body = resp.json()
            except ValueError:
                body = None
            detail = resp.text
            if isinstance(body, dict):
                detail = body.get("message") or body.get("detail") or detail
            raise BackendError(message=str(detail), status_code=resp.status_code)

    @staticmethod
    def _json_object(resp: httpx.Response) -> dict[str, Any] | None:
        """Decode a response body that must be a JSON object or null."""
        try:
            data = resp.json()
        except ValueError as e:
            raise BackendError(
                f"unreadable response from {resp.request.url.path}: {e}",
                status_code=resp.status_code,
            ) from e
        if data is not None and not isinstance(data, dict):
            raise BackendError(
                f"expected an object from {resp.request.url.path}, "
                f"got {type(data).__name__}",
                status_code=resp.status_code,
            )
        return data

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            resp = await self._get_client().request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise BackendError(f"{method} {path} failed: {e}") from e
        self._raise_for_status(resp)
        return resp

    async def update_item(self, item_id: int, update: ItemUpdate) -> None:
        """PATCH /api/shopping-list/items/{id}."""
        await self._request(
            "PATCH", f"/api/shopping-list/items/{item_id}", json=update.to_payload()
        )

    async def delete_item(self, item_id: int) -> None:
        """DELETE /api/shopping-list/items/{id}."""
        await self._request("DELETE", f"/api/shopping-list/items/{item_id}")

    async def record_trip(self, report: TripReport) -> None:
        """POST /api/shopping-trip/complete."""
        await self._request(
            "POST", "/api/shopping-trip/complete", json=report.to_payload()
        )

    async def get_loyalty_card(self, retailer_name: str) -> LoyaltyCard | None:
        """GET /api/user/loyalty-card/{retailer}; 404 means no card."""
        path = f"/api/user/loyalty-card/{quote(retailer_name, safe='')}"
        try:
            resp = await self._request("GET", path)
        except BackendError as e:
            if e.status_code == 404:
                return None
            raise
        data = self._json_object(resp)
        if not data:
            return None
        return LoyaltyCard.from_dict(data, retailer_name)

    async def get_list(self, list_id: str) -> dict[str, Any]:
        """GET /api/shopping-lists/{id}."""
        resp = await self._request("GET", f"/api/shopping-lists/{list_id}")
        return self._json_object(resp) or {}
