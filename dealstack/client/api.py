"""Async REST client for the DealStack API."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog

from dealstack.config import get_config
from dealstack.query.filters import ListFilter

logger = structlog.get_logger()

COLLECTIONS = ("customers", "worksheets", "invoices", "orders", "tickets")


class ApiError(Exception):
    """A failed API request.

    ``status`` is 0 when the request never got a response (connection
    refused, timeout). ``field_errors`` carries the per-field messages of a
    422 response, keyed like ``items.0.quantity``.
    """

    def __init__(
        self,
        status: int,
        message: str,
        field_errors: dict[str, str] | None = None,
    ):
        self.status = status
        self.message = message
        self.field_errors = field_errors or {}
        super().__init__(f"{status}: {message}" if status else message)


@dataclass
class ListResult:
    data: list[dict[str, Any]] = field(default_factory=list)
    stats: dict[str, Any] | None = None


def _collection(name: str) -> str:
    if name not in COLLECTIONS:
        raise ValueError(f"Unknown collection: {name}")
    return name


class DealStackClient:
    """Client for the DealStack REST API.

    The session cookie set by ``login()`` is kept on the underlying
    ``httpx.AsyncClient`` and sent with every later request.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if base_url is None or timeout is None:
            client_config = get_config().client
            base_url = base_url or client_config.api_url
            timeout = client_config.timeout if timeout is None else timeout
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self.client.request(method, path, **kwargs)
        except httpx.RequestError as exc:
            logger.warning("api_request_failed", method=method, path=path, error=str(exc))
            raise ApiError(0, f"Request failed: {exc}") from exc

        if response.is_error:
            raise self._error_from(response)
        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError:
            logger.warning("api_invalid_json", method=method, path=path, status=response.status_code)
            raise ApiError(response.status_code, "Invalid JSON response") from None
        if not isinstance(body, dict):
            raise ApiError(response.status_code, "Invalid JSON response")
        return body

    @staticmethod
    def _error_from(response: httpx.Response) -> ApiError:
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        message = body.get("message") or body.get("detail") or response.reason_phrase
        return ApiError(response.status_code, str(message), body.get("errors"))

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    async def login(self, email: str, password: str) -> dict[str, Any]:
        body = await self._request("POST", "/auth/login", json={"email": email, "password": password})
        return body["data"]

    async def logout(self) -> None:
        await self._request("POST", "/auth/logout")

    async def me(self) -> dict[str, Any]:
        return (await self._request("GET", "/auth/me"))["data"]

    async def users(self) -> list[dict[str, Any]]:
        return (await self._request("GET", "/auth/users"))["data"]

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    async def list(self, collection: str, list_filter: ListFilter | None = None) -> ListResult:
        """List a collection. Filters that are not set never reach the query string."""
        params = list_filter.to_params() if list_filter else {}
        body = await self._request("GET", f"/{_collection(collection)}", params=params)
        return ListResult(data=body.get("data", []), stats=body.get("stats"))

    async def get(self, collection: str, record_id: str) -> dict[str, Any]:
        return (await self._request("GET", f"/{_collection(collection)}/{record_id}"))["data"]

    async def create(self, collection: str, payload: dict[str, Any]) -> dict[str, Any]:
        return (await self._request("POST", f"/{_collection(collection)}", json=payload))["data"]

    async def update(
        self, collection: str, record_id: str, payload: dict[str, Any]
    ) -> dict[str, Any]:
        path = f"/{_collection(collection)}/{record_id}"
        return (await self._request("PUT", path, json=payload))["data"]

    async def delete(self, collection: str, record_id: str) -> None:
        await self._request("DELETE", f"/{_collection(collection)}/{record_id}")

    async def update_status(self, collection: str, record_id: str, status: str) -> dict[str, Any]:
        """PATCH the status of an invoice, order or ticket."""
        path = f"/{_collection(collection)}/{record_id}/status"
        return (await self._request("PATCH", path, json={"status": status}))["data"]

    async def update_progress(
        self,
        worksheet_id: str,
        status: str | None = None,
        progress: int | None = None,
    ) -> dict[str, Any]:
        payload = {k: v for k, v in {"status": status, "progress": progress}.items() if v is not None}
        path = f"/worksheets/{worksheet_id}/progress"
        return (await self._request("PATCH", path, json=payload))["data"]

    async def add_ticket_message(self, ticket_id: str, body: str) -> dict[str, Any]:
        path = f"/tickets/{ticket_id}/messages"
        return (await self._request("POST", path, json={"body": body}))["data"]

    async def rate_ticket(self, ticket_id: str, rating: int) -> dict[str, Any]:
        path = f"/tickets/{ticket_id}/rating"
        return (await self._request("POST", path, json={"rating": rating}))["data"]

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    async def dashboard_stats(self) -> dict[str, Any]:
        return (await self._request("GET", "/dashboard/stats"))["data"]

    async def recent_activity(self, limit: int | None = None) -> list[dict[str, Any]]:
        params = {"limit": limit} if limit else {}
        return (await self._request("GET", "/dashboard/recent", params=params))["data"]

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> DealStackClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
