"""
Async HTTP client for the EventHub API.

The session cookie set by login/register is kept in the underlying
httpx cookie jar, so subsequent calls are authenticated automatically.
"""

from datetime import datetime
from typing import Any, Iterable, Optional

import httpx

from eventhub.core.logging import get_logger

logger = get_logger(__name__)


class ApiError(Exception):
    """Non-2xx response from the API. `message` is the server's error string."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class EventHubClient:
    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ):
        self._http = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)

    async def __aenter__(self) -> "EventHubClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        response = await self._http.request(method, f"/api{path}", **kwargs)
        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict) and body.get("error"):
                message = str(body["error"])
            else:
                message = response.text or response.reason_phrase
            logger.info("api_request_failed", method=method, path=path, status_code=response.status_code)
            raise ApiError(response.status_code, message)
        return response.json()

    # Auth

    async def register(self, name: str, email: str, password: str, admin_code: Optional[str] = None) -> dict:
        body = {"name": name, "email": email, "password": password}
        if admin_code:
            body["admin_code"] = admin_code
        return await self._request("POST", "/auth/register", json=body)

    async def login(self, email: str, password: str) -> dict:
        return await self._request("POST", "/auth/login", json={"email": email, "password": password})

    async def logout(self) -> None:
        await self._request("POST", "/auth/logout")
        self._http.cookies.clear()

    async def me(self) -> dict:
        return await self._request("GET", "/auth/me")

    # Events

    async def list_events(
        self,
        *,
        category: Iterable[str] = (),
        location: Iterable[str] = (),
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        search: Optional[str] = None,
        created_by: Optional[int] = None,
    ) -> list[dict]:
        params: dict[str, Any] = {}
        if category:
            params["category"] = ",".join(category)
        if location:
            params["location"] = ",".join(location)
        if start_date is not None:
            params["start_date"] = start_date.isoformat()
        if end_date is not None:
            params["end_date"] = end_date.isoformat()
        if search:
            params["search"] = search
        if created_by is not None:
            params["created_by"] = created_by
        return await self._request("GET", "/events", params=params)

    async def get_event(self, event_id: int) -> dict:
        return await self._request("GET", f"/events/{event_id}")

    async def popular_events(self, limit: int = 10) -> list[dict]:
        return await self._request("GET", "/events/popular", params={"limit": limit})

    # Bookings

    async def book(self, event_id: int) -> dict:
        return await self._request("POST", "/bookings", json={"event_id": event_id})

    async def cancel_booking(self, booking_id: int) -> dict:
        return await self._request("DELETE", f"/bookings/{booking_id}")

    async def list_bookings(self) -> list[dict]:
        return await self._request("GET", "/bookings")
