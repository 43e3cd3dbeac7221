"""
OrderDesk HTTP Client

Async client used by the customer tracking page, the admin dashboard and
the scripts. The real-time channel is best-effort, so both screens also
poll: ``poll_order`` follows one order until it reaches a terminal status,
``poll_orders`` refreshes the dashboard list.

Usage:
    async with OrderDeskClient("http://localhost:5000") as client:
        placed = await client.place_order({...})
        async for order in client.poll_order(placed["trackingId"]):
            print(order["status"])
"""

import asyncio
import logging
from typing import Any, AsyncIterator, Optional

import httpx

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = {"served", "delivered", "cancelled"}


class ApiError(Exception):
    """Non-2xx response from the API."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class OrderDeskClient:
    def __init__(
        self,
        base_url: str = "http://localhost:5000",
        token: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        self.token = token
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def __aenter__(self) -> "OrderDeskClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # =========================================================================
    # TRANSPORT
    # =========================================================================

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        response = await self._client.request(method, path, headers=headers, **kwargs)
        if response.is_error:
            try:
                message = response.json().get("msg", response.text)
            except ValueError:
                message = response.text
            raise ApiError(response.status_code, message)
        if response.status_code == 204:
            return None
        return response.json()

    # =========================================================================
    # AUTH / MENU
    # =========================================================================

    async def login(self, email: str, password: str) -> dict[str, Any]:
        data = await self._request("POST", "/api/auth/login", json={"email": email, "password": password})
        self.token = data["token"]
        return data["user"]

    async def logout(self) -> None:
        await self._request("POST", "/api/auth/logout")
        self.token = None

    async def get_menu(self, available: Optional[bool] = None) -> list[dict[str, Any]]:
        params = {} if available is None else {"available": str(available).lower()}
        return await self._request("GET", "/api/menu", params=params)

    # =========================================================================
    # ORDERS
    # =========================================================================

    async def place_order(self, payload: dict[str, Any]) -> dict[str, Any]:
        data = await self._request("POST", "/api/orders", json=payload)
        return data["order"]

    async def track(self, tracking_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/api/orders/track/{tracking_id}")

    async def track_by_whatsapp(self, number: str) -> dict[str, Any]:
        return await self._request("GET", f"/api/orders/whatsapp/{number}")

    async def get_order(self, order_id: int) -> dict[str, Any]:
        return await self._request("GET", f"/api/orders/{order_id}")

    async def list_orders(self, **filters: Any) -> list[dict[str, Any]]:
        params = {k: v for k, v in filters.items() if v is not None}
        return await self._request("GET", "/api/orders", params=params)

    async def stats(self) -> dict[str, Any]:
        return await self._request("GET", "/api/orders/stats")

    async def update_status(
        self,
        order_id: int,
        status: Optional[str] = None,
        paid: Optional[bool] = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {}
        if status is not None:
            body["status"] = status
        if paid is not None:
            body["paid"] = paid
        data = await self._request("PUT", f"/api/orders/{order_id}/status", json=body)
        return data["order"]

    # =========================================================================
    # POLLING
    # =========================================================================

    async def poll_order(
        self,
        tracking_id: str,
        interval: float = 5.0,
        max_polls: Optional[int] = None,
    ) -> AsyncIterator[dict[str, Any]]:
        """
        Yield the order on the first poll and whenever status or paid changes.

        Stops after a terminal status or ``max_polls`` polls. Network errors
        keep the last known state and retry on the next tick; API errors
        (e.g. 404) propagate.
        """
        last: Optional[tuple[str, bool]] = None
        polls = 0
        while max_polls is None or polls < max_polls:
            polls += 1
            try:
                order = await self.track(tracking_id)
            except httpx.TransportError as e:
                logger.warning(f"Polling #{tracking_id} failed, keeping last state: {e}")
            else:
                state = (order["status"], order["paid"])
                if state != last:
                    last = state
                    yield order
                if order["status"] in TERMINAL_STATUSES:
                    return
            await asyncio.sleep(interval)

    async def poll_orders(
        self,
        interval: float = 5.0,
        max_polls: Optional[int] = None,
        **filters: Any,
    ) -> AsyncIterator[list[dict[str, Any]]]:
        """Dashboard refresh: yield the newest-first list whenever it changes."""
        last_signature = None
        polls = 0
        while max_polls is None or polls < max_polls:
            polls += 1
            try:
                orders = await self.list_orders(**filters)
            except httpx.TransportError as e:
                logger.warning(f"Dashboard refresh failed, keeping last list: {e}")
            else:
                signature = tuple((o["id"], o["status"], o["paid"], o["updatedAt"]) for o in orders)
                if signature != last_signature:
                    last_signature = signature
                    yield orders
            await asyncio.sleep(interval)
