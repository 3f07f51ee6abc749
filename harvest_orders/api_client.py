"""
Order service REST client (requests). One instance per caller, carrying that caller's bearer token;
the underlying HTTP session is shared.
"""
import logging
from typing import Any, Protocol

import requests

from harvest_orders.config import settings
from harvest_orders.metrics import order_api_errors_total

logger = logging.getLogger(__name__)

_session: requests.Session | None = None


class OrderApiError(Exception):
    """Non-2xx answer from the order service, or the service could not be reached."""
    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(message)


class OrderUpdater(Protocol):
    def update_order(self, order_id: str, changes: dict) -> dict:
        ...


def get_session() -> requests.Session:
    global _session
    if _session is None:
        _session = requests.Session()
        _session.headers.update({"Content-Type": "application/json"})
    return _session


def close_session() -> None:
    global _session
    if _session is not None:
        _session.close()
        _session = None


class OrderApiClient:
    def __init__(
        self,
        token: str,
        base_url: str | None = None,
        session: requests.Session | None = None,
        timeout: float | None = None,
    ):
        self.token = token
        self.base_url = (base_url or settings.orders_api_url).rstrip("/")
        self.session = session or get_session()
        self.timeout = timeout or settings.orders_api_timeout_seconds

    def _request(
        self,
        method: str,
        path: str,
        operation: str,
        default_error: str,
        body: dict | None = None,
        params: dict | None = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.request(
                method,
                url,
                json=body,
                params=params,
                headers={"Authorization": f"Bearer {self.token}"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            order_api_errors_total.labels(operation=operation).inc()
            logger.warning("Order service unreachable (%s %s): %s", method, path, e)
            raise OrderApiError(502, "Order service unavailable") from e

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {"data": data}

        if not resp.ok:
            order_api_errors_total.labels(operation=operation).inc()
            message = data.get("message") or default_error
            logger.warning("Order service %s %s -> %d: %s", method, path, resp.status_code, message)
            raise OrderApiError(resp.status_code, message)
        return data

    def get_order(self, order_id: str, seller: bool = False) -> dict:
        prefix = "/farmer/orders" if seller else "/orders"
        data = self._request("GET", f"{prefix}/{order_id}", "get_order", "Failed to fetch order")
        return data.get("data") or {}

    def list_orders(
        self,
        status: str | None = None,
        page: int = 1,
        limit: int = 10,
        seller: bool = False,
    ) -> dict:
        """Returns the whole envelope so pagination/stats pass through."""
        params: dict[str, Any] = {"page": page, "limit": limit}
        if status:
            params["status"] = status
        path = "/farmer/orders" if seller else "/orders"
        return self._request("GET", path, "list_orders", "Failed to fetch orders", params=params)

    def update_order(self, order_id: str, changes: dict) -> dict:
        """PATCH the seller-side order. changes: {status, tracking_number?, estimated_arrival?, cancelled_reason?}"""
        data = self._request(
            "PATCH",
            f"/farmer/orders/{order_id}",
            "update_order",
            "Failed to update order",
            body=changes,
        )
        return data.get("data") or {}

    def cancel_order(self, order_id: str, reason: str) -> dict:
        data = self._request(
            "PATCH",
            f"/orders/{order_id}/cancel",
            "cancel_order",
            "Failed to cancel order",
            body={"reason": reason},
        )
        return data.get("data") or {}
