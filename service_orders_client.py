"""Service Orders API client.

A thin wrapper around the REST surface of the Service Orders API using
the ``requests`` library.  Every public method returns a tuple
``(data, error)``: on success ``error`` is ``None``; on failure ``data``
is empty and ``error`` is a dictionary with ``status_code``, ``kind`` and
``message`` taken from the API's error envelope.

Example::

    client = ServiceOrdersClient(base_url="http://localhost:8000")
    client.login("user@example.com", "secret")
    cart, error = client.get_cart()
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

import requests


logger = logging.getLogger(__name__)

Error = Dict[str, Any]


class ServiceOrdersClient:
    """Client for the ``/api/v1/service_orders`` endpoints."""

    def __init__(
        self,
        *,
        base_url: str,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        api_prefix: str = "/api/v1",
        timeout: float = 15,
    ) -> None:
        """Initialise the API client.

        Args:
            base_url: Base URL of the server, e.g. ``https://example.com``.
            api_key: Optional bearer token sent in the ``Authorization``
                header.  ``login`` sets it as well.
            session: Optional requests session.  If not supplied a
                session will be created automatically.
            api_prefix: Path prefix under which the API is mounted.
            timeout: Per‑request timeout in seconds.
        """
        self.base_url = base_url.rstrip("/") + api_prefix
        self.api_key = api_key
        self.session = session or requests.Session()
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Low level HTTP helpers
    # ------------------------------------------------------------------
    def _request(
        self, method: str, path: str, *, params: Dict[str, Any] | None = None,
        json_body: Any | None = None
    ) -> Tuple[Optional[Any], Optional[Error]]:
        """Perform an HTTP request to the API.

        Returns ``(data, None)`` on success, where ``data`` is the parsed
        JSON body or ``None`` for empty responses, and ``(None, error)``
        on failure.
        """
        url = f"{self.base_url}{path}"
        headers: Dict[str, str] = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        logger.debug("Sending %s request to %s", method, url)
        try:
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=json_body,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("API request failed: %s", exc)
            return None, {"status_code": None, "kind": None, "message": str(exc)}

        if response.status_code >= 400:
            error = self._error_from(response)
            logger.error("API request failed (%s): %s", error["status_code"], error["message"])
            return None, error
        if response.content:
            return response.json(), None
        return None, None

    @staticmethod
    def _error_from(response: Any) -> Error:
        kind = None
        message = ""
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            kind = body["error"].get("kind")
            message = body["error"].get("message") or ""
        if not message:
            message = response.text or f"HTTP {response.status_code}"
        return {"status_code": response.status_code, "kind": kind, "message": message}

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------
    def login(self, email: str, password: str) -> Tuple[bool, Optional[Error]]:
        """Obtain a token for ``email`` and use it for subsequent calls."""
        data, error = self._request("POST", "/users/login", json_body={"email": email, "password": password})
        if error:
            return False, error
        self.api_key = data["access_token"]
        return True, None

    # ------------------------------------------------------------------
    # Service order operations
    # ------------------------------------------------------------------
    def list_service_orders(self, expand: bool = False) -> Tuple[List[Dict[str, Any]], Optional[Error]]:
        """Return the caller's orders (hrefs only unless ``expand``)."""
        params = {"expand": "resources"} if expand else None
        data, error = self._request("GET", "/service_orders", params=params)
        if error:
            return [], error
        return data.get("resources", []), None

    def get_service_order(self, order_id: Any) -> Tuple[Optional[Dict[str, Any]], Optional[Error]]:
        return self._request("GET", f"/service_orders/{order_id}")

    def get_cart(self) -> Tuple[Optional[Dict[str, Any]], Optional[Error]]:
        """Return the caller's current shopping cart.

        A ``not_found`` error means the caller has no cart yet.
        """
        return self.get_service_order("cart")

    def create_service_order(
        self, name: str, state: Optional[str] = None
    ) -> Tuple[Optional[Dict[str, Any]], Optional[Error]]:
        body: Dict[str, Any] = {"name": name}
        if state is not None:
            body["state"] = state
        data, error = self._request("POST", "/service_orders", json_body=body)
        if error:
            return None, error
        return data["results"][0], None

    def create_service_orders(
        self, orders: Iterable[Dict[str, Any]]
    ) -> Tuple[List[Dict[str, Any]], Optional[Error]]:
        body = {"action": "create", "resources": list(orders)}
        data, error = self._request("POST", "/service_orders", json_body=body)
        if error:
            return [], error
        return data["results"], None

    def update_service_order(
        self, order_id: Any, **fields: Any
    ) -> Tuple[Optional[Dict[str, Any]], Optional[Error]]:
        body = {"action": "edit", "resource": fields}
        return self._request("POST", f"/service_orders/{order_id}", json_body=body)

    def update_service_orders(
        self, updates: Iterable[Dict[str, Any]]
    ) -> Tuple[List[Dict[str, Any]], Optional[Error]]:
        """Edit several orders; each update must carry an ``id``."""
        body = {"action": "edit", "resources": list(updates)}
        data, error = self._request("POST", "/service_orders", json_body=body)
        if error:
            return [], error
        return data["results"], None

    def delete_service_order(self, order_id: Any, via_post: bool = False) -> Tuple[bool, Optional[Error]]:
        if via_post:
            _, error = self._request("POST", f"/service_orders/{order_id}", json_body={"action": "delete"})
        else:
            _, error = self._request("DELETE", f"/service_orders/{order_id}")
        return error is None, error

    def delete_service_orders(self, order_ids: Iterable[Any]) -> Tuple[List[Dict[str, Any]], Optional[Error]]:
        body = {"action": "delete", "resources": [{"id": order_id} for order_id in order_ids]}
        data, error = self._request("POST", "/service_orders", json_body=body)
        if error:
            return [], error
        return data["results"], None
