"""Transports the cart client uses to reach the cart server actions.

``HttpCartApi`` talks to the Flask API over HTTP; identity travels in the
session cookie held by its ``requests.Session``. ``LocalCartApi`` calls a
``CartService`` in-process with an identity callable. Both raise
``CartError`` subclasses on failure.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterable, Optional

import requests

from common.errors import NetworkFailure, from_response
from common.services.cart_service import CartService


logger = logging.getLogger(__name__)


class CartApi(ABC):
    @abstractmethod
    def get_or_create_cart(self, *, detail: bool = False) -> Optional[Dict]:
        """Current cart or None for a guest."""

    @abstractmethod
    def add_to_cart(self, variant_id: str, quantity: int = 1) -> Dict:
        """Add ``quantity`` to the variant's line, creating it if needed."""

    @abstractmethod
    def update_cart_item_quantity(self, item_id: str, quantity: int) -> Dict:
        """Set a line quantity; <= 0 removes the line."""

    @abstractmethod
    def remove_from_cart(self, item_id: str) -> Dict:
        """Delete one line."""

    @abstractmethod
    def clear_cart(self) -> Dict:
        """Delete every line of the cart."""

    @abstractmethod
    def get_cart_item_count(self) -> int:
        """Total quantity across lines, 0 for a guest."""

    @abstractmethod
    def migrate_guest_cart(self, items: Iterable[Dict]) -> Dict:
        """Merge guest lines into the signed-in cart."""


class HttpCartApi(CartApi):
    def __init__(self, base_url: str, *, timeout: float = 10.0, session: Optional[Any] = None) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session if session is not None else requests.Session()

    def _request(self, method: str, path: str, **kwargs) -> Dict:
        url = f"{self._base_url}/api/{path.lstrip('/')}"
        try:
            response = self._session.request(method, url, timeout=self._timeout, **kwargs)
        except requests.RequestException as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise NetworkFailure(f"{method} {url} failed: {exc}") from exc
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if response.status_code >= 400:
            raise from_response(response.status_code, payload)
        if not isinstance(payload, dict):
            raise NetworkFailure(f"{method} {url} returned a non-JSON body")
        return payload

    def get_or_create_cart(self, *, detail: bool = False) -> Optional[Dict]:
        params = {"detail": "1"} if detail else None
        return self._request("GET", "cart", params=params).get("cart")

    def add_to_cart(self, variant_id: str, quantity: int = 1) -> Dict:
        return self._request("POST", "cart/items", json={"variant_id": variant_id, "quantity": quantity})

    def update_cart_item_quantity(self, item_id: str, quantity: int) -> Dict:
        return self._request("PATCH", f"cart/items/{item_id}", json={"quantity": quantity})

    def remove_from_cart(self, item_id: str) -> Dict:
        return self._request("DELETE", f"cart/items/{item_id}")

    def clear_cart(self) -> Dict:
        return self._request("DELETE", "cart")

    def get_cart_item_count(self) -> int:
        return int(self._request("GET", "cart/count").get("count", 0))

    def migrate_guest_cart(self, items: Iterable[Dict]) -> Dict:
        return self._request("POST", "cart/migrate", json={"items": list(items)})


class LocalCartApi(CartApi):
    """In-process transport; ``identity`` returns the signed-in user id or None."""

    def __init__(self, cart_service: CartService, identity: Callable[[], Optional[str]]) -> None:
        self._service = cart_service
        self._identity = identity

    def get_or_create_cart(self, *, detail: bool = False) -> Optional[Dict]:
        if detail:
            return self._service.get_cart_details(user_id=self._identity())
        return self._service.get_or_create_cart(user_id=self._identity())

    def add_to_cart(self, variant_id: str, quantity: int = 1) -> Dict:
        return self._service.add_to_cart(user_id=self._identity(), variant_id=variant_id, quantity=quantity)

    def update_cart_item_quantity(self, item_id: str, quantity: int) -> Dict:
        return self._service.update_cart_item_quantity(user_id=self._identity(), item_id=item_id, quantity=quantity)

    def remove_from_cart(self, item_id: str) -> Dict:
        return self._service.remove_from_cart(user_id=self._identity(), item_id=item_id)

    def clear_cart(self) -> Dict:
        return self._service.clear_cart(user_id=self._identity())

    def get_cart_item_count(self) -> int:
        return self._service.get_cart_item_count(user_id=self._identity())

    def migrate_guest_cart(self, items: Iterable[Dict]) -> Dict:
        return self._service.migrate_guest_cart(user_id=self._identity(), items=list(items))
