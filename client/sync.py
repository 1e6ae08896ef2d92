"""Reconciles the client store with the server cart."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, List, Optional

from common.errors import CartError
from common.services.logging import log_event
from common.utils.cart_lines import CartLine, DetailedCartItem, LightCartItem, parse_cart_line

from .api import CartApi
from .store import CartStore, ClientCartItem


logger = logging.getLogger(__name__)

PLACEHOLDER_NAME = "Loading product..."


def to_client_item(line: CartLine, cached: Optional[ClientCartItem] = None) -> ClientCartItem:
    """Project a server line onto the client shape.

    Light lines carry no display fields: the cached local line for the same
    variant supplies them when there is one, placeholders otherwise. Only
    the id and quantity are taken from the server in that case.
    """
    if isinstance(line, DetailedCartItem):
        v = line.variant
        return ClientCartItem(
            id=line.id,
            product_variant_id=v.id,
            name=v.name,
            price=v.effective_price,
            quantity=line.quantity,
            image=v.image_url,
            color=v.color,
            size=v.size,
        )
    if isinstance(line, LightCartItem):
        if cached is not None:
            return ClientCartItem(
                id=line.id,
                product_variant_id=line.variant_id,
                name=cached.name,
                price=cached.price,
                quantity=line.quantity,
                image=cached.image,
                color=cached.color,
                size=cached.size,
            )
        return ClientCartItem(
            id=line.id,
            product_variant_id=line.variant_id,
            name=PLACEHOLDER_NAME,
            price=Decimal("0"),
            quantity=line.quantity,
        )
    raise TypeError(f"not a cart line: {line!r}")


class CartSync:
    """Fetches server truth and overwrites the store.

    Faults never escape ``sync_cart``; they are recorded in ``error`` and the
    store keeps whatever it held.
    """

    def __init__(self, api: CartApi, store: CartStore, *, detail: bool = True) -> None:
        self._api = api
        self._store = store
        self._detail = detail
        self.is_loading = False
        self.error: Optional[str] = None
        # server lines from the last successful fetch, None before the first
        self.last_lines: Optional[List[CartLine]] = None

    def sync_cart(self) -> bool:
        as_of = self._store.version
        self.is_loading = True
        self.error = None
        self._store.set_loading(True)
        try:
            cart = self._api.get_or_create_cart(detail=self._detail)
            if cart is not None and cart.get("items") is not None:
                cached: Dict[str, ClientCartItem] = {i.product_variant_id: i for i in self._store.items}
                lines = [parse_cart_line(payload) for payload in cart["items"]]
                items = [to_client_item(line, cached.get(line.variant_id)) for line in lines]
                self._store.set_owner(cart.get("user_id"))
                self._store.set_items(items, as_of=as_of)
                self.last_lines = lines
            return True
        except Exception as exc:
            self.error = str(exc) or "Failed to sync cart"
            logger.warning("cart sync failed: %s", exc)
            log_event("error", "cart_sync.failed", error=self.error)
            return False
        finally:
            self.is_loading = False
            self._store.set_loading(False)

    def fetch_item_count(self) -> int:
        """Server-side count, or the local count when the server is unreachable."""
        try:
            return self._api.get_cart_item_count()
        except CartError as exc:
            log_event("warning", "cart_sync.count_fallback", error=str(exc))
            return self._store.get_item_count()
