"""Composition root of the cart client."""

from __future__ import annotations

from decimal import Decimal
from typing import Dict, Optional

import requests

from common.config import AppConfig
from common.services.logging import log_event

from .api import CartApi, HttpCartApi
from .cart_view import CartContent
from .snapshot import CartSnapshot
from .store import CartStore
from .sync import CartSync
from .variant import VariantSelection, resolve_add_to_bag


class CartSession:
    """Owns the store, its sync, the durable snapshot and the variant picks.

    ``sign_in`` is the hook the authentication flow calls once a user is
    resolved: guest lines are migrated to the server and the store is
    resynced, so a guest cart is never dropped silently.
    """

    def __init__(
        self,
        api: CartApi,
        *,
        snapshot: Optional[CartSnapshot] = None,
        shipping: Decimal = Decimal("2.00"),
        detail: bool = True,
        signed_in: bool = False,
    ) -> None:
        self.api = api
        self.store = CartStore(api)
        self.sync = CartSync(api, self.store, detail=detail)
        self.variants = VariantSelection()
        self.shipping = Decimal(str(shipping))
        self._snapshot = snapshot
        self._detach = snapshot.attach(self.store) if snapshot is not None else None
        # a restored snapshot synced from a user cart means a live sign-in
        self.signed_in = signed_in or self.store.owner is not None

    @classmethod
    def over_http(cls, config: AppConfig, *, http_session: Optional[requests.Session] = None) -> "CartSession":
        api = HttpCartApi(config.api_base_url, timeout=config.api_timeout, session=http_session)
        return cls(api, snapshot=CartSnapshot(config.cart_snapshot_file), shipping=config.shipping_fee)

    def mount(self) -> bool:
        """First render of a cart-bearing view."""
        return self.sync.sync_cart()

    def sign_in(self) -> bool:
        """Returns True when guest lines were migrated.

        Safe to call again for an already synced user: only lines added
        while signed out are migrated.
        """
        self.signed_in = True
        migrated = self.store.migrate_guest_cart()
        self.sync.sync_cart()
        log_event("info", "cart_session.signed_in", migrated=migrated, items=self.store.get_item_count())
        return migrated

    def sign_out(self) -> None:
        # the local cache belonged to the previous user
        self.signed_in = False
        self.store.set_items([])
        self.store.set_owner(None)

    def add_to_bag(self, product: Dict) -> bool:
        payload = resolve_add_to_bag(product, self.variants)
        if payload is None:
            return False
        self.store.add_item(
            payload.variant_id,
            name=payload.name,
            price=payload.price,
            image=payload.image,
            color=payload.color,
            size=payload.size,
        )
        self.sync.sync_cart()
        return True

    def cart_content(self, initial_cart: Optional[Dict] = None) -> CartContent:
        return CartContent(self.store, self.sync, initial_cart, shipping=self.shipping)

    def cart_count(self) -> int:
        if not self.signed_in:
            return self.store.get_item_count()
        return self.sync.fetch_item_count()

    def close(self) -> None:
        if self._detach is not None:
            self._detach()
            self._detach = None
