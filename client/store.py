"""Client-side cart state with optimistic mutations.

The store is a disposable cache of the server cart: every mutation is
applied locally first, then sent to the server. A failed server call keeps
the local change (the next successful sync corrects any drift).

A single sequence counter ticks when a mutation starts and again when its
server call returns. A sync records the counter before fetching and hands
it to ``set_items(as_of=...)``; variants with a mutation still in flight, or
one that returned after ``as_of``, keep their local line so a slow resync
never clobbers a newer optimistic change.

Lines added while signed out are flagged ``guest``; only those are handed
to the server by ``migrate_guest_cart``.
"""

from __future__ import annotations

import threading
from dataclasses import asdict, dataclass, replace
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional
from uuid import uuid4

from common.errors import CartError
from common.services.logging import log_event

from .api import CartApi


@dataclass(frozen=True)
class ClientCartItem:
    id: str
    product_variant_id: str
    name: str
    price: Decimal
    quantity: int
    image: Optional[str] = None
    color: Optional[str] = None
    size: Optional[str] = None
    # added while signed out, never confirmed by a server sync
    guest: bool = False

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["price"] = str(self.price)
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> "ClientCartItem":
        return cls(
            id=str(data["id"]),
            product_variant_id=str(data["product_variant_id"]),
            name=str(data.get("name") or ""),
            price=Decimal(str(data.get("price") or "0")),
            quantity=int(data["quantity"]),
            image=data.get("image"),
            color=data.get("color"),
            size=data.get("size"),
            guest=bool(data.get("guest", False)),
        )


def compute_total(items: Iterable[ClientCartItem]) -> Decimal:
    return sum((item.price * item.quantity for item in items), Decimal("0"))


class CartStore:
    def __init__(self, api: CartApi, *, id_factory: Callable[[], str] = lambda: str(uuid4())) -> None:
        self._api = api
        self._new_id = id_factory
        self._lock = threading.RLock()
        self._items: List[ClientCartItem] = []
        # user id of the server cart the lines were last synced from
        self._owner: Optional[str] = None
        self._total = Decimal("0")
        self._is_loading = False
        self._seq = 0
        # variant id -> start seq of its newest unfinished mutation
        self._in_flight: Dict[str, int] = {}
        # variant id -> seq at which its latest mutation returned
        self._settled: Dict[str, int] = {}
        self._listeners: List[Callable[["CartStore"], None]] = []

    # -- state -----------------------------------------------------------

    @property
    def items(self) -> List[ClientCartItem]:
        with self._lock:
            return list(self._items)

    @property
    def total(self) -> Decimal:
        with self._lock:
            return self._total

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def version(self) -> int:
        with self._lock:
            return self._seq

    @property
    def owner(self) -> Optional[str]:
        with self._lock:
            return self._owner

    def get_item_count(self) -> int:
        with self._lock:
            return sum(item.quantity for item in self._items)

    def find_item(self, item_id: str) -> Optional[ClientCartItem]:
        with self._lock:
            return next((i for i in self._items if i.id == item_id), None)

    def subscribe(self, listener: Callable[["CartStore"], None]) -> Callable[[], None]:
        """Call ``listener(store)`` after every state change; returns an unsubscribe."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -- replacement (sync only) ------------------------------------------

    def set_items(self, items: Iterable[ClientCartItem], *, as_of: Optional[int] = None) -> None:
        """Replace local state wholesale.

        With ``as_of`` (the ``version`` read before the fetch), lines of
        variants with an unfinished mutation, or one that returned after
        ``as_of``, keep their local state.
        """
        incoming = list(items)
        with self._lock:
            if as_of is not None:
                incoming = self._preserve_in_flight(incoming, as_of)
                self._settled = {v: seq for v, seq in self._settled.items() if seq > as_of}
            self._commit(incoming)

    def set_loading(self, loading: bool) -> None:
        self._is_loading = bool(loading)

    def set_owner(self, user_id: Optional[str]) -> None:
        """Record whose server cart the lines belong to; None while signed out."""
        with self._lock:
            if user_id == self._owner:
                return
            self._owner = user_id
            self._commit(self._items)

    def _preserve_in_flight(self, incoming: List[ClientCartItem], as_of: int) -> List[ClientCartItem]:
        pending = set(self._in_flight) | {v for v, seq in self._settled.items() if seq > as_of}
        if not pending:
            return incoming
        local = {i.product_variant_id: i for i in self._items}
        merged = []
        for item in incoming:
            if item.product_variant_id in pending:
                if item.product_variant_id in local:
                    merged.append(local.pop(item.product_variant_id))
                continue
            merged.append(item)
        seen = {i.product_variant_id for i in merged}
        merged.extend(
            i for i in self._items if i.product_variant_id in pending and i.product_variant_id not in seen
        )
        return merged

    # -- optimistic mutations ----------------------------------------------

    def add_item(
        self,
        product_variant_id: str,
        *,
        name: str,
        price,
        image: Optional[str] = None,
        color: Optional[str] = None,
        size: Optional[str] = None,
    ) -> None:
        with self._lock:
            seq = self._begin([product_variant_id])
            existing = next((i for i in self._items if i.product_variant_id == product_variant_id), None)
            if existing is not None:
                items = [
                    replace(i, quantity=i.quantity + 1) if i.product_variant_id == product_variant_id else i
                    for i in self._items
                ]
            else:
                new_item = ClientCartItem(
                    id=self._new_id(),
                    product_variant_id=product_variant_id,
                    name=name,
                    price=Decimal(str(price)),
                    quantity=1,
                    image=image,
                    color=color,
                    size=size,
                    guest=self._owner is None,
                )
                items = self._items + [new_item]
            self._commit(items)
        self._send("add", [product_variant_id], seq, lambda: self._api.add_to_cart(product_variant_id, 1))

    def update_quantity(self, item_id: str, quantity: int) -> None:
        if quantity < 1:
            self.remove_item(item_id)
            return
        with self._lock:
            variants = [i.product_variant_id for i in self._items if i.id == item_id]
            seq = self._begin(variants)
            self._commit([replace(i, quantity=quantity) if i.id == item_id else i for i in self._items])
        self._send("update", variants, seq, lambda: self._api.update_cart_item_quantity(item_id, quantity))

    def remove_item(self, item_id: str) -> None:
        with self._lock:
            variants = [i.product_variant_id for i in self._items if i.id == item_id]
            seq = self._begin(variants)
            self._commit([i for i in self._items if i.id != item_id])
        self._send("remove", variants, seq, lambda: self._api.remove_from_cart(item_id))

    def clear_cart(self) -> None:
        with self._lock:
            variants = [i.product_variant_id for i in self._items]
            seq = self._begin(variants)
            self._commit([])
        self._send("clear", variants, seq, self._api.clear_cart)

    def migrate_guest_cart(self) -> bool:
        """Hand guest lines to the server after sign-in; True when migrated.

        Lines that came from a server sync are never sent, so repeated
        sign-ins and restored snapshots do not add them a second time.
        """
        with self._lock:
            guest_lines = [i for i in self._items if i.guest]
        guest_items = [{"variant_id": i.product_variant_id, "quantity": i.quantity} for i in guest_lines]
        if not guest_items:
            return False
        self.set_loading(True)
        try:
            result = self._api.migrate_guest_cart(guest_items)
        except CartError as exc:
            log_event("warning", "cart_store.migrate_failed", items=len(guest_items), error=str(exc))
            return False
        finally:
            self.set_loading(False)
        if not result.get("success"):
            log_event("warning", "cart_store.migrate_rejected", items=len(guest_items))
            return False
        sent = {i.id for i in guest_lines}
        with self._lock:
            self._commit([i for i in self._items if i.id not in sent])
        log_event("info", "cart_store.migrated", items=len(guest_items))
        return True

    # -- internals ---------------------------------------------------------

    def _begin(self, variants: Iterable[str]) -> int:
        self._seq += 1
        for v in variants:
            self._in_flight[v] = self._seq
        return self._seq

    def _finish(self, variants: Iterable[str], seq: int) -> None:
        with self._lock:
            self._seq += 1
            for v in variants:
                if self._in_flight.get(v) == seq:
                    del self._in_flight[v]
                self._settled[v] = self._seq

    def _send(self, op: str, variants: List[str], seq: int, call: Callable[[], Dict]) -> None:
        self.set_loading(True)
        try:
            call()
        except CartError as exc:
            # keep the optimistic change; the next successful sync reconciles
            log_event("warning", f"cart_store.{op}_fallback", seq=seq, error=str(exc), code=exc.code)
        finally:
            self._finish(variants, seq)
            self.set_loading(False)

    def _commit(self, items: List[ClientCartItem]) -> None:
        self._items = items
        self._total = compute_total(items)
        for listener in list(self._listeners):
            listener(self)
