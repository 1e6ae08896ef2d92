"""Cart page presentation: line shapes, order totals and quantity intents."""

from __future__ import annotations

from decimal import Decimal
from typing import Dict, List, Optional

from common.utils.cart_lines import CartLine, order_summary, parse_cart_line, subtotal

from .store import CartStore
from .sync import CartSync


DEFAULT_SHIPPING = Decimal("2.00")


class CartContent:
    """View model behind the cart page.

    Lines come from the server (initial render, then each resync) and may be
    light or detailed; only detailed lines count toward the subtotal. Every
    mutating intent goes through the store and is followed by a resync so
    the server's answer supersedes the optimistic guess.
    """

    def __init__(
        self,
        store: CartStore,
        sync: CartSync,
        initial_cart: Optional[Dict] = None,
        *,
        shipping: Decimal = DEFAULT_SHIPPING,
    ) -> None:
        self._store = store
        self._sync = sync
        self.shipping = Decimal(str(shipping))
        self._lines: List[CartLine] = []
        self.local_quantities: Dict[str, int] = {}
        self._seed([parse_cart_line(i) for i in ((initial_cart or {}).get("items") or [])])

    def _seed(self, lines: List[CartLine]) -> None:
        self._lines = list(lines)
        self.local_quantities = {line.id: line.quantity for line in self._lines}

    @property
    def lines(self) -> List[CartLine]:
        return list(self._lines)

    @property
    def is_syncing(self) -> bool:
        return self._sync.is_loading

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def displayed_quantity(self, item_id: str) -> int:
        if item_id in self.local_quantities:
            return self.local_quantities[item_id]
        line = next((l for l in self._lines if l.id == item_id), None)
        return line.quantity if line is not None else 0

    def subtotal(self) -> Decimal:
        return subtotal(self._lines)

    def total(self) -> Decimal:
        return self.subtotal() + self.shipping

    def summary(self) -> Dict:
        return order_summary(self._lines, self.shipping)

    def change_quantity(self, item_id: str, new_quantity: int) -> bool:
        """Returns False when the change is blocked (below 1)."""
        if new_quantity < 1:
            return False
        self.local_quantities[item_id] = new_quantity
        self._store.update_quantity(item_id, new_quantity)
        self.resync()
        return True

    def increment(self, item_id: str) -> bool:
        return self.change_quantity(item_id, self.displayed_quantity(item_id) + 1)

    def decrement(self, item_id: str) -> bool:
        return self.change_quantity(item_id, self.displayed_quantity(item_id) - 1)

    def remove(self, item_id: str) -> None:
        self._store.remove_item(item_id)
        self.resync()

    def resync(self) -> bool:
        ok = self._sync.sync_cart()
        if ok and self._sync.last_lines is not None:
            self._seed(self._sync.last_lines)
        return ok
