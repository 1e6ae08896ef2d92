"""Test doubles shared across the suite."""

from typing import Optional

from client.api import CartApi, LocalCartApi
from common.errors import NetworkFailure


USER = "user-1"
OTHER_USER = "user-2"


class Identity:
    """Mutable stand-in for the session/identity provider."""

    def __init__(self, user_id: Optional[str] = None) -> None:
        self.user_id = user_id

    def __call__(self) -> Optional[str]:
        return self.user_id


class FlakyCartApi(LocalCartApi):
    """Local transport whose chosen operations fail at the transport level.

    With ``persist_first`` the server call goes through before the failure
    is reported (a lost response rather than a lost request).
    """

    def __init__(self, service, identity, *, failing=(), persist_first=False):
        super().__init__(service, identity)
        self.failing = set(failing)
        self.persist_first = persist_first

    def _maybe_fail(self, op, call):
        if op not in self.failing:
            return call()
        if self.persist_first:
            call()
        raise NetworkFailure(f"{op}: connection reset")

    def get_or_create_cart(self, *, detail=False):
        return self._maybe_fail("get", lambda: super(FlakyCartApi, self).get_or_create_cart(detail=detail))

    def add_to_cart(self, variant_id, quantity=1):
        return self._maybe_fail("add", lambda: super(FlakyCartApi, self).add_to_cart(variant_id, quantity))

    def update_cart_item_quantity(self, item_id, quantity):
        return self._maybe_fail(
            "update", lambda: super(FlakyCartApi, self).update_cart_item_quantity(item_id, quantity)
        )

    def remove_from_cart(self, item_id):
        return self._maybe_fail("remove", lambda: super(FlakyCartApi, self).remove_from_cart(item_id))

    def clear_cart(self):
        return self._maybe_fail("clear", lambda: super(FlakyCartApi, self).clear_cart())

    def get_cart_item_count(self):
        return self._maybe_fail("count", lambda: super(FlakyCartApi, self).get_cart_item_count())

    def migrate_guest_cart(self, items):
        return self._maybe_fail("migrate", lambda: super(FlakyCartApi, self).migrate_guest_cart(items))


class RecordingApi(CartApi):
    """Records calls; raises ``NetworkFailure`` for operations listed in ``failing``."""

    def __init__(self, failing=()):
        self.calls = []
        self.failing = set(failing)
        self.migrate_result = {"success": True, "migrated": 1, "skipped": []}

    def _record(self, op, *args):
        self.calls.append((op,) + args)
        if op in self.failing:
            raise NetworkFailure(f"{op} unreachable")
        return {"success": True}

    def get_or_create_cart(self, *, detail=False):
        self._record("get", detail)
        return None

    def add_to_cart(self, variant_id, quantity=1):
        return self._record("add", variant_id, quantity)

    def update_cart_item_quantity(self, item_id, quantity):
        return self._record("update", item_id, quantity)

    def remove_from_cart(self, item_id):
        return self._record("remove", item_id)

    def clear_cart(self):
        return self._record("clear")

    def get_cart_item_count(self):
        self._record("count")
        return 0

    def migrate_guest_cart(self, items):
        self._record("migrate", list(items))
        return self.migrate_result
