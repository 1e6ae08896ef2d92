"""Optimistic cart client: local store, server sync and cart view."""

from .api import CartApi, HttpCartApi, LocalCartApi
from .cart_view import CartContent
from .session import CartSession
from .snapshot import CartSnapshot
from .store import CartStore, ClientCartItem
from .sync import CartSync

__all__ = [
    "CartApi",
    "HttpCartApi",
    "LocalCartApi",
    "CartContent",
    "CartSession",
    "CartSnapshot",
    "CartStore",
    "ClientCartItem",
    "CartSync",
]
