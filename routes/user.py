"""Server-rendered storefront pages."""

from __future__ import annotations

from flask import Blueprint, current_app, render_template

from common.services.cart_service import CART_PAGE_PATH
from common.services.identity import resolve_user_id
from common.utils.cart_lines import DetailedCartItem, LightCartItem, order_summary, parse_cart_line


user_bp = Blueprint("storefront_user", __name__)


def _components() -> dict:
    return current_app.extensions["storefront_components"]


def _config():
    return current_app.config["STOREFRONT_CONFIG"]


PLACEHOLDER_IMAGE = "/static/placeholder-shoe.jpg"


def _line_view(line) -> dict:
    if isinstance(line, DetailedCartItem):
        v = line.variant
        return {
            "id": line.id,
            "quantity": line.quantity,
            "name": v.name,
            "description": v.description,
            "color": v.color,
            "size": v.size,
            "image": v.image_url or PLACEHOLDER_IMAGE,
            "price": v.effective_price,
            "list_price": v.price if v.sale_price is not None else None,
        }
    if isinstance(line, LightCartItem):
        return {
            "id": line.id,
            "quantity": line.quantity,
            "name": "Loading product...",
            "description": "",
            "color": None,
            "size": None,
            "image": PLACEHOLDER_IMAGE,
            "price": None,
            "list_price": None,
        }
    raise TypeError(f"not a cart line: {line!r}")


@user_bp.get(CART_PAGE_PATH)
def cart_page():
    user_id = resolve_user_id()
    if not user_id:
        return render_template("cart.html", signed_in=False), 401

    components = _components()
    cfg = _config().app

    def render() -> str:
        cart = components["cart_service"].get_cart_details(user_id=user_id)
        lines = [parse_cart_line(item) for item in (cart or {}).get("items", [])]
        return render_template(
            "cart.html",
            signed_in=True,
            lines=[_line_view(line) for line in lines],
            summary=order_summary(lines, cfg.shipping_fee),
            currency=cfg.currency,
        )

    return components["page_cache"].get_or_render(CART_PAGE_PATH, user_id, render)
