"""JSON API exposing the cart server actions to storefront clients."""

from __future__ import annotations

from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request

from common.errors import CartError, NotFound, ValidationError
from common.services.identity import resolve_user_id


api_bp = Blueprint("storefront_api", __name__, url_prefix="/api")


def _components() -> Dict[str, Any]:
    return current_app.extensions["storefront_components"]


def _payload() -> Dict[str, Any]:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("request body must be a JSON object")
    return payload


@api_bp.errorhandler(CartError)
def handle_cart_error(exc: CartError):
    return jsonify(exc.to_response()), exc.status_code


@api_bp.get("/cart")
def get_cart():
    cart_service = _components()["cart_service"]
    user_id = resolve_user_id()
    if request.args.get("detail") in {"1", "true", "yes"}:
        cart = cart_service.get_cart_details(user_id=user_id)
    else:
        cart = cart_service.get_or_create_cart(user_id=user_id)
    return jsonify({"cart": cart})


@api_bp.get("/cart/count")
def get_cart_count():
    count = _components()["cart_service"].get_cart_item_count(user_id=resolve_user_id())
    return jsonify({"count": count})


@api_bp.post("/cart/items")
def add_cart_item():
    payload = _payload()
    result = _components()["cart_service"].add_to_cart(
        user_id=resolve_user_id(),
        variant_id=payload.get("variant_id"),
        quantity=payload.get("quantity", 1),
    )
    return jsonify(result)


@api_bp.patch("/cart/items/<item_id>")
def update_cart_item(item_id: str):
    payload = _payload()
    if "quantity" not in payload:
        raise ValidationError("quantity required")
    result = _components()["cart_service"].update_cart_item_quantity(
        user_id=resolve_user_id(),
        item_id=item_id,
        quantity=payload["quantity"],
    )
    return jsonify(result)


@api_bp.delete("/cart/items/<item_id>")
def remove_cart_item(item_id: str):
    result = _components()["cart_service"].remove_from_cart(user_id=resolve_user_id(), item_id=item_id)
    return jsonify(result)


@api_bp.delete("/cart")
def clear_cart():
    return jsonify(_components()["cart_service"].clear_cart(user_id=resolve_user_id()))


@api_bp.post("/cart/migrate")
def migrate_guest_cart():
    items = _payload().get("items") or []
    if not isinstance(items, list):
        raise ValidationError("items must be a list")
    result = _components()["cart_service"].migrate_guest_cart(user_id=resolve_user_id(), items=items)
    return jsonify(result)


@api_bp.get("/products/<product_id>")
def get_product(product_id: str):
    product = _components()["catalog_service"].get_product(product_id)
    if not product:
        raise NotFound("product not found", context={"product_id": product_id})
    return jsonify({"product": product})
