from typing import Any, Dict, List, Optional


def _money(value: Any) -> Optional[str]:
    # prices travel as strings so Decimal precision survives JSON
    if value is None:
        return None
    return f"{value:.2f}" if not isinstance(value, str) else value


def to_light_item_dto(row: Any) -> Dict:
    return {
        "kind": "light",
        "id": getattr(row, "id", None),
        "quantity": int(getattr(row, "quantity", 0) or 0),
        "variant_id": getattr(row, "product_variant_id", None),
    }


def to_variant_dto(variant: Any) -> Dict:
    product = getattr(variant, "product", None)
    images = getattr(variant, "images", None) or getattr(product, "images", None) or []
    return {
        "id": getattr(variant, "id", None),
        "sku": getattr(variant, "sku", None),
        "price": _money(getattr(variant, "price", None)) or "0.00",
        "sale_price": _money(getattr(variant, "sale_price", None)),
        "color": getattr(variant, "color", None),
        "size": getattr(variant, "size", None),
        "product": {
            "id": getattr(product, "id", None),
            "name": getattr(product, "name", None),
            "description": getattr(product, "description", None) or "",
        },
        "images": [_to_image_dto(img) for img in images],
    }


def _to_image_dto(image: Any) -> Dict:
    if isinstance(image, str):
        return {"url": image, "alt": ""}
    return {"url": image.get("url"), "alt": image.get("alt") or ""}


def to_detailed_item_dto(row: Any, variant: Any) -> Dict:
    return {
        "kind": "detailed",
        "id": getattr(row, "id", None),
        "quantity": int(getattr(row, "quantity", 0) or 0),
        "variant": to_variant_dto(variant),
    }


def to_cart_dto(cart: Any, items: List[Dict]) -> Dict:
    created_at = getattr(cart, "created_at", None)
    return {
        "id": getattr(cart, "id", None),
        "user_id": getattr(cart, "user_id", None),
        "created_at": created_at.isoformat() if created_at else None,
        "items": items,
    }
