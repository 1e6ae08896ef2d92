"""Per-product variant selection for the product page."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional


class VariantSelection:
    """Maps product id to the index of the variant the shopper picked.

    Browsing-session state only; nothing here is sent to the server except
    the variant id resolved at add-to-cart time.
    """

    def __init__(self) -> None:
        self._selected: Dict[str, int] = {}

    def set_selected(self, product_id: str, index: int) -> None:
        self._selected = {**self._selected, product_id: int(index)}

    def get_selected(self, product_id: str, fallback: int = 0) -> int:
        return self._selected.get(product_id, fallback)


@dataclass(frozen=True)
class AddToBagPayload:
    variant_id: str
    name: str
    price: Decimal
    image: Optional[str] = None
    color: Optional[str] = None
    size: Optional[str] = None


def _first_valid_image(images) -> Optional[str]:
    for img in images or []:
        url = img.get("url") if isinstance(img, dict) else img
        if isinstance(url, str) and url.strip():
            return url
    return None


def resolve_add_to_bag(product: Dict, selection: VariantSelection) -> Optional[AddToBagPayload]:
    """Build the add-to-cart payload for the selected variant of ``product``.

    ``product`` is the catalog shape served by ``/api/products/<id>``. An
    out-of-range selection falls back to the first variant; a product with no
    variants yields None.
    """
    variants = product.get("variants") or []
    if not variants:
        return None
    index = selection.get_selected(product["id"], 0)
    variant = variants[index] if 0 <= index < len(variants) else variants[0]
    raw_price = variant.get("sale_price")
    if raw_price is None:
        raw_price = variant.get("price")
    price = Decimal(str(raw_price)) if raw_price is not None else Decimal("0")
    return AddToBagPayload(
        variant_id=variant["id"],
        name=product.get("name") or "",
        price=price,
        image=_first_valid_image(variant.get("images")) or _first_valid_image(product.get("images")),
        color=variant.get("color"),
        size=variant.get("size"),
    )
