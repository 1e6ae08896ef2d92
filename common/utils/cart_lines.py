"""Tagged cart line shapes returned by the cart API.

A line is either ``LightCartItem`` (ids and quantity only) or
``DetailedCartItem`` (catalog fields joined). Consumers dispatch on the
type; light lines carry no price and contribute nothing to a subtotal until
a detailed fetch hydrates them.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Union


@dataclass(frozen=True)
class VariantDetails:
    id: str
    price: Decimal
    sale_price: Optional[Decimal]
    product_id: Optional[str]
    name: str
    description: str = ""
    color: Optional[str] = None
    size: Optional[str] = None
    images: List[Dict[str, str]] = field(default_factory=list)

    @property
    def effective_price(self) -> Decimal:
        return self.sale_price if self.sale_price is not None else self.price

    @property
    def image_url(self) -> Optional[str]:
        for img in self.images:
            url = (img.get("url") or "").strip()
            if url:
                return url
        return None


@dataclass(frozen=True)
class LightCartItem:
    id: str
    quantity: int
    variant_id: str


@dataclass(frozen=True)
class DetailedCartItem:
    id: str
    quantity: int
    variant: VariantDetails

    @property
    def variant_id(self) -> str:
        return self.variant.id

    @property
    def line_total(self) -> Decimal:
        return self.variant.effective_price * self.quantity


CartLine = Union[LightCartItem, DetailedCartItem]


def _decimal(value) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    return Decimal(str(value))


def parse_cart_line(payload: Dict) -> CartLine:
    kind = payload.get("kind")
    if kind == "detailed":
        v = payload["variant"]
        product = v.get("product") or {}
        details = VariantDetails(
            id=v["id"],
            price=_decimal(v.get("price")) or Decimal("0"),
            sale_price=_decimal(v.get("sale_price")),
            product_id=product.get("id"),
            name=product.get("name") or "",
            description=product.get("description") or "",
            color=v.get("color"),
            size=v.get("size"),
            images=list(v.get("images") or []),
        )
        return DetailedCartItem(id=payload["id"], quantity=int(payload["quantity"]), variant=details)
    if kind == "light":
        return LightCartItem(id=payload["id"], quantity=int(payload["quantity"]), variant_id=payload["variant_id"])
    raise ValueError(f"unknown cart line kind: {kind!r}")


def subtotal(lines: Sequence[CartLine]) -> Decimal:
    total = Decimal("0")
    for line in lines:
        if isinstance(line, DetailedCartItem):
            total += line.line_total
        elif isinstance(line, LightCartItem):
            # price unknown until hydrated
            continue
        else:
            raise TypeError(f"not a cart line: {line!r}")
    return total


def order_summary(lines: Sequence[CartLine], shipping: Decimal) -> Dict:
    sub = subtotal(lines)
    return {
        "subtotal": sub,
        "shipping": shipping,
        "total": sub + shipping,
        "item_count": sum(line.quantity for line in lines),
        "is_empty": not lines,
    }
