from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple
import time
from uuid import uuid4

from sqlalchemy.orm import selectinload

from ..db.session import get_session
from ..models.product import Product
from ..models.product_variant import ProductVariant
from ..utils.dto import to_variant_dto


class CatalogService:
    """Variant lookup for the cart.

    Responsibilities:
    - Supply display fields (name, price, sale price, images, color, size)
      keyed by variant id
    - Product detail with its variants for the add-to-cart flow
    - Seeding products for local runs and tests
    """

    _cache_ttl_seconds: int = 60

    def __init__(self, session_factory=get_session):
        self._session_factory = session_factory
        # naive in-process cache: key -> (ts, result)
        self._cache: Dict[Tuple, Tuple[float, Dict]] = {}

    def get_variants(self, variant_ids: Iterable[str], *, session) -> Dict[str, ProductVariant]:
        """Load active variants (with their product) inside ``session``."""
        ids = sorted({v for v in variant_ids if v})
        if not ids:
            return {}
        rows = (
            session.query(ProductVariant)
            .options(selectinload(ProductVariant.product))
            .filter(ProductVariant.id.in_(ids), ProductVariant.is_active.is_(True))
            .all()
        )
        return {r.id: r for r in rows}

    def get_product(self, product_id: str) -> Dict:
        """Return product detail with its active variants, {} if unknown."""
        now = time.time()
        cached = self._cache.get(("product", product_id))
        if cached and now - cached[0] <= self._cache_ttl_seconds:
            return cached[1]
        with self._session_factory() as session:
            p = (
                session.query(Product)
                .options(selectinload(Product.variants))
                .filter(Product.id == product_id, Product.is_active.is_(True))
                .first()
            )
            if not p:
                return {}
            result = {
                "id": p.id,
                "name": p.name,
                "description": p.description or "",
                "images": p.images or [],
                "variants": [to_variant_dto(v) for v in p.variants if v.is_active],
            }
        self._cache[("product", product_id)] = (now, result)
        return result

    def create_product(
        self,
        *,
        name: str,
        description: str = "",
        images: Optional[List] = None,
        variants: Iterable[Dict] = (),
    ) -> Dict:
        """Insert a product and its variants; returns ids keyed by sku."""
        if not name:
            raise ValueError("name required")
        with self._session_factory() as session:
            product = Product(id=str(uuid4()), name=name, description=description, images=images or [])
            session.add(product)
            ids = {}
            for data in variants:
                sale = data.get("sale_price")
                variant = ProductVariant(
                    id=data.get("id") or str(uuid4()),
                    product=product,
                    sku=data["sku"],
                    price=Decimal(str(data["price"])),
                    sale_price=Decimal(str(sale)) if sale is not None else None,
                    color=data.get("color"),
                    size=data.get("size"),
                    images=data.get("images") or [],
                    is_active=data.get("is_active", True),
                )
                session.add(variant)
                ids[variant.sku] = variant.id
            session.flush()
            return {"product_id": product.id, "variants": ids}
