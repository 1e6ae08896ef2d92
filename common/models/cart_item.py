from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import relationship
from .base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class CartItem(Base):
    __tablename__ = "cart_item"
    __table_args__ = (
        # one line per variant per cart; merges go through the upsert in CartService
        UniqueConstraint("cart_id", "product_variant_id", name="uq_cart_item_cart_variant"),
        CheckConstraint("quantity >= 1", name="ck_cart_item_quantity_positive"),
    )

    id = Column(String(36), primary_key=True)
    cart_id = Column(String(36), ForeignKey("cart.id", ondelete="CASCADE"), nullable=False, index=True)
    product_variant_id = Column(String(36), ForeignKey("product_variant.id"), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, nullable=False, default=_utcnow, server_default=func.now())

    cart = relationship("Cart", back_populates="items")
    variant = relationship("ProductVariant")
