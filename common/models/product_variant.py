"""Purchasable variant of a product (one color/size combination)."""
from sqlalchemy import Boolean, Column, ForeignKey, JSON, Numeric, String
from sqlalchemy.orm import relationship
from .base import Base


class ProductVariant(Base):
    __tablename__ = "product_variant"

    id = Column(String(36), primary_key=True)
    product_id = Column(String(36), ForeignKey("product.id", ondelete="CASCADE"), nullable=False)
    sku = Column(String(128), nullable=False, unique=True)
    price = Column(Numeric(12, 2), nullable=False)
    sale_price = Column(Numeric(12, 2), nullable=True)
    color = Column(String(64), nullable=True)
    size = Column(String(32), nullable=True)
    images = Column(JSON, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    product = relationship("Product", back_populates="variants")
