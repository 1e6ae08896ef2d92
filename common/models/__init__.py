from .base import Base
from .cart import Cart
from .cart_item import CartItem
from .product import Product
from .product_variant import ProductVariant

__all__ = ["Base", "Cart", "CartItem", "Product", "ProductVariant"]
