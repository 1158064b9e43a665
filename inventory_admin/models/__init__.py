# inventory_admin/models/__init__.py

"""
Импорт всех моделей для правильной работы SQLAlchemy
"""

from .category import Category
from .product import Product
from .product_image import ProductImage

__all__ = [
    "Category",
    "Product",
    "ProductImage",
]
