from .catalog import Market, Product
from .category import Category
from .review import Review


__all__ = [
    "Category",
    "Market",
    "Product",
    "Review",
]
