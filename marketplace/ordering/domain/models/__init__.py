from .order import Order, OrderTrail
from .shopping_list import ShoppingList, ShoppingListItem


__all__ = [
    "ShoppingList",
    "ShoppingListItem",
    "Order",
    "OrderTrail",
]
