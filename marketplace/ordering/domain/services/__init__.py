from .order_service import OrderService
from .shopping_list_service import ShoppingListService
from .trail_service import OrderTrailService

__all__ = ["OrderService", "ShoppingListService", "OrderTrailService"]
