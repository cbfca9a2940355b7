from .order_views import OrderViewSet
from .shopping_list_views import ShoppingListViewSet

__all__ = ["OrderViewSet", "ShoppingListViewSet"]
