from .order_serializers import (
    AssignOrderSerializer,
    CompleteOrderSerializer,
    NotesSerializer,
    OrderPaymentSerializer,
    OrderSerializer,
    OrderStatusSerializer,
    OrderTrailSerializer,
    RejectOrderSerializer,
)
from .shopping_list_serializers import (
    ActualPriceSerializer,
    ListStatusSerializer,
    RecordPaymentSerializer,
    ShoppingListItemInputSerializer,
    ShoppingListItemSerializer,
    ShoppingListSerializer,
    ShoppingListWriteSerializer,
    SuggestedListWriteSerializer,
)

__all__ = [
    "ShoppingListSerializer",
    "ShoppingListItemSerializer",
    "ShoppingListItemInputSerializer",
    "ShoppingListWriteSerializer",
    "SuggestedListWriteSerializer",
    "ListStatusSerializer",
    "ActualPriceSerializer",
    "RecordPaymentSerializer",
    "OrderSerializer",
    "OrderTrailSerializer",
    "OrderStatusSerializer",
    "AssignOrderSerializer",
    "RejectOrderSerializer",
    "CompleteOrderSerializer",
    "NotesSerializer",
    "OrderPaymentSerializer",
]
