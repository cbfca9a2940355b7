from .catalog_serializers import (
    CategorySerializer,
    MarketSerializer,
    MarketSummarySerializer,
    ProductSerializer,
    ProductSummarySerializer,
)
from .review_serializers import ReviewSerializer, ReviewUpdateSerializer

__all__ = [
    "CategorySerializer",
    "MarketSerializer",
    "MarketSummarySerializer",
    "ProductSerializer",
    "ProductSummarySerializer",
    "ReviewSerializer",
    "ReviewUpdateSerializer",
]
