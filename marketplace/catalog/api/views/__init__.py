from .catalog_views import CategoryViewSet, MarketViewSet, ProductViewSet
from .review_views import ReviewViewSet

__all__ = ["CategoryViewSet", "MarketViewSet", "ProductViewSet", "ReviewViewSet"]
