from django.urls import include, path
from rest_framework.routers import DefaultRouter

from marketplace.agents.api.views import AgentViewSet
from marketplace.catalog.api.views import CategoryViewSet, MarketViewSet, ProductViewSet, ReviewViewSet
from marketplace.meals.api.views import MealViewSet
from marketplace.ordering.api.views import OrderViewSet, ShoppingListViewSet
from marketplace.promotions.api.views import DiscountCampaignViewSet, DiscountViewSet

router = DefaultRouter()
router.register(r"categories", CategoryViewSet, basename="category")
router.register(r"markets", MarketViewSet, basename="market")
router.register(r"products", ProductViewSet, basename="product")
router.register(r"reviews", ReviewViewSet, basename="review")
router.register(r"shopping-lists", ShoppingListViewSet, basename="shopping-list")
router.register(r"orders", OrderViewSet, basename="order")
router.register(r"agents", AgentViewSet, basename="agent")
router.register(r"meals", MealViewSet, basename="meal")
router.register(r"discounts/campaigns", DiscountCampaignViewSet, basename="discount-campaign")
router.register(r"discounts", DiscountViewSet, basename="discount")

app_name = "marketplace"

urlpatterns = [
    path("", include(router.urls)),
]
