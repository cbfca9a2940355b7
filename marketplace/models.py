from marketplace.agents.domain.models import AgentLocation
from marketplace.catalog.domain.models import Category, Market, Product, Review
from marketplace.meals.domain.models import Meal, MealIngredient
from marketplace.ordering.domain.models import Order, OrderTrail, ShoppingList, ShoppingListItem
from marketplace.promotions.domain.models import DiscountCampaign, DiscountUsage


__all__ = [
    "Category",
    "Market",
    "Product",
    "Review",
    "ShoppingList",
    "ShoppingListItem",
    "Order",
    "OrderTrail",
    "AgentLocation",
    "DiscountCampaign",
    "DiscountUsage",
    "Meal",
    "MealIngredient",
]
