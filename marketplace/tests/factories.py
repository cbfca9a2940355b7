from datetime import timedelta
from decimal import Decimal

import factory
from django.utils import timezone
from faker import Faker

from authentication.tests.factories import AdminFactory, AgentFactory, UserFactory
from marketplace.models import (
    AgentLocation,
    Category,
    DiscountCampaign,
    DiscountUsage,
    Market,
    Meal,
    MealIngredient,
    Order,
    Product,
    Review,
    ShoppingList,
    ShoppingListItem,
)

fake = Faker()

LAGOS = {"latitude": 6.5244, "longitude": 3.3792, "city": "Lagos", "state": "Lagos", "country": "Nigeria"}


class CategoryFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Category

    name = factory.Sequence(lambda n: f"Category {n}")
    description = factory.LazyFunction(fake.sentence)


class MarketFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Market

    name = factory.Sequence(lambda n: f"Market {n}")
    address = factory.LazyFunction(fake.street_address)
    location = factory.LazyFunction(lambda: dict(LAGOS))
    market_type = "local_market"
    owner = factory.SubFactory(AdminFactory)


class ProductFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Product

    market = factory.SubFactory(MarketFactory)
    name = factory.Sequence(lambda n: f"Product {n}")
    description = factory.LazyFunction(fake.sentence)
    price = Decimal("10.00")
    is_available = True


class ReviewFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Review

    reviewer = factory.SubFactory(UserFactory)
    market = factory.SubFactory(MarketFactory)
    rating = 4
    comment = factory.LazyFunction(fake.sentence)


class ShoppingListFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = ShoppingList

    name = factory.Sequence(lambda n: f"Weekly groceries {n}")
    customer = factory.SubFactory(UserFactory)
    market = factory.SubFactory(MarketFactory)
    status = "draft"


class SuggestedListFactory(ShoppingListFactory):
    name = factory.Sequence(lambda n: f"Suggested list {n}")
    customer = factory.SubFactory(AdminFactory)
    list_type = "suggested"
    is_read_only = True
    category = "Groceries"


class ShoppingListItemFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = ShoppingListItem

    shopping_list = factory.SubFactory(ShoppingListFactory)
    name = factory.Sequence(lambda n: f"Item {n}")
    quantity = 1
    estimated_price = Decimal("10.00")


class OrderFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Order

    order_number = factory.Sequence(lambda n: f"B2S-T{n:04d}")
    customer = factory.SubFactory(UserFactory)
    shopping_list = factory.SubFactory(
        ShoppingListFactory, customer=factory.SelfAttribute("..customer"), status="processing"
    )
    status = "pending"
    total_amount = Decimal("15.50")
    service_fee = Decimal("0.50")
    delivery_fee = Decimal("5.00")


class AgentLocationFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = AgentLocation

    agent = factory.SubFactory(AgentFactory)
    latitude = Decimal("6.5244000")
    longitude = Decimal("3.3792000")
    radius = 5.0
    name = "Home base"


class DiscountCampaignFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = DiscountCampaign

    name = factory.Sequence(lambda n: f"Campaign {n}")
    code = factory.Sequence(lambda n: f"SAVE{n:03d}")
    discount_type = "percentage"
    target_type = "global"
    value = Decimal("10.00")
    status = "active"
    start_date = factory.LazyFunction(lambda: timezone.now() - timedelta(days=1))
    end_date = factory.LazyFunction(lambda: timezone.now() + timedelta(days=30))
    created_by = factory.SubFactory(AdminFactory)


class DiscountUsageFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = DiscountUsage

    campaign = factory.SubFactory(DiscountCampaignFactory)
    user = factory.SubFactory(UserFactory)
    discount_amount = Decimal("2.00")
    order_total = Decimal("20.00")


class MealFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Meal

    name = factory.Sequence(lambda n: f"Jollof rice {n}")
    description = factory.LazyFunction(fake.sentence)
    category = "Dinner"
    cuisine = "Nigerian"
    servings = 4
    difficulty = "medium"


class MealIngredientFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = MealIngredient

    meal = factory.SubFactory(MealFactory)
    ingredient_name = factory.Sequence(lambda n: f"Ingredient {n}")
    quantity = Decimal("2.00")
    unit = "kg"
    estimated_price = Decimal("3.00")
