"""
MealService - recipes and the shopping lists made from them.

Ingredient quantities are stored for the meal's own number of servings and
scaled on request. Turning a meal into a list goes through
ShoppingListService.create_list, so the new list is an ordinary draft.
"""

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional

from django.db import transaction
from django.db.models import Count, Q

from marketplace.catalog.domain.models import Product
from marketplace.meals.domain.models import Meal, MealIngredient
from utils.pagination import paginate
from utils.rbac import is_admin
from utils.service_base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok

MEAL_FIELDS = (
    "name",
    "description",
    "images",
    "category",
    "cuisine",
    "servings",
    "prep_time",
    "cook_time",
    "difficulty",
    "estimated_cost",
    "is_active",
    "is_popular",
    "sort_order",
    "tags",
    "instructions",
)
INGREDIENT_FIELDS = ("ingredient_name", "quantity", "unit", "notes", "is_optional", "estimated_price", "sort_order")
MEAL_PAGE_SIZE = 20
POPULAR_LIMIT = 6
MIN_SEARCH_LENGTH = 2
TWO_PLACES = Decimal("0.01")


class MealService(BaseService):
    def __init__(self, shopping_list_service=None):
        super().__init__()
        self._shopping_list_service = shopping_list_service

    @property
    def shopping_list_service(self):
        if self._shopping_list_service is None:
            from infrastructure.container import container

            self._shopping_list_service = container.shopping_list_service()
        return self._shopping_list_service

    # ===== Lookups =====

    def _load(self, meal_id) -> ServiceResult[Meal]:
        meal = Meal.objects.prefetch_related("ingredients__product").filter(pk=meal_id).first()
        if meal is None:
            return service_err(ErrorCodes.MEAL_NOT_FOUND, "Meal not found")
        return service_ok(meal)

    def get_meal(self, meal_id) -> ServiceResult[Meal]:
        result = self._load(meal_id)
        if result.ok and not result.value.is_active:
            return service_err(ErrorCodes.INVALID_INPUT, "This meal is no longer available")
        return result

    def list_meals(
        self,
        category: Optional[str] = None,
        cuisine: Optional[str] = None,
        difficulty: Optional[str] = None,
        popular: Optional[bool] = None,
        tags: Optional[List[str]] = None,
        page: int = 1,
        size: int = MEAL_PAGE_SIZE,
    ) -> ServiceResult[Dict]:
        queryset = Meal.objects.filter(is_active=True)
        if category:
            queryset = queryset.filter(category__iexact=category)
        if cuisine:
            queryset = queryset.filter(cuisine__iexact=cuisine)
        if difficulty:
            queryset = queryset.filter(difficulty=difficulty)
        if popular is not None:
            queryset = queryset.filter(is_popular=popular)
        if tags:
            # JSON containment is not portable across backends, so tags are matched here
            wanted = {tag.lower() for tag in tags}
            matching = [
                meal.id
                for meal in queryset.only("id", "tags")
                if wanted & {str(tag).lower() for tag in meal.tags or []}
            ]
            queryset = queryset.filter(pk__in=matching)
        return service_ok(paginate(queryset.order_by("-is_popular", "sort_order", "-created_at"), page, size))

    def search_meals(self, q: str, page: int = 1, size: int = MEAL_PAGE_SIZE) -> ServiceResult[Dict]:
        q = (q or "").strip()
        if len(q) < MIN_SEARCH_LENGTH:
            return service_err(
                ErrorCodes.VALIDATION_ERROR, f"Search query must be at least {MIN_SEARCH_LENGTH} characters"
            )
        queryset = Meal.objects.filter(is_active=True).filter(
            Q(name__icontains=q) | Q(description__icontains=q) | Q(cuisine__icontains=q) | Q(category__icontains=q)
        )
        return service_ok(paginate(queryset, page, size))

    def list_categories(self) -> ServiceResult[List[Dict]]:
        rows = (
            Meal.objects.filter(is_active=True)
            .exclude(category="")
            .values("category")
            .annotate(count=Count("id"))
            .order_by("category")
        )
        return service_ok([{"category": row["category"], "count": row["count"]} for row in rows])

    def popular_meals(self, limit: int = POPULAR_LIMIT) -> ServiceResult[List[Meal]]:
        return service_ok(list(Meal.objects.filter(is_active=True, is_popular=True).order_by("sort_order")[:limit]))

    # ===== Ingredients =====

    @staticmethod
    def _unit_price(ingredient: MealIngredient) -> Optional[Decimal]:
        product = ingredient.product
        if product is not None and product.effective_price is not None:
            return product.effective_price
        return ingredient.estimated_price

    def _scale(self, meal: Meal, servings: int) -> List[Dict]:
        factor = Decimal(servings) / Decimal(meal.servings)
        lines = []
        for ingredient in meal.ingredients.all():
            quantity = (ingredient.quantity * factor).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
            unit_price = self._unit_price(ingredient)
            line_cost = (unit_price * quantity).quantize(TWO_PLACES) if unit_price is not None else None
            lines.append({"ingredient": ingredient, "quantity": quantity, "unit_price": unit_price, "cost": line_cost})
        return lines

    def _resolve_servings(self, meal_id, servings: Optional[int]) -> ServiceResult:
        result = self.get_meal(meal_id)
        if not result.ok:
            return result
        meal = result.value
        servings = meal.servings if servings is None else servings
        if servings <= 0:
            return service_err(ErrorCodes.VALIDATION_ERROR, "Servings must be greater than zero")
        return service_ok((meal, servings))

    def scaled_ingredients(self, meal_id, servings: Optional[int] = None) -> ServiceResult[Dict]:
        """Ingredients for the requested number of servings, with estimated costs."""
        resolved = self._resolve_servings(meal_id, servings)
        if not resolved.ok:
            return resolved
        meal, servings = resolved.value

        lines = self._scale(meal, servings)
        estimated_cost = sum(
            (line["cost"] for line in lines if line["cost"] is not None and not line["ingredient"].is_optional),
            Decimal("0"),
        )
        return service_ok(
            {
                "meal_id": str(meal.id),
                "servings": servings,
                "scale_factor": str((Decimal(servings) / Decimal(meal.servings)).quantize(TWO_PLACES)),
                "estimated_cost": str(estimated_cost.quantize(TWO_PLACES)),
                "ingredients": [
                    {
                        "id": str(line["ingredient"].id),
                        "ingredient_name": line["ingredient"].ingredient_name,
                        "product_id": str(line["ingredient"].product_id) if line["ingredient"].product_id else None,
                        "quantity": str(line["quantity"]),
                        "unit": line["ingredient"].unit,
                        "notes": line["ingredient"].notes,
                        "is_optional": line["ingredient"].is_optional,
                        "unit_price": None if line["unit_price"] is None else str(line["unit_price"]),
                        "estimated_cost": None if line["cost"] is None else str(line["cost"]),
                    }
                    for line in lines
                ],
            }
        )

    def shopping_items(
        self, meal_id, servings: Optional[int] = None, include_optional: bool = True
    ) -> ServiceResult[List[Dict]]:
        """
        Shopping list items for a meal.

        List items count whole units, so scaled quantities are rounded up and
        the exact amount the recipe needs goes into the item notes.
        """
        resolved = self._resolve_servings(meal_id, servings)
        if not resolved.ok:
            return resolved
        meal, servings = resolved.value

        items = []
        for line in self._scale(meal, servings):
            ingredient = line["ingredient"]
            if ingredient.is_optional and not include_optional:
                continue
            needed = f"Recipe needs {line['quantity'].normalize():f} {ingredient.unit}".strip()
            item = {
                "name": ingredient.ingredient_name,
                "quantity": max(1, math.ceil(line["quantity"])),
                "unit": ingredient.unit,
                "notes": f"{needed}. {ingredient.notes}" if ingredient.notes else needed,
                "estimated_price": ingredient.estimated_price,
                "user_provided_price": ingredient.estimated_price,
            }
            product = ingredient.product
            # An unpriced product is only linked when our estimate can stand in for its price
            if product is not None and (product.effective_price is not None or ingredient.estimated_price is not None):
                item["product_id"] = str(product.id)
            items.append(item)
        return service_ok(items)

    @BaseService.log_performance
    def create_shopping_list(
        self,
        meal_id,
        user,
        servings: Optional[int] = None,
        name: Optional[str] = None,
        market_id=None,
        include_optional: bool = True,
    ):
        """Create a draft shopping list holding a meal's ingredients."""
        meal_result = self.get_meal(meal_id)
        if not meal_result.ok:
            return meal_result
        meal = meal_result.value
        servings = meal.servings if servings is None else servings

        items_result = self.shopping_items(meal_id, servings, include_optional=include_optional)
        if not items_result.ok:
            return items_result

        result = self.shopping_list_service.create_list(
            user,
            {
                "name": name or f"{meal.name} - {servings} servings",
                "notes": f"Shopping list for {meal.name} ({servings} servings)",
                "market_id": market_id,
                "items": items_result.value,
            },
        )
        if result.ok:
            self.logger.info(f"Shopping list {result.value.id} created from meal {meal.id} for {user.id}")
        return result

    # ===== Administration =====

    def _build_ingredients(self, meal: Meal, rows: List[Dict]) -> ServiceResult[List[MealIngredient]]:
        ingredients = []
        for index, row in enumerate(rows or []):
            fields = {key: row[key] for key in INGREDIENT_FIELDS if key in row}
            fields.setdefault("sort_order", index)
            product_id = row.get("product_id")
            if product_id:
                product = Product.objects.filter(pk=product_id).first()
                if product is None:
                    return service_err(ErrorCodes.PRODUCT_NOT_FOUND, f"Product {product_id} not found")
                fields["product"] = product
                fields.setdefault("ingredient_name", product.name)
            if not fields.get("ingredient_name"):
                return service_err(ErrorCodes.VALIDATION_ERROR, "Ingredient name is required")
            if fields.get("quantity") is None or Decimal(str(fields["quantity"])) <= 0:
                return service_err(ErrorCodes.VALIDATION_ERROR, f"'{fields['ingredient_name']}' needs a quantity")
            ingredients.append(MealIngredient(meal=meal, **fields))
        return service_ok(ingredients)

    @transaction.atomic
    def create_meal(self, user, data: Dict) -> ServiceResult[Meal]:
        if not is_admin(user):
            return service_err(ErrorCodes.PERMISSION_DENIED, "Only admins can manage meals")
        if not data.get("name"):
            return service_err(ErrorCodes.VALIDATION_ERROR, "Meal name is required")

        meal = Meal.objects.create(created_by=user, **{k: v for k, v in data.items() if k in MEAL_FIELDS})
        ingredients = self._build_ingredients(meal, data.get("ingredients"))
        if not ingredients.ok:
            transaction.set_rollback(True)
            return ingredients
        MealIngredient.objects.bulk_create(ingredients.value)
        self.logger.info(f"Meal {meal.id} created by {user.id} with {len(ingredients.value)} ingredients")
        return self._load(meal.id)

    @transaction.atomic
    def update_meal(self, user, meal_id, data: Dict) -> ServiceResult[Meal]:
        """Update a meal. Ingredients, when given, replace the current ones."""
        if not is_admin(user):
            return service_err(ErrorCodes.PERMISSION_DENIED, "Only admins can manage meals")
        result = self._load(meal_id)
        if not result.ok:
            return result
        meal = result.value
        for key in MEAL_FIELDS:
            if key in data:
                setattr(meal, key, data[key])
        meal.save()

        if "ingredients" in data:
            ingredients = self._build_ingredients(meal, data["ingredients"])
            if not ingredients.ok:
                transaction.set_rollback(True)
                return ingredients
            meal.ingredients.all().delete()
            MealIngredient.objects.bulk_create(ingredients.value)
        return self._load(meal.id)

    def delete_meal(self, user, meal_id) -> ServiceResult[None]:
        """Soft delete: the meal is hidden but lists made from it are untouched."""
        if not is_admin(user):
            return service_err(ErrorCodes.PERMISSION_DENIED, "Only admins can manage meals")
        result = self._load(meal_id)
        if not result.ok:
            return result
        meal = result.value
        meal.is_active = False
        meal.save(update_fields=["is_active", "updated_at"])
        return service_ok(None)
