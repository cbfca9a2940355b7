import uuid

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models

from marketplace.catalog.domain.models import Product


class Meal(models.Model):
    """A recipe customers can turn into a shopping list."""

    DIFFICULTY_CHOICES = [
        ("easy", "Easy"),
        ("medium", "Medium"),
        ("hard", "Hard"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    images = models.JSONField(default=list, blank=True)
    category = models.CharField(max_length=100, blank=True)
    cuisine = models.CharField(max_length=100, blank=True)

    servings = models.PositiveIntegerField(default=4, validators=[MinValueValidator(1)])
    prep_time = models.PositiveIntegerField(null=True, blank=True)  # minutes
    cook_time = models.PositiveIntegerField(null=True, blank=True)  # minutes
    difficulty = models.CharField(max_length=10, choices=DIFFICULTY_CHOICES, default="medium")
    estimated_cost = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    is_active = models.BooleanField(default=True)
    is_popular = models.BooleanField(default=False)
    sort_order = models.IntegerField(default=0)
    tags = models.JSONField(default=list, blank=True)
    instructions = models.JSONField(default=list, blank=True)  # ordered steps

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="meals"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        app_label = "marketplace"
        ordering = ["-is_popular", "sort_order", "-created_at"]

    def __str__(self):
        return self.name

    @property
    def total_time(self):
        if self.prep_time is None and self.cook_time is None:
            return None
        return (self.prep_time or 0) + (self.cook_time or 0)


class MealIngredient(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    meal = models.ForeignKey(Meal, on_delete=models.CASCADE, related_name="ingredients")
    product = models.ForeignKey(
        Product, on_delete=models.SET_NULL, null=True, blank=True, related_name="meal_ingredients"
    )

    ingredient_name = models.CharField(max_length=200)
    # Quantity for meal.servings portions
    quantity = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    unit = models.CharField(max_length=50, blank=True)
    notes = models.TextField(blank=True)
    is_optional = models.BooleanField(default=False)
    # Price per unit when there is no catalogue product to go by
    estimated_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    sort_order = models.IntegerField(default=0)

    class Meta:
        app_label = "marketplace"
        ordering = ["sort_order", "ingredient_name"]

    def __str__(self):
        return f"{self.quantity} {self.unit} {self.ingredient_name}".strip()
