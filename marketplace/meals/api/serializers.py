from rest_framework import serializers

from marketplace.catalog.api.serializers import ProductSummarySerializer
from marketplace.meals.domain.models import Meal, MealIngredient


class MealIngredientSerializer(serializers.ModelSerializer):
    product = ProductSummarySerializer(read_only=True)
    product_id = serializers.UUIDField(write_only=True, required=False, allow_null=True)
    ingredient_name = serializers.CharField(max_length=200, required=False)

    class Meta:
        model = MealIngredient
        fields = (
            "id",
            "product",
            "product_id",
            "ingredient_name",
            "quantity",
            "unit",
            "notes",
            "is_optional",
            "estimated_price",
            "sort_order",
        )
        read_only_fields = ("id",)


class MealListSerializer(serializers.ModelSerializer):
    total_time = serializers.IntegerField(read_only=True)

    class Meta:
        model = Meal
        fields = (
            "id",
            "name",
            "description",
            "images",
            "category",
            "cuisine",
            "servings",
            "prep_time",
            "cook_time",
            "total_time",
            "difficulty",
            "estimated_cost",
            "is_popular",
            "tags",
        )
        read_only_fields = fields


class MealSerializer(serializers.ModelSerializer):
    images = serializers.JSONField(required=False)
    tags = serializers.ListField(child=serializers.CharField(max_length=50), required=False)
    instructions = serializers.ListField(child=serializers.CharField(), required=False)
    ingredients = MealIngredientSerializer(many=True, required=False)
    total_time = serializers.IntegerField(read_only=True)

    class Meta:
        model = Meal
        fields = (
            "id",
            "name",
            "description",
            "images",
            "category",
            "cuisine",
            "servings",
            "prep_time",
            "cook_time",
            "total_time",
            "difficulty",
            "estimated_cost",
            "is_active",
            "is_popular",
            "sort_order",
            "tags",
            "instructions",
            "ingredients",
            "created_at",
            "updated_at",
        )
        read_only_fields = ("id", "created_at", "updated_at")


class MealShoppingListSerializer(serializers.Serializer):
    servings = serializers.IntegerField(min_value=1, required=False)
    name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    market_id = serializers.UUIDField(required=False, allow_null=True)
    include_optional = serializers.BooleanField(required=False, default=True)
