from rest_framework import serializers

from authentication.api.serializers import PublicUserSerializer
from marketplace.catalog.api.serializers import MarketSummarySerializer
from marketplace.ordering.domain.models import ShoppingList, ShoppingListItem

PRICE = {"max_digits": 12, "decimal_places": 2, "min_value": 0}


class ShoppingListItemSerializer(serializers.ModelSerializer):
    product_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = ShoppingListItem
        fields = (
            "id",
            "product_id",
            "name",
            "quantity",
            "unit",
            "notes",
            "estimated_price",
            "user_provided_price",
            "actual_price",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields


class ShoppingListSerializer(serializers.ModelSerializer):
    customer = PublicUserSerializer(read_only=True)
    agent = PublicUserSerializer(read_only=True)
    market = MarketSummarySerializer(read_only=True)
    items = ShoppingListItemSerializer(many=True, read_only=True)

    class Meta:
        model = ShoppingList
        fields = (
            "id",
            "name",
            "notes",
            "customer",
            "market",
            "agent",
            "status",
            "estimated_total",
            "payment_status",
            "payment_id",
            "payment_processed_at",
            "list_type",
            "is_active",
            "is_read_only",
            "category",
            "is_popular",
            "sort_order",
            "source_suggested_list",
            "items",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields


class ShoppingListItemInputSerializer(serializers.Serializer):
    product_id = serializers.UUIDField(required=False, allow_null=True)
    name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    quantity = serializers.IntegerField(min_value=1, required=False)
    unit = serializers.CharField(max_length=50, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    estimated_price = serializers.DecimalField(required=False, allow_null=True, **PRICE)
    user_provided_price = serializers.DecimalField(required=False, allow_null=True, **PRICE)


class ShoppingListWriteSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    notes = serializers.CharField(required=False, allow_blank=True)
    market_id = serializers.UUIDField(required=False, allow_null=True)
    items = ShoppingListItemInputSerializer(many=True, required=False)


class SuggestedListWriteSerializer(ShoppingListWriteSerializer):
    category = serializers.CharField(max_length=100, required=False, allow_blank=True)
    is_popular = serializers.BooleanField(required=False)
    sort_order = serializers.IntegerField(required=False)
    is_read_only = serializers.BooleanField(required=False)


class ListStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=ShoppingList.STATUS_CHOICES)


class ActualPriceSerializer(serializers.Serializer):
    item_id = serializers.UUIDField()
    actual_price = serializers.DecimalField(**PRICE)


class RecordPaymentSerializer(serializers.Serializer):
    payment_id = serializers.CharField(max_length=255)
    delivery_address = serializers.JSONField(required=False)
    customer_notes = serializers.CharField(required=False, allow_blank=True)
    discount_code = serializers.CharField(max_length=50, required=False, allow_blank=True)
