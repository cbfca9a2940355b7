from rest_framework import serializers

from marketplace.promotions.domain.models import DiscountCampaign, DiscountUsage


class DiscountCampaignSerializer(serializers.ModelSerializer):
    code = serializers.CharField(max_length=50, required=False, allow_blank=True, allow_null=True)
    conditions = serializers.JSONField(required=False)
    buy_x_get_y_config = serializers.JSONField(required=False)
    target_market_ids = serializers.ListField(child=serializers.UUIDField(), required=False)
    target_product_ids = serializers.ListField(child=serializers.UUIDField(), required=False)
    target_category_ids = serializers.ListField(child=serializers.UUIDField(), required=False)
    target_user_ids = serializers.ListField(child=serializers.UUIDField(), required=False)

    class Meta:
        model = DiscountCampaign
        fields = (
            "id",
            "name",
            "description",
            "code",
            "discount_type",
            "target_type",
            "value",
            "minimum_order_amount",
            "maximum_discount_amount",
            "usage_limit",
            "usage_limit_per_user",
            "usage_count",
            "start_date",
            "end_date",
            "status",
            "is_automatic_apply",
            "priority",
            "conditions",
            "buy_x_get_y_config",
            "target_market_ids",
            "target_product_ids",
            "target_category_ids",
            "target_user_ids",
            "created_at",
            "updated_at",
        )
        read_only_fields = ("id", "usage_count", "created_at", "updated_at")


class DiscountOfferSerializer(serializers.ModelSerializer):
    """What a customer sees of a campaign."""

    class Meta:
        model = DiscountCampaign
        fields = (
            "id",
            "name",
            "description",
            "code",
            "discount_type",
            "target_type",
            "value",
            "minimum_order_amount",
            "maximum_discount_amount",
            "end_date",
            "is_automatic_apply",
        )
        read_only_fields = fields


class CampaignStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=DiscountCampaign.STATUS_CHOICES)


class DiscountCodeSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=50)
    shopping_list_id = serializers.UUIDField()


class DiscountPreviewSerializer(serializers.Serializer):
    shopping_list_id = serializers.UUIDField()
    code = serializers.CharField(max_length=50, required=False, allow_blank=True)


class DiscountUsageSerializer(serializers.ModelSerializer):
    campaign = DiscountOfferSerializer(read_only=True)
    order_id = serializers.UUIDField(read_only=True)
    order_number = serializers.CharField(source="order.order_number", read_only=True, default=None)
    shopping_list_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = DiscountUsage
        fields = (
            "id",
            "campaign",
            "order_id",
            "order_number",
            "shopping_list_id",
            "discount_amount",
            "order_total",
            "created_at",
        )
        read_only_fields = fields


def quote_data(quote) -> dict:
    """A priced discount as returned by DiscountService."""
    campaign = quote["campaign"]
    return {
        "campaign": DiscountOfferSerializer(campaign).data if campaign else None,
        "discount_amount": str(quote["discount_amount"]),
        "totals": {key: str(value) for key, value in quote["totals"].items()},
    }
