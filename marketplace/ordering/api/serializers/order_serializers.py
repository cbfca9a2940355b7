from rest_framework import serializers

from authentication.api.serializers import PublicUserSerializer
from marketplace.ordering.api.serializers.shopping_list_serializers import (
    ActualPriceSerializer,
    ShoppingListSerializer,
)
from marketplace.ordering.domain.models import Order, OrderTrail


class OrderSerializer(serializers.ModelSerializer):
    customer = PublicUserSerializer(read_only=True)
    agent = PublicUserSerializer(read_only=True)
    shopping_list = ShoppingListSerializer(read_only=True)

    class Meta:
        model = Order
        fields = (
            "id",
            "order_number",
            "status",
            "customer",
            "agent",
            "shopping_list",
            "total_amount",
            "service_fee",
            "delivery_fee",
            "discount_amount",
            "delivery_address",
            "customer_notes",
            "agent_notes",
            "rejected_agents",
            "accepted_at",
            "shopping_started_at",
            "shopping_completed_at",
            "delivery_started_at",
            "completed_at",
            "cancelled_at",
            "payment_id",
            "payment_status",
            "payment_processed_at",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields


class OrderTrailSerializer(serializers.ModelSerializer):
    user = PublicUserSerializer(read_only=True)

    class Meta:
        model = OrderTrail
        fields = ("id", "action", "description", "user", "previous_value", "new_value", "metadata", "timestamp")
        read_only_fields = fields


class OrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.STATUS_CHOICES)
    reason = serializers.CharField(required=False, allow_blank=True)


class AssignOrderSerializer(serializers.Serializer):
    agent_id = serializers.UUIDField()


class RejectOrderSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True)


class CompleteOrderSerializer(serializers.Serializer):
    actual_prices = ActualPriceSerializer(many=True, required=False)


class NotesSerializer(serializers.Serializer):
    notes = serializers.CharField(allow_blank=True)


class OrderPaymentSerializer(serializers.Serializer):
    payment_status = serializers.ChoiceField(choices=Order.PAYMENT_STATUS_CHOICES)
    payment_id = serializers.CharField(max_length=255, required=False, allow_blank=True)
