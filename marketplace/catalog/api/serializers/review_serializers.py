from rest_framework import serializers

from authentication.api.serializers import PublicUserSerializer
from marketplace.catalog.domain.models import Review


class ReviewSerializer(serializers.ModelSerializer):
    reviewer = PublicUserSerializer(read_only=True)
    market_id = serializers.UUIDField(required=False, allow_null=True)
    product_id = serializers.UUIDField(required=False, allow_null=True)
    rating = serializers.IntegerField(min_value=1, max_value=5)

    class Meta:
        model = Review
        fields = ("id", "reviewer", "market_id", "product_id", "rating", "comment", "images", "created_at", "updated_at")
        read_only_fields = ("id", "reviewer", "created_at", "updated_at")

    def validate(self, attrs):
        if bool(attrs.get("market_id")) == bool(attrs.get("product_id")):
            raise serializers.ValidationError("Provide exactly one of market_id or product_id.")
        return attrs


class ReviewUpdateSerializer(serializers.Serializer):
    rating = serializers.IntegerField(min_value=1, max_value=5, required=False)
    comment = serializers.CharField(required=False, allow_blank=True)
    images = serializers.ListField(child=serializers.URLField(), required=False)
