from rest_framework import serializers

from marketplace.catalog.domain.models import Category, Market, Product


class CategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = Category
        fields = ("id", "name", "description", "images", "icon", "is_pinned", "created_at", "updated_at")
        read_only_fields = ("id", "created_at", "updated_at")


class MarketSummarySerializer(serializers.ModelSerializer):
    """Just enough of a market to label a list or an order."""

    class Meta:
        model = Market
        fields = ("id", "name", "address", "location", "market_type")
        read_only_fields = fields


class MarketSerializer(serializers.ModelSerializer):
    location = serializers.JSONField(required=False)
    categories = CategorySerializer(many=True, read_only=True)
    category_ids = serializers.ListField(child=serializers.UUIDField(), write_only=True, required=False)

    class Meta:
        model = Market
        fields = (
            "id",
            "name",
            "address",
            "location",
            "phone_number",
            "market_type",
            "description",
            "images",
            "operating_hours",
            "is_pinned",
            "is_active",
            "owner",
            "categories",
            "category_ids",
            "created_at",
            "updated_at",
        )
        read_only_fields = ("id", "owner", "created_at", "updated_at")

    def validate_location(self, value):
        if not value:
            return {}
        if not isinstance(value, dict):
            raise serializers.ValidationError("Location must be an object.")
        try:
            latitude = float(value["latitude"])
            longitude = float(value["longitude"])
        except (KeyError, TypeError, ValueError):
            raise serializers.ValidationError("Location needs numeric latitude and longitude.")
        if not (-90 <= latitude <= 90 and -180 <= longitude <= 180):
            raise serializers.ValidationError("Coordinates are out of range.")
        return {**value, "latitude": latitude, "longitude": longitude}


class ProductSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Product
        fields = ("id", "name", "price", "discount_price", "images", "is_available")
        read_only_fields = fields


class ProductSerializer(serializers.ModelSerializer):
    market = MarketSummarySerializer(read_only=True)
    market_id = serializers.UUIDField(write_only=True, required=False)
    effective_price = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = Product
        fields = (
            "id",
            "market",
            "market_id",
            "name",
            "description",
            "price",
            "discount_price",
            "effective_price",
            "images",
            "barcode",
            "sku",
            "stock_quantity",
            "attributes",
            "is_available",
            "is_pinned",
            "created_at",
            "updated_at",
        )
        read_only_fields = ("id", "created_at", "updated_at")

    def validate(self, attrs):
        price = attrs.get("price", getattr(self.instance, "price", None))
        discount = attrs.get("discount_price")
        if discount is not None and price is not None and discount > price:
            raise serializers.ValidationError({"discount_price": "Discount price cannot exceed the price."})
        return attrs
