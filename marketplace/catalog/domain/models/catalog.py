import uuid

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models

from .category import Category


class Market(models.Model):
    MARKET_TYPE_CHOICES = [
        ("supermarket", "Supermarket"),
        ("local_market", "Local Market"),
        ("pharmacy", "Pharmacy"),
        ("specialty_store", "Specialty Store"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    address = models.CharField(max_length=255)
    location = models.JSONField(default=dict, blank=True)  # {latitude, longitude, city, state, country}
    phone_number = models.CharField(max_length=20, blank=True)
    market_type = models.CharField(max_length=20, choices=MARKET_TYPE_CHOICES, default="local_market")
    description = models.TextField(blank=True)
    images = models.JSONField(default=list, blank=True)
    operating_hours = models.JSONField(default=dict, blank=True)
    is_pinned = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="markets"
    )
    categories = models.ManyToManyField(Category, blank=True, related_name="markets")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        app_label = "marketplace"
        ordering = ["-is_pinned", "name"]

    def __str__(self):
        return self.name

    @property
    def coordinates(self):
        """(latitude, longitude) as floats, or None when the market has no usable location."""
        location = self.location or {}
        try:
            return float(location["latitude"]), float(location["longitude"])
        except (KeyError, TypeError, ValueError):
            return None


class Product(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    market = models.ForeignKey(Market, on_delete=models.CASCADE, related_name="products")
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)

    # Price may be unknown for open-market goods; customers then supply their own estimate
    price = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True, validators=[MinValueValidator(0)]
    )
    discount_price = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True, validators=[MinValueValidator(0)]
    )

    images = models.JSONField(default=list, blank=True)
    barcode = models.CharField(max_length=100, blank=True)
    sku = models.CharField(max_length=100, blank=True)
    stock_quantity = models.PositiveIntegerField(null=True, blank=True)
    attributes = models.JSONField(default=dict, blank=True)
    is_available = models.BooleanField(default=True)
    is_pinned = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        app_label = "marketplace"
        ordering = ["-is_pinned", "name"]
        indexes = [
            models.Index(fields=["market", "is_available"]),
        ]

    def __str__(self):
        return f"{self.name} ({self.market.name})"

    @property
    def effective_price(self):
        if self.discount_price is not None:
            return self.discount_price
        return self.price
