import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models

from marketplace.catalog.domain.models import Market, Product


class ShoppingList(models.Model):
    STATUS_CHOICES = [
        ("draft", "Draft"),
        ("pending", "Pending"),
        ("accepted", "Accepted"),
        ("processing", "Processing"),
        ("completed", "Completed"),
        ("cancelled", "Cancelled"),
    ]

    PAYMENT_STATUS_CHOICES = [
        ("pending", "Pending"),
        ("completed", "Completed"),
        ("failed", "Failed"),
        ("expired", "Expired"),
    ]

    LIST_TYPE_CHOICES = [
        ("personal", "Personal"),
        ("suggested", "Suggested"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    notes = models.TextField(blank=True)

    customer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="shopping_lists")
    market = models.ForeignKey(
        Market, on_delete=models.SET_NULL, null=True, blank=True, related_name="shopping_lists"
    )
    agent = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="assigned_shopping_lists",
    )

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="draft")
    estimated_total = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    # Payment is recorded here once confirmed; the gateway itself lives outside this service
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, null=True, blank=True)
    payment_id = models.CharField(max_length=255, blank=True)
    payment_processed_at = models.DateTimeField(null=True, blank=True)

    # Curated lists that customers can copy
    list_type = models.CharField(max_length=20, choices=LIST_TYPE_CHOICES, default="personal")
    is_active = models.BooleanField(default=True)
    is_read_only = models.BooleanField(default=False)
    category = models.CharField(max_length=100, blank=True)
    is_popular = models.BooleanField(default=False)
    sort_order = models.IntegerField(default=0)
    source_suggested_list = models.ForeignKey(
        "self", on_delete=models.SET_NULL, null=True, blank=True, related_name="copies"
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        app_label = "marketplace"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["customer", "status"]),
            models.Index(fields=["agent", "status"]),
        ]

    def __str__(self):
        return f"{self.name} ({self.status})"

    def compute_estimated_total(self) -> Decimal:
        """Sum item estimates as stored, ignoring any prefetched items."""
        total = Decimal("0")
        for item in ShoppingListItem.objects.filter(shopping_list=self):
            price = item.estimated_price if item.estimated_price is not None else item.user_provided_price
            total += (price or Decimal("0")) * item.quantity
        return total


class ShoppingListItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    shopping_list = models.ForeignKey(ShoppingList, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey(
        Product, on_delete=models.SET_NULL, null=True, blank=True, related_name="shopping_list_items"
    )

    name = models.CharField(max_length=200)
    quantity = models.PositiveIntegerField(default=1)
    unit = models.CharField(max_length=50, blank=True)
    notes = models.TextField(blank=True)

    estimated_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    user_provided_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    actual_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        app_label = "marketplace"
        ordering = ["created_at"]

    def __str__(self):
        return f"{self.quantity} x {self.name}"
