import uuid

from django.conf import settings
from django.db import models
from django.utils import timezone


class DiscountCampaign(models.Model):
    TYPE_CHOICES = [
        ("percentage", "Percentage"),
        ("fixed_amount", "Fixed Amount"),
        ("buy_x_get_y", "Buy X Get Y"),
        ("free_shipping", "Free Delivery"),
    ]

    TARGET_CHOICES = [
        ("global", "Everyone"),
        ("market", "Markets"),
        ("product", "Products"),
        ("category", "Categories"),
        ("user", "Users"),
        ("first_order", "First Order"),
    ]

    STATUS_CHOICES = [
        ("draft", "Draft"),
        ("active", "Active"),
        ("paused", "Paused"),
        ("expired", "Expired"),
        ("cancelled", "Cancelled"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    # Automatic campaigns may have no code; codes are stored upper-cased
    code = models.CharField(max_length=50, unique=True, null=True, blank=True)

    discount_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    target_type = models.CharField(max_length=20, choices=TARGET_CHOICES, default="global")
    value = models.DecimalField(max_digits=12, decimal_places=2)
    minimum_order_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    maximum_discount_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    usage_limit = models.PositiveIntegerField(null=True, blank=True)
    usage_limit_per_user = models.PositiveIntegerField(null=True, blank=True)
    usage_count = models.PositiveIntegerField(default=0)

    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="draft")

    is_automatic_apply = models.BooleanField(default=False)
    priority = models.IntegerField(default=0)

    # {"user_type": "customer", "day_of_week": [5, 6]}
    conditions = models.JSONField(default=dict, blank=True)
    # {"buy_quantity": 2, "get_quantity": 1}
    buy_x_get_y_config = models.JSONField(default=dict, blank=True)
    target_market_ids = models.JSONField(default=list, blank=True)
    target_product_ids = models.JSONField(default=list, blank=True)
    target_category_ids = models.JSONField(default=list, blank=True)
    target_user_ids = models.JSONField(default=list, blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="discount_campaigns"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        app_label = "marketplace"
        ordering = ["-priority", "-created_at"]
        indexes = [
            models.Index(fields=["status", "start_date", "end_date"]),
        ]

    def __str__(self):
        return f"{self.name} ({self.code or 'automatic'})"

    def is_running(self, now=None) -> bool:
        now = now or timezone.now()
        return self.start_date <= now <= self.end_date

    @property
    def is_exhausted(self) -> bool:
        return self.usage_limit is not None and self.usage_count >= self.usage_limit


class DiscountUsage(models.Model):
    """One redemption of a campaign, written when the discounted order is created."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    campaign = models.ForeignKey(DiscountCampaign, on_delete=models.CASCADE, related_name="usages")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="discount_usages")
    order = models.ForeignKey(
        "marketplace.Order", on_delete=models.SET_NULL, null=True, blank=True, related_name="discount_usages"
    )
    shopping_list = models.ForeignKey(
        "marketplace.ShoppingList", on_delete=models.SET_NULL, null=True, blank=True, related_name="discount_usages"
    )
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2)
    order_total = models.DecimalField(max_digits=12, decimal_places=2)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        app_label = "marketplace"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["campaign", "user"]),
        ]

    def __str__(self):
        return f"{self.campaign_id} used by {self.user_id}"
