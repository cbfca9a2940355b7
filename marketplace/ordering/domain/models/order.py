import uuid

from django.conf import settings
from django.db import models

from .shopping_list import ShoppingList


class Order(models.Model):
    STATUS_CHOICES = [
        ("pending", "Pending"),  # Waiting for an agent
        ("accepted", "Accepted"),
        ("in_progress", "In Progress"),
        ("shopping", "Shopping"),
        ("shopping_completed", "Shopping Completed"),
        ("delivery", "Out for Delivery"),
        ("completed", "Completed"),
        ("cancelled", "Cancelled"),
    ]

    PAYMENT_STATUS_CHOICES = [
        ("pending", "Pending"),
        ("completed", "Completed"),
        ("failed", "Failed"),
        ("expired", "Expired"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_number = models.CharField(max_length=16, unique=True)

    customer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="orders")
    agent = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="agent_orders"
    )
    shopping_list = models.ForeignKey(ShoppingList, on_delete=models.CASCADE, related_name="orders")

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="pending")

    # Pricing
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    service_fee = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    delivery_fee = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    discount_campaign = models.ForeignKey(
        "marketplace.DiscountCampaign", on_delete=models.SET_NULL, null=True, blank=True, related_name="orders"
    )

    # {latitude, longitude, address, city, state, country, additional_directions}
    delivery_address = models.JSONField(default=dict)

    customer_notes = models.TextField(blank=True)
    agent_notes = models.TextField(blank=True)

    # Lifecycle timestamps
    accepted_at = models.DateTimeField(null=True, blank=True)
    shopping_started_at = models.DateTimeField(null=True, blank=True)
    shopping_completed_at = models.DateTimeField(null=True, blank=True)
    delivery_started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    # [{agent_id, reason, rejected_at}]
    rejected_agents = models.JSONField(default=list, blank=True)

    payment_id = models.CharField(max_length=255, blank=True)
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default="pending")
    payment_processed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        app_label = "marketplace"
        indexes = [
            models.Index(fields=["customer", "status"]),
            models.Index(fields=["agent", "status"]),
        ]

    def __str__(self):
        return f"Order {self.order_number} ({self.status})"

    def rejected_agent_ids(self):
        return {str(entry.get("agent_id")) for entry in (self.rejected_agents or [])}


class OrderTrail(models.Model):
    """Append-only audit log of everything that happens to an order."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="trail")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="order_trail"
    )
    action = models.CharField(max_length=50)
    description = models.TextField()
    previous_value = models.JSONField(null=True, blank=True)
    new_value = models.JSONField(null=True, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(blank=True)
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        app_label = "marketplace"
        ordering = ["timestamp"]
        indexes = [
            models.Index(fields=["order", "timestamp"]),
        ]

    def __str__(self):
        return f"{self.action} on {self.order_id}"
