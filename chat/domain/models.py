import uuid

from django.conf import settings
from django.db import models

from marketplace.ordering.domain.models import Order


class ChatMessage(models.Model):
    """A message between an order's customer and its assigned agent."""

    SENDER_TYPE_CHOICES = [
        ("customer", "Customer"),
        ("agent", "Agent"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="chat_messages")
    sender = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="chat_messages")
    sender_type = models.CharField(max_length=10, choices=SENDER_TYPE_CHOICES)

    message = models.TextField(blank=True)
    image_url = models.URLField(max_length=500, blank=True)
    is_read = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        app_label = "chat"
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["order", "created_at"]),
            models.Index(fields=["order", "is_read"]),
        ]

    def __str__(self):
        return f"{self.sender_type} message on order {self.order_id}"

    def as_event(self) -> dict:
        """Payload broadcast over the channel layer."""
        return {
            "id": str(self.id),
            "order_id": str(self.order_id),
            "sender_id": str(self.sender_id),
            "sender_type": self.sender_type,
            "message": self.message,
            "image_url": self.image_url,
            "is_read": self.is_read,
            "created_at": self.created_at.isoformat(),
        }
