import uuid

from django.conf import settings
from django.db import models


class NotificationType:
    """Keys stored in Notification.title; clients localise on them."""

    ORDER_CREATED = "ORDER_CREATED"
    ORDER_STATUS_UPDATED = "ORDER_STATUS_UPDATED"
    ORDER_CANCELLED = "ORDER_CANCELLED"
    SHOPPING_LIST_SUBMITTED = "SHOPPING_LIST_SUBMITTED"
    SHOPPING_LIST_ACCEPTED = "SHOPPING_LIST_ACCEPTED"
    NEW_SHOPPING_LIST = "NEW_SHOPPING_LIST"
    PAYMENT_SUCCESSFUL = "PAYMENT_SUCCESSFUL"
    CHAT_MESSAGE_RECEIVED = "CHAT_MESSAGE_RECEIVED"
    CHAT_ACTIVATED = "CHAT_ACTIVATED"
    USER_LEFT_CHAT = "USER_LEFT_CHAT"
    KYC_VERIFIED = "KYC_VERIFIED"
    SUPPORT_TICKET_UPDATED = "SUPPORT_TICKET_UPDATED"
    ACCOUNT_ACTIVITY = "ACCOUNT_ACTIVITY"

    CHAT_TYPES = (CHAT_MESSAGE_RECEIVED, CHAT_ACTIVATED, USER_LEFT_CHAT)

    CHOICES = [
        (ORDER_CREATED, "Order created"),
        (ORDER_STATUS_UPDATED, "Order status updated"),
        (ORDER_CANCELLED, "Order cancelled"),
        (SHOPPING_LIST_SUBMITTED, "Shopping list submitted"),
        (SHOPPING_LIST_ACCEPTED, "Shopping list accepted"),
        (NEW_SHOPPING_LIST, "New shopping list"),
        (PAYMENT_SUCCESSFUL, "Payment successful"),
        (CHAT_MESSAGE_RECEIVED, "Chat message received"),
        (CHAT_ACTIVATED, "Chat activated"),
        (USER_LEFT_CHAT, "User left chat"),
        (KYC_VERIFIED, "KYC verified"),
        (SUPPORT_TICKET_UPDATED, "Support ticket updated"),
        (ACCOUNT_ACTIVITY, "Account activity"),
    ]


class Notification(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=50, choices=NotificationType.CHOICES)
    heading = models.CharField(max_length=255, blank=True)
    message = models.TextField()
    read = models.BooleanField(default=False)
    resource = models.CharField(max_length=100, blank=True)
    icon = models.CharField(max_length=500, blank=True)

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="notifications")
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="triggered_notifications",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        app_label = "notifications"
        ordering = ["-updated_at"]
        indexes = [
            models.Index(fields=["user", "read"]),
            models.Index(fields=["user", "title", "resource"]),
        ]

    def __str__(self):
        return f"{self.title} for {self.user_id}"

    @property
    def is_chat(self) -> bool:
        return self.title in NotificationType.CHAT_TYPES
