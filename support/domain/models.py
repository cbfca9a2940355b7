import uuid

from django.conf import settings
from django.db import models


class SupportTicket(models.Model):
    TYPE_CHOICES = [
        ("complaint", "Complaint"),
        ("inquiry", "Inquiry"),
        ("feedback", "Feedback"),
        ("technical", "Technical"),
        ("billing", "Billing"),
        ("other", "Other"),
    ]
    STATE_CHOICES = [
        ("pending", "Pending"),
        ("in_progress", "In progress"),
        ("resolved", "Resolved"),
        ("closed", "Closed"),
    ]
    PRIORITY_CHOICES = [
        ("low", "Low"),
        ("medium", "Medium"),
        ("high", "High"),
        ("urgent", "Urgent"),
    ]
    CATEGORY_CHOICES = [
        ("general", "General"),
        ("order", "Order"),
        ("payment", "Payment"),
        ("account", "Account"),
        ("technical", "Technical"),
        ("other", "Other"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="support_tickets",
    )
    name = models.CharField(max_length=100)
    email = models.EmailField()
    phone = models.CharField(max_length=20, blank=True)
    subject = models.CharField(max_length=200)
    message = models.TextField()

    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default="inquiry")
    state = models.CharField(max_length=20, choices=STATE_CHOICES, default="pending")
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default="medium")
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES, default="general")

    assigned_admin = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="assigned_tickets",
    )
    # [{id, message, responder_id, responder_name, responder_type, created_at}]
    responses = models.JSONField(default=list, blank=True)
    last_response_at = models.DateTimeField(null=True, blank=True)
    resolved_at = models.DateTimeField(null=True, blank=True)
    resolved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="resolved_tickets",
    )

    user_agent = models.CharField(max_length=255, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        app_label = "support"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["state", "priority"]),
            models.Index(fields=["user"]),
            models.Index(fields=["assigned_admin"]),
        ]

    def __str__(self):
        return f"{self.subject} ({self.state})"

    @property
    def is_closed(self) -> bool:
        return self.state == "closed"
