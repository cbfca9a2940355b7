import uuid

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone


class CustomUser(AbstractUser):
    ROLE_CHOICES = [
        ("customer", "Customer"),
        ("agent", "Agent"),
        ("vendor", "Vendor"),
        ("admin", "Admin"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True)
    first_name = models.CharField(max_length=50, blank=True)
    last_name = models.CharField(max_length=50, blank=True)
    phone_number = models.CharField(max_length=20, blank=True)
    display_image = models.URLField(blank=True)
    location = models.JSONField(null=True, blank=True)  # {latitude, longitude, city, state, country}
    is_email_verified = models.BooleanField(default=False)

    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default="customer")

    date_joined = models.DateTimeField(auto_now_add=True)

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["username"]

    class Meta:
        app_label = "authentication"

    def __str__(self):
        return self.email

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip() or self.email

    @property
    def is_agent(self):
        # Vendors fulfil lists the same way agents do
        return self.role in ("agent", "vendor")

    @property
    def is_admin_user(self):
        return self.is_superuser or self.role == "admin"

    def get_settings(self):
        user_settings, _ = UserSettings.objects.get_or_create(user=self)
        return user_settings


class UserSettings(models.Model):
    """Account state and agent metadata that sits beside the user row."""

    AGENT_STATUS_CHOICES = [
        ("available", "Available"),
        ("busy", "Busy"),
        ("away", "Away"),
        ("offline", "Offline"),
    ]

    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="settings")
    is_kyc_verified = models.BooleanField(default=False)
    is_blocked = models.BooleanField(default=False)
    is_deactivated = models.BooleanField(default=False)
    block_meta = models.JSONField(default=dict, blank=True)  # {block_history: [...], unblock_history: [...]}
    agent_meta = models.JSONField(default=dict, blank=True)
    last_login_at = models.DateTimeField(null=True, blank=True)
    join_date = models.DateField(default=timezone.localdate)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        app_label = "authentication"
        verbose_name_plural = "user settings"

    def __str__(self):
        return f"Settings for {self.user.email}"

    @property
    def agent_status(self):
        return (self.agent_meta or {}).get("current_status", "offline")

    @property
    def is_accepting_orders(self):
        return bool((self.agent_meta or {}).get("is_accepting_orders", False))

    def set_agent_status(self, status: str):
        """Update presence-independent agent availability; only 'available' accepts orders."""
        meta = dict(self.agent_meta or {})
        meta["current_status"] = status
        meta["is_accepting_orders"] = status == "available"
        meta["last_status_update"] = timezone.now().isoformat()
        self.agent_meta = meta
