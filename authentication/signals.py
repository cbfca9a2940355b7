"""
Signal handlers for the authentication app.

Every account gets a UserSettings row as soon as it is created so the rest of
the code can rely on user.settings existing.
"""

import logging

from django.conf import settings
from django.db.models.signals import post_save
from django.dispatch import receiver

from authentication.domain.models.user import UserSettings


logger = logging.getLogger(__name__)


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def create_user_settings(sender, instance, created, **kwargs):
    if not created:
        return
    defaults = {}
    if instance.role in ("agent", "vendor"):
        defaults["agent_meta"] = {
            "current_status": "offline",
            "is_accepting_orders": False,
            "last_status_update": None,
        }
    UserSettings.objects.get_or_create(user=instance, defaults=defaults)
    logger.info(f"Created settings for user {instance.id} ({instance.role})")
