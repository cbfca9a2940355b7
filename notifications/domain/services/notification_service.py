"""
NotificationService - the in-app notification inbox.

Notifications are keyed by (title, user, resource): a repeat event for the same
resource refreshes the existing row and marks it unread instead of stacking
duplicates in the inbox.
"""

from datetime import timedelta
from typing import Dict, Optional

from django.conf import settings
from django.db import transaction
from django.db.models import Count, Max
from django.utils import timezone

from notifications.infra.metrics import notifications_created_total
from notifications.models import Notification, NotificationType
from utils.pagination import paginate
from utils.service_base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok

VALID_TITLES = {choice for choice, _ in NotificationType.CHOICES}


class NotificationService(BaseService):
    @transaction.atomic
    def add_notification(
        self,
        user,
        title: str,
        message: str,
        heading: str = "",
        resource: str = "",
        icon: str = "",
        actor=None,
    ) -> ServiceResult[Notification]:
        if title not in VALID_TITLES:
            return service_err(ErrorCodes.VALIDATION_ERROR, f"Unknown notification type '{title}'")

        resource = str(resource or "")
        existing = (
            Notification.objects.select_for_update()
            .filter(user=user, title=title, resource=resource)
            .order_by("-updated_at")
            .first()
        )
        if existing is not None:
            existing.message = message
            existing.heading = heading or existing.heading
            existing.icon = icon or existing.icon
            existing.actor = actor
            existing.read = False
            existing.save()
            return service_ok(existing)

        notification = Notification.objects.create(
            user=user,
            actor=actor,
            title=title,
            heading=heading,
            message=message,
            resource=resource,
            icon=icon,
        )
        notifications_created_total.labels(title=title).inc()
        return service_ok(notification)

    def list_notifications(self, user, is_read: Optional[bool] = None, page: int = 1, size: int = 10) -> ServiceResult:
        """
        The inbox, one entry per (title, resource) with how many rows it covers.

        Each entry carries the newest notification of its group.
        """
        queryset = Notification.objects.filter(user=user)
        if is_read is not None:
            queryset = queryset.filter(read=is_read)

        groups = (
            queryset.values("title", "resource")
            .annotate(count=Count("id"), latest=Max("updated_at"))
            .order_by("-latest")
        )
        data = paginate(groups, page, size)
        results = []
        for group in data["results"]:
            newest = (
                queryset.filter(title=group["title"], resource=group["resource"])
                .select_related("actor")
                .order_by("-updated_at")
                .first()
            )
            results.append({"notification": newest, "count": group["count"]})
        data["results"] = results
        return service_ok(data)

    def list_unread(self, user, page: int = 1, size: int = 10) -> ServiceResult:
        return service_ok(paginate(Notification.objects.filter(user=user, read=False).select_related("actor"), page, size))

    def mark_all_read(self, user) -> ServiceResult[int]:
        updated = Notification.objects.filter(user=user, read=False).update(read=True, updated_at=timezone.now())
        self.logger.info(f"Marked {updated} notifications read for {user.id}")
        return service_ok(updated)

    def get_notification(self, user, notification_id) -> ServiceResult[Notification]:
        notification = Notification.objects.filter(pk=notification_id, user=user).select_related("actor").first()
        if notification is None:
            return service_err(ErrorCodes.NOTIFICATION_NOT_FOUND, "Notification not found")
        return service_ok(notification)

    def mark_read(self, user, notification_id, read: bool = True) -> ServiceResult[Notification]:
        result = self.get_notification(user, notification_id)
        if not result.ok:
            return result
        notification = result.value
        notification.read = read
        notification.save(update_fields=["read", "updated_at"])
        return service_ok(notification)

    def stats(self, user) -> ServiceResult[Dict[str, int]]:
        total = Notification.objects.filter(user=user).count()
        unread = Notification.objects.filter(user=user, read=False).count()
        return service_ok({"total": total, "read": total - unread, "unread": unread})

    @transaction.atomic
    def delete_old(self, days: Optional[int] = None) -> Dict[str, int]:
        """Remove notifications not touched within retention, then collapse duplicates to the newest row."""
        days = days or getattr(settings, "NOTIFICATIONS", {}).get("RETENTION_DAYS", 30)
        cutoff = timezone.now() - timedelta(days=days)
        expired, _ = Notification.objects.filter(updated_at__lt=cutoff).delete()

        duplicates = 0
        groups = (
            Notification.objects.values("user", "title", "resource")
            .annotate(count=Count("id"))
            .filter(count__gt=1)
        )
        for group in groups:
            ids = list(
                Notification.objects.filter(user=group["user"], title=group["title"], resource=group["resource"])
                .order_by("-updated_at")
                .values_list("id", flat=True)
            )
            deleted, _ = Notification.objects.filter(pk__in=ids[1:]).delete()
            duplicates += deleted

        self.logger.info(f"Notification cleanup removed {expired} expired and {duplicates} duplicate rows")
        return {"expired": expired, "duplicates": duplicates}
