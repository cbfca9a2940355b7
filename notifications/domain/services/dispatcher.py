"""
SmartNotificationDispatcher - one entry point for telling a user something.

A dispatch persists the notification, pushes it straight away and then
decides, from the user's presence, whether an email should follow and how
long to wait before sending it. Emails go out through a delayed Celery job so
a user who comes back online in the meantime is not emailed about a chat they
have already read.

Delivery problems never propagate to the caller: the notification row is the
source of truth and push/email are best effort.
"""

import uuid
from datetime import timedelta
from typing import Dict, Optional

import redis
from django.conf import settings
from django.utils import timezone

from notifications.infra.metrics import notification_email_jobs_pending, notifications_pushed_total
from notifications.models import NotificationType
from utils.service_base import BaseService

EMAIL_JOBS_KEY = "notifications:email_jobs"
MAX_EMAIL_ATTEMPTS = 3

PRIORITIES = ("low", "normal", "high", "urgent")
PRIORITY_WEIGHTS = {"urgent": 10, "high": 5, "normal": 0, "low": -5}


def broker_priority(priority: str) -> int:
    """Redis transport priority (0 is served first, 9 last) for a dispatch priority."""
    weight = PRIORITY_WEIGHTS.get(priority, 0)
    return max(0, min(9, round((10 - weight) * 9 / 20)))


def _config(key: str, default):
    return getattr(settings, "NOTIFICATIONS", {}).get(key, default)


def should_send_email(
    title: str,
    priority: str,
    requires_email: bool,
    is_online: bool,
    minutes_away: Optional[int],
) -> bool:
    """Rules are checked top to bottom; the first one that applies decides."""
    if priority == "urgent":
        return True
    if priority == "low" and is_online:
        return False
    if requires_email:
        return True
    if title in NotificationType.CHAT_TYPES:
        return False
    away_threshold = _config("AWAY_EMAIL_THRESHOLD_MINUTES", 2)
    return not is_online or (minutes_away is not None and minutes_away >= away_threshold)


def compute_email_delay(priority: str, explicit_delay: Optional[int], minutes_away: Optional[int]) -> int:
    if priority == "urgent":
        return 0
    if explicit_delay is not None:
        return max(int(explicit_delay), 0)
    if minutes_away is not None and minutes_away >= _config("LONG_AWAY_THRESHOLD_MINUTES", 10):
        return 0
    return _config("DEFAULT_EMAIL_DELAY_MINUTES", 5)


class SmartNotificationDispatcher(BaseService):
    def __init__(self, notification_service, presence_service, push_provider, redis_client=None):
        super().__init__()
        self.notifications = notification_service
        self.presence = presence_service
        self.push = push_provider
        self._redis = redis_client

    @property
    def redis(self):
        if self._redis is None:
            self._redis = redis.from_url(settings.REDIS_URL, decode_responses=True)
        return self._redis

    def dispatch(
        self,
        user,
        title: str,
        message: str,
        heading: str = "",
        resource: str = "",
        actor=None,
        icon: str = "",
        priority: str = "normal",
        requires_email: bool = False,
        email_delay_minutes: Optional[int] = None,
        skip_push: bool = False,
        skip_email: bool = False,
    ) -> Dict[str, bool]:
        """
        Persist, push and maybe schedule an email.

        Returns:
            {"push_sent", "email_scheduled", "email_sent"}
        """
        outcome = {"push_sent": False, "email_scheduled": False, "email_sent": False}
        if priority not in PRIORITIES:
            self.logger.warning(f"Unknown notification priority '{priority}', using normal")
            priority = "normal"

        created = self.notifications.add_notification(
            user, title, message, heading=heading, resource=resource, icon=icon, actor=actor
        )
        if not created.ok:
            self.logger.error(f"Could not store {title} notification for {user.id}: {created.error_detail}")
            return outcome
        notification = created.value

        if not skip_push:
            outcome["push_sent"] = self._push(notification)

        if skip_email:
            return outcome

        is_online = self.presence.is_online(user.id)
        minutes_away = self.presence.minutes_since_last_seen(user.id)
        if not should_send_email(title, priority, requires_email, is_online, minutes_away):
            self.logger.debug(f"No email for {title} to {user.id} (online={is_online}, away={minutes_away})")
            return outcome

        delay = compute_email_delay(priority, email_delay_minutes, minutes_away)
        if self._schedule_email(notification, priority, delay, minutes_away):
            outcome["email_scheduled"] = True
            outcome["email_sent"] = delay == 0
        return outcome

    def _push(self, notification) -> bool:
        try:
            sent = self.push.send(
                [str(notification.user_id)],
                notification.heading or notification.get_title_display(),
                notification.message,
                data={"type": notification.title, "resource": notification.resource, "id": str(notification.id)},
            )
        except Exception as e:
            self.logger.error(f"Push failed for notification {notification.id}: {e}")
            notifications_pushed_total.labels(outcome="error").inc()
            return False
        notifications_pushed_total.labels(outcome="sent" if sent else "skipped").inc()
        return bool(sent)

    def _schedule_email(self, notification, priority: str, delay: int, minutes_away: Optional[int]) -> bool:
        from notifications.tasks import send_notification_email

        job_id = str(uuid.uuid4())
        scheduled_at = timezone.now() + timedelta(minutes=delay)
        job = {
            "id": job_id,
            "notification": str(notification.id),
            "scheduled_at": scheduled_at.isoformat(),
            "user_last_seen": minutes_away,
            "email_delay_minutes": delay,
            "attempts": 0,
            "max_attempts": MAX_EMAIL_ATTEMPTS,
            "priority": PRIORITY_WEIGHTS[priority],
        }

        # Index first: an eager worker may finish the job before apply_async returns
        try:
            self.redis.zadd(EMAIL_JOBS_KEY, {job_id: scheduled_at.timestamp()})
        except redis.RedisError as e:
            self.logger.warning(f"Email job index unavailable: {e}")

        try:
            send_notification_email.apply_async(
                args=[job], countdown=delay * 60, priority=broker_priority(priority), task_id=job_id
            )
        except Exception as e:
            self.logger.error(f"Could not schedule email for notification {notification.id}: {e}")
            self.remove_job(job_id)
            return False

        self.logger.info(f"Email for {notification.title} to {notification.user_id} scheduled in {delay} min")
        return True

    # ===== Queue management =====

    def remove_job(self, job_id: str):
        try:
            self.redis.zrem(EMAIL_JOBS_KEY, job_id)
        except redis.RedisError as e:
            self.logger.warning(f"Could not drop email job {job_id} from the index: {e}")

    def queue_stats(self) -> Dict[str, int]:
        now = timezone.now().timestamp()
        try:
            total = self.redis.zcard(EMAIL_JOBS_KEY)
            overdue = self.redis.zcount(EMAIL_JOBS_KEY, "-inf", now)
        except redis.RedisError as e:
            self.logger.error(f"Email queue stats unavailable: {e}")
            return {"total_pending": 0, "overdue": 0, "upcoming": 0}
        notification_email_jobs_pending.set(total)
        return {"total_pending": total, "overdue": overdue, "upcoming": total - overdue}

    def clear_queue(self) -> int:
        """Revoke every indexed email job. Returns how many were revoked."""
        from busy2shopBackend.celery import app

        try:
            job_ids = self.redis.zrange(EMAIL_JOBS_KEY, 0, -1)
            for job_id in job_ids:
                app.control.revoke(job_id)
            self.redis.delete(EMAIL_JOBS_KEY)
        except redis.RedisError as e:
            self.logger.error(f"Could not clear the email queue: {e}")
            return 0
        notification_email_jobs_pending.set(0)
        self.logger.info(f"Revoked {len(job_ids)} pending notification emails")
        return len(job_ids)
