"""
Celery Configuration for Busy2Shop Backend

Configures Celery for notification emails, agent assignment retries and the
periodic housekeeping jobs (old notification cleanup, stale presence cleanup,
discount campaign expiry).
"""

import os

from celery import Celery


# Set the default Django settings module for the 'celery' program.
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "busy2shopBackend.settings")

app = Celery("busy2shopBackend")

# Using a string here means the worker doesn't have to serialize
# the configuration object to child processes.
app.config_from_object("django.conf:settings", namespace="CELERY")

# Load task modules from all registered Django apps.
app.autodiscover_tasks()

app.conf.beat_schedule = {
    "cleanup-old-notifications-daily": {
        "task": "notifications.tasks.cleanup_old_notifications",
        "schedule": 60.0 * 60.0 * 24.0,
        "options": {"expires": 30.0 * 60.0, "queue": "notification_tasks"},
    },
    "cleanup-stale-presence": {
        "task": "notifications.tasks.cleanup_stale_presence",
        "schedule": 60.0 * 10.0,
        "options": {"expires": 5.0 * 60.0, "queue": "notification_tasks"},
    },
    "expire-discount-campaigns-hourly": {
        "task": "marketplace.tasks.expire_discount_campaigns",
        "schedule": 60.0 * 60.0,
        "options": {"expires": 30.0 * 60.0, "queue": "marketplace_tasks"},
    },
}

app.conf.update(
    task_routes={
        "notifications.tasks.*": {"queue": "notification_tasks"},
        "marketplace.tasks.*": {"queue": "marketplace_tasks"},
    },
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    result_expires=60 * 60 * 24,  # Results expire after 24 hours
    worker_max_tasks_per_child=1000,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=10 * 60,
    task_soft_time_limit=8 * 60,
    beat_scheduler="django_celery_beat.schedulers:DatabaseScheduler",
)
