"""
Notification Celery Tasks

Delayed notification emails and the periodic inbox/presence housekeeping.
"""

import logging

from celery import shared_task

from infrastructure.email import EmailException

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3, queue="notification_tasks")
def send_notification_email(self, job):
    """
    Send the email for one dispatched notification.

    The decision to email was made at dispatch time; this re-checks what may
    have changed since (the row is gone, the user is back online for a chat,
    the user has no address) before sending.

    Returns:
        dict: Delivery result
    """
    from infrastructure.container import container
    from notifications.domain.services.dispatcher import PRIORITY_WEIGHTS
    from notifications.emails import render_notification_email, resolve_recipient_type
    from notifications.infra.metrics import notification_emails_total
    from notifications.models import Notification

    job_id = job.get("id")
    dispatcher = container.notification_dispatcher()
    try:
        notification = Notification.objects.select_related("user").filter(pk=job.get("notification")).first()
        if notification is None:
            notification_emails_total.labels(outcome="not_found").inc()
            return {"success": True, "skipped": "not_found", "job_id": job_id}

        user = notification.user
        urgent = job.get("priority") == PRIORITY_WEIGHTS["urgent"]
        if notification.is_chat and not urgent and container.presence_service().is_online(user.id):
            notification_emails_total.labels(outcome="user_online").inc()
            return {"success": True, "skipped": "user_online", "job_id": job_id}

        if not user.email:
            notification_emails_total.labels(outcome="no_email").inc()
            return {"success": True, "skipped": "no_email", "job_id": job_id}

        recipient_type = resolve_recipient_type(notification)
        container.email().send(render_notification_email(notification, recipient_type))
        notification_emails_total.labels(outcome="sent").inc()
        logger.info(f"Notification email {notification.title} sent to {user.email} as {recipient_type}")
        return {"success": True, "job_id": job_id, "recipient_type": recipient_type}

    except EmailException as e:
        logger.error(f"Notification email job {job_id} failed (attempt {self.request.retries + 1}): {e}")
        try:
            raise self.retry(countdown=30 * (2**self.request.retries))
        except self.MaxRetriesExceededError:
            notification_emails_total.labels(outcome="failed").inc()
            return {"success": False, "job_id": job_id, "error": f"Max retries exceeded: {e}"}
    finally:
        dispatcher.remove_job(job_id)


@shared_task(name="notifications.tasks.cleanup_old_notifications")
def cleanup_old_notifications():
    """Daily: drop notifications past retention and collapse duplicates."""
    from infrastructure.container import container

    result = container.notification_service().delete_old()
    logger.info(f"Notification cleanup: {result}")
    return result


@shared_task(name="notifications.tasks.cleanup_stale_presence")
def cleanup_stale_presence():
    """Every ten minutes: forget users not seen for a while."""
    from infrastructure.container import container

    removed = container.presence_service().cleanup()
    return {"removed": removed}
