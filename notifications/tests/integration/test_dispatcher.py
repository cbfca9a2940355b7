from unittest.mock import patch

from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from authentication.tests.factories import AdminFactory, UserFactory
from infrastructure.container import container
from notifications.domain.services.dispatcher import EMAIL_JOBS_KEY
from notifications.models import Notification


class SmartNotificationDispatcherTest(TestCase):
    def setUp(self):
        self.user = UserFactory()
        self.dispatcher = container.notification_dispatcher()
        self.presence = container.presence_service()

    def test_offline_user_is_pushed_and_emailed(self):
        outcome = self.dispatcher.dispatch(
            user=self.user, title="ORDER_STATUS_UPDATED", heading="Order updated", message="Your order moved"
        )

        self.assertEqual(outcome, {"push_sent": True, "email_scheduled": True, "email_sent": False})
        push = container.push().get_last_push()
        self.assertEqual(push["user_ids"], [str(self.user.id)])
        self.assertEqual(push["data"]["type"], "ORDER_STATUS_UPDATED")
        # Eager workers run the delayed job straight away
        email = container.email().get_last_message()
        self.assertEqual(email.to, [self.user.email])
        self.assertIn("Your order moved", email.body)

    def test_online_user_gets_no_chat_email(self):
        self.presence.mark_online(self.user.id)

        outcome = self.dispatcher.dispatch(user=self.user, title="CHAT_MESSAGE_RECEIVED", message="Hi")

        self.assertFalse(outcome["email_scheduled"])
        self.assertEqual(container.email().get_sent_count(), 0)

    def test_urgent_emails_even_when_online(self):
        self.presence.mark_online(self.user.id)

        outcome = self.dispatcher.dispatch(
            user=self.user, title="ACCOUNT_ACTIVITY", message="New login", priority="urgent"
        )

        self.assertTrue(outcome["email_sent"])

    def test_requires_email_for_online_user(self):
        self.presence.mark_online(self.user.id)

        outcome = self.dispatcher.dispatch(
            user=self.user, title="PAYMENT_SUCCESSFUL", message="Paid", priority="high", requires_email=True
        )

        self.assertTrue(outcome["email_scheduled"])

    def test_unknown_title_stores_nothing(self):
        outcome = self.dispatcher.dispatch(user=self.user, title="SOMETHING_ELSE", message="?")

        self.assertEqual(outcome, {"push_sent": False, "email_scheduled": False, "email_sent": False})
        self.assertFalse(Notification.objects.filter(user=self.user).exists())

    def test_push_failure_keeps_notification(self):
        with patch.object(container.push(), "send", side_effect=RuntimeError("provider down")):
            outcome = self.dispatcher.dispatch(user=self.user, title="KYC_VERIFIED", message="Verified", skip_email=True)

        self.assertFalse(outcome["push_sent"])
        self.assertTrue(Notification.objects.filter(user=self.user, title="KYC_VERIFIED").exists())

    def test_repeat_dispatch_refreshes_row(self):
        self.dispatcher.dispatch(user=self.user, title="ORDER_STATUS_UPDATED", message="one", resource="o1", skip_email=True)
        Notification.objects.filter(user=self.user).update(read=True)

        self.dispatcher.dispatch(user=self.user, title="ORDER_STATUS_UPDATED", message="two", resource="o1", skip_email=True)

        notification = Notification.objects.get(user=self.user)
        self.assertEqual(notification.message, "two")
        self.assertFalse(notification.read)

    @patch("notifications.tasks.send_notification_email.apply_async")
    def test_job_is_indexed_with_broker_priority(self, apply_async):
        self.dispatcher.dispatch(user=self.user, title="ORDER_CANCELLED", message="Cancelled", priority="high")

        kwargs = apply_async.call_args.kwargs
        self.assertEqual(kwargs["countdown"], 300)
        self.assertEqual(kwargs["priority"], 2)
        job = kwargs["args"][0]
        self.assertEqual(job["id"], kwargs["task_id"])
        self.assertEqual(job["max_attempts"], 3)
        self.assertEqual(self.dispatcher.queue_stats(), {"total_pending": 1, "overdue": 0, "upcoming": 1})

    @patch("notifications.tasks.send_notification_email.apply_async", side_effect=RuntimeError("broker down"))
    def test_failed_schedule_leaves_no_job(self, _apply_async):
        outcome = self.dispatcher.dispatch(user=self.user, title="ORDER_CANCELLED", message="Cancelled")

        self.assertFalse(outcome["email_scheduled"])
        self.assertEqual(self.dispatcher.queue_stats()["total_pending"], 0)


class NotificationQueueViewIntegrationTest(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(user=AdminFactory())
        self.redis = container.redis()

    def test_stats_and_clear(self):
        self.redis.zadd(EMAIL_JOBS_KEY, {"job-1": 0, "job-2": 9999999999})

        stats = self.client.get(reverse("notifications:notification-queue-list"))
        self.assertEqual(stats.data, {"total_pending": 2, "overdue": 1, "upcoming": 1})

        with patch("busy2shopBackend.celery.app.control.revoke") as revoke:
            cleared = self.client.post(reverse("notifications:notification-queue-clear"))

        self.assertEqual(cleared.data, {"revoked": 2})
        self.assertEqual(revoke.call_count, 2)
        self.assertEqual(self.redis.zcard(EMAIL_JOBS_KEY), 0)

    def test_admin_only(self):
        self.client.force_authenticate(user=UserFactory())

        response = self.client.get(reverse("notifications:notification-queue-list"))

        self.assertEqual(response.status_code, 403)
