from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from authentication.tests.factories import AdminFactory, UserFactory
from infrastructure.container import container
from notifications.models import Notification
from notifications.tests.factories import NotificationFactory


class NotificationViewIntegrationTest(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = UserFactory()
        self.client.force_authenticate(user=self.user)

    def test_inbox_groups_by_title_and_resource(self):
        NotificationFactory.create_batch(2, user=self.user, title="NEW_SHOPPING_LIST", resource="order-1")
        NotificationFactory(user=self.user, title="KYC_VERIFIED", resource="")
        NotificationFactory()

        response = self.client.get(reverse("notifications:notification-list"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["count"], 2)
        counts = {entry["notification"]["title"]: entry["count"] for entry in response.data["results"]}
        self.assertEqual(counts, {"NEW_SHOPPING_LIST": 2, "KYC_VERIFIED": 1})

    def test_filter_read(self):
        NotificationFactory(user=self.user, read=True)
        NotificationFactory(user=self.user)

        response = self.client.get(reverse("notifications:notification-list"), {"is_read": "false"})

        self.assertEqual(response.data["count"], 1)
        self.assertFalse(response.data["results"][0]["notification"]["read"])

    def test_mark_read_and_stats(self):
        first = NotificationFactory(user=self.user)
        NotificationFactory.create_batch(2, user=self.user)

        marked = self.client.patch(
            reverse("notifications:notification-detail", args=[first.id]), {"read": True}, format="json"
        )
        self.assertTrue(marked.data["read"])

        stats = self.client.get(reverse("notifications:notification-stats"))
        self.assertEqual(stats.data, {"total": 3, "read": 1, "unread": 2})

        unread = self.client.get(reverse("notifications:notification-unread"))
        self.assertEqual(unread.data["count"], 2)

        cleared = self.client.post(reverse("notifications:notification-mark-all-read"))
        self.assertEqual(cleared.data, {"updated": 2})
        self.assertFalse(Notification.objects.filter(user=self.user, read=False).exists())

    def test_someone_elses_notification(self):
        response = self.client.get(reverse("notifications:notification-detail", args=[NotificationFactory().id]))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_requires_authentication(self):
        self.client.force_authenticate(user=None)

        response = self.client.get(reverse("notifications:notification-list"))

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class PresenceViewIntegrationTest(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = UserFactory()
        self.client.force_authenticate(user=self.user)

    def test_heartbeat_marks_online(self):
        response = self.client.post(reverse("notifications:presence-heartbeat"), {"socket_id": "abc"}, format="json")

        self.assertEqual(response.data, {"is_online": True})
        self.assertTrue(container.presence_service().is_online(self.user.id))

    def test_own_presence(self):
        self.client.post(reverse("notifications:presence-heartbeat"), {}, format="json")

        response = self.client.get(reverse("notifications:presence-detail", args=[self.user.id]))

        self.assertTrue(response.data["is_online"])
        self.assertEqual(response.data["minutes_since_last_seen"], 0)

    def test_presence_of_others_is_private(self):
        response = self.client.get(reverse("notifications:presence-detail", args=[UserFactory().id]))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_stats_are_admin_only(self):
        self.assertEqual(
            self.client.get(reverse("notifications:presence-stats")).status_code, status.HTTP_403_FORBIDDEN
        )

        self.client.force_authenticate(user=AdminFactory())
        container.presence_service().mark_online(self.user.id)

        response = self.client.get(reverse("notifications:presence-stats"))

        self.assertEqual(response.data["total_online"], 1)
