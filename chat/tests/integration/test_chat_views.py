from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from marketplace.tests.factories import AgentFactory, OrderFactory, UserFactory


class OrderChatViewIntegrationTest(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.agent = AgentFactory()
        self.order = OrderFactory(agent=self.agent, status="accepted")
        self.client.force_authenticate(user=self.order.customer)

    def _url(self, name):
        return reverse(f"chat:chat-{name}", args=[self.order.id])

    def test_send_and_list_messages(self):
        sent = self.client.post(self._url("messages"), {"message": "Please get ripe plantain"}, format="json")
        self.assertEqual(sent.status_code, status.HTTP_201_CREATED)
        self.assertEqual(sent.data["sender"]["id"], str(self.order.customer.id))

        listed = self.client.get(self._url("messages"))
        self.assertEqual(listed.data["count"], 1)
        self.assertEqual(listed.data["results"][0]["message"], "Please get ripe plantain")

    def test_blank_message(self):
        response = self.client.post(self._url("messages"), {"message": " "}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_closed_chat(self):
        self.order.status = "completed"
        self.order.save()

        response = self.client.post(self._url("messages"), {"message": "Thanks"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_outsider(self):
        self.client.force_authenticate(user=UserFactory())

        self.assertEqual(self.client.get(self._url("messages")).status_code, status.HTTP_403_FORBIDDEN)

    def test_unknown_order(self):
        response = self.client.get(reverse("chat:chat-messages", args=["00000000-0000-0000-0000-000000000000"]))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_read_and_unread_count(self):
        self.client.post(self._url("messages"), {"message": "Hi"}, format="json")
        self.client.force_authenticate(user=self.agent)

        unread = self.client.get(reverse("chat:chat-unread-count"))
        self.assertEqual(unread.data, {"unread": 1})

        read = self.client.post(self._url("read"))
        self.assertEqual(read.data, {"updated": 1})

    def test_activate_active_and_leave(self):
        self.client.force_authenticate(user=self.agent)

        self.assertTrue(self.client.post(self._url("activate")).data["is_active"])
        self.assertEqual(self.client.get(self._url("active")).data["status"], "accepted")
        self.assertTrue(self.client.post(self._url("leave")).data["left"])
