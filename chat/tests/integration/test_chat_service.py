from django.test import TestCase

from chat.domain.models import ChatMessage
from chat.domain.services.chat_service import ChatService, order_group, user_group
from infrastructure.container import container
from marketplace.tests.factories import AgentFactory, OrderFactory, UserFactory
from utils.service_base import ErrorCodes


class RecordingLayer:
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    async def group_send(self, group, message):
        if self.fail:
            raise ConnectionError("layer down")
        self.sent.append((group, message))


class ChatServiceTest(TestCase):
    def setUp(self):
        self.layer = RecordingLayer()
        self.agent = AgentFactory()
        self.order = OrderFactory(agent=self.agent, status="shopping")
        self.customer = self.order.customer
        self.service = ChatService(
            dispatcher=container.notification_dispatcher(),
            presence_service=container.presence_service(),
            channel_layer=self.layer,
        )

    def test_send_message_broadcasts_and_notifies(self):
        result = self.service.send_message(self.customer, self.order.id, "  Any tomatoes?  ")

        self.assertTrue(result.ok)
        self.assertEqual(result.value.message, "Any tomatoes?")
        self.assertEqual(result.value.sender_type, "customer")
        groups = [group for group, _ in self.layer.sent]
        self.assertEqual(groups, [order_group(self.order.id), user_group(self.agent.id)])
        self.assertEqual(self.layer.sent[0][1]["type"], "chat_message")
        self.assertTrue(self.agent.notifications.filter(title="CHAT_MESSAGE_RECEIVED").exists())

    def test_agent_sends_image(self):
        result = self.service.send_message(self.agent, self.order.id, image_url="https://cdn.test/receipt.jpg")

        self.assertEqual(result.value.sender_type, "agent")
        notification = self.customer.notifications.get(title="CHAT_MESSAGE_RECEIVED")
        self.assertEqual(notification.message, "Sent an image")

    def test_empty_message(self):
        result = self.service.send_message(self.customer, self.order.id, "   ")

        self.assertEqual(result.error, ErrorCodes.VALIDATION_ERROR)

    def test_chat_closed_outside_active_statuses(self):
        for order_status in ("pending", "completed", "cancelled"):
            self.order.status = order_status
            self.order.save()

            result = self.service.send_message(self.customer, self.order.id, "Hello")

            self.assertEqual(result.error, ErrorCodes.CHAT_INACTIVE)
        self.assertFalse(ChatMessage.objects.exists())

    def test_outsider_is_refused(self):
        result = self.service.get_messages(UserFactory(), self.order.id)

        self.assertEqual(result.error, ErrorCodes.PERMISSION_DENIED)

    def test_read_and_unread(self):
        self.service.send_message(self.customer, self.order.id, "one")
        self.service.send_message(self.customer, self.order.id, "two")
        self.service.send_message(self.agent, self.order.id, "reply")

        self.assertEqual(self.service.unread_count(self.agent).value, 2)
        self.assertEqual(self.service.unread_count(self.customer, str(self.order.id)).value, 1)

        self.layer.sent.clear()
        self.assertEqual(self.service.mark_read(self.agent, self.order.id).value, 2)
        self.assertEqual(self.layer.sent[0][1]["type"], "chat_read")
        self.assertEqual(self.service.unread_count(self.agent).value, 0)

    def test_only_agent_activates(self):
        refused = self.service.activate_chat(self.customer, self.order.id)
        self.assertEqual(refused.error, ErrorCodes.PERMISSION_DENIED)

        activated = self.service.activate_chat(self.agent, self.order.id)
        self.assertEqual(activated.value, {"order_id": str(self.order.id), "is_active": True})
        self.assertEqual(
            [group for group, _ in self.layer.sent], [order_group(self.order.id), user_group(self.customer.id)]
        )
        self.assertTrue(self.customer.notifications.filter(title="CHAT_ACTIVATED").exists())

    def test_leave_notifies_other_side(self):
        result = self.service.leave_chat(self.agent, self.order.id)

        self.assertTrue(result.value["left"])
        self.assertEqual(self.layer.sent[0][1]["type"], "chat_user_left")
        self.assertTrue(self.customer.notifications.filter(title="USER_LEFT_CHAT").exists())

    def test_is_chat_active(self):
        self.assertTrue(self.service.is_chat_active(self.customer, self.order.id).value["is_active"])

    def test_broadcast_failure_keeps_message(self):
        self.service = ChatService(channel_layer=RecordingLayer(fail=True))

        result = self.service.send_message(self.customer, self.order.id, "Still saved")

        self.assertTrue(result.ok)
        self.assertTrue(ChatMessage.objects.filter(message="Still saved").exists())
