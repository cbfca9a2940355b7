from channels.db import database_sync_to_async
from channels.testing import WebsocketCommunicator
from django.contrib.auth.models import AnonymousUser
from django.test import TransactionTestCase

from chat.api.consumers import OrderChatConsumer, PresenceConsumer
from infrastructure.container import container
from marketplace.tests.factories import AgentFactory, OrderFactory, UserFactory


class OrderChatConsumerTests(TransactionTestCase):
    def setUp(self):
        self.agent = AgentFactory()
        self.order = OrderFactory(agent=self.agent, status="shopping")
        self.customer = self.order.customer

    def communicator(self, user, order_id=None):
        order_id = order_id or str(self.order.id)
        communicator = WebsocketCommunicator(OrderChatConsumer.as_asgi(), f"/ws/chat/{order_id}/")
        communicator.scope["user"] = user
        communicator.scope["url_route"] = {"kwargs": {"order_id": order_id}}
        return communicator

    async def test_participant_connects(self):
        communicator = self.communicator(self.customer)

        connected, _ = await communicator.connect()

        self.assertTrue(connected)
        await communicator.disconnect()

    async def test_outsider_is_refused(self):
        outsider = await database_sync_to_async(UserFactory)()

        connected, code = await self.communicator(outsider).connect()

        self.assertFalse(connected)
        self.assertEqual(code, 4003)

    async def test_anonymous_is_refused(self):
        connected, code = await self.communicator(AnonymousUser()).connect()

        self.assertFalse(connected)
        self.assertEqual(code, 4001)

    async def test_message_reaches_both_participants(self):
        customer_socket = self.communicator(self.customer)
        agent_socket = self.communicator(self.agent)
        await customer_socket.connect()
        await agent_socket.connect()

        await customer_socket.send_json_to({"type": "chat.message", "payload": {"text": "Hello Integration"}})

        for socket in (customer_socket, agent_socket):
            response = await socket.receive_json_from()
            self.assertEqual(response["type"], "chat.message")
            self.assertEqual(response["data"]["message"], "Hello Integration")
            self.assertEqual(response["data"]["sender_id"], str(self.customer.id))

        await customer_socket.disconnect()
        await agent_socket.disconnect()

    async def test_rejected_message_returns_error(self):
        communicator = self.communicator(self.customer)
        await communicator.connect()

        await communicator.send_json_to({"type": "chat.message", "payload": {"text": ""}})

        response = await communicator.receive_json_from()
        self.assertEqual(response["type"], "error")
        self.assertEqual(response["code"], "rejected")
        await communicator.disconnect()

    async def test_ping(self):
        communicator = self.communicator(self.agent)
        await communicator.connect()

        await communicator.send_json_to({"type": "ping"})

        self.assertEqual(await communicator.receive_json_from(), {"type": "pong"})
        await communicator.disconnect()


class PresenceConsumerTests(TransactionTestCase):
    def setUp(self):
        self.user = UserFactory()

    def communicator(self):
        communicator = WebsocketCommunicator(PresenceConsumer.as_asgi(), "/ws/presence/")
        communicator.scope["user"] = self.user
        return communicator

    async def test_presence_follows_the_socket(self):
        communicator = self.communicator()
        presence = container.presence_service()

        connected, _ = await communicator.connect()
        self.assertTrue(connected)
        self.assertTrue(presence.is_online(self.user.id))

        await communicator.send_json_to({"type": "heartbeat"})
        self.assertEqual(await communicator.receive_json_from(), {"type": "heartbeat_ack"})

        await communicator.disconnect()
        self.assertFalse(presence.is_online(self.user.id))

    async def test_receives_chat_for_the_user(self):
        agent = await database_sync_to_async(AgentFactory)()
        order = await database_sync_to_async(OrderFactory)(customer=self.user, agent=agent, status="delivery")
        communicator = self.communicator()
        await communicator.connect()

        await database_sync_to_async(container.chat_service().send_message)(agent, order.id, "At your gate")

        response = await communicator.receive_json_from()
        self.assertEqual(response["type"], "chat.message")
        self.assertEqual(response["data"]["message"], "At your gate")
        await communicator.disconnect()

    async def test_unknown_message_type(self):
        communicator = self.communicator()
        await communicator.connect()

        await communicator.send_json_to({"type": "dance"})

        response = await communicator.receive_json_from()
        self.assertEqual(response["type"], "error")
        await communicator.disconnect()
