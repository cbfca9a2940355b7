import json
import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer
from django.db.models import Q

from chat.domain.services.chat_service import order_group, user_group
from infrastructure.container import container
from marketplace.ordering.domain.models import Order


logger = logging.getLogger(__name__)


class BaseEventConsumer(AsyncWebsocketConsumer):
    """Shared handlers for the events ChatService broadcasts."""

    async def chat_message(self, event):
        await self.send(text_data=json.dumps({"type": "chat.message", "data": event["message"]}))

    async def chat_read(self, event):
        await self.send(text_data=json.dumps({"type": "chat.read", "data": event["message"]}))

    async def chat_activated(self, event):
        await self.send(text_data=json.dumps({"type": "chat.activated", "data": event["message"]}))

    async def chat_user_left(self, event):
        await self.send(text_data=json.dumps({"type": "chat.user_left", "data": event["message"]}))

    async def send_error(self, message, code="error"):
        await self.send(text_data=json.dumps({"type": "error", "code": code, "message": message}))


class PresenceConsumer(BaseEventConsumer):
    """
    One socket per signed-in client. Keeps the user's presence record fresh
    and delivers chat events addressed to the user's personal group.
    """

    async def connect(self):
        self.user = self.scope["user"]

        if not self.user.is_authenticated:
            logger.warning(f"Unauthenticated presence connection attempt to {self.channel_name}")
            await self.close(code=4001)  # Unauthorized
            return

        self.group_name = user_group(self.user.id)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()

        headers = dict(self.scope.get("headers", []))
        device_type = headers.get(b"user-agent", b"").decode(errors="ignore")[:50]
        await self.mark_online(device_type)
        logger.info(f"User {self.user.id} online on {self.channel_name}")

    async def disconnect(self, close_code):
        if hasattr(self, "group_name"):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)
            await self.mark_offline()
            logger.info(f"User {self.user.id} offline (code {close_code})")

    async def receive(self, text_data):
        try:
            data = json.loads(text_data)
        except json.JSONDecodeError:
            await self.send_error("Invalid JSON")
            return

        msg_type = data.get("type")
        if msg_type == "heartbeat":
            await self.heartbeat()
            await self.send(text_data=json.dumps({"type": "heartbeat_ack"}))
        elif msg_type == "ping":
            await self.send(text_data=json.dumps({"type": "pong"}))
        else:
            await self.send_error("Unknown message type")

    @database_sync_to_async
    def mark_online(self, device_type):
        container.presence_service().mark_online(self.user.id, socket_id=self.channel_name, device_type=device_type)

    @database_sync_to_async
    def mark_offline(self):
        container.presence_service().mark_offline(self.user.id)

    @database_sync_to_async
    def heartbeat(self):
        container.presence_service().heartbeat(self.user.id)


class OrderChatConsumer(BaseEventConsumer):
    """Live view of one order's chat. Messages are sent through ChatService."""

    async def connect(self):
        self.user = self.scope["user"]

        if not self.user.is_authenticated:
            logger.warning(f"Unauthenticated chat connection attempt to {self.channel_name}")
            await self.close(code=4001)  # Unauthorized
            return

        self.order_id = self.scope["url_route"]["kwargs"].get("order_id")
        if not await self.is_participant(self.user, self.order_id):
            logger.warning(f"User {self.user.id} denied access to chat of order {self.order_id}")
            await self.close(code=4003)  # Forbidden
            return

        self.group_name = order_group(self.order_id)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()
        logger.info(f"User {self.user.id} joined chat of order {self.order_id}")

    async def disconnect(self, close_code):
        if hasattr(self, "group_name"):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def receive(self, text_data):
        try:
            data = json.loads(text_data)
        except json.JSONDecodeError:
            await self.send_error("Invalid JSON")
            return

        msg_type = data.get("type")
        if msg_type == "chat.message":
            payload = data.get("payload", {})
            error = await self.send_message(payload.get("text", ""), payload.get("image_url", ""))
            if error:
                await self.send_error(error, code="rejected")
        elif msg_type == "ping":
            await self.send(text_data=json.dumps({"type": "pong"}))
        else:
            await self.send_error("Unknown message type")

    @database_sync_to_async
    def is_participant(self, user, order_id):
        try:
            return Order.objects.filter(Q(customer=user) | Q(agent=user), pk=order_id).exists()
        except (ValueError, Order.DoesNotExist):
            return False

    @database_sync_to_async
    def send_message(self, text, image_url):
        # Broadcast back to this group happens inside the service
        result = container.chat_service().send_message(self.user, self.order_id, text, image_url)
        return None if result.ok else result.error_detail
