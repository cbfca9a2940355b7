"""
ChatService - order chat between a customer and the agent shopping for them.

Only the two participants of an order can read or write its chat, and only
while the order is being worked on. Messages are persisted first and then
broadcast to the order's channel group (order_chat_{order_id}) and to the
recipient's personal group (user_{id}), which the presence socket joins.
"""

from typing import Dict, Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db.models import Q

from chat.domain.models import ChatMessage
from marketplace.ordering.domain import workflow
from marketplace.ordering.domain.models import Order
from utils.pagination import paginate
from utils.service_base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok


def order_group(order_id) -> str:
    return f"order_chat_{order_id}"


def user_group(user_id) -> str:
    return f"user_{user_id}"


class ChatService(BaseService):
    def __init__(self, dispatcher=None, presence_service=None, channel_layer=None):
        super().__init__()
        self.dispatcher = dispatcher
        self.presence = presence_service
        self._channel_layer = channel_layer

    @property
    def channel_layer(self):
        if self._channel_layer is None:
            self._channel_layer = get_channel_layer()
        return self._channel_layer

    # ===== Helpers =====

    def _participant_order(self, order_id, user) -> ServiceResult[Order]:
        order = Order.objects.select_related("customer", "agent").filter(pk=order_id).first()
        if order is None:
            return service_err(ErrorCodes.ORDER_NOT_FOUND, f"Order {order_id} not found")
        if user.id not in (order.customer_id, order.agent_id):
            return service_err(ErrorCodes.PERMISSION_DENIED, "Only the order's customer and agent can use this chat")
        return service_ok(order)

    @staticmethod
    def _other_participant(order: Order, user):
        return order.agent if user.id == order.customer_id else order.customer

    def _broadcast(self, group: str, event_type: str, payload: Dict):
        if self.channel_layer is None:
            return
        try:
            async_to_sync(self.channel_layer.group_send)(group, {"type": event_type, "message": payload})
        except Exception as e:
            self.logger.error(f"Broadcast of {event_type} to {group} failed: {e}")

    def _notify(self, user, title: str, heading: str, message: str, order: Order, actor, priority="normal"):
        if user is None or self.dispatcher is None:
            return
        self.dispatcher.dispatch(
            user=user,
            actor=actor,
            title=title,
            heading=heading,
            message=message,
            resource=str(order.id),
            priority=priority,
        )

    # ===== Messages =====

    def send_message(self, user, order_id, message: str = "", image_url: str = "") -> ServiceResult[ChatMessage]:
        result = self._participant_order(order_id, user)
        if not result.ok:
            return result
        order = result.value

        if not (message or "").strip() and not image_url:
            return service_err(ErrorCodes.VALIDATION_ERROR, "A message needs text or an image")
        if order.status not in workflow.ACTIVE_ORDER_STATUSES:
            return service_err(ErrorCodes.CHAT_INACTIVE, "Chat is only available while the order is in progress")

        chat_message = ChatMessage.objects.create(
            order=order,
            sender=user,
            sender_type="agent" if user.id == order.agent_id else "customer",
            message=(message or "").strip(),
            image_url=image_url or "",
        )

        event = chat_message.as_event()
        self._broadcast(order_group(order.id), "chat_message", event)
        recipient = self._other_participant(order, user)
        if recipient is not None:
            self._broadcast(user_group(recipient.id), "chat_message", event)

        preview = chat_message.message[:100] if chat_message.message else "Sent an image"
        self._notify(
            recipient,
            "CHAT_MESSAGE_RECEIVED",
            f"New message from {user.full_name}",
            preview,
            order,
            actor=user,
        )
        return service_ok(chat_message)

    def get_messages(self, user, order_id, page: int = 1, size: int = 50) -> ServiceResult[Dict]:
        result = self._participant_order(order_id, user)
        if not result.ok:
            return result
        queryset = ChatMessage.objects.filter(order=result.value).select_related("sender").order_by("created_at")
        return service_ok(paginate(queryset, page, size))

    def mark_read(self, user, order_id) -> ServiceResult[int]:
        """Mark what the other participant sent as read."""
        result = self._participant_order(order_id, user)
        if not result.ok:
            return result
        updated = ChatMessage.objects.filter(order=result.value, is_read=False).exclude(sender=user).update(is_read=True)
        if updated:
            self._broadcast(order_group(order_id), "chat_read", {"order_id": str(order_id), "reader_id": str(user.id)})
        return service_ok(updated)

    def unread_count(self, user, order_id: Optional[str] = None) -> ServiceResult[int]:
        queryset = ChatMessage.objects.filter(
            Q(order__customer=user) | Q(order__agent=user), is_read=False
        ).exclude(sender=user)
        if order_id:
            queryset = queryset.filter(order_id=order_id)
        return service_ok(queryset.count())

    # ===== Chat lifecycle =====

    def is_chat_active(self, user, order_id) -> ServiceResult[Dict]:
        result = self._participant_order(order_id, user)
        if not result.ok:
            return result
        order = result.value
        return service_ok(
            {
                "order_id": str(order.id),
                "status": order.status,
                "is_active": order.status in workflow.ACTIVE_ORDER_STATUSES,
            }
        )

    def activate_chat(self, user, order_id) -> ServiceResult[Dict]:
        result = self._participant_order(order_id, user)
        if not result.ok:
            return result
        order = result.value
        if order.agent_id != user.id:
            return service_err(ErrorCodes.PERMISSION_DENIED, "Only the assigned agent can open the chat")
        if order.status not in workflow.ACTIVE_ORDER_STATUSES:
            return service_err(ErrorCodes.CHAT_INACTIVE, f"Cannot open a chat on an order that is {order.status}")

        payload = {"order_id": str(order.id), "agent_id": str(user.id)}
        self._broadcast(order_group(order.id), "chat_activated", payload)
        self._broadcast(user_group(order.customer_id), "chat_activated", payload)
        self._notify(
            order.customer,
            "CHAT_ACTIVATED",
            "Chat with your agent",
            f"{user.full_name} opened a chat about order {order.order_number}.",
            order,
            actor=user,
            priority="high",
        )
        return service_ok({"order_id": str(order.id), "is_active": True})

    def leave_chat(self, user, order_id) -> ServiceResult[Dict]:
        result = self._participant_order(order_id, user)
        if not result.ok:
            return result
        order = result.value

        self._broadcast(order_group(order.id), "chat_user_left", {"order_id": str(order.id), "user_id": str(user.id)})
        self._notify(
            self._other_participant(order, user),
            "USER_LEFT_CHAT",
            "Chat update",
            f"{user.full_name} left the chat for order {order.order_number}.",
            order,
            actor=user,
            priority="low",
        )
        return service_ok({"order_id": str(order.id), "left": True})
