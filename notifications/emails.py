"""
Rendering of notification emails.

Order-related notifications link to the customer or the agent view of the
order depending on which side of the order the recipient is on.
"""

import uuid

from django.conf import settings
from django.template.loader import render_to_string

from infrastructure.email import EmailMessage

SUBJECTS = {
    "ORDER_CREATED": "Your order has been created",
    "ORDER_STATUS_UPDATED": "Your order has been updated",
    "ORDER_CANCELLED": "Your order has been cancelled",
    "SHOPPING_LIST_SUBMITTED": "Your shopping list was submitted",
    "SHOPPING_LIST_ACCEPTED": "An agent accepted your shopping list",
    "NEW_SHOPPING_LIST": "You have a new order to fulfil",
    "PAYMENT_SUCCESSFUL": "Payment received",
    "CHAT_MESSAGE_RECEIVED": "You have a new message",
    "CHAT_ACTIVATED": "Chat with your agent is open",
    "USER_LEFT_CHAT": "A participant left the chat",
    "KYC_VERIFIED": "Your identity has been verified",
    "SUPPORT_TICKET_UPDATED": "Your support ticket was updated",
    "ACCOUNT_ACTIVITY": "Account activity",
}


def resolve_recipient_type(notification) -> str:
    """customer or agent, taken from the order the notification points at when there is one."""
    from marketplace.ordering.domain.models import Order

    default = "agent" if getattr(notification.user, "is_agent", False) else "customer"
    try:
        order_id = uuid.UUID(str(notification.resource))
    except (TypeError, ValueError):
        return default

    order = Order.objects.filter(pk=order_id).only("customer_id", "agent_id").first()
    if order is None:
        return default
    if order.agent_id == notification.user_id:
        return "agent"
    if order.customer_id == notification.user_id:
        return "customer"
    return default


def action_url(notification, recipient_type: str) -> str:
    if not notification.resource:
        return settings.FRONTEND_URL
    if recipient_type == "agent":
        return f"{settings.FRONTEND_URL}/agent/orders/{notification.resource}"
    return f"{settings.FRONTEND_URL}/orders/{notification.resource}"


def render_notification_email(notification, recipient_type: str) -> EmailMessage:
    subject = SUBJECTS.get(notification.title, notification.heading or "Busy2Shop notification")
    context = {
        "notification": notification,
        "user": notification.user,
        "heading": notification.heading or subject,
        "recipient_type": recipient_type,
        "action_url": action_url(notification, recipient_type),
        "support_email": getattr(settings, "SUPPORT_EMAIL", "support@busy2shop.com"),
    }
    return EmailMessage(
        subject=f"{subject} - Busy2Shop",
        body=render_to_string("notifications/emails/notification.txt", context),
        html_body=render_to_string("notifications/emails/notification.html", context),
        to=[notification.user.email],
        tags=[notification.title, recipient_type],
    )
