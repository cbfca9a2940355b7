from django.urls import re_path

from chat.api.consumers import OrderChatConsumer, PresenceConsumer


websocket_urlpatterns = [
    re_path(r"ws/presence/$", PresenceConsumer.as_asgi()),
    re_path(r"ws/chat/(?P<order_id>[0-9a-f-]+)/$", OrderChatConsumer.as_asgi()),
]
