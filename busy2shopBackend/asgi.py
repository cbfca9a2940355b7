"""
ASGI config for busy2shopBackend project.

HTTP goes to Django; WebSocket connections are authenticated from the
?token= query parameter and routed to the presence and order chat consumers.
"""

import os

import django
from channels.routing import ProtocolTypeRouter, URLRouter
from channels.security.websocket import AllowedHostsOriginValidator
from django.core.asgi import get_asgi_application


os.environ.setdefault("DJANGO_SETTINGS_MODULE", "busy2shopBackend.settings")

# Initialize Django ASGI application early to ensure the AppRegistry
# is populated before importing code that may import ORM models.
django.setup()

django_asgi_app = get_asgi_application()

import chat.routing  # noqa: E402
from chat.middleware.auth import JWTQueryAuthMiddleware  # noqa: E402


application = ProtocolTypeRouter(
    {
        "http": django_asgi_app,
        "websocket": AllowedHostsOriginValidator(JWTQueryAuthMiddleware(URLRouter(chat.routing.websocket_urlpatterns))),
    }
)
