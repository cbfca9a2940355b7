import logging
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from django.contrib.auth.models import AnonymousUser
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError

logger = logging.getLogger(__name__)


class JWTQueryAuthMiddleware:
    """
    Authenticates WebSocket handshakes with an access token passed as ?token=.

    Connections without a valid token get an AnonymousUser and are refused by
    the consumers.
    """

    def __init__(self, inner):
        self.inner = inner

    async def __call__(self, scope, receive, send):
        scope = dict(scope)
        scope["user"] = AnonymousUser()

        params = parse_qs(scope.get("query_string", b"").decode())
        token_list = params.get("token")
        if token_list:
            user = await self.get_user_from_token(token_list[0])
            if user is not None:
                scope["user"] = user
                logger.debug(f"Authenticated user {user.id} via WebSocket JWT")
            else:
                logger.debug("Invalid JWT token provided in WebSocket handshake")

        return await self.inner(scope, receive, send)

    @database_sync_to_async
    def get_user_from_token(self, token):
        jwt_auth = JWTAuthentication()
        try:
            validated_token = jwt_auth.get_validated_token(token)
            return jwt_auth.get_user(validated_token)
        except (InvalidToken, TokenError):
            return None
