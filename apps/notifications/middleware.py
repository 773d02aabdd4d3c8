# apps/notifications/middleware.py
"""
WebSocket Authentication Middleware for Django Channels.

Browsers cannot set headers on a WebSocket handshake, so the access token
travels in the query string:

    ws://host/ws/notifications/?token=<jwt_access_token>

Non-browser clients may send "Authorization: Bearer <token>" instead.
"""
import logging
from urllib.parse import parse_qs
from django.contrib.auth.models import AnonymousUser
from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from channels.auth import AuthMiddlewareStack
from rest_framework_simplejwt.tokens import AccessToken
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from django.contrib.auth import get_user_model

logger = logging.getLogger(__name__)
User = get_user_model()


def get_token_from_scope(scope):
    query_params = parse_qs(scope.get('query_string', b'').decode('utf-8'))
    if query_params.get('token'):
        return query_params['token'][0]

    for name, value in scope.get('headers', []):
        if name == b'authorization':
            parts = value.decode('utf-8').split()
            if len(parts) == 2 and parts[0].lower() == 'bearer':
                return parts[1]
    return None


class JWTAuthMiddleware(BaseMiddleware):
    """
    Attach the token's user to scope['user'].

    Invalid tokens, deleted users and suspended accounts resolve to AnonymousUser,
    which the consumer rejects.
    """

    async def __call__(self, scope, receive, send):
        token = get_token_from_scope(scope)
        if token:
            scope['user'] = await self._get_user_from_token(token)
        elif 'user' not in scope:
            scope['user'] = AnonymousUser()

        return await super().__call__(scope, receive, send)

    @database_sync_to_async
    def _get_user_from_token(self, token):
        try:
            user_id = AccessToken(token).get('user_id')
        except (InvalidToken, TokenError) as e:
            logger.warning(f"Invalid WebSocket token: {str(e)}")
            return AnonymousUser()

        if not user_id:
            logger.warning("No user_id in token")
            return AnonymousUser()

        try:
            user = User.objects.get(id=user_id, is_active=True)
        except User.DoesNotExist:
            logger.warning(f"User not found for token user_id: {user_id}")
            return AnonymousUser()

        if user.status != User.STATUS_ACTIVE:
            logger.warning(f"[WS_AUTH_REJECTED] user={user.id} status={user.status}")
            return AnonymousUser()

        return user


def JWTAuthMiddlewareStack(inner):
    """
    Session auth first, then JWT.

    A valid token overrides whatever session user AuthMiddlewareStack attached.
    """
    return AuthMiddlewareStack(JWTAuthMiddleware(inner))
