# config/asgi.py
"""
ASGI config for the bike rental marketplace.

Configures both HTTP and WebSocket protocol handling.
WebSocket connections are authenticated via JWT token.
"""
import os
from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

# Initialize Django ASGI application early to ensure app registry is ready
django_asgi_app = get_asgi_application()

# Import after Django setup
from channels.routing import ProtocolTypeRouter, URLRouter  # noqa: E402
from channels.security.websocket import AllowedHostsOriginValidator  # noqa: E402
from apps.notifications.middleware import JWTAuthMiddlewareStack  # noqa: E402
import apps.notifications.routing  # noqa: E402


application = ProtocolTypeRouter(
    {
        "http": django_asgi_app,
        "websocket": AllowedHostsOriginValidator(
            JWTAuthMiddlewareStack(
                URLRouter(apps.notifications.routing.websocket_urlpatterns)
            )
        ),
    }
)
