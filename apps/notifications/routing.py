# apps/notifications/routing.py
"""
WebSocket URL routing.

- ws/notifications/ - notifications and realtime events for the authenticated user
"""
from django.urls import path

from .consumers import NotificationConsumer

websocket_urlpatterns = [
    path('ws/notifications/', NotificationConsumer.as_asgi()),
]
