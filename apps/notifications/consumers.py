# apps/notifications/consumers.py
"""
WebSocket consumer for real-time notifications and events.

Provides:
- NotificationConsumer: one connection per browser tab, subscribed to the
  user's notification group and realtime event group
- Replay of unprocessed events on connect
- Per-connection deduplication of event ids
"""
import json
import logging
from channels.generic.websocket import AsyncWebsocketConsumer
from channels.db import database_sync_to_async
from django.contrib.auth.models import AnonymousUser

logger = logging.getLogger(__name__)


class NotificationConsumer(AsyncWebsocketConsumer):
    """
    WebSocket consumer for real-time notifications.

    Connection URL: ws://host/ws/notifications/?token=<jwt_access_token>

    Client Messages:
    - {"type": "ping"} - Health check, returns {"type": "pong"}
    - {"type": "mark_read", "notification_id": "uuid"} - Mark notification as read
    - {"type": "get_unread_count"} - Returns current unread count
    - {"type": "ack_event", "event_id": "uuid"} - Mark a realtime event processed

    Server Messages:
    - {"type": "notification", "notification": {...}} - New notification
    - {"type": "event", "event": {...}} - Realtime event (live or replayed)
    - {"type": "unread_count", "count": N} - Updated unread count
    - {"type": "event_acked", "event_id": "uuid"} - Ack confirmation
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.group_name = None
        self.events_group_name = None
        self.user = None
        self.seen_event_ids = set()

    async def connect(self):
        """
        Authenticate, join both groups and replay pending events.

        Rejects unauthenticated connections.
        """
        self.user = self.scope.get('user')

        if isinstance(self.user, AnonymousUser) or not self.user or not self.user.is_authenticated:
            logger.warning("Rejected unauthenticated WebSocket connection")
            await self.close(code=4001)
            return

        self.group_name = f"notifications_{self.user.public_id}"
        self.events_group_name = f"events_{self.user.public_id}"

        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.channel_layer.group_add(self.events_group_name, self.channel_name)

        await self.accept()

        logger.info(f"WebSocket connected: {self.user.email} -> {self.group_name}")

        unread_count = await self._get_unread_count()
        await self.send(json.dumps({
            'type': 'unread_count',
            'count': unread_count
        }))

        for event in await self._get_pending_events():
            await self._send_event(event)

    async def disconnect(self, close_code):
        for group in (self.group_name, self.events_group_name):
            if group:
                await self.channel_layer.group_discard(group, self.channel_name)
        if self.group_name:
            logger.info(f"WebSocket disconnected: {self.group_name} (code: {close_code})")

    async def receive(self, text_data):
        try:
            data = json.loads(text_data)
            message_type = data.get('type')

            if message_type == 'ping':
                await self.send(json.dumps({'type': 'pong'}))

            elif message_type == 'mark_read':
                notification_id = data.get('notification_id')
                if notification_id:
                    success = await self._mark_notification_read(notification_id)
                    if success:
                        await self._send_unread_count()

            elif message_type == 'get_unread_count':
                await self._send_unread_count()

            elif message_type == 'ack_event':
                event_id = data.get('event_id')
                if event_id and await self._ack_event(event_id):
                    await self.send(json.dumps({
                        'type': 'event_acked',
                        'event_id': event_id
                    }))

        except json.JSONDecodeError:
            logger.warning("Invalid JSON received on WebSocket")
        except Exception as e:
            logger.error(f"Error handling WebSocket message: {str(e)}")

    async def notification_send(self, event):
        """Handle notification.send events from channel layer."""
        await self.send(json.dumps({
            'type': 'notification',
            'notification': event.get('notification')
        }))
        await self._send_unread_count()

    async def realtime_event(self, message):
        """Handle realtime.event messages from channel layer."""
        await self._send_event(message.get('event'))

    # ========== HELPERS ==========

    async def _send_event(self, event):
        if not event:
            return
        event_id = str(event.get('id'))
        if event_id in self.seen_event_ids:
            return
        self.seen_event_ids.add(event_id)
        await self.send(json.dumps({'type': 'event', 'event': event}))

    async def _send_unread_count(self):
        unread_count = await self._get_unread_count()
        await self.send(json.dumps({
            'type': 'unread_count',
            'count': unread_count
        }))

    # ========== DATABASE OPERATIONS ==========

    @database_sync_to_async
    def _get_unread_count(self):
        from .models import Notification
        return Notification.get_unread_count(self.user)

    @database_sync_to_async
    def _get_pending_events(self):
        """Unprocessed events, newest first."""
        from .events import RealtimeEventService
        from .serializers import RealtimeEventSerializer
        events = RealtimeEventService.get_unprocessed_for_user(self.user)
        return RealtimeEventSerializer(events, many=True).data

    @database_sync_to_async
    def _mark_notification_read(self, notification_id):
        from django.core.exceptions import ValidationError
        from .models import Notification
        try:
            notification = Notification.objects.get(
                id=notification_id,
                recipient=self.user
            )
            notification.mark_as_read()
            return True
        except (Notification.DoesNotExist, ValidationError, ValueError):
            return False

    @database_sync_to_async
    def _ack_event(self, event_id):
        from django.core.exceptions import ValidationError
        from .events import RealtimeEventService
        from .models import RealtimeEvent
        try:
            RealtimeEventService.acknowledge(event_id, self.user)
            return True
        except (RealtimeEvent.DoesNotExist, ValidationError, ValueError):
            return False
