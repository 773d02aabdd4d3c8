# apps/notifications/__init__.py
"""
Notification system for the bike rental marketplace.

Provides:
- Notification, FCMToken and RealtimeEvent models
- REST APIs for notifications, push tokens and events
- WebSocket delivery via Django Channels
- FCM push and Firestore mirroring via firebase-admin
"""
