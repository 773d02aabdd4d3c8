# apps/notifications/api.py
"""
REST API endpoints for Notifications.

Endpoints:
1) GET    /api/notifications/               - List user's notifications
2) GET    /api/notifications/{id}/          - Get notification detail (marks read)
3) DELETE /api/notifications/{id}/          - Delete a notification
4) POST   /api/notifications/mark-read/     - Mark notifications as read
5) GET    /api/notifications/unread-count/  - Get unread count
6) DELETE /api/notifications/delete-all/    - Delete all of the user's notifications
7) POST   /api/notifications/admin/         - Admin: create a notification
8) POST   /api/notifications/admin/bulk/    - Admin: bulk create notifications
9) POST   /api/notifications/fcm/register/  - Register a push token
10) POST  /api/notifications/fcm/unregister/ - Remove a push token
11) GET   /api/notifications/fcm/tokens/    - My push tokens
12) POST  /api/notifications/admin/test-push/ - Admin: send a test push
13) GET/POST /api/events/                   - My unprocessed events / publish an event
14) POST  /api/events/{id}/processed/       - Mark an event processed
15) POST  /api/events/admin/cleanup/        - Admin: purge old processed events
16) GET   /api/events/admin/stats/          - Admin: event counts
"""
import logging
from rest_framework import generics, status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi

from apps.accounts.permissions import IsAdmin
from apps.common.enums import NOTIFICATION_CATEGORIES
from .events import RealtimeEventService
from .models import Notification, FCMToken, RealtimeEvent
from .push import FCMService
from .services import NotificationService
from .serializers import (
    NotificationSerializer,
    NotificationListSerializer,
    NotificationMarkReadSerializer,
    NotificationCreateSerializer,
    BulkNotificationSerializer,
    FCMTokenSerializer,
    FCMTokenRegisterSerializer,
    FCMTokenUnregisterSerializer,
    TestPushSerializer,
    RealtimeEventSerializer,
    RealtimeEventCreateSerializer,
    EventCleanupSerializer,
)

logger = logging.getLogger(__name__)


class NotificationListAPI(generics.ListAPIView):
    """
    List notifications for the current user.

    GET /api/notifications/

    Query Parameters:
    - is_read: true|false - Filter by read status
    - type: Filter by notification type
    - category: Filter by category
    - limit: Number of results (default: 10, max: 100)
    - offset: Starting position
    """
    serializer_class = NotificationListSerializer
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        tags=["Notifications"],
        operation_summary="List Notifications",
        operation_description="Get list of notifications for the current user.",
        manual_parameters=[
            openapi.Parameter(
                'is_read',
                openapi.IN_QUERY,
                type=openapi.TYPE_BOOLEAN,
                description="Filter by read status",
            ),
            openapi.Parameter(
                'type',
                openapi.IN_QUERY,
                type=openapi.TYPE_STRING,
                description="Filter by notification type",
                enum=[choice[0] for choice in Notification.TYPE_CHOICES],
            ),
            openapi.Parameter(
                'category',
                openapi.IN_QUERY,
                type=openapi.TYPE_STRING,
                description="Filter by category",
                enum=[option['value'] for option in NOTIFICATION_CATEGORIES],
            ),
        ],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        queryset = Notification.objects.filter(recipient=self.request.user)

        is_read = self.request.query_params.get('is_read')
        if is_read is not None:
            queryset = queryset.filter(is_read=is_read.lower() == 'true')

        notification_type = self.request.query_params.get('type')
        if notification_type:
            queryset = queryset.filter(notification_type=notification_type)

        category = self.request.query_params.get('category')
        if category:
            queryset = queryset.filter(category=category)

        return queryset.select_related('actor', 'booking').order_by('-created_at')


class NotificationDetailAPI(generics.RetrieveDestroyAPIView):
    """
    Get or delete a notification.

    Automatically marks notification as read when viewed.
    """
    serializer_class = NotificationSerializer
    permission_classes = [IsAuthenticated]
    lookup_field = 'id'

    @swagger_auto_schema(
        tags=["Notifications"],
        operation_summary="Get Notification",
        operation_description="Get notification details. Marks notification as read.",
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    @swagger_auto_schema(
        tags=["Notifications"],
        operation_summary="Delete Notification",
        operation_description="Delete a notification.",
    )
    def delete(self, request, *args, **kwargs):
        return super().delete(request, *args, **kwargs)

    def get_queryset(self):
        return Notification.objects.filter(
            recipient=self.request.user
        ).select_related('actor', 'booking')

    def retrieve(self, request, *args, **kwargs):
        instance = self.get_object()

        if not instance.is_read:
            instance.mark_as_read()

        serializer = self.get_serializer(instance)
        return Response(serializer.data)


class NotificationMarkReadAPI(APIView):
    """
    Mark notifications as read.

    POST /api/notifications/mark-read/

    Request Body:
    - notification_ids: List of notification IDs to mark as read
    - mark_all: If true, marks all notifications as read
    """
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        tags=["Notifications"],
        operation_summary="Mark Notifications as Read",
        operation_description="Mark specific notifications or all notifications as read.",
        request_body=NotificationMarkReadSerializer,
        responses={
            200: openapi.Response(
                description="Success",
                schema=openapi.Schema(
                    type=openapi.TYPE_OBJECT,
                    properties={
                        'marked_count': openapi.Schema(type=openapi.TYPE_INTEGER),
                        'message': openapi.Schema(type=openapi.TYPE_STRING),
                    }
                )
            ),
        }
    )
    def post(self, request):
        serializer = NotificationMarkReadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = request.user
        notification_ids = serializer.validated_data.get('notification_ids', [])
        mark_all = serializer.validated_data.get('mark_all', False)

        if mark_all:
            count = Notification.mark_all_as_read(user)
            return Response({
                'marked_count': count,
                'message': f'All {count} unread notifications marked as read.'
            })

        if notification_ids:
            notifications = Notification.objects.filter(
                recipient=user,
                id__in=notification_ids,
                is_read=False
            )
            count = 0
            for notification in notifications:
                notification.mark_as_read()
                count += 1

            return Response({
                'marked_count': count,
                'message': f'{count} notifications marked as read.'
            })

        return Response({
            'marked_count': 0,
            'message': 'No notifications specified to mark as read.'
        })


class NotificationUnreadCountAPI(APIView):
    """
    Get unread notification count.

    GET /api/notifications/unread-count/
    """
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        tags=["Notifications"],
        operation_summary="Get Unread Count",
        operation_description="Get count of unread notifications.",
        responses={
            200: openapi.Response(
                description="Success",
                schema=openapi.Schema(
                    type=openapi.TYPE_OBJECT,
                    properties={
                        'unread_count': openapi.Schema(type=openapi.TYPE_INTEGER),
                    }
                )
            ),
        }
    )
    def get(self, request):
        count = Notification.get_unread_count(request.user)
        return Response({'unread_count': count})


class NotificationDeleteAllAPI(APIView):
    """
    DELETE /api/notifications/delete-all/

    Optional ?is_read=true limits the purge to read notifications.
    """
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        tags=["Notifications"],
        operation_summary="Delete All Notifications",
        manual_parameters=[
            openapi.Parameter(
                'is_read',
                openapi.IN_QUERY,
                type=openapi.TYPE_BOOLEAN,
                description="Only delete notifications with this read status",
            ),
        ],
    )
    def delete(self, request):
        queryset = Notification.objects.filter(recipient=request.user)

        is_read = request.query_params.get('is_read')
        if is_read is not None:
            queryset = queryset.filter(is_read=is_read.lower() == 'true')

        deleted, _ = queryset.delete()
        logger.info(f"[NOTIFICATIONS_DELETED] user={request.user.id} count={deleted}")
        return Response({'deleted_count': deleted})


# ========== ADMIN ==========

class AdminNotificationCreateAPI(APIView):
    """POST /api/notifications/admin/ - create a notification for one user."""
    permission_classes = [IsAuthenticated, IsAdmin]

    @swagger_auto_schema(
        tags=["Admin - Notifications"],
        operation_summary="Create Notification",
        request_body=NotificationCreateSerializer,
        responses={201: NotificationSerializer},
    )
    def post(self, request):
        serializer = NotificationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        notification = Notification.create_notification(
            recipient=data['recipient_id'],
            actor=request.user,
            notification_type=data['notification_type'],
            category=data['category'],
            title=data['title'],
            message=data['message'],
            metadata=data.get('metadata'),
            send_push=data['send_push'],
        )

        logger.info(f"[ADMIN_NOTIFICATION] admin={request.user.email} recipient={notification.recipient_id}")
        return Response(NotificationSerializer(notification).data, status=status.HTTP_201_CREATED)


class AdminBulkNotificationAPI(APIView):
    """POST /api/notifications/admin/bulk/ - create a notification for many users."""
    permission_classes = [IsAuthenticated, IsAdmin]

    @swagger_auto_schema(
        tags=["Admin - Notifications"],
        operation_summary="Bulk Create Notifications",
        request_body=BulkNotificationSerializer,
    )
    def post(self, request):
        serializer = BulkNotificationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        recipients = list(serializer.get_recipients())
        if not recipients:
            return Response({"error": "No matching recipients."}, status=status.HTTP_400_BAD_REQUEST)

        notifications = NotificationService.create_for_users(
            recipients,
            title=data['title'],
            message=data['message'],
            category=data['category'],
            actor=request.user,
            send_push=data['send_push'],
        )

        return Response({'created_count': len(notifications)}, status=status.HTTP_201_CREATED)


# ========== FCM TOKENS ==========

class FCMTokenRegisterAPI(APIView):
    """
    POST /api/notifications/fcm/register/

    Registers the browser's push token. Older tokens from the same
    user agent and platform are replaced.
    """
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        tags=["Notifications - Push"],
        operation_summary="Register FCM Token",
        request_body=FCMTokenRegisterSerializer,
        responses={200: FCMTokenSerializer, 201: FCMTokenSerializer},
    )
    def post(self, request):
        serializer = FCMTokenRegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        token, created = FCMToken.register(
            user=request.user,
            token=data['token'],
            user_role=data['user_role'],
            user_agent=request.META.get('HTTP_USER_AGENT', ''),
            platform=data['platform'],
            device_type=data['device_type'],
            app_version=data['app_version'],
        )

        logger.info(f"[FCM_TOKEN_REGISTERED] user={request.user.id} created={created}")
        return Response(
            FCMTokenSerializer(token).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK
        )


class FCMTokenUnregisterAPI(APIView):
    """POST /api/notifications/fcm/unregister/"""
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        tags=["Notifications - Push"],
        operation_summary="Unregister FCM Token",
        request_body=FCMTokenUnregisterSerializer,
    )
    def post(self, request):
        serializer = FCMTokenUnregisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        deleted, _ = FCMToken.objects.filter(
            user=request.user,
            token=serializer.validated_data['token'],
        ).delete()

        if not deleted:
            return Response({"error": "Token not found."}, status=status.HTTP_404_NOT_FOUND)

        return Response({'message': 'Token unregistered.'})


class FCMTokenListAPI(generics.ListAPIView):
    """GET /api/notifications/fcm/tokens/ - the current user's tokens."""
    serializer_class = FCMTokenSerializer
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(tags=["Notifications - Push"], operation_summary="My FCM Tokens")
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        return FCMToken.objects.filter(user=self.request.user)


class AdminTestPushAPI(APIView):
    """POST /api/notifications/admin/test-push/"""
    permission_classes = [IsAuthenticated, IsAdmin]

    @swagger_auto_schema(
        tags=["Admin - Notifications"],
        operation_summary="Send Test Push",
        request_body=TestPushSerializer,
    )
    def post(self, request):
        serializer = TestPushSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = FCMService.send_to_user(
            data['user_id'],
            data['title'],
            data['body'],
            data={'type': Notification.TYPE_SYSTEM, 'test': 'true'},
        )
        return Response(result)


# ========== REALTIME EVENTS ==========

class RealtimeEventListCreateAPI(APIView):
    """
    GET  /api/events/ - my unprocessed events (newest first, max 50)
    POST /api/events/ - publish an event to a user
    """
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        tags=["Events"],
        operation_summary="List Unprocessed Events",
        responses={200: RealtimeEventSerializer(many=True)},
    )
    def get(self, request):
        events = RealtimeEventService.get_unprocessed_for_user(request.user)
        return Response(RealtimeEventSerializer(events, many=True).data)

    @swagger_auto_schema(
        tags=["Events"],
        operation_summary="Publish Event",
        request_body=RealtimeEventCreateSerializer,
        responses={201: RealtimeEventSerializer},
    )
    def post(self, request):
        serializer = RealtimeEventCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        event = RealtimeEventService.publish(
            data['event_type'],
            data['target_user_id'],
            data['target_role'],
            data=data['data'],
            source_user=request.user,
        )
        event.refresh_from_db()
        return Response(RealtimeEventSerializer(event).data, status=status.HTTP_201_CREATED)


class RealtimeEventMarkProcessedAPI(APIView):
    """POST /api/events/{id}/processed/"""
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        tags=["Events"],
        operation_summary="Mark Event Processed",
        responses={200: RealtimeEventSerializer},
    )
    def post(self, request, id):
        try:
            event = RealtimeEventService.acknowledge(id, request.user)
        except RealtimeEvent.DoesNotExist:
            return Response({"error": "Event not found."}, status=status.HTTP_404_NOT_FOUND)
        return Response(RealtimeEventSerializer(event).data)


class AdminEventCleanupAPI(APIView):
    """POST /api/events/admin/cleanup/ - delete processed events older than N days."""
    permission_classes = [IsAuthenticated, IsAdmin]

    @swagger_auto_schema(
        tags=["Admin - Events"],
        operation_summary="Cleanup Processed Events",
        request_body=EventCleanupSerializer,
    )
    def post(self, request):
        serializer = EventCleanupSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        deleted = RealtimeEventService.cleanup(serializer.validated_data['older_than_days'])
        return Response({'deleted_count': deleted})


class AdminEventStatsAPI(APIView):
    """GET /api/events/admin/stats/"""
    permission_classes = [IsAuthenticated, IsAdmin]

    @swagger_auto_schema(tags=["Admin - Events"], operation_summary="Event Stats")
    def get(self, request):
        return Response(RealtimeEventService.stats())
