# apps/notifications/urls.py
"""
URL configuration for notifications app.

Endpoints:
- GET    /api/notifications/                  - List notifications
- GET    /api/notifications/{id}/             - Get notification detail
- DELETE /api/notifications/{id}/             - Delete notification
- POST   /api/notifications/mark-read/        - Mark as read
- GET    /api/notifications/unread-count/     - Get unread count
- DELETE /api/notifications/delete-all/       - Delete all
- POST   /api/notifications/fcm/register/     - Register push token
- POST   /api/notifications/fcm/unregister/   - Unregister push token
- GET    /api/notifications/fcm/tokens/       - My push tokens
- POST   /api/notifications/admin/...         - Admin create, bulk, test push
"""
from django.urls import path
from . import api

app_name = 'notifications'

urlpatterns = [
    # List notifications
    path('', api.NotificationListAPI.as_view(), name='notification_list'),

    # Mark notifications as read
    path('mark-read/', api.NotificationMarkReadAPI.as_view(), name='notification_mark_read'),

    # Get unread count
    path('unread-count/', api.NotificationUnreadCountAPI.as_view(), name='notification_unread_count'),

    path('delete-all/', api.NotificationDeleteAllAPI.as_view(), name='notification_delete_all'),

    # FCM tokens
    path('fcm/register/', api.FCMTokenRegisterAPI.as_view(), name='fcm_register'),
    path('fcm/unregister/', api.FCMTokenUnregisterAPI.as_view(), name='fcm_unregister'),
    path('fcm/tokens/', api.FCMTokenListAPI.as_view(), name='fcm_tokens'),

    # Admin
    path('admin/', api.AdminNotificationCreateAPI.as_view(), name='admin_notification_create'),
    path('admin/bulk/', api.AdminBulkNotificationAPI.as_view(), name='admin_notification_bulk'),
    path('admin/test-push/', api.AdminTestPushAPI.as_view(), name='admin_test_push'),

    # Notification detail and delete
    path('<uuid:id>/', api.NotificationDetailAPI.as_view(), name='notification_detail'),
]
