# apps/notifications/admin.py
"""
Django admin configuration for Notifications.
"""
from django.contrib import admin
from .models import Notification, FCMToken, RealtimeEvent


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['id', 'recipient', 'notification_type', 'category', 'title', 'is_read', 'created_at']
    list_filter = ['notification_type', 'category', 'is_read', 'created_at']
    search_fields = ['recipient__email', 'recipient__username', 'title', 'message', 'booking__booking_number']
    readonly_fields = ['id', 'created_at', 'updated_at', 'read_at']
    raw_id_fields = ['recipient', 'actor', 'booking']
    ordering = ['-created_at']

    fieldsets = (
        (None, {
            'fields': ('id', 'recipient', 'actor', 'notification_type', 'category')
        }),
        ('Content', {
            'fields': ('title', 'message', 'metadata')
        }),
        ('Delivery', {
            'fields': ('booking', 'sent_via', 'is_read', 'read_at')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )


@admin.register(FCMToken)
class FCMTokenAdmin(admin.ModelAdmin):
    list_display = ['user', 'user_role', 'platform', 'device_type', 'is_active', 'last_used']
    list_filter = ['is_active', 'device_type', 'user_role']
    search_fields = ['user__email', 'token']
    raw_id_fields = ['user']


@admin.register(RealtimeEvent)
class RealtimeEventAdmin(admin.ModelAdmin):
    list_display = ['id', 'event_type', 'target_user', 'target_role', 'processed', 'mirrored', 'created_at']
    list_filter = ['event_type', 'target_role', 'processed', 'mirrored']
    search_fields = ['target_user__email']
    readonly_fields = ['id', 'created_at', 'processed_at']
    raw_id_fields = ['target_user']
