# apps/support/admin.py
from django.contrib import admin
from .models import SupportTicket, FAQ


@admin.register(SupportTicket)
class SupportTicketAdmin(admin.ModelAdmin):
    list_display = ['subject', 'user', 'category', 'priority', 'status', 'created_at']
    list_filter = ['status', 'priority', 'category']
    search_fields = ['subject', 'message', 'user__email']
    readonly_fields = ['uuid_id', 'created_at', 'updated_at', 'responded_at', 'resolved_at', 'closed_at']
    raw_id_fields = ['user', 'booking', 'responded_by']


@admin.register(FAQ)
class FAQAdmin(admin.ModelAdmin):
    list_display = ['question', 'category', 'order', 'is_active']
    list_filter = ['category', 'is_active']
    list_editable = ['order', 'is_active']
    search_fields = ['question', 'answer']
