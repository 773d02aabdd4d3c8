# apps/partners/admin.py
from django.contrib import admin
from .models import Partner


@admin.register(Partner)
class PartnerAdmin(admin.ModelAdmin):
    list_display = ['company_name', 'user', 'city', 'status', 'verification_status', 'rating', 'created_at']
    list_filter = ['status', 'verification_status', 'category', 'city']
    search_fields = ['company_name', 'user__email', 'city']
    readonly_fields = [
        'uuid_id', 'total_earnings', 'total_paid', 'pending_amount',
        'owner_earnings', 'pickup_earnings', 'rating', 'review_count',
        'created_at', 'updated_at',
    ]
    ordering = ['-created_at']
