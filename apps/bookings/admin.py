# apps/bookings/admin.py
from django.contrib import admin
from .models import Booking, BookingAuditLog, Review


class BookingAuditLogInline(admin.TabularInline):
    model = BookingAuditLog
    extra = 0
    readonly_fields = ['action', 'user', 'details', 'ip_address', 'created_at']
    can_delete = False


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = [
        'booking_number', 'customer', 'bike', 'partner', 'start_date',
        'end_date', 'total', 'status', 'payment_status', 'created_at',
    ]
    list_filter = ['status', 'payment_status', 'package']
    search_fields = ['booking_number', 'customer__email', 'bike__name', 'partner__company_name']
    readonly_fields = [
        'uuid_id', 'booking_number', 'created_at', 'updated_at', 'confirmed_at',
        'activated_at', 'completed_at', 'cancelled_at', 'rejected_at',
    ]
    date_hierarchy = 'start_date'
    inlines = [BookingAuditLogInline]


@admin.register(BookingAuditLog)
class BookingAuditLogAdmin(admin.ModelAdmin):
    list_display = ['booking', 'action', 'user', 'ip_address', 'created_at']
    list_filter = ['action']
    search_fields = ['booking__booking_number', 'user__email']
    readonly_fields = ['booking', 'user', 'action', 'details', 'ip_address', 'user_agent', 'created_at']


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ['booking', 'customer', 'bike', 'partner', 'rating', 'status', 'created_at']
    list_filter = ['status', 'rating']
    search_fields = ['booking__booking_number', 'customer__email', 'comment']
