# apps/payments/admin.py
from django.contrib import admin
from .models import Payment, PartnerTransaction, PaymentMethod


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ['transaction_id', 'booking', 'customer', 'installment', 'amount', 'method', 'status', 'paid_at']
    list_filter = ['status', 'method', 'installment']
    search_fields = ['transaction_id', 'booking__booking_number', 'customer__email']
    readonly_fields = ['uuid_id', 'transaction_id', 'created_at', 'updated_at', 'paid_at', 'refunded_at']


@admin.register(PartnerTransaction)
class PartnerTransactionAdmin(admin.ModelAdmin):
    list_display = ['id', 'partner', 'transaction_type', 'category', 'amount', 'status', 'created_at']
    list_filter = ['transaction_type', 'category', 'status']
    search_fields = ['partner__company_name', 'booking__booking_number', 'description']
    readonly_fields = [
        'id', 'partner', 'booking', 'payment', 'transaction_type', 'category',
        'amount', 'metadata', 'related_transaction', 'created_at', 'created_by',
    ]

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(PaymentMethod)
class PaymentMethodAdmin(admin.ModelAdmin):
    list_display = ['user', 'brand', 'last4', 'expiry_month', 'expiry_year', 'is_default', 'created_at']
    list_filter = ['brand', 'is_default']
    search_fields = ['user__email', 'last4']
    readonly_fields = ['uuid_id', 'provider_token', 'created_at', 'updated_at']
    raw_id_fields = ['user']
