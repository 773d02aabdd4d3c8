# apps/accounts/admin.py
from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['email', 'username', 'role', 'status', 'is_staff', 'date_joined']
    list_filter = ['role', 'status', 'is_staff', 'is_superuser']
    search_fields = ['email', 'username', 'first_name', 'last_name']
    ordering = ['-date_joined']
    readonly_fields = ['public_id', 'last_login', 'date_joined']

    fieldsets = BaseUserAdmin.fieldsets + (
        ('Marketplace', {
            'fields': ('public_id', 'role', 'status', 'phone', 'notification_preferences')
        }),
    )
