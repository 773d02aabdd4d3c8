# apps/bikes/admin.py
from django.contrib import admin
from .models import Bike, Location


@admin.register(Bike)
class BikeAdmin(admin.ModelAdmin):
    list_display = ['name', 'partner', 'bike_type', 'location', 'price_per_day', 'is_available', 'is_active']
    list_filter = ['bike_type', 'condition', 'is_available', 'is_active']
    search_fields = ['name', 'partner__company_name', 'location']
    readonly_fields = ['uuid_id', 'rating', 'review_count', 'created_at', 'updated_at']


@admin.register(Location)
class LocationAdmin(admin.ModelAdmin):
    list_display = ['name', 'region', 'popular']
    list_filter = ['popular', 'region']
    search_fields = ['name', 'region']
