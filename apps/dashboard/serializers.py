# apps/dashboard/serializers.py
from rest_framework import serializers

from apps.bookings.serializers import BookingListSerializer


class AdminOverviewSerializer(serializers.Serializer):
    users = serializers.DictField()
    partners = serializers.DictField()
    bikes = serializers.DictField()
    bookings = serializers.DictField()
    revenue = serializers.DecimalField(max_digits=14, decimal_places=2)
    platform_fees = serializers.DecimalField(max_digits=14, decimal_places=2)
    recent_bookings = BookingListSerializer(many=True)


class MonthlyRevenueSerializer(serializers.Serializer):
    month = serializers.CharField()
    revenue = serializers.DecimalField(max_digits=14, decimal_places=2)
    payments = serializers.IntegerField()
    platform_fees = serializers.DecimalField(max_digits=14, decimal_places=2)


class PartnerOverviewSerializer(serializers.Serializer):
    bikes = serializers.DictField()
    bookings = serializers.DictField()
    earnings = serializers.DictField()
    pending_requests = BookingListSerializer(many=True)
