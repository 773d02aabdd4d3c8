# apps/bookings/urls.py
from django.urls import path
from . import api

app_name = 'bookings'

urlpatterns = [
    path('', api.BookingListCreateAPI.as_view(), name='booking_list'),
    path('partner/', api.PartnerBookingListAPI.as_view(), name='partner_bookings'),
    path('partner/dashboard/', api.PartnerDashboardAPI.as_view(), name='partner_dashboard'),
    path('reviews/', api.ReviewListAPI.as_view(), name='review_list'),

    # Admin
    path('admin/', api.AdminBookingListAPI.as_view(), name='admin_booking_list'),
    path('admin/reviews/', api.AdminReviewListAPI.as_view(), name='admin_review_list'),
    path('admin/reviews/<int:pk>/', api.AdminReviewModerateAPI.as_view(), name='admin_review_moderate'),
    path('admin/<uuid:id>/', api.AdminBookingDetailAPI.as_view(), name='admin_booking_detail'),
    path('admin/<uuid:id>/status/', api.AdminBookingStatusAPI.as_view(), name='admin_booking_status'),

    path('<uuid:id>/', api.BookingDetailAPI.as_view(), name='booking_detail'),
    path('<uuid:id>/confirm/', api.BookingConfirmAPI.as_view(), name='booking_confirm'),
    path('<uuid:id>/reject/', api.BookingRejectAPI.as_view(), name='booking_reject'),
    path('<uuid:id>/activate/', api.BookingActivateAPI.as_view(), name='booking_activate'),
    path('<uuid:id>/complete/', api.BookingCompleteAPI.as_view(), name='booking_complete'),
    path('<uuid:id>/cancel/', api.BookingCancelAPI.as_view(), name='booking_cancel'),
    path('<uuid:id>/review/', api.BookingReviewAPI.as_view(), name='booking_review'),
]
