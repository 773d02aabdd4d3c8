# apps/dashboard/urls.py
from django.urls import path
from .api import AdminOverviewAPI, AdminRevenueAPI, PartnerOverviewAPI

app_name = 'dashboard'

urlpatterns = [
    path('admin/', AdminOverviewAPI.as_view(), name='admin_overview'),
    path('admin/revenue/', AdminRevenueAPI.as_view(), name='admin_revenue'),
    path('partner/', PartnerOverviewAPI.as_view(), name='partner_overview'),
]
