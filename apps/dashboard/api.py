# apps/dashboard/api.py
"""
Dashboard API endpoints.

Endpoints:
1) GET /api/dashboard/admin/           - Platform overview (admin)
2) GET /api/dashboard/admin/revenue/   - Revenue by month, ?months=6 (admin)
3) GET /api/dashboard/partner/         - Own bikes, bookings and earnings (partner)
"""
import logging
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi

from apps.accounts.permissions import IsAdmin
from apps.partners.permissions import HasPartnerProfile
from .serializers import AdminOverviewSerializer, MonthlyRevenueSerializer, PartnerOverviewSerializer
from .services import DashboardService

logger = logging.getLogger(__name__)


class AdminOverviewAPI(APIView):
    permission_classes = [IsAuthenticated, IsAdmin]

    @swagger_auto_schema(
        tags=["Admin - Dashboard"],
        operation_summary="Platform Overview",
        responses={200: AdminOverviewSerializer},
    )
    def get(self, request):
        return Response(AdminOverviewSerializer(DashboardService.admin_overview()).data)


class AdminRevenueAPI(APIView):
    permission_classes = [IsAuthenticated, IsAdmin]

    @swagger_auto_schema(
        tags=["Admin - Dashboard"],
        operation_summary="Revenue By Month",
        manual_parameters=[
            openapi.Parameter('months', openapi.IN_QUERY, type=openapi.TYPE_INTEGER, default=6,
                              description='Number of months including the current one (max 24)'),
        ],
        responses={200: MonthlyRevenueSerializer(many=True)},
    )
    def get(self, request):
        try:
            months = int(request.query_params.get('months', 6))
        except (TypeError, ValueError):
            months = 6
        rows = DashboardService.revenue_by_month(months)
        return Response(MonthlyRevenueSerializer(rows, many=True).data)


class PartnerOverviewAPI(APIView):
    permission_classes = [IsAuthenticated, HasPartnerProfile]

    @swagger_auto_schema(
        tags=["Partner - Dashboard"],
        operation_summary="Partner Overview",
        responses={200: PartnerOverviewSerializer},
    )
    def get(self, request):
        overview = DashboardService.partner_overview(request.user.partner_profile)
        return Response(PartnerOverviewSerializer(overview).data)
