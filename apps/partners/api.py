# apps/partners/api.py
"""
Partner API endpoints.

Endpoints:
1) POST  /api/partners/register/                - Register current user as partner
2) GET   /api/partners/                         - List/search active partners
3) GET   /api/partners/{id}/                    - Partner detail
4) GET   /api/partners/{id}/bikes/              - Bikes listed by a partner
5) GET|PATCH /api/partners/me/                  - Own partner profile
6) PUT   /api/partners/{id}/bank-details/       - Update bank details (owner/admin)

Admin Endpoints:
7) GET   /api/partners/admin/                   - List all partners
8) POST  /api/partners/admin/{id}/verify/       - Verify or reject a partner
9) PATCH /api/partners/admin/{id}/status/       - Change partner status

Partner Status Flow:
- pending → active (admin verifies) | inactive (admin rejects)
- active ↔ inactive (admin)
"""
import logging
from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import generics, status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi

from apps.accounts.permissions import IsAdmin
from .models import Partner
from .permissions import HasPartnerProfile
from .serializers import (
    PartnerListSerializer,
    PartnerSerializer,
    PartnerOwnerSerializer,
    PartnerRegisterSerializer,
    PartnerUpdateSerializer,
    BankDetailsSerializer,
    AdminPartnerVerifySerializer,
    AdminPartnerStatusSerializer,
)
from .services import PartnerService

logger = logging.getLogger(__name__)


class PartnerRegisterAPI(APIView):
    """
    Register the authenticated user as a partner.

    POST /api/partners/register/

    The partner starts pending and must be verified by an admin
    before bikes can be listed.
    """
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        tags=["Partners"],
        operation_summary="Register as Partner",
        request_body=PartnerRegisterSerializer,
        responses={201: PartnerOwnerSerializer, 400: "Validation error or already registered"},
    )
    def post(self, request):
        serializer = PartnerRegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            partner = PartnerService.register_partner(request.user, **serializer.validated_data)
        except ValueError as e:
            return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(PartnerOwnerSerializer(partner).data, status=status.HTTP_201_CREATED)


class PartnerListAPI(generics.ListAPIView):
    """
    List active partners.

    GET /api/partners/

    Query Parameters:
    - city: Filter by city (case-insensitive)
    - category: Filter by partner category
    - q: Search company name, description, location
    - verified: true|false
    - sort: rating | newest | name
    """
    serializer_class = PartnerListSerializer
    permission_classes = [AllowAny]

    SORT_OPTIONS = {
        'rating': ('-rating', '-review_count'),
        'newest': ('-created_at',),
        'name': ('company_name',),
    }

    @swagger_auto_schema(
        tags=["Partners"],
        operation_summary="List Partners",
        manual_parameters=[
            openapi.Parameter('city', openapi.IN_QUERY, type=openapi.TYPE_STRING),
            openapi.Parameter('category', openapi.IN_QUERY, type=openapi.TYPE_STRING),
            openapi.Parameter('q', openapi.IN_QUERY, type=openapi.TYPE_STRING),
            openapi.Parameter('verified', openapi.IN_QUERY, type=openapi.TYPE_BOOLEAN),
            openapi.Parameter('sort', openapi.IN_QUERY, type=openapi.TYPE_STRING,
                              enum=['rating', 'newest', 'name']),
        ],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        queryset = Partner.objects.filter(status=Partner.STATUS_ACTIVE)
        params = self.request.query_params

        city = params.get('city')
        if city:
            queryset = queryset.filter(city__iexact=city)

        category = params.get('category')
        if category:
            queryset = queryset.filter(category=category)

        q = params.get('q')
        if q:
            queryset = queryset.filter(
                Q(company_name__icontains=q)
                | Q(description__icontains=q)
                | Q(location__icontains=q)
            )

        verified = params.get('verified')
        if verified is not None:
            if verified.lower() == 'true':
                queryset = queryset.filter(verification_status=Partner.VERIFICATION_VERIFIED)
            elif verified.lower() == 'false':
                queryset = queryset.exclude(verification_status=Partner.VERIFICATION_VERIFIED)

        ordering = self.SORT_OPTIONS.get(params.get('sort'), ('-rating', '-created_at'))
        return queryset.order_by(*ordering)


class PartnerDetailAPI(generics.RetrieveAPIView):
    """
    GET /api/partners/{id}/

    Inactive or pending partners are only visible to their owner and admins.
    """
    permission_classes = [AllowAny]
    lookup_field = 'uuid_id'
    lookup_url_kwarg = 'id'
    queryset = Partner.objects.select_related('user')

    @swagger_auto_schema(tags=["Partners"], operation_summary="Get Partner")
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def retrieve(self, request, *args, **kwargs):
        partner = self.get_object()
        user = request.user
        is_privileged = user.is_authenticated and (partner.user_id == user.id or user.is_admin_user)

        if not partner.is_active and not is_privileged:
            return Response({"error": "Partner not found."}, status=status.HTTP_404_NOT_FOUND)

        serializer_class = PartnerOwnerSerializer if is_privileged else PartnerSerializer
        return Response(serializer_class(partner).data)


class PartnerBikesAPI(generics.ListAPIView):
    """GET /api/partners/{id}/bikes/ - active bikes listed by the partner."""
    permission_classes = [AllowAny]

    def get_serializer_class(self):
        from apps.bikes.serializers import BikeListSerializer
        return BikeListSerializer

    @swagger_auto_schema(tags=["Partners"], operation_summary="List Partner Bikes")
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        partner = get_object_or_404(Partner, uuid_id=self.kwargs['id'])
        return partner.bikes.filter(is_active=True).select_related('partner').order_by('-created_at')


class MyPartnerAPI(APIView):
    """
    GET   /api/partners/me/ - Own partner profile with bank details and earnings
    PATCH /api/partners/me/ - Update business details and business hours
    """
    permission_classes = [IsAuthenticated, HasPartnerProfile]

    @swagger_auto_schema(
        tags=["Partners"],
        operation_summary="My Partner Profile",
        responses={200: PartnerOwnerSerializer},
    )
    def get(self, request):
        return Response(PartnerOwnerSerializer(request.user.partner_profile).data)

    @swagger_auto_schema(
        tags=["Partners"],
        operation_summary="Update My Partner Profile",
        request_body=PartnerUpdateSerializer,
        responses={200: PartnerOwnerSerializer},
    )
    def patch(self, request):
        partner = request.user.partner_profile
        serializer = PartnerUpdateSerializer(partner, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        partner = serializer.save()
        logger.info(f"Partner {partner.uuid_id} updated profile fields: {sorted(serializer.validated_data)}")
        return Response(PartnerOwnerSerializer(partner).data)


class PartnerBankDetailsAPI(APIView):
    """PUT /api/partners/{id}/bank-details/"""
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        tags=["Partners"],
        operation_summary="Update Bank Details",
        request_body=BankDetailsSerializer,
        responses={200: "Bank details updated", 403: "Not owner or admin", 404: "Not found"},
    )
    def put(self, request, id):
        partner = get_object_or_404(Partner, uuid_id=id)
        serializer = BankDetailsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            PartnerService.update_bank_details(partner, request.user, **serializer.validated_data)
        except PermissionError as e:
            return Response({"error": str(e)}, status=status.HTTP_403_FORBIDDEN)

        return Response({"success": True, "message": "Bank details updated successfully"})


# ========== ADMIN APIS ==========


class AdminPartnerListAPI(generics.ListAPIView):
    """
    GET /api/partners/admin/

    Query Parameters:
    - status: pending|active|inactive
    - verification_status: pending|verified|rejected
    - q: Search company name or owner email
    """
    serializer_class = PartnerOwnerSerializer
    permission_classes = [IsAuthenticated, IsAdmin]

    @swagger_auto_schema(tags=["Admin"], operation_summary="List All Partners")
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        queryset = Partner.objects.select_related('user').order_by('-created_at')
        params = self.request.query_params

        status_filter = params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)

        verification = params.get('verification_status')
        if verification:
            queryset = queryset.filter(verification_status=verification)

        q = params.get('q')
        if q:
            queryset = queryset.filter(Q(company_name__icontains=q) | Q(user__email__icontains=q))

        return queryset


class AdminPartnerVerifyAPI(APIView):
    """POST /api/partners/admin/{id}/verify/ - {"action": "verify"|"reject", "notes": "..."}"""
    permission_classes = [IsAuthenticated, IsAdmin]

    @swagger_auto_schema(
        tags=["Admin"],
        operation_summary="Verify or Reject Partner",
        request_body=AdminPartnerVerifySerializer,
        responses={200: PartnerOwnerSerializer},
    )
    def post(self, request, id):
        partner = get_object_or_404(Partner, uuid_id=id)
        serializer = AdminPartnerVerifySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        partner = PartnerService.review_verification(
            partner,
            admin_user=request.user,
            approve=serializer.validated_data['action'] == 'verify',
            notes=serializer.validated_data['notes'],
        )
        return Response(PartnerOwnerSerializer(partner).data)


class AdminPartnerStatusAPI(APIView):
    """PATCH /api/partners/admin/{id}/status/"""
    permission_classes = [IsAuthenticated, IsAdmin]

    @swagger_auto_schema(
        tags=["Admin"],
        operation_summary="Change Partner Status",
        request_body=AdminPartnerStatusSerializer,
        responses={200: PartnerOwnerSerializer, 400: "Invalid status change"},
    )
    def patch(self, request, id):
        partner = get_object_or_404(Partner, uuid_id=id)
        serializer = AdminPartnerStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            partner = PartnerService.set_status(partner, serializer.validated_data['status'], request.user)
        except ValueError as e:
            return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(PartnerOwnerSerializer(partner).data)
