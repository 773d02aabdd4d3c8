# apps/bikes/api.py
"""
Bike and Location API endpoints.

Endpoints:
1) GET    /api/bikes/                           - Search bikes
2) POST   /api/bikes/                           - Create bike (active partner)
3) GET    /api/bikes/mine/                      - Own bikes (partner, includes inactive)
4) GET    /api/bikes/{id}/                      - Bike detail
5) PATCH  /api/bikes/{id}/                      - Update bike (owner/admin)
6) DELETE /api/bikes/{id}/                      - Soft delete (owner/admin)
7) PATCH  /api/bikes/{id}/availability/         - Toggle availability with reason
8) GET    /api/bikes/{id}/check-availability/   - Check a date range
9) POST   /api/bikes/{id}/quote/                - Price quote

Locations:
10) GET  /api/bikes/locations/                  - List locations (?popular=true, ?region=)
11) POST /api/bikes/locations/                  - Create location (admin)
12) GET|PATCH|DELETE /api/bikes/locations/{id}/ - Location detail / admin edit
"""
import logging
from django.shortcuts import get_object_or_404
from rest_framework import generics, status
from rest_framework.permissions import AllowAny, IsAuthenticated, SAFE_METHODS
from rest_framework.response import Response
from rest_framework.views import APIView
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi

from apps.accounts.permissions import IsAdmin
from apps.partners.permissions import IsActivePartner, HasPartnerProfile
from .models import Bike, Location
from .permissions import IsBikeOwnerOrAdmin
from .serializers import (
    BikeListSerializer,
    BikeSerializer,
    BikeWriteSerializer,
    BikeAvailabilitySerializer,
    BikeSearchSerializer,
    DateRangeSerializer,
    QuoteRequestSerializer,
    QuoteResponseSerializer,
    LocationSerializer,
)
from .services import BikeService

logger = logging.getLogger(__name__)


class BikeListCreateAPI(generics.ListAPIView):
    """
    GET  /api/bikes/ - Search active bikes
    POST /api/bikes/ - Create a bike for the current (active) partner

    Query Parameters:
    - type, location, partner, condition, q
    - min_price, max_price: Daily price range
    - available: true|false
    - start_date, end_date: Only bikes free for the whole range
    - sort: price-asc | price-desc | rating | newest
    """
    serializer_class = BikeListSerializer

    def get_permissions(self):
        if self.request.method == 'POST':
            return [IsAuthenticated(), IsActivePartner()]
        return [AllowAny()]

    @swagger_auto_schema(
        tags=["Bikes"],
        operation_summary="Search Bikes",
        query_serializer=BikeSearchSerializer,
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        serializer = BikeSearchSerializer(data=self.request.query_params)
        serializer.is_valid(raise_exception=True)
        return BikeService.search(serializer.validated_data)

    @swagger_auto_schema(
        tags=["Bikes"],
        operation_summary="Create Bike",
        request_body=BikeWriteSerializer,
        responses={201: BikeSerializer, 400: "Validation error", 403: "Active partner required"},
    )
    def post(self, request):
        serializer = BikeWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            bike = BikeService.create_bike(request.user.partner_profile, **serializer.validated_data)
        except ValueError as e:
            return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(BikeSerializer(bike).data, status=status.HTTP_201_CREATED)


class MyBikesAPI(generics.ListAPIView):
    """GET /api/bikes/mine/ - every bike of the current partner, including deactivated ones."""
    serializer_class = BikeSerializer
    permission_classes = [IsAuthenticated, HasPartnerProfile]

    @swagger_auto_schema(tags=["Bikes"], operation_summary="My Bikes")
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        queryset = Bike.objects.filter(partner=self.request.user.partner_profile).select_related('partner')
        is_active = self.request.query_params.get('is_active')
        if is_active is not None:
            queryset = queryset.filter(is_active=is_active.lower() == 'true')
        return queryset.order_by('-created_at')


class BikeDetailAPI(APIView):
    """
    GET    /api/bikes/{id}/
    PATCH  /api/bikes/{id}/
    DELETE /api/bikes/{id}/ (soft delete)
    """

    def get_permissions(self):
        if self.request.method in SAFE_METHODS:
            return [AllowAny()]
        return [IsAuthenticated(), IsBikeOwnerOrAdmin()]

    def get_object(self, id):
        bike = get_object_or_404(Bike.objects.select_related('partner'), uuid_id=id)
        self.check_object_permissions(self.request, bike)
        return bike

    @swagger_auto_schema(tags=["Bikes"], operation_summary="Get Bike", responses={200: BikeSerializer})
    def get(self, request, id):
        bike = self.get_object(id)
        if not bike.is_active:
            user = request.user
            if not (user.is_authenticated and (bike.partner.user_id == user.id or user.is_admin_user)):
                return Response({"error": "Bike not found."}, status=status.HTTP_404_NOT_FOUND)
        return Response(BikeSerializer(bike).data)

    @swagger_auto_schema(
        tags=["Bikes"],
        operation_summary="Update Bike",
        request_body=BikeWriteSerializer,
        responses={200: BikeSerializer},
    )
    def patch(self, request, id):
        bike = self.get_object(id)
        serializer = BikeWriteSerializer(bike, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        try:
            bike = BikeService.update_bike(bike, request.user, **serializer.validated_data)
        except PermissionError as e:
            return Response({"error": str(e)}, status=status.HTTP_403_FORBIDDEN)

        return Response(BikeSerializer(bike).data)

    @swagger_auto_schema(tags=["Bikes"], operation_summary="Delete Bike", responses={204: "Deactivated"})
    def delete(self, request, id):
        bike = self.get_object(id)

        try:
            BikeService.deactivate_bike(bike, request.user)
        except PermissionError as e:
            return Response({"error": str(e)}, status=status.HTTP_403_FORBIDDEN)

        return Response(status=status.HTTP_204_NO_CONTENT)


class BikeAvailabilityAPI(APIView):
    """PATCH /api/bikes/{id}/availability/ - {"is_available": false, "reason": "Maintenance"}"""
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        tags=["Bikes"],
        operation_summary="Toggle Bike Availability",
        request_body=BikeAvailabilitySerializer,
        responses={200: BikeSerializer, 400: "Reason missing", 403: "Not owner"},
    )
    def patch(self, request, id):
        bike = get_object_or_404(Bike.objects.select_related('partner'), uuid_id=id)
        serializer = BikeAvailabilitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            bike = BikeService.set_availability(
                bike,
                request.user,
                is_available=data['is_available'],
                reason=data['reason'],
                unavailable_dates=data.get('unavailable_dates'),
            )
        except PermissionError as e:
            return Response({"error": str(e)}, status=status.HTTP_403_FORBIDDEN)
        except ValueError as e:
            return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(BikeSerializer(bike).data)


class BikeAvailabilityCheckAPI(APIView):
    """GET /api/bikes/{id}/check-availability/?start_date=YYYY-MM-DD&end_date=YYYY-MM-DD"""
    permission_classes = [AllowAny]

    @swagger_auto_schema(
        tags=["Bikes"],
        operation_summary="Check Bike Availability",
        query_serializer=DateRangeSerializer,
        responses={
            200: openapi.Response(
                "Availability",
                openapi.Schema(
                    type=openapi.TYPE_OBJECT,
                    properties={
                        'available': openapi.Schema(type=openapi.TYPE_BOOLEAN),
                        'reason': openapi.Schema(type=openapi.TYPE_STRING),
                    },
                ),
            )
        },
    )
    def get(self, request, id):
        bike = get_object_or_404(Bike.objects.select_related('partner'), uuid_id=id)
        serializer = DateRangeSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)

        available, reason = BikeService.check_availability(
            bike, serializer.validated_data['start_date'], serializer.validated_data['end_date']
        )
        return Response({
            'bike_id': str(bike.uuid_id),
            'start_date': serializer.validated_data['start_date'],
            'end_date': serializer.validated_data['end_date'],
            'available': available,
            'reason': reason,
        })


class BikeQuoteAPI(APIView):
    """POST /api/bikes/{id}/quote/ - {"package": "week", "start_date": ..., "end_date": ...}"""
    permission_classes = [AllowAny]

    @swagger_auto_schema(
        tags=["Bikes"],
        operation_summary="Price Quote",
        request_body=QuoteRequestSerializer,
        responses={200: QuoteResponseSerializer},
    )
    def post(self, request, id):
        bike = get_object_or_404(Bike, uuid_id=id, is_active=True)
        serializer = QuoteRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            quote = BikeService.quote(bike, data['package'], data['start_date'], data['end_date'])
        except ValueError as e:
            return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(QuoteResponseSerializer(quote).data)


# ========== LOCATIONS ==========


class LocationListCreateAPI(generics.ListCreateAPIView):
    """
    GET  /api/bikes/locations/?popular=true&region=...
    POST /api/bikes/locations/ (admin)
    """
    serializer_class = LocationSerializer

    def get_permissions(self):
        if self.request.method == 'POST':
            return [IsAuthenticated(), IsAdmin()]
        return [AllowAny()]

    @swagger_auto_schema(
        tags=["Locations"],
        operation_summary="List Locations",
        manual_parameters=[
            openapi.Parameter('popular', openapi.IN_QUERY, type=openapi.TYPE_BOOLEAN),
            openapi.Parameter('region', openapi.IN_QUERY, type=openapi.TYPE_STRING),
        ],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    @swagger_auto_schema(tags=["Locations"], operation_summary="Create Location")
    def post(self, request, *args, **kwargs):
        return super().post(request, *args, **kwargs)

    def get_queryset(self):
        queryset = Location.objects.all()
        popular = self.request.query_params.get('popular')
        if popular is not None:
            queryset = queryset.filter(popular=popular.lower() == 'true')
        region = self.request.query_params.get('region')
        if region:
            queryset = queryset.filter(region__iexact=region)
        return queryset.order_by('name')

    def perform_create(self, serializer):
        location = serializer.save()
        logger.info(f"Location '{location.name}' created by {self.request.user.email}")


class LocationDetailAPI(generics.RetrieveUpdateDestroyAPIView):
    """GET for everyone, PATCH/DELETE for admins."""
    serializer_class = LocationSerializer
    queryset = Location.objects.all()
    http_method_names = ['get', 'patch', 'delete']

    def get_permissions(self):
        if self.request.method in SAFE_METHODS:
            return [AllowAny()]
        return [IsAuthenticated(), IsAdmin()]

    @swagger_auto_schema(tags=["Locations"], operation_summary="Get Location")
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    @swagger_auto_schema(tags=["Locations"], operation_summary="Update Location")
    def patch(self, request, *args, **kwargs):
        return super().patch(request, *args, **kwargs)

    @swagger_auto_schema(tags=["Locations"], operation_summary="Delete Location")
    def delete(self, request, *args, **kwargs):
        return super().delete(request, *args, **kwargs)
