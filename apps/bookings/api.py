# apps/bookings/api.py
"""
Booking API endpoints.

Endpoints:
1) POST /api/bookings/                          - Create booking request (customer)
2) GET  /api/bookings/                          - List own bookings (customer)
3) GET  /api/bookings/partner/                  - List partner bookings (?role=owner|dropoff|all)
4) GET  /api/bookings/partner/dashboard/        - Partner dashboard sections
5) GET  /api/bookings/{id}/                     - Booking detail (participant/admin)
6) POST /api/bookings/{id}/confirm/             - Accept request (owner partner)
7) POST /api/bookings/{id}/reject/              - Reject request (owner partner)
8) POST /api/bookings/{id}/activate/            - Bike picked up (owner partner)
9) POST /api/bookings/{id}/complete/            - Bike returned (owner or drop-off partner)
10) POST /api/bookings/{id}/cancel/             - Cancel (customer, owner partner, admin)
11) GET|POST /api/bookings/{id}/review/         - Review of a completed booking
12) GET  /api/bookings/reviews/                 - Published reviews (?bike=, ?partner=)

Admin Endpoints:
13) GET  /api/bookings/admin/                   - List all bookings
14) GET  /api/bookings/admin/{id}/              - Booking with audit logs
15) POST /api/bookings/admin/{id}/status/       - Force status along the state machine
16) GET  /api/bookings/admin/reviews/           - All reviews
17) PATCH /api/bookings/admin/reviews/{pk}/     - Moderate a review

Booking Status Flow:
- requested → confirmed (owner accepts) | cancelled (owner rejects, customer/admin cancels)
- confirmed → active (pickup, initial payment required) | cancelled
- active → completed (drop-off, initial payment required)
- Terminal states: completed, cancelled
"""
import logging
from django.core.exceptions import ValidationError
from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import generics, status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi

from apps.accounts.permissions import IsAdmin
from apps.common.utils import validation_error_message
from apps.partners.permissions import HasPartnerProfile
from .models import Booking, Review
from .permissions import IsBookingParticipant
from .serializers import (
    BookingCreateSerializer,
    BookingSerializer,
    BookingListSerializer,
    BookingActionSerializer,
    AdminBookingSerializer,
    AdminBookingStatusSerializer,
    ReviewSerializer,
    ReviewCreateSerializer,
    ReviewModerationSerializer,
)
from .services import BookingService, ReviewService

logger = logging.getLogger(__name__)

BOOKING_RELATED = ('bike', 'partner', 'dropoff_partner', 'customer')

STATUS_PARAM = openapi.Parameter(
    'status',
    openapi.IN_QUERY,
    type=openapi.TYPE_STRING,
    enum=[choice[0] for choice in Booking.STATUS_CHOICES],
    description='Filter by status',
)


def _error_response(exc):
    if isinstance(exc, PermissionError):
        return Response({"error": str(exc)}, status=status.HTTP_403_FORBIDDEN)
    if isinstance(exc, ValidationError):
        return Response({"error": validation_error_message(exc)}, status=status.HTTP_400_BAD_REQUEST)
    return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)


# ========== BOOKING APIS ==========


class BookingListCreateAPI(generics.ListAPIView):
    """
    POST /api/bookings/ - Create a booking request
    GET  /api/bookings/ - Bookings made by the current user

    Request Body (POST):
    - bike_id, package, start_date, end_date
    - pickup_location, dropoff_location, dropoff_partner_id (optional)
    """
    serializer_class = BookingListSerializer
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        tags=["Bookings"],
        operation_summary="List My Bookings",
        manual_parameters=[STATUS_PARAM],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        return BookingService.get_customer_bookings(
            self.request.user, status_filter=self.request.query_params.get('status')
        )

    @swagger_auto_schema(
        tags=["Bookings"],
        operation_summary="Create Booking",
        operation_description="Request a bike for a date range. The owner partner must accept it.",
        request_body=BookingCreateSerializer,
        responses={
            201: BookingSerializer,
            400: "Validation error, bike unavailable or overlapping booking",
            403: "Cannot book own bike",
        },
    )
    def post(self, request):
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            booking = BookingService.create_booking(
                customer=request.user,
                bike=data['bike_id'],
                package=data['package'],
                start_date=data['start_date'],
                end_date=data['end_date'],
                pickup_location=data['pickup_location'],
                dropoff_location=data['dropoff_location'],
                dropoff_partner=data['dropoff_partner_id'],
                extras=data['extras'],
                discount=data['discount'],
                notes=data['notes'],
                request=request,
            )
        except (PermissionError, ValueError, ValidationError) as e:
            return _error_response(e)

        return Response(BookingSerializer(booking).data, status=status.HTTP_201_CREATED)


class PartnerBookingListAPI(generics.ListAPIView):
    """
    GET /api/bookings/partner/

    Query Parameters:
    - role: owner | dropoff | all (default: all)
    - status: Filter by status
    """
    serializer_class = BookingListSerializer
    permission_classes = [IsAuthenticated, HasPartnerProfile]

    @swagger_auto_schema(
        tags=["Bookings"],
        operation_summary="List Partner Bookings",
        manual_parameters=[
            openapi.Parameter('role', openapi.IN_QUERY, type=openapi.TYPE_STRING,
                              enum=['owner', 'dropoff', 'all']),
            STATUS_PARAM,
        ],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        params = self.request.query_params
        return BookingService.get_partner_bookings(
            self.request.user.partner_profile,
            role=params.get('role', 'all'),
            status_filter=params.get('status'),
        )


class PartnerDashboardAPI(APIView):
    """GET /api/bookings/partner/dashboard/"""
    permission_classes = [IsAuthenticated, HasPartnerProfile]

    @swagger_auto_schema(tags=["Dashboard"], operation_summary="Partner Booking Dashboard")
    def get(self, request):
        sections = BookingService.partner_dashboard(request.user.partner_profile)
        return Response({
            'requests': BookingListSerializer(sections['requests'], many=True).data,
            'current_rentals': BookingListSerializer(sections['current_rentals'], many=True).data,
            'upcoming_dropoffs': BookingListSerializer(sections['upcoming_dropoffs'], many=True).data,
            'completed': BookingListSerializer(sections['completed'], many=True).data,
            'monthly_earnings': [
                {**row, 'amount': str(row['amount'])} for row in sections['monthly_earnings']
            ],
        })


class BookingDetailAPI(generics.RetrieveAPIView):
    """GET /api/bookings/{id}/ - participants and admins only."""
    serializer_class = BookingSerializer
    permission_classes = [IsAuthenticated, IsBookingParticipant]
    lookup_field = 'uuid_id'
    lookup_url_kwarg = 'id'

    def get_queryset(self):
        return Booking.objects.select_related(*BOOKING_RELATED)

    @swagger_auto_schema(tags=["Bookings"], operation_summary="Get Booking")
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class BookingActionAPI(APIView):
    """
    Base for lifecycle actions. Subclasses implement perform().
    Actor checks live in BookingService and surface as 403.
    """
    permission_classes = [IsAuthenticated]
    action_name = ''

    def perform(self, booking, request, reason):
        raise NotImplementedError

    def post(self, request, id):
        booking = get_object_or_404(Booking.objects.select_related(*BOOKING_RELATED), uuid_id=id)

        serializer = BookingActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            booking = self.perform(booking, request, serializer.validated_data['reason'])
        except (PermissionError, ValueError, ValidationError) as e:
            logger.warning(f"Booking {self.action_name} refused for {id} by {request.user.email}: {e}")
            return _error_response(e)

        return Response(BookingSerializer(booking).data)


def _action_schema(summary, description):
    return swagger_auto_schema(
        tags=["Bookings"],
        operation_summary=summary,
        operation_description=description,
        request_body=BookingActionSerializer,
        responses={
            200: BookingSerializer,
            400: "Invalid status transition",
            403: "Permission denied",
            404: "Booking not found",
        },
    )


class BookingConfirmAPI(BookingActionAPI):
    action_name = 'confirm'

    @_action_schema("Accept Booking", "Owner partner accepts a requested booking.")
    def post(self, request, id):
        return super().post(request, id)

    def perform(self, booking, request, reason):
        return BookingService.confirm_booking(booking, request.user, request=request)


class BookingRejectAPI(BookingActionAPI):
    action_name = 'reject'

    @_action_schema("Reject Booking", "Owner partner declines a requested booking.")
    def post(self, request, id):
        return super().post(request, id)

    def perform(self, booking, request, reason):
        return BookingService.reject_booking(booking, request.user, reason=reason, request=request)


class BookingActivateAPI(BookingActionAPI):
    action_name = 'activate'

    @_action_schema("Start Rental", "Bike handed over. Requires the initial payment.")
    def post(self, request, id):
        return super().post(request, id)

    def perform(self, booking, request, reason):
        return BookingService.activate_booking(booking, request.user, request=request)


class BookingCompleteAPI(BookingActionAPI):
    action_name = 'complete'

    @_action_schema("Complete Rental", "Bike returned to the owner or drop-off partner.")
    def post(self, request, id):
        return super().post(request, id)

    def perform(self, booking, request, reason):
        return BookingService.complete_booking(booking, request.user, request=request)


class BookingCancelAPI(BookingActionAPI):
    action_name = 'cancel'

    @_action_schema("Cancel Booking", "Cancel a requested or confirmed booking. Completed payments are refunded.")
    def post(self, request, id):
        return super().post(request, id)

    def perform(self, booking, request, reason):
        return BookingService.cancel_booking(booking, request.user, reason=reason, request=request)


# ========== REVIEWS ==========


class BookingReviewAPI(APIView):
    """
    GET  /api/bookings/{id}/review/
    POST /api/bookings/{id}/review/ - {"rating": 1-5, "comment": "..."}
    """
    permission_classes = [IsAuthenticated]

    def _get_booking(self, request, id):
        booking = get_object_or_404(Booking.objects.select_related(*BOOKING_RELATED), uuid_id=id)
        permission = IsBookingParticipant()
        if not permission.has_object_permission(request, self, booking):
            return None, Response({"error": permission.message}, status=status.HTTP_403_FORBIDDEN)
        return booking, None

    @swagger_auto_schema(tags=["Reviews"], operation_summary="Get Booking Review", responses={200: ReviewSerializer})
    def get(self, request, id):
        booking, error = self._get_booking(request, id)
        if error:
            return error
        review = get_object_or_404(Review, booking=booking)
        return Response(ReviewSerializer(review).data)

    @swagger_auto_schema(
        tags=["Reviews"],
        operation_summary="Review Booking",
        request_body=ReviewCreateSerializer,
        responses={201: ReviewSerializer, 400: "Not completed or already reviewed", 403: "Not the customer"},
    )
    def post(self, request, id):
        booking, error = self._get_booking(request, id)
        if error:
            return error

        serializer = ReviewCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            review = ReviewService.create_review(booking, request.user, **serializer.validated_data)
        except (PermissionError, ValueError) as e:
            return _error_response(e)

        return Response(ReviewSerializer(review).data, status=status.HTTP_201_CREATED)


class ReviewListAPI(generics.ListAPIView):
    """GET /api/bookings/reviews/?bike={uuid}&partner={uuid} - published reviews."""
    serializer_class = ReviewSerializer
    permission_classes = [AllowAny]

    @swagger_auto_schema(
        tags=["Reviews"],
        operation_summary="List Reviews",
        manual_parameters=[
            openapi.Parameter('bike', openapi.IN_QUERY, type=openapi.TYPE_STRING, format=openapi.FORMAT_UUID),
            openapi.Parameter('partner', openapi.IN_QUERY, type=openapi.TYPE_STRING, format=openapi.FORMAT_UUID),
        ],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        queryset = Review.objects.filter(status=Review.STATUS_PUBLISHED).select_related(
            'booking', 'customer', 'bike', 'partner'
        )
        bike = self.request.query_params.get('bike')
        if bike:
            queryset = queryset.filter(bike__uuid_id=bike)
        partner = self.request.query_params.get('partner')
        if partner:
            queryset = queryset.filter(partner__uuid_id=partner)
        return queryset.order_by('-created_at')


# ========== ADMIN APIS ==========


class AdminBookingListAPI(generics.ListAPIView):
    """
    GET /api/bookings/admin/

    Query Parameters:
    - status, payment_status
    - partner: Partner UUID (owner or drop-off)
    - q: Booking number or customer email
    """
    serializer_class = BookingListSerializer
    permission_classes = [IsAuthenticated, IsAdmin]

    @swagger_auto_schema(
        tags=["Admin"],
        operation_summary="[Admin] List All Bookings",
        manual_parameters=[STATUS_PARAM],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        queryset = Booking.objects.select_related(*BOOKING_RELATED)
        params = self.request.query_params

        status_filter = params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)

        payment_status = params.get('payment_status')
        if payment_status:
            queryset = queryset.filter(payment_status=payment_status)

        partner = params.get('partner')
        if partner:
            queryset = queryset.filter(Q(partner__uuid_id=partner) | Q(dropoff_partner__uuid_id=partner))

        q = params.get('q')
        if q:
            queryset = queryset.filter(Q(booking_number__icontains=q) | Q(customer__email__icontains=q))

        return queryset.order_by('-created_at')


class AdminBookingDetailAPI(generics.RetrieveAPIView):
    """GET /api/bookings/admin/{id}/ - booking with audit logs."""
    serializer_class = AdminBookingSerializer
    permission_classes = [IsAuthenticated, IsAdmin]
    lookup_field = 'uuid_id'
    lookup_url_kwarg = 'id'

    def get_queryset(self):
        return Booking.objects.select_related(*BOOKING_RELATED).prefetch_related('audit_logs__user')

    @swagger_auto_schema(tags=["Admin"], operation_summary="[Admin] Get Booking Details")
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class AdminBookingStatusAPI(APIView):
    """POST /api/bookings/admin/{id}/status/ - {"status": "...", "reason": "..."}"""
    permission_classes = [IsAuthenticated, IsAdmin]

    @swagger_auto_schema(
        tags=["Admin"],
        operation_summary="[Admin] Force Booking Status",
        request_body=AdminBookingStatusSerializer,
        responses={200: AdminBookingSerializer, 400: "Invalid status transition"},
    )
    def post(self, request, id):
        booking = get_object_or_404(Booking.objects.select_related(*BOOKING_RELATED), uuid_id=id)
        serializer = AdminBookingStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            booking = BookingService.admin_set_status(
                booking,
                request.user,
                serializer.validated_data['status'],
                reason=serializer.validated_data['reason'],
                request=request,
            )
        except ValidationError as e:
            return _error_response(e)

        return Response(AdminBookingSerializer(booking).data)


class AdminReviewListAPI(generics.ListAPIView):
    """GET /api/bookings/admin/reviews/?status=pending"""
    serializer_class = ReviewSerializer
    permission_classes = [IsAuthenticated, IsAdmin]

    @swagger_auto_schema(tags=["Admin"], operation_summary="[Admin] List Reviews")
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        queryset = Review.objects.select_related('booking', 'customer', 'bike', 'partner')
        status_filter = self.request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        return queryset.order_by('-created_at')


class AdminReviewModerateAPI(APIView):
    """PATCH /api/bookings/admin/reviews/{pk}/ - {"status": "published|pending|rejected"}"""
    permission_classes = [IsAuthenticated, IsAdmin]

    @swagger_auto_schema(
        tags=["Admin"],
        operation_summary="[Admin] Moderate Review",
        request_body=ReviewModerationSerializer,
        responses={200: ReviewSerializer},
    )
    def patch(self, request, pk):
        review = get_object_or_404(Review.objects.select_related('bike', 'partner', 'booking'), pk=pk)
        serializer = ReviewModerationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            review = ReviewService.moderate_review(
                review, request.user, serializer.validated_data['status'], serializer.validated_data['notes']
            )
        except ValueError as e:
            return _error_response(e)

        return Response(ReviewSerializer(review).data)
