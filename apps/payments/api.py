# apps/payments/api.py
"""
API views for payments and the partner ledger.

Endpoints:
- POST /api/payments/                            - Pay a booking installment (customer)
- GET  /api/payments/                            - My payments (customer)
- GET  /api/payments/{id}/                       - Payment detail
- GET  /api/payments/partner/                    - Payments for the partner's bookings
- POST /api/payments/bookings/{id}/charges/      - Add drop-off charges (partner)
- GET  /api/payments/ledger/                     - Partner ledger history
- GET  /api/payments/earnings/                   - Partner earnings summary
- GET  /api/payments/methods/                    - My saved payment methods
- POST /api/payments/methods/                    - Save a card or wallet
- DELETE /api/payments/methods/{id}/             - Remove a saved method
- POST /api/payments/methods/{id}/default/       - Make a saved method the default

Admin Endpoints:
- GET  /api/payments/admin/                      - All payments
- POST /api/payments/admin/{id}/refund/          - Refund a completed payment
- GET  /api/payments/admin/stats/                - Payment statistics and platform revenue
- GET|POST /api/payments/admin/ledger/           - Ledger list / manual entry
"""

import logging
from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework.generics import ListAPIView
from django.shortcuts import get_object_or_404
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi

from apps.accounts.permissions import IsAdmin
from apps.bookings.models import Booking
from apps.bookings.serializers import BookingSerializer
from apps.partners.permissions import HasPartnerProfile
from .models import Payment, PartnerTransaction, PaymentMethod, TransactionType
from .serializers import (
    PaymentSerializer,
    PaymentCreateSerializer,
    AdditionalChargesSerializer,
    RefundSerializer,
    PartnerTransactionSerializer,
    ManualTransactionSerializer,
    EarningsSummarySerializer,
    PaymentMethodSerializer,
    PaymentMethodCreateSerializer,
)
from .services import PaymentService, LedgerService, PaymentMethodService

logger = logging.getLogger(__name__)

DATE_RANGE_PARAMS = [
    openapi.Parameter('start_date', openapi.IN_QUERY, type=openapi.TYPE_STRING, format=openapi.FORMAT_DATE),
    openapi.Parameter('end_date', openapi.IN_QUERY, type=openapi.TYPE_STRING, format=openapi.FORMAT_DATE),
]

LEDGER_FILTER_PARAMS = [
    openapi.Parameter(
        'type', openapi.IN_QUERY, type=openapi.TYPE_STRING,
        enum=[choice[0] for choice in TransactionType.CHOICES],
        description='Filter by transaction type'
    ),
    openapi.Parameter(
        'category', openapi.IN_QUERY, type=openapi.TYPE_STRING,
        enum=[PartnerTransaction.CATEGORY_EARNING, PartnerTransaction.CATEGORY_DEDUCTION],
    ),
]


def _filter_ledger(queryset, params):
    txn_type = params.get('type')
    if txn_type:
        queryset = queryset.filter(transaction_type=txn_type)
    category = params.get('category')
    if category:
        queryset = queryset.filter(category=category)
    start = params.get('start_date')
    if start:
        queryset = queryset.filter(created_at__date__gte=start)
    end = params.get('end_date')
    if end:
        queryset = queryset.filter(created_at__date__lte=end)
    return queryset


class PaymentListCreateAPI(ListAPIView):
    """
    GET  - Payments made by the authenticated customer
    POST - Pay an installment of a booking
    """
    permission_classes = [IsAuthenticated]
    serializer_class = PaymentSerializer

    @swagger_auto_schema(operation_summary="List My Payments", tags=['Payments'])
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        return PaymentService.get_customer_payments(self.request.user)

    @swagger_auto_schema(
        operation_summary="Pay Booking Installment",
        operation_description=(
            "Pay the initial installment after the partner accepts, the remaining "
            "installment (including drop-off charges) later, or the full amount at once."
        ),
        tags=['Payments'],
        request_body=PaymentCreateSerializer,
        responses={
            201: PaymentSerializer,
            400: openapi.Response(description="Installment cannot be paid now"),
            403: openapi.Response(description="Not the booking's customer"),
        }
    )
    def post(self, request):
        serializer = PaymentCreateSerializer(data=request.data, context={"request": request})
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            payment = PaymentService.process_payment(
                booking=data['booking_id'],
                user=request.user,
                installment=data['installment'],
                method=data['method'],
                transaction_id=data['transaction_id'],
                request=request,
            )
        except PermissionError as e:
            return Response({"error": str(e)}, status=status.HTTP_403_FORBIDDEN)
        except ValueError as e:
            return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(PaymentSerializer(payment).data, status=status.HTTP_201_CREATED)


class PaymentDetailAPI(APIView):
    """Payment detail for the customer, the booking's partners or an admin."""
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(operation_summary="Get Payment", tags=['Payments'], responses={200: PaymentSerializer})
    def get(self, request, id):
        payment = get_object_or_404(
            Payment.objects.select_related('booking', 'customer'), uuid_id=id
        )
        if not PaymentService.can_view(payment, request.user):
            return Response(
                {"error": "You do not have access to this payment."},
                status=status.HTTP_403_FORBIDDEN
            )
        return Response(PaymentSerializer(payment).data)


class PartnerPaymentListAPI(ListAPIView):
    permission_classes = [IsAuthenticated, HasPartnerProfile]
    serializer_class = PaymentSerializer

    @swagger_auto_schema(operation_summary="List Partner Payments", tags=['Payments'])
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        queryset = PaymentService.get_partner_payments(self.request.user.partner_profile)
        status_filter = self.request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        return queryset


class AdditionalChargesAPI(APIView):
    """Add drop-off charges to a booking; collected with the remaining installment."""
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_summary="Add Drop-off Charges",
        tags=['Payments'],
        request_body=AdditionalChargesSerializer,
        responses={200: BookingSerializer, 400: "Booking not at drop-off", 403: "Not a partner of this booking"},
    )
    def post(self, request, id):
        booking = get_object_or_404(
            Booking.objects.select_related('bike', 'partner', 'dropoff_partner', 'customer'), uuid_id=id
        )
        serializer = AdditionalChargesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            booking = PaymentService.add_additional_charges(
                booking, request.user, serializer.validated_data['charges'], request=request
            )
        except PermissionError as e:
            return Response({"error": str(e)}, status=status.HTTP_403_FORBIDDEN)
        except ValueError as e:
            return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(BookingSerializer(booking).data)


class PartnerLedgerAPI(ListAPIView):
    """Ledger history for the authenticated partner."""
    permission_classes = [IsAuthenticated, HasPartnerProfile]
    serializer_class = PartnerTransactionSerializer

    @swagger_auto_schema(
        operation_summary="Get Ledger History",
        tags=['Payments'],
        manual_parameters=LEDGER_FILTER_PARAMS + DATE_RANGE_PARAMS,
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        queryset = PartnerTransaction.objects.filter(
            partner=self.request.user.partner_profile
        ).select_related('partner', 'booking', 'payment').order_by('-created_at')
        return _filter_ledger(queryset, self.request.query_params)


class PartnerEarningsAPI(APIView):
    permission_classes = [IsAuthenticated, HasPartnerProfile]

    @swagger_auto_schema(
        operation_summary="Get Earnings Summary",
        tags=['Payments'],
        responses={200: EarningsSummarySerializer},
    )
    def get(self, request):
        partner = request.user.partner_profile
        return Response(EarningsSummarySerializer(partner.get_earnings_summary()).data)


class PaymentMethodListCreateAPI(ListAPIView):
    """
    GET  - Saved payment methods of the authenticated user, default first
    POST - Save a card or wallet (the first one saved becomes default)
    """
    permission_classes = [IsAuthenticated]
    serializer_class = PaymentMethodSerializer
    pagination_class = None

    @swagger_auto_schema(operation_summary="List Saved Payment Methods", tags=['Payments'])
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        return PaymentMethodService.get_methods(self.request.user)

    @swagger_auto_schema(
        operation_summary="Save Payment Method",
        tags=['Payments'],
        request_body=PaymentMethodCreateSerializer,
        responses={201: PaymentMethodSerializer},
    )
    def post(self, request):
        serializer = PaymentMethodCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            method = PaymentMethodService.add_method(
                request.user,
                brand=data['brand'],
                last4=data['last4'],
                expiry_month=data['expiry_month'],
                expiry_year=data['expiry_year'],
                provider_token=data['provider_token'],
                make_default=data['is_default'],
            )
        except ValueError as e:
            return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(PaymentMethodSerializer(method).data, status=status.HTTP_201_CREATED)


class PaymentMethodDetailAPI(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(operation_summary="Remove Saved Payment Method", tags=['Payments'])
    def delete(self, request, id):
        method = get_object_or_404(PaymentMethod, uuid_id=id, user=request.user)
        PaymentMethodService.remove_method(method)
        return Response(status=status.HTTP_204_NO_CONTENT)


class PaymentMethodDefaultAPI(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_summary="Set Default Payment Method",
        tags=['Payments'],
        responses={200: PaymentMethodSerializer},
    )
    def post(self, request, id):
        method = get_object_or_404(PaymentMethod, uuid_id=id, user=request.user)
        method = PaymentMethodService.set_default(method)
        return Response(PaymentMethodSerializer(method).data)


# ========== ADMIN APIS ==========


class AdminPaymentListAPI(ListAPIView):
    """
    Query Parameters:
    - status, method, installment
    - booking: Booking number
    - customer: Customer email
    - start_date, end_date
    """
    permission_classes = [IsAuthenticated, IsAdmin]
    serializer_class = PaymentSerializer

    @swagger_auto_schema(
        operation_summary="[Admin] List Payments",
        tags=['Admin'],
        manual_parameters=DATE_RANGE_PARAMS,
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        queryset = Payment.objects.select_related('booking', 'customer')
        params = self.request.query_params

        for param, field in (('status', 'status'), ('method', 'method'), ('installment', 'installment')):
            value = params.get(param)
            if value:
                queryset = queryset.filter(**{field: value})

        booking = params.get('booking')
        if booking:
            queryset = queryset.filter(booking__booking_number__iexact=booking)
        customer = params.get('customer')
        if customer:
            queryset = queryset.filter(customer__email__icontains=customer)
        start = params.get('start_date')
        if start:
            queryset = queryset.filter(created_at__date__gte=start)
        end = params.get('end_date')
        if end:
            queryset = queryset.filter(created_at__date__lte=end)

        return queryset.order_by('-created_at')


class AdminRefundPaymentAPI(APIView):
    permission_classes = [IsAuthenticated, IsAdmin]

    @swagger_auto_schema(
        operation_summary="[Admin] Refund Payment",
        operation_description="Refund a completed payment (fully or partially) and reverse its revenue shares.",
        tags=['Admin'],
        request_body=RefundSerializer,
        responses={200: PaymentSerializer, 400: "Payment not refundable"},
    )
    def post(self, request, id):
        payment = get_object_or_404(Payment, uuid_id=id)
        serializer = RefundSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            payment = PaymentService.refund_payment(
                payment,
                reason=serializer.validated_data['reason'],
                amount=serializer.validated_data['amount'],
                refunded_by=request.user,
            )
        except ValueError as e:
            return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        logger.info(f"Admin {request.user.email} refunded payment {payment.transaction_id}")
        return Response(PaymentSerializer(payment).data)


class AdminPaymentStatsAPI(APIView):
    permission_classes = [IsAuthenticated, IsAdmin]

    @swagger_auto_schema(
        operation_summary="[Admin] Payment Statistics",
        tags=['Admin'],
        manual_parameters=DATE_RANGE_PARAMS,
    )
    def get(self, request):
        start = request.query_params.get('start_date')
        end = request.query_params.get('end_date')
        stats = PaymentService.get_stats(start=start, end=end)
        stats['platform_revenue'] = LedgerService.platform_revenue(start=start, end=end)
        return Response(stats)


class AdminLedgerAPI(ListAPIView):
    """
    GET  - Full ledger (?partner={uuid}, ?type=, ?category=)
    POST - Manual ledger entry (bonus, penalty, withdrawal, ...)
    """
    permission_classes = [IsAuthenticated, IsAdmin]
    serializer_class = PartnerTransactionSerializer

    @swagger_auto_schema(
        operation_summary="[Admin] List Ledger",
        tags=['Admin'],
        manual_parameters=LEDGER_FILTER_PARAMS + DATE_RANGE_PARAMS,
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        queryset = PartnerTransaction.objects.select_related('partner', 'booking', 'payment')
        partner = self.request.query_params.get('partner')
        if partner == 'platform':
            queryset = queryset.filter(partner__isnull=True)
        elif partner:
            queryset = queryset.filter(partner__uuid_id=partner)
        return _filter_ledger(queryset, self.request.query_params).order_by('-created_at')

    @swagger_auto_schema(
        operation_summary="[Admin] Create Manual Ledger Entry",
        tags=['Admin'],
        request_body=ManualTransactionSerializer,
        responses={201: PartnerTransactionSerializer, 400: "Invalid entry"},
    )
    def post(self, request):
        serializer = ManualTransactionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            entry = LedgerService.create_manual_entry(
                admin_user=request.user,
                transaction_type=data['transaction_type'],
                amount=data['amount'],
                description=data['description'],
                partner=data['partner_id'],
            )
        except ValueError as e:
            return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(PartnerTransactionSerializer(entry).data, status=status.HTTP_201_CREATED)
