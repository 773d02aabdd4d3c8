# apps/payments/urls.py
"""
URL configuration for payments API.

Endpoints:
- /api/payments/                             - GET my payments, POST pay installment
- /api/payments/{id}/                        - GET payment detail
- /api/payments/partner/                     - GET partner payments
- /api/payments/bookings/{id}/charges/       - POST drop-off charges
- /api/payments/ledger/                      - GET partner ledger
- /api/payments/earnings/                    - GET partner earnings summary
- /api/payments/methods/                     - GET|POST saved payment methods
- /api/payments/methods/{id}/                - DELETE saved method
- /api/payments/methods/{id}/default/        - POST make default
- /api/payments/admin/...                    - Admin payments, refunds, stats, ledger
"""

from django.urls import path
from .api import (
    PaymentListCreateAPI,
    PaymentDetailAPI,
    PartnerPaymentListAPI,
    AdditionalChargesAPI,
    PartnerLedgerAPI,
    PartnerEarningsAPI,
    PaymentMethodListCreateAPI,
    PaymentMethodDetailAPI,
    PaymentMethodDefaultAPI,
    AdminPaymentListAPI,
    AdminRefundPaymentAPI,
    AdminPaymentStatsAPI,
    AdminLedgerAPI,
)

app_name = 'payments'

urlpatterns = [
    path('', PaymentListCreateAPI.as_view(), name='payment_list'),
    path('partner/', PartnerPaymentListAPI.as_view(), name='partner_payments'),
    path('ledger/', PartnerLedgerAPI.as_view(), name='ledger'),
    path('earnings/', PartnerEarningsAPI.as_view(), name='earnings'),
    path('methods/', PaymentMethodListCreateAPI.as_view(), name='method_list'),
    path('methods/<uuid:id>/', PaymentMethodDetailAPI.as_view(), name='method_detail'),
    path('methods/<uuid:id>/default/', PaymentMethodDefaultAPI.as_view(), name='method_default'),
    path('bookings/<uuid:id>/charges/', AdditionalChargesAPI.as_view(), name='booking_charges'),

    # Admin
    path('admin/', AdminPaymentListAPI.as_view(), name='admin_payment_list'),
    path('admin/stats/', AdminPaymentStatsAPI.as_view(), name='admin_stats'),
    path('admin/ledger/', AdminLedgerAPI.as_view(), name='admin_ledger'),
    path('admin/<uuid:id>/refund/', AdminRefundPaymentAPI.as_view(), name='admin_refund'),

    path('<uuid:id>/', PaymentDetailAPI.as_view(), name='payment_detail'),
]
