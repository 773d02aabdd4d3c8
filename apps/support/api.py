# apps/support/api.py
"""
Support API endpoints.

Endpoints:
1) GET  /api/support/tickets/                    - List own tickets
2) POST /api/support/tickets/                    - Open a ticket
3) GET  /api/support/tickets/{id}/               - Ticket detail (owner/admin)
4) POST /api/support/tickets/{id}/status/        - Close own ticket / admin status change
5) GET  /api/support/faqs/                       - Active FAQs (public, ?category=)

Admin Endpoints:
6) GET  /api/support/admin/tickets/              - All tickets (?status=, ?priority=, ?category=)
7) POST /api/support/admin/tickets/{id}/respond/ - Respond to a ticket
8) GET|POST /api/support/admin/faqs/             - FAQ list/create
9) GET|PATCH|DELETE /api/support/admin/faqs/{pk}/ - FAQ detail/update/delete

Ticket Status Flow:
- open → in_progress → resolved → closed
- open → closed
"""
import logging
from django.core.exceptions import ValidationError
from django.shortcuts import get_object_or_404
from rest_framework import generics, status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi

from apps.accounts.permissions import IsAdmin
from apps.common.utils import validation_error_message
from .models import SupportTicket, FAQ
from .serializers import (
    SupportTicketSerializer,
    SupportTicketCreateSerializer,
    TicketResponseSerializer,
    TicketStatusSerializer,
    FAQSerializer,
)
from .services import SupportService

logger = logging.getLogger(__name__)


def _error_response(exc):
    if isinstance(exc, PermissionError):
        return Response({"error": str(exc)}, status=status.HTTP_403_FORBIDDEN)
    if isinstance(exc, ValidationError):
        return Response({"error": validation_error_message(exc)}, status=status.HTTP_400_BAD_REQUEST)
    return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)


class TicketListCreateAPI(generics.ListAPIView):
    serializer_class = SupportTicketSerializer
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(tags=["Support"], operation_summary="My Tickets")
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        return SupportTicket.objects.filter(user=self.request.user).select_related('booking')

    @swagger_auto_schema(
        tags=["Support"],
        operation_summary="Open Ticket",
        request_body=SupportTicketCreateSerializer,
        responses={201: SupportTicketSerializer},
    )
    def post(self, request):
        serializer = SupportTicketCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            ticket = SupportService.create_ticket(
                request.user,
                subject=data['subject'],
                message=data['message'],
                category=data['category'],
                priority=data['priority'],
                booking=data['booking_id'],
            )
        except (PermissionError, ValueError) as e:
            return _error_response(e)

        return Response(SupportTicketSerializer(ticket).data, status=status.HTTP_201_CREATED)


class TicketDetailAPI(generics.RetrieveAPIView):
    serializer_class = SupportTicketSerializer
    permission_classes = [IsAuthenticated]
    lookup_field = 'uuid_id'
    lookup_url_kwarg = 'id'

    @swagger_auto_schema(tags=["Support"], operation_summary="Ticket Detail")
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        queryset = SupportTicket.objects.select_related('booking', 'user')
        if self.request.user.is_admin_user:
            return queryset
        return queryset.filter(user=self.request.user)


class TicketStatusAPI(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        tags=["Support"],
        operation_summary="Change Ticket Status",
        operation_description="Owners may close their ticket; admins may move it along the lifecycle.",
        request_body=TicketStatusSerializer,
        responses={200: SupportTicketSerializer},
    )
    def post(self, request, id):
        queryset = SupportTicket.objects.all()
        if not request.user.is_admin_user:
            queryset = queryset.filter(user=request.user)
        ticket = get_object_or_404(queryset, uuid_id=id)

        serializer = TicketStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            ticket = SupportService.update_status(ticket, request.user, serializer.validated_data['status'])
        except (PermissionError, ValidationError) as e:
            return _error_response(e)

        return Response(SupportTicketSerializer(ticket).data)


class FAQListAPI(generics.ListAPIView):
    serializer_class = FAQSerializer
    permission_classes = [AllowAny]
    pagination_class = None

    @swagger_auto_schema(
        tags=["Support"],
        operation_summary="FAQs",
        manual_parameters=[
            openapi.Parameter('category', openapi.IN_QUERY, type=openapi.TYPE_STRING),
        ],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        queryset = FAQ.objects.filter(is_active=True)
        category = self.request.query_params.get('category')
        if category:
            queryset = queryset.filter(category=category)
        return queryset


# ========== ADMIN ==========

class AdminTicketListAPI(generics.ListAPIView):
    serializer_class = SupportTicketSerializer
    permission_classes = [IsAuthenticated, IsAdmin]

    @swagger_auto_schema(
        tags=["Admin - Support"],
        operation_summary="All Tickets",
        manual_parameters=[
            openapi.Parameter('status', openapi.IN_QUERY, type=openapi.TYPE_STRING,
                              enum=[choice[0] for choice in SupportTicket.STATUS_CHOICES]),
            openapi.Parameter('priority', openapi.IN_QUERY, type=openapi.TYPE_STRING,
                              enum=[choice[0] for choice in SupportTicket.PRIORITY_CHOICES]),
            openapi.Parameter('category', openapi.IN_QUERY, type=openapi.TYPE_STRING),
        ],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        queryset = SupportTicket.objects.select_related('user', 'booking')
        for param in ('status', 'priority', 'category'):
            value = self.request.query_params.get(param)
            if value:
                queryset = queryset.filter(**{param: value})
        return queryset


class AdminTicketRespondAPI(APIView):
    permission_classes = [IsAuthenticated, IsAdmin]

    @swagger_auto_schema(
        tags=["Admin - Support"],
        operation_summary="Respond To Ticket",
        request_body=TicketResponseSerializer,
        responses={200: SupportTicketSerializer},
    )
    def post(self, request, id):
        ticket = get_object_or_404(SupportTicket, uuid_id=id)

        serializer = TicketResponseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            ticket = SupportService.respond(
                ticket,
                request.user,
                serializer.validated_data['response'],
                new_status=serializer.validated_data['status'],
            )
        except ValidationError as e:
            return _error_response(e)

        return Response(SupportTicketSerializer(ticket).data)


class AdminFAQListCreateAPI(generics.ListCreateAPIView):
    serializer_class = FAQSerializer
    permission_classes = [IsAuthenticated, IsAdmin]
    queryset = FAQ.objects.all()

    @swagger_auto_schema(tags=["Admin - Support"], operation_summary="List FAQs")
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    @swagger_auto_schema(tags=["Admin - Support"], operation_summary="Create FAQ")
    def post(self, request, *args, **kwargs):
        return super().post(request, *args, **kwargs)


class AdminFAQDetailAPI(generics.RetrieveUpdateDestroyAPIView):
    serializer_class = FAQSerializer
    permission_classes = [IsAuthenticated, IsAdmin]
    queryset = FAQ.objects.all()
    http_method_names = ['get', 'patch', 'delete']

    @swagger_auto_schema(tags=["Admin - Support"], operation_summary="FAQ Detail")
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    @swagger_auto_schema(tags=["Admin - Support"], operation_summary="Update FAQ")
    def patch(self, request, *args, **kwargs):
        return super().patch(request, *args, **kwargs)

    @swagger_auto_schema(tags=["Admin - Support"], operation_summary="Delete FAQ")
    def delete(self, request, *args, **kwargs):
        return super().delete(request, *args, **kwargs)
