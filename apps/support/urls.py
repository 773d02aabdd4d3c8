# apps/support/urls.py
from django.urls import path
from .api import (
    TicketListCreateAPI,
    TicketDetailAPI,
    TicketStatusAPI,
    FAQListAPI,
    AdminTicketListAPI,
    AdminTicketRespondAPI,
    AdminFAQListCreateAPI,
    AdminFAQDetailAPI,
)

app_name = 'support'

urlpatterns = [
    path('tickets/', TicketListCreateAPI.as_view(), name='ticket_list'),
    path('tickets/<uuid:id>/', TicketDetailAPI.as_view(), name='ticket_detail'),
    path('tickets/<uuid:id>/status/', TicketStatusAPI.as_view(), name='ticket_status'),
    path('faqs/', FAQListAPI.as_view(), name='faq_list'),

    # Admin
    path('admin/tickets/', AdminTicketListAPI.as_view(), name='admin_ticket_list'),
    path('admin/tickets/<uuid:id>/respond/', AdminTicketRespondAPI.as_view(), name='admin_ticket_respond'),
    path('admin/faqs/', AdminFAQListCreateAPI.as_view(), name='admin_faq_list'),
    path('admin/faqs/<int:pk>/', AdminFAQDetailAPI.as_view(), name='admin_faq_detail'),
]
