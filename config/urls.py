# config/urls.py
from django.contrib import admin
from django.urls import path, include, re_path
from django.conf import settings
from django.conf.urls.static import static
from django.http import JsonResponse

from rest_framework import permissions
from drf_yasg.views import get_schema_view
from drf_yasg import openapi

from apps.accounts.api import CustomConfirmEmailView
from apps.accounts.urls import admin_urlpatterns as account_admin_urlpatterns


def api_root(request):
    return JsonResponse({"status": "ok"})


schema_view = get_schema_view(
    openapi.Info(
        title="Bike Rental Marketplace API",
        default_version="v1",
        description=(
            "Bike Rental Marketplace Backend API\n\n"
            "## Authentication\n"
            "Most endpoints require JWT Bearer token authentication.\n\n"
            "1. Call `POST /api/auth/login/` with email and password\n"
            "2. Copy the `access` token from the response\n"
            "3. Click the **Authorize** button above\n"
            "4. Enter: `Bearer <your_access_token>`\n\n"
            "---\n\n"
            "## Pagination\n"
            "All list endpoints accept `limit` (default 10, max 100) and `offset`.\n\n"
            "```\n"
            "GET /api/bikes/?limit=20&offset=40 → Items 41-60\n"
            "```\n\n"
            "---\n\n"
            "## Realtime\n"
            "Connect to `ws://<host>/ws/notifications/?token=<access_token>` for live\n"
            "notifications and booking events."
        ),
    ),
    public=True,
    permission_classes=(permissions.AllowAny,),
    authentication_classes=[],
)

urlpatterns = [
    path("", api_root),
    path("admin/", admin.site.urls),
    # -----------------------------
    # AUTH API
    # -----------------------------
    path("api/auth/", include("apps.accounts.urls")),
    path("api/admin/", include((account_admin_urlpatterns, "accounts_admin"))),
    # -----------------------------
    # EMAIL VERIFICATION
    # -----------------------------
    re_path(
        r"^accounts/confirm-email/(?P<key>[-:\w]+)/$",
        CustomConfirmEmailView.as_view(),
        name="account_confirm_email",
    ),
    path("accounts/", include("allauth.urls")),
    # -----------------------------
    # MARKETPLACE APIs
    # -----------------------------
    path("api/partners/", include("apps.partners.urls")),
    path("api/bikes/", include("apps.bikes.urls")),
    path("api/bookings/", include("apps.bookings.urls")),
    path("api/payments/", include("apps.payments.urls")),
    # -----------------------------
    # NOTIFICATIONS & REALTIME EVENTS
    # -----------------------------
    path("api/notifications/", include("apps.notifications.urls")),
    path("api/events/", include("apps.notifications.event_urls")),
    # -----------------------------
    # SUPPORT, CHAT & DASHBOARDS
    # -----------------------------
    path("api/support/", include("apps.support.urls")),
    path("api/dashboard/", include("apps.dashboard.urls")),
    path("api/chat/", include("apps.chat.urls")),
    # -----------------------------
    # COMMON (health, enums)
    # -----------------------------
    path("api/", include("apps.common.urls")),
    # -----------------------------
    # DOCS
    # -----------------------------
    path("swagger/", schema_view.with_ui("swagger", cache_timeout=0)),
]

if settings.DEBUG:
    urlpatterns += static(settings.STATIC_URL, document_root=settings.STATIC_ROOT)
