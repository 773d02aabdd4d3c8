# apps/common/api.py
"""
API endpoints for common functionality.
"""

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi

from .enums import get_all_enums


@api_view(["GET"])
@permission_classes([AllowAny])
def health_check(request):
    """Simple health check endpoint."""
    return Response(
        {"status": "healthy", "message": "Bike rental backend is running"}
    )


@swagger_auto_schema(
    method='get',
    tags=["Enums"],
    operation_description="""
    Get all application constants/enums.

    Bike types, rental packages, booking and payment statuses, payment methods,
    notification categories and types, realtime event types, support categories
    and user roles.

    **No authentication required.**
    """,
    responses={
        200: openapi.Response(
            description="All enums and constants",
            examples={
                "application/json": {
                    "bike_types": [{"value": "city", "label": "City Bike"}],
                    "rental_packages": [{"value": "day", "label": "Daily", "days": 1}],
                    "booking_statuses": [{"value": "requested", "label": "Requested"}],
                }
            }
        )
    }
)
@api_view(['GET'])
@permission_classes([AllowAny])
def enums_api(request):
    """
    Get all application constants/enums.
    No authentication required.
    """
    return Response(get_all_enums())
