# apps/common/utils.py
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework import status as http_status
import logging

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal('0.01')


def to_money(value):
    """Round a number to 2 decimal places (half up) as a Decimal."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def percent_of(amount, percent):
    """Return `percent` % of `amount`, rounded to money precision."""
    return to_money(Decimal(str(amount)) * Decimal(str(percent)) / Decimal('100'))


def get_client_ip(request):
    """Extract client IP from request, honouring X-Forwarded-For."""
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        return x_forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


def validation_error_message(exc):
    """Flatten a django ValidationError into a single readable message."""
    if hasattr(exc, 'messages'):
        return ' '.join(str(m) for m in exc.messages)
    return str(exc)


def custom_exception_handler(exc, context):
    """
    Custom exception handler for Django REST Framework.

    Ensures every exception returns a JSON envelope:
        {"error": true, "status_code": ..., "message": ..., "details": ...}
    """
    # Model level validation errors escaping a view are client errors
    if isinstance(exc, DjangoValidationError):
        return Response(
            {
                'error': True,
                'status_code': 400,
                'message': validation_error_message(exc),
            },
            status=http_status.HTTP_400_BAD_REQUEST,
        )

    response = exception_handler(exc, context)

    if response is not None:
        custom_response_data = {
            'error': True,
            'status_code': response.status_code,
        }

        if isinstance(response.data, dict):
            if 'detail' in response.data:
                custom_response_data['message'] = str(response.data['detail'])
                if len(response.data) > 1:
                    custom_response_data['details'] = {
                        k: v for k, v in response.data.items() if k != 'detail'
                    }
            else:
                custom_response_data['message'] = 'Validation error' if response.status_code == 400 else 'Request failed'
                custom_response_data['details'] = response.data
        elif isinstance(response.data, list):
            custom_response_data['message'] = 'Multiple errors occurred'
            custom_response_data['details'] = response.data
        else:
            custom_response_data['message'] = str(response.data)

        response.data = custom_response_data
        return response

    # Unhandled exceptions (500)
    logger.exception(f"Unhandled exception in {context.get('view', 'unknown view')}: {exc}")

    error_response = {
        'error': True,
        'status_code': 500,
        'message': 'An internal server error occurred. Please contact support.',
    }

    if settings.DEBUG:
        error_response['debug'] = {
            'exception_type': exc.__class__.__name__,
            'exception_message': str(exc),
            'view': str(context.get('view', 'Unknown')),
        }

    return Response(error_response, status=http_status.HTTP_500_INTERNAL_SERVER_ERROR)
