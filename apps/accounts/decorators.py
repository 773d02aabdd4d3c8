# apps/accounts/decorators.py
"""
Per-IP request throttling for the unauthenticated auth endpoints.
"""

import logging
from functools import wraps
from django.http import JsonResponse
from django.core.cache import cache

from apps.common.utils import get_client_ip

logger = logging.getLogger(__name__)


def rate_limit(key_prefix, limit=5, period=60):
    """
    Allow `limit` calls per client IP every `period` seconds.

    Over the limit the view is not called and a 429 is returned in the
    API error envelope.
    """
    def decorator(view_func):
        @wraps(view_func)
        def wrapper(request, *args, **kwargs):
            ip = get_client_ip(request) or 'unknown'
            cache_key = f"rate:{key_prefix}:{ip}"

            # add() only starts the window when no counter exists
            cache.add(cache_key, 0, period)
            try:
                attempts = cache.incr(cache_key)
            except ValueError:
                # Counter expired between add() and incr()
                cache.set(cache_key, 1, period)
                attempts = 1

            if attempts > limit:
                logger.warning(f"[RATE_LIMITED] scope={key_prefix} ip={ip} attempts={attempts}")
                return JsonResponse({
                    'error': True,
                    'status_code': 429,
                    'message': 'Too many requests. Please try again later.',
                    'details': {'retry_after': period},
                }, status=429)

            return view_func(request, *args, **kwargs)
        return wrapper
    return decorator
