# apps/common/pagination.py
"""
Global pagination for the marketplace API.

Applied through REST_FRAMEWORK["DEFAULT_PAGINATION_CLASS"], so every list
endpoint accepts:

    - limit: Number of items to return (default: 10, max: 100)
    - offset: Starting position in the result set (default: 0)

    GET /api/bikes/?limit=20&offset=20    → Items 21-40

Response Format:
    {"count": 150, "next": "...", "previous": "...", "results": [...]}
"""

from rest_framework.pagination import LimitOffsetPagination


class StandardLimitOffsetPagination(LimitOffsetPagination):
    """
    LimitOffsetPagination with sensible defaults and a hard cap on page size.
    """

    default_limit = 10
    max_limit = 100

    limit_query_param = 'limit'
    offset_query_param = 'offset'

    def get_limit(self, request):
        """Clamp non-positive limits back to the default."""
        limit = super().get_limit(request)

        if limit is not None and limit < 1:
            return self.default_limit

        return limit

    def get_schema_operation_parameters(self, view):
        return [
            {
                'name': self.limit_query_param,
                'required': False,
                'in': 'query',
                'description': (
                    f'Number of results to return per request. '
                    f'Default: {self.default_limit}, Maximum: {self.max_limit}.'
                ),
                'schema': {
                    'type': 'integer',
                    'default': self.default_limit,
                    'minimum': 1,
                    'maximum': self.max_limit,
                },
            },
            {
                'name': self.offset_query_param,
                'required': False,
                'in': 'query',
                'description': 'The initial index from which to return results. Default: 0.',
                'schema': {
                    'type': 'integer',
                    'default': 0,
                    'minimum': 0,
                },
            },
        ]
