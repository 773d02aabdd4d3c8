# apps/common/tests/test_common.py
"""
Tests for shared endpoints and helpers.
"""
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import SimpleTestCase, TestCase
from rest_framework.exceptions import NotFound
from rest_framework.test import APIClient

from apps.common.utils import custom_exception_handler, percent_of, to_money


class CommonAPITestCase(TestCase):

    def setUp(self):
        self.client = APIClient()

    def test_health_check_is_public(self):
        response = self.client.get('/api/health/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['status'], 'healthy')

    def test_enums_read_statuses_from_models(self):
        response = self.client.get('/api/enums/')

        self.assertEqual(response.status_code, 200)
        booking_statuses = [item['value'] for item in response.data['booking_statuses']]
        self.assertIn('requested', booking_statuses)
        self.assertIn('completed', booking_statuses)
        self.assertIn('BOOKING_CREATED', [item['value'] for item in response.data['event_types']])
        self.assertIn('rental_packages', response.data)

    def test_pagination_limit_is_capped(self):
        response = self.client.get('/api/bikes/', {'limit': 500})

        self.assertEqual(response.status_code, 200)
        self.assertIn('count', response.data)
        self.assertIsNone(response.data['next'])


class MoneyHelpersTestCase(SimpleTestCase):

    def test_to_money_rounds_half_up(self):
        self.assertEqual(to_money('10.005'), Decimal('10.01'))
        self.assertEqual(to_money(Decimal('2.344')), Decimal('2.34'))
        self.assertEqual(to_money(7), Decimal('7.00'))

    def test_percent_of(self):
        self.assertEqual(percent_of(Decimal('660.00'), 15), Decimal('99.00'))
        self.assertEqual(percent_of(Decimal('1234.57'), 20), Decimal('246.91'))


class ExceptionHandlerTestCase(SimpleTestCase):

    def test_api_exception_wrapped(self):
        response = custom_exception_handler(NotFound('Bike not found.'), {})

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data, {'error': True, 'status_code': 404, 'message': 'Bike not found.'})

    def test_django_validation_error_is_400(self):
        response = custom_exception_handler(ValidationError('Invalid status transition'), {})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['message'], 'Invalid status transition')

    def test_unhandled_exception_is_500(self):
        with self.assertLogs('apps.common.utils', level='ERROR'):
            response = custom_exception_handler(RuntimeError('boom'), {})

        self.assertEqual(response.status_code, 500)
        self.assertTrue(response.data['error'])
