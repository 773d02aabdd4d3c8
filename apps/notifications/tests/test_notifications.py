# apps/notifications/tests/test_notifications.py
"""
Tests for notifications and push delivery.

Tests cover:
1. Notification API (list, read state, delete)
2. Admin notification endpoints
3. FCM token registration and replacement
4. FCM multicast with invalid token cleanup and outage handling
5. Push preference gate and token deactivation on suspension
6. WebSocket token extraction
"""
from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase, override_settings
from django.utils import timezone
from firebase_admin import exceptions as firebase_exceptions
from firebase_admin import messaging
from rest_framework.test import APIClient

from apps.notifications.events import RealtimeEventService
from apps.notifications.middleware import get_token_from_scope
from apps.notifications.models import FCMToken, Notification, RealtimeEvent
from apps.notifications.push import FCMService

User = get_user_model()

CHROME_UA = 'Mozilla/5.0 (X11; Linux x86_64) Chrome/129.0'


def notify(user, title='Hello', **kwargs):
    return Notification.create_notification(
        recipient=user,
        notification_type=Notification.TYPE_SYSTEM,
        title=title,
        message=f'{title} message',
        **kwargs
    )


class NotificationAPITestCase(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(
            username='rider', email='rider@example.com', password='testpass123'
        )
        self.other = User.objects.create_user(
            username='other', email='other@example.com', password='testpass123'
        )
        self.client.force_authenticate(self.user)

    def test_list_only_own_notifications(self):
        notify(self.user, 'First')
        notify(self.user, 'Second')
        notify(self.other, 'Not mine')

        response = self.client.get('/api/notifications/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['count'], 2)
        self.assertEqual(
            {item['title'] for item in response.data['results']}, {'First', 'Second'}
        )

    def test_filter_by_read_status(self):
        notify(self.user, 'Unread')
        notify(self.user, 'Read').mark_as_read()

        response = self.client.get('/api/notifications/', {'is_read': 'false'})

        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['title'], 'Unread')

    def test_detail_marks_read(self):
        notification = notify(self.user)

        response = self.client.get(f'/api/notifications/{notification.id}/')

        self.assertEqual(response.status_code, 200)
        notification.refresh_from_db()
        self.assertTrue(notification.is_read)
        self.assertIsNotNone(notification.read_at)

    def test_detail_of_other_users_notification(self):
        notification = notify(self.other)

        response = self.client.get(f'/api/notifications/{notification.id}/')

        self.assertEqual(response.status_code, 404)

    def test_mark_selected_as_read(self):
        first = notify(self.user, 'First')
        notify(self.user, 'Second')
        foreign = notify(self.other)

        response = self.client.post('/api/notifications/mark-read/', {
            'notification_ids': [str(first.id), str(foreign.id)],
        }, format='json')

        self.assertEqual(response.data['marked_count'], 1)
        self.assertEqual(self.client.get('/api/notifications/unread-count/').data['unread_count'], 1)

    def test_mark_all_as_read(self):
        notify(self.user, 'First')
        notify(self.user, 'Second')

        response = self.client.post('/api/notifications/mark-read/', {'mark_all': True}, format='json')

        self.assertEqual(response.data['marked_count'], 2)
        self.assertEqual(Notification.get_unread_count(self.user), 0)

    def test_delete_all_read(self):
        notify(self.user, 'Unread')
        notify(self.user, 'Read').mark_as_read()

        response = self.client.delete('/api/notifications/delete-all/?is_read=true')

        self.assertEqual(response.data['deleted_count'], 1)
        self.assertEqual(Notification.objects.filter(recipient=self.user).count(), 1)

    def test_delete_one(self):
        notification = notify(self.user)

        response = self.client.delete(f'/api/notifications/{notification.id}/')

        self.assertEqual(response.status_code, 204)
        self.assertFalse(Notification.objects.filter(pk=notification.pk).exists())

    def test_requires_authentication(self):
        self.client.force_authenticate(None)

        response = self.client.get('/api/notifications/')

        self.assertEqual(response.status_code, 401)


class AdminNotificationAPITestCase(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.admin = User.objects.create_user(
            username='admin', email='admin@example.com', password='testpass123',
            role=User.ROLE_ADMIN
        )
        self.rider = User.objects.create_user(
            username='rider', email='rider@example.com', password='testpass123'
        )
        self.partner_user = User.objects.create_user(
            username='owner', email='owner@example.com', password='testpass123',
            role=User.ROLE_PARTNER
        )
        self.client.force_authenticate(self.admin)

    def test_create_for_one_user(self):
        response = self.client.post('/api/notifications/admin/', {
            'recipient_id': str(self.rider.public_id),
            'title': 'Maintenance',
            'message': 'The app will be down tonight.',
        }, format='json')

        self.assertEqual(response.status_code, 201)
        notification = Notification.objects.get(recipient=self.rider)
        self.assertEqual(notification.actor, self.admin)
        self.assertEqual(notification.category, Notification.CATEGORY_SYSTEM)

    def test_bulk_by_role(self):
        response = self.client.post('/api/notifications/admin/bulk/', {
            'role': User.ROLE_PARTNER,
            'title': 'New commission rates',
            'message': 'Rates change next month.',
        }, format='json')

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['created_count'], 1)
        self.assertTrue(Notification.objects.filter(recipient=self.partner_user).exists())

    def test_bulk_requires_target(self):
        response = self.client.post('/api/notifications/admin/bulk/', {
            'title': 'Nobody',
            'message': 'Nobody',
        }, format='json')

        self.assertEqual(response.status_code, 400)

    def test_customer_cannot_use_admin_endpoints(self):
        self.client.force_authenticate(self.rider)

        response = self.client.post('/api/notifications/admin/', {
            'recipient_id': str(self.partner_user.public_id),
            'title': 'x',
            'message': 'x',
        }, format='json')

        self.assertEqual(response.status_code, 403)


class FCMTokenTestCase(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(
            username='rider', email='rider@example.com', password='testpass123'
        )
        self.client.force_authenticate(self.user)

    def test_register_then_refresh(self):
        payload = {'token': 'token-a', 'platform': 'Linux x86_64'}

        first = self.client.post('/api/notifications/fcm/register/', payload, format='json', HTTP_USER_AGENT=CHROME_UA)
        second = self.client.post('/api/notifications/fcm/register/', payload, format='json', HTTP_USER_AGENT=CHROME_UA)

        self.assertEqual(first.status_code, 201)
        self.assertEqual(second.status_code, 200)
        self.assertEqual(FCMToken.objects.filter(user=self.user).count(), 1)
        self.assertEqual(first.data['user_role'], User.ROLE_USER)

    def test_new_token_replaces_same_browser(self):
        FCMToken.register(self.user, 'token-old', user_agent=CHROME_UA, platform='Linux x86_64')
        FCMToken.register(self.user, 'token-phone', user_agent='Safari iOS', platform='iPhone')

        FCMToken.register(self.user, 'token-new', user_agent=CHROME_UA, platform='Linux x86_64')

        self.assertEqual(
            set(FCMToken.objects.filter(user=self.user).values_list('token', flat=True)),
            {'token-new', 'token-phone'}
        )

    def test_unregister(self):
        FCMToken.register(self.user, 'token-a')

        response = self.client.post('/api/notifications/fcm/unregister/', {'token': 'token-a'}, format='json')
        missing = self.client.post('/api/notifications/fcm/unregister/', {'token': 'token-a'}, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(missing.status_code, 404)

    def test_list_own_tokens(self):
        FCMToken.register(self.user, 'token-a')
        other = User.objects.create_user(username='other', email='other@example.com', password='testpass123')
        FCMToken.register(other, 'token-b')

        response = self.client.get('/api/notifications/fcm/tokens/')

        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['token'], 'token-a')

    def test_tokens_deactivated_on_suspension(self):
        FCMToken.register(self.user, 'token-a')

        self.user.status = User.STATUS_SUSPENDED
        self.user.save()

        self.assertFalse(FCMToken.objects.get(token='token-a').is_active)

    def test_tokens_kept_for_active_user(self):
        FCMToken.register(self.user, 'token-a')

        self.user.first_name = 'Nimal'
        self.user.save()

        self.assertTrue(FCMToken.objects.get(token='token-a').is_active)


class FCMServiceTestCase(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(
            username='rider', email='rider@example.com', password='testpass123'
        )
        FCMToken.register(self.user, 'token-good', user_agent='Chrome', platform='Linux')
        FCMToken.register(self.user, 'token-stale', user_agent='Firefox', platform='Linux')

    def test_disabled_is_noop(self):
        result = FCMService.send_to_user(self.user, 'Hi', 'There')

        self.assertFalse(result['success'])
        self.assertEqual(result['message'], 'FCM is disabled')

    @override_settings(FCM_ENABLED=True)
    @patch('apps.notifications.push.get_firebase_app', return_value=None)
    def test_unconfigured_firebase(self, mock_app):
        result = FCMService.send_to_tokens(['token-good'], 'Hi', 'There')

        self.assertFalse(result['success'])
        self.assertEqual(result['message'], 'Firebase is not configured')

    @override_settings(FCM_ENABLED=True)
    @patch('apps.notifications.push.get_firebase_app', return_value=object())
    @patch('apps.notifications.push.messaging.send_each_for_multicast')
    def test_unregistered_token_is_deactivated(self, mock_send, mock_app):
        def fake_send(message, app=None):
            responses = []
            for token in message.tokens:
                if token == 'token-stale':
                    responses.append(SimpleNamespace(
                        success=False, exception=messaging.UnregisteredError('Requested entity was not found.')
                    ))
                else:
                    responses.append(SimpleNamespace(success=True, exception=None))
            return SimpleNamespace(success_count=1, failure_count=1, responses=responses)

        mock_send.side_effect = fake_send

        result = FCMService.send_to_user(self.user, 'Booking Confirmed!', 'Please pay', data={'count': 2})

        self.assertTrue(result['success'])
        self.assertEqual(result['invalid_tokens'], ['token-stale'])
        self.assertFalse(FCMToken.objects.get(token='token-stale').is_active)
        self.assertTrue(FCMToken.objects.get(token='token-good').is_active)

        sent_message = mock_send.call_args[0][0]
        self.assertEqual(sent_message.data['count'], '2')

    @override_settings(FCM_ENABLED=True)
    @patch('apps.notifications.push.get_firebase_app', return_value=object())
    @patch('apps.notifications.push.messaging.send_each_for_multicast')
    def test_delivered_notification_records_push_channel(self, mock_send, mock_app):
        mock_send.side_effect = lambda message, app=None: SimpleNamespace(
            success_count=len(message.tokens),
            failure_count=0,
            responses=[SimpleNamespace(success=True, exception=None) for _ in message.tokens],
        )

        notification = notify(self.user, send_push=True)

        notification.refresh_from_db()
        self.assertIn(Notification.CHANNEL_PUSH, notification.sent_via)

    @override_settings(FCM_ENABLED=True)
    @patch('apps.notifications.push.get_firebase_app', return_value=object())
    @patch('apps.notifications.push.messaging.send_each_for_multicast')
    def test_multicast_error_is_logged_not_raised(self, mock_send, mock_app):
        mock_send.side_effect = firebase_exceptions.UnavailableError('fcm down')

        with self.assertLogs('apps.notifications.push', level='ERROR'):
            result = FCMService.send_to_user(self.user, 'Hi', 'There')

        self.assertFalse(result['success'])
        self.assertEqual(result['failure_count'], 2)
        self.assertEqual(FCMToken.objects.filter(user=self.user, is_active=True).count(), 2)

    @override_settings(FCM_ENABLED=True)
    @patch('apps.notifications.push.get_firebase_app', side_effect=ValueError('bad credentials file'))
    def test_firebase_init_error_is_logged_not_raised(self, mock_app):
        with self.assertLogs('apps.notifications.push', level='ERROR'):
            notification = notify(self.user, send_push=True)

        notification.refresh_from_db()
        self.assertNotIn(Notification.CHANNEL_PUSH, notification.sent_via)

    @override_settings(FCM_ENABLED=True)
    @patch('apps.notifications.push.get_firebase_app', return_value=object())
    @patch('apps.notifications.push.messaging.send_each_for_multicast')
    def test_push_outage_does_not_block_other_recipients(self, mock_send, mock_app):
        from apps.bikes.tests.test_bikes import make_bike, make_partner
        from apps.bookings.services import BookingService

        mock_send.side_effect = firebase_exceptions.UnavailableError('fcm down')
        partner = make_partner('owner')
        FCMToken.register(partner.user, 'token-owner', user_agent='Chrome', platform='Linux')
        start = timezone.localdate() + timedelta(days=2)

        booking = BookingService.create_booking(
            customer=self.user,
            bike=make_bike(partner),
            package='day',
            start_date=start,
            end_date=start + timedelta(days=3),
        )

        self.assertEqual(Notification.objects.filter(recipient=self.user, booking=booking).count(), 1)
        self.assertEqual(Notification.objects.filter(recipient=partner.user, booking=booking).count(), 1)
        self.assertFalse(RealtimeEvent.objects.filter(processed=False).exists())


class PushPreferenceTestCase(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(
            username='rider', email='rider@example.com', password='testpass123'
        )

    def publish(self):
        return RealtimeEventService.publish(
            RealtimeEvent.TYPE_BOOKING_ACCEPTED, self.user, 'user', {'bike_name': 'Trek FX 3'}
        )

    @patch.object(FCMService, 'send_notification')
    def test_event_pushes_by_default(self, mock_push):
        self.publish()

        mock_push.assert_called_once()

    @patch.object(FCMService, 'send_notification')
    def test_opted_out_user_gets_no_push(self, mock_push):
        self.user.notification_preferences = {'booking_updates': False}
        self.user.save()

        self.publish()

        mock_push.assert_not_called()
        self.assertTrue(Notification.objects.filter(recipient=self.user).exists())


class WebSocketTokenTestCase(SimpleTestCase):

    def test_token_from_query_string(self):
        scope = {'query_string': b'token=abc.def.ghi&foo=bar', 'headers': []}

        self.assertEqual(get_token_from_scope(scope), 'abc.def.ghi')

    def test_token_from_authorization_header(self):
        scope = {'query_string': b'', 'headers': [(b'authorization', b'Bearer abc.def.ghi')]}

        self.assertEqual(get_token_from_scope(scope), 'abc.def.ghi')

    def test_non_bearer_header_ignored(self):
        scope = {'query_string': b'', 'headers': [(b'authorization', b'Basic dXNlcjpwYXNz')]}

        self.assertIsNone(get_token_from_scope(scope))

    def test_no_token(self):
        self.assertIsNone(get_token_from_scope({}))
