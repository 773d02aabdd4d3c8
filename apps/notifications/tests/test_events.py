# apps/notifications/tests/test_events.py
"""
Tests for the realtime event bridge.

Tests cover:
1. Event -> Notification processing exactly once
2. Role-specific notification templates
3. Acknowledging events without notifications
4. Retry of pending events and cleanup of processed ones (service + Celery tasks)
5. Event API endpoints
"""
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from apps.notifications.events import RealtimeEventService, RecentEventIds, recently_processed, resolve_template
from apps.notifications.models import Notification, RealtimeEvent
from apps.notifications.tasks import cleanup_processed_events, process_pending_events

User = get_user_model()

BOOKING_DATA = {
    'booking_number': 'BK-20261101-ABC123',
    'bike_name': 'Trek FX 3',
    'partner_name': 'Galle Cycles',
    'customer_name': 'Rider One',
    'end_date': '2026-11-04',
}


class RealtimeEventProcessingTestCase(TestCase):

    def setUp(self):
        self.customer = User.objects.create_user(
            username='rider', email='rider@example.com', password='testpass123'
        )
        self.partner_user = User.objects.create_user(
            username='owner', email='owner@example.com', password='testpass123',
            role=User.ROLE_PARTNER
        )

    def publish(self, event_type=RealtimeEvent.TYPE_BOOKING_CREATED, target=None, role='user', process=False):
        return RealtimeEventService.publish(
            event_type, target or self.customer, role, dict(BOOKING_DATA),
            source_user=self.partner_user, process=process
        )

    def test_publish_processes_inline_by_default(self):
        event = self.publish(process=True)

        event.refresh_from_db()
        self.assertTrue(event.processed)
        self.assertIsNotNone(event.processed_at)
        notification = Notification.objects.get(recipient=self.customer)
        self.assertEqual(notification.title, 'Booking Request Sent')
        self.assertEqual(notification.actor, self.partner_user)
        self.assertEqual(notification.metadata['event_id'], str(event.id))

    def test_event_records_source(self):
        event = self.publish()

        self.assertEqual(event.metadata['source_user_id'], str(self.partner_user.public_id))
        self.assertEqual(event.metadata['source_user_role'], User.ROLE_PARTNER)
        self.assertFalse(event.processed)

    def test_process_event_exactly_once(self):
        event = self.publish()

        first = RealtimeEventService.process_event(event)
        second = RealtimeEventService.process_event(event)

        self.assertIsNotNone(first)
        self.assertIsNone(second)
        self.assertEqual(Notification.objects.filter(recipient=self.customer).count(), 1)

    def test_processed_flag_is_rechecked_without_cache(self):
        event = self.publish()
        stale_copy = RealtimeEvent.objects.get(pk=event.pk)
        RealtimeEventService.process_event(event)
        recently_processed.clear()

        self.assertIsNone(RealtimeEventService.process_event(stale_copy))
        self.assertEqual(Notification.objects.count(), 1)

    def test_partner_role_uses_partner_template(self):
        event = self.publish(
            event_type=RealtimeEvent.TYPE_BOOKING_COMPLETED, target=self.partner_user, role='partner'
        )

        notification = RealtimeEventService.process_event(event)

        self.assertEqual(notification.title, 'Rental Completed')
        self.assertEqual(notification.category, Notification.CATEGORY_PARTNER)
        self.assertIn('BK-20261101-ABC123', notification.message)

    def test_missing_template_keys_render_empty(self):
        event = RealtimeEventService.publish(
            RealtimeEvent.TYPE_BOOKING_REJECTED, self.customer, 'user', {'bike_name': 'Volt'}, process=False
        )

        notification = RealtimeEventService.process_event(event)

        self.assertEqual(notification.message, 'Your booking request for Volt was declined by . Reason: ')

    def test_unknown_role_falls_back(self):
        self.assertEqual(
            resolve_template(RealtimeEvent.TYPE_BOOKING_CREATED, 'admin'),
            resolve_template(RealtimeEvent.TYPE_BOOKING_CREATED, None),
        )

    def test_acknowledge_skips_notification(self):
        event = self.publish()

        RealtimeEventService.acknowledge(event.id, self.customer)

        event.refresh_from_db()
        self.assertTrue(event.processed)
        self.assertIsNone(RealtimeEventService.process_event(event))
        self.assertFalse(Notification.objects.exists())

    def test_acknowledge_other_users_event(self):
        event = self.publish()

        with self.assertRaises(RealtimeEvent.DoesNotExist):
            RealtimeEventService.acknowledge(event.id, self.partner_user)

    def test_unprocessed_for_user_newest_first(self):
        older = self.publish()
        newer = self.publish(event_type=RealtimeEvent.TYPE_BOOKING_ACCEPTED)
        RealtimeEvent.objects.filter(pk=older.pk).update(created_at=timezone.now() - timedelta(minutes=5))
        self.publish(target=self.partner_user, role='partner')

        events = RealtimeEventService.get_unprocessed_for_user(self.customer)

        self.assertEqual([e.id for e in events], [newer.id, older.id])


class RealtimeEventHousekeepingTestCase(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(
            username='rider', email='rider@example.com', password='testpass123'
        )

    def make_event(self, processed=False, age=timedelta(0), processed_age=None):
        event = RealtimeEventService.publish(
            RealtimeEvent.TYPE_BOOKING_ACCEPTED, self.user, 'user', dict(BOOKING_DATA), process=False
        )
        updates = {'created_at': timezone.now() - age}
        if processed:
            updates['processed'] = True
            updates['processed_at'] = timezone.now() - (processed_age or timedelta(0))
        RealtimeEvent.objects.filter(pk=event.pk).update(**updates)
        return event

    def test_process_pending_only_touches_old_events(self):
        stuck = self.make_event(age=timedelta(minutes=2))
        fresh = self.make_event()

        result = RealtimeEventService.process_pending(older_than_seconds=60)

        self.assertEqual(result, {'pending': 1, 'processed': 1, 'failed': 0})
        stuck.refresh_from_db()
        fresh.refresh_from_db()
        self.assertTrue(stuck.processed)
        self.assertFalse(fresh.processed)
        self.assertEqual(Notification.objects.filter(recipient=self.user).count(), 1)

    def test_process_pending_task(self):
        self.make_event(age=timedelta(minutes=5))

        result = process_pending_events()

        self.assertEqual(result['processed'], 1)

    def test_cleanup_deletes_old_processed_events(self):
        old = self.make_event(processed=True, age=timedelta(days=10), processed_age=timedelta(days=10))
        recent = self.make_event(processed=True, processed_age=timedelta(days=1))
        pending = self.make_event(age=timedelta(days=30))

        deleted = RealtimeEventService.cleanup(older_than_days=7)

        self.assertEqual(deleted, 1)
        self.assertFalse(RealtimeEvent.objects.filter(pk=old.pk).exists())
        self.assertTrue(RealtimeEvent.objects.filter(pk__in=[recent.pk, pending.pk]).count() == 2)

    def test_cleanup_task_uses_retention_setting(self):
        self.make_event(processed=True, processed_age=timedelta(days=8))

        self.assertEqual(cleanup_processed_events(), {'deleted': 1})

    def test_stats(self):
        self.make_event(processed=True)
        self.make_event()

        stats = RealtimeEventService.stats()

        self.assertEqual(stats['total'], 2)
        self.assertEqual(stats['processed'], 1)
        self.assertEqual(stats['unprocessed'], 1)
        self.assertEqual(stats['by_type'], {RealtimeEvent.TYPE_BOOKING_ACCEPTED: 2})


class RecentEventIdsTestCase(SimpleTestCase):

    def test_oldest_ids_are_evicted(self):
        ids = RecentEventIds(maxsize=2)
        ids.add('a')
        ids.add('b')
        ids.add('c')

        self.assertNotIn('a', ids)
        self.assertIn('b', ids)
        self.assertIn('c', ids)
        self.assertEqual(len(ids), 2)


class RealtimeEventAPITestCase(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(
            username='rider', email='rider@example.com', password='testpass123'
        )
        self.admin = User.objects.create_user(
            username='admin', email='admin@example.com', password='testpass123',
            role=User.ROLE_ADMIN
        )

    def test_publish_and_list(self):
        self.client.force_authenticate(self.admin)
        response = self.client.post('/api/events/', {
            'event_type': RealtimeEvent.TYPE_BOOKING_ACCEPTED,
            'target_user_id': str(self.user.public_id),
            'target_role': 'user',
            'data': BOOKING_DATA,
        }, format='json')

        self.assertEqual(response.status_code, 201)
        self.assertTrue(response.data['processed'])

        self.client.force_authenticate(self.user)
        self.assertEqual(self.client.get('/api/events/').data, [])

    def test_mark_processed(self):
        event = RealtimeEventService.publish(
            RealtimeEvent.TYPE_BOOKING_ACCEPTED, self.user, 'user', dict(BOOKING_DATA), process=False
        )
        self.client.force_authenticate(self.user)

        response = self.client.post(f'/api/events/{event.id}/processed/')

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data['processed'])

    def test_mark_processed_other_user(self):
        event = RealtimeEventService.publish(
            RealtimeEvent.TYPE_BOOKING_ACCEPTED, self.admin, 'admin', dict(BOOKING_DATA), process=False
        )
        self.client.force_authenticate(self.user)

        response = self.client.post(f'/api/events/{event.id}/processed/')

        self.assertEqual(response.status_code, 404)

    def test_admin_only_housekeeping(self):
        self.client.force_authenticate(self.user)
        self.assertEqual(self.client.get('/api/events/admin/stats/').status_code, 403)

        self.client.force_authenticate(self.admin)
        response = self.client.post('/api/events/admin/cleanup/', {'older_than_days': 0}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertIn('deleted_count', response.data)
