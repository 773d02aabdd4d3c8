# apps/support/tests/test_support.py
"""
Tests for support tickets and FAQs.

Tests cover:
1. Opening tickets (optionally against an own booking)
2. Ticket status flow and who may change it
3. Admin responses and owner notifications
4. Public FAQ listing and admin FAQ management
"""
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.test import TestCase
from rest_framework.test import APIClient

from apps.bikes.tests.test_bikes import make_bike, make_booking, make_partner
from apps.notifications.models import Notification
from apps.support.models import FAQ, SupportTicket
from apps.support.services import SupportService

User = get_user_model()


class SupportServiceTestCase(TestCase):

    def setUp(self):
        self.customer = User.objects.create_user(
            username='rider', email='rider@example.com', password='testpass123'
        )
        self.stranger = User.objects.create_user(
            username='stranger', email='stranger@example.com', password='testpass123'
        )
        self.admin = User.objects.create_user(
            username='admin', email='admin@example.com', password='testpass123',
            role=User.ROLE_ADMIN
        )
        self.partner = make_partner('owner')
        self.booking = make_booking(self.customer, make_bike(self.partner))

    def open_ticket(self, user=None, **kwargs):
        return SupportService.create_ticket(
            user or self.customer, 'Brake issue', 'The rear brake squeaks.', **kwargs
        )

    def test_ticket_against_own_booking(self):
        ticket = self.open_ticket(category='booking', booking=self.booking)

        self.assertEqual(ticket.status, SupportTicket.STATUS_OPEN)
        self.assertEqual(ticket.booking, self.booking)

    def test_partner_can_reference_their_booking(self):
        ticket = self.open_ticket(user=self.partner.user, booking=self.booking)

        self.assertEqual(ticket.user, self.partner.user)

    def test_cannot_reference_foreign_booking(self):
        with self.assertRaises(PermissionError):
            self.open_ticket(user=self.stranger, booking=self.booking)

    def test_response_moves_open_ticket_in_progress(self):
        ticket = self.open_ticket()

        ticket = SupportService.respond(ticket, self.admin, 'We will check the bike.')

        self.assertEqual(ticket.status, SupportTicket.STATUS_IN_PROGRESS)
        self.assertEqual(ticket.responded_by, self.admin)
        self.assertIsNotNone(ticket.responded_at)
        notification = Notification.objects.get(recipient=self.customer)
        self.assertEqual(notification.metadata['ticket_id'], str(ticket.uuid_id))

    def test_response_with_explicit_status(self):
        ticket = self.open_ticket()
        SupportService.respond(ticket, self.admin, 'Looking into it.')

        ticket = SupportService.respond(ticket, self.admin, 'Fixed.', new_status=SupportTicket.STATUS_RESOLVED)

        self.assertEqual(ticket.status, SupportTicket.STATUS_RESOLVED)
        self.assertIsNotNone(ticket.resolved_at)

    def test_invalid_transition(self):
        ticket = self.open_ticket()

        with self.assertRaises(ValidationError):
            SupportService.update_status(ticket, self.admin, SupportTicket.STATUS_RESOLVED)

    def test_owner_can_close_open_ticket(self):
        ticket = self.open_ticket()

        ticket = SupportService.update_status(ticket, self.customer, SupportTicket.STATUS_CLOSED)

        self.assertEqual(ticket.status, SupportTicket.STATUS_CLOSED)
        self.assertIsNotNone(ticket.closed_at)

    def test_owner_cannot_close_ticket_in_progress(self):
        ticket = self.open_ticket()
        SupportService.respond(ticket, self.admin, 'On it.')
        ticket.refresh_from_db()

        with self.assertRaises(PermissionError):
            SupportService.update_status(ticket, self.customer, SupportTicket.STATUS_CLOSED)

    def test_owner_cannot_resolve(self):
        ticket = self.open_ticket()

        with self.assertRaises(PermissionError):
            SupportService.update_status(ticket, self.customer, SupportTicket.STATUS_IN_PROGRESS)

    def test_admin_status_change_notifies_owner(self):
        ticket = self.open_ticket()

        SupportService.update_status(ticket, self.admin, SupportTicket.STATUS_IN_PROGRESS)

        notification = Notification.objects.get(recipient=self.customer)
        self.assertIn('in progress', notification.message)


class SupportAPITestCase(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.customer = User.objects.create_user(
            username='rider', email='rider@example.com', password='testpass123'
        )
        self.other = User.objects.create_user(
            username='other', email='other@example.com', password='testpass123'
        )
        self.admin = User.objects.create_user(
            username='admin', email='admin@example.com', password='testpass123',
            role=User.ROLE_ADMIN
        )
        self.partner = make_partner('owner')
        self.booking = make_booking(self.customer, make_bike(self.partner))

    def test_open_ticket(self):
        self.client.force_authenticate(self.customer)

        response = self.client.post('/api/support/tickets/', {
            'subject': 'Refund question',
            'message': 'When will my refund arrive?',
            'category': 'payment',
            'booking_id': str(self.booking.uuid_id),
        }, format='json')

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['booking_number'], self.booking.booking_number)
        self.assertEqual(response.data['status'], SupportTicket.STATUS_OPEN)

    def test_open_ticket_for_foreign_booking(self):
        self.client.force_authenticate(self.other)

        response = self.client.post('/api/support/tickets/', {
            'subject': 'Hmm',
            'message': 'Not my booking',
            'booking_id': str(self.booking.uuid_id),
        }, format='json')

        self.assertEqual(response.status_code, 403)

    def test_list_own_tickets(self):
        SupportService.create_ticket(self.customer, 'Mine', 'x')
        SupportService.create_ticket(self.other, 'Theirs', 'x')
        self.client.force_authenticate(self.customer)

        response = self.client.get('/api/support/tickets/')

        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['subject'], 'Mine')

    def test_detail_hidden_from_other_users(self):
        ticket = SupportService.create_ticket(self.customer, 'Mine', 'x')

        self.client.force_authenticate(self.other)
        self.assertEqual(self.client.get(f'/api/support/tickets/{ticket.uuid_id}/').status_code, 404)

        self.client.force_authenticate(self.admin)
        self.assertEqual(self.client.get(f'/api/support/tickets/{ticket.uuid_id}/').status_code, 200)

    def test_owner_closes_ticket(self):
        ticket = SupportService.create_ticket(self.customer, 'Mine', 'x')
        self.client.force_authenticate(self.customer)

        response = self.client.post(
            f'/api/support/tickets/{ticket.uuid_id}/status/', {'status': 'closed'}, format='json'
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['status'], SupportTicket.STATUS_CLOSED)

    def test_invalid_transition_returns_400(self):
        ticket = SupportService.create_ticket(self.customer, 'Mine', 'x')
        ticket.transition_to(SupportTicket.STATUS_CLOSED)
        self.client.force_authenticate(self.admin)

        response = self.client.post(
            f'/api/support/tickets/{ticket.uuid_id}/status/', {'status': 'in_progress'}, format='json'
        )

        self.assertEqual(response.status_code, 400)

    def test_admin_filters_and_responds(self):
        high = SupportService.create_ticket(self.customer, 'Urgent', 'x', priority=SupportTicket.PRIORITY_HIGH)
        SupportService.create_ticket(self.other, 'Later', 'x', priority=SupportTicket.PRIORITY_LOW)
        self.client.force_authenticate(self.admin)

        listing = self.client.get('/api/support/admin/tickets/', {'priority': 'high'})
        response = self.client.post(
            f'/api/support/admin/tickets/{high.uuid_id}/respond/', {'response': 'Calling you now.'}, format='json'
        )

        self.assertEqual(listing.data['count'], 1)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['admin_response'], 'Calling you now.')
        self.assertEqual(response.data['status'], SupportTicket.STATUS_IN_PROGRESS)

    def test_customer_cannot_respond(self):
        ticket = SupportService.create_ticket(self.customer, 'Mine', 'x')
        self.client.force_authenticate(self.customer)

        response = self.client.post(
            f'/api/support/admin/tickets/{ticket.uuid_id}/respond/', {'response': 'Self-service'}, format='json'
        )

        self.assertEqual(response.status_code, 403)


class FAQAPITestCase(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.admin = User.objects.create_user(
            username='admin', email='admin@example.com', password='testpass123',
            role=User.ROLE_ADMIN
        )
        FAQ.objects.create(question='How do I pay?', answer='Card or cash.', category='payment', order=2)
        FAQ.objects.create(question='Can I cancel?', answer='Before pickup.', category='booking', order=1)
        FAQ.objects.create(question='Old question', answer='Gone.', category='booking', is_active=False)

    def test_public_list_is_ordered_and_active_only(self):
        response = self.client.get('/api/support/faqs/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual([faq['question'] for faq in response.data], ['Can I cancel?', 'How do I pay?'])

    def test_filter_by_category(self):
        response = self.client.get('/api/support/faqs/', {'category': 'payment'})

        self.assertEqual(len(response.data), 1)

    def test_admin_manages_faqs(self):
        self.client.force_authenticate(self.admin)

        created = self.client.post('/api/support/admin/faqs/', {
            'question': 'Is a helmet included?',
            'answer': 'Yes, on request.',
            'category': 'bike',
        }, format='json')
        updated = self.client.patch(
            f"/api/support/admin/faqs/{created.data['id']}/", {'is_active': False}, format='json'
        )

        self.assertEqual(created.status_code, 201)
        self.assertEqual(updated.status_code, 200)
        self.assertFalse(FAQ.objects.get(pk=created.data['id']).is_active)
