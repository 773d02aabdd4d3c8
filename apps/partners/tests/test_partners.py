# apps/partners/tests/test_partners.py
"""
Tests for partner registration, verification and the partner APIs.

Tests cover:
1. PartnerService registration rules
2. Admin verification and status changes
3. Public visibility of pending/inactive partners
4. Bank details permissions
"""
from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework.test import APIClient

from apps.notifications.models import Notification
from apps.partners.models import Partner
from apps.partners.services import PartnerService

User = get_user_model()


class PartnerServiceTestCase(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(
            username='owner', email='owner@example.com', password='testpass123'
        )
        self.admin = User.objects.create_user(
            username='admin', email='admin@example.com', password='testpass123',
            role=User.ROLE_ADMIN
        )

    def test_register_partner_switches_role(self):
        partner = PartnerService.register_partner(self.user, company_name='Galle Cycles', city='Galle')

        self.user.refresh_from_db()
        self.assertEqual(self.user.role, User.ROLE_PARTNER)
        self.assertEqual(partner.status, Partner.STATUS_PENDING)
        self.assertEqual(partner.verification_status, Partner.VERIFICATION_PENDING)
        self.assertFalse(partner.is_active)

    def test_register_twice_fails(self):
        PartnerService.register_partner(self.user, company_name='Galle Cycles')

        with self.assertRaises(ValueError):
            PartnerService.register_partner(self.user, company_name='Second Shop')

    def test_admin_cannot_register(self):
        with self.assertRaises(ValueError):
            PartnerService.register_partner(self.admin, company_name='Admin Bikes')

    def test_verify_activates_and_notifies(self):
        partner = PartnerService.register_partner(self.user, company_name='Galle Cycles')

        PartnerService.review_verification(partner, self.admin, approve=True, notes='Documents OK')

        partner.refresh_from_db()
        self.assertTrue(partner.is_verified)
        self.assertTrue(partner.is_active)
        self.assertEqual(partner.verified_by, self.admin)
        self.assertIsNotNone(partner.verified_at)

        notification = Notification.objects.get(recipient=self.user)
        self.assertEqual(notification.category, Notification.CATEGORY_PARTNER)
        self.assertEqual(notification.title, 'Partner Verified')

    def test_reject_deactivates(self):
        partner = PartnerService.register_partner(self.user, company_name='Galle Cycles')

        PartnerService.review_verification(partner, self.admin, approve=False, notes='Blurry licence')

        partner.refresh_from_db()
        self.assertEqual(partner.verification_status, Partner.VERIFICATION_REJECTED)
        self.assertEqual(partner.status, Partner.STATUS_INACTIVE)
        self.assertIn('Blurry licence', Notification.objects.get(recipient=self.user).message)

    def test_unverified_partner_cannot_be_activated(self):
        partner = PartnerService.register_partner(self.user, company_name='Galle Cycles')

        with self.assertRaises(ValueError):
            PartnerService.set_status(partner, Partner.STATUS_ACTIVE, self.admin)

    def test_verified_partner_can_be_deactivated_and_reactivated(self):
        partner = PartnerService.register_partner(self.user, company_name='Galle Cycles')
        partner.verify(admin_user=self.admin)

        PartnerService.set_status(partner, Partner.STATUS_INACTIVE, self.admin)
        self.assertEqual(partner.status, Partner.STATUS_INACTIVE)

        PartnerService.set_status(partner, Partner.STATUS_ACTIVE, self.admin)
        self.assertEqual(partner.status, Partner.STATUS_ACTIVE)

    def test_bank_details_requires_owner_or_admin(self):
        partner = PartnerService.register_partner(self.user, company_name='Galle Cycles')
        stranger = User.objects.create_user(
            username='stranger', email='stranger@example.com', password='testpass123'
        )

        with self.assertRaises(PermissionError):
            PartnerService.update_bank_details(partner, stranger, bank_name='BOC')

        PartnerService.update_bank_details(
            partner, self.admin,
            bank_name='BOC', bank_account_number='12345678', bank_account_holder='Galle Cycles'
        )
        partner.refresh_from_db()
        self.assertTrue(partner.has_bank_details)


class PartnerAPITestCase(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.owner = User.objects.create_user(
            username='owner', email='owner@example.com', password='testpass123'
        )
        self.admin = User.objects.create_user(
            username='admin', email='admin@example.com', password='testpass123',
            role=User.ROLE_ADMIN
        )
        self.customer = User.objects.create_user(
            username='rider', email='rider@example.com', password='testpass123'
        )

    def test_register_via_api(self):
        self.client.force_authenticate(user=self.owner)

        response = self.client.post('/api/partners/register/', {
            'company_name': 'Kandy Bikes',
            'category': 'rental_shop',
            'city': 'Kandy',
            'latitude': '7.290572',
            'longitude': '80.633728',
        }, format='json')

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['company_name'], 'Kandy Bikes')
        self.assertEqual(response.data['verification_status'], 'pending')

    def test_register_requires_lat_and_lng_together(self):
        self.client.force_authenticate(user=self.owner)

        response = self.client.post('/api/partners/register/', {
            'company_name': 'Kandy Bikes',
            'latitude': '7.290572',
        }, format='json')

        self.assertEqual(response.status_code, 400)

    def test_invalid_business_hours_rejected(self):
        self.client.force_authenticate(user=self.owner)

        response = self.client.post('/api/partners/register/', {
            'company_name': 'Kandy Bikes',
            'business_hours': {'monday': {'open': '18:00', 'close': '08:00'}},
        }, format='json')

        self.assertEqual(response.status_code, 400)

    def test_pending_partner_hidden_from_public(self):
        partner = PartnerService.register_partner(self.owner, company_name='Hidden Cycles')

        list_response = self.client.get('/api/partners/')
        self.assertEqual(list_response.data['count'], 0)

        detail_response = self.client.get(f'/api/partners/{partner.uuid_id}/')
        self.assertEqual(detail_response.status_code, 404)

        self.client.force_authenticate(user=self.owner)
        owner_response = self.client.get(f'/api/partners/{partner.uuid_id}/')
        self.assertEqual(owner_response.status_code, 200)
        self.assertIn('earnings', owner_response.data)

    def test_public_list_filters_by_city(self):
        partner = PartnerService.register_partner(self.owner, company_name='Ella Rides', city='Ella')
        partner.verify(admin_user=self.admin)

        response = self.client.get('/api/partners/?city=ella')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['id'], str(partner.uuid_id))
        self.assertNotIn('bank_account_number', response.data['results'][0])

        response = self.client.get('/api/partners/?city=Kandy')
        self.assertEqual(response.data['count'], 0)

    def test_admin_verify_endpoint(self):
        partner = PartnerService.register_partner(self.owner, company_name='Ella Rides')
        self.client.force_authenticate(user=self.admin)

        response = self.client.post(
            f'/api/partners/admin/{partner.uuid_id}/verify/',
            {'action': 'verify'},
            format='json'
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['status'], 'active')

    def test_customer_cannot_use_admin_endpoints(self):
        partner = PartnerService.register_partner(self.owner, company_name='Ella Rides')
        self.client.force_authenticate(user=self.customer)

        response = self.client.post(
            f'/api/partners/admin/{partner.uuid_id}/verify/',
            {'action': 'verify'},
            format='json'
        )

        self.assertEqual(response.status_code, 403)

    def test_bank_details_forbidden_for_stranger(self):
        partner = PartnerService.register_partner(self.owner, company_name='Ella Rides')
        self.client.force_authenticate(user=self.customer)

        response = self.client.put(f'/api/partners/{partner.uuid_id}/bank-details/', {
            'bank_name': 'BOC',
            'bank_account_number': '12345678',
            'bank_account_holder': 'Ella Rides',
        }, format='json')

        self.assertEqual(response.status_code, 403)

    def test_my_partner_requires_profile(self):
        self.client.force_authenticate(user=self.customer)

        response = self.client.get('/api/partners/me/')

        self.assertEqual(response.status_code, 403)
