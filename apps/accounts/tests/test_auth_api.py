# apps/accounts/tests/test_auth_api.py
"""
Tests for signup, login, /me and admin user management.
"""
from django.contrib.auth import get_user_model
from django.core import mail
from django.core.cache import cache
from django.test import TestCase
from rest_framework.test import APIClient
from allauth.account.models import EmailAddress

User = get_user_model()


def make_user(email, role=User.ROLE_USER, verified=True, **extra):
    username = extra.pop('username', email.split('@')[0])
    user = User.objects.create_user(
        username=username,
        email=email,
        password='Str0ngPass!',
        role=role,
        **extra
    )
    EmailAddress.objects.create(user=user, email=email, verified=verified, primary=True)
    return user


class SignupAPITestCase(TestCase):

    def setUp(self):
        cache.clear()
        self.client = APIClient()

    def test_signup_creates_unverified_customer(self):
        response = self.client.post('/api/auth/signup/', {
            'username': 'rider',
            'email': 'Rider@Example.com',
            'password': 'Str0ngPass!',
        }, format='json')

        self.assertEqual(response.status_code, 201)
        user = User.objects.get(email='rider@example.com')
        self.assertEqual(user.role, User.ROLE_USER)
        self.assertFalse(
            EmailAddress.objects.get(user=user).verified
        )
        self.assertEqual(len(mail.outbox), 1)

    def test_signup_as_partner(self):
        response = self.client.post('/api/auth/signup/', {
            'username': 'shop',
            'email': 'shop@example.com',
            'password': 'Str0ngPass!',
            'role': 'partner',
        }, format='json')

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['user']['role'], 'partner')

    def test_signup_cannot_choose_admin_role(self):
        response = self.client.post('/api/auth/signup/', {
            'username': 'sneaky',
            'email': 'sneaky@example.com',
            'password': 'Str0ngPass!',
            'role': 'admin',
        }, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertFalse(User.objects.filter(email='sneaky@example.com').exists())

    def test_signup_with_verified_email_rejected(self):
        make_user('taken@example.com')

        response = self.client.post('/api/auth/signup/', {
            'username': 'another',
            'email': 'taken@example.com',
            'password': 'Str0ngPass!',
        }, format='json')

        self.assertEqual(response.status_code, 400)

    def test_signup_duplicate_username_rejected(self):
        make_user('first@example.com', username='samename')

        response = self.client.post('/api/auth/signup/', {
            'username': 'samename',
            'email': 'second@example.com',
            'password': 'Str0ngPass!',
        }, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['error'], 'Username already taken')


class LoginAPITestCase(TestCase):

    def setUp(self):
        cache.clear()
        self.client = APIClient()

    def test_login_returns_tokens_and_user(self):
        make_user('rider@example.com')

        response = self.client.post('/api/auth/login/', {
            'email': 'rider@example.com',
            'password': 'Str0ngPass!',
        }, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data['success'])
        self.assertIn('access', response.data['tokens'])
        self.assertIn('refresh', response.data['tokens'])
        self.assertEqual(response.data['user']['email'], 'rider@example.com')

    def test_login_unverified_email_forbidden(self):
        make_user('new@example.com', verified=False)

        response = self.client.post('/api/auth/login/', {
            'email': 'new@example.com',
            'password': 'Str0ngPass!',
        }, format='json')

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data['code'], 'email_not_verified')

    def test_login_suspended_forbidden(self):
        make_user('bad@example.com', status=User.STATUS_SUSPENDED)

        response = self.client.post('/api/auth/login/', {
            'email': 'bad@example.com',
            'password': 'Str0ngPass!',
        }, format='json')

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data['code'], 'account_suspended')

    def test_login_wrong_password(self):
        make_user('rider@example.com')

        response = self.client.post('/api/auth/login/', {
            'email': 'rider@example.com',
            'password': 'wrong',
        }, format='json')

        self.assertEqual(response.status_code, 401)

    def test_wrong_password_hides_account_state(self):
        make_user('bad@example.com', status=User.STATUS_SUSPENDED)
        make_user('new@example.com', verified=False)

        for email in ('bad@example.com', 'new@example.com', 'nobody@example.com'):
            response = self.client.post('/api/auth/login/', {
                'email': email,
                'password': 'wrong',
            }, format='json')

            self.assertEqual(response.status_code, 401)
            self.assertEqual(response.data, {'success': False, 'error': 'Invalid credentials'})

    def test_login_rate_limited(self):
        for _ in range(10):
            self.client.post('/api/auth/login/', {
                'email': 'nobody@example.com',
                'password': 'x',
            }, format='json')

        response = self.client.post('/api/auth/login/', {
            'email': 'nobody@example.com',
            'password': 'x',
        }, format='json')

        self.assertEqual(response.status_code, 429)


class MeAPITestCase(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.user = make_user('rider@example.com', first_name='Kasun')
        self.client.force_authenticate(user=self.user)

    def test_get_me(self):
        response = self.client.get('/api/auth/me/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['uuid'], str(self.user.public_id))
        self.assertEqual(response.data['name'], 'Kasun')
        self.assertFalse(response.data['has_partner_profile'])

    def test_update_preferences_merges(self):
        response = self.client.patch('/api/auth/me/', {
            'phone': '+94771234567',
            'notification_preferences': {'promotions': True},
        }, format='json')

        self.assertEqual(response.status_code, 200)
        self.user.refresh_from_db()
        self.assertEqual(self.user.phone, '+94771234567')
        self.assertTrue(self.user.notification_preferences['promotions'])
        self.assertTrue(self.user.notification_preferences['booking_updates'])

    def test_unknown_preference_rejected(self):
        response = self.client.patch('/api/auth/me/', {
            'notification_preferences': {'carrier_pigeon': True},
        }, format='json')

        self.assertEqual(response.status_code, 400)

    def test_me_requires_auth(self):
        response = APIClient().get('/api/auth/me/')
        self.assertEqual(response.status_code, 401)


class ChangePasswordAPITestCase(TestCase):

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.user = make_user('rider@example.com')

    def login(self, password='Str0ngPass!'):
        return self.client.post('/api/auth/login/', {
            'email': 'rider@example.com',
            'password': password,
        }, format='json')

    def test_change_password_revokes_old_refresh_tokens(self):
        old_refresh = self.login().data['tokens']['refresh']
        self.client.force_authenticate(user=self.user)

        response = self.client.post('/api/auth/change-password/', {
            'current_password': 'Str0ngPass!',
            'new_password': 'N3wer-Pass!',
        }, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertIn('refresh', response.data['tokens'])
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('N3wer-Pass!'))

        self.client.force_authenticate(user=None)
        self.assertEqual(
            self.client.post('/api/auth/token/refresh/', {'refresh': old_refresh}, format='json').status_code,
            401,
        )
        self.assertEqual(self.login().status_code, 401)
        self.assertEqual(self.login('N3wer-Pass!').status_code, 200)

    def test_wrong_current_password(self):
        self.client.force_authenticate(user=self.user)

        response = self.client.post('/api/auth/change-password/', {
            'current_password': 'guess',
            'new_password': 'N3wer-Pass!',
        }, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertIn('current_password', response.data['errors'])
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('Str0ngPass!'))

    def test_new_password_must_differ(self):
        self.client.force_authenticate(user=self.user)

        response = self.client.post('/api/auth/change-password/', {
            'current_password': 'Str0ngPass!',
            'new_password': 'Str0ngPass!',
        }, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertIn('new_password', response.data['errors'])

    def test_requires_auth(self):
        response = self.client.post('/api/auth/change-password/', {
            'current_password': 'Str0ngPass!',
            'new_password': 'N3wer-Pass!',
        }, format='json')

        self.assertEqual(response.status_code, 401)


class AdminUserAPITestCase(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.admin = make_user('admin@example.com', role=User.ROLE_ADMIN)
        self.customer = make_user('rider@example.com')
        self.partner = make_user('shop@example.com', role=User.ROLE_PARTNER)

    def test_list_users_filtered_by_role(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.get('/api/admin/users/?role=partner')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['email'], 'shop@example.com')

    def test_suspend_user_deactivates(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.patch(
            f'/api/admin/users/{self.customer.public_id}/',
            {'status': 'suspended'},
            format='json'
        )

        self.assertEqual(response.status_code, 200)
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.status, User.STATUS_SUSPENDED)
        self.assertFalse(self.customer.is_active)

    def test_admin_cannot_update_self(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.patch(
            f'/api/admin/users/{self.admin.public_id}/',
            {'role': 'user'},
            format='json'
        )

        self.assertEqual(response.status_code, 400)

    def test_non_admin_forbidden(self):
        self.client.force_authenticate(user=self.customer)

        response = self.client.get('/api/admin/users/')

        self.assertEqual(response.status_code, 403)


class ConfirmEmailViewTestCase(TestCase):

    def test_invalid_key_redirects_to_failure(self):
        response = self.client.get('/accounts/confirm-email/not-a-real-key/')

        self.assertEqual(response.status_code, 302)
        self.assertIn('status=failed', response['Location'])
