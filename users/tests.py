from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.test import APITestCase

from api.exceptions import ValidationError
from companies.models import Company
from users.models import Profile
from users.services.auth_service import sign_up

User = get_user_model()

REGISTRATION = {
    'email': 'RH@Acme.com',
    'password': 'testpass123',
    'name': 'Acme Comércio',
    'cnpj': '11.222.333/0001-81',
    'phone': '(42) 3222-1100',
    'address': 'Rua A, 1',
    'city': 'Ponta Grossa',
    'sector': 'Comércio',
    'legal_representative': 'Ana Souza',
}


class ProfileManagerTests(TestCase):
    def test_create_user(self):
        user = User.objects.create_user(email='test@example.com', password='testpass123')
        self.assertEqual(user.email, 'test@example.com')
        self.assertTrue(user.check_password('testpass123'))
        self.assertEqual(user.role, Profile.ROLE_COMPANY)
        self.assertFalse(user.is_admin)
        self.assertEqual(str(user), 'test@example.com (company)')

    def test_create_user_requires_email(self):
        with self.assertRaises(ValueError):
            User.objects.create_user(email='', password='testpass123')

    def test_create_superuser(self):
        admin = User.objects.create_superuser(email='admin@vagaspg.com', password='adminpass123')
        self.assertTrue(admin.is_staff)
        self.assertTrue(admin.is_superuser)
        self.assertTrue(admin.is_admin)

    def test_create_superuser_flags(self):
        with self.assertRaises(ValueError):
            User.objects.create_superuser(email='admin@vagaspg.com', password='x', is_staff=False)


@patch('users.services.auth_service.CnpjService.lookup_fail_open')
class SignUpTests(TestCase):
    def test_creates_account_and_active_company(self, mock_lookup):
        mock_lookup.return_value = {'valid': True, 'message': 'CNPJ válido e empresa ativa'}

        profile, company, token = sign_up(dict(REGISTRATION))

        self.assertEqual(profile.email, 'rh@acme.com')
        self.assertEqual(company.owner, profile)
        self.assertEqual(company.email, 'rh@acme.com')
        self.assertEqual(company.status, Company.STATUS_ACTIVE)
        self.assertEqual(company.name, 'Acme Comércio')
        self.assertEqual(token.user, profile)
        mock_lookup.assert_called_once_with('11.222.333/0001-81')

    def test_lookup_outage_does_not_block(self, mock_lookup):
        mock_lookup.return_value = None
        profile, company, _ = sign_up(dict(REGISTRATION))
        self.assertIsNotNone(profile.pk)
        self.assertIsNotNone(company.pk)

    def test_duplicate_email(self, mock_lookup):
        sign_up(dict(REGISTRATION))
        with self.assertRaises(ValidationError) as ctx:
            sign_up({**REGISTRATION, 'email': 'rh@acme.com'})
        self.assertIn('email', ctx.exception.detail)
        self.assertEqual(Company.objects.count(), 1)

    def test_missing_fields(self, mock_lookup):
        with self.assertRaises(ValidationError) as ctx:
            sign_up({**REGISTRATION, 'sector': ' ', 'phone': ''})
        self.assertIn('sector', ctx.exception.detail)
        self.assertIn('phone', ctx.exception.detail)
        self.assertEqual(Profile.objects.count(), 0)
        mock_lookup.assert_not_called()


@patch('users.services.auth_service.CnpjService.lookup_fail_open', return_value=None)
class AuthAPITests(APITestCase):
    def test_register(self, mock_lookup):
        response = self.client.post(reverse('register'), REGISTRATION, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['user']['role'], 'company')
        self.assertEqual(response.data['company']['status'], Company.STATUS_ACTIVE)
        self.assertTrue(Token.objects.filter(key=response.data['token']).exists())

    def test_register_cannot_pick_role(self, mock_lookup):
        response = self.client.post(reverse('register'), {**REGISTRATION, 'role': 'admin'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(Profile.objects.get(email='rh@acme.com').is_admin)

    def test_register_short_password(self, mock_lookup):
        response = self.client.post(reverse('register'), {**REGISTRATION, 'password': '123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('password', response.data['fields'])

    def test_login_me_logout(self, mock_lookup):
        self.client.post(reverse('register'), REGISTRATION, format='json')

        response = self.client.post(
            reverse('login'), {'email': 'rh@acme.com', 'password': 'testpass123'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        token = response.data['token']

        self.client.logout()
        self.client.credentials(HTTP_AUTHORIZATION=f"Token {token}")
        response = self.client.get(reverse('me'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['email'], 'rh@acme.com')
        self.assertEqual(response.data['company']['name'], 'Acme Comércio')

        response = self.client.post(reverse('logout'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Token.objects.filter(key=token).exists())

    def test_mixed_case_admin_can_login(self, mock_lookup):
        admin = User.objects.create_superuser(email='Admin@VagasPG.com', password='adminpass123')
        self.assertEqual(admin.email, 'admin@vagaspg.com')
        response = self.client.post(
            reverse('login'), {'email': 'Admin@vagaspg.com', 'password': 'adminpass123'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['role'], 'admin')

    def test_login_wrong_password(self, mock_lookup):
        User.objects.create_user(email='rh@acme.com', password='testpass123')
        response = self.client.post(
            reverse('login'), {'email': 'rh@acme.com', 'password': 'errada'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Email ou senha inválidos.')

    def test_me_requires_login(self, mock_lookup):
        response = self.client.get(reverse('me'))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
