from unittest.mock import MagicMock, patch

import requests
from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from api.exceptions import ExternalServiceError
from applications.models import Application
from job.models import Job
from .models import Company
from .services.cnpj_service import CnpjService, clean_cnpj, is_valid_cnpj
from .services.company_service import company_for, get_system_company

User = get_user_model()

VALID_CNPJ = '11.222.333/0001-81'

RECEITA_ACTIVE = {
    'status': 'OK',
    'situacao': 'ATIVA',
    'nome': 'ACME COMERCIO LTDA',
    'logradouro': 'RUA A',
    'numero': '1',
    'bairro': 'CENTRO',
    'municipio': 'PONTA GROSSA',
    'uf': 'PR',
    'atividade_principal': [{'text': 'Comércio varejista'}],
}


def mock_response(payload):
    response = MagicMock()
    response.json.return_value = payload
    return response


class CnpjChecksumTests(SimpleTestCase):
    def test_clean(self):
        self.assertEqual(clean_cnpj(VALID_CNPJ), '11222333000181')
        self.assertEqual(clean_cnpj(None), '')

    def test_valid_number(self):
        self.assertTrue(is_valid_cnpj(VALID_CNPJ))
        self.assertTrue(is_valid_cnpj('11222333000181'))

    def test_wrong_check_digit(self):
        self.assertFalse(is_valid_cnpj('11.222.333/0001-82'))

    def test_repeated_digits(self):
        self.assertFalse(is_valid_cnpj('11111111111111'))

    def test_wrong_length(self):
        self.assertFalse(is_valid_cnpj('1122233300018'))


class CnpjServiceTests(SimpleTestCase):
    def setUp(self):
        self.service = CnpjService(base_url='https://receitaws.example/v1/cnpj/', timeout=5)

    def test_short_number_skips_lookup(self):
        with patch('companies.services.cnpj_service.requests.get') as mock_get:
            result = self.service.lookup('123')
        self.assertEqual(result, {'valid': False, 'message': 'CNPJ deve ter 14 dígitos'})
        mock_get.assert_not_called()

    def test_bad_checksum_skips_lookup(self):
        with patch('companies.services.cnpj_service.requests.get') as mock_get:
            result = self.service.lookup('11.222.333/0001-82')
        self.assertFalse(result['valid'])
        mock_get.assert_not_called()

    @patch('companies.services.cnpj_service.requests.get')
    def test_active_company(self, mock_get):
        mock_get.return_value = mock_response(RECEITA_ACTIVE)
        result = self.service.lookup(VALID_CNPJ)
        self.assertTrue(result['valid'])
        self.assertEqual(result['company_data']['name'], 'ACME COMERCIO LTDA')
        self.assertEqual(result['company_data']['address'], 'RUA A, 1 - CENTRO, PONTA GROSSA - PR')
        self.assertEqual(result['company_data']['activity'], 'Comércio varejista')
        self.assertEqual(mock_get.call_args[0][0], 'https://receitaws.example/v1/cnpj/11222333000181')

    @patch('companies.services.cnpj_service.requests.get')
    def test_not_found(self, mock_get):
        mock_get.return_value = mock_response({'status': 'ERROR', 'message': 'CNPJ inválido'})
        result = self.service.lookup(VALID_CNPJ)
        self.assertEqual(result, {'valid': False, 'message': 'CNPJ não encontrado na Receita Federal'})

    @patch('companies.services.cnpj_service.requests.get')
    def test_inactive_company(self, mock_get):
        mock_get.return_value = mock_response({**RECEITA_ACTIVE, 'situacao': 'BAIXADA'})
        result = self.service.lookup(VALID_CNPJ)
        self.assertFalse(result['valid'])
        self.assertIn('BAIXADA', result['message'])

    @patch('companies.services.cnpj_service.requests.get')
    def test_lookup_failure(self, mock_get):
        mock_get.side_effect = requests.exceptions.Timeout('timed out')
        with self.assertRaises(ExternalServiceError):
            self.service.lookup(VALID_CNPJ)

    @patch('companies.services.cnpj_service.requests.get')
    def test_fail_open(self, mock_get):
        mock_get.side_effect = requests.exceptions.ConnectionError('offline')
        self.assertIsNone(self.service.lookup_fail_open(VALID_CNPJ))


class CompanyModelTests(TestCase):
    def setUp(self):
        self.owner = User.objects.create_user(email='rh@acme.com', password='testpass123')
        self.company = Company.objects.create(
            owner=self.owner, name='Acme', cnpj=VALID_CNPJ, email='rh@acme.com', phone='4299999999',
            address='Rua A, 1', sector='Tecnologia', legal_representative='Ana',
        )

    def test_defaults(self):
        self.assertEqual(self.company.status, Company.STATUS_PENDING)
        self.assertEqual(str(self.company), 'Acme')

    def test_company_for(self):
        self.assertEqual(company_for(self.owner), self.company)
        other = User.objects.create_user(email='outra@example.com', password='testpass123')
        self.assertIsNone(company_for(other))

    def test_system_company_is_created_once(self):
        first = get_system_company()
        second = get_system_company()
        self.assertEqual(first.pk, second.pk)
        self.assertEqual(first.cnpj, Company.SYSTEM_CNPJ)
        self.assertEqual(first.status, Company.STATUS_ACTIVE)
        self.assertIsNone(first.owner)
        self.assertEqual(Company.objects.filter(cnpj=Company.SYSTEM_CNPJ).count(), 1)

    def test_delete_removes_jobs_and_applications(self):
        job = Job.objects.create(company=self.company, title='Dev', description='desc', location='PG')
        Job.objects.create(company=self.company, title='Vendedor', description='desc', location='PG')
        for index in range(3):
            Application.objects.create(job=job, name=f'C{index}', email=f'c{index}@example.com', phone='42')

        self.company.delete()

        self.assertEqual(Job.objects.count(), 0)
        self.assertEqual(Application.objects.count(), 0)


class CompanyAPITests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_superuser(email='admin@vagaspg.com', password='adminpass123')
        self.owner = User.objects.create_user(email='rh@acme.com', password='testpass123')
        self.company = Company.objects.create(
            owner=self.owner, name='Acme', cnpj=VALID_CNPJ, email='rh@acme.com', phone='4299999999',
            address='Rua A, 1', sector='Tecnologia', legal_representative='Ana',
        )
        other_owner = User.objects.create_user(email='rh@padaria.com', password='testpass123')
        Company.objects.create(
            owner=other_owner, name='Padaria Central', cnpj='11.444.777/0001-61', email='rh@padaria.com',
            phone='4233334444', address='Rua B, 2', sector='Alimentação', legal_representative='Beto',
            status=Company.STATUS_ACTIVE,
        )

    def test_admin_lists_and_filters(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.get(reverse('company-list'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)

        response = self.client.get(reverse('company-list'), {'q': 'padaria'})
        self.assertEqual([company['name'] for company in response.data], ['Padaria Central'])

        response = self.client.get(reverse('company-list'), {'status': 'Pendente'})
        self.assertEqual([company['name'] for company in response.data], ['Acme'])

    def test_company_cannot_list(self):
        self.client.force_authenticate(user=self.owner)
        response = self.client.get(reverse('company-list'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_blocks_company(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(
            reverse('company-set-status', args=[self.company.pk]), {'status': 'Bloqueada'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.company.refresh_from_db()
        self.assertEqual(self.company.status, Company.STATUS_BLOCKED)

    def test_blocked_company_cannot_post(self):
        self.company.status = Company.STATUS_BLOCKED
        self.company.save()
        self.client.force_authenticate(user=self.owner)
        response = self.client.post(reverse('job-list'), {
            'title': 'Dev', 'description': 'desc', 'location': 'Ponta Grossa',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Job.objects.count(), 0)

    def test_mine(self):
        self.client.force_authenticate(user=self.owner)
        response = self.client.get(reverse('company-mine'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['company']['name'], 'Acme')
        self.assertEqual(response.data['company']['jobs_count'], 0)

    def test_owner_edit_cannot_change_status(self):
        self.client.force_authenticate(user=self.owner)
        response = self.client.patch(
            reverse('company-mine'), {'phone': '4288887777', 'status': 'Ativa'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.company.refresh_from_db()
        self.assertEqual(self.company.phone, '4288887777')
        self.assertEqual(self.company.status, Company.STATUS_PENDING)

    def test_owner_cannot_see_other_company(self):
        other = Company.objects.get(name='Padaria Central')
        self.client.force_authenticate(user=self.owner)
        response = self.client.get(reverse('company-detail', args=[other.pk]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    @patch('companies.services.cnpj_service.requests.get')
    def test_validate_cnpj_endpoint(self, mock_get):
        mock_get.return_value = mock_response(RECEITA_ACTIVE)
        response = self.client.post(reverse('validate_cnpj'), {'cnpj': VALID_CNPJ}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['valid'])
        self.assertEqual(response.data['company_data']['name'], 'ACME COMERCIO LTDA')

    @patch('companies.services.cnpj_service.requests.get')
    def test_validate_cnpj_unavailable(self, mock_get):
        mock_get.side_effect = requests.exceptions.ConnectionError('offline')
        response = self.client.post(reverse('validate_cnpj'), {'cnpj': VALID_CNPJ}, format='json')
        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertFalse(response.data['success'])
