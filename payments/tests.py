from decimal import Decimal
from unittest.mock import MagicMock, patch

import requests
from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from api.exceptions import ExternalServiceError, ValidationError
from companies.models import Company
from job.models import Job
from payments.models import Payment
from payments.services.mercadopago_service import MercadoPagoService
from payments.services.payment_service import create_paid_job, handle_webhook

User = get_user_model()

PREFERENCE = {
    'id': 'pref-123',
    'init_point': 'https://www.mercadopago.com.br/checkout/v1/redirect?pref_id=pref-123',
}


def make_company(email='rh@acme.com', owner=None):
    return Company.objects.create(
        owner=owner, name='Acme', cnpj='11.222.333/0001-81', email=email, phone='4299999999',
        address='Rua A, 1', city='Ponta Grossa', sector='Tecnologia', legal_representative='Ana',
        status=Company.STATUS_ACTIVE,
    )


JOB_FIELDS = {'title': 'Vendedor', 'description': 'Vendas no balcão', 'location': 'Ponta Grossa'}


@override_settings(MERCADOPAGO_ACCESS_TOKEN='test-token')
class CreatePaidJobTests(TestCase):
    @patch('payments.services.payment_service.MercadoPagoService.create_preference')
    def test_regular_company_gets_checkout(self, mock_preference):
        mock_preference.return_value = PREFERENCE
        company = make_company()

        result = create_paid_job(company, dict(JOB_FIELDS))

        self.assertFalse(result['is_exempt'])
        self.assertEqual(result['checkout_url'], PREFERENCE['init_point'])
        self.assertEqual(result['preference_id'], 'pref-123')

        job = Job.objects.get(pk=result['job'].pk)
        payment = Payment.objects.get(pk=result['payment'].pk)
        self.assertEqual(job.status, Job.STATUS_PAUSED)
        self.assertEqual(job.payment_status, Payment.STATUS_PENDING)
        self.assertEqual(job.payment_id, payment.pk)
        self.assertEqual(payment.status, Payment.STATUS_PENDING)
        self.assertEqual(payment.amount, Decimal('11.90'))
        self.assertEqual(mock_preference.call_args.kwargs['external_reference'], payment.pk)

    @patch('payments.services.payment_service.MercadoPagoService.create_preference')
    def test_exempt_company_skips_checkout(self, mock_preference):
        company = make_company(email='VAGAS@vagas.com')

        result = create_paid_job(company, dict(JOB_FIELDS))

        self.assertTrue(result['is_exempt'])
        self.assertIsNone(result['payment'])
        self.assertIsNone(result['checkout_url'])
        self.assertEqual(result['job'].status, Job.STATUS_ACTIVE)
        self.assertEqual(result['job'].payment_status, Payment.STATUS_APPROVED)
        self.assertEqual(Payment.objects.count(), 0)
        mock_preference.assert_not_called()

    @patch('payments.services.payment_service.MercadoPagoService.create_preference')
    def test_checkout_failure_rolls_back(self, mock_preference):
        mock_preference.side_effect = ExternalServiceError('Erro no sistema de pagamento: 500')
        company = make_company()

        with self.assertRaises(ExternalServiceError):
            create_paid_job(company, dict(JOB_FIELDS))

        self.assertEqual(Job.objects.count(), 0)
        self.assertEqual(Payment.objects.count(), 0)


class WebhookTests(TestCase):
    def setUp(self):
        self.company = make_company()
        self.job = Job.objects.create(
            company=self.company, title='Vendedor', description='desc', location='PG',
            status=Job.STATUS_PAUSED, payment_status=Payment.STATUS_PENDING,
        )
        self.payment = Payment.objects.create(company=self.company, job=self.job, preference_id='pref-123')
        self.job.payment = self.payment
        self.job.save()

    def notification(self, processor_id='987'):
        return {'type': 'payment', 'data': {'id': processor_id}}

    @patch('payments.services.payment_service.MercadoPagoService.get_payment')
    def test_approval_activates_job(self, mock_get_payment):
        mock_get_payment.return_value = {
            'status': 'approved', 'external_reference': str(self.payment.pk)
        }

        result = handle_webhook(self.notification())

        self.assertTrue(result['handled'])
        self.payment.refresh_from_db()
        self.job.refresh_from_db()
        self.assertEqual(self.payment.status, Payment.STATUS_APPROVED)
        self.assertEqual(self.payment.processor_payment_id, '987')
        self.assertIsNotNone(self.payment.paid_at)
        self.assertEqual(self.job.status, Job.STATUS_ACTIVE)
        self.assertEqual(self.job.payment_status, Payment.STATUS_APPROVED)

    @patch('payments.services.payment_service.MercadoPagoService.get_payment')
    def test_rejection_keeps_job_paused(self, mock_get_payment):
        mock_get_payment.return_value = {
            'status': 'rejected', 'external_reference': str(self.payment.pk)
        }

        handle_webhook(self.notification())

        self.payment.refresh_from_db()
        self.job.refresh_from_db()
        self.assertEqual(self.payment.status, Payment.STATUS_REJECTED)
        self.assertIsNone(self.payment.paid_at)
        self.assertEqual(self.job.status, Job.STATUS_PAUSED)
        self.assertEqual(self.job.payment_status, Payment.STATUS_REJECTED)

    @patch('payments.services.payment_service.MercadoPagoService.get_payment')
    def test_repeated_notification_is_ignored(self, mock_get_payment):
        mock_get_payment.return_value = {
            'status': 'approved', 'external_reference': str(self.payment.pk)
        }
        handle_webhook(self.notification())
        result = handle_webhook(self.notification())
        self.assertFalse(result['handled'])

    @patch('payments.services.payment_service.MercadoPagoService.get_payment')
    def test_settled_payment_does_not_change(self, mock_get_payment):
        self.payment.status = Payment.STATUS_REJECTED
        self.payment.save()
        mock_get_payment.return_value = {
            'status': 'approved', 'external_reference': str(self.payment.pk)
        }
        result = handle_webhook(self.notification())
        self.assertFalse(result['handled'])
        self.job.refresh_from_db()
        self.assertEqual(self.job.status, Job.STATUS_PAUSED)

    @patch('payments.services.payment_service.MercadoPagoService.get_payment')
    def test_pending_status_is_not_applied(self, mock_get_payment):
        mock_get_payment.return_value = {'status': 'in_process', 'external_reference': str(self.payment.pk)}
        result = handle_webhook(self.notification())
        self.assertFalse(result['handled'])

    @patch('payments.services.payment_service.MercadoPagoService.get_payment')
    def test_unknown_payment(self, mock_get_payment):
        mock_get_payment.return_value = {'status': 'approved', 'external_reference': '99999'}
        result = handle_webhook(self.notification())
        self.assertFalse(result['handled'])

    @patch('payments.services.payment_service.MercadoPagoService.get_payment')
    def test_other_notification_types(self, mock_get_payment):
        result = handle_webhook({'type': 'merchant_order', 'data': {'id': '1'}})
        self.assertEqual(result, {'received': True, 'handled': False})
        mock_get_payment.assert_not_called()

    def test_missing_payment_id(self):
        with self.assertRaises(ValidationError):
            handle_webhook({'type': 'payment', 'data': {}})


class MercadoPagoServiceTests(SimpleTestCase):
    def test_missing_token(self):
        service = MercadoPagoService(api_url='https://api.mercadopago.com')
        service.access_token = ''
        with self.assertRaises(ExternalServiceError):
            service.get_payment('1')

    @patch('payments.services.mercadopago_service.requests.request')
    def test_preference_payload(self, mock_request):
        mock_request.return_value = MagicMock(status_code=201)
        mock_request.return_value.json.return_value = PREFERENCE
        company = MagicMock(email='rh@acme.com')
        company.name = 'Acme'

        service = MercadoPagoService(access_token='token', api_url='https://api.mercadopago.com/')
        result = service.create_preference('Vendedor', company, Decimal('11.90'), 42)

        self.assertEqual(result, PREFERENCE)
        method, endpoint = mock_request.call_args[0]
        self.assertEqual(method, 'POST')
        self.assertEqual(endpoint, 'https://api.mercadopago.com/checkout/preferences')
        self.assertIn('"external_reference": "42"', mock_request.call_args.kwargs['data'])
        self.assertIn('"unit_price": 11.9', mock_request.call_args.kwargs['data'])
        self.assertEqual(mock_request.call_args.kwargs['headers']['Authorization'], 'Bearer token')

    @patch('payments.services.mercadopago_service.requests.request')
    def test_http_error(self, mock_request):
        error_response = MagicMock(status_code=401, text='unauthorized')
        mock_request.return_value.raise_for_status.side_effect = requests.exceptions.HTTPError(
            response=error_response
        )
        service = MercadoPagoService(access_token='token', api_url='https://api.mercadopago.com')
        with self.assertRaises(ExternalServiceError) as ctx:
            service.get_payment('1')
        self.assertIn('401', str(ctx.exception.detail))

    @patch('payments.services.mercadopago_service.requests.request')
    def test_connection_error(self, mock_request):
        mock_request.side_effect = requests.exceptions.ConnectionError('offline')
        service = MercadoPagoService(access_token='token', api_url='https://api.mercadopago.com')
        with self.assertRaises(ExternalServiceError):
            service.get_payment('1')


@override_settings(MERCADOPAGO_ACCESS_TOKEN='test-token')
class PaymentAPITests(APITestCase):
    def setUp(self):
        self.owner = User.objects.create_user(email='rh@acme.com', password='testpass123')
        self.company = make_company(owner=self.owner)

    @patch('payments.services.payment_service.MercadoPagoService.create_preference')
    def test_create_payment(self, mock_preference):
        mock_preference.return_value = PREFERENCE
        self.client.force_authenticate(user=self.owner)
        response = self.client.post(reverse('create_payment'), JOB_FIELDS, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['checkout_url'], PREFERENCE['init_point'])
        self.assertEqual(response.data['job']['status'], Job.STATUS_PAUSED)
        self.assertEqual(response.data['payment']['status'], Payment.STATUS_PENDING)

    def test_create_payment_requires_login(self):
        response = self.client.post(reverse('create_payment'), JOB_FIELDS, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    @patch('payments.services.payment_service.MercadoPagoService.get_payment')
    def test_webhook_endpoint(self, mock_get_payment):
        job = Job.objects.create(
            company=self.company, title='Vendedor', description='desc', location='PG',
            status=Job.STATUS_PAUSED, payment_status=Payment.STATUS_PENDING,
        )
        payment = Payment.objects.create(company=self.company, job=job)
        mock_get_payment.return_value = {'status': 'approved', 'external_reference': str(payment.pk)}

        response = self.client.post(
            reverse('payment_webhook'), {'type': 'payment', 'data': {'id': '555'}}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['handled'])
        job.refresh_from_db()
        self.assertEqual(job.status, Job.STATUS_ACTIVE)
