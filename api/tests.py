from types import SimpleNamespace

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from api.exceptions import (
    ExternalServiceError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
    api_exception_handler,
)
from api.filters import (
    APPLICATION_SEARCH_FIELDS,
    PUBLIC_JOB_SEARCH_FIELDS,
    filter_jobs,
    filter_records,
    normalize_city,
)
from api.lifecycle import change_status
from applications.models import Application
from companies.models import Company
from job.models import Job

User = get_user_model()


def make_job(title, location, company_name='Acme', company_city='', **extra):
    company = SimpleNamespace(name=company_name, city=company_city)
    fields = {
        'title': title,
        'description': extra.pop('description', ''),
        'location': location,
        'company': company,
        'contract_type': 'CLT',
        'work_mode': 'Presencial',
        'status': 'Ativa',
    }
    fields.update(extra)
    return SimpleNamespace(**fields)


class FilterRecordsTests(SimpleTestCase):
    def setUp(self):
        self.jobs = [
            make_job('Desenvolvedor Full Stack', 'Centro, Ponta Grossa'),
            make_job('Auxiliar Administrativo', 'Curitiba', company_name='Mercado Bom', contract_type='PJ'),
            make_job('Vendedor', 'Oficinas', company_name='Loja PG', company_city='Ponta Grossa', work_mode='Remoto'),
        ]

    def test_empty_list_gives_empty_result(self):
        self.assertEqual(filter_records([], 'dev', PUBLIC_JOB_SEARCH_FIELDS), [])
        self.assertEqual(filter_jobs([], 'dev', city='curitiba'), [])

    def test_empty_query_and_any_selection_is_identity(self):
        result = filter_jobs(self.jobs, '', city='all', contract_type='all', work_mode=None)
        self.assertEqual(result, self.jobs)

    def test_search_is_case_insensitive(self):
        result = filter_records(self.jobs, 'desenvolvedor', PUBLIC_JOB_SEARCH_FIELDS)
        self.assertEqual([job.title for job in result], ['Desenvolvedor Full Stack'])

    def test_search_walks_joined_company(self):
        result = filter_records(self.jobs, 'mercado', PUBLIC_JOB_SEARCH_FIELDS)
        self.assertEqual([job.title for job in result], ['Auxiliar Administrativo'])

    def test_query_is_trimmed(self):
        result = filter_records(self.jobs, '  VENDEDOR  ', PUBLIC_JOB_SEARCH_FIELDS)
        self.assertEqual(len(result), 1)

    def test_selection_requires_exact_match(self):
        result = filter_records(self.jobs, '', PUBLIC_JOB_SEARCH_FIELDS, contract_type='PJ')
        self.assertEqual([job.title for job in result], ['Auxiliar Administrativo'])

    def test_selection_keyword_walks_dotted_path(self):
        result = filter_records(self.jobs, '', PUBLIC_JOB_SEARCH_FIELDS, company__name='Loja PG')
        self.assertEqual([job.title for job in result], ['Vendedor'])

    def test_unknown_category_matches_nothing(self):
        self.assertEqual(filter_records(self.jobs, '', PUBLIC_JOB_SEARCH_FIELDS, contract_type='Temporário'), [])

    def test_city_matches_location_when_company_city_blank(self):
        result = filter_jobs(self.jobs, '', city='ponta grossa')
        titles = [job.title for job in result]
        self.assertIn('Desenvolvedor Full Stack', titles)
        self.assertIn('Vendedor', titles)
        self.assertNotIn('Auxiliar Administrativo', titles)

    def test_city_slug_is_normalized(self):
        self.assertEqual(normalize_city('ponta-grossa'), 'ponta grossa')
        self.assertEqual(len(filter_jobs(self.jobs, '', city='ponta-grossa')), 2)
        self.assertEqual(len(filter_jobs(self.jobs, '', city='Curitiba')), 1)

    def test_application_search_fields(self):
        application = SimpleNamespace(
            name='Maria', email='maria@example.com',
            job=SimpleNamespace(title='Caixa', company=SimpleNamespace(name='Padaria Central')),
            status='Novo',
        )
        self.assertEqual(filter_records([application], 'padaria', APPLICATION_SEARCH_FIELDS), [application])
        self.assertEqual(filter_records([application], 'caixa', APPLICATION_SEARCH_FIELDS, status='Aprovado'), [])


class ExceptionHandlerTests(SimpleTestCase):
    def test_not_found_envelope(self):
        response = api_exception_handler(NotFoundError(), {})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data, {'success': False, 'error': 'Registro não encontrado.'})

    def test_field_errors_are_kept(self):
        response = api_exception_handler(ValidationError({'phone': ['Por favor, informe seu telefone']}), {})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['error'], 'Por favor, informe seu telefone')
        self.assertIn('phone', response.data['fields'])

    def test_external_service_is_503(self):
        response = api_exception_handler(ExternalServiceError('fora do ar'), {})
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.data['error'], 'fora do ar')

    def test_unexpected_error_is_generic_500(self):
        response = api_exception_handler(RuntimeError('boom'), {'view': None})
        self.assertEqual(response.status_code, 500)
        self.assertFalse(response.data['success'])
        self.assertNotIn('boom', response.data['error'])


class ChangeStatusTests(TestCase):
    def setUp(self):
        self.company = Company.objects.create(
            name='Acme', cnpj='11.222.333/0001-81', email='acme@example.com', phone='4299999999',
            address='Rua A, 1', sector='Tecnologia', legal_representative='Ana',
        )
        self.job = Job.objects.create(company=self.company, title='Dev', description='desc', location='Ponta Grossa')
        self.application = Application.objects.create(
            job=self.job, name='João', email='joao@example.com', phone='42999990000'
        )

    def test_rejects_value_outside_enum_before_write(self):
        with self.assertRaises(ValidationError):
            change_status(Job.objects.all(), self.job.pk, 'Arquivada')
        self.job.refresh_from_db()
        self.assertEqual(self.job.status, Job.STATUS_ACTIVE)

    def test_missing_record(self):
        with self.assertRaises(NotFoundError):
            change_status(Job.objects.all(), 9999, Job.STATUS_PAUSED)

    def test_scoped_queryset_hides_other_records(self):
        with self.assertRaises(NotFoundError):
            change_status(Job.objects.none(), self.job.pk, Job.STATUS_PAUSED)

    def test_persists_status(self):
        job = change_status(Job.objects.all(), self.job.pk, Job.STATUS_PAUSED)
        self.assertEqual(job.status, Job.STATUS_PAUSED)
        self.job.refresh_from_db()
        self.assertEqual(self.job.status, Job.STATUS_PAUSED)

    def test_any_member_accepted_by_default(self):
        change_status(Job.objects.all(), self.job.pk, Job.STATUS_CLOSED)
        job = change_status(Job.objects.all(), self.job.pk, Job.STATUS_ACTIVE)
        self.assertEqual(job.status, Job.STATUS_ACTIVE)

    @override_settings(STRICT_STATUS_TRANSITIONS=True)
    def test_strict_mode_rejects_illegal_edge(self):
        change_status(Job.objects.all(), self.job.pk, Job.STATUS_CLOSED)
        with self.assertRaises(InvalidTransitionError):
            change_status(Job.objects.all(), self.job.pk, Job.STATUS_ACTIVE)

    @override_settings(STRICT_STATUS_TRANSITIONS=True)
    def test_strict_mode_company_lifecycle(self):
        company = change_status(Company.objects.all(), self.company.pk, Company.STATUS_ACTIVE)
        self.assertEqual(company.status, Company.STATUS_ACTIVE)
        company = change_status(Company.objects.all(), self.company.pk, Company.STATUS_BLOCKED)
        self.assertEqual(company.status, Company.STATUS_BLOCKED)
        company = change_status(Company.objects.all(), self.company.pk, Company.STATUS_ACTIVE)
        self.assertEqual(company.status, Company.STATUS_ACTIVE)
        with self.assertRaises(InvalidTransitionError):
            change_status(Company.objects.all(), self.company.pk, Company.STATUS_PENDING)

    @override_settings(STRICT_STATUS_TRANSITIONS=True)
    def test_strict_mode_pending_company_cannot_be_blocked(self):
        with self.assertRaises(InvalidTransitionError):
            change_status(Company.objects.all(), self.company.pk, Company.STATUS_BLOCKED)
        self.company.refresh_from_db()
        self.assertEqual(self.company.status, Company.STATUS_PENDING)

    @override_settings(STRICT_STATUS_TRANSITIONS=True)
    def test_strict_mode_allows_application_jumps(self):
        application = change_status(Application.objects.all(), self.application.pk, Application.STATUS_APPROVED)
        self.assertEqual(application.status, Application.STATUS_APPROVED)

    def test_last_write_wins(self):
        first = Application.objects.get(pk=self.application.pk)
        second = Application.objects.get(pk=self.application.pk)
        change_status(Application.objects.all(), first.pk, Application.STATUS_CONTACTED)
        change_status(Application.objects.all(), second.pk, Application.STATUS_APPROVED)
        self.application.refresh_from_db()
        self.assertEqual(self.application.status, Application.STATUS_APPROVED)


class StatsAndActivationTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_superuser(email='admin@vagaspg.com', password='adminpass123')
        self.owner = User.objects.create_user(email='rh@acme.com', password='testpass123')
        self.company = Company.objects.create(
            owner=self.owner, name='Acme', cnpj='11.222.333/0001-81', email='rh@acme.com',
            phone='4299999999', address='Rua A, 1', city='Ponta Grossa', sector='Tecnologia',
            legal_representative='Ana',
        )
        self.job = Job.objects.create(company=self.company, title='Dev', description='desc', location='Centro')
        Application.objects.create(job=self.job, name='João', email='joao@example.com', phone='42999990000')
        Application.objects.create(
            job=self.job, name='Maria', email='maria@example.com', phone='42999990001',
            status=Application.STATUS_APPROVED,
        )

    def test_company_stats(self):
        self.client.force_authenticate(user=self.owner)
        response = self.client.get(reverse('company_stats'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_jobs'], 1)
        self.assertEqual(response.data['active_jobs'], 1)
        self.assertEqual(response.data['total_applications'], 2)
        self.assertEqual(response.data['applications_by_status']['Novo'], 1)
        self.assertEqual(response.data['applications_by_status']['Aprovado'], 1)

    def test_admin_stats_requires_admin(self):
        self.client.force_authenticate(user=self.owner)
        response = self.client.get(reverse('admin_stats'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(response.data['success'])

    def test_admin_stats(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.get(reverse('admin_stats'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_companies'], 1)
        self.assertEqual(response.data['companies_by_status']['Pendente'], 1)
        self.assertEqual(response.data['total_applications'], 2)

    def test_admin_activation_then_public_listing(self):
        self.company.status = Company.STATUS_PENDING
        self.company.save()
        self.job.status = Job.STATUS_PAUSED
        self.job.save()

        self.client.force_authenticate(user=self.admin)
        response = self.client.post(
            reverse('company-set-status', args=[self.company.pk]), {'status': 'Ativa'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['company']['status'], 'Ativa')

        response = self.client.post(reverse('job-set-status', args=[self.job.pk]), {'status': 'Ativa'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        self.client.force_authenticate(user=None)
        response = self.client.get(reverse('job-list'), {'city': 'ponta-grossa'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([job['title'] for job in response.data], ['Dev'])

    def test_invalid_status_envelope(self):
        self.client.force_authenticate(user=self.owner)
        response = self.client.post(reverse('job-set-status', args=[self.job.pk]), {'status': 'Arquivada'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])
        self.assertIn('status', response.data['fields'])
