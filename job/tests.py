from datetime import timedelta
from unittest.mock import MagicMock, patch

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from api.exceptions import ExternalServiceError, ExtractionParseError, ValidationError
from companies.models import Company
from job.models import Job
from job.services import ai_service
from job.services.ai_service import ExtractedJob, detect_external_contact, parse_gemini_response
from job.utils import add_benefit, format_time_ago, normalize_benefits, validate_text_field

User = get_user_model()


class BenefitTests(SimpleTestCase):
    def test_duplicate_benefit_is_ignored(self):
        benefits = add_benefit([], 'Vale Refeição')
        benefits = add_benefit(benefits, 'Vale Refeição')
        self.assertEqual(benefits, ['Vale Refeição'])

    def test_value_is_trimmed_and_blank_ignored(self):
        benefits = add_benefit(['Plano de Saúde'], '  Vale Transporte ')
        self.assertEqual(benefits, ['Plano de Saúde', 'Vale Transporte'])
        self.assertEqual(add_benefit(benefits, '   '), benefits)

    def test_original_list_untouched(self):
        benefits = ['Plano de Saúde']
        add_benefit(benefits, 'Vale Transporte')
        self.assertEqual(benefits, ['Plano de Saúde'])

    def test_normalize_keeps_insertion_order(self):
        self.assertEqual(
            normalize_benefits(['VR', 'Plano Odontológico', 'VR ', '', 'Gympass']),
            ['VR', 'Plano Odontológico', 'Gympass'],
        )


class TextHygieneTests(SimpleTestCase):
    def test_plain_text_passes(self):
        self.assertEqual(validate_text_field('Desenvolvedor "Python" d\'água'), [])

    def test_emoji_reported(self):
        self.assertEqual(len(validate_text_field('Vaga incrível 🚀')), 1)

    def test_typographic_quotes_reported(self):
        self.assertEqual(len(validate_text_field('Vaga “especial”')), 1)


class FormatTimeAgoTests(SimpleTestCase):
    def setUp(self):
        self.now = timezone.now()

    def test_minutes(self):
        self.assertEqual(format_time_ago(self.now - timedelta(minutes=1), now=self.now), '1 minuto')
        self.assertEqual(format_time_ago(self.now - timedelta(minutes=5), now=self.now), '5 minutos')

    def test_hours_and_days(self):
        self.assertEqual(format_time_ago(self.now - timedelta(hours=2), now=self.now), '2 horas')
        self.assertEqual(format_time_ago(self.now - timedelta(days=1), now=self.now), '1 dia')

    def test_old_dates_render_as_date(self):
        value = self.now - timedelta(days=45)
        self.assertEqual(format_time_ago(value, now=self.now), timezone.localtime(value).strftime('%d/%m/%Y'))


class ExtractedJobTests(SimpleTestCase):
    def test_defaults_for_missing_fields(self):
        job = ExtractedJob.from_payload({'title': 'Vendedor'})
        self.assertEqual(job.location, 'Ponta Grossa')
        self.assertEqual(job.contract_type, 'CLT')
        self.assertEqual(job.work_mode, 'Presencial')
        self.assertEqual(job.experience_level, 'Júnior')
        self.assertEqual(job.salary, 'A combinar')
        self.assertEqual(job.application_method, '')
        self.assertEqual(job.contact_info, '')
        self.assertFalse(job.has_external_application)

    def test_falsy_values_get_defaults(self):
        job = ExtractedJob.from_payload({'salary': '', 'location': None, 'contract_type': ''})
        self.assertEqual(job.salary, 'A combinar')
        self.assertEqual(job.location, 'Ponta Grossa')
        self.assertEqual(job.contract_type, 'CLT')

    def test_values_outside_enums_are_coerced(self):
        job = ExtractedJob.from_payload({'contract_type': 'Temporário', 'work_mode': 'remoto', 'experience_level': 'Sênior'})
        self.assertEqual(job.contract_type, 'CLT')
        self.assertEqual(job.work_mode, 'Remoto')
        self.assertEqual(job.experience_level, 'Sênior')

    def test_external_flag_needs_method_and_contact(self):
        job = ExtractedJob.from_payload({'has_external_application': True, 'application_method': 'WhatsApp'})
        self.assertFalse(job.has_external_application)

    def test_benefits_deduplicated(self):
        job = ExtractedJob.from_payload({'benefits': ['VR', 'VT', 'VR']})
        self.assertEqual(job.benefits, ['VR', 'VT'])

    def test_location_restricted_to_supported_cities(self):
        self.assertEqual(ExtractedJob(location='Londrina').restrict_location().location, 'Ponta Grossa')
        self.assertEqual(ExtractedJob(location='Curitiba - PR').restrict_location().location, 'Curitiba - PR')

    def test_merge_keeps_fields_extraction_left_empty(self):
        merged = ExtractedJob(title='Vendedor').merge_into({'title': 'Antigo', 'requirements': 'Ensino médio'})
        self.assertEqual(merged['title'], 'Vendedor')
        self.assertEqual(merged['requirements'], 'Ensino médio')


class ParseResponseTests(SimpleTestCase):
    def test_strips_code_fences(self):
        self.assertEqual(parse_gemini_response('```json\n{"title": "Dev"}\n```'), {'title': 'Dev'})

    def test_prose_raises(self):
        with self.assertRaises(ExtractionParseError):
            parse_gemini_response('Desculpe, não encontrei nenhuma vaga nesta imagem.')


class ContactDetectionTests(SimpleTestCase):
    def test_phone_after_phrase(self):
        self.assertEqual(
            detect_external_contact('Interessados enviar currículo para (42) 99988-7766'),
            ('Telefone', '(42) 99988-7766'),
        )

    def test_whatsapp_mentioned(self):
        method, contact = detect_external_contact('Envie seu currículo para o WhatsApp 42 99988-7766')
        self.assertEqual(method, 'WhatsApp')
        self.assertIn('99988-7766', contact)

    def test_email_after_phrase(self):
        self.assertEqual(
            detect_external_contact('Enviar currículo para rh@empresa.com.br até sexta'),
            ('Email', 'rh@empresa.com.br'),
        )

    def test_no_phrase(self):
        self.assertIsNone(detect_external_contact('Ligue (42) 99988-7766'))


@override_settings(GEMINI_API_KEY='test-key')
class ExtractionServiceTests(SimpleTestCase):
    @patch('job.services.ai_service.generate_content')
    def test_phone_from_pasted_text(self, mock_generate):
        mock_generate.return_value = '{"title": "Auxiliar de Produção", "contact_info": "", "application_method": ""}'
        job = ai_service.extract_job_from_text(
            'Vaga Auxiliar de Produção. Interessados enviar currículo para (42) 99988-7766'
        )
        self.assertTrue(job.has_external_application)
        self.assertIn('99988-7766', job.contact_info)
        self.assertEqual(job.location, 'Ponta Grossa')

    @patch('job.services.ai_service.generate_content')
    def test_model_contact_is_kept(self, mock_generate):
        mock_generate.return_value = (
            '{"title": "Caixa", "application_method": "Email", "contact_info": "vagas@loja.com", '
            '"has_external_application": true}'
        )
        job = ai_service.extract_job_from_text('Enviar currículo para (42) 99988-7766')
        self.assertEqual(job.contact_info, 'vagas@loja.com')
        self.assertEqual(job.application_method, 'Email')

    @patch('job.services.ai_service.generate_content')
    def test_non_json_reply(self, mock_generate):
        mock_generate.return_value = 'Não consegui entender o texto.'
        with self.assertRaises(ExtractionParseError):
            ai_service.extract_job_from_text('texto qualquer')

    def test_blank_text_rejected(self):
        with self.assertRaises(ValidationError):
            ai_service.extract_job_from_text('   ')

    @patch('job.services.ai_service.generate_content')
    def test_image_location_whitelist(self, mock_generate):
        mock_generate.return_value = '{"title": "Garçom", "location": "São Paulo"}'
        job = ai_service.extract_job_from_image(b'fake-image', 'image/png')
        self.assertEqual(job.location, 'Ponta Grossa')

    @patch('job.services.ai_service.get_genai_client')
    def test_api_failure_is_external_error(self, mock_client):
        mock_client.return_value.models.generate_content.side_effect = Exception('503 UNAVAILABLE')
        with self.assertRaises(ExternalServiceError):
            ai_service.generate_content('prompt')

    @patch('job.services.ai_service.get_genai_client')
    def test_empty_candidate_is_external_error(self, mock_client):
        mock_client.return_value.models.generate_content.return_value = MagicMock(text='')
        with self.assertRaises(ExternalServiceError):
            ai_service.generate_content('prompt')

    @override_settings(GEMINI_API_KEY='')
    def test_missing_key(self):
        with self.assertRaises(ExternalServiceError):
            ai_service.get_genai_client()

    @patch('job.services.ai_service.generate_content')
    def test_job_description(self, mock_generate):
        mock_generate.return_value = '  Venha fazer parte do nosso time!  '
        description = ai_service.generate_job_description('Vendedor', 'Loja PG', 'Ensino médio')
        self.assertEqual(description, 'Venha fazer parte do nosso time!')
        self.assertIn('Vendedor', mock_generate.call_args[0][0])


class JobModelTests(TestCase):
    def setUp(self):
        self.company = Company.objects.create(
            name='Acme', cnpj='11.222.333/0001-81', email='acme@example.com', phone='4299999999',
            address='Rua A, 1', sector='Tecnologia', legal_representative='Ana',
        )

    def test_external_application_requires_contact(self):
        job = Job(company=self.company, title='Dev', description='desc', location='Curitiba',
                  has_external_application=True, application_method='WhatsApp')
        with self.assertRaises(DjangoValidationError):
            job.full_clean()

    def test_defaults(self):
        job = Job.objects.create(company=self.company, title='Dev', description='desc', location='Curitiba')
        self.assertEqual(job.status, 'Ativa')
        self.assertEqual(job.benefits, [])
        self.assertIsNone(job.payment_status)


class JobTests(APITestCase):

    def setUp(self):
        self.owner = User.objects.create_user(email='rh@acme.com', password='testpass123')
        self.company = Company.objects.create(
            owner=self.owner, name='Acme', cnpj='11.222.333/0001-81', email='rh@acme.com',
            phone='4299999999', address='Rua A, 1', city='Ponta Grossa', sector='Tecnologia',
            legal_representative='Ana', status=Company.STATUS_ACTIVE,
        )
        self.admin = User.objects.create_superuser(email='admin@vagaspg.com', password='adminpass123')
        self.data = {
            "title": "Desenvolvedor Python",
            "description": "Desenvolver APIs",
            "location": "Centro, Ponta Grossa",
            "benefits": ["Vale Refeição", "Vale Refeição", " "],
        }

    def test_create_job(self):
        self.client.force_authenticate(user=self.owner)
        response = self.client.post(reverse("job-list"), self.data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Job.objects.count(), 1)
        job = Job.objects.get()
        self.assertEqual(job.company, self.company)
        self.assertEqual(job.benefits, ["Vale Refeição"])

    def test_anonymous_cannot_create(self):
        response = self.client.post(reverse("job-list"), self.data, format='json')
        self.assertIn(response.status_code, [status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN])
        self.assertEqual(Job.objects.count(), 0)

    def test_admin_without_company_uses_system_company(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(reverse("job-list"), self.data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Job.objects.get().company.cnpj, Company.SYSTEM_CNPJ)

    def test_emoji_rejected(self):
        self.client.force_authenticate(user=self.owner)
        response = self.client.post(reverse("job-list"), {**self.data, "title": "Vaga 🚀"}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('title', response.data['fields'])

    def test_external_application_needs_contact(self):
        self.client.force_authenticate(user=self.owner)
        response = self.client.post(
            reverse("job-list"),
            {**self.data, "has_external_application": True, "application_method": "WhatsApp"},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('contact_info', response.data['fields'])

    def test_list_jobs_only_active(self):
        Job.objects.create(company=self.company, title="Ativa", description="desc", location="Ponta Grossa")
        Job.objects.create(company=self.company, title="Pausada", description="desc", location="Ponta Grossa",
                           status=Job.STATUS_PAUSED)
        response = self.client.get(reverse("job-list"), format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([job['title'] for job in response.data], ["Ativa"])

    def test_list_filters(self):
        Job.objects.create(company=self.company, title="Desenvolvedor Full Stack", description="desc",
                           location="Curitiba", contract_type='PJ')
        Job.objects.create(company=self.company, title="Vendedor", description="desc", location="Oficinas")
        response = self.client.get(reverse("job-list"), {'q': 'desenvolvedor', 'contract_type': 'PJ'})
        self.assertEqual([job['title'] for job in response.data], ["Desenvolvedor Full Stack"])
        response = self.client.get(reverse("job-list"), {'city': 'curitiba'})
        self.assertEqual([job['title'] for job in response.data], ["Desenvolvedor Full Stack"])

    def test_manage_lists_own_jobs(self):
        other_owner = User.objects.create_user(email='rh@outra.com', password='testpass123')
        other = Company.objects.create(
            owner=other_owner, name='Outra', cnpj='00.000.000/0002-00', email='rh@outra.com',
            phone='4199999999', address='Rua B', sector='Varejo', legal_representative='Bia',
        )
        Job.objects.create(company=self.company, title="Minha", description="desc", location="PG",
                           status=Job.STATUS_PAUSED)
        Job.objects.create(company=other, title="Alheia", description="desc", location="PG")
        self.client.force_authenticate(user=self.owner)
        response = self.client.get(reverse("job-manage"))
        self.assertEqual([job['title'] for job in response.data], ["Minha"])
        self.client.force_authenticate(user=self.admin)
        response = self.client.get(reverse("job-manage"), {'q': 'alheia'})
        self.assertEqual([job['title'] for job in response.data], ["Alheia"])

    def test_other_company_cannot_change_status(self):
        job = Job.objects.create(company=self.company, title="Dev", description="desc", location="PG")
        intruder = User.objects.create_user(email='rh@outra.com', password='testpass123')
        Company.objects.create(
            owner=intruder, name='Outra', cnpj='00.000.000/0002-00', email='rh@outra.com',
            phone='4199999999', address='Rua B', sector='Varejo', legal_representative='Bia',
        )
        self.client.force_authenticate(user=intruder)
        response = self.client.post(reverse("job-set-status", args=[job.pk]), {'status': 'Fechada'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        job.refresh_from_db()
        self.assertEqual(job.status, Job.STATUS_ACTIVE)

    def test_pause_and_reactivate(self):
        job = Job.objects.create(company=self.company, title="Dev", description="desc", location="PG")
        self.client.force_authenticate(user=self.owner)
        response = self.client.post(reverse("job-set-status", args=[job.pk]), {'status': 'Pausada'}, format='json')
        self.assertEqual(response.data['job']['status'], 'Pausada')
        response = self.client.post(reverse("job-set-status", args=[job.pk]), {'status': 'Ativa'}, format='json')
        self.assertEqual(response.data['job']['status'], 'Ativa')

    def test_direct_contact_link(self):
        job = Job.objects.create(
            company=self.company, title="Dev", description="desc", location="PG",
            has_external_application=True, application_method='WhatsApp', contact_info='(42) 99988-7766',
        )
        response = self.client.get(reverse("job-direct-contact", args=[job.pk]), {'name': 'João'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['url'].startswith('https://wa.me/5542999887766'))

    def test_delete_job(self):
        job = Job.objects.create(company=self.company, title="Dev", description="desc", location="PG")
        self.client.force_authenticate(user=self.owner)
        response = self.client.delete(reverse("job-detail", args=[job.pk]))
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Job.objects.exists())


@override_settings(GEMINI_API_KEY='test-key')
class AssistantEndpointTests(APITestCase):
    def setUp(self):
        self.owner = User.objects.create_user(email='rh@acme.com', password='testpass123')
        Company.objects.create(
            owner=self.owner, name='Acme', cnpj='11.222.333/0001-81', email='rh@acme.com',
            phone='4299999999', address='Rua A, 1', sector='Tecnologia', legal_representative='Ana',
        )

    @patch('job.services.ai_service.generate_content')
    def test_extract_text(self, mock_generate):
        mock_generate.return_value = '```json\n{"title": "Auxiliar"}\n```'
        self.client.force_authenticate(user=self.owner)
        response = self.client.post(
            reverse('assistant_extract_text'),
            {'text': 'Auxiliar. Enviar currículo para (42) 99988-7766'},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['job']['has_external_application'])
        self.assertEqual(response.data['job']['contract_type'], 'CLT')

    @patch('job.services.ai_service.generate_content')
    def test_extract_text_parse_error(self, mock_generate):
        mock_generate.return_value = 'sem json aqui'
        self.client.force_authenticate(user=self.owner)
        response = self.client.post(reverse('assistant_extract_text'), {'text': 'vaga'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)
        self.assertFalse(response.data['success'])

    @patch('job.services.ai_service.generate_content')
    def test_extract_text_keeps_current_form_values(self, mock_generate):
        mock_generate.return_value = '{"title": "Auxiliar"}'
        self.client.force_authenticate(user=self.owner)
        response = self.client.post(reverse('assistant_extract_text'), {
            'text': 'Vaga de auxiliar',
            'current': {'title': 'Antigo', 'requirements': 'Ensino médio'},
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['job']['title'], 'Auxiliar')
        self.assertEqual(response.data['job']['requirements'], 'Ensino médio')

    @patch('job.services.ai_service.generate_content')
    def test_extract_image_with_current_form(self, mock_generate):
        mock_generate.return_value = '{"title": "Caixa", "location": "Londrina"}'
        self.client.force_authenticate(user=self.owner)
        response = self.client.post(reverse('assistant_extract_image'), {
            'image': SimpleUploadedFile('vaga.png', b'fake-image', content_type='image/png'),
            'current': '{"salary": "R$ 2.000"}',
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['job']['title'], 'Caixa')
        self.assertEqual(response.data['job']['location'], 'Ponta Grossa')

    def test_extract_image_rejects_non_object_form(self):
        self.client.force_authenticate(user=self.owner)
        response = self.client.post(reverse('assistant_extract_image'), {
            'image': SimpleUploadedFile('vaga.png', b'fake-image', content_type='image/png'),
            'current': '["x"]',
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('current', response.data['fields'])

    def test_extract_requires_company(self):
        response = self.client.post(reverse('assistant_extract_text'), {'text': 'vaga'}, format='json')
        self.assertIn(response.status_code, [status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN])

    @patch('job.services.ai_service.generate_content')
    def test_job_description_endpoint(self, mock_generate):
        mock_generate.return_value = 'Descrição gerada'
        response = self.client.post(
            reverse('assistant_job_description'), {'title': 'Vendedor', 'company': 'Loja'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['description'], 'Descrição gerada')
