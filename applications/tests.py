import io
import re
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from api.exceptions import ExternalServiceError, FileRejected, ValidationError
from applications.models import Application
from applications.services import ai_service
from applications.services.submission_service import submit_application, validate_resume
from applications.services.utils import extract_text_from_file
from applications.utils import (
    build_direct_contact,
    create_resume_filename,
    parse_experience_years,
    parse_skills,
)
from companies.models import Company
from job.models import Job

User = get_user_model()

PDF = 'application/pdf'
DOCX = 'application/vnd.openxmlformats-officedocument.wordprocessingml.document'
MB = 1024 * 1024


class MockJob:
    def __init__(self, application_method, contact_info, has_external_application=True):
        self.title = 'Auxiliar Administrativo'
        self.company = MockCompany()
        self.application_method = application_method
        self.contact_info = contact_info
        self.has_external_application = has_external_application


class MockCompany:
    name = 'Acme'


class ApplicationUtilsTests(SimpleTestCase):
    def test_parse_skills(self):
        self.assertEqual(parse_skills(' Excel, Word ,, Excel,  '), ['Excel', 'Word'])
        self.assertEqual(parse_skills(''), [])

    def test_parse_experience_years(self):
        self.assertEqual(parse_experience_years('3'), 3)
        self.assertIsNone(parse_experience_years('três'))
        self.assertIsNone(parse_experience_years(None))
        self.assertIsNone(parse_experience_years('-2'))

    def test_resume_filename(self):
        name = create_resume_filename('Meu Currículo.PDF', PDF)
        self.assertRegex(name, r'^resumes/\d{13}-[a-z0-9]{7}\.pdf$')

    def test_whatsapp_link(self):
        contact = build_direct_contact(MockJob('WhatsApp', '(42) 99988-7766'), 'João')
        self.assertTrue(contact['url'].startswith('https://wa.me/5542999887766?text='))
        self.assertIn('Vi esta vaga no Vagas PG', contact['message'])
        self.assertIn('Jo%C3%A3o', contact['url'])

    def test_email_link(self):
        contact = build_direct_contact(MockJob('Email', 'rh@acme.com'))
        self.assertTrue(contact['url'].startswith('mailto:rh@acme.com?subject='))

    def test_phone_link(self):
        contact = build_direct_contact(MockJob('Telefone', '(42) 3222-1100'))
        self.assertEqual(contact['url'], 'tel:4232221100')

    def test_site_link(self):
        contact = build_direct_contact(MockJob('Site', 'https://acme.com/vagas'))
        self.assertEqual(contact['url'], 'https://acme.com/vagas')

    def test_no_link_for_in_person(self):
        with self.assertRaises(ValidationError):
            build_direct_contact(MockJob('Presencial', 'Rua A, 1'))

    def test_no_external_application(self):
        with self.assertRaises(ValidationError):
            build_direct_contact(MockJob('WhatsApp', '42999887766', has_external_application=False))


class ResumeValidationTests(SimpleTestCase):
    def test_large_pdf_rejected(self):
        resume = SimpleUploadedFile('cv.pdf', b'0' * (11 * MB), content_type=PDF)
        with self.assertRaises(FileRejected):
            validate_resume(resume)

    def test_text_file_rejected(self):
        resume = SimpleUploadedFile('cv.txt', b'0' * (5 * MB), content_type='text/plain')
        with self.assertRaises(FileRejected):
            validate_resume(resume)

    def test_docx_accepted(self):
        resume = SimpleUploadedFile('cv.docx', b'0' * (2 * MB), content_type=DOCX)
        validate_resume(resume)


class SubmissionServiceTests(TestCase):
    def setUp(self):
        self.company = Company.objects.create(
            name='Acme', cnpj='11.222.333/0001-81', email='acme@example.com', phone='4299999999',
            address='Rua A, 1', sector='Tecnologia', legal_representative='Ana',
        )
        self.job = Job.objects.create(company=self.company, title='Dev', description='desc', location='PG')
        self.data = {
            'name': ' Maria Souza ',
            'email': 'maria@example.com',
            'phone': '(42) 99999-0000',
            'skills': 'Python, Django, Python',
            'experience_years': '4',
        }

    @patch('applications.services.submission_service.Application.objects.create')
    @patch('applications.services.submission_service.default_storage')
    def test_missing_phone_touches_nothing(self, mock_storage, mock_create):
        resume = SimpleUploadedFile('cv.pdf', b'%PDF-1.4', content_type=PDF)
        with self.assertRaises(ValidationError) as ctx:
            submit_application(self.job, {**self.data, 'phone': '  '}, resume)
        self.assertIn('phone', ctx.exception.detail)
        mock_storage.save.assert_not_called()
        mock_create.assert_not_called()

    @patch('applications.services.submission_service.default_storage')
    def test_rejected_resume_is_not_uploaded(self, mock_storage):
        resume = SimpleUploadedFile('cv.txt', b'texto', content_type='text/plain')
        with self.assertRaises(FileRejected):
            submit_application(self.job, self.data, resume)
        mock_storage.save.assert_not_called()
        self.assertEqual(Application.objects.count(), 0)

    def test_submission_without_resume(self):
        application = submit_application(self.job, self.data)
        self.assertEqual(application.name, 'Maria Souza')
        self.assertEqual(application.status, 'Novo')
        self.assertEqual(application.skills, ['Python', 'Django'])
        self.assertEqual(application.experience_years, 4)
        self.assertEqual(application.resume_url, '')

    @patch('applications.services.submission_service.default_storage')
    def test_submission_with_resume(self, mock_storage):
        mock_storage.save.side_effect = lambda path, content: path
        mock_storage.url.side_effect = lambda path: f"http://testserver/media/{path}"
        resume = SimpleUploadedFile('cv.pdf', b'%PDF-1.4', content_type=PDF)
        application = submit_application(self.job, self.data, resume)
        self.assertTrue(re.match(r'^resumes/\d{13}-[a-z0-9]{7}\.pdf$', application.resume_path))
        self.assertEqual(application.resume_url, f"http://testserver/media/{application.resume_path}")

    @patch('applications.services.submission_service.default_storage')
    def test_upload_failure(self, mock_storage):
        mock_storage.save.side_effect = OSError('disk full')
        resume = SimpleUploadedFile('cv.pdf', b'%PDF-1.4', content_type=PDF)
        with self.assertRaises(ExternalServiceError):
            submit_application(self.job, self.data, resume)
        self.assertEqual(Application.objects.count(), 0)

    @patch('applications.services.submission_service.Application.objects.create')
    @patch('applications.services.submission_service.default_storage')
    def test_failed_insert_removes_upload(self, mock_storage, mock_create):
        mock_storage.save.return_value = 'resumes/1-abcdefg.pdf'
        mock_storage.url.return_value = 'http://testserver/media/resumes/1-abcdefg.pdf'
        mock_create.side_effect = RuntimeError('insert failed')
        resume = SimpleUploadedFile('cv.pdf', b'%PDF-1.4', content_type=PDF)
        with self.assertRaises(RuntimeError):
            submit_application(self.job, self.data, resume)
        mock_storage.delete.assert_called_once_with('resumes/1-abcdefg.pdf')

    def test_closed_job_refuses_applications(self):
        self.job.status = Job.STATUS_CLOSED
        self.job.save()
        with self.assertRaises(ValidationError):
            submit_application(self.job, self.data)

    def test_company_delete_cascades(self):
        Job.objects.create(company=self.company, title='Vendedor', description='desc', location='PG')
        for index in range(3):
            Application.objects.create(job=self.job, name=f'C{index}', email=f'c{index}@example.com', phone='42')
        self.assertEqual(Job.objects.filter(company=self.company).count(), 2)

        self.company.delete()

        self.assertEqual(Job.objects.count(), 0)
        self.assertEqual(Application.objects.count(), 0)


@override_settings(GEMINI_API_KEY='test-key')
class WritingAssistantTests(TestCase):
    def setUp(self):
        company = Company.objects.create(
            name='Acme', cnpj='11.222.333/0001-81', email='acme@example.com', phone='4299999999',
            address='Rua A, 1', sector='Tecnologia', legal_representative='Ana',
        )
        job = Job.objects.create(company=company, title='Dev', description='desc', location='PG')
        self.application = Application.objects.create(
            job=job, name='Maria', email='maria@example.com', phone='42', resume_path='resumes/1-abcdefg.pdf'
        )

    def test_short_resume_text_rejected(self):
        with self.assertRaises(ValidationError):
            ai_service.analyze_resume('curto')

    @patch('applications.services.ai_service.generate_content')
    def test_interview_questions(self, mock_generate):
        mock_generate.return_value = '1. Pergunta'
        self.assertEqual(ai_service.generate_interview_questions('Vendedor', 'Júnior'), '1. Pergunta')
        self.assertIn('NÍVEL DE EXPERIÊNCIA: Júnior', mock_generate.call_args[0][0])

    @patch('applications.services.ai_service.generate_content')
    @patch('applications.services.ai_service.extract_text_from_file')
    def test_analyze_application_resume(self, mock_extract, mock_generate):
        mock_extract.return_value = 'Experiência com Python e Django por 4 anos.'
        mock_generate.return_value = 'Nota geral: 8'
        analysis = ai_service.analyze_application_resume(self.application)
        self.assertEqual(analysis, 'Nota geral: 8')
        self.application.refresh_from_db()
        self.assertEqual(self.application.resume_analysis, 'Nota geral: 8')
        mock_extract.assert_called_once_with('resumes/1-abcdefg.pdf')

    @patch('applications.services.ai_service.extract_text_from_file')
    def test_unreadable_resume(self, mock_extract):
        mock_extract.side_effect = ValueError('Unsupported file type: .doc')
        with self.assertRaises(ValidationError):
            ai_service.analyze_application_resume(self.application)

    def test_application_without_resume(self):
        self.application.resume_path = ''
        with self.assertRaises(ValidationError):
            ai_service.analyze_application_resume(self.application)

    @patch('applications.services.utils.default_storage')
    def test_corrupt_pdf_resume(self, mock_storage):
        mock_storage.exists.return_value = True
        mock_storage.open.return_value = io.BytesIO(b'not a pdf at all')
        with self.assertRaises(ValidationError):
            ai_service.analyze_application_resume(self.application)
        self.application.refresh_from_db()
        self.assertIsNone(self.application.resume_analysis)

    @patch('applications.services.utils.default_storage')
    def test_corrupt_docx_resume(self, mock_storage):
        mock_storage.exists.return_value = True
        mock_storage.open.return_value = io.BytesIO(b'not a zip archive')
        self.application.resume_path = 'resumes/1-abcdefg.docx'
        with self.assertRaises(ValidationError):
            ai_service.analyze_application_resume(self.application)


class ApplicationAPITests(APITestCase):
    def setUp(self):
        self.owner = User.objects.create_user(email='rh@acme.com', password='testpass123')
        self.company = Company.objects.create(
            owner=self.owner, name='Acme', cnpj='11.222.333/0001-81', email='rh@acme.com',
            phone='4299999999', address='Rua A, 1', city='Ponta Grossa', sector='Tecnologia',
            legal_representative='Ana', status=Company.STATUS_ACTIVE,
        )

    @patch('applications.services.submission_service.default_storage')
    def test_company_job_application_with_resume(self, mock_storage):
        mock_storage.save.side_effect = lambda path, content: path
        mock_storage.url.side_effect = lambda path: f"http://testserver/media/{path}"

        self.client.force_authenticate(user=self.owner)
        response = self.client.post(reverse('job-list'), {
            'title': 'Assistente de RH',
            'description': 'Apoio ao RH',
            'location': 'Ponta Grossa',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        job_id = response.data['job_id']

        self.client.force_authenticate(user=None)
        response = self.client.post(reverse('application-list'), {
            'job': job_id,
            'name': 'Maria',
            'email': 'maria@example.com',
            'phone': '(42) 99999-0000',
            'skills': 'Excel, Comunicação',
            'resume': SimpleUploadedFile('cv.pdf', b'%PDF-1.4', content_type=PDF),
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['application']['resume_url'].startswith('http://testserver/media/resumes/'))

        self.client.force_authenticate(user=self.owner)
        response = self.client.get(reverse('job-applications', args=[job_id]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['skills'], ['Excel', 'Comunicação'])
        self.assertEqual(response.data[0]['status'], 'Novo')

    def test_missing_phone_returns_field_error(self):
        job = Job.objects.create(company=self.company, title='Dev', description='desc', location='PG')
        response = self.client.post(reverse('application-list'), {
            'job': job.pk, 'name': 'Maria', 'email': 'maria@example.com',
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Por favor, informe seu telefone')
        self.assertEqual(Application.objects.count(), 0)

    def test_json_submission_with_numeric_phone(self):
        job = Job.objects.create(company=self.company, title='Dev', description='desc', location='PG')
        response = self.client.post(reverse('application-list'), {
            'job': job.pk, 'name': 'Maria', 'email': 'maria@example.com',
            'phone': 42999990000, 'experience_years': 3,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        application = Application.objects.get()
        self.assertEqual(application.phone, '42999990000')
        self.assertEqual(application.experience_years, 3)

    def test_unknown_job(self):
        response = self.client.post(reverse('application-list'), {
            'job': 999, 'name': 'Maria', 'email': 'maria@example.com', 'phone': '42',
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_list_and_set_status(self):
        job = Job.objects.create(company=self.company, title='Dev', description='desc', location='PG')
        application = Application.objects.create(job=job, name='Maria', email='maria@example.com', phone='42')
        Application.objects.create(job=job, name='Pedro', email='pedro@example.com', phone='42')

        self.client.force_authenticate(user=self.owner)
        response = self.client.get(reverse('application-list'), {'q': 'maria'})
        self.assertEqual([item['name'] for item in response.data], ['Maria'])

        response = self.client.post(
            reverse('application-set-status', args=[application.pk]), {'status': 'Visualizado'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.get(reverse('application-list'), {'status': 'Visualizado'})
        self.assertEqual([item['name'] for item in response.data], ['Maria'])

    def test_candidate_cannot_edit(self):
        job = Job.objects.create(company=self.company, title='Dev', description='desc', location='PG')
        application = Application.objects.create(job=job, name='Maria', email='maria@example.com', phone='42')
        self.client.force_authenticate(user=self.owner)
        response = self.client.patch(reverse('application-detail', args=[application.pk]), {'name': 'X'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)

    @override_settings(GEMINI_API_KEY='test-key')
    @patch('applications.services.ai_service.generate_content')
    @patch('applications.services.ai_service.extract_text_from_file')
    def test_analyze_resume_endpoint(self, mock_extract, mock_generate):
        mock_extract.return_value = 'Experiência com atendimento ao cliente por 3 anos.'
        mock_generate.return_value = 'Pontos fortes: atendimento'
        job = Job.objects.create(company=self.company, title='Dev', description='desc', location='PG')
        application = Application.objects.create(
            job=job, name='Maria', email='maria@example.com', phone='42', resume_path='resumes/1-abcdefg.pdf'
        )
        self.client.force_authenticate(user=self.owner)
        response = self.client.post(reverse('application-analyze-resume', args=[application.pk]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['analysis'], 'Pontos fortes: atendimento')

    @override_settings(GEMINI_API_KEY='test-key')
    @patch('applications.services.ai_service.generate_content')
    def test_assistant_analyze_resume(self, mock_generate):
        mock_generate.return_value = 'Feedback\n'
        response = self.client.post(
            reverse('assistant_analyze_resume'),
            {'resume_text': 'Experiência de 5 anos em vendas e atendimento.'},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['analysis'], 'Feedback')


class ResumeTextExtractionTests(SimpleTestCase):
    @patch('applications.services.utils.default_storage')
    def test_txt_resume(self, mock_storage):
        mock_storage.exists.return_value = True
        mock_storage.open.return_value = io.BytesIO('Experiência em vendas'.encode('latin-1'))
        self.assertEqual(extract_text_from_file('resumes/1-abcdefg.txt'), 'Experiência em vendas')

    @patch('applications.services.utils.default_storage')
    def test_missing_file(self, mock_storage):
        mock_storage.exists.return_value = False
        with self.assertRaises(FileNotFoundError):
            extract_text_from_file('resumes/1-abcdefg.pdf')

    @patch('applications.services.utils.default_storage')
    def test_doc_is_not_readable(self, mock_storage):
        mock_storage.exists.return_value = True
        with self.assertRaises(ValueError):
            extract_text_from_file('resumes/1-abcdefg.doc')
