from django.db.models import Count, Q
from rest_framework import viewsets, status
from rest_framework.response import Response
from rest_framework.decorators import api_view, permission_classes, authentication_classes, action
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import AllowAny, IsAuthenticated

from job.models import Job
from applications.models import Application
from companies.models import Company
from payments.models import Payment

from .exceptions import FileRejected, NotFoundError, ValidationError
from .filters import (
    ADMIN_JOB_SEARCH_FIELDS,
    APPLICATION_SEARCH_FIELDS,
    COMPANY_SEARCH_FIELDS,
    PUBLIC_JOB_SEARCH_FIELDS,
    filter_jobs,
    filter_records,
)
from .lifecycle import change_status
from .permissions import IsAdmin, IsCompanyOrAdmin, IsOwnerOrAdmin, is_admin
from .serializers import (
    ApplicationSerializer,
    CnpjSerializer,
    CompanySerializer,
    ExtractImageSerializer,
    ExtractTextSerializer,
    InterviewQuestionsSerializer,
    JobDescriptionSerializer,
    JobSerializer,
    LoginSerializer,
    PaymentSerializer,
    ProfileSerializer,
    RegistrationSerializer,
    ResumeTextSerializer,
    StatusSerializer,
)

from users.services import auth_service
from companies.services.cnpj_service import CnpjService
from companies.services.company_service import company_for, get_system_company
from job.services import ai_service as job_ai
from applications.services import ai_service as application_ai
from applications.services.submission_service import submit_application
from applications.utils import build_direct_contact
from payments.services.payment_service import create_paid_job, handle_webhook

import logging

logger = logging.getLogger(__name__)


def require_company(user):
    company = company_for(user)
    if company is None:
        raise ValidationError('Nenhuma empresa vinculada a esta conta.')
    return company


@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    serializer = RegistrationSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    profile, company, token = auth_service.sign_up(serializer.validated_data)
    return Response({
        'success': True,
        'token': token.key,
        'user': ProfileSerializer(profile).data,
        'company': CompanySerializer(company).data,
        'message': 'Empresa cadastrada com sucesso'
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    serializer = LoginSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    user, token = auth_service.sign_in(
        request, serializer.validated_data['email'], serializer.validated_data['password']
    )
    return Response({
        'success': True,
        'token': token.key,
        'user': ProfileSerializer(user).data
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout_view(request):
    auth_service.sign_out(request)
    return Response({'success': True, 'message': 'Sessão encerrada'})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me(request):
    company = company_for(request.user)
    return Response({
        'success': True,
        'user': ProfileSerializer(request.user).data,
        'company': CompanySerializer(company).data if company else None
    })


@api_view(['POST'])
@permission_classes([AllowAny])
def validate_cnpj(request):
    serializer = CnpjSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    result = CnpjService().lookup(serializer.validated_data['cnpj'])
    return Response({'success': True, **result})


class CompanyViewSet(viewsets.ModelViewSet):
    serializer_class = CompanySerializer

    def get_permissions(self):
        if self.action in ['list', 'create', 'destroy', 'set_status']:
            return [IsAuthenticated(), IsAdmin()]
        if self.action == 'mine':
            return [IsAuthenticated()]
        return [IsAuthenticated(), IsOwnerOrAdmin()]

    def get_queryset(self):
        queryset = Company.objects.select_related('owner')
        if is_admin(self.request.user):
            return queryset
        return queryset.filter(owner=self.request.user)

    def list(self, request, *args, **kwargs):
        companies = filter_records(
            list(self.get_queryset()),
            request.query_params.get('q', ''),
            COMPANY_SEARCH_FIELDS,
            status=request.query_params.get('status'),
        )
        return Response(self.get_serializer(companies, many=True).data)

    def perform_destroy(self, instance):
        logger.info(f"Deleting company {instance.company_id} with {instance.jobs.count()} jobs")
        instance.delete()

    @action(detail=True, methods=['post'], url_path='set-status')
    def set_status(self, request, pk=None):
        serializer = StatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        company = change_status(self.get_queryset(), pk, serializer.validated_data['status'])
        return Response({'success': True, 'company': self.get_serializer(company).data})

    @action(detail=False, methods=['get', 'patch'], url_path='mine')
    def mine(self, request):
        company = require_company(request.user)
        if request.method == 'PATCH':
            serializer = self.get_serializer(company, data=request.data, partial=True)
            serializer.is_valid(raise_exception=True)
            serializer.save()
            return Response({'success': True, 'company': serializer.data})
        return Response({'success': True, 'company': self.get_serializer(company).data})


class JobViewSet(viewsets.ModelViewSet):
    serializer_class = JobSerializer

    PUBLIC_ACTIONS = ['list', 'retrieve', 'direct_contact']

    def get_permissions(self):
        if self.action in self.PUBLIC_ACTIONS:
            return [AllowAny()]
        return [IsAuthenticated(), IsCompanyOrAdmin(), IsOwnerOrAdmin()]

    def get_queryset(self):
        queryset = Job.objects.select_related('company')
        user = self.request.user
        if is_admin(user):
            return queryset
        if self.action in self.PUBLIC_ACTIONS:
            if user.is_authenticated:
                return queryset.filter(Q(status=Job.STATUS_ACTIVE) | Q(company__owner=user))
            return queryset.filter(status=Job.STATUS_ACTIVE)
        return queryset.filter(company__owner=user)

    def list(self, request, *args, **kwargs):
        params = request.query_params
        jobs = filter_jobs(
            list(Job.objects.select_related('company').filter(status=Job.STATUS_ACTIVE)),
            params.get('q', ''),
            PUBLIC_JOB_SEARCH_FIELDS,
            city=params.get('city'),
            contract_type=params.get('contract_type'),
            work_mode=params.get('work_mode'),
            experience_level=params.get('experience_level'),
        )
        return Response(self.get_serializer(jobs, many=True).data)

    @action(detail=False, methods=['get'], url_path='manage')
    def manage(self, request):
        jobs = filter_records(
            list(self.get_queryset()),
            request.query_params.get('q', ''),
            ADMIN_JOB_SEARCH_FIELDS,
            status=request.query_params.get('status'),
        )
        return Response(self.get_serializer(jobs, many=True).data)

    def perform_create(self, serializer):
        user = self.request.user
        company = company_for(user)
        if is_admin(user):
            company_id = self.request.data.get('company')
            if company_id:
                try:
                    company = Company.objects.get(pk=company_id)
                except (Company.DoesNotExist, ValueError):
                    raise NotFoundError('Empresa não encontrada.')
            elif company is None:
                company = get_system_company()
        if company is None:
            raise ValidationError('Nenhuma empresa vinculada a esta conta.')
        if company.status == Company.STATUS_BLOCKED:
            raise ValidationError('Empresa bloqueada não pode publicar vagas.')

        job = serializer.save(company=company)
        logger.info(f"Job {job.job_id} created for company {company.company_id}")

    @action(detail=True, methods=['post'], url_path='set-status')
    def set_status(self, request, pk=None):
        serializer = StatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        job = change_status(self.get_queryset(), pk, serializer.validated_data['status'])
        return Response({'success': True, 'job': self.get_serializer(job).data})

    @action(detail=True, methods=['get'], url_path='direct-contact')
    def direct_contact(self, request, pk=None):
        job = self.get_object()
        contact = build_direct_contact(job, request.query_params.get('name', ''))
        return Response({'success': True, **contact})

    @action(detail=True, methods=['get'], url_path='applications')
    def applications(self, request, pk=None):
        job = self.get_object()
        applications = filter_records(
            list(job.applications.select_related('job__company')),
            request.query_params.get('q', ''),
            APPLICATION_SEARCH_FIELDS,
            status=request.query_params.get('status'),
        )
        return Response(ApplicationSerializer(applications, many=True).data)


class ApplicationViewSet(viewsets.ModelViewSet):
    serializer_class = ApplicationSerializer
    parser_classes = [MultiPartParser, FormParser, JSONParser]
    http_method_names = ['get', 'post', 'delete', 'head', 'options']

    def get_permissions(self):
        if self.action == 'create':
            return [AllowAny()]
        return [IsAuthenticated(), IsCompanyOrAdmin(), IsOwnerOrAdmin()]

    def get_queryset(self):
        queryset = Application.objects.select_related('job__company')
        if is_admin(self.request.user):
            return queryset
        return queryset.filter(job__company__owner=self.request.user)

    def list(self, request, *args, **kwargs):
        params = request.query_params
        selections = {'status': params.get('status')}
        if params.get('job'):
            try:
                selections['job__job_id'] = int(params['job'])
            except ValueError:
                raise ValidationError({'job': ['Identificador de vaga inválido.']})
        applications = filter_records(
            list(self.get_queryset()),
            params.get('q', ''),
            APPLICATION_SEARCH_FIELDS,
            **selections,
        )
        return Response(self.get_serializer(applications, many=True).data)

    def create(self, request, *args, **kwargs):
        job_id = request.data.get('job')
        if not job_id:
            raise ValidationError({'job': ['Informe a vaga.']})
        try:
            job = Job.objects.select_related('company').get(pk=job_id)
        except (Job.DoesNotExist, ValueError):
            raise NotFoundError('Vaga não encontrada.')

        application = submit_application(job, request.data, request.FILES.get('resume'))
        return Response({
            'success': True,
            'application': self.get_serializer(application).data,
            'message': 'Sua candidatura foi enviada com sucesso. A empresa entrará em contato em breve.'
        }, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'], url_path='set-status')
    def set_status(self, request, pk=None):
        serializer = StatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        application = change_status(self.get_queryset(), pk, serializer.validated_data['status'])
        return Response({'success': True, 'application': self.get_serializer(application).data})

    @action(detail=True, methods=['post'], url_path='analyze-resume')
    def analyze_resume(self, request, pk=None):
        application = self.get_object()
        analysis = application_ai.analyze_application_resume(application)
        return Response({'success': True, 'analysis': analysis})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsCompanyOrAdmin])
def extract_from_text(request):
    serializer = ExtractTextSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    extracted = job_ai.extract_job_from_text(serializer.validated_data['text'])
    job = extracted.merge_into(serializer.validated_data.get('current'))
    return Response({'success': True, 'job': job})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsCompanyOrAdmin])
def extract_from_image(request):
    serializer = ExtractImageSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    image = serializer.validated_data['image']
    content_type = getattr(image, 'content_type', '') or ''
    if not content_type.startswith('image/'):
        raise FileRejected('Envie uma imagem (PNG, JPG ou WEBP).')

    extracted = job_ai.extract_job_from_image(image.read(), content_type)
    job = extracted.merge_into(serializer.validated_data.get('current'))
    return Response({'success': True, 'job': job})


@api_view(['POST'])
@permission_classes([AllowAny])
def analyze_resume_text(request):
    serializer = ResumeTextSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    analysis = application_ai.analyze_resume(serializer.validated_data['resume_text'])
    return Response({'success': True, 'analysis': analysis})


@api_view(['POST'])
@permission_classes([AllowAny])
def job_description(request):
    serializer = JobDescriptionSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    description = job_ai.generate_job_description(
        data['title'], data.get('company', ''), data.get('requirements', '')
    )
    return Response({'success': True, 'description': description})


@api_view(['POST'])
@permission_classes([AllowAny])
def interview_questions(request):
    serializer = InterviewQuestionsSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    questions = application_ai.generate_interview_questions(
        serializer.validated_data['job_title'], serializer.validated_data.get('experience', '')
    )
    return Response({'success': True, 'questions': questions})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def create_payment(request):
    company = require_company(request.user)
    if company.status == Company.STATUS_BLOCKED:
        raise ValidationError('Empresa bloqueada não pode publicar vagas.')

    serializer = JobSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    result = create_paid_job(company, serializer.validated_data)

    return Response({
        'success': True,
        'job': JobSerializer(result['job']).data,
        'payment': PaymentSerializer(result['payment']).data if result['payment'] else None,
        'is_exempt': result['is_exempt'],
        'checkout_url': result['checkout_url'],
        'preference_id': result['preference_id']
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def payment_webhook(request):
    logger.info(f"Payment webhook received: {request.data}")
    return Response(handle_webhook(request.data))


def count_by_status(queryset, choices):
    counts = {value: 0 for value, _label in choices}
    for row in queryset.order_by().values('status').annotate(total=Count('pk')):
        counts[row['status']] = row['total']
    return counts


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def company_stats(request):
    company = require_company(request.user)
    jobs = Job.objects.filter(company=company)
    applications = Application.objects.filter(job__company=company)
    return Response({
        'success': True,
        'total_jobs': jobs.count(),
        'active_jobs': jobs.filter(status=Job.STATUS_ACTIVE).count(),
        'total_applications': applications.count(),
        'applications_by_status': count_by_status(applications, Application.STATUS_CHOICES)
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdmin])
def admin_stats(request):
    companies = Company.objects.all()
    jobs = Job.objects.all()
    applications = Application.objects.all()
    return Response({
        'success': True,
        'total_companies': companies.count(),
        'companies_by_status': count_by_status(companies, Company.STATUS_CHOICES),
        'total_jobs': jobs.count(),
        'jobs_by_status': count_by_status(jobs, Job.STATUS_CHOICES),
        'total_applications': applications.count(),
        'applications_by_status': count_by_status(applications, Application.STATUS_CHOICES),
        'approved_payments': Payment.objects.filter(status=Payment.STATUS_APPROVED).count()
    })
