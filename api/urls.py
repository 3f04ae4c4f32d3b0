from rest_framework.routers import DefaultRouter
from .views import (
    ApplicationViewSet,
    CompanyViewSet,
    JobViewSet,
)
from django.urls import path, include
from . import views

router = DefaultRouter()
router.register(r'companies', CompanyViewSet, basename='company')
router.register(r'jobs', JobViewSet, basename='job')
router.register(r'applications', ApplicationViewSet, basename='application')

urlpatterns = [
    path('register/', views.register, name='register'),
    path('login/', views.login_view, name='login'),
    path('logout/', views.logout_view, name='logout'),
    path('me/', views.me, name='me'),
    path('validate-cnpj/', views.validate_cnpj, name='validate_cnpj'),
    path('assistant/extract-text/', views.extract_from_text, name='assistant_extract_text'),
    path('assistant/extract-image/', views.extract_from_image, name='assistant_extract_image'),
    path('assistant/analyze-resume/', views.analyze_resume_text, name='assistant_analyze_resume'),
    path('assistant/job-description/', views.job_description, name='assistant_job_description'),
    path('assistant/interview-questions/', views.interview_questions, name='assistant_interview_questions'),
    path('payments/create/', views.create_payment, name='create_payment'),
    path('payments/webhook/', views.payment_webhook, name='payment_webhook'),
    path('stats/company/', views.company_stats, name='company_stats'),
    path('stats/admin/', views.admin_stats, name='admin_stats'),
    path('', include(router.urls)),
]
