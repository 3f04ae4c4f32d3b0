from django.core.exceptions import ValidationError
from django.db import models
from companies.models import Company


class Job(models.Model):
    STATUS_ACTIVE = 'Ativa'
    STATUS_PAUSED = 'Pausada'
    STATUS_CLOSED = 'Fechada'

    STATUS_CHOICES = [
        (STATUS_ACTIVE, 'Active'),
        (STATUS_PAUSED, 'Paused'),
        (STATUS_CLOSED, 'Closed'),
    ]

    STATUS_TRANSITIONS = {
        STATUS_ACTIVE: {STATUS_PAUSED, STATUS_CLOSED},
        STATUS_PAUSED: {STATUS_ACTIVE, STATUS_CLOSED},
        STATUS_CLOSED: set(),
    }

    CONTRACT_CHOICES = [
        ('CLT', 'CLT'),
        ('PJ', 'PJ'),
        ('Freelancer', 'Freelancer'),
        ('Estágio', 'Internship'),
    ]

    WORK_MODE_CHOICES = [
        ('Presencial', 'On-site'),
        ('Remoto', 'Remote'),
        ('Híbrido', 'Hybrid'),
    ]

    EXPERIENCE_CHOICES = [
        ('Estagiário', 'Intern'),
        ('Júnior', 'Junior'),
        ('Pleno', 'Mid'),
        ('Sênior', 'Senior'),
        ('Especialista', 'Specialist'),
    ]

    METHOD_WHATSAPP = 'WhatsApp'
    METHOD_EMAIL = 'Email'
    METHOD_PHONE = 'Telefone'
    METHOD_IN_PERSON = 'Presencial'
    METHOD_SITE = 'Site'
    METHOD_OTHER = 'Outro'

    APPLICATION_METHOD_CHOICES = [
        (METHOD_WHATSAPP, 'WhatsApp'),
        (METHOD_EMAIL, 'Email'),
        (METHOD_PHONE, 'Phone'),
        (METHOD_IN_PERSON, 'In person'),
        (METHOD_SITE, 'Website'),
        (METHOD_OTHER, 'Other'),
    ]

    PAYMENT_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
        ('cancelled', 'Cancelled'),
    ]

    DEFAULT_CONTRACT_TYPE = 'CLT'
    DEFAULT_WORK_MODE = 'Presencial'
    DEFAULT_EXPERIENCE_LEVEL = 'Júnior'
    DEFAULT_SALARY = 'A combinar'

    job_id = models.AutoField(primary_key=True)
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='jobs')
    title = models.CharField(max_length=150)
    description = models.TextField()
    requirements = models.TextField(blank=True, default='')
    salary = models.CharField(max_length=100, blank=True, default=DEFAULT_SALARY)
    location = models.CharField(max_length=150)
    contract_type = models.CharField(max_length=20, choices=CONTRACT_CHOICES, default=DEFAULT_CONTRACT_TYPE)
    work_mode = models.CharField(max_length=20, choices=WORK_MODE_CHOICES, default=DEFAULT_WORK_MODE)
    experience_level = models.CharField(max_length=20, choices=EXPERIENCE_CHOICES, default=DEFAULT_EXPERIENCE_LEVEL)
    benefits = models.JSONField(default=list, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_ACTIVE)
    application_method = models.CharField(max_length=20, choices=APPLICATION_METHOD_CHOICES, blank=True, default='')
    contact_info = models.CharField(max_length=255, blank=True, default='')
    has_external_application = models.BooleanField(default=False)
    payment = models.ForeignKey(
        'payments.Payment', on_delete=models.SET_NULL, related_name='jobs', null=True, blank=True
    )
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def clean(self):
        if self.has_external_application:
            errors = {}
            if not (self.application_method or '').strip():
                errors['application_method'] = 'Informe como o candidato deve se candidatar.'
            if not (self.contact_info or '').strip():
                errors['contact_info'] = 'Informe o contato para candidatura.'
            if errors:
                raise ValidationError(errors)

    @property
    def is_active(self):
        return self.status == self.STATUS_ACTIVE

    def __str__(self):
        return self.title
