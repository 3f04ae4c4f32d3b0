from django.db import models
from users.models import Profile


class Company(models.Model):
    STATUS_ACTIVE = 'Ativa'
    STATUS_PENDING = 'Pendente'
    STATUS_BLOCKED = 'Bloqueada'

    STATUS_CHOICES = [
        (STATUS_ACTIVE, 'Active'),
        (STATUS_PENDING, 'Pending'),
        (STATUS_BLOCKED, 'Blocked'),
    ]

    STATUS_TRANSITIONS = {
        STATUS_PENDING: {STATUS_ACTIVE},
        STATUS_ACTIVE: {STATUS_BLOCKED},
        STATUS_BLOCKED: {STATUS_ACTIVE},
    }

    SYSTEM_CNPJ = '00.000.000/0001-00'

    company_id = models.AutoField(primary_key=True)
    owner = models.OneToOneField(
        Profile, on_delete=models.CASCADE, related_name='company', null=True, blank=True
    )
    name = models.CharField(max_length=150)
    cnpj = models.CharField(max_length=18)
    email = models.EmailField(max_length=150)
    phone = models.CharField(max_length=30)
    address = models.CharField(max_length=255)
    city = models.CharField(max_length=100, blank=True, default='')
    sector = models.CharField(max_length=100)
    legal_representative = models.CharField(max_length=150)
    description = models.TextField(blank=True, null=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return self.name
