from django.conf import settings
from django.db import models
from companies.models import Company


def default_amount():
    return settings.JOB_POSTING_PRICE


class Payment(models.Model):
    STATUS_PENDING = 'pending'
    STATUS_APPROVED = 'approved'
    STATUS_REJECTED = 'rejected'
    STATUS_CANCELLED = 'cancelled'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_REJECTED, 'Rejected'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    STATUS_TRANSITIONS = {
        STATUS_PENDING: {STATUS_APPROVED, STATUS_REJECTED, STATUS_CANCELLED},
        STATUS_APPROVED: set(),
        STATUS_REJECTED: set(),
        STATUS_CANCELLED: set(),
    }

    payment_id = models.AutoField(primary_key=True)
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='payments')
    job = models.ForeignKey(
        'job.Job', on_delete=models.SET_NULL, related_name='payments_made', null=True, blank=True
    )
    amount = models.DecimalField(max_digits=10, decimal_places=2, default=default_amount)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    preference_id = models.CharField(max_length=100, blank=True, default='')
    processor_payment_id = models.CharField(max_length=100, blank=True, default='', db_index=True)
    processor_data = models.JSONField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.company.name} - {self.amount} ({self.status})"
