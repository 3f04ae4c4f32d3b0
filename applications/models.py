from django.db import models
from job.models import Job


class Application(models.Model):
    STATUS_NEW = 'Novo'
    STATUS_VIEWED = 'Visualizado'
    STATUS_CONTACTED = 'Contato'
    STATUS_APPROVED = 'Aprovado'
    STATUS_REJECTED = 'Rejeitado'

    STATUS_CHOICES = [
        (STATUS_NEW, 'New'),
        (STATUS_VIEWED, 'Viewed'),
        (STATUS_CONTACTED, 'Contacted'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_REJECTED, 'Rejected'),
    ]

    # Reviewers may jump straight to any state.
    STATUS_TRANSITIONS = {
        STATUS_NEW: {STATUS_VIEWED, STATUS_CONTACTED, STATUS_APPROVED, STATUS_REJECTED},
        STATUS_VIEWED: {STATUS_NEW, STATUS_CONTACTED, STATUS_APPROVED, STATUS_REJECTED},
        STATUS_CONTACTED: {STATUS_NEW, STATUS_VIEWED, STATUS_APPROVED, STATUS_REJECTED},
        STATUS_APPROVED: {STATUS_NEW, STATUS_VIEWED, STATUS_CONTACTED, STATUS_REJECTED},
        STATUS_REJECTED: {STATUS_NEW, STATUS_VIEWED, STATUS_CONTACTED, STATUS_APPROVED},
    }

    application_id = models.AutoField(primary_key=True)
    job = models.ForeignKey(Job, on_delete=models.CASCADE, related_name='applications')
    name = models.CharField(max_length=150)
    email = models.EmailField(max_length=150)
    phone = models.CharField(max_length=30)
    linkedin = models.URLField(max_length=255, blank=True, default='')
    experience_years = models.PositiveIntegerField(null=True, blank=True)
    current_position = models.CharField(max_length=150, blank=True, default='')
    education = models.TextField(blank=True, default='')
    skills = models.JSONField(default=list, blank=True)
    cover_letter = models.TextField(blank=True, default='')
    resume_url = models.URLField(max_length=500, blank=True, default='')
    resume_path = models.CharField(max_length=255, blank=True, default='')
    resume_analysis = models.TextField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_NEW)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def has_resume(self):
        return bool(self.resume_path)

    def __str__(self):
        return f"{self.name} - {self.job.title}"
