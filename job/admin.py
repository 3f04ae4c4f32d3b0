from django.contrib import admin
from .models import Job

@admin.register(Job)
class JobAdmin(admin.ModelAdmin):
    list_display = [
        'title',
        'company',
        'location',
        'contract_type',
        'work_mode',
        'status',
        'payment_status',
        'created_at',
        'updated_at',
    ]
    search_fields = [
        'title',
        'company__name',
        'location',
    ]
    list_filter = [
        'status',
        'contract_type',
        'work_mode',
        'experience_level',
        'has_external_application',
    ]
