from django.contrib import admin
from .models import Application

@admin.register(Application)
class ApplicationAdmin(admin.ModelAdmin):
    list_display = ['name', 'email', 'phone', 'job', 'status', 'created_at']
    search_fields = ['name', 'email', 'job__title', 'job__company__name']
    list_filter = ['status']
    readonly_fields = ['resume_url', 'resume_path', 'created_at', 'updated_at']
