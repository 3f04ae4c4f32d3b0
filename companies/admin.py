from django.contrib import admin
from .models import Company

@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = ['name', 'cnpj', 'city', 'status', 'owner', 'created_at', 'updated_at']
    search_fields = ['name', 'cnpj', 'email', 'owner__email']
    list_filter = ['status', 'city']
