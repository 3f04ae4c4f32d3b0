from django.contrib import admin
from .models import Payment

@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ['payment_id', 'company', 'job', 'amount', 'status', 'paid_at', 'created_at']
    search_fields = ['company__name', 'preference_id', 'processor_payment_id']
    list_filter = ['status']
    readonly_fields = ['processor_data', 'created_at', 'updated_at']
