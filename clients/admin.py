from django.contrib import admin
from .models import Client, Lead


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ['name', 'phone', 'telegram', 'instagram', 'source', 'first_contact_date', 'is_archived']
    list_filter = ['source', 'is_archived', 'first_contact_date']
    search_fields = ['name', 'phone', 'telegram', 'instagram']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(Lead)
class LeadAdmin(admin.ModelAdmin):
    list_display = ['id', 'client', 'desired_date', 'event_type', 'source', 'status', 'booking']
    list_filter = ['status', 'source', 'contact_date']
    search_fields = ['client__name', 'event_type']
    raw_id_fields = ['client', 'booking']
