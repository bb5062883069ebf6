from django.contrib import admin
from .models import Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ['id', 'booking', 'payment_date', 'amount_display', 'payment_type', 'payment_method', 'comment_short']
    list_filter = ['payment_type', 'payment_method', 'payment_date']
    search_fields = ['booking__client__name', 'comment']
    readonly_fields = ['created_at']
    raw_id_fields = ['booking']

    def amount_display(self, obj):
        return f"{obj.amount:.2f}"
    amount_display.short_description = 'Amount'

    def comment_short(self, obj):
        if obj.comment:
            return obj.comment[:50] + '...' if len(obj.comment) > 50 else obj.comment
        return '-'
    comment_short.short_description = 'Comment'
