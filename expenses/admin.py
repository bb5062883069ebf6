from django.contrib import admin
from .models import Expense, ExpenseCategory


@admin.register(ExpenseCategory)
class ExpenseCategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'sort_order']


@admin.register(Expense)
class ExpenseAdmin(admin.ModelAdmin):
    list_display = ['id', 'expense_date', 'category', 'amount_display', 'payment_method', 'booking', 'is_archived']
    list_filter = ['category', 'payment_method', 'is_archived', 'expense_date']
    search_fields = ['comment']
    readonly_fields = ['created_at']
    raw_id_fields = ['booking']

    def amount_display(self, obj):
        return f"{obj.amount:.2f}"
    amount_display.short_description = 'Amount'
