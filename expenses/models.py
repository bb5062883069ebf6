from django.db import models
from django.utils import timezone

from payments.models import Payment


class ExpenseCategory(models.Model):
    name = models.CharField(max_length=255, unique=True)
    sort_order = models.IntegerField(default=0)

    class Meta:
        db_table = 'expenses_category'
        ordering = ['sort_order', 'name']
        verbose_name_plural = 'expense categories'

    def __str__(self):
        return self.name


class Expense(models.Model):
    expense_date = models.DateField(default=timezone.localdate, db_index=True)
    category = models.ForeignKey(ExpenseCategory, on_delete=models.PROTECT, related_name='expenses')
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    payment_method = models.CharField(max_length=20, choices=Payment.METHOD_CHOICES, blank=True)
    booking = models.ForeignKey(
        'bookings.Booking', null=True, blank=True, on_delete=models.SET_NULL, related_name='expenses'
    )
    comment = models.TextField(blank=True)
    is_archived = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'expenses_expense'
        ordering = ['-expense_date', '-id']

    def __str__(self):
        return f"{self.category.name} - {self.amount} ({self.expense_date})"
