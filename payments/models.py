from django.db import models
from django.utils import timezone


class Payment(models.Model):
    TYPE_CHOICES = [
        ('deposit', 'Deposit'),
        ('additional', 'Additional payment'),
        ('addons', 'Add-ons'),
        ('other', 'Other'),
    ]
    METHOD_CHOICES = [
        ('cash', 'Cash'),
        ('card_transfer', 'Card transfer'),
        ('erip', 'ERIP'),
        ('bank_account', 'Bank account'),
    ]

    booking = models.ForeignKey('bookings.Booking', on_delete=models.CASCADE, related_name='payments')
    payment_date = models.DateField(default=timezone.localdate)
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    payment_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    payment_method = models.CharField(max_length=20, choices=METHOD_CHOICES, blank=True)
    comment = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'payments_payment'
        ordering = ['payment_date', 'id']

    def __str__(self):
        return f"Booking #{self.booking_id} - {self.amount} ({self.payment_type})"
