from decimal import Decimal

from django.db import models
from django.db.models import DecimalField, F, Sum

from clients.models import Client
from .status import BookingStatus, STATUS_COLORS


class Booking(models.Model):
    client = models.ForeignKey(Client, on_delete=models.PROTECT, related_name='bookings')
    lead = models.ForeignKey(
        'clients.Lead', null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )
    booking_date = models.DateField(db_index=True)
    # Naive local "HH:MM"; an end at or before the start runs past midnight.
    start_time = models.CharField(max_length=5)
    end_time = models.CharField(max_length=5)
    hours = models.DecimalField(max_digits=5, decimal_places=2)
    guest_count = models.PositiveIntegerField(null=True, blank=True)
    event_type = models.CharField(max_length=255, blank=True)
    hourly_rate = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    # Priced flat at hourly_rate x hours instead of the tariff; kept when the booking moves.
    rate_is_manual = models.BooleanField(default=False)
    rental_cost = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    deposit_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    total_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    status = models.CharField(
        max_length=20, choices=BookingStatus.choices, default=BookingStatus.PRELIMINARY, db_index=True
    )
    comment = models.TextField(blank=True)
    is_archived = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'bookings_booking'
        ordering = ['booking_date', 'start_time']

    def __str__(self):
        return f"{self.client.name} - {self.booking_date} {self.start_time}-{self.end_time} - {self.status}"

    @property
    def status_color(self):
        return STATUS_COLORS.get(self.status, '#6b7280')

    def addons_total(self):
        total = self.addons.aggregate(
            s=Sum(F('sale_price') * F('quantity'), output_field=DecimalField(max_digits=12, decimal_places=2))
        )['s']
        return total or Decimal('0')

    def total_paid(self):
        return self.payments.aggregate(s=Sum('amount'))['s'] or Decimal('0')

    def grand_total(self):
        return self.rental_cost + self.addons_total()


class BookingDay(models.Model):
    """One row per calendar date, locked while bookings on that date are written."""

    date = models.DateField(unique=True)

    class Meta:
        db_table = 'bookings_booking_day'

    def __str__(self):
        return str(self.date)


class AddOnCategory(models.Model):
    name = models.CharField(max_length=255, unique=True)
    sort_order = models.IntegerField(default=0)

    class Meta:
        db_table = 'bookings_addon_category'
        ordering = ['sort_order', 'name']
        verbose_name_plural = 'add-on categories'

    def __str__(self):
        return self.name


class AddOnService(models.Model):
    EXECUTOR_CHOICES = [
        ('own', 'Own staff'),
        ('contractor', 'Contractor'),
    ]

    category = models.ForeignKey(AddOnCategory, on_delete=models.PROTECT, related_name='services')
    name = models.CharField(max_length=255)
    price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    cost_price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    executor_type = models.CharField(max_length=20, choices=EXECUTOR_CHOICES, blank=True)
    is_active = models.BooleanField(default=True)
    comment = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'bookings_addon_service'
        ordering = ['category__sort_order', 'name']

    def __str__(self):
        return self.name


class BookingAddOn(models.Model):
    booking = models.ForeignKey(Booking, on_delete=models.CASCADE, related_name='addons')
    service = models.ForeignKey(AddOnService, on_delete=models.PROTECT, related_name='booking_lines')
    quantity = models.PositiveIntegerField(default=1)
    sale_price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    cost_price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'bookings_booking_addon'

    def __str__(self):
        return f"{self.service.name} x{self.quantity}"

    @property
    def line_total(self):
        return self.sale_price * self.quantity


class Task(models.Model):
    TYPE_CHOICES = [
        ('deposit_reminder', 'Deposit reminder'),
        ('payment_reminder', 'Payment reminder'),
        ('addons_discuss', 'Discuss add-ons'),
        ('review_request', 'Review request'),
        ('other', 'Other'),
    ]

    booking = models.ForeignKey(Booking, null=True, blank=True, on_delete=models.CASCADE, related_name='tasks')
    client = models.ForeignKey(Client, null=True, blank=True, on_delete=models.CASCADE, related_name='tasks')
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    due_date = models.DateField(null=True, blank=True)
    task_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='other')
    is_completed = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'bookings_task'
        ordering = ['is_completed', 'due_date']

    def __str__(self):
        return self.title
