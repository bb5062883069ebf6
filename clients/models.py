from django.db import models
from django.utils import timezone


SOURCE_CHOICES = [
    ('instagram', 'Instagram'),
    ('website', 'Website'),
    ('telegram', 'Telegram'),
    ('relax', 'Relax.by'),
    ('2gis', '2GIS'),
    ('yandex', 'Yandex'),
    ('recommendation', 'Recommendation'),
    ('other', 'Other'),
]


class Client(models.Model):
    name = models.CharField(max_length=255)
    phone = models.CharField(max_length=50, blank=True, db_index=True)
    telegram = models.CharField(max_length=100, blank=True)
    instagram = models.CharField(max_length=100, blank=True)
    source = models.CharField(max_length=20, choices=SOURCE_CHOICES, blank=True)
    comment = models.TextField(blank=True)
    first_contact_date = models.DateField(default=timezone.localdate)
    is_archived = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'clients_client'
        ordering = ['-created_at']

    def __str__(self):
        return self.name


class Lead(models.Model):
    STATUS_CHOICES = [
        ('new', 'New'),
        ('in_progress', 'In progress'),
        ('proposal_sent', 'Proposal sent'),
        ('waiting_response', 'Waiting for response'),
        ('confirmed', 'Confirmed'),
        ('rejected', 'Rejected'),
        ('no_response', 'No response'),
    ]

    client = models.ForeignKey(Client, on_delete=models.CASCADE, related_name='leads')
    contact_date = models.DateField(default=timezone.localdate)
    desired_date = models.CharField(max_length=100, blank=True)
    guest_count = models.PositiveIntegerField(null=True, blank=True)
    event_type = models.CharField(max_length=255, blank=True)
    source = models.CharField(max_length=20, choices=SOURCE_CHOICES, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='new', db_index=True)
    booking = models.ForeignKey(
        'bookings.Booking', null=True, blank=True, on_delete=models.SET_NULL, related_name='leads'
    )
    comment = models.TextField(blank=True)
    is_archived = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'clients_lead'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.client.name} - {self.status}"
