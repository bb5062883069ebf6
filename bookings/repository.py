"""
Data access used by the scheduling engine.

The engine only talks to a ``BookingRepository``; production code passes the
Django implementation, tests can pass an in-memory one.
"""
from decimal import Decimal

from django.db.models import DecimalField, F, Sum
from django.utils import timezone

from payments.models import Payment
from .exceptions import BookingNotFound
from .models import Booking, BookingAddOn, BookingDay
from .status import BookingStatus


class BookingRepository:
    def bookings_between(self, date_from, date_to, exclude_id=None):
        """Active bookings (not archived, not cancelled) dated within the range."""
        raise NotImplementedError

    def get_booking(self, booking_id, for_update=False):
        raise NotImplementedError

    def addons_total(self, booking_id):
        raise NotImplementedError

    def total_paid(self, booking_id):
        raise NotImplementedError

    def save_status(self, booking_id, status):
        raise NotImplementedError

    def lock_dates(self, dates):
        """Serialise writers touching any of ``dates`` until the transaction ends."""


class DjangoBookingRepository(BookingRepository):
    def bookings_between(self, date_from, date_to, exclude_id=None):
        qs = Booking.objects.filter(
            booking_date__gte=date_from,
            booking_date__lte=date_to,
            is_archived=False,
        ).exclude(status=BookingStatus.CANCELLED)
        if exclude_id is not None:
            qs = qs.exclude(id=exclude_id)
        return list(qs.order_by('booking_date', 'start_time'))

    def get_booking(self, booking_id, for_update=False):
        qs = Booking.objects.all()
        if for_update:
            qs = qs.select_for_update()
        booking = qs.filter(id=booking_id).first()
        if booking is None:
            raise BookingNotFound(booking_id)
        return booking

    def addons_total(self, booking_id):
        total = BookingAddOn.objects.filter(booking_id=booking_id).aggregate(
            s=Sum(F('sale_price') * F('quantity'), output_field=DecimalField(max_digits=12, decimal_places=2))
        )['s']
        return total or Decimal('0')

    def total_paid(self, booking_id):
        total = Payment.objects.filter(booking_id=booking_id).aggregate(s=Sum('amount'))['s']
        return total or Decimal('0')

    def save_status(self, booking_id, status):
        updated = Booking.objects.filter(id=booking_id).update(status=status, updated_at=timezone.now())
        if not updated:
            raise BookingNotFound(booking_id)

    def lock_dates(self, dates):
        # Ascending order so two writers never wait on each other in reverse.
        for day in sorted(set(dates)):
            BookingDay.objects.get_or_create(date=day)
            BookingDay.objects.select_for_update().get(date=day)
