import logging
from decimal import Decimal, InvalidOperation

from django.db import transaction

from clients.models import Client, Lead
from . import notifications
from .exceptions import (
    BookingNotFound, ClientNotFound, DoubleBookingConflict, LeadNotFound, NotFound, ServiceNotFound,
)
from .models import AddOnService, Booking, BookingAddOn, Task
from .pricing import booking_hours, calculate_price, get_first_hour_rate, normalize_time, quantize_money, to_date
from .repository import DjangoBookingRepository
from .scheduling import check_overlap, overlap_dates, recalc_booking_status
from .status import MANUAL_STATUSES, BookingStatus

logger = logging.getLogger(__name__)


def to_decimal(value, field):
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError(f"{field} must be a number")


def price_booking(booking_date, start_time, end_time, hourly_rate=None):
    """Cost fields for a booking; a manual ``hourly_rate`` overrides the tariff."""
    if hourly_rate:
        rate = quantize_money(to_decimal(hourly_rate, 'hourly_rate'))
        if rate <= 0:
            raise ValueError('hourly_rate must be > 0')
        hours = booking_hours(start_time, end_time)
        return {
            'hours': hours,
            'hourly_rate': rate,
            'rental_cost': quantize_money(rate * hours),
            'deposit_amount': rate,
            'rate_is_manual': True,
        }

    quote = calculate_price(booking_date, start_time, end_time)
    return {
        'hours': quote.hours,
        'hourly_rate': quote.hourly_rate,
        'rental_cost': quote.rental_cost,
        'deposit_amount': get_first_hour_rate(booking_date, start_time),
        'rate_is_manual': False,
    }


def ensure_free_slot(repository, booking_date, start_time, end_time, exclude_id=None):
    repository.lock_dates(overlap_dates(booking_date))
    conflicts = check_overlap(repository, booking_date, start_time, end_time, exclude_id=exclude_id)
    if conflicts:
        logger.info(
            "Rejected %s %s-%s: overlaps bookings %s",
            booking_date, start_time, end_time, [c.id for c in conflicts],
        )
        raise DoubleBookingConflict(conflicts)


def create_booking(data, repository=None):
    repository = repository or DjangoBookingRepository()
    booking_date = to_date(data['booking_date'])
    start_time = normalize_time(data['start_time'])
    end_time = normalize_time(data['end_time'])

    with transaction.atomic():
        client = Client.objects.filter(id=data['client_id']).first()
        if client is None:
            raise ClientNotFound(data['client_id'])

        lead = None
        if data.get('lead_id'):
            lead = Lead.objects.filter(id=data['lead_id']).first()
            if lead is None:
                raise LeadNotFound(data['lead_id'])

        ensure_free_slot(repository, booking_date, start_time, end_time)
        costs = price_booking(booking_date, start_time, end_time, data.get('hourly_rate'))

        booking = Booking.objects.create(
            client=client,
            lead=lead,
            booking_date=booking_date,
            start_time=start_time,
            end_time=end_time,
            guest_count=data.get('guest_count'),
            event_type=data.get('event_type') or '',
            comment=data.get('comment') or '',
            total_amount=costs['rental_cost'],
            status=BookingStatus.PRELIMINARY,
            **costs,
        )

        if lead is not None:
            lead.booking = booking
            lead.status = 'confirmed'
            lead.save(update_fields=['booking', 'status', 'updated_at'])

        Task.objects.create(
            booking=booking,
            client=client,
            title='Collect deposit',
            due_date=booking_date,
            task_type='deposit_reminder',
        )

        logger.info(
            "Created booking %s for client %s on %s %s-%s (%s)",
            booking.id, client.id, booking_date, start_time, end_time, costs['rental_cost'],
        )
        transaction.on_commit(lambda: notifications.notify_new_booking(booking))

    return booking


def update_booking(booking_id, data, repository=None):
    repository = repository or DjangoBookingRepository()

    with transaction.atomic():
        booking = repository.get_booking(booking_id, for_update=True)

        # Echoing the current status back is not a manual change.
        status = data.get('status')
        if status == booking.status:
            status = None
        if status and status not in MANUAL_STATUSES:
            raise ValueError(f"Status '{status}' follows payments and cannot be set by hand")

        if data.get('client_id'):
            if not Client.objects.filter(id=data['client_id']).exists():
                raise ClientNotFound(data['client_id'])
            booking.client_id = data['client_id']

        booking_date = to_date(data.get('booking_date') or booking.booking_date)
        start_time = normalize_time(data.get('start_time') or booking.start_time)
        end_time = normalize_time(data.get('end_time') or booking.end_time)
        moved = (booking_date, start_time, end_time) != (booking.booking_date, booking.start_time, booking.end_time)

        if moved:
            ensure_free_slot(repository, booking_date, start_time, end_time, exclude_id=booking.id)

        # The tariff's own blended rate sent back unchanged is not an override.
        new_rate = data.get('hourly_rate')
        if new_rate and not booking.rate_is_manual and to_decimal(new_rate, 'hourly_rate') == booking.hourly_rate:
            new_rate = None

        if moved or new_rate:
            hourly_rate = new_rate or (booking.hourly_rate if booking.rate_is_manual else None)
            costs = price_booking(booking_date, start_time, end_time, hourly_rate)
            for field, value in costs.items():
                setattr(booking, field, value)

        booking.booking_date = booking_date
        booking.start_time = start_time
        booking.end_time = end_time
        for field in ('guest_count', 'event_type', 'comment'):
            if data.get(field) is not None:
                setattr(booking, field, data[field])
        if status:
            booking.status = status
        booking.total_amount = booking.rental_cost + repository.addons_total(booking.id)
        booking.save()

        # A manual status change is left alone; price changes may move a paid status.
        if not status:
            recalc_booking_status(repository, booking.id)
            booking.refresh_from_db(fields=['status'])

    return booking


def archive_booking(booking_id):
    updated = Booking.objects.filter(id=booking_id).update(is_archived=True)
    if not updated:
        raise BookingNotFound(booking_id)


def _refresh_total(repository, booking_id):
    booking = repository.get_booking(booking_id, for_update=True)
    booking.total_amount = booking.rental_cost + repository.addons_total(booking_id)
    booking.save(update_fields=['total_amount', 'updated_at'])
    recalc_booking_status(repository, booking_id)


def add_booking_addon(booking_id, data, repository=None):
    repository = repository or DjangoBookingRepository()
    try:
        quantity = int(data.get('quantity', 1))
    except (TypeError, ValueError):
        raise ValueError('quantity must be a whole number')
    if quantity < 1:
        raise ValueError('quantity must be at least 1')

    with transaction.atomic():
        repository.get_booking(booking_id, for_update=True)
        service = AddOnService.objects.filter(id=data['service_id']).first()
        if service is None:
            raise ServiceNotFound(data['service_id'])

        sale_price = data.get('sale_price')
        cost_price = data.get('cost_price')
        addon = BookingAddOn.objects.create(
            booking_id=booking_id,
            service=service,
            quantity=quantity,
            sale_price=service.price if sale_price is None else to_decimal(sale_price, 'sale_price'),
            cost_price=service.cost_price if cost_price is None else to_decimal(cost_price, 'cost_price'),
        )
        _refresh_total(repository, booking_id)

    return addon


def remove_booking_addon(addon_id, repository=None):
    repository = repository or DjangoBookingRepository()

    with transaction.atomic():
        addon = BookingAddOn.objects.select_for_update().filter(id=addon_id).first()
        if addon is None:
            raise NotFound(addon_id)
        booking_id = addon.booking_id
        addon.delete()
        _refresh_total(repository, booking_id)


def enrich_booking(booking):
    payments = list(booking.payments.order_by('payment_date', 'id'))
    addons = list(booking.addons.select_related('service__category'))
    total_paid = sum((p.amount for p in payments), Decimal('0'))
    addons_total = sum((a.line_total for a in addons), Decimal('0'))
    addons_cost = sum((a.cost_price * a.quantity for a in addons), Decimal('0'))
    grand_total = booking.rental_cost + addons_total

    return {
        **booking_summary(booking),
        'client': {
            'id': booking.client.id,
            'name': booking.client.name,
            'phone': booking.client.phone,
            'telegram': booking.client.telegram,
            'instagram': booking.client.instagram,
        },
        'payments': [
            {
                'id': p.id,
                'payment_date': p.payment_date.isoformat(),
                'amount': float(p.amount),
                'payment_type': p.payment_type,
                'payment_method': p.payment_method,
                'comment': p.comment,
            }
            for p in payments
        ],
        'addons': [
            {
                'id': a.id,
                'service_id': a.service_id,
                'service_name': a.service.name,
                'category_name': a.service.category.name,
                'quantity': a.quantity,
                'sale_price': float(a.sale_price),
                'cost_price': float(a.cost_price),
            }
            for a in addons
        ],
        'tasks': [
            {
                'id': t.id,
                'title': t.title,
                'task_type': t.task_type,
                'due_date': t.due_date.isoformat() if t.due_date else None,
                'is_completed': t.is_completed,
            }
            for t in booking.tasks.all()
        ],
        'addons_total': float(addons_total),
        'addons_cost': float(addons_cost),
        'addons_margin': float(addons_total - addons_cost),
        'grand_total': float(grand_total),
        'total_paid': float(total_paid),
        'remaining': float(grand_total - total_paid),
    }


def booking_summary(booking):
    return {
        'booking_id': booking.id,
        'client_id': booking.client_id,
        'lead_id': booking.lead_id,
        'booking_date': booking.booking_date.isoformat(),
        'start_time': booking.start_time,
        'end_time': booking.end_time,
        'hours': float(booking.hours),
        'guest_count': booking.guest_count,
        'event_type': booking.event_type,
        'hourly_rate': float(booking.hourly_rate),
        'rate_is_manual': booking.rate_is_manual,
        'rental_cost': float(booking.rental_cost),
        'deposit_amount': float(booking.deposit_amount),
        'total_amount': float(booking.total_amount),
        'status': booking.status,
        'comment': booking.comment,
    }
