import logging
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.utils import timezone

from bookings import notifications
from bookings.exceptions import PaymentNotFound
from bookings.models import Task
from bookings.pricing import to_date
from bookings.repository import DjangoBookingRepository
from bookings.scheduling import recalc_booking_status
from .models import Payment

logger = logging.getLogger(__name__)

PAYMENT_TYPES = {choice for choice, _ in Payment.TYPE_CHOICES}
PAYMENT_METHODS = {choice for choice, _ in Payment.METHOD_CHOICES}


def validate_payment(amount, payment_type, payment_method):
    try:
        amount = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise ValueError('Amount must be a number')
    if amount <= 0:
        raise ValueError('Amount must be > 0')
    if payment_type not in PAYMENT_TYPES:
        raise ValueError(f"Unknown payment_type '{payment_type}'")
    if payment_method and payment_method not in PAYMENT_METHODS:
        raise ValueError(f"Unknown payment_method '{payment_method}'")
    return amount


def record_payment(booking_id, amount, payment_type, payment_date=None, payment_method='', comment='',
                   repository=None):
    repository = repository or DjangoBookingRepository()
    amount = validate_payment(amount, payment_type, payment_method)

    with transaction.atomic():
        # Locks the booking row so concurrent payments recompute one at a time.
        repository.get_booking(booking_id, for_update=True)

        payment = Payment.objects.create(
            booking_id=booking_id,
            amount=amount,
            payment_type=payment_type,
            payment_date=to_date(payment_date) if payment_date else timezone.localdate(),
            payment_method=payment_method or '',
            comment=comment or '',
        )
        status = recalc_booking_status(repository, booking_id)

        if payment_type == 'deposit':
            Task.objects.filter(booking_id=booking_id, task_type='deposit_reminder').update(is_completed=True)

        logger.info("Recorded payment %s of %s for booking %s, status %s", payment.id, amount, booking_id, status)
        transaction.on_commit(lambda: notifications.notify_payment(
            Payment.objects.select_related('booking__client').get(id=payment.id)
        ))

    return payment


def delete_payment(payment_id, repository=None):
    repository = repository or DjangoBookingRepository()

    with transaction.atomic():
        payment = Payment.objects.filter(id=payment_id).first()
        if payment is None:
            raise PaymentNotFound(payment_id)
        booking_id = payment.booking_id

        repository.get_booking(booking_id, for_update=True)
        payment.delete()
        status = recalc_booking_status(repository, booking_id)

        logger.info("Deleted payment %s of booking %s, status %s", payment_id, booking_id, status)

    return status
