from decimal import Decimal

from django.db import models


class BookingStatus(models.TextChoices):
    PRELIMINARY = 'preliminary', 'Preliminary'
    NO_DEPOSIT = 'no_deposit', 'No deposit'
    DEPOSIT_PAID = 'deposit_paid', 'Deposit paid'
    FULLY_PAID = 'fully_paid', 'Fully paid'
    COMPLETED = 'completed', 'Completed'
    CANCELLED = 'cancelled', 'Cancelled'
    RESCHEDULED = 'rescheduled', 'Rescheduled'


TERMINAL_STATUSES = frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED})

# Statuses a user may set by hand; everything else follows the money.
MANUAL_STATUSES = frozenset({
    BookingStatus.CANCELLED,
    BookingStatus.RESCHEDULED,
    BookingStatus.COMPLETED,
})

PAID_STATUSES = frozenset({BookingStatus.DEPOSIT_PAID, BookingStatus.FULLY_PAID})

STATUS_COLORS = {
    BookingStatus.PRELIMINARY: '#94a3b8',
    BookingStatus.NO_DEPOSIT: '#f59e0b',
    BookingStatus.DEPOSIT_PAID: '#3b82f6',
    BookingStatus.FULLY_PAID: '#22c55e',
    BookingStatus.COMPLETED: '#6b7280',
    BookingStatus.CANCELLED: '#ef4444',
    BookingStatus.RESCHEDULED: '#a855f7',
}


def next_status(current, total_paid, grand_total):
    """Status a booking should hold given the money received against it.

    Completed and cancelled bookings never move. A rescheduled booking keeps
    its manual status until it is paid in full.
    """
    current = BookingStatus(current)
    total_paid = Decimal(total_paid)
    grand_total = Decimal(grand_total)

    if current in TERMINAL_STATUSES:
        return current
    if total_paid >= grand_total:
        return BookingStatus.FULLY_PAID
    if current == BookingStatus.RESCHEDULED:
        return current
    if total_paid > 0:
        return BookingStatus.DEPOSIT_PAID
    if current in PAID_STATUSES:
        return BookingStatus.NO_DEPOSIT
    return current
