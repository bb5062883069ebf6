import logging
from dataclasses import dataclass
from datetime import timedelta

from django.conf import settings

from .pricing import MINUTES_PER_DAY, minute_range, to_date
from .status import next_status

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConflictingBooking:
    id: int
    booking_date: object
    start_time: str
    end_time: str
    status: str

    def as_dict(self):
        return {
            'id': self.id,
            'booking_date': to_date(self.booking_date).isoformat(),
            'start_time': self.start_time,
            'end_time': self.end_time,
            'status': str(self.status),
        }


def absolute_interval(booking_date, start_time, end_time, relative_to):
    """Half-open minute interval of a booking, measured from midnight of ``relative_to``."""
    start, end = minute_range(start_time, end_time)
    offset = (to_date(booking_date) - to_date(relative_to)).days * MINUTES_PER_DAY
    return start + offset, end + offset


def intervals_overlap(first, second):
    return first[0] < second[1] and first[1] > second[0]


def overlap_dates(booking_date, adjacent_days=None):
    """Dates whose bookings can collide with a booking on ``booking_date``."""
    if adjacent_days is None:
        adjacent_days = getattr(settings, 'BOOKING_CHECK_ADJACENT_DAYS', True)
    day = to_date(booking_date)
    if not adjacent_days:
        return [day]
    return [day - timedelta(days=1), day, day + timedelta(days=1)]


def check_overlap(repository, booking_date, start_time, end_time, exclude_id=None, adjacent_days=None):
    """Return the active bookings whose time window intersects the candidate.

    Overnight bookings are compared as absolute intervals, and with
    ``adjacent_days`` the previous and next dates are checked too so an event
    running past midnight sees the bookings of the following morning.
    Must run in the same transaction as the write it guards.
    """
    day = to_date(booking_date)
    candidate = absolute_interval(day, start_time, end_time, day)
    dates = overlap_dates(day, adjacent_days)

    conflicts = []
    for booking in repository.bookings_between(dates[0], dates[-1], exclude_id=exclude_id):
        existing = absolute_interval(booking.booking_date, booking.start_time, booking.end_time, day)
        if intervals_overlap(candidate, existing):
            conflicts.append(ConflictingBooking(
                id=booking.id,
                booking_date=booking.booking_date,
                start_time=booking.start_time,
                end_time=booking.end_time,
                status=booking.status,
            ))
    return conflicts


def recalc_booking_status(repository, booking_id):
    """Bring a booking's status in line with the payments recorded against it.

    The caller owns the transaction; the booking row is locked for the
    read-compute-write cycle.
    """
    booking = repository.get_booking(booking_id, for_update=True)
    grand_total = booking.rental_cost + repository.addons_total(booking_id)
    total_paid = repository.total_paid(booking_id)

    status = next_status(booking.status, total_paid, grand_total)
    if status != booking.status:
        logger.info(
            "Booking %s status %s -> %s (paid %s of %s)",
            booking_id, booking.status, status, total_paid, grand_total,
        )
        repository.save_status(booking_id, status)
    return status
