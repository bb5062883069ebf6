"""
Venue rental tariffs.

Weekday (Mon-Thu):
    09:00-16:00  35/h
    16:00-23:00  45/h
    23:00-09:00  60/h

Weekend (Fri-Sun):
    09:00-23:00  60/h
    23:00-09:00  75/h

Band boundaries are minutes from midnight of the booking date. The tables run
to 09:00 of the following day (minute 1980) so overnight events are priced
with the tariff of the day they started on.
"""
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP

from .exceptions import InvalidTimeFormat

WEEKDAY = 'weekday'
WEEKEND = 'weekend'

DAY_TYPE_LABELS = {
    WEEKDAY: 'Weekday',
    WEEKEND: 'Weekend',
}

MINUTES_PER_DAY = 1440
CENT = Decimal('0.01')

_TIME_RE = re.compile(r'^([01]?\d|2[0-3]):([0-5]\d)$')


@dataclass(frozen=True)
class TariffBand:
    start_minute: int
    end_minute: int
    rate: Decimal
    label: str

    def contains(self, minute):
        return self.start_minute <= minute < self.end_minute

    def shifted(self, minutes):
        return TariffBand(self.start_minute + minutes, self.end_minute + minutes, self.rate, self.label)


TARIFF_BANDS = {
    WEEKDAY: (
        TariffBand(0, 540, Decimal('60'), 'Night (00:00-09:00)'),
        TariffBand(540, 960, Decimal('35'), 'Day (09:00-16:00)'),
        TariffBand(960, 1380, Decimal('45'), 'Evening (16:00-23:00)'),
        TariffBand(1380, 1980, Decimal('60'), 'Night (23:00-09:00)'),
    ),
    WEEKEND: (
        TariffBand(0, 540, Decimal('75'), 'Night (00:00-09:00)'),
        TariffBand(540, 1380, Decimal('60'), 'Day (09:00-23:00)'),
        TariffBand(1380, 1980, Decimal('75'), 'Night (23:00-09:00)'),
    ),
}


@dataclass
class BreakdownLine:
    hours: Decimal
    rate: Decimal
    subtotal: Decimal
    label: str

    def as_dict(self):
        return {
            'hours': float(self.hours),
            'rate': float(self.rate),
            'subtotal': float(self.subtotal),
            'label': self.label,
        }


@dataclass
class PriceQuote:
    hours: Decimal
    rental_cost: Decimal
    hourly_rate: Decimal
    day_type: str
    breakdown: list = field(default_factory=list)

    @property
    def day_type_label(self):
        return DAY_TYPE_LABELS[self.day_type]

    def as_dict(self):
        return {
            'hours': float(self.hours),
            'rental_cost': float(self.rental_cost),
            'hourly_rate': float(self.hourly_rate),
            'total_amount': float(self.rental_cost),
            'day_type': self.day_type,
            'day_type_label': self.day_type_label,
            'breakdown': [line.as_dict() for line in self.breakdown],
        }


def quantize_money(value):
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_date(value):
    """Accept a ``date``, ``datetime`` or an ISO ``YYYY-MM-DD[T...]`` string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).split('T')[0])


def parse_time(value):
    """Return minutes since midnight for an ``HH:MM`` string."""
    match = _TIME_RE.match(str(value).strip()) if value is not None else None
    if not match:
        raise InvalidTimeFormat(value)
    return int(match.group(1)) * 60 + int(match.group(2))


def format_time(minutes):
    minutes %= MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_time(value):
    return format_time(parse_time(value))


def minute_range(start_time, end_time):
    """Return ``(start, end)`` minutes with ``end > start``.

    An end at or before the start means the event runs past midnight, so the
    end moves to the next day.
    """
    start = parse_time(start_time)
    end = parse_time(end_time)
    if end <= start:
        end += MINUTES_PER_DAY
    return start, end


def booking_minutes(start_time, end_time):
    start, end = minute_range(start_time, end_time)
    return end - start


def booking_hours(start_time, end_time):
    return quantize_money(Decimal(booking_minutes(start_time, end_time)) / 60)


def get_day_type(booking_date):
    # Friday, Saturday and Sunday are billed on the weekend tariff.
    return WEEKEND if to_date(booking_date).weekday() >= 4 else WEEKDAY


def priced_bands(day_type):
    """Bands for ``day_type``, continued past 09:00 of the next day.

    Events that run beyond the table window keep paying the same tariff, so
    the daytime bands are repeated one day later.
    """
    bands = TARIFF_BANDS[day_type]
    window_end = bands[-1].end_minute
    wrap_start = window_end - MINUTES_PER_DAY
    extension = [band.shifted(MINUTES_PER_DAY) for band in bands if band.start_minute >= wrap_start]
    return bands + tuple(extension)


def calculate_price(booking_date, start_time, end_time, classify=get_day_type):
    day_type = classify(booking_date)
    start, end = minute_range(start_time, end_time)
    minutes = end - start

    rental_cost = Decimal('0')
    breakdown = []
    for band in priced_bands(day_type):
        seg_start = max(start, band.start_minute)
        seg_end = min(end, band.end_minute)
        if seg_end <= seg_start:
            continue
        seg_minutes = Decimal(seg_end - seg_start)
        subtotal = quantize_money(seg_minutes * band.rate / 60)
        rental_cost += subtotal
        breakdown.append(BreakdownLine(
            hours=quantize_money(seg_minutes / 60),
            rate=band.rate,
            subtotal=subtotal,
            label=band.label,
        ))

    rental_cost = quantize_money(rental_cost)
    if minutes > 0:
        hourly_rate = quantize_money(rental_cost * 60 / minutes)
    else:
        hourly_rate = Decimal('0.00')

    return PriceQuote(
        hours=quantize_money(Decimal(minutes) / 60),
        rental_cost=rental_cost,
        hourly_rate=hourly_rate,
        day_type=day_type,
        breakdown=breakdown,
    )


def get_first_hour_rate(booking_date, start_time, classify=get_day_type):
    """Rate of the band the booking starts in; the suggested deposit."""
    minute = parse_time(start_time)
    for band in TARIFF_BANDS[classify(booking_date)]:
        if band.contains(minute):
            return band.rate
    raise InvalidTimeFormat(start_time)
