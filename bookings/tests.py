from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from unittest.mock import patch, MagicMock
import json

from django.test import SimpleTestCase, TestCase

from clients.models import Client, Lead
from payments.models import Payment
from payments.services import record_payment
from .exceptions import BookingNotFound, DoubleBookingConflict, InvalidTimeFormat
from .models import AddOnCategory, AddOnService, Booking, BookingDay, Task
from .pricing import (
    WEEKDAY, WEEKEND, booking_hours, calculate_price, get_day_type, get_first_hour_rate,
)
from .repository import BookingRepository, DjangoBookingRepository
from .scheduling import check_overlap, recalc_booking_status
from .status import BookingStatus, next_status

TUESDAY = date(2026, 2, 17)
THURSDAY = date(2026, 2, 19)
FRIDAY = date(2026, 2, 13)
SATURDAY = date(2026, 2, 14)
SUNDAY = date(2026, 2, 15)


@dataclass
class FakeBooking:
    id: int
    booking_date: date
    start_time: str
    end_time: str
    status: str = BookingStatus.PRELIMINARY
    rental_cost: Decimal = Decimal('0')
    is_archived: bool = False


class InMemoryBookingRepository(BookingRepository):
    def __init__(self):
        self.bookings = {}
        self.payments = {}
        self.addons = []
        self.locked = []

    def add_booking(self, booking_date, start_time, end_time, **kwargs):
        booking = FakeBooking(len(self.bookings) + 1, booking_date, start_time, end_time, **kwargs)
        self.bookings[booking.id] = booking
        return booking

    def add_payment(self, booking_id, amount):
        payment_id = len(self.payments) + 1
        self.payments[payment_id] = (booking_id, Decimal(amount))
        return payment_id

    def bookings_between(self, date_from, date_to, exclude_id=None):
        return [
            b for b in self.bookings.values()
            if date_from <= b.booking_date <= date_to
            and not b.is_archived
            and b.status != BookingStatus.CANCELLED
            and b.id != exclude_id
        ]

    def get_booking(self, booking_id, for_update=False):
        if booking_id not in self.bookings:
            raise BookingNotFound(booking_id)
        return self.bookings[booking_id]

    def addons_total(self, booking_id):
        return sum((price * qty for b_id, price, qty in self.addons if b_id == booking_id), Decimal('0'))

    def total_paid(self, booking_id):
        return sum((amount for b_id, amount in self.payments.values() if b_id == booking_id), Decimal('0'))

    def save_status(self, booking_id, status):
        self.bookings[booking_id].status = status

    def lock_dates(self, dates):
        self.locked.extend(dates)


class PricingCalculatorTest(SimpleTestCase):
    def test_weekday_evening_booking(self):
        quote = calculate_price(TUESDAY, '18:00', '22:00')

        self.assertEqual(quote.day_type, WEEKDAY)
        self.assertEqual(quote.hours, Decimal('4'))
        self.assertEqual(quote.rental_cost, Decimal('180'))
        self.assertEqual(quote.hourly_rate, Decimal('45'))
        self.assertEqual(len(quote.breakdown), 1)
        self.assertEqual(quote.breakdown[0].rate, Decimal('45'))

    def test_single_band_cost_is_hours_times_rate(self):
        cases = [
            ('09:00', '12:30', Decimal('35')),
            ('10:15', '15:45', Decimal('35')),
            ('16:00', '23:00', Decimal('45')),
            ('01:00', '08:00', Decimal('60')),
            ('23:00', '23:45', Decimal('60')),
        ]
        for start, end, rate in cases:
            with self.subTest(start=start, end=end):
                quote = calculate_price(TUESDAY, start, end)
                self.assertEqual(quote.rental_cost, quote.hours * rate)
                self.assertEqual(len(quote.breakdown), 1)

    def test_weekend_evening_into_night(self):
        quote = calculate_price(SATURDAY, '21:30', '01:00')

        self.assertEqual(quote.day_type, WEEKEND)
        self.assertEqual(quote.hours, Decimal('3.5'))
        self.assertEqual(
            [(line.hours, line.rate, line.subtotal) for line in quote.breakdown],
            [(Decimal('1.5'), Decimal('60'), Decimal('90')), (Decimal('2'), Decimal('75'), Decimal('150'))],
        )
        self.assertEqual(quote.rental_cost, Decimal('240'))
        self.assertEqual(quote.hourly_rate, Decimal('68.57'))

    def test_weekend_night_only_past_midnight(self):
        quote = calculate_price(SATURDAY, '23:30', '01:00')

        self.assertEqual(len(quote.breakdown), 1)
        self.assertEqual(quote.rental_cost, Decimal('112.50'))

    def test_weekday_overnight_uses_start_day_tariff(self):
        quote = calculate_price(THURSDAY, '22:00', '02:00')

        self.assertEqual(quote.hours, Decimal('4'))
        self.assertEqual(quote.rental_cost, Decimal('45') + Decimal('180'))

    def test_blended_rate_across_bands(self):
        quote = calculate_price(TUESDAY, '15:00', '17:00')

        self.assertEqual(quote.rental_cost, Decimal('80'))
        self.assertEqual(quote.hourly_rate, Decimal('40'))

    def test_equal_start_and_end_is_a_full_day(self):
        quote = calculate_price(TUESDAY, '10:00', '10:00')

        self.assertEqual(quote.hours, Decimal('24'))
        # 6h day + 7h evening + 10h night + 1h of the next morning's day band
        self.assertEqual(quote.rental_cost, Decimal('210') + Decimal('315') + Decimal('600') + Decimal('35'))

    def test_breakdown_sums_to_rental_cost(self):
        for booking_date, start, end in [
            (TUESDAY, '08:07', '16:53'),
            (SATURDAY, '07:41', '23:19'),
            (FRIDAY, '20:01', '03:59'),
            (THURSDAY, '00:01', '23:59'),
        ]:
            with self.subTest(start=start, end=end):
                quote = calculate_price(booking_date, start, end)
                total = sum(line.subtotal for line in quote.breakdown)
                self.assertLessEqual(abs(total - quote.rental_cost), Decimal('0.01'))

    def test_hours_match_booking_hours(self):
        for start, end in [('18:00', '22:00'), ('22:30', '01:10'), ('09:00', '09:00')]:
            with self.subTest(start=start, end=end):
                self.assertEqual(calculate_price(TUESDAY, start, end).hours, booking_hours(start, end))

    def test_day_type(self):
        self.assertEqual(get_day_type(date(2026, 2, 16)), WEEKDAY)
        self.assertEqual(get_day_type(THURSDAY), WEEKDAY)
        self.assertEqual(get_day_type(FRIDAY), WEEKEND)
        self.assertEqual(get_day_type(SATURDAY), WEEKEND)
        self.assertEqual(get_day_type(SUNDAY), WEEKEND)
        self.assertEqual(get_day_type('2026-02-13T10:00:00'), WEEKEND)

    def test_custom_day_classifier(self):
        quote = calculate_price(TUESDAY, '10:00', '11:00', classify=lambda d: WEEKEND)

        self.assertEqual(quote.rental_cost, Decimal('60'))

    def test_invalid_time_format(self):
        for value in ['25:00', '9', 'ab:cd', '', None, '12:60', '12:5']:
            with self.subTest(value=value):
                with self.assertRaises(InvalidTimeFormat):
                    calculate_price(TUESDAY, value, '22:00')

    def test_first_hour_rate(self):
        self.assertEqual(get_first_hour_rate(TUESDAY, '09:00'), Decimal('35'))
        self.assertEqual(get_first_hour_rate(TUESDAY, '16:00'), Decimal('45'))
        self.assertEqual(get_first_hour_rate(TUESDAY, '23:30'), Decimal('60'))
        self.assertEqual(get_first_hour_rate(TUESDAY, '08:59'), Decimal('60'))
        self.assertEqual(get_first_hour_rate(SATURDAY, '10:00'), Decimal('60'))
        self.assertEqual(get_first_hour_rate(SATURDAY, '23:00'), Decimal('75'))
        self.assertEqual(get_first_hour_rate(SATURDAY, '02:00'), Decimal('75'))

    def test_as_dict(self):
        data = calculate_price(TUESDAY, '18:00', '22:00').as_dict()

        self.assertEqual(data['rental_cost'], 180)
        self.assertEqual(data['day_type_label'], 'Weekday')
        self.assertEqual(data['breakdown'][0]['label'], 'Evening (16:00-23:00)')


class NextStatusTest(SimpleTestCase):
    def test_payment_driven_transitions(self):
        cases = [
            (BookingStatus.PRELIMINARY, 0, 400, BookingStatus.PRELIMINARY),
            (BookingStatus.NO_DEPOSIT, 0, 400, BookingStatus.NO_DEPOSIT),
            (BookingStatus.PRELIMINARY, 150, 400, BookingStatus.DEPOSIT_PAID),
            (BookingStatus.NO_DEPOSIT, 150, 400, BookingStatus.DEPOSIT_PAID),
            (BookingStatus.DEPOSIT_PAID, 400, 400, BookingStatus.FULLY_PAID),
            (BookingStatus.PRELIMINARY, 500, 400, BookingStatus.FULLY_PAID),
            (BookingStatus.FULLY_PAID, 150, 400, BookingStatus.DEPOSIT_PAID),
            (BookingStatus.FULLY_PAID, 0, 400, BookingStatus.NO_DEPOSIT),
            (BookingStatus.DEPOSIT_PAID, 0, 400, BookingStatus.NO_DEPOSIT),
        ]
        for current, paid, total, expected in cases:
            with self.subTest(current=current, paid=paid):
                self.assertEqual(next_status(current, paid, total), expected)

    def test_terminal_statuses_never_move(self):
        for current in [BookingStatus.COMPLETED, BookingStatus.CANCELLED]:
            for paid in [0, 150, 400]:
                with self.subTest(current=current, paid=paid):
                    self.assertEqual(next_status(current, paid, 400), current)

    def test_rescheduled_moves_only_on_full_payment(self):
        self.assertEqual(next_status('rescheduled', 150, 400), BookingStatus.RESCHEDULED)
        self.assertEqual(next_status('rescheduled', 0, 400), BookingStatus.RESCHEDULED)
        self.assertEqual(next_status('rescheduled', 400, 400), BookingStatus.FULLY_PAID)

    def test_unknown_status_rejected(self):
        with self.assertRaises(ValueError):
            next_status('archived', 0, 400)


class OverlapCheckTest(SimpleTestCase):
    def setUp(self):
        self.repo = InMemoryBookingRepository()

    def test_overlapping_booking_reported(self):
        existing = self.repo.add_booking(SATURDAY, '18:00', '22:00')

        conflicts = check_overlap(self.repo, SATURDAY, '21:00', '23:00')

        self.assertEqual([c.id for c in conflicts], [existing.id])
        self.assertEqual(conflicts[0].as_dict(), {
            'id': existing.id,
            'booking_date': '2026-02-14',
            'start_time': '18:00',
            'end_time': '22:00',
            'status': 'preliminary',
        })

    def test_touching_intervals_do_not_overlap(self):
        self.repo.add_booking(SATURDAY, '18:00', '22:00')

        self.assertEqual(check_overlap(self.repo, SATURDAY, '22:00', '23:00'), [])
        self.assertEqual(check_overlap(self.repo, SATURDAY, '15:00', '18:00'), [])

    def test_cancelled_and_archived_ignored(self):
        self.repo.add_booking(SATURDAY, '18:00', '22:00', status=BookingStatus.CANCELLED)
        self.repo.add_booking(SATURDAY, '18:00', '22:00', is_archived=True)

        self.assertEqual(check_overlap(self.repo, SATURDAY, '19:00', '20:00'), [])

    def test_exclude_id_skips_own_booking(self):
        existing = self.repo.add_booking(SATURDAY, '18:00', '22:00')

        self.assertEqual(check_overlap(self.repo, SATURDAY, '19:00', '23:00', exclude_id=existing.id), [])

    def test_overlap_is_symmetric(self):
        intervals = [
            ('18:00', '22:00'), ('21:00', '23:00'), ('22:00', '02:00'),
            ('09:00', '12:00'), ('23:30', '00:30'), ('12:00', '18:00'),
        ]
        for first in intervals:
            for second in intervals:
                with self.subTest(first=first, second=second):
                    forward = InMemoryBookingRepository()
                    forward.add_booking(SATURDAY, *second)
                    backward = InMemoryBookingRepository()
                    backward.add_booking(SATURDAY, *first)
                    self.assertEqual(
                        bool(check_overlap(forward, SATURDAY, *first)),
                        bool(check_overlap(backward, SATURDAY, *second)),
                    )

    def test_overnight_booking_same_date(self):
        self.repo.add_booking(SATURDAY, '22:00', '02:00')

        self.assertEqual(len(check_overlap(self.repo, SATURDAY, '23:00', '23:30')), 1)

    def test_overnight_booking_blocks_next_morning(self):
        self.repo.add_booking(SATURDAY, '22:00', '03:00')

        self.assertEqual(len(check_overlap(self.repo, SUNDAY, '01:00', '04:00')), 1)
        self.assertEqual(check_overlap(self.repo, SUNDAY, '03:00', '05:00'), [])

    def test_overnight_candidate_sees_next_day_booking(self):
        self.repo.add_booking(SUNDAY, '01:00', '04:00')

        self.assertEqual(len(check_overlap(self.repo, SATURDAY, '23:00', '02:00')), 1)

    def test_same_date_only_when_adjacent_days_disabled(self):
        self.repo.add_booking(SATURDAY, '22:00', '03:00')

        self.assertEqual(check_overlap(self.repo, SUNDAY, '01:00', '04:00', adjacent_days=False), [])


class RecalcStatusTest(SimpleTestCase):
    def setUp(self):
        self.repo = InMemoryBookingRepository()
        self.booking = self.repo.add_booking(TUESDAY, '18:00', '22:00', rental_cost=Decimal('350'))
        self.repo.addons.append((self.booking.id, Decimal('25'), 2))

    def test_payments_drive_status(self):
        first = self.repo.add_payment(self.booking.id, 150)
        self.assertEqual(recalc_booking_status(self.repo, self.booking.id), BookingStatus.DEPOSIT_PAID)

        second = self.repo.add_payment(self.booking.id, 250)
        self.assertEqual(recalc_booking_status(self.repo, self.booking.id), BookingStatus.FULLY_PAID)

        del self.repo.payments[second]
        self.assertEqual(recalc_booking_status(self.repo, self.booking.id), BookingStatus.DEPOSIT_PAID)

        del self.repo.payments[first]
        self.assertEqual(recalc_booking_status(self.repo, self.booking.id), BookingStatus.NO_DEPOSIT)
        self.assertEqual(self.booking.status, BookingStatus.NO_DEPOSIT)

    def test_recalc_is_idempotent(self):
        self.repo.add_payment(self.booking.id, 150)

        first = recalc_booking_status(self.repo, self.booking.id)
        second = recalc_booking_status(self.repo, self.booking.id)

        self.assertEqual(first, second)

    def test_cancelled_booking_ignores_late_payment(self):
        self.booking.status = BookingStatus.CANCELLED
        self.repo.add_payment(self.booking.id, 400)

        self.assertEqual(recalc_booking_status(self.repo, self.booking.id), BookingStatus.CANCELLED)

    def test_missing_booking(self):
        with self.assertRaises(BookingNotFound):
            recalc_booking_status(self.repo, 999)


def make_booking(client, booking_date, start_time, end_time, **kwargs):
    quote = calculate_price(booking_date, start_time, end_time)
    fields = {
        'hours': quote.hours,
        'hourly_rate': quote.hourly_rate,
        'rental_cost': quote.rental_cost,
        'total_amount': quote.rental_cost,
    }
    fields.update(kwargs)
    return Booking.objects.create(
        client=client, booking_date=booking_date, start_time=start_time, end_time=end_time, **fields
    )


class BookingCreationTest(TestCase):
    def setUp(self):
        self.customer = Client.objects.create(name='Anna Ivanova', phone='+375291234567')

    def post_booking(self, **overrides):
        payload = {
            'client_id': self.customer.id,
            'booking_date': '2026-02-17',
            'start_time': '18:00',
            'end_time': '22:00',
            'guest_count': 20,
            'event_type': 'Birthday',
        }
        payload.update(overrides)
        return self.client.post('/api/bookings/', data=json.dumps(payload), content_type='application/json')

    def test_booking_created_with_tariff_price(self):
        response = self.post_booking()

        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(data['status'], 'preliminary')
        self.assertEqual(data['hours'], 4)
        self.assertEqual(data['rental_cost'], 180)
        self.assertEqual(data['hourly_rate'], 45)
        self.assertEqual(data['deposit_amount'], 45)
        self.assertEqual(data['grand_total'], 180)
        self.assertEqual(data['remaining'], 180)

        booking = Booking.objects.get(id=data['booking_id'])
        self.assertEqual(booking.status, BookingStatus.PRELIMINARY)
        self.assertEqual(booking.rental_cost, Decimal('180'))
        self.assertTrue(Task.objects.filter(booking=booking, task_type='deposit_reminder').exists())

    def test_times_are_normalised(self):
        response = self.post_booking(start_time='9:00', end_time='12:00')

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['start_time'], '09:00')

    def test_manual_hourly_rate_overrides_tariff(self):
        response = self.post_booking(hourly_rate=50)

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['rental_cost'], 200)
        self.assertEqual(response.json()['deposit_amount'], 50)

    def test_overlapping_booking_rejected(self):
        existing = make_booking(self.customer, date(2026, 2, 14), '18:00', '22:00')

        response = self.post_booking(booking_date='2026-02-14', start_time='21:00', end_time='23:00')

        self.assertEqual(response.status_code, 409)
        conflicts = response.json()['conflicts']
        self.assertEqual([c['id'] for c in conflicts], [existing.id])
        self.assertEqual(conflicts[0]['start_time'], '18:00')
        self.assertEqual(Booking.objects.count(), 1)

    def test_cancelled_booking_does_not_block_slot(self):
        make_booking(self.customer, TUESDAY, '18:00', '22:00', status=BookingStatus.CANCELLED)

        response = self.post_booking()

        self.assertEqual(response.status_code, 201)

    def test_overnight_booking_blocks_next_morning(self):
        make_booking(self.customer, date(2026, 2, 16), '22:00', '03:00')

        response = self.post_booking(start_time='01:00', end_time='05:00')

        self.assertEqual(response.status_code, 409)

    def test_missing_fields(self):
        response = self.client.post(
            '/api/bookings/',
            data=json.dumps({'client_id': self.customer.id}),
            content_type='application/json'
        )

        self.assertEqual(response.status_code, 400)
        self.assertIn('Missing required fields', response.json()['error'])

    def test_invalid_time_rejected(self):
        response = self.post_booking(start_time='25:00')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(Booking.objects.count(), 0)

    def test_unknown_client(self):
        response = self.post_booking(client_id=9999)

        self.assertEqual(response.status_code, 404)

    def test_lead_confirmed_on_booking(self):
        lead = Lead.objects.create(client=self.customer, event_type='Birthday')

        response = self.post_booking(lead_id=lead.id)

        self.assertEqual(response.status_code, 201)
        lead.refresh_from_db()
        self.assertEqual(lead.status, 'confirmed')
        self.assertEqual(lead.booking_id, response.json()['booking_id'])

    def test_date_rows_locked_for_write(self):
        self.post_booking()

        self.assertEqual(
            sorted(BookingDay.objects.values_list('date', flat=True)),
            [date(2026, 2, 16), TUESDAY, date(2026, 2, 18)],
        )

    @patch('bookings.notifications.requests.post')
    def test_staff_notified_after_commit(self, mock_post):
        mock_post.return_value = MagicMock(status_code=200)

        with self.captureOnCommitCallbacks(execute=True):
            response = self.post_booking()

        self.assertEqual(response.status_code, 201)
        self.assertEqual(mock_post.call_count, 2)
        url = mock_post.call_args[0][0]
        self.assertTrue(url.endswith('/bottest-token/sendMessage'))
        self.assertIn('New booking', mock_post.call_args[1]['json']['text'])

    @patch('bookings.notifications.requests.post')
    def test_rejected_booking_not_notified(self, mock_post):
        make_booking(self.customer, TUESDAY, '18:00', '22:00')

        with self.captureOnCommitCallbacks(execute=True):
            response = self.post_booking()

        self.assertEqual(response.status_code, 409)
        mock_post.assert_not_called()


class BookingUpdateTest(TestCase):
    def setUp(self):
        self.customer = Client.objects.create(name='Anna Ivanova')
        self.booking = make_booking(self.customer, SATURDAY, '18:00', '22:00')

    def put(self, payload, booking_id=None):
        return self.client.put(
            f'/api/bookings/{booking_id or self.booking.id}/',
            data=json.dumps(payload),
            content_type='application/json'
        )

    def test_moving_booking_reprices(self):
        response = self.put({'booking_date': '2026-02-17'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['rental_cost'], 180)

    def test_extending_own_booking_is_not_a_conflict(self):
        response = self.put({'end_time': '23:00'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['hours'], 5)

    def test_moving_onto_other_booking_rejected(self):
        make_booking(self.customer, SATURDAY, '10:00', '14:00')

        response = self.put({'start_time': '12:00'})

        self.assertEqual(response.status_code, 409)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.start_time, '18:00')

    def test_manual_terminal_status(self):
        response = self.put({'status': 'cancelled'})

        self.assertEqual(response.status_code, 200)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, BookingStatus.CANCELLED)

    def test_payment_status_cannot_be_set_by_hand(self):
        response = self.put({'status': 'fully_paid'})

        self.assertEqual(response.status_code, 400)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, BookingStatus.PRELIMINARY)

    def test_echoed_paid_status_does_not_skip_recalc(self):
        booking = make_booking(self.customer, TUESDAY, '18:00', '22:00')
        record_payment(booking.id, 180, 'deposit')
        booking.refresh_from_db()
        self.assertEqual(booking.status, BookingStatus.FULLY_PAID)

        detail = self.client.get(f'/api/bookings/{booking.id}/').json()
        detail['end_time'] = '23:00'
        response = self.put(detail, booking_id=booking.id)

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['grand_total'], 225)
        self.assertEqual(data['rental_cost'], 225)
        self.assertFalse(data['rate_is_manual'])
        self.assertEqual(data['status'], 'deposit_paid')

    def test_manual_rate_kept_when_booking_moves(self):
        created = self.client.post(
            '/api/bookings/',
            data=json.dumps({
                'client_id': self.customer.id,
                'booking_date': '2026-02-17',
                'start_time': '18:00',
                'end_time': '22:00',
                'hourly_rate': 50,
            }),
            content_type='application/json'
        ).json()
        self.assertEqual(created['rental_cost'], 200)

        response = self.put({'end_time': '23:00'}, booking_id=created['booking_id'])

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['hourly_rate'], 50)
        self.assertEqual(data['rental_cost'], 250)
        self.assertTrue(data['rate_is_manual'])

    def test_new_manual_rate_reprices_in_place(self):
        response = self.put({'hourly_rate': 70})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['rental_cost'], 280)
        self.assertTrue(response.json()['rate_is_manual'])

    def test_unknown_booking(self):
        response = self.put({'guest_count': 5}, booking_id=9999)

        self.assertEqual(response.status_code, 404)

    def test_delete_archives_and_frees_slot(self):
        response = self.client.delete(f'/api/bookings/{self.booking.id}/')

        self.assertEqual(response.status_code, 200)
        self.booking.refresh_from_db()
        self.assertTrue(self.booking.is_archived)
        self.assertEqual(check_overlap(DjangoBookingRepository(), SATURDAY, '18:00', '22:00'), [])


class BookingAddOnTest(TestCase):
    def setUp(self):
        self.customer = Client.objects.create(name='Anna Ivanova')
        self.booking = make_booking(self.customer, TUESDAY, '18:00', '22:00')
        category = AddOnCategory.objects.create(name='Decor')
        self.service = AddOnService.objects.create(
            category=category, name='Balloons', price=Decimal('20'), cost_price=Decimal('8')
        )

    def test_addon_updates_totals_and_status(self):
        Payment.objects.create(booking=self.booking, amount=Decimal('180'), payment_type='deposit')
        self.booking.status = BookingStatus.FULLY_PAID
        self.booking.save()

        response = self.client.post(
            f'/api/bookings/{self.booking.id}/addons/',
            data=json.dumps({'service_id': self.service.id, 'quantity': 3}),
            content_type='application/json'
        )

        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(data['addons_total'], 60)
        self.assertEqual(data['grand_total'], 240)
        self.assertEqual(data['status'], 'deposit_paid')
        self.assertEqual(data['addons'][0]['sale_price'], 20)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.total_amount, Decimal('240'))

    def test_removing_addon_restores_total(self):
        self.client.post(
            f'/api/bookings/{self.booking.id}/addons/',
            data=json.dumps({'service_id': self.service.id, 'sale_price': 30}),
            content_type='application/json'
        )
        addon = self.booking.addons.get()

        response = self.client.delete(f'/api/bookings/addons/{addon.id}/')

        self.assertEqual(response.status_code, 200)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.total_amount, Decimal('180'))

    def test_non_positive_quantity_rejected(self):
        for quantity in [0, -2, 'many']:
            with self.subTest(quantity=quantity):
                response = self.client.post(
                    f'/api/bookings/{self.booking.id}/addons/',
                    data=json.dumps({'service_id': self.service.id, 'quantity': quantity}),
                    content_type='application/json'
                )
                self.assertEqual(response.status_code, 400)
        self.assertFalse(self.booking.addons.exists())

    def test_update_catalogue_service(self):
        response = self.client.put(
            f'/api/bookings/addons/services/{self.service.id}/',
            data=json.dumps({'price': 25, 'is_active': False}),
            content_type='application/json'
        )

        self.assertEqual(response.status_code, 200)
        self.service.refresh_from_db()
        self.assertEqual(self.service.price, Decimal('25'))
        self.assertEqual(self.service.name, 'Balloons')
        self.assertEqual(self.client.get('/api/bookings/addons/services/').json(), [])

    def test_update_unknown_service(self):
        response = self.client.put(
            '/api/bookings/addons/services/9999/', data=json.dumps({'price': 1}), content_type='application/json'
        )

        self.assertEqual(response.status_code, 404)

    def test_unknown_service(self):
        response = self.client.post(
            f'/api/bookings/{self.booking.id}/addons/',
            data=json.dumps({'service_id': 9999}),
            content_type='application/json'
        )

        self.assertEqual(response.status_code, 404)

    def test_enriched_detail(self):
        self.client.post(
            f'/api/bookings/{self.booking.id}/addons/',
            data=json.dumps({'service_id': self.service.id}),
            content_type='application/json'
        )
        Payment.objects.create(booking=self.booking, amount=Decimal('50'), payment_type='deposit')

        data = self.client.get(f'/api/bookings/{self.booking.id}/').json()

        self.assertEqual(data['client']['name'], 'Anna Ivanova')
        self.assertEqual(data['addons_margin'], 12)
        self.assertEqual(data['total_paid'], 50)
        self.assertEqual(data['remaining'], 150)


class BookingQueryTest(TestCase):
    def setUp(self):
        self.customer = Client.objects.create(name='Anna Ivanova')
        self.active = make_booking(self.customer, SATURDAY, '18:00', '22:00')
        self.cancelled = make_booking(
            self.customer, SATURDAY, '10:00', '12:00', status=BookingStatus.CANCELLED
        )

    def test_calendar_excludes_cancelled(self):
        events = self.client.get('/api/bookings/calendar/?start=2026-02-01&end=2026-02-28').json()

        self.assertEqual([e['id'] for e in events], [self.active.id])
        self.assertEqual(events[0]['start'], '2026-02-14T18:00')
        self.assertEqual(events[0]['backgroundColor'], '#94a3b8')

    def test_calendar_overnight_event_ends_next_day(self):
        overnight = make_booking(self.customer, SUNDAY, '22:00', '02:00')

        events = self.client.get('/api/bookings/calendar/?start=2026-02-15&end=2026-02-15').json()

        self.assertEqual([e['id'] for e in events], [overnight.id])
        self.assertEqual(events[0]['end'], '2026-02-16T02:00')

    def test_list_filters_by_status(self):
        data = self.client.get('/api/bookings/?status=cancelled').json()

        self.assertEqual([b['booking_id'] for b in data], [self.cancelled.id])

    def test_price_quote(self):
        response = self.client.get('/api/bookings/price/?date=2026-02-14&start_time=21:30&end_time=01:00')

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['rental_cost'], 240)
        self.assertEqual(data['deposit_amount'], 60)
        self.assertEqual(len(data['breakdown']), 2)

    def test_malformed_date_filters(self):
        for url in [
            '/api/bookings/?date_from=14.02.2026',
            '/api/bookings/?client_id=anna',
            '/api/bookings/calendar/?start=soon',
            '/api/bookings/calendar/?end=2026-13-01',
        ]:
            with self.subTest(url=url):
                self.assertEqual(self.client.get(url).status_code, 400)

    def test_price_quote_invalid_time(self):
        response = self.client.get('/api/bookings/price/?date=2026-02-14&start_time=7pm&end_time=01:00')

        self.assertEqual(response.status_code, 400)

    def test_availability(self):
        taken = self.client.get('/api/bookings/availability/?date=2026-02-14&start_time=21:00&end_time=23:00').json()
        free = self.client.get('/api/bookings/availability/?date=2026-02-14&start_time=10:00&end_time=12:00').json()

        self.assertFalse(taken['available'])
        self.assertEqual(taken['conflicts'][0]['id'], self.active.id)
        self.assertTrue(free['available'])

    def test_recalc_through_django_repository_is_idempotent(self):
        Payment.objects.create(booking=self.active, amount=Decimal('100'), payment_type='deposit')
        repo = DjangoBookingRepository()

        first = recalc_booking_status(repo, self.active.id)
        second = recalc_booking_status(repo, self.active.id)

        self.assertEqual(first, BookingStatus.DEPOSIT_PAID)
        self.assertEqual(first, second)

    def test_double_booking_conflict_carries_details(self):
        conflicts = check_overlap(DjangoBookingRepository(), SATURDAY, '19:00', '20:00')
        error = DoubleBookingConflict(conflicts)

        self.assertEqual(error.as_dict()[0]['status'], 'preliminary')


class TaskApiTest(TestCase):
    def setUp(self):
        self.customer = Client.objects.create(name='Anna Ivanova')
        self.booking = make_booking(self.customer, TUESDAY, '18:00', '22:00')

    def test_create_task_for_booking(self):
        response = self.client.post(
            '/api/bookings/tasks/',
            data=json.dumps({
                'booking_id': self.booking.id,
                'title': 'Call about decor',
                'due_date': '2026-02-10',
                'task_type': 'addons_discuss',
            }),
            content_type='application/json'
        )

        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(data['client_id'], self.customer.id)
        self.assertEqual(data['client_name'], 'Anna Ivanova')
        self.assertFalse(data['is_completed'])

    def test_create_requires_title(self):
        response = self.client.post('/api/bookings/tasks/', data=json.dumps({}), content_type='application/json')

        self.assertEqual(response.status_code, 400)

    def test_unknown_task_type_rejected(self):
        response = self.client.post(
            '/api/bookings/tasks/',
            data=json.dumps({'title': 'Something', 'task_type': 'party'}),
            content_type='application/json'
        )

        self.assertEqual(response.status_code, 400)

    def test_complete_and_filter(self):
        open_task = Task.objects.create(booking=self.booking, title='Collect deposit', task_type='deposit_reminder')
        Task.objects.create(title='Order flowers', is_completed=True)

        response = self.client.put(
            f'/api/bookings/tasks/{open_task.id}/',
            data=json.dumps({'is_completed': True}),
            content_type='application/json'
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['title'], 'Collect deposit')

        self.assertEqual(self.client.get('/api/bookings/tasks/?completed=false').json(), [])
        data = self.client.get(f'/api/bookings/tasks/?booking_id={self.booking.id}').json()
        self.assertEqual([t['task_id'] for t in data], [open_task.id])

    def test_delete_task(self):
        task = Task.objects.create(title='Order flowers')

        response = self.client.delete(f'/api/bookings/tasks/{task.id}/')

        self.assertEqual(response.status_code, 200)
        self.assertFalse(Task.objects.exists())
        self.assertEqual(self.client.delete(f'/api/bookings/tasks/{task.id}/').status_code, 404)
