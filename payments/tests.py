from datetime import date
from decimal import Decimal
from unittest.mock import patch, MagicMock
import json

from django.test import TestCase

from bookings.models import AddOnCategory, AddOnService, Booking, BookingAddOn, Task
from bookings.status import BookingStatus
from clients.models import Client
from .models import Payment
from . import services


class PaymentTestCase(TestCase):
    def setUp(self):
        self.customer = Client.objects.create(name='Test User', phone='+375291112233')
        self.booking = Booking.objects.create(
            client=self.customer,
            booking_date=date(2026, 2, 14),
            start_time='18:00',
            end_time='22:00',
            hours=Decimal('4'),
            hourly_rate=Decimal('60'),
            rental_cost=Decimal('350'),
            total_amount=Decimal('400'),
        )
        category = AddOnCategory.objects.create(name='Catering')
        service = AddOnService.objects.create(category=category, name='Cake', price=Decimal('50'))
        BookingAddOn.objects.create(booking=self.booking, service=service, quantity=1, sale_price=Decimal('50'))

    def post_payment(self, **overrides):
        payload = {
            'booking_id': self.booking.id,
            'amount': 150,
            'payment_type': 'deposit',
            'payment_method': 'cash',
        }
        payload.update(overrides)
        return self.client.post('/api/payments/', data=json.dumps(payload), content_type='application/json')

    def booking_status(self):
        self.booking.refresh_from_db()
        return self.booking.status


class PaymentStatusTransitionTest(PaymentTestCase):
    def test_payments_move_booking_through_statuses(self):
        response = self.post_payment(amount=150)
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['booking_status'], 'deposit_paid')
        self.assertEqual(self.booking_status(), BookingStatus.DEPOSIT_PAID)

        response = self.post_payment(amount=250, payment_type='additional')
        self.assertEqual(response.status_code, 201)
        self.assertEqual(self.booking_status(), BookingStatus.FULLY_PAID)
        second_id = response.json()['payment_id']

        response = self.client.delete(f'/api/payments/{second_id}/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['booking_status'], 'deposit_paid')
        self.assertEqual(self.booking_status(), BookingStatus.DEPOSIT_PAID)

    def test_removing_all_payments_reverts_to_no_deposit(self):
        payment = services.record_payment(self.booking.id, 400, 'deposit')
        self.assertEqual(self.booking_status(), BookingStatus.FULLY_PAID)

        services.delete_payment(payment.id)

        self.assertEqual(self.booking_status(), BookingStatus.NO_DEPOSIT)

    def test_cancelled_booking_ignores_late_payment(self):
        self.booking.status = BookingStatus.CANCELLED
        self.booking.save()

        response = self.post_payment(amount=400)

        self.assertEqual(response.status_code, 201)
        self.assertEqual(self.booking_status(), BookingStatus.CANCELLED)

    def test_completed_booking_not_reopened_by_deletion(self):
        payment = services.record_payment(self.booking.id, 400, 'deposit')
        self.booking.status = BookingStatus.COMPLETED
        self.booking.save()

        services.delete_payment(payment.id)

        self.assertEqual(self.booking_status(), BookingStatus.COMPLETED)

    def test_deposit_completes_reminder_task(self):
        task = Task.objects.create(booking=self.booking, title='Collect deposit', task_type='deposit_reminder')

        self.post_payment(payment_type='additional')
        task.refresh_from_db()
        self.assertFalse(task.is_completed)

        self.post_payment(payment_type='deposit')
        task.refresh_from_db()
        self.assertTrue(task.is_completed)


class PaymentValidationTest(PaymentTestCase):
    def test_zero_amount_reports_amount_error(self):
        response = self.post_payment(amount=0)

        self.assertEqual(response.status_code, 400)
        self.assertIn('Amount must be > 0', response.json()['error'])

    def test_negative_amount_rejected(self):
        response = self.post_payment(amount=-100)

        self.assertEqual(response.status_code, 400)
        self.assertIn('Amount must be > 0', response.json()['error'])
        self.assertEqual(Payment.objects.count(), 0)

    def test_unknown_payment_type_rejected(self):
        response = self.post_payment(payment_type='bitcoin')

        self.assertEqual(response.status_code, 400)

    def test_unknown_payment_method_rejected(self):
        response = self.post_payment(payment_method='cheque')

        self.assertEqual(response.status_code, 400)

    def test_missing_required_fields(self):
        response = self.client.post(
            '/api/payments/',
            data=json.dumps({'booking_id': self.booking.id}),
            content_type='application/json'
        )

        self.assertEqual(response.status_code, 400)
        self.assertIn('Missing required fields', response.json()['error'])

    def test_unknown_booking(self):
        response = self.post_payment(booking_id=9999)

        self.assertEqual(response.status_code, 404)

    def test_delete_unknown_payment(self):
        response = self.client.delete('/api/payments/9999/')

        self.assertEqual(response.status_code, 404)

    def test_invalid_json(self):
        response = self.client.post('/api/payments/', data='{', content_type='application/json')

        self.assertEqual(response.status_code, 400)


class PaymentListTest(PaymentTestCase):
    def setUp(self):
        super().setUp()
        services.record_payment(self.booking.id, 100, 'deposit', payment_date='2026-02-01')
        services.record_payment(self.booking.id, 200, 'additional', payment_date='2026-02-10')

    def test_filters(self):
        data = self.client.get('/api/payments/?payment_type=additional').json()
        self.assertEqual([p['amount'] for p in data], [200])
        self.assertEqual(data[0]['client_name'], 'Test User')

        data = self.client.get('/api/payments/?date_from=2026-01-01&date_to=2026-02-05').json()
        self.assertEqual([p['amount'] for p in data], [100])

    def test_malformed_filters_rejected(self):
        for query in ['date_from=last-week', 'date_to=2026-02-30', 'booking_id=abc']:
            with self.subTest(query=query):
                self.assertEqual(self.client.get(f'/api/payments/?{query}').status_code, 400)

    def test_payments_for_booking(self):
        data = self.client.get(f'/api/payments/booking/{self.booking.id}/').json()

        self.assertEqual([p['payment_date'] for p in data], ['2026-02-01', '2026-02-10'])


class PaymentNotificationTest(PaymentTestCase):
    @patch('bookings.notifications.requests.post')
    def test_staff_notified_with_new_status(self, mock_post):
        mock_post.return_value = MagicMock(status_code=200)

        with self.captureOnCommitCallbacks(execute=True):
            self.post_payment(amount=150)

        self.assertEqual(mock_post.call_count, 2)
        text = mock_post.call_args[1]['json']['text']
        self.assertIn(f'booking #{self.booking.id}', text)
        self.assertIn('Deposit paid', text)

    @patch('bookings.notifications.requests.post')
    def test_transport_error_does_not_break_payment(self, mock_post):
        import requests
        mock_post.side_effect = requests.ConnectionError('unreachable')

        with self.captureOnCommitCallbacks(execute=True):
            response = self.post_payment(amount=150)

        self.assertEqual(response.status_code, 201)
        self.assertEqual(Payment.objects.count(), 1)
