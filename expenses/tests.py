from datetime import date
from decimal import Decimal
import json

from django.test import TestCase

from bookings.models import Booking
from clients.models import Client
from .models import Expense, ExpenseCategory


class ExpenseApiTest(TestCase):
    def setUp(self):
        self.rent = ExpenseCategory.objects.create(name='Rent', sort_order=1)
        self.cleaning = ExpenseCategory.objects.create(name='Cleaning', sort_order=2)
        customer = Client.objects.create(name='Anna Ivanova')
        self.booking = Booking.objects.create(
            client=customer,
            booking_date=date(2026, 2, 14),
            start_time='18:00',
            end_time='22:00',
            hours=Decimal('4'),
        )

    def post_expense(self, **overrides):
        payload = {
            'category_id': self.cleaning.id,
            'amount': 40,
            'expense_date': '2026-02-15',
            'payment_method': 'cash',
            'booking_id': self.booking.id,
        }
        payload.update(overrides)
        return self.client.post('/api/expenses/', data=json.dumps(payload), content_type='application/json')

    def test_categories_in_sort_order(self):
        data = self.client.get('/api/expenses/categories/').json()

        self.assertEqual([c['name'] for c in data], ['Rent', 'Cleaning'])

    def test_create_expense(self):
        response = self.post_expense()

        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(data['category_name'], 'Cleaning')
        self.assertEqual(data['amount'], 40)
        self.assertEqual(data['booking_id'], self.booking.id)

    def test_missing_fields(self):
        response = self.client.post(
            '/api/expenses/', data=json.dumps({'amount': 10}), content_type='application/json'
        )

        self.assertEqual(response.status_code, 400)

    def test_invalid_values_rejected(self):
        for overrides in [{'amount': 0}, {'amount': 'abc'}, {'category_id': 9999}, {'payment_method': 'cheque'}]:
            with self.subTest(**overrides):
                self.assertEqual(self.post_expense(**overrides).status_code, 400)
        self.assertEqual(Expense.objects.count(), 0)

    def test_list_filters(self):
        self.post_expense(expense_date='2026-01-20', category_id=self.rent.id, amount=500)
        self.post_expense()

        data = self.client.get(f'/api/expenses/?category_id={self.rent.id}').json()
        self.assertEqual([e['amount'] for e in data], [500])

        data = self.client.get('/api/expenses/?date_from=2026-02-01').json()
        self.assertEqual([e['category_name'] for e in data], ['Cleaning'])

    def test_malformed_filter(self):
        response = self.client.get('/api/expenses/?date_from=yesterday')

        self.assertEqual(response.status_code, 400)

    def test_update_keeps_unsent_fields(self):
        expense_id = self.post_expense().json()['expense_id']

        response = self.client.put(
            f'/api/expenses/{expense_id}/',
            data=json.dumps({'amount': 55, 'category_id': self.rent.id}),
            content_type='application/json'
        )

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['amount'], 55)
        self.assertEqual(data['category_name'], 'Rent')
        self.assertEqual(data['payment_method'], 'cash')
        self.assertEqual(data['expense_date'], '2026-02-15')

    def test_delete_archives(self):
        expense_id = self.post_expense().json()['expense_id']

        response = self.client.delete(f'/api/expenses/{expense_id}/')

        self.assertEqual(response.status_code, 200)
        self.assertTrue(Expense.objects.get(id=expense_id).is_archived)
        self.assertEqual(self.client.get('/api/expenses/').json(), [])
        self.assertEqual(self.client.delete(f'/api/expenses/{expense_id}/').status_code, 404)
