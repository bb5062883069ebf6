from datetime import date
from decimal import Decimal
from io import StringIO
from unittest.mock import patch
import json

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase

from bookings.models import Booking
from .models import Client, Lead


class ClientApiTest(TestCase):
    def setUp(self):
        self.anna = Client.objects.create(name='Anna Ivanova', phone='+375291234567', source='instagram')
        self.oleg = Client.objects.create(name='Oleg Petrov', telegram='@oleg', source='website')
        for day in (14, 21):
            Booking.objects.create(
                client=self.anna,
                booking_date=date(2026, 2, day),
                start_time='18:00',
                end_time='22:00',
                hours=Decimal('4'),
                rental_cost=Decimal('240'),
            )

    def test_create_client(self):
        response = self.client.post(
            '/api/clients/',
            data=json.dumps({'name': 'Maria', 'phone': '+375449998877', 'source': 'telegram'}),
            content_type='application/json'
        )

        self.assertEqual(response.status_code, 201)
        self.assertTrue(Client.objects.filter(name='Maria', source='telegram').exists())

    def test_create_client_requires_name(self):
        response = self.client.post('/api/clients/', data=json.dumps({}), content_type='application/json')

        self.assertEqual(response.status_code, 400)

    def test_unknown_source_rejected(self):
        response = self.client.post(
            '/api/clients/',
            data=json.dumps({'name': 'Maria', 'source': 'billboard'}),
            content_type='application/json'
        )

        self.assertEqual(response.status_code, 400)

    def test_search_and_repeat_flag(self):
        data = self.client.get('/api/clients/?search=375291').json()

        self.assertEqual([c['client_id'] for c in data], [self.anna.id])
        self.assertEqual(data[0]['booking_count'], 2)
        self.assertTrue(data[0]['is_repeat'])

    def test_filter_by_source(self):
        data = self.client.get('/api/clients/?source=website').json()

        self.assertEqual([c['name'] for c in data], ['Oleg Petrov'])

    def test_client_detail_with_bookings(self):
        data = self.client.get(f'/api/clients/{self.anna.id}/').json()

        self.assertEqual([b['booking_date'] for b in data['bookings']], ['2026-02-21', '2026-02-14'])

    def test_update_client(self):
        response = self.client.put(
            f'/api/clients/{self.oleg.id}/',
            data=json.dumps({'phone': '+375297770000', 'source': 'recommendation'}),
            content_type='application/json'
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['phone'], '+375297770000')
        self.oleg.refresh_from_db()
        self.assertEqual(self.oleg.source, 'recommendation')
        self.assertEqual(self.oleg.telegram, '@oleg')

    def test_update_rejects_bad_values(self):
        for payload in [{'name': ''}, {'source': 'billboard'}]:
            with self.subTest(**payload):
                response = self.client.put(
                    f'/api/clients/{self.oleg.id}/', data=json.dumps(payload), content_type='application/json'
                )
                self.assertEqual(response.status_code, 400)

    def test_archive_client(self):
        response = self.client.delete(f'/api/clients/{self.oleg.id}/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual([c['name'] for c in self.client.get('/api/clients/').json()], ['Anna Ivanova'])
        self.assertEqual(self.client.delete(f'/api/clients/{self.oleg.id}/').status_code, 404)

    def test_unknown_client(self):
        response = self.client.get('/api/clients/9999/')

        self.assertEqual(response.status_code, 404)


class LeadApiTest(TestCase):
    def setUp(self):
        self.customer = Client.objects.create(name='Anna Ivanova')

    def test_create_lead(self):
        response = self.client.post(
            '/api/clients/leads/',
            data=json.dumps({'client_id': self.customer.id, 'desired_date': 'mid March', 'guest_count': 30}),
            content_type='application/json'
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['status'], 'new')
        self.assertEqual(Lead.objects.get().guest_count, 30)

    def test_lead_for_unknown_client(self):
        response = self.client.post(
            '/api/clients/leads/',
            data=json.dumps({'client_id': 9999}),
            content_type='application/json'
        )

        self.assertEqual(response.status_code, 404)

    def test_lead_detail(self):
        lead = Lead.objects.create(client=self.customer, event_type='Wedding')

        data = self.client.get(f'/api/clients/leads/{lead.id}/').json()

        self.assertEqual(data['event_type'], 'Wedding')
        self.assertEqual(data['client_name'], 'Anna Ivanova')

    def test_lead_status_workflow(self):
        lead = Lead.objects.create(client=self.customer, event_type='Wedding', guest_count=40)

        for status in ['in_progress', 'proposal_sent', 'waiting_response']:
            response = self.client.put(
                f'/api/clients/leads/{lead.id}/',
                data=json.dumps({'status': status}),
                content_type='application/json'
            )
            self.assertEqual(response.json()['status'], status)

        lead.refresh_from_db()
        self.assertEqual(lead.event_type, 'Wedding')
        self.assertEqual(lead.guest_count, 40)

    def test_lead_update_rejects_unknown_values(self):
        lead = Lead.objects.create(client=self.customer)

        for payload in [{'status': 'won'}, {'booking_id': 9999}, {'client_id': 9999}]:
            with self.subTest(payload=payload):
                response = self.client.put(
                    f'/api/clients/leads/{lead.id}/', data=json.dumps(payload), content_type='application/json'
                )
                self.assertEqual(response.status_code, 400)

    def test_archive_lead(self):
        lead = Lead.objects.create(client=self.customer)

        response = self.client.delete(f'/api/clients/leads/{lead.id}/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.get('/api/clients/leads/').json(), [])
        self.assertEqual(self.client.get(f'/api/clients/leads/{lead.id}/').status_code, 404)

    def test_list_by_status(self):
        Lead.objects.create(client=self.customer, status='confirmed')
        Lead.objects.create(client=self.customer)

        data = self.client.get('/api/clients/leads/?status=new').json()

        self.assertEqual(len(data), 1)


class EnsureSuperuserCommandTest(TestCase):
    @patch.dict('os.environ', {'DJANGO_SUPERUSER_PASSWORD': 's3cret-pass'})
    def test_creates_owner_once(self):
        out = StringIO()
        call_command('ensure_superuser', '--username', 'owner', stdout=out)
        call_command('ensure_superuser', '--username', 'owner', stdout=out)

        self.assertEqual(get_user_model().objects.filter(is_superuser=True).count(), 1)
        self.assertIn('already exists', out.getvalue())

    @patch.dict('os.environ', {}, clear=True)
    def test_skips_without_password(self):
        err = StringIO()
        call_command('ensure_superuser', stdout=StringIO(), stderr=err)

        self.assertFalse(get_user_model().objects.exists())
        self.assertIn('DJANGO_SUPERUSER_PASSWORD not set', err.getvalue())
