import json
from django.db.models import Count, Q
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods
from bookings.models import Booking
from bookings.services import booking_summary
from .models import SOURCE_CHOICES, Client, Lead

SOURCES = {choice for choice, _ in SOURCE_CHOICES}


def client_data(client):
    data = {
        'client_id': client.id,
        'name': client.name,
        'phone': client.phone,
        'telegram': client.telegram,
        'instagram': client.instagram,
        'source': client.source,
        'comment': client.comment,
        'first_contact_date': client.first_contact_date.isoformat(),
    }
    if hasattr(client, 'booking_count'):
        data['booking_count'] = client.booking_count
        data['is_repeat'] = client.booking_count > 1
    return data


def with_booking_count(qs):
    return qs.annotate(booking_count=Count('bookings', filter=Q(bookings__is_archived=False)))


@csrf_exempt
@require_http_methods(["GET", "POST"])
def client_list(request):
    if request.method == 'POST':
        try:
            data = json.loads(request.body)
        except json.JSONDecodeError:
            return JsonResponse({'error': 'Invalid JSON'}, status=400)

        if not data.get('name'):
            return JsonResponse({'error': 'Missing required field: name'}, status=400)
        if data.get('source') and data['source'] not in SOURCES:
            return JsonResponse({'error': f"Unknown source '{data['source']}'"}, status=400)

        client = Client.objects.create(
            name=data['name'],
            phone=data.get('phone') or '',
            telegram=data.get('telegram') or '',
            instagram=data.get('instagram') or '',
            source=data.get('source') or '',
            comment=data.get('comment') or '',
        )
        return JsonResponse(client_data(client), status=201)

    qs = with_booking_count(Client.objects.filter(is_archived=False))
    search = request.GET.get('search')
    source = request.GET.get('source')
    if search:
        qs = qs.filter(
            Q(name__icontains=search) | Q(phone__icontains=search) | Q(telegram__icontains=search)
        )
    if source:
        qs = qs.filter(source=source)
    return JsonResponse([client_data(c) for c in qs], safe=False)


def apply_client_fields(client, data):
    if 'name' in data:
        if not data['name']:
            raise ValueError('Client name cannot be empty')
        client.name = data['name']
    if data.get('source'):
        if data['source'] not in SOURCES:
            raise ValueError(f"Unknown source '{data['source']}'")
    for field in ('phone', 'telegram', 'instagram', 'source', 'comment'):
        if field in data:
            setattr(client, field, data[field] or '')


@csrf_exempt
@require_http_methods(["GET", "PUT", "DELETE"])
def client_detail(request, client_id):
    if request.method != 'GET':
        client = Client.objects.filter(id=client_id, is_archived=False).first()
        if client is None:
            return JsonResponse({'error': 'Client not found'}, status=404)

        if request.method == 'DELETE':
            client.is_archived = True
            client.save(update_fields=['is_archived', 'updated_at'])
            return JsonResponse({'success': True})

        try:
            data = json.loads(request.body)
        except json.JSONDecodeError:
            return JsonResponse({'error': 'Invalid JSON'}, status=400)
        try:
            apply_client_fields(client, data)
        except ValueError as e:
            return JsonResponse({'error': str(e)}, status=400)
        client.save()

    client = with_booking_count(Client.objects.filter(id=client_id)).first()
    if client is None:
        return JsonResponse({'error': 'Client not found'}, status=404)

    bookings = client.bookings.filter(is_archived=False).order_by('-booking_date')
    leads = client.leads.filter(is_archived=False)
    return JsonResponse({
        **client_data(client),
        'bookings': [booking_summary(b) for b in bookings],
        'leads': [lead_data(lead) for lead in leads],
    })


def lead_data(lead):
    return {
        'lead_id': lead.id,
        'client_id': lead.client_id,
        'contact_date': lead.contact_date.isoformat(),
        'desired_date': lead.desired_date,
        'guest_count': lead.guest_count,
        'event_type': lead.event_type,
        'source': lead.source,
        'status': lead.status,
        'booking_id': lead.booking_id,
        'comment': lead.comment,
    }


@csrf_exempt
@require_http_methods(["GET", "POST"])
def lead_list(request):
    if request.method == 'POST':
        try:
            data = json.loads(request.body)
        except json.JSONDecodeError:
            return JsonResponse({'error': 'Invalid JSON'}, status=400)

        if not data.get('client_id'):
            return JsonResponse({'error': 'Missing required field: client_id'}, status=400)
        if not Client.objects.filter(id=data['client_id']).exists():
            return JsonResponse({'error': 'Client not found'}, status=404)

        lead = Lead.objects.create(
            client_id=data['client_id'],
            desired_date=data.get('desired_date') or '',
            guest_count=data.get('guest_count'),
            event_type=data.get('event_type') or '',
            source=data.get('source') or '',
            comment=data.get('comment') or '',
        )
        return JsonResponse(lead_data(lead), status=201)

    qs = Lead.objects.filter(is_archived=False)
    status = request.GET.get('status')
    if status:
        qs = qs.filter(status=status)
    return JsonResponse([lead_data(lead) for lead in qs], safe=False)


LEAD_STATUSES = {choice for choice, _ in Lead.STATUS_CHOICES}


def apply_lead_fields(lead, data):
    if data.get('client_id'):
        if not Client.objects.filter(id=data['client_id']).exists():
            raise ValueError(f"Unknown client {data['client_id']}")
        lead.client_id = data['client_id']
    if data.get('status'):
        if data['status'] not in LEAD_STATUSES:
            raise ValueError(f"Unknown lead status '{data['status']}'")
        lead.status = data['status']
    if data.get('source') and data['source'] not in SOURCES:
        raise ValueError(f"Unknown source '{data['source']}'")
    if 'booking_id' in data:
        booking_id = data['booking_id']
        if booking_id and not Booking.objects.filter(id=booking_id).exists():
            raise ValueError(f"Unknown booking {booking_id}")
        lead.booking_id = booking_id or None
    if 'guest_count' in data:
        lead.guest_count = data['guest_count'] or None
    for field in ('desired_date', 'event_type', 'source', 'comment'):
        if field in data:
            setattr(lead, field, data[field] or '')


@csrf_exempt
@require_http_methods(["GET", "PUT", "DELETE"])
def lead_detail(request, lead_id):
    lead = Lead.objects.select_related('client').filter(id=lead_id, is_archived=False).first()
    if lead is None:
        return JsonResponse({'error': 'Lead not found'}, status=404)

    if request.method == 'DELETE':
        lead.is_archived = True
        lead.save(update_fields=['is_archived', 'updated_at'])
        return JsonResponse({'success': True})

    if request.method == 'PUT':
        try:
            data = json.loads(request.body)
        except json.JSONDecodeError:
            return JsonResponse({'error': 'Invalid JSON'}, status=400)
        try:
            apply_lead_fields(lead, data)
        except ValueError as e:
            return JsonResponse({'error': str(e)}, status=400)
        lead.save()
        lead = Lead.objects.select_related('client').get(id=lead_id)

    return JsonResponse({**lead_data(lead), 'client_name': lead.client.name, 'client_phone': lead.client.phone})
