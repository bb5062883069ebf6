import json
from datetime import timedelta
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods
from clients.models import Client
from . import services
from .exceptions import DoubleBookingConflict, InvalidTimeFormat, NotFound
from .models import AddOnCategory, AddOnService, Booking, Task
from .pricing import calculate_price, get_first_hour_rate, to_date
from .repository import DjangoBookingRepository
from .scheduling import check_overlap
from .status import BookingStatus

TASK_TYPES = {choice for choice, _ in Task.TYPE_CHOICES}


def conflict_response(error, message='Time slot is taken: overlaps existing bookings'):
    return JsonResponse({'error': message, 'conflicts': error.as_dict()}, status=409)


@csrf_exempt
@require_http_methods(["GET", "POST"])
def booking_list(request):
    if request.method == 'POST':
        return create_booking(request)

    qs = Booking.objects.select_related('client').filter(is_archived=False)
    date_from = request.GET.get('date_from')
    date_to = request.GET.get('date_to')
    status = request.GET.get('status')
    client_id = request.GET.get('client_id')
    try:
        if date_from:
            qs = qs.filter(booking_date__gte=to_date(date_from))
        if date_to:
            qs = qs.filter(booking_date__lte=to_date(date_to))
        if client_id:
            qs = qs.filter(client_id=int(client_id))
    except ValueError:
        return JsonResponse({'error': 'Invalid filter, expected YYYY-MM-DD dates and a numeric client_id'}, status=400)
    if status:
        qs = qs.filter(status=status)

    bookings = []
    for booking in qs.order_by('booking_date', 'start_time'):
        grand_total = booking.grand_total()
        total_paid = booking.total_paid()
        bookings.append({
            **services.booking_summary(booking),
            'client_name': booking.client.name,
            'client_phone': booking.client.phone,
            'grand_total': float(grand_total),
            'total_paid': float(total_paid),
            'remaining': float(grand_total - total_paid),
        })
    return JsonResponse(bookings, safe=False)


def create_booking(request):
    try:
        data = json.loads(request.body)
    except json.JSONDecodeError:
        return JsonResponse({'error': 'Invalid JSON'}, status=400)

    if any(not data.get(f) for f in ['client_id', 'booking_date', 'start_time', 'end_time']):
        return JsonResponse({
            'error': 'Missing required fields: client_id, booking_date, start_time, end_time'
        }, status=400)

    try:
        booking = services.create_booking(data)
    except DoubleBookingConflict as e:
        return conflict_response(e)
    except NotFound as e:
        return JsonResponse({'error': str(e)}, status=404)
    except ValueError as e:
        return JsonResponse({'error': str(e)}, status=400)

    return JsonResponse(services.enrich_booking(booking), status=201)


@csrf_exempt
@require_http_methods(["GET", "PUT", "DELETE"])
def booking_detail(request, booking_id):
    if request.method == 'DELETE':
        try:
            services.archive_booking(booking_id)
        except NotFound:
            return JsonResponse({'error': 'Booking not found'}, status=404)
        return JsonResponse({'success': True})

    if request.method == 'PUT':
        try:
            data = json.loads(request.body)
        except json.JSONDecodeError:
            return JsonResponse({'error': 'Invalid JSON'}, status=400)
        try:
            services.update_booking(booking_id, data)
        except DoubleBookingConflict as e:
            return conflict_response(e)
        except NotFound as e:
            return JsonResponse({'error': str(e)}, status=404)
        except ValueError as e:
            return JsonResponse({'error': str(e)}, status=400)

    try:
        booking = Booking.objects.select_related('client').get(id=booking_id)
    except Booking.DoesNotExist:
        return JsonResponse({'error': 'Booking not found'}, status=404)
    return JsonResponse(services.enrich_booking(booking))


@require_http_methods(["GET"])
def calendar_events(request):
    qs = Booking.objects.select_related('client').filter(is_archived=False).exclude(
        status=BookingStatus.CANCELLED
    )
    start = request.GET.get('start')
    end = request.GET.get('end')
    try:
        if start:
            qs = qs.filter(booking_date__gte=to_date(start))
        if end:
            qs = qs.filter(booking_date__lte=to_date(end))
    except ValueError:
        return JsonResponse({'error': 'Invalid date, expected YYYY-MM-DD'}, status=400)

    events = []
    for booking in qs.order_by('booking_date', 'start_time'):
        day = booking.booking_date
        end_day = day + timedelta(days=1) if booking.end_time <= booking.start_time else day
        events.append({
            'id': booking.id,
            'title': f"{booking.client.name} - {booking.event_type or 'Event'}",
            'start': f"{day.isoformat()}T{booking.start_time}",
            'end': f"{end_day.isoformat()}T{booking.end_time}",
            'extendedProps': {
                'status': booking.status,
                'guest_count': booking.guest_count,
                'hours': float(booking.hours),
            },
            'backgroundColor': booking.status_color,
            'borderColor': booking.status_color,
        })
    return JsonResponse(events, safe=False)


@require_http_methods(["GET"])
def price_quote(request):
    booking_date = request.GET.get('date')
    start_time = request.GET.get('start_time')
    end_time = request.GET.get('end_time')
    if not all([booking_date, start_time, end_time]):
        return JsonResponse({'error': 'Missing required parameters: date, start_time, end_time'}, status=400)

    try:
        quote = calculate_price(booking_date, start_time, end_time)
        deposit = get_first_hour_rate(booking_date, start_time)
    except InvalidTimeFormat as e:
        return JsonResponse({'error': str(e)}, status=400)
    except ValueError:
        return JsonResponse({'error': 'Invalid date, expected YYYY-MM-DD'}, status=400)

    return JsonResponse({**quote.as_dict(), 'deposit_amount': float(deposit)})


@require_http_methods(["GET"])
def availability(request):
    booking_date = request.GET.get('date')
    start_time = request.GET.get('start_time')
    end_time = request.GET.get('end_time')
    exclude_id = request.GET.get('exclude_id')
    if not all([booking_date, start_time, end_time]):
        return JsonResponse({'error': 'Missing required parameters: date, start_time, end_time'}, status=400)

    try:
        conflicts = check_overlap(
            DjangoBookingRepository(), booking_date, start_time, end_time,
            exclude_id=int(exclude_id) if exclude_id else None,
        )
    except ValueError as e:
        return JsonResponse({'error': str(e)}, status=400)

    return JsonResponse({
        'available': not conflicts,
        'conflicts': [c.as_dict() for c in conflicts],
    })


@csrf_exempt
@require_http_methods(["GET", "POST"])
def booking_addons(request, booking_id):
    if not Booking.objects.filter(id=booking_id).exists():
        return JsonResponse({'error': 'Booking not found'}, status=404)

    if request.method == 'POST':
        try:
            data = json.loads(request.body)
        except json.JSONDecodeError:
            return JsonResponse({'error': 'Invalid JSON'}, status=400)
        if not data.get('service_id'):
            return JsonResponse({'error': 'Missing required field: service_id'}, status=400)
        try:
            services.add_booking_addon(booking_id, data)
        except NotFound as e:
            return JsonResponse({'error': str(e)}, status=404)
        except ValueError as e:
            return JsonResponse({'error': str(e)}, status=400)

    booking = Booking.objects.select_related('client').get(id=booking_id)
    enriched = services.enrich_booking(booking)
    return JsonResponse({
        'booking_id': booking_id,
        'status': enriched['status'],
        'addons': enriched['addons'],
        'addons_total': enriched['addons_total'],
        'grand_total': enriched['grand_total'],
    }, status=201 if request.method == 'POST' else 200)


@csrf_exempt
@require_http_methods(["DELETE"])
def booking_addon_detail(request, addon_id):
    try:
        services.remove_booking_addon(addon_id)
    except NotFound:
        return JsonResponse({'error': 'Add-on not found'}, status=404)
    return JsonResponse({'success': True})


@require_http_methods(["GET"])
def addon_categories(request):
    return JsonResponse([
        {'id': c.id, 'name': c.name, 'sort_order': c.sort_order}
        for c in AddOnCategory.objects.all()
    ], safe=False)


@csrf_exempt
@require_http_methods(["GET", "POST"])
def addon_services(request):
    if request.method == 'POST':
        try:
            data = json.loads(request.body)
        except json.JSONDecodeError:
            return JsonResponse({'error': 'Invalid JSON'}, status=400)
        if not data.get('category_id') or not data.get('name'):
            return JsonResponse({'error': 'Missing required fields: category_id, name'}, status=400)
        if not AddOnCategory.objects.filter(id=data['category_id']).exists():
            return JsonResponse({'error': 'Category not found'}, status=404)
        service = AddOnService.objects.create(
            category_id=data['category_id'],
            name=data['name'],
            price=data.get('price') or 0,
            cost_price=data.get('cost_price') or 0,
            executor_type=data.get('executor_type') or '',
            comment=data.get('comment') or '',
        )
        return JsonResponse({'id': service.id, 'name': service.name, 'price': float(service.price)}, status=201)

    return JsonResponse([
        {
            'id': s.id,
            'category_id': s.category_id,
            'category_name': s.category.name,
            'name': s.name,
            'price': float(s.price),
            'cost_price': float(s.cost_price),
            'executor_type': s.executor_type,
        }
        for s in AddOnService.objects.select_related('category').filter(is_active=True)
    ], safe=False)


@csrf_exempt
@require_http_methods(["PUT"])
def addon_service_detail(request, service_id):
    service = AddOnService.objects.filter(id=service_id).first()
    if service is None:
        return JsonResponse({'error': 'Add-on service not found'}, status=404)

    try:
        data = json.loads(request.body)
    except json.JSONDecodeError:
        return JsonResponse({'error': 'Invalid JSON'}, status=400)

    if data.get('category_id'):
        if not AddOnCategory.objects.filter(id=data['category_id']).exists():
            return JsonResponse({'error': 'Category not found'}, status=404)
        service.category_id = data['category_id']
    try:
        for field in ('price', 'cost_price'):
            if data.get(field) is not None:
                setattr(service, field, services.to_decimal(data[field], field))
    except ValueError as e:
        return JsonResponse({'error': str(e)}, status=400)
    for field in ('name', 'executor_type', 'comment'):
        if data.get(field) is not None:
            setattr(service, field, data[field])
    if data.get('is_active') is not None:
        service.is_active = bool(data['is_active'])
    service.save()

    return JsonResponse({
        'id': service.id,
        'category_id': service.category_id,
        'name': service.name,
        'price': float(service.price),
        'cost_price': float(service.cost_price),
        'executor_type': service.executor_type,
        'is_active': service.is_active,
    })


def task_data(task):
    return {
        'task_id': task.id,
        'booking_id': task.booking_id,
        'client_id': task.client_id,
        'client_name': task.client.name if task.client_id else None,
        'title': task.title,
        'description': task.description,
        'due_date': task.due_date.isoformat() if task.due_date else None,
        'task_type': task.task_type,
        'is_completed': task.is_completed,
    }


def apply_task_fields(task, data):
    if data.get('task_type') is not None:
        if data['task_type'] not in TASK_TYPES:
            raise ValueError(f"Unknown task_type '{data['task_type']}'")
        task.task_type = data['task_type']
    if 'due_date' in data:
        task.due_date = to_date(data['due_date']) if data['due_date'] else None
    for field in ('title', 'description'):
        if data.get(field) is not None:
            setattr(task, field, data[field])
    if data.get('is_completed') is not None:
        task.is_completed = bool(data['is_completed'])


@csrf_exempt
@require_http_methods(["GET", "POST"])
def task_list(request):
    if request.method == 'POST':
        try:
            data = json.loads(request.body)
        except json.JSONDecodeError:
            return JsonResponse({'error': 'Invalid JSON'}, status=400)
        if not data.get('title'):
            return JsonResponse({'error': 'Missing required field: title'}, status=400)

        task = Task()
        if data.get('booking_id'):
            booking = Booking.objects.filter(id=data['booking_id']).first()
            if booking is None:
                return JsonResponse({'error': 'Booking not found'}, status=404)
            task.booking = booking
            task.client_id = booking.client_id
        if data.get('client_id'):
            if not Client.objects.filter(id=data['client_id']).exists():
                return JsonResponse({'error': 'Client not found'}, status=404)
            task.client_id = data['client_id']
        try:
            apply_task_fields(task, data)
        except ValueError as e:
            return JsonResponse({'error': str(e)}, status=400)
        task.save()
        return JsonResponse(task_data(Task.objects.select_related('client').get(id=task.id)), status=201)

    qs = Task.objects.select_related('client')
    completed = request.GET.get('completed')
    booking_id = request.GET.get('booking_id')
    if completed is not None:
        qs = qs.filter(is_completed=completed == 'true')
    if booking_id:
        try:
            qs = qs.filter(booking_id=int(booking_id))
        except ValueError:
            return JsonResponse({'error': 'Invalid booking_id'}, status=400)
    return JsonResponse([task_data(t) for t in qs], safe=False)


@csrf_exempt
@require_http_methods(["PUT", "DELETE"])
def task_detail(request, task_id):
    task = Task.objects.select_related('client').filter(id=task_id).first()
    if task is None:
        return JsonResponse({'error': 'Task not found'}, status=404)

    if request.method == 'DELETE':
        task.delete()
        return JsonResponse({'success': True})

    try:
        data = json.loads(request.body)
    except json.JSONDecodeError:
        return JsonResponse({'error': 'Invalid JSON'}, status=400)
    try:
        apply_task_fields(task, data)
    except ValueError as e:
        return JsonResponse({'error': str(e)}, status=400)
    task.save()
    return JsonResponse(task_data(task))
