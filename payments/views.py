import json
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods
from bookings.exceptions import NotFound
from bookings.pricing import to_date
from . import services
from .models import Payment


def payment_data(payment):
    return {
        'payment_id': payment.id,
        'booking_id': payment.booking_id,
        'payment_date': payment.payment_date.isoformat(),
        'amount': float(payment.amount),
        'payment_type': payment.payment_type,
        'payment_method': payment.payment_method,
        'comment': payment.comment,
    }


@csrf_exempt
@require_http_methods(["GET", "POST"])
def payment_list(request):
    if request.method == 'POST':
        return create_payment(request)

    qs = Payment.objects.select_related('booking__client')
    date_from = request.GET.get('date_from')
    date_to = request.GET.get('date_to')
    payment_type = request.GET.get('payment_type')
    booking_id = request.GET.get('booking_id')
    try:
        if date_from:
            qs = qs.filter(payment_date__gte=to_date(date_from))
        if date_to:
            qs = qs.filter(payment_date__lte=to_date(date_to))
        if booking_id:
            qs = qs.filter(booking_id=int(booking_id))
    except ValueError:
        return JsonResponse({'error': 'Invalid filter, expected YYYY-MM-DD dates and a numeric booking_id'}, status=400)
    if payment_type:
        qs = qs.filter(payment_type=payment_type)

    return JsonResponse([
        {
            **payment_data(p),
            'booking_date': p.booking.booking_date.isoformat(),
            'event_type': p.booking.event_type,
            'client_name': p.booking.client.name,
        }
        for p in qs.order_by('-payment_date', '-id')
    ], safe=False)


def create_payment(request):
    try:
        data = json.loads(request.body)
    except json.JSONDecodeError:
        return JsonResponse({'error': 'Invalid JSON'}, status=400)

    booking_id = data.get('booking_id')
    amount = data.get('amount')
    payment_type = data.get('payment_type')

    if not booking_id or amount is None or not payment_type:
        return JsonResponse({
            'error': 'Missing required fields: booking_id, amount, payment_type'
        }, status=400)

    try:
        payment = services.record_payment(
            booking_id,
            amount,
            payment_type,
            payment_date=data.get('payment_date'),
            payment_method=data.get('payment_method', ''),
            comment=data.get('comment', ''),
        )
    except NotFound:
        return JsonResponse({'error': 'Booking not found'}, status=404)
    except ValueError as e:
        return JsonResponse({'error': str(e)}, status=400)

    payment.booking.refresh_from_db(fields=['status'])
    return JsonResponse({**payment_data(payment), 'booking_status': payment.booking.status}, status=201)


@require_http_methods(["GET"])
def booking_payments(request, booking_id):
    payments = Payment.objects.filter(booking_id=booking_id).order_by('payment_date', 'id')
    return JsonResponse([payment_data(p) for p in payments], safe=False)


@csrf_exempt
@require_http_methods(["DELETE"])
def payment_detail(request, payment_id):
    try:
        status = services.delete_payment(payment_id)
    except NotFound:
        return JsonResponse({'error': 'Payment not found'}, status=404)

    return JsonResponse({'success': True, 'booking_status': status})
