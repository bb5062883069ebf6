import json
import logging
from decimal import Decimal, InvalidOperation
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods
from bookings.models import Booking
from bookings.pricing import to_date
from payments.models import Payment
from .models import Expense, ExpenseCategory

logger = logging.getLogger(__name__)

PAYMENT_METHODS = {choice for choice, _ in Payment.METHOD_CHOICES}


def expense_data(expense):
    return {
        'expense_id': expense.id,
        'expense_date': expense.expense_date.isoformat(),
        'category_id': expense.category_id,
        'category_name': expense.category.name,
        'amount': float(expense.amount),
        'payment_method': expense.payment_method,
        'booking_id': expense.booking_id,
        'comment': expense.comment,
    }


def apply_expense_fields(expense, data):
    """Copy the fields present in ``data`` onto ``expense``, raising ValueError on bad input."""
    if 'amount' in data:
        try:
            amount = Decimal(str(data['amount']))
        except (InvalidOperation, ValueError):
            raise ValueError('Amount must be a number')
        if amount <= 0:
            raise ValueError('Amount must be > 0')
        expense.amount = amount
    if data.get('category_id'):
        if not ExpenseCategory.objects.filter(id=data['category_id']).exists():
            raise ValueError(f"Unknown category {data['category_id']}")
        expense.category_id = data['category_id']
    if data.get('expense_date'):
        expense.expense_date = to_date(data['expense_date'])
    if 'payment_method' in data:
        method = data['payment_method'] or ''
        if method and method not in PAYMENT_METHODS:
            raise ValueError(f"Unknown payment_method '{method}'")
        expense.payment_method = method
    if 'booking_id' in data:
        booking_id = data['booking_id']
        if booking_id and not Booking.objects.filter(id=booking_id).exists():
            raise ValueError(f"Unknown booking {booking_id}")
        expense.booking_id = booking_id or None
    if 'comment' in data:
        expense.comment = data['comment'] or ''


@require_http_methods(["GET"])
def expense_categories(request):
    return JsonResponse([
        {'id': c.id, 'name': c.name, 'sort_order': c.sort_order}
        for c in ExpenseCategory.objects.all()
    ], safe=False)


@csrf_exempt
@require_http_methods(["GET", "POST"])
def expense_list(request):
    if request.method == 'POST':
        try:
            data = json.loads(request.body)
        except json.JSONDecodeError:
            return JsonResponse({'error': 'Invalid JSON'}, status=400)

        if not data.get('category_id') or data.get('amount') is None:
            return JsonResponse({'error': 'Missing required fields: category_id, amount'}, status=400)

        expense = Expense()
        try:
            apply_expense_fields(expense, data)
        except ValueError as e:
            return JsonResponse({'error': str(e)}, status=400)
        expense.save()
        logger.info("Recorded expense %s of %s (%s)", expense.id, expense.amount, expense.category.name)
        return JsonResponse(expense_data(expense), status=201)

    qs = Expense.objects.select_related('category').filter(is_archived=False)
    date_from = request.GET.get('date_from')
    date_to = request.GET.get('date_to')
    category_id = request.GET.get('category_id')
    try:
        if date_from:
            qs = qs.filter(expense_date__gte=to_date(date_from))
        if date_to:
            qs = qs.filter(expense_date__lte=to_date(date_to))
        if category_id:
            qs = qs.filter(category_id=int(category_id))
    except ValueError:
        return JsonResponse({'error': 'Invalid filter, expected YYYY-MM-DD dates and a numeric category_id'}, status=400)

    return JsonResponse([expense_data(e) for e in qs], safe=False)


@csrf_exempt
@require_http_methods(["PUT", "DELETE"])
def expense_detail(request, expense_id):
    expense = Expense.objects.select_related('category').filter(id=expense_id, is_archived=False).first()
    if expense is None:
        return JsonResponse({'error': 'Expense not found'}, status=404)

    if request.method == 'DELETE':
        expense.is_archived = True
        expense.save(update_fields=['is_archived'])
        return JsonResponse({'success': True})

    try:
        data = json.loads(request.body)
    except json.JSONDecodeError:
        return JsonResponse({'error': 'Invalid JSON'}, status=400)
    try:
        apply_expense_fields(expense, data)
    except ValueError as e:
        return JsonResponse({'error': str(e)}, status=400)
    expense.save()
    expense.refresh_from_db()
    return JsonResponse(expense_data(expense))
