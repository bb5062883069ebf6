"""
Telegram notifications for venue staff.

Fire-and-forget: a failed send is logged and never breaks the booking or
payment that triggered it.
"""
import logging
from html import escape

import requests
from django.conf import settings

logger = logging.getLogger(__name__)


def admin_chat_ids():
    raw = getattr(settings, 'TELEGRAM_ADMIN_CHAT_IDS', '') or ''
    return [chat_id.strip() for chat_id in raw.split(',') if chat_id.strip()]


def send_message(chat_id, text):
    token = settings.TELEGRAM_BOT_TOKEN
    if not token:
        return False

    try:
        response = requests.post(
            f"{settings.TELEGRAM_API_URL}/bot{token}/sendMessage",
            json={'chat_id': chat_id, 'text': text, 'parse_mode': 'HTML'},
            timeout=5,
        )
    except requests.RequestException as e:
        logger.warning("Telegram send to %s failed: %s", chat_id, e)
        return False

    if response.status_code != 200:
        logger.warning("Telegram send to %s rejected: %s %s", chat_id, response.status_code, response.text[:200])
        return False
    return True


def broadcast(text):
    sent = 0
    for chat_id in admin_chat_ids():
        if send_message(chat_id, text):
            sent += 1
    return sent


def format_money(amount):
    return f"{amount:.2f} {settings.VENUE_CURRENCY}"


def notify_new_booking(booking):
    client = booking.client
    contact = escape(client.name)
    if client.phone:
        contact += f" • {escape(client.phone)}"
    text = (
        f"🆕 <b>New booking #{booking.id}</b>\n\n"
        f"📅 {booking.booking_date:%d.%m.%Y}\n"
        f"⏰ {booking.start_time} – {booking.end_time}\n"
        f"👤 {contact}\n"
        f"💰 {format_money(booking.rental_cost)}\n\n"
        f"<b>{escape(settings.VENUE_NAME)}</b>"
    )
    return broadcast(text)


def notify_payment(payment):
    booking = payment.booking
    text = (
        f"💵 <b>Payment for booking #{booking.id}</b>\n\n"
        f"👤 {escape(booking.client.name)}\n"
        f"📅 {booking.booking_date:%d.%m.%Y} {booking.start_time} – {booking.end_time}\n"
        f"💰 {format_money(payment.amount)} ({payment.get_payment_type_display()})\n"
        f"📌 Status: {booking.get_status_display()}"
    )
    return broadcast(text)
