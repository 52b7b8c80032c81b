"""Booking notifications (customer confirmation + shop alert).

Called after the booking row is committed. Delivery is best-effort: the
reservation engine logs and swallows anything raised here.
"""
import logging
from urllib.parse import urlencode

from flask import current_app

from reservations.shop_time import shop_tz, to_local
from utils.emailer import send_email

logger = logging.getLogger(__name__)


def format_price(cents) -> str:
    if cents is None:
        return "-"
    return f"${cents / 100:,.2f}"


def format_duration(minutes: int) -> str:
    if minutes < 60:
        return f"{minutes} min"
    hours, rest = divmod(minutes, 60)
    return f"{hours}h {rest}m" if rest else f"{hours}h"


def cancel_link(booking_id: int, cancel_token: str) -> str:
    base = (current_app.config.get("SITE_URL") or "").rstrip("/")
    return f"{base}/cancel?" + urlencode({"booking": booking_id, "token": cancel_token})


def _appointment_fields(booking, service, staff, timeslot) -> dict:
    tz = shop_tz()
    start = to_local(timeslot.start_time, tz)
    end = to_local(timeslot.end_time, tz)
    return {
        "service": service.name,
        "technician": staff.name,
        "date": start.strftime("%A, %B %d, %Y"),
        "time": f"{start.strftime('%H:%M')} - {end.strftime('%H:%M')}",
        "duration": format_duration(service.duration_min),
        "price": format_price(booking.total_cents),
    }


def notify_booking_created(booking, service, staff, timeslot, cancel_token: str):
    f = _appointment_fields(booking, service, staff, timeslot)

    customer_body = (
        f"Hi {booking.customer_name},\n\n"
        f"Your {f['service']} appointment is confirmed.\n\n"
        f"Service: {f['service']}\n"
        f"Technician: {f['technician']}\n"
        f"Date: {f['date']}\n"
        f"Time: {f['time']}\n"
        f"Duration: {f['duration']}\n"
        f"Price: {f['price']}\n"
        + (f"Notes: {booking.notes}\n" if booking.notes else "")
        + "\nNeed to cancel? Use this private link (do not share it):\n"
        f"{cancel_link(booking.id, cancel_token)}\n\n"
        "Best regards,\nThe AutoDetail Pro Team"
    )
    ok, error = send_email(
        booking.customer_email,
        f"Booking Confirmed: {f['service']} - {f['date']}",
        customer_body,
    )
    if not ok:
        logger.warning("Customer confirmation for booking %s not sent: %s", booking.id, error)

    admin_email = current_app.config.get("ADMIN_NOTIFY_EMAIL")
    if not admin_email:
        return
    admin_body = (
        f"New booking #{booking.id}\n\n"
        f"Service: {f['service']}\n"
        f"Technician: {f['technician']}\n"
        f"Date: {f['date']}\n"
        f"Time: {f['time']}\n"
        f"Price: {f['price']}\n\n"
        f"Customer: {booking.customer_name}\n"
        f"Email: {booking.customer_email}\n"
        + (f"Phone: {booking.customer_phone}\n" if booking.customer_phone else "")
        + (f"Notes: {booking.notes}\n" if booking.notes else "")
    )
    ok, error = send_email(
        admin_email,
        f"New Booking Alert: {f['service']} - {f['date']}",
        admin_body,
        reply_to=booking.customer_email,
    )
    if not ok:
        logger.warning("Shop alert for booking %s not sent: %s", booking.id, error)
