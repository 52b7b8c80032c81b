import logging
from datetime import date

from flask import Blueprint, request, jsonify
from sqlalchemy.exc import SQLAlchemyError

from models import db
from reservations import engine
from reservations.errors import SlotAlreadyTaken
from routes.serializers import public_booking_json, timeslot_json
from security.rate_limit import check_and_increment
from utils.audit import log_event

logger = logging.getLogger(__name__)

booking_bp = Blueprint("booking", __name__)

CANCEL_TOKEN_HEADER = "X-Cancel-Token"


def _json_object():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _reason(data):
    reason = data.get("reason")
    if not isinstance(reason, str):
        return None
    return reason.strip()[:120] or None


def _audit(action: str, **kwargs):
    # the booking change is already committed; a lost audit row must not change the reply
    try:
        log_event(action, **kwargs)
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Audit event %s could not be recorded", action)


def _rate_limited(scope: str):
    allowed, retry_after = check_and_increment(scope)
    if allowed:
        return None
    return jsonify(error="Too many requests. Slow down.", retry_after_seconds=retry_after), 429


# ---------- CUSTOMERS: view bookable slots ----------
@booking_bp.get("/timeslots/available")
def available_timeslots():
    # optional filters: staff_id, date (YYYY-MM-DD, shop-local)
    staff_id = request.args.get("staff_id", type=int)
    date_str = request.args.get("date")

    day = None
    if date_str:
        try:
            day = date.fromisoformat(date_str)
        except ValueError:
            return jsonify(error="Invalid date. Use YYYY-MM-DD"), 400

    slots = engine.list_available_timeslots(staff_id=staff_id, day=day)
    return jsonify([timeslot_json(s) for s in slots]), 200


# ---------- CUSTOMERS: book slot (DOUBLE-BOOKING SAFE) ----------
@booking_bp.post("/create-booking")
@booking_bp.post("/bookings")
def create_booking():
    limited = _rate_limited("booking")
    if limited:
        return limited

    data = request.get_json(silent=True)
    try:
        result = engine.claim(data)
    except SlotAlreadyTaken:
        _audit("BOOKING_FAIL_ALREADY_BOOKED", entity="timeslot", entity_id=(data or {}).get("timeslotId"))
        raise

    _audit("BOOKING_CREATE", entity="booking", entity_id=result.booking_id,
           metadata={"timeslot_id": data.get("timeslotId")})
    # the only time the raw token leaves the server, apart from the customer email
    return jsonify(bookingId=result.booking_id, cancelToken=result.cancel_token), 200


# ---------- CUSTOMERS: manage booking with cancel token ----------
@booking_bp.get("/bookings/<booking_id>")
def get_booking(booking_id):
    limited = _rate_limited("cancel")
    if limited:
        return limited

    booking = engine.lookup(booking_id, request.headers.get(CANCEL_TOKEN_HEADER))
    return jsonify(public_booking_json(booking)), 200


def _cancel(booking_id, token, reason):
    booking, changed = engine.release(booking_id, token, reason=reason)
    if changed:
        _audit("BOOKING_CANCEL", entity="booking", entity_id=booking.id,
               metadata={"timeslot_id": booking.timeslot_id, "reason": reason})
    return jsonify(
        message="Cancelled" if changed else "Booking already cancelled",
        bookingId=booking.id,
        status=booking.status,
        alreadyCancelled=not changed,
    ), 200


@booking_bp.post("/bookings/<booking_id>/cancel")
def cancel_booking(booking_id):
    limited = _rate_limited("cancel")
    if limited:
        return limited

    data = _json_object()
    token = data.get("token") or request.headers.get(CANCEL_TOKEN_HEADER)
    return _cancel(booking_id, token, _reason(data))


@booking_bp.post("/cancel")
def cancel_from_link():
    # parameters of the emailed /cancel?booking=..&token=.. link, posted by the UI
    limited = _rate_limited("cancel")
    if limited:
        return limited

    data = _json_object()
    return _cancel(data.get("booking"), data.get("token"), _reason(data))
