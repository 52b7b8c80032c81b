"""Reservation engine.

The only code path that creates or cancels a Booking. Double booking is
prevented by the ``uq_bookings_active_timeslot`` partial unique index: a claim is
a single INSERT, and the database picks the winner when two customers go for the
same slot. There is no "is it free?" query before the insert.

Customers authenticate to their own booking with the cancel token handed out by
``claim``; only its hash is stored.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import and_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models import db
from models.booking import (
    CANCELLED,
    COMPLETED,
    CONFIRMED,
    PAYMENT_STATUSES,
    PENDING,
    Booking,
)
from models.service import Service
from models.staff import Staff
from models.timeslot import Timeslot
from reservations import notifications
from reservations.errors import (
    InvalidRequest,
    InvalidTransition,
    NotFound,
    ReservationError,
    SlotAlreadyTaken,
    Unavailable,
)
from reservations.schemas import parse_claim_request
from reservations.shop_time import day_bounds_utc, shop_tz
from reservations.tokens import hash_cancel_token, new_cancel_token, token_matches

logger = logging.getLogger(__name__)

SLOT_CONSTRAINT = "uq_bookings_active_timeslot"

# status -> statuses it may move to
TRANSITIONS = {
    PENDING: {CONFIRMED, CANCELLED},
    CONFIRMED: {CANCELLED, COMPLETED},
    CANCELLED: set(),
    COMPLETED: set(),
}

_MAX_ID = 2 ** 63 - 1


@dataclass(frozen=True)
class ClaimResult:
    booking_id: int
    cancel_token: str


def _is_slot_conflict(exc: IntegrityError) -> bool:
    orig = getattr(exc, "orig", None)
    # psycopg exposes the violated constraint by name
    constraint = getattr(getattr(orig, "diag", None), "constraint_name", None)
    if constraint:
        return constraint == SLOT_CONSTRAINT
    # sqlite: "UNIQUE constraint failed: bookings.timeslot_id"
    text = str(orig if orig is not None else exc)
    return SLOT_CONSTRAINT in text or "bookings.timeslot_id" in text


def _coerce_id(booking_id) -> int:
    if isinstance(booking_id, bool):
        raise NotFound()
    try:
        value = int(booking_id)
    except (TypeError, ValueError):
        raise NotFound() from None
    if value <= 0 or value > _MAX_ID:
        raise NotFound()
    return value


def _load_references(req, now):
    """Re-read service, staff and slot from storage; admins may have changed them."""
    errors = {}

    service = db.session.get(Service, req.service_id, populate_existing=True)
    if service is None or not service.is_active:
        errors["serviceId"] = "Unknown or inactive service"

    staff = db.session.get(Staff, req.staff_id, populate_existing=True)
    if staff is None or not staff.is_active:
        errors["staffId"] = "Unknown or inactive staff member"

    slot = db.session.get(Timeslot, req.timeslot_id, populate_existing=True)
    if slot is None:
        errors["timeslotId"] = "Unknown timeslot"
    elif slot.staff_id != req.staff_id:
        errors["timeslotId"] = "Timeslot does not belong to the selected staff member"
    elif slot.is_blocked:
        errors["timeslotId"] = "Timeslot is not available"
    elif slot.start_time <= now:
        errors["timeslotId"] = "Cannot book past or started timeslots"

    if errors:
        raise InvalidRequest(details=errors)
    return service, staff, slot


def _notify(notifier, booking, service, staff, slot, token):
    notifier = notifier or notifications.notify_booking_created
    try:
        notifier(booking, service, staff, slot, token)
    except Exception:
        # the committed booking is the source of truth; delivery is best-effort
        db.session.rollback()
        logger.exception("Booking notification failed for booking %s", booking.id)


def claim(payload, notifier=None, now=None) -> ClaimResult:
    """Atomically book a timeslot. Returns the new booking id and its cancel token.

    Raises InvalidRequest (nothing written), SlotAlreadyTaken (lost the race)
    or Unavailable (storage failure; never treated as success).
    """
    req = parse_claim_request(payload)
    now = now or datetime.utcnow()

    try:
        service, staff, slot = _load_references(req, now)
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Could not load booking references")
        raise Unavailable() from exc

    token = new_cancel_token()
    booking = Booking(
        service_id=service.id,
        staff_id=staff.id,
        timeslot_id=slot.id,
        customer_name=req.customer_name,
        customer_email=str(req.customer_email),
        customer_phone=req.customer_phone,
        notes=req.notes,
        status=CONFIRMED,
        payment_status="UNPAID",
        cancel_token_hash=hash_cancel_token(token),
        total_cents=service.price_cents,
    )

    try:
        db.session.add(booking)
        db.session.flush()
        booking_id = booking.id
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        if _is_slot_conflict(exc):
            logger.info("Timeslot %s already booked; claim rejected", slot.id)
            raise SlotAlreadyTaken() from exc
        logger.exception("Unexpected integrity error booking timeslot %s", slot.id)
        raise ReservationError() from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Booking insert for timeslot %s failed", slot.id)
        raise Unavailable() from exc

    logger.info("Booking %s created for timeslot %s", booking_id, slot.id)
    _notify(notifier, booking, service, staff, slot, token)
    return ClaimResult(booking_id=booking_id, cancel_token=token)


def _get_booking(booking_id: int) -> Booking:
    try:
        booking = db.session.get(Booking, booking_id, populate_existing=True)
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise Unavailable() from exc
    if booking is None:
        raise NotFound()
    return booking


def lookup(booking_id, token) -> Booking:
    """Booking for an (id, token) pair. Unknown id and wrong token look the same."""
    booking = _get_booking(_coerce_id(booking_id))
    if not token_matches(token, booking.cancel_token_hash):
        raise NotFound()
    return booking


def _apply_transition(booking: Booking, target: str, reason=None, now=None):
    if booking.status == target:
        return booking, False
    if target not in TRANSITIONS.get(booking.status, set()):
        raise InvalidTransition(f"Cannot change a {booking.status.lower()} booking to {target.lower()}")

    now = now or datetime.utcnow()
    values = {"status": target}
    if target == CANCELLED:
        values["cancelled_at"] = now
        values["cancel_reason"] = (reason or "")[:120] or None
    elif target == COMPLETED:
        values["completed_at"] = now

    allowed_from = [s for s, targets in TRANSITIONS.items() if target in targets]
    try:
        updated = (
            Booking.query
            .filter(Booking.id == booking.id, Booking.status.in_(allowed_from))
            .update(values, synchronize_session=False)
        )
        db.session.commit()
        db.session.refresh(booking)
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Status change of booking %s to %s failed", booking.id, target)
        raise Unavailable() from exc

    if updated:
        return booking, True
    # someone else moved it between our read and the update
    if booking.status == target:
        return booking, False
    raise InvalidTransition(f"Cannot change a {booking.status.lower()} booking to {target.lower()}")


def release(booking_id, token, reason=None, now=None):
    """Customer cancellation. Returns (booking, changed); repeat calls are a no-op."""
    booking = lookup(booking_id, token)
    if booking.status == CANCELLED:
        return booking, False
    if booking.status == COMPLETED:
        raise InvalidTransition("Completed bookings cannot be cancelled")

    now = now or datetime.utcnow()
    cutoff_hours = current_app.config.get("CANCEL_CUTOFF_HOURS", 0)
    if cutoff_hours and booking.timeslot is not None:
        if booking.timeslot.start_time - now < timedelta(hours=cutoff_hours):
            raise InvalidTransition(f"Cancellation not allowed within {cutoff_hours} hours of start")

    booking, changed = _apply_transition(booking, CANCELLED, reason or "Cancelled by customer", now)
    if changed:
        logger.info("Booking %s cancelled by customer; timeslot %s released", booking.id, booking.timeslot_id)
    return booking, changed


def transition(booking_id, target: str, reason=None, now=None):
    """Administrative status change (confirm / complete / cancel)."""
    if target not in TRANSITIONS:
        raise InvalidRequest(details={"status": f"must be one of {', '.join(TRANSITIONS)}"})
    booking = _get_booking(_coerce_id(booking_id))
    return _apply_transition(booking, target, reason, now)


def set_payment_status(booking_id, payment_status: str) -> Booking:
    payment_status = (payment_status or "").strip().upper()
    if payment_status not in PAYMENT_STATUSES:
        raise InvalidRequest(details={"payment_status": f"must be one of {', '.join(PAYMENT_STATUSES)}"})

    booking = _get_booking(_coerce_id(booking_id))
    booking.payment_status = payment_status
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise Unavailable() from exc
    return booking


def list_available_timeslots(staff_id=None, day=None, now=None, limit=500):
    """Generated slots that are bookable right now: not blocked, not started,
    staff active, and no non-cancelled booking holding them."""
    now = now or datetime.utcnow()
    if day is not None:
        lo, hi = day_bounds_utc(day, shop_tz())
    else:
        lo = now
        hi = now + timedelta(days=current_app.config.get("AVAILABILITY_DEFAULT_DAYS", 7))

    q = (
        db.session.query(Timeslot)
        .join(Staff, Staff.id == Timeslot.staff_id)
        .outerjoin(Booking, and_(Booking.timeslot_id == Timeslot.id, Booking.status != CANCELLED))
        .filter(
            Staff.is_active.is_(True),
            Timeslot.is_blocked.is_(False),
            Booking.id.is_(None),
            Timeslot.start_time >= lo,
            Timeslot.start_time < hi,
            Timeslot.start_time > now,
        )
    )
    if staff_id is not None:
        q = q.filter(Timeslot.staff_id == staff_id)

    try:
        return q.order_by(Timeslot.start_time.asc(), Timeslot.staff_id.asc()).limit(limit).all()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise Unavailable() from exc
