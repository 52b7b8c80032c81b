from datetime import date, datetime, timedelta

from flask import Blueprint, jsonify, g, request

from models import db
from models.audit_log import AuditLog
from models.booking import Booking, BOOKING_STATUSES, CANCELLED, COMPLETED, CONFIRMED
from models.service import Service
from models.staff import Staff
from models.timeslot import Timeslot
from reservations import engine
from reservations.errors import InvalidRequest
from reservations.generator import generate_rolling_horizon
from reservations.shop_time import day_bounds_utc, shop_tz
from routes.serializers import admin_booking_json, timeslot_json
from security.rbac import require_roles
from utils.audit import log_event

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")

BOOKING_ACTIONS = {
    "confirm": CONFIRMED,
    "complete": COMPLETED,
    "cancel": CANCELLED,
}


def _json_object():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


# ---------- bookings ----------
@admin_bp.get("/bookings")
@require_roles("ADMIN", "STAFF")
def list_bookings():
    status = (request.args.get("status") or "").strip().upper()
    date_str = request.args.get("date")  # YYYY-MM-DD, shop-local
    staff_id = request.args.get("staff_id", type=int)

    q = Booking.query.join(Timeslot, Booking.timeslot_id == Timeslot.id)
    if status:
        if status not in BOOKING_STATUSES:
            return jsonify(error=f"status must be one of {', '.join(BOOKING_STATUSES)}"), 400
        q = q.filter(Booking.status == status)
    if staff_id:
        q = q.filter(Booking.staff_id == staff_id)
    if date_str:
        try:
            day = date.fromisoformat(date_str)
        except ValueError:
            return jsonify(error="Invalid date. Use YYYY-MM-DD"), 400
        start, end = day_bounds_utc(day, shop_tz())
        q = q.filter(Timeslot.start_time >= start, Timeslot.start_time < end)

    rows = q.order_by(Timeslot.start_time.asc()).limit(200).all()
    return jsonify([admin_booking_json(b) for b in rows]), 200


@admin_bp.post("/bookings/<int:booking_id>/<action>")
@require_roles("ADMIN", "STAFF")
def change_booking_status(booking_id: int, action: str):
    target = BOOKING_ACTIONS.get(action)
    if target is None:
        return jsonify(error="Unknown action"), 404

    data = _json_object()
    reason = data.get("reason") if isinstance(data.get("reason"), str) else None
    if target == CANCELLED:
        reason = (reason or "").strip() or "Admin cancellation"

    booking, changed = engine.transition(booking_id, target, reason=reason)
    if changed:
        log_event(
            f"ADMIN_BOOKING_{action.upper()}",
            user_id=g.user.id,
            entity="booking",
            entity_id=booking.id,
            metadata={"status": booking.status, "reason": reason},
        )
    return jsonify(admin_booking_json(booking)), 200


@admin_bp.post("/bookings/<int:booking_id>/payment-status")
@require_roles("ADMIN", "STAFF")
def update_payment_status(booking_id: int):
    data = _json_object()
    booking = engine.set_payment_status(booking_id, data.get("payment_status"))
    log_event(
        "ADMIN_PAYMENT_STATUS",
        user_id=g.user.id,
        entity="booking",
        entity_id=booking.id,
        metadata={"payment_status": booking.payment_status},
    )
    return jsonify(admin_booking_json(booking)), 200


# ---------- timeslots ----------
def _set_blocked(slot_id: int, blocked: bool):
    slot = db.session.get(Timeslot, slot_id)
    if not slot:
        return jsonify(error="Timeslot not found"), 404

    slot.is_blocked = blocked
    db.session.commit()

    log_event("TIMESLOT_BLOCK" if blocked else "TIMESLOT_UNBLOCK", user_id=g.user.id, entity="timeslot", entity_id=slot_id)
    return jsonify(timeslot_json(slot)), 200


@admin_bp.post("/timeslots/<int:slot_id>/block")
@require_roles("ADMIN", "STAFF")
def block_timeslot(slot_id: int):
    return _set_blocked(slot_id, True)


@admin_bp.post("/timeslots/<int:slot_id>/unblock")
@require_roles("ADMIN", "STAFF")
def unblock_timeslot(slot_id: int):
    return _set_blocked(slot_id, False)


@admin_bp.post("/timeslots/generate")
@require_roles("ADMIN", "STAFF")
def generate_timeslots():
    data = _json_object()

    start_date = None
    if data.get("start_date"):
        try:
            start_date = date.fromisoformat(str(data["start_date"]))
        except ValueError:
            raise InvalidRequest(details={"start_date": "Invalid date. Use YYYY-MM-DD"}) from None

    days = data.get("days")
    if days is not None and (not isinstance(days, int) or isinstance(days, bool) or not 0 < days <= 366):
        raise InvalidRequest(details={"days": "must be an integer between 1 and 366"})

    staff_id = data.get("staff_id")
    if staff_id is not None and (not isinstance(staff_id, int) or isinstance(staff_id, bool)):
        raise InvalidRequest(details={"staff_id": "must be an integer"})

    result = generate_rolling_horizon(days=days, start_date=start_date, staff_id=staff_id)
    log_event("TIMESLOT_GENERATE", user_id=g.user.id, entity="timeslot", metadata=result.to_dict())
    return jsonify(result.to_dict()), 200


# ---------- catalog visibility ----------
def _set_active(model, entity: str, row_id: int, active: bool):
    row = db.session.get(model, row_id)
    if not row:
        return jsonify(error=f"{entity.capitalize()} not found"), 404

    row.is_active = active
    db.session.commit()

    log_event(
        f"{entity.upper()}_{'ACTIVATE' if active else 'DEACTIVATE'}",
        user_id=g.user.id,
        entity=entity,
        entity_id=row_id,
    )
    return jsonify(id=row.id, is_active=row.is_active), 200


@admin_bp.post("/staff/<int:staff_id>/<any(activate, deactivate):action>")
@require_roles("ADMIN")
def set_staff_active(staff_id: int, action: str):
    return _set_active(Staff, "staff", staff_id, action == "activate")


@admin_bp.post("/services/<int:service_id>/<any(activate, deactivate):action>")
@require_roles("ADMIN")
def set_service_active(service_id: int, action: str):
    return _set_active(Service, "service", service_id, action == "activate")


# ---------- audit trail ----------
@admin_bp.get("/audit-logs")
@require_roles("ADMIN")
def list_audit_logs():
    limit = request.args.get("limit", type=int) or 200
    limit = max(1, min(limit, 500))
    action = request.args.get("action")
    since_hours = request.args.get("since_hours", type=int)

    q = AuditLog.query
    if action:
        q = q.filter(AuditLog.action == action)
    if since_hours:
        q = q.filter(AuditLog.created_at >= datetime.utcnow() - timedelta(hours=since_hours))

    rows = q.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).all()
    return jsonify([
        {
            "id": r.id,
            "created_at": r.created_at.isoformat(),
            "user_id": r.user_id,
            "action": r.action,
            "entity": r.entity,
            "entity_id": r.entity_id,
            "ip": r.ip,
            "metadata": r.metadata_json,
        }
        for r in rows
    ]), 200
