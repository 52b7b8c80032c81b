from datetime import datetime
from sqlalchemy import text

from models.db import db

PENDING = "PENDING"
CONFIRMED = "CONFIRMED"
CANCELLED = "CANCELLED"
COMPLETED = "COMPLETED"

BOOKING_STATUSES = (PENDING, CONFIRMED, CANCELLED, COMPLETED)

PAYMENT_STATUSES = ("UNPAID", "PAID", "REFUNDED")

_ACTIVE_ONLY = text("status != 'CANCELLED'")


class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    service_id = db.Column(db.Integer, db.ForeignKey("services.id"), nullable=False, index=True)
    staff_id = db.Column(db.Integer, db.ForeignKey("staff.id"), nullable=False, index=True)
    timeslot_id = db.Column(db.Integer, db.ForeignKey("timeslots.id"), nullable=False, index=True)

    customer_name = db.Column(db.String(100), nullable=False)
    customer_email = db.Column(db.String(255), nullable=False)
    customer_phone = db.Column(db.String(30), nullable=True)
    notes = db.Column(db.String(500), nullable=True)

    status = db.Column(db.String(20), nullable=False, default=CONFIRMED)
    # status values: PENDING, CONFIRMED, CANCELLED, COMPLETED
    payment_status = db.Column(db.String(20), nullable=False, default="UNPAID")

    # only the sha256 of the customer's cancel token is kept
    cancel_token_hash = db.Column(db.String(64), unique=True, nullable=False, index=True)

    total_cents = db.Column(db.Integer, nullable=True)  # price snapshot at claim time

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    cancelled_at = db.Column(db.DateTime, nullable=True)
    cancel_reason = db.Column(db.String(120), nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)

    service = db.relationship("Service")
    staff = db.relationship("Staff")
    timeslot = db.relationship("Timeslot")

    __table_args__ = (
        # Hard business rule: one non-cancelled booking per timeslot (prevents double booking).
        # Partial so a cancelled booking frees the slot again.
        db.Index(
            "uq_bookings_active_timeslot",
            "timeslot_id",
            unique=True,
            sqlite_where=_ACTIVE_ONLY,
            postgresql_where=_ACTIVE_ONLY,
        ),
        db.Index("ix_bookings_status_created", "status", "created_at"),
        db.CheckConstraint(
            "status IN ('PENDING', 'CONFIRMED', 'CANCELLED', 'COMPLETED')",
            name="ck_bookings_status",
        ),
        db.CheckConstraint(
            "payment_status IN ('UNPAID', 'PAID', 'REFUNDED')",
            name="ck_bookings_payment_status",
        ),
    )
