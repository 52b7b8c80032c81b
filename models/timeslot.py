from datetime import datetime
from models.db import db

class Timeslot(db.Model):
    __tablename__ = "timeslots"

    id = db.Column(db.Integer, primary_key=True)

    staff_id = db.Column(db.Integer, db.ForeignKey("staff.id", ondelete="CASCADE"), nullable=False, index=True)
    start_time = db.Column(db.DateTime, nullable=False, index=True)  # naive UTC
    end_time = db.Column(db.DateTime, nullable=False)

    # staff unavailable (vacation/maintenance), independent of bookings
    is_blocked = db.Column(db.Boolean, default=False, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    staff = db.relationship("Staff", back_populates="timeslots")

    __table_args__ = (
        # One slot per staff member per start instant; keeps the generator idempotent
        db.UniqueConstraint("staff_id", "start_time", name="uq_timeslots_staff_start"),
        db.Index("ix_timeslots_availability", "staff_id", "start_time", "is_blocked"),
    )
