from datetime import datetime
from models.db import db

class Staff(db.Model):
    __tablename__ = "staff"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    bio = db.Column(db.Text, nullable=True, default="")

    # inactive staff are hidden from customers and cannot be booked
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    timeslots = db.relationship("Timeslot", back_populates="staff", lazy="dynamic")
