from datetime import datetime
from models.db import db

class Service(db.Model):
    __tablename__ = "services"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=True, default="")

    price_cents = db.Column(db.Integer, nullable=False)   # store smallest unit (USD cents)
    duration_min = db.Column(db.Integer, nullable=False)  # informational only, slots are fixed width

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.CheckConstraint("price_cents >= 0", name="ck_services_price_non_negative"),
        db.CheckConstraint("duration_min > 0", name="ck_services_duration_positive"),
    )
