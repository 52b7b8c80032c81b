from datetime import datetime
from models.db import db

class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, nullable=True)  # admin account; null for customer/system events
    action = db.Column(db.String(80), nullable=False)  # e.g. BOOKING_CREATE, TIMESLOT_BLOCK
    entity = db.Column(db.String(80), nullable=True)   # e.g. booking, timeslot
    entity_id = db.Column(db.String(80), nullable=True)

    ip = db.Column(db.String(64), nullable=True)  # null when emitted from the CLI
    user_agent = db.Column(db.String(255), nullable=True)
    metadata_json = db.Column(db.Text, nullable=True)  # never holds cancel tokens

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
