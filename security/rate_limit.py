from datetime import datetime, timedelta
from flask import request, current_app
from sqlalchemy.exc import IntegrityError

from models import db
from models.ip_rate_limit import IpRateLimit

# scope -> config prefix
SCOPES = {
    "login": "LOGIN_RATE",
    "booking": "BOOKING_RATE",
    "cancel": "CANCEL_RATE",
}

def _client_ip() -> str:
    return request.headers.get("X-Forwarded-For", request.remote_addr) or "unknown"

def check_and_increment(scope: str) -> tuple[bool, int]:
    """
    Returns (allowed, retry_after_seconds).
    Simple fixed window per (scope, IP).
    """
    prefix = SCOPES[scope]
    window_seconds = current_app.config.get(f"{prefix}_WINDOW_SECONDS", 60)
    max_requests = current_app.config.get(f"{prefix}_MAX_REQUESTS", 15)

    ip = _client_ip()[:64]
    now = datetime.utcnow()

    row = IpRateLimit.query.filter_by(scope=scope, ip=ip).first()
    if not row:
        row = IpRateLimit(scope=scope, ip=ip, window_start=now, count=0)
        db.session.add(row)

    window_end = row.window_start + timedelta(seconds=window_seconds)

    # Reset window if expired
    if now >= window_end:
        row.window_start = now
        row.count = 0
        window_end = now + timedelta(seconds=window_seconds)

    row.count += 1
    try:
        db.session.commit()
    except IntegrityError:
        # a concurrent first request from this IP created the row
        db.session.rollback()
        return True, 0

    if row.count > max_requests:
        return False, max(int((window_end - now).total_seconds()), 1)
    return True, 0
