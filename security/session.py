"""Server-side back-office sessions.

The cookie carries a random token; ``admin_sessions`` keeps only its SHA-256
digest together with an absolute expiry (SESSION_LIFETIME_SECONDS) and an idle
expiry (IDLE_TIMEOUT_SECONDS) measured from ``last_seen_at``.
"""
import hashlib
import secrets
from datetime import datetime, timedelta

from flask import current_app, request

from models import db
from models.session import AdminSession


def _digest(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


def cookie_name() -> str:
    return current_app.config.get("AUTH_COOKIE_NAME", "detailbook_session")


def _is_live(sess: AdminSession, now: datetime) -> bool:
    if sess.revoked or sess.expires_at <= now:
        return False
    idle = timedelta(seconds=current_app.config.get("IDLE_TIMEOUT_SECONDS", 20 * 60))
    return (sess.last_seen_at or sess.created_at) + idle > now


def create_session(user_id: int) -> str:
    """Store a fresh session for ``user_id``; returns the raw cookie value."""
    raw_token = secrets.token_urlsafe(32)
    now = datetime.utcnow()
    lifetime = timedelta(seconds=current_app.config.get("SESSION_LIFETIME_SECONDS", 8 * 60 * 60))
    ip = request.headers.get("X-Forwarded-For", request.remote_addr)

    db.session.add(AdminSession(
        user_id=user_id,
        token_hash=_digest(raw_token),
        created_at=now,
        last_seen_at=now,
        expires_at=now + lifetime,
        ip=ip[:64] if ip else None,
        user_agent=(request.headers.get("User-Agent") or "")[:255],
    ))
    db.session.commit()
    return raw_token


def get_session_from_request():
    raw_token = request.cookies.get(cookie_name())
    if not raw_token:
        return None

    now = datetime.utcnow()
    sess = AdminSession.query.filter_by(token_hash=_digest(raw_token)).first()
    if sess is None or not _is_live(sess, now):
        return None

    sess.last_seen_at = now
    db.session.commit()
    return sess


def revoke_session(raw_token) -> bool:
    if not raw_token:
        return False
    updated = (
        AdminSession.query
        .filter_by(token_hash=_digest(raw_token), revoked=False)
        .update({"revoked": True}, synchronize_session=False)
    )
    db.session.commit()
    return bool(updated)


def revoke_all_sessions(user_id: int) -> int:
    """Used on login so each account holds one live session. Returns how many were revoked."""
    updated = (
        AdminSession.query
        .filter_by(user_id=user_id, revoked=False)
        .update({"revoked": True}, synchronize_session=False)
    )
    db.session.commit()
    return updated
