from datetime import datetime

from flask import Blueprint, current_app, g, jsonify, request

from models import db
from models.user import User
from security.csrf import issue_csrf_token
from security.password import verify_password
from security.rate_limit import check_and_increment
from security.session import cookie_name, create_session, revoke_all_sessions, revoke_session
from utils.audit import log_event
from utils.auth_context import login_required

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def _credentials():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    email = data.get("email") if isinstance(data.get("email"), str) else ""
    password = data.get("password") if isinstance(data.get("password"), str) else ""
    return email.strip().lower(), password


def _attach_session(resp, raw_token: str):
    cfg = current_app.config
    resp.set_cookie(
        cookie_name(),
        raw_token,
        httponly=True,
        secure=cfg.get("SESSION_COOKIE_SECURE", False),
        samesite=cfg.get("SESSION_COOKIE_SAMESITE", "Lax"),
        max_age=cfg.get("SESSION_LIFETIME_SECONDS", 8 * 60 * 60),
        path="/",
    )
    return issue_csrf_token(resp)


# ---------- back office login ----------
@auth_bp.post("/login")
def login():
    email, password = _credentials()

    allowed, retry_after = check_and_increment("login")
    if not allowed:
        log_event("LOGIN_RATE_LIMIT", metadata={"email": email, "retry_after": retry_after})
        return jsonify(error="Too many login attempts. Try again shortly.", retry_after_seconds=retry_after), 429

    user = User.query.filter_by(email=email).first() if email else None
    if user is None or not user.is_active or not verify_password(password, user.password_hash):
        log_event("LOGIN_FAIL", user_id=user.id if user else None, metadata={"email": email})
        return jsonify(error="Invalid credentials"), 401

    # one live session per account
    revoked = revoke_all_sessions(user.id)
    raw_token = create_session(user.id)
    user.last_login_at = datetime.utcnow()
    db.session.commit()

    log_event("LOGIN_SUCCESS", user_id=user.id, metadata={"revoked_sessions": revoked})
    return _attach_session(jsonify(message="Login OK", roles=user.role_names), raw_token), 200


@auth_bp.get("/me")
@login_required
def me():
    user = g.user
    return jsonify(id=user.id, email=user.email, full_name=user.full_name, roles=user.role_names), 200


@auth_bp.post("/logout")
@login_required
def logout():
    revoke_session(request.cookies.get(cookie_name()))
    log_event("LOGOUT", user_id=g.user.id)

    resp = jsonify(message="Logged out")
    resp.delete_cookie(cookie_name(), path="/")
    return resp, 200
