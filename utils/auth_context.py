from functools import wraps

from flask import g, jsonify

from models import db
from models.user import User
from security.session import get_session_from_request


def load_current_user():
    """Populate g.user / g.session from the admin cookie. Customers leave both None."""
    g.user, g.session = None, None

    sess = get_session_from_request()
    user = db.session.get(User, sess.user_id) if sess else None
    if user is not None and user.is_active:
        g.user, g.session = user, sess


def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if g.get("user") is None:
            return jsonify(error="Authentication required"), 401
        return fn(*args, **kwargs)
    return wrapper
