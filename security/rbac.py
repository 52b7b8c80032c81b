from functools import wraps

from flask import g, jsonify

ADMIN = "ADMIN"  # owner; passes every role check
STAFF = "STAFF"  # technicians and front desk
BACK_OFFICE_ROLES = (ADMIN, STAFF)


def has_any_role(user, role_names) -> bool:
    names = set(user.role_names)
    return ADMIN in names or bool(names.intersection(role_names))


def require_roles(*role_names: str):
    """@require_roles("STAFF") lets STAFF and ADMIN through; no args means any back-office role."""
    allowed = role_names or BACK_OFFICE_ROLES

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = getattr(g, "user", None)
            if user is None:
                return jsonify(error="Authentication required"), 401
            if not has_any_role(user, allowed):
                return jsonify(error="Forbidden"), 403
            return fn(*args, **kwargs)
        return wrapper
    return decorator
