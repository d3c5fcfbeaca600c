"""
Authentication and authorization decorators for Flask routes.

These are the only Flask-coupled parts of the auth module. The API is
consumed by a single-page frontend, so failures are JSON 401/403 rather
than redirects to a login page.
"""

from functools import wraps

from flask import abort, session

from qms.core.config import get_write_roles


def current_user() -> dict:
    return session.get("user") or {}


def login_required(f):
    """Require an authenticated user session."""
    @wraps(f)
    def decorated(*args, **kwargs):
        if "user" not in session:
            abort(401)
        return f(*args, **kwargs)
    return decorated


def role_required(*roles):
    """
    Require the current user to have one of the specified roles.

    Usage:
        @role_required("admin")
        @role_required("admin", "sales")
    """
    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            if "user" not in session:
                abort(401)
            if session["user"].get("role") not in roles:
                abort(403)
            return f(*args, **kwargs)
        return decorated
    return decorator


def require_write(module: str) -> dict:
    """
    Abort with 403 unless the session user may write to ``module``.

    Global admins always pass. Returns the session user.
    """
    user = current_user()
    if not user:
        abort(401)
    role = user.get("role")
    if role == "admin" or role in get_write_roles(module):
        return user
    abort(403)
