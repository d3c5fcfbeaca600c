"""
Auth Blueprint — local email + password authentication + user management.

Routes:
    POST /api/auth/login                  → Validate email + password, create session
    POST /api/auth/logout                 → Clear session
    GET  /api/auth/me                     → Current user info
    POST /api/auth/change-password        → Change own password
    GET  /api/auth/users                  → All users (admin only)
    POST /api/auth/users                  → Create user account (admin only)
    POST /api/auth/users/<id>/role        → Update user role (admin only)
    POST /api/auth/users/<id>/active      → Toggle user active status (admin only)
    POST /api/auth/users/<id>/reset-password → Reset user password (admin only)
"""

import sqlite3

from flask import Blueprint, abort, jsonify, request, session

from qms.auth.decorators import login_required, role_required
from qms.core import get_db

bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _current_email() -> str:
    """Return current session user's email, or 'anonymous'."""
    user = session.get("user")
    return user["email"] if user else "anonymous"


# ── Login ────────────────────────────────────────────────────────────────────

@bp.route("/login", methods=["POST"])
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    if not email or not password:
        return jsonify({"error": "Email and password are required"}), 400

    # Rate limiting — check before hitting the database
    from qms.auth.rate_limit import limiter

    client_ip = request.remote_addr or "unknown"
    wait = limiter.check(client_ip, email)
    if wait:
        return jsonify({"error": f"Too many failed attempts. Try again in {wait} seconds."}), 429

    from qms.auth.db import authenticate, log_auth_event

    with get_db() as conn:
        user = authenticate(conn, email, password)
        if not user:
            limiter.record_failure(client_ip, email)
            log_auth_event(conn, "login_failure", email, "anonymous", {"ip": client_ip})
            return jsonify({"error": "Invalid email or password"}), 401
        log_auth_event(conn, "login_success", user["id"], user["email"], {"ip": client_ip})

    limiter.reset(client_ip, email)

    session.clear()
    session["user"] = {
        "id": user["id"],
        "email": user["email"],
        "display_name": user["display_name"],
        "role": user["role"],
        "is_active": bool(user["is_active"]),
        "must_change_password": bool(user.get("must_change_password", False)),
    }
    session.permanent = True
    return jsonify(session["user"])


@bp.route("/logout", methods=["POST"])
def logout():
    session.clear()
    return jsonify({"ok": True})


@bp.route("/me", methods=["GET"])
@login_required
def me():
    return jsonify(session["user"])


@bp.route("/change-password", methods=["POST"])
@login_required
def change_password():
    data = request.get_json(silent=True) or {}
    current_password = data.get("current_password") or ""
    new_password = data.get("new_password") or ""
    confirm_password = data.get("confirm_password", new_password)

    if not current_password or not new_password:
        return jsonify({"error": "All fields are required"}), 400
    if new_password != confirm_password:
        return jsonify({"error": "New passwords do not match"}), 400

    from qms.auth.db import change_password as do_change, log_auth_event

    user_id = session["user"]["id"]
    with get_db() as conn:
        ok, msg = do_change(conn, user_id, current_password, new_password)
        if ok:
            log_auth_event(conn, "password_change", user_id, _current_email())

    if not ok:
        return jsonify({"error": msg}), 400

    user = dict(session["user"])
    user["must_change_password"] = False
    session["user"] = user
    return jsonify({"ok": True, "message": msg})


# ── User Management (admin only) ────────────────────────────────────────────

@bp.route("/users", methods=["GET"])
@role_required("admin")
def users_list():
    from qms.auth.db import list_users

    with get_db(readonly=True) as conn:
        users = list_users(conn)
    return jsonify(users)


@bp.route("/users", methods=["POST"])
@role_required("admin")
def create_user():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    display_name = (data.get("display_name") or "").strip()
    password = data.get("password") or ""
    role = data.get("role", "sales")

    if not email or not display_name or not password:
        abort(400, "email, display_name, and password are required")

    from qms.auth.db import create_user as do_create, log_auth_event

    try:
        with get_db() as conn:
            user = do_create(conn, email, display_name, password, role)
            log_auth_event(
                conn, "user_create", user["id"], _current_email(),
                {"email": email, "role": role},
            )
    except sqlite3.IntegrityError:
        abort(409, "A user with that email already exists")
    except ValueError as exc:
        abort(400, str(exc))

    return jsonify(user), 201


@bp.route("/users/<int:user_id>/role", methods=["POST"])
@role_required("admin")
def update_user_role(user_id: int):
    data = request.get_json(silent=True) or {}
    role = data.get("role") or ""

    from qms.auth.db import update_role, log_auth_event

    with get_db() as conn:
        try:
            found = update_role(conn, user_id, role)
        except ValueError as exc:
            abort(400, str(exc))
        if not found:
            abort(404, "User not found")
        log_auth_event(conn, "role_change", user_id, _current_email(), {"role": role})

    return jsonify({"ok": True, "role": role})


@bp.route("/users/<int:user_id>/active", methods=["POST"])
@role_required("admin")
def toggle_user_active(user_id: int):
    data = request.get_json(silent=True) or {}
    is_active = bool(data.get("is_active", True))

    from qms.auth.db import set_active, log_auth_event

    with get_db() as conn:
        if not set_active(conn, user_id, is_active):
            abort(404, "User not found")
        log_auth_event(conn, "active_toggle", user_id, _current_email(), {"is_active": is_active})

    return jsonify({"ok": True, "is_active": is_active})


@bp.route("/users/<int:user_id>/reset-password", methods=["POST"])
@role_required("admin")
def reset_user_password(user_id: int):
    data = request.get_json(silent=True) or {}
    new_password = data.get("password") or ""

    from qms.auth.db import set_password, log_auth_event

    with get_db() as conn:
        try:
            found = set_password(conn, user_id, new_password, must_change=True)
        except ValueError as exc:
            abort(400, str(exc))
        if not found:
            abort(404, "User not found")
        log_auth_event(conn, "password_reset", user_id, _current_email())

    return jsonify({"ok": True})
