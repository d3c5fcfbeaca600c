"""
User CRUD operations for QMS auth — local email + password.

Pure business logic — no Flask imports.
"""

import sqlite3

from werkzeug.security import check_password_hash, generate_password_hash

from qms.core.db import log_audit

VALID_ROLES = ("admin", "sales", "procurement", "finance", "auditor")
MIN_PASSWORD_LENGTH = 8


def log_auth_event(
    conn: sqlite3.Connection,
    action: str,
    entity_id: str | int,
    changed_by: str = "anonymous",
    detail: dict | None = None,
) -> None:
    """Insert an auth event into the shared audit_log table."""
    log_audit(conn, "user", entity_id, action, changed_by, new_values=detail)
    conn.commit()


def _check_role(role: str) -> None:
    if role not in VALID_ROLES:
        raise ValueError(f"Invalid role: {role}. Must be one of {', '.join(VALID_ROLES)}")


def create_user(
    conn: sqlite3.Connection,
    email: str,
    display_name: str,
    password: str,
    role: str = "sales",
    must_change_password: bool = True,
) -> dict:
    """
    Create a new local user with a hashed password.

    Returns the created user dict.
    Raises sqlite3.IntegrityError if email already exists.
    """
    _check_role(role)
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    cursor = conn.execute(
        """INSERT INTO users (email, display_name, password_hash, role, must_change_password)
           VALUES (?, ?, ?, ?, ?)""",
        (email.strip().lower(), display_name, generate_password_hash(password),
         role, int(must_change_password)),
    )
    conn.commit()

    return {
        "id": cursor.lastrowid,
        "email": email.strip().lower(),
        "display_name": display_name,
        "role": role,
        "is_active": True,
        "must_change_password": must_change_password,
    }


def authenticate(conn: sqlite3.Connection, email: str, password: str) -> dict | None:
    """
    Validate email + password. Returns user dict on success, None on failure.

    Also updates last_login timestamp on success.
    """
    row = conn.execute(
        "SELECT * FROM users WHERE email = ? AND is_active = 1",
        (email.strip().lower(),),
    ).fetchone()

    if not row or not row["password_hash"]:
        return None

    if not check_password_hash(row["password_hash"], password):
        return None

    conn.execute(
        "UPDATE users SET last_login = datetime('now') WHERE id = ?",
        (row["id"],),
    )
    conn.commit()

    user = dict(row)
    user.pop("password_hash", None)
    return user


def get_user(conn: sqlite3.Connection, user_id: int) -> dict | None:
    """Fetch a user by ID (without the password hash)."""
    row = conn.execute(
        "SELECT id, email, display_name, role, is_active, must_change_password, "
        "last_login, created_at FROM users WHERE id = ?",
        (user_id,),
    ).fetchone()
    return dict(row) if row else None


def get_user_by_email(conn: sqlite3.Connection, email: str) -> dict | None:
    row = conn.execute(
        "SELECT id, email, display_name, role, is_active FROM users WHERE email = ?",
        (email.strip().lower(),),
    ).fetchone()
    return dict(row) if row else None


def list_users(conn: sqlite3.Connection) -> list[dict]:
    """List all users, ordered by display name."""
    rows = conn.execute(
        "SELECT id, email, display_name, role, is_active, must_change_password, "
        "last_login FROM users ORDER BY display_name"
    ).fetchall()
    return [dict(r) for r in rows]


def set_password(
    conn: sqlite3.Connection,
    user_id: int,
    new_password: str,
    must_change: bool = False,
) -> bool:
    """Set a user's password (admin reset). Returns True if user was found."""
    if len(new_password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    cursor = conn.execute(
        "UPDATE users SET password_hash = ?, must_change_password = ? WHERE id = ?",
        (generate_password_hash(new_password), int(must_change), user_id),
    )
    conn.commit()
    return cursor.rowcount > 0


def change_password(
    conn: sqlite3.Connection,
    user_id: int,
    current_password: str,
    new_password: str,
) -> tuple[bool, str]:
    """
    Change a user's own password (requires current password).

    Returns (success, message).
    """
    row = conn.execute(
        "SELECT password_hash FROM users WHERE id = ?", (user_id,)
    ).fetchone()

    if not row:
        return False, "User not found"

    if not row["password_hash"] or not check_password_hash(row["password_hash"], current_password):
        return False, "Current password is incorrect"

    if len(new_password) < MIN_PASSWORD_LENGTH:
        return False, f"New password must be at least {MIN_PASSWORD_LENGTH} characters"

    conn.execute(
        "UPDATE users SET password_hash = ?, must_change_password = 0 WHERE id = ?",
        (generate_password_hash(new_password), user_id),
    )
    conn.commit()
    return True, "Password changed successfully"


def update_role(conn: sqlite3.Connection, user_id: int, role: str) -> bool:
    """Update a user's role. Returns True if user was found."""
    _check_role(role)
    cursor = conn.execute("UPDATE users SET role = ? WHERE id = ?", (role, user_id))
    conn.commit()
    return cursor.rowcount > 0


def set_active(conn: sqlite3.Connection, user_id: int, is_active: bool) -> bool:
    """Activate or deactivate a user. Returns True if user was found."""
    cursor = conn.execute(
        "UPDATE users SET is_active = ? WHERE id = ?", (int(is_active), user_id)
    )
    conn.commit()
    return cursor.rowcount > 0
