"""
Customer business logic — pure Python, no Flask imports.

Provides CRUD for customers plus the quotation history and headline
numbers shown on a customer's profile.
"""

import re
import sqlite3
from typing import Optional

from qms.core.db import page_window, total_pages

CUSTOMER_STATUSES = ("active", "inactive", "suspended")

_FIELDS = {
    "name", "contact_person", "email", "phone", "fax", "address", "city",
    "state", "country", "postal_code", "credit_limit", "payment_terms",
    "status", "notes",
}

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _clean(fields: dict) -> dict:
    """Whitelist, strip strings and validate customer fields."""
    data = {}
    for key, value in fields.items():
        if key not in _FIELDS:
            continue
        if isinstance(value, str):
            value = value.strip()
            if key != "name" and value == "":
                value = None
        data[key] = value

    if "name" in data:
        name = data["name"] or ""
        if not 2 <= len(name) <= 255:
            raise ValueError("Customer name must be between 2 and 255 characters")
    if data.get("email"):
        data["email"] = data["email"].lower()
        if not _EMAIL_RE.match(data["email"]):
            raise ValueError("Invalid email address")
    if data.get("credit_limit") is not None:
        try:
            data["credit_limit"] = float(data["credit_limit"])
        except (TypeError, ValueError):
            raise ValueError("credit_limit must be a number")
        if data["credit_limit"] < 0:
            raise ValueError("credit_limit cannot be negative")
    if data.get("payment_terms") is not None:
        try:
            data["payment_terms"] = int(data["payment_terms"])
        except (TypeError, ValueError):
            raise ValueError("payment_terms must be a whole number of days")
        if data["payment_terms"] < 0:
            raise ValueError("payment_terms cannot be negative")
    if "status" in data and data["status"] not in CUSTOMER_STATUSES:
        raise ValueError(f"Invalid status: {data['status']}")
    return data


def _email_taken(conn: sqlite3.Connection, email: str, exclude_id: Optional[int] = None) -> bool:
    sql = "SELECT id FROM customers WHERE email = ?"
    params: list = [email]
    if exclude_id is not None:
        sql += " AND id != ?"
        params.append(exclude_id)
    return conn.execute(sql, params).fetchone() is not None


def list_customers(
    conn: sqlite3.Connection,
    search: Optional[str] = None,
    status: Optional[str] = None,
    page: int = 1,
    limit: int = 50,
) -> dict:
    """Paginated customer listing ordered by name."""
    page, limit, offset = page_window(page, limit)
    where = ["1=1"]
    params: list = []
    if search:
        term = f"%{search.strip().lower()}%"
        where.append(
            "(LOWER(name) LIKE ? OR LOWER(COALESCE(email, '')) LIKE ? "
            "OR LOWER(COALESCE(phone, '')) LIKE ? "
            "OR LOWER(COALESCE(contact_person, '')) LIKE ?)"
        )
        params.extend([term] * 4)
    if status:
        where.append("status = ?")
        params.append(status)

    clause = " AND ".join(where)
    total = conn.execute(
        f"SELECT COUNT(*) FROM customers WHERE {clause}", params
    ).fetchone()[0]
    rows = conn.execute(
        f"""SELECT * FROM customers WHERE {clause}
            ORDER BY name COLLATE NOCASE LIMIT ? OFFSET ?""",
        params + [limit, offset],
    ).fetchall()

    return {
        "customers": [dict(r) for r in rows],
        "total": total,
        "page": page,
        "total_pages": total_pages(total, limit),
    }


def get_customer(conn: sqlite3.Connection, customer_id: int) -> Optional[sqlite3.Row]:
    return conn.execute(
        "SELECT * FROM customers WHERE id = ?", (customer_id,)
    ).fetchone()


def create_customer(conn: sqlite3.Connection, **fields) -> int:
    """Create a new customer. Returns the customer ID."""
    if not (fields.get("name") or "").strip():
        raise ValueError("Customer name is required")
    data = {k: v for k, v in _clean(fields).items() if v is not None}
    if data.get("email") and _email_taken(conn, data["email"]):
        raise ValueError("A customer with this email already exists")

    cols = ", ".join(data.keys())
    placeholders = ", ".join("?" for _ in data)
    cur = conn.execute(
        f"INSERT INTO customers ({cols}) VALUES ({placeholders})",
        list(data.values()),
    )
    conn.commit()
    return cur.lastrowid


def update_customer(conn: sqlite3.Connection, customer_id: int, **fields) -> bool:
    """Partial update of a customer."""
    updates = _clean(fields)
    if not updates:
        return False
    if updates.get("email") and _email_taken(conn, updates["email"], exclude_id=customer_id):
        raise ValueError("A customer with this email already exists")

    set_clause = ", ".join(f"{k} = ?" for k in updates)
    set_clause += ", updated_at = datetime('now')"
    values = list(updates.values()) + [customer_id]

    cur = conn.execute(f"UPDATE customers SET {set_clause} WHERE id = ?", values)
    conn.commit()
    return cur.rowcount > 0


def delete_customer(conn: sqlite3.Connection, customer_id: int) -> bool:
    """
    Delete a customer.

    Refused with ValueError while quotations still reference the customer.
    """
    in_use = conn.execute(
        "SELECT COUNT(*) FROM quotations WHERE customer_id = ?", (customer_id,)
    ).fetchone()[0]
    if in_use:
        raise ValueError(
            f"Customer has {in_use} quotation(s) and cannot be deleted; "
            "set the status to inactive instead"
        )
    cur = conn.execute("DELETE FROM customers WHERE id = ?", (customer_id,))
    conn.commit()
    return cur.rowcount > 0


def get_customer_quotations(conn: sqlite3.Connection, customer_id: int) -> list:
    """A customer's quotations, newest first."""
    return conn.execute(
        """SELECT id, quotation_number, quotation_date, valid_until, status,
                  total_amount, created_at
           FROM quotations WHERE customer_id = ?
           ORDER BY quotation_date DESC, id DESC""",
        (customer_id,),
    ).fetchall()


def get_customer_summary(conn: sqlite3.Connection, customer_id: int) -> Optional[dict]:
    """Customer record plus quotation stats for the profile view."""
    customer = get_customer(conn, customer_id)
    if not customer:
        return None

    stats = conn.execute(
        """SELECT COUNT(*) AS quotation_count,
                  COALESCE(SUM(total_amount), 0) AS total_quoted,
                  COALESCE(SUM(CASE WHEN status IN ('accepted', 'converted')
                               THEN total_amount ELSE 0 END), 0) AS accepted_value,
                  MAX(quotation_date) AS last_quotation_date
           FROM quotations WHERE customer_id = ?""",
        (customer_id,),
    ).fetchone()

    return {
        "customer": dict(customer),
        "quotation_count": stats["quotation_count"],
        "total_quoted": round(stats["total_quoted"], 2),
        "accepted_value": round(stats["accepted_value"], 2),
        "last_quotation_date": stats["last_quotation_date"],
        "recent_quotations": [dict(r) for r in get_customer_quotations(conn, customer_id)[:5]],
    }
