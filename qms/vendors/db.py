"""
Vendor business logic — pure Python, no Flask imports.

Covers vendor CRUD, the vendor <-> product-category assignment used to
decide who receives which RFQ, and the rate-request records that track
which vendors were asked for prices and who has answered.
"""

import sqlite3
from datetime import datetime
from typing import Iterable, List, Optional

VENDOR_STATUSES = ("active", "inactive", "blacklisted")
RESPONSE_STATUSES = ("sent", "pending", "responded", "declined")

_FIELDS = {
    "name", "contact_person", "email", "phone", "address", "city", "state",
    "country", "postal_code", "payment_terms", "status", "notes",
}


def _clean(fields: dict) -> dict:
    data = {}
    for key, value in fields.items():
        if key not in _FIELDS:
            continue
        if isinstance(value, str):
            value = value.strip()
            if key != "name" and value == "":
                value = None
        data[key] = value
    if "name" in data and not data["name"]:
        raise ValueError("Vendor name is required")
    if data.get("email"):
        data["email"] = data["email"].lower()
        if "@" not in data["email"]:
            raise ValueError("Invalid email address")
    if data.get("payment_terms") is not None:
        try:
            data["payment_terms"] = int(data["payment_terms"])
        except (TypeError, ValueError):
            raise ValueError("payment_terms must be a whole number of days")
    if "status" in data and data["status"] not in VENDOR_STATUSES:
        raise ValueError(f"Invalid status: {data['status']}")
    return data


# =============================================================================
# Vendors
# =============================================================================

def list_vendors(
    conn: sqlite3.Connection,
    search: Optional[str] = None,
    status: Optional[str] = None,
) -> list:
    """Vendors ordered by name, with their assigned category count."""
    where = ["1=1"]
    params: list = []
    if search:
        term = f"%{search.strip().lower()}%"
        where.append(
            "(LOWER(v.name) LIKE ? OR LOWER(COALESCE(v.email, '')) LIKE ? "
            "OR LOWER(COALESCE(v.contact_person, '')) LIKE ?)"
        )
        params.extend([term] * 3)
    if status:
        where.append("v.status = ?")
        params.append(status)

    return conn.execute(
        f"""SELECT v.*, COUNT(vc.id) AS category_count
            FROM vendors v
            LEFT JOIN vendor_categories vc ON vc.vendor_id = v.id
            WHERE {' AND '.join(where)}
            GROUP BY v.id
            ORDER BY v.name COLLATE NOCASE""",
        params,
    ).fetchall()


def get_vendor(conn: sqlite3.Connection, vendor_id: int) -> Optional[sqlite3.Row]:
    return conn.execute("SELECT * FROM vendors WHERE id = ?", (vendor_id,)).fetchone()


def create_vendor(conn: sqlite3.Connection, **fields) -> int:
    """Create a vendor. Returns the vendor ID."""
    if not (fields.get("name") or "").strip():
        raise ValueError("Vendor name is required")
    data = {k: v for k, v in _clean(fields).items() if v is not None}

    cols = ", ".join(data.keys())
    placeholders = ", ".join("?" for _ in data)
    cur = conn.execute(
        f"INSERT INTO vendors ({cols}) VALUES ({placeholders})",
        list(data.values()),
    )
    conn.commit()
    return cur.lastrowid


def update_vendor(conn: sqlite3.Connection, vendor_id: int, **fields) -> bool:
    updates = _clean(fields)
    if not updates:
        return False
    set_clause = ", ".join(f"{k} = ?" for k in updates)
    set_clause += ", updated_at = datetime('now')"
    cur = conn.execute(
        f"UPDATE vendors SET {set_clause} WHERE id = ?",
        list(updates.values()) + [vendor_id],
    )
    conn.commit()
    return cur.rowcount > 0


def delete_vendor(conn: sqlite3.Connection, vendor_id: int) -> bool:
    """Delete a vendor. Category assignments and vendor rates cascade."""
    cur = conn.execute("DELETE FROM vendors WHERE id = ?", (vendor_id,))
    conn.commit()
    return cur.rowcount > 0


# =============================================================================
# Vendor <-> category assignment
# =============================================================================

def assign_vendors(
    conn: sqlite3.Connection,
    category_id: int,
    vendor_ids: Iterable[int],
    notes: Optional[str] = None,
    assigned_by: Optional[str] = None,
) -> int:
    """
    Assign vendors to a product category.

    Already-assigned vendors are left untouched. Returns the number of new
    assignments.
    """
    vendor_ids = [int(v) for v in vendor_ids or []]
    if not vendor_ids:
        raise ValueError("vendor_ids must be a non-empty list")
    for vendor_id in vendor_ids:
        if not conn.execute("SELECT 1 FROM vendors WHERE id = ?", (vendor_id,)).fetchone():
            raise ValueError(f"Vendor {vendor_id} not found")

    added = 0
    for vendor_id in vendor_ids:
        cur = conn.execute(
            """INSERT OR IGNORE INTO vendor_categories
               (vendor_id, category_id, notes, assigned_by)
               VALUES (?, ?, ?, ?)""",
            (vendor_id, category_id, notes, assigned_by),
        )
        added += cur.rowcount
    conn.commit()
    return added


def remove_vendor_from_category(conn: sqlite3.Connection, category_id: int, vendor_id: int) -> bool:
    cur = conn.execute(
        "DELETE FROM vendor_categories WHERE category_id = ? AND vendor_id = ?",
        (category_id, vendor_id),
    )
    conn.commit()
    return cur.rowcount > 0


def get_category_vendors(
    conn: sqlite3.Connection,
    category_id: int,
    include_unassigned: bool = False,
) -> dict:
    """Vendors assigned to a category and, optionally, active vendors that are not."""
    assigned = conn.execute(
        """SELECT v.*, vc.notes AS assignment_notes, vc.assigned_by, vc.assigned_at
           FROM vendor_categories vc
           JOIN vendors v ON v.id = vc.vendor_id
           WHERE vc.category_id = ?
           ORDER BY v.name COLLATE NOCASE""",
        (category_id,),
    ).fetchall()

    unassigned: list = []
    if include_unassigned:
        unassigned = conn.execute(
            """SELECT v.* FROM vendors v
               WHERE v.status = 'active'
                 AND v.id NOT IN (SELECT vendor_id FROM vendor_categories
                                  WHERE category_id = ?)
               ORDER BY v.name COLLATE NOCASE""",
            (category_id,),
        ).fetchall()

    return {
        "assigned": [dict(r) for r in assigned],
        "unassigned": [dict(r) for r in unassigned],
    }


def get_category_vendor_map(conn: sqlite3.Connection, category_names: Iterable[str]) -> dict:
    """{category_name: [vendor dict, ...]} for active vendors assigned by name."""
    result: dict = {}
    for name in category_names:
        rows = conn.execute(
            """SELECT v.* FROM vendor_categories vc
               JOIN vendors v ON v.id = vc.vendor_id
               JOIN product_categories pc ON pc.id = vc.category_id
               WHERE pc.name = ? AND v.status = 'active'
               ORDER BY v.name COLLATE NOCASE""",
            (name,),
        ).fetchall()
        result[name] = [dict(r) for r in rows]
    return result


def get_category_stats(conn: sqlite3.Connection) -> list:
    """Per-category vendor counts and RFQ response progress."""
    rows = conn.execute(
        """SELECT pc.id, pc.name,
                  (SELECT COUNT(*) FROM vendor_categories vc
                   WHERE vc.category_id = pc.id) AS total_vendors,
                  (SELECT COUNT(*) FROM rate_requests rr
                   WHERE rr.category_id = pc.id AND rr.status = 'sent') AS requests_sent,
                  (SELECT COUNT(*) FROM rate_request_vendors rrv
                   JOIN rate_requests rr ON rr.id = rrv.rate_request_id
                   WHERE rr.category_id = pc.id
                     AND rrv.status IN ('sent', 'pending')) AS pending,
                  (SELECT COUNT(*) FROM rate_request_vendors rrv
                   JOIN rate_requests rr ON rr.id = rrv.rate_request_id
                   WHERE rr.category_id = pc.id
                     AND rrv.status = 'responded') AS responded
           FROM product_categories pc
           ORDER BY pc.name"""
    ).fetchall()
    return [dict(r) for r in rows]


# =============================================================================
# Rate requests
# =============================================================================

def create_rate_request(
    conn: sqlite3.Connection,
    request_number: str,
    category_name: str,
    vendor_ids: List[int],
    title: str,
    quotation_id: Optional[int] = None,
    deadline: Optional[str] = None,
    created_by: Optional[str] = None,
    file_paths: Optional[dict] = None,
) -> int:
    """
    Record that an RFQ for one category went out to a set of vendors.

    ``file_paths`` maps vendor_id -> exported workbook path. Returns the
    rate request ID.
    """
    category = conn.execute(
        "SELECT id FROM product_categories WHERE name = ?", (category_name,)
    ).fetchone()
    file_paths = file_paths or {}

    cur = conn.execute(
        """INSERT INTO rate_requests
           (request_number, category_id, category_name, quotation_id, title,
            status, deadline, created_by, sent_at)
           VALUES (?, ?, ?, ?, ?, 'sent', ?, ?, ?)""",
        (request_number, category["id"] if category else None, category_name,
         quotation_id, title, deadline, created_by,
         datetime.now().isoformat(timespec="seconds")),
    )
    request_id = cur.lastrowid
    for vendor_id in vendor_ids:
        conn.execute(
            """INSERT OR IGNORE INTO rate_request_vendors
               (rate_request_id, vendor_id, status, file_path)
               VALUES (?, ?, 'sent', ?)""",
            (request_id, vendor_id, file_paths.get(vendor_id)),
        )
    conn.commit()
    return request_id


def list_rate_requests(
    conn: sqlite3.Connection,
    category_id: Optional[int] = None,
    quotation_id: Optional[int] = None,
) -> list:
    """Rate requests newest first, each with its vendor rows."""
    where = ["1=1"]
    params: list = []
    if category_id:
        where.append("rr.category_id = ?")
        params.append(category_id)
    if quotation_id:
        where.append("rr.quotation_id = ?")
        params.append(quotation_id)

    requests = conn.execute(
        f"""SELECT rr.* FROM rate_requests rr
            WHERE {' AND '.join(where)}
            ORDER BY rr.created_at DESC, rr.id DESC""",
        params,
    ).fetchall()

    result = []
    for rr in requests:
        vendors = conn.execute(
            """SELECT rrv.*, v.name AS vendor_name, v.email AS vendor_email
               FROM rate_request_vendors rrv
               JOIN vendors v ON v.id = rrv.vendor_id
               WHERE rrv.rate_request_id = ?
               ORDER BY v.name""",
            (rr["id"],),
        ).fetchall()
        entry = dict(rr)
        entry["vendors"] = [dict(v) for v in vendors]
        result.append(entry)
    return result


def set_vendor_response(
    conn: sqlite3.Connection,
    quotation_id: int,
    vendor_id: int,
    status: str = "responded",
) -> int:
    """Move a vendor's rate-request rows for a quotation to ``status``. Returns rows changed."""
    if status not in RESPONSE_STATUSES:
        raise ValueError(f"Invalid response status: {status}")
    responded_at = datetime.now().isoformat(timespec="seconds") if status == "responded" else None
    cur = conn.execute(
        """UPDATE rate_request_vendors SET status = ?, responded_at = ?
           WHERE vendor_id = ?
             AND rate_request_id IN (SELECT id FROM rate_requests WHERE quotation_id = ?)""",
        (status, responded_at, vendor_id, quotation_id),
    )
    conn.commit()
    return cur.rowcount
