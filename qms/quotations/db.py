"""
Quotation business logic — pure Python, no Flask imports.

A quotation is a header row plus priced line items. Every write that
touches items recomputes the header totals in the same transaction, so
``quotations.total_amount`` always equals the sum over its items.
"""

import sqlite3
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from qms.core.config import get_config_value
from qms.core.db import log_audit, page_window, total_pages
from qms.core.logging import get_logger
from qms.quotations.pricing import price_item, quotation_totals
from qms.settings.db import get_default_tax_rate, get_settings, get_terms

logger = get_logger("qms.quotations.db")

STATUSES = ("draft", "sent", "approved", "rejected", "accepted", "expired", "converted")
OPEN_STATUSES = ("draft", "sent")
WON_STATUSES = ("accepted", "converted")
LOCKED_STATUSES = ("converted",)

SORT_COLUMNS = {
    "created_at": "q.created_at",
    "quotation_date": "q.quotation_date",
    "valid_until": "q.valid_until",
    "total_amount": "q.total_amount",
    "quotation_number": "q.quotation_number",
    "customer_name": "c.name",
    "status": "q.status",
}

HEADER_FIELDS = {
    "customer_id", "quotation_date", "valid_until", "currency", "reference",
    "terms_conditions", "notes",
}


def _parse_date(value: Any, label: str) -> str:
    """Accept date/datetime/ISO string, return 'YYYY-MM-DD'."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    try:
        return date.fromisoformat(str(value)[:10]).isoformat()
    except ValueError:
        raise ValueError(f"{label} must be a date in YYYY-MM-DD format")


# =============================================================================
# Numbering
# =============================================================================

def next_quotation_number(conn: sqlite3.Connection, year: Optional[int] = None) -> str:
    """
    Next number in the yearly sequence, e.g. 'Q-2025-00042'.

    The sequence restarts at 1 each calendar year.
    """
    year = year or date.today().year
    prefix = get_config_value("quotations", "number_prefix", default="Q")
    padding = int(get_config_value("quotations", "number_padding", default=5))
    stem = f"{prefix}-{year}-"

    rows = conn.execute(
        "SELECT quotation_number FROM quotations WHERE quotation_number LIKE ?",
        (f"{stem}%",),
    ).fetchall()
    last = 0
    for row in rows:
        suffix = row[0][len(stem):]
        if suffix.isdigit():
            last = max(last, int(suffix))

    return f"{stem}{last + 1:0{padding}d}"


# =============================================================================
# Items
# =============================================================================

def _price_items(conn: sqlite3.Connection, items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    if not items:
        raise ValueError("At least one item is required")

    tax_rate = get_default_tax_rate(conn)
    priced = []
    for position, raw in enumerate(items, start=1):
        product = None
        if raw.get("product_id"):
            row = conn.execute(
                """SELECT p.*, pc.name AS category_name FROM products p
                   LEFT JOIN product_categories pc ON pc.id = p.category_id
                   WHERE p.id = ?""",
                (raw["product_id"],),
            ).fetchone()
            if not row:
                raise ValueError(f"Item {position}: product {raw['product_id']} not found")
            product = dict(row)
        priced.append(price_item(raw, tax_rate, product, position))
    return priced


def _insert_items(conn: sqlite3.Connection, quotation_id: int, items: List[Dict[str, Any]]) -> None:
    for item in items:
        data = dict(item, quotation_id=quotation_id)
        cols = ", ".join(data.keys())
        placeholders = ", ".join("?" for _ in data)
        conn.execute(
            f"INSERT INTO quotation_items ({cols}) VALUES ({placeholders})",
            list(data.values()),
        )


def recalculate_totals(conn: sqlite3.Connection, quotation_id: int) -> Dict[str, float]:
    """Recompute and store header totals from the current items (caller commits)."""
    items = conn.execute(
        """SELECT quantity, unit_price, discount_percent, tax_percent
           FROM quotation_items WHERE quotation_id = ?""",
        (quotation_id,),
    ).fetchall()
    totals = quotation_totals(dict(i) for i in items)
    conn.execute(
        """UPDATE quotations
           SET subtotal = ?, discount_amount = ?, tax_amount = ?, total_amount = ?,
               updated_at = datetime('now')
           WHERE id = ?""",
        (totals["subtotal"], totals["discount_amount"], totals["tax_amount"],
         totals["total_amount"], quotation_id),
    )
    return totals


def list_items(conn: sqlite3.Connection, quotation_id: int) -> list:
    return conn.execute(
        "SELECT * FROM quotation_items WHERE quotation_id = ? ORDER BY line_no, id",
        (quotation_id,),
    ).fetchall()


# =============================================================================
# CRUD
# =============================================================================

def create_quotation(
    conn: sqlite3.Connection,
    customer_id: int,
    items: List[Dict[str, Any]],
    quotation_date: Any = None,
    valid_until: Any = None,
    created_by: Optional[str] = None,
    **fields,
) -> int:
    """
    Create a draft quotation with its items. Returns the quotation ID.

    Items are validated and priced before anything is written; header and
    items are committed together or not at all.
    """
    customer = conn.execute(
        "SELECT id FROM customers WHERE id = ?", (customer_id,)
    ).fetchone()
    if not customer:
        raise ValueError(f"Customer {customer_id} not found")

    priced = _price_items(conn, items)

    q_date = _parse_date(quotation_date or date.today(), "quotation_date")
    if valid_until:
        until = _parse_date(valid_until, "valid_until")
    else:
        days = int(get_config_value("quotations", "validity_days", default=30))
        until = (date.fromisoformat(q_date) + timedelta(days=days)).isoformat()
    if until < q_date:
        raise ValueError("valid_until cannot be before quotation_date")

    header = {k: v for k, v in fields.items()
              if k in ("currency", "reference", "terms_conditions", "notes") and v is not None}
    if "terms_conditions" not in header:
        header["terms_conditions"] = get_terms(conn)["quotation_terms"]
    if "currency" not in header:
        header["currency"] = get_settings(conn)["default_currency"]
    totals = quotation_totals(priced)

    number = next_quotation_number(conn, int(q_date[:4]))
    data = {
        "quotation_number": number,
        "customer_id": customer_id,
        "quotation_date": q_date,
        "valid_until": until,
        "status": "draft",
        "created_by": created_by,
        **header,
        **totals,
    }
    try:
        cols = ", ".join(data.keys())
        placeholders = ", ".join("?" for _ in data)
        cur = conn.execute(
            f"INSERT INTO quotations ({cols}) VALUES ({placeholders})",
            list(data.values()),
        )
        quotation_id = cur.lastrowid
        _insert_items(conn, quotation_id, priced)
        conn.commit()
    except sqlite3.Error:
        conn.rollback()
        logger.exception("Failed to create quotation %s", number)
        raise

    logger.info("Created quotation %s (%d items, total %.2f)",
                number, len(priced), totals["total_amount"])
    return quotation_id


def get_quotation(conn: sqlite3.Connection, quotation_id: int) -> Optional[dict]:
    """Quotation header with customer details, items and each item's vendor rates."""
    row = conn.execute(
        """SELECT q.*, c.name AS customer_name, c.email AS customer_email,
                  c.phone AS customer_phone, c.address AS customer_address,
                  c.city AS customer_city, c.contact_person AS customer_contact
           FROM quotations q
           JOIN customers c ON c.id = q.customer_id
           WHERE q.id = ?""",
        (quotation_id,),
    ).fetchone()
    if not row:
        return None

    quotation = dict(row)
    items = []
    for item in list_items(conn, quotation_id):
        entry = dict(item)
        rates = conn.execute(
            """SELECT r.*, v.name AS vendor_name
               FROM quotation_item_vendor_rates r
               JOIN vendors v ON v.id = r.vendor_id
               WHERE r.quotation_item_id = ?
               ORDER BY r.cost_price, r.id""",
            (item["id"],),
        ).fetchall()
        entry["vendor_rates"] = [dict(r) for r in rates]
        items.append(entry)
    quotation["items"] = items
    return quotation


def get_quotation_by_number(conn: sqlite3.Connection, number: str) -> Optional[dict]:
    row = conn.execute(
        "SELECT id FROM quotations WHERE quotation_number = ?", (number,)
    ).fetchone()
    return get_quotation(conn, row["id"]) if row else None


def _require_editable(conn: sqlite3.Connection, quotation_id: int) -> Optional[sqlite3.Row]:
    row = conn.execute(
        "SELECT id, status, quotation_date, valid_until FROM quotations WHERE id = ?",
        (quotation_id,),
    ).fetchone()
    if row and row["status"] in LOCKED_STATUSES:
        raise ValueError(f"Quotation is {row['status']} and can no longer be edited")
    return row


def update_quotation(
    conn: sqlite3.Connection,
    quotation_id: int,
    items: Optional[List[Dict[str, Any]]] = None,
    **fields,
) -> bool:
    """
    Partial update of header fields; ``items`` (when given) replace all items.

    Returns False when the quotation does not exist.
    """
    current = _require_editable(conn, quotation_id)
    if not current:
        return False

    updates = {k: v for k, v in fields.items() if k in HEADER_FIELDS}
    if "customer_id" in updates:
        if not conn.execute("SELECT 1 FROM customers WHERE id = ?",
                            (updates["customer_id"],)).fetchone():
            raise ValueError(f"Customer {updates['customer_id']} not found")
    for key in ("quotation_date", "valid_until"):
        if updates.get(key):
            updates[key] = _parse_date(updates[key], key)
    q_date = updates.get("quotation_date") or current["quotation_date"]
    until = updates.get("valid_until") or current["valid_until"]
    if until < q_date:
        raise ValueError("valid_until cannot be before quotation_date")

    priced = _price_items(conn, items) if items is not None else None

    try:
        if updates:
            set_clause = ", ".join(f"{k} = ?" for k in updates)
            set_clause += ", updated_at = datetime('now')"
            conn.execute(
                f"UPDATE quotations SET {set_clause} WHERE id = ?",
                list(updates.values()) + [quotation_id],
            )
        if priced is not None:
            conn.execute("DELETE FROM quotation_items WHERE quotation_id = ?", (quotation_id,))
            _insert_items(conn, quotation_id, priced)
            recalculate_totals(conn, quotation_id)
        conn.commit()
    except sqlite3.Error:
        conn.rollback()
        raise
    return True


def update_status(
    conn: sqlite3.Connection,
    quotation_id: int,
    status: str,
    changed_by: Optional[str] = None,
) -> Optional[dict]:
    """
    Move a quotation to a new status.

    ``approved`` stamps approver and time. Converted quotations are final.
    Returns the updated header, or None when not found.
    """
    if status not in STATUSES:
        raise ValueError(f"Invalid status: {status}. Must be one of {', '.join(STATUSES)}")

    row = conn.execute(
        "SELECT status FROM quotations WHERE id = ?", (quotation_id,)
    ).fetchone()
    if not row:
        return None
    old_status = row["status"]
    if old_status in LOCKED_STATUSES and status != old_status:
        raise ValueError(f"Quotation is {old_status}; its status cannot change")

    if status == "approved":
        conn.execute(
            """UPDATE quotations SET status = ?, approved_by = ?, approved_at = datetime('now'),
                      updated_at = datetime('now') WHERE id = ?""",
            (status, changed_by, quotation_id),
        )
    else:
        conn.execute(
            "UPDATE quotations SET status = ?, updated_at = datetime('now') WHERE id = ?",
            (status, quotation_id),
        )
    log_audit(conn, "quotation", quotation_id, "status_change", changed_by or "system",
              old_values={"status": old_status}, new_values={"status": status})
    conn.commit()

    return dict(conn.execute("SELECT * FROM quotations WHERE id = ?", (quotation_id,)).fetchone())


def delete_quotation(conn: sqlite3.Connection, quotation_id: int,
                     changed_by: Optional[str] = None) -> bool:
    """Delete a quotation. Items and their vendor rates cascade."""
    row = conn.execute(
        "SELECT quotation_number, status, total_amount FROM quotations WHERE id = ?",
        (quotation_id,),
    ).fetchone()
    if not row:
        return False
    conn.execute("DELETE FROM quotations WHERE id = ?", (quotation_id,))
    log_audit(conn, "quotation", quotation_id, "delete", changed_by or "system",
              old_values=dict(row))
    conn.commit()
    return True


def duplicate_quotation(conn: sqlite3.Connection, quotation_id: int,
                        created_by: Optional[str] = None) -> Optional[int]:
    """Copy a quotation and its items into a new draft dated today."""
    source = get_quotation(conn, quotation_id)
    if not source:
        return None

    keep = ("product_id", "item_name", "description", "category", "specifications",
            "unit_of_measure", "quantity", "cost_price", "margin_percent",
            "unit_price", "discount_percent", "tax_percent")
    items = [{k: item[k] for k in keep} for item in source["items"]]

    return create_quotation(
        conn,
        customer_id=source["customer_id"],
        items=items,
        created_by=created_by,
        currency=source.get("currency"),
        reference=source.get("reference"),
        terms_conditions=source.get("terms_conditions"),
        notes=f"Re-order of {source['quotation_number']}",
    )


# =============================================================================
# Search and housekeeping
# =============================================================================

def search_quotations(
    conn: sqlite3.Connection,
    search: Optional[str] = None,
    status: Optional[str] = None,
    customer_id: Optional[int] = None,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
    min_amount: Optional[float] = None,
    max_amount: Optional[float] = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    page: int = 1,
    limit: int = 50,
) -> dict:
    """Filtered, sorted, paginated quotation listing."""
    page, limit, offset = page_window(page, limit)
    where = ["1=1"]
    params: list = []

    if search:
        term = f"%{search.strip().lower()}%"
        where.append(
            "(LOWER(q.quotation_number) LIKE ? OR LOWER(c.name) LIKE ? "
            "OR LOWER(COALESCE(q.notes, '')) LIKE ?)"
        )
        params.extend([term] * 3)
    if status:
        statuses = [s.strip() for s in status.split(",") if s.strip()]
        where.append(f"q.status IN ({', '.join('?' for _ in statuses)})")
        params.extend(statuses)
    if customer_id:
        where.append("q.customer_id = ?")
        params.append(customer_id)
    if date_from:
        where.append("q.quotation_date >= ?")
        params.append(_parse_date(date_from, "date_from"))
    if date_to:
        where.append("q.quotation_date <= ?")
        params.append(_parse_date(date_to, "date_to"))
    if min_amount is not None and min_amount != "":
        where.append("q.total_amount >= ?")
        params.append(float(min_amount))
    if max_amount is not None and max_amount != "":
        where.append("q.total_amount <= ?")
        params.append(float(max_amount))

    order_col = SORT_COLUMNS.get(sort_by or "", "q.created_at")
    direction = "ASC" if str(sort_order).lower() == "asc" else "DESC"
    clause = " AND ".join(where)

    total = conn.execute(
        f"""SELECT COUNT(*) FROM quotations q
            JOIN customers c ON c.id = q.customer_id WHERE {clause}""",
        params,
    ).fetchone()[0]
    rows = conn.execute(
        f"""SELECT q.*, c.name AS customer_name,
                   (SELECT COUNT(*) FROM quotation_items qi
                    WHERE qi.quotation_id = q.id) AS item_count
            FROM quotations q
            JOIN customers c ON c.id = q.customer_id
            WHERE {clause}
            ORDER BY {order_col} {direction}, q.id {direction}
            LIMIT ? OFFSET ?""",
        params + [limit, offset],
    ).fetchall()

    return {
        "quotations": [dict(r) for r in rows],
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": total_pages(total, limit),
    }


def expire_overdue(conn: sqlite3.Connection, today: Optional[date] = None) -> int:
    """Mark open quotations past their validity date as expired. Returns the count."""
    today_iso = (today or date.today()).isoformat()
    rows = conn.execute(
        f"""SELECT id, status FROM quotations
            WHERE status IN ({', '.join('?' for _ in OPEN_STATUSES)})
              AND valid_until < ?""",
        (*OPEN_STATUSES, today_iso),
    ).fetchall()

    for row in rows:
        conn.execute(
            "UPDATE quotations SET status = 'expired', updated_at = datetime('now') WHERE id = ?",
            (row["id"],),
        )
        log_audit(conn, "quotation", row["id"], "status_change", "system",
                  old_values={"status": row["status"]}, new_values={"status": "expired"})
    conn.commit()

    if rows:
        logger.info("Expired %d overdue quotation(s)", len(rows))
    return len(rows)
