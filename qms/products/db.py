"""
Product and product-category business logic — pure Python, no Flask imports.
"""

import sqlite3
from typing import Optional

from qms.core.db import page_window, total_pages

PRODUCT_TYPES = ("raw_material", "finished_good", "service", "spare_parts")
PRODUCT_STATUSES = ("active", "inactive", "discontinued")

_TEXT_FIELDS = {"sku", "name", "description", "type", "unit_of_measure", "status"}
_NUMERIC_FIELDS = {
    "current_stock", "reorder_point", "max_stock_level",
    "last_purchase_price", "average_cost", "selling_price",
}
_FIELDS = _TEXT_FIELDS | _NUMERIC_FIELDS | {"category_id"}


def _clean(fields: dict) -> dict:
    data = {}
    for key, value in fields.items():
        if key not in _FIELDS:
            continue
        if key in _TEXT_FIELDS and isinstance(value, str):
            value = value.strip()
        if key in _NUMERIC_FIELDS and value is not None and value != "":
            try:
                value = float(value)
            except (TypeError, ValueError):
                raise ValueError(f"{key} must be a number")
            if value < 0:
                raise ValueError(f"{key} cannot be negative")
        if key == "category_id" and value in ("", 0):
            value = None
        data[key] = value

    if "type" in data and data["type"] not in PRODUCT_TYPES:
        raise ValueError(f"Invalid product type: {data['type']}")
    if "status" in data and data["status"] not in PRODUCT_STATUSES:
        raise ValueError(f"Invalid status: {data['status']}")
    if "sku" in data:
        data["sku"] = (data["sku"] or "").upper()
    for required in ("sku", "name", "unit_of_measure"):
        if required in data and not data[required]:
            raise ValueError(f"{required} cannot be blank")
    return data


def _sku_taken(conn: sqlite3.Connection, sku: str, exclude_id: Optional[int] = None) -> bool:
    sql = "SELECT id FROM products WHERE sku = ?"
    params: list = [sku]
    if exclude_id is not None:
        sql += " AND id != ?"
        params.append(exclude_id)
    return conn.execute(sql, params).fetchone() is not None


# =============================================================================
# Products
# =============================================================================

def list_products(
    conn: sqlite3.Connection,
    search: Optional[str] = None,
    category_id: Optional[int] = None,
    status: Optional[str] = None,
    page: int = 1,
    limit: int = 50,
) -> dict:
    """Paginated product listing with category names."""
    page, limit, offset = page_window(page, limit)
    where = ["1=1"]
    params: list = []
    if search:
        term = f"%{search.strip().lower()}%"
        where.append(
            "(LOWER(p.name) LIKE ? OR LOWER(p.sku) LIKE ? "
            "OR LOWER(COALESCE(p.description, '')) LIKE ?)"
        )
        params.extend([term] * 3)
    if category_id:
        where.append("p.category_id = ?")
        params.append(category_id)
    if status:
        where.append("p.status = ?")
        params.append(status)

    clause = " AND ".join(where)
    total = conn.execute(
        f"SELECT COUNT(*) FROM products p WHERE {clause}", params
    ).fetchone()[0]
    rows = conn.execute(
        f"""SELECT p.*, pc.name AS category_name
            FROM products p
            LEFT JOIN product_categories pc ON pc.id = p.category_id
            WHERE {clause}
            ORDER BY p.created_at DESC, p.id DESC
            LIMIT ? OFFSET ?""",
        params + [limit, offset],
    ).fetchall()

    return {
        "products": [dict(r) for r in rows],
        "total": total,
        "page": page,
        "total_pages": total_pages(total, limit),
    }


def get_product(conn: sqlite3.Connection, product_id: int) -> Optional[sqlite3.Row]:
    return conn.execute(
        """SELECT p.*, pc.name AS category_name
           FROM products p
           LEFT JOIN product_categories pc ON pc.id = p.category_id
           WHERE p.id = ?""",
        (product_id,),
    ).fetchone()


def create_product(conn: sqlite3.Connection, **fields) -> int:
    """Create a product. Returns the product ID."""
    for required in ("sku", "name", "unit_of_measure"):
        if not (str(fields.get(required) or "")).strip():
            raise ValueError(f"{required} is required")
    if not fields.get("type"):
        raise ValueError("type is required")

    data = {k: v for k, v in _clean(fields).items() if v is not None}
    if _sku_taken(conn, data["sku"]):
        raise ValueError("SKU already exists")

    cols = ", ".join(data.keys())
    placeholders = ", ".join("?" for _ in data)
    cur = conn.execute(
        f"INSERT INTO products ({cols}) VALUES ({placeholders})",
        list(data.values()),
    )
    conn.commit()
    return cur.lastrowid


def update_product(conn: sqlite3.Connection, product_id: int, **fields) -> bool:
    """Partial update of a product."""
    updates = _clean(fields)
    if not updates:
        return False
    if updates.get("sku") and _sku_taken(conn, updates["sku"], exclude_id=product_id):
        raise ValueError("SKU already exists")

    set_clause = ", ".join(f"{k} = ?" for k in updates)
    set_clause += ", updated_at = datetime('now')"
    cur = conn.execute(
        f"UPDATE products SET {set_clause} WHERE id = ?",
        list(updates.values()) + [product_id],
    )
    conn.commit()
    return cur.rowcount > 0


def delete_product(conn: sqlite3.Connection, product_id: int) -> bool:
    """Delete a product. Quotation items keep their copied description."""
    cur = conn.execute("DELETE FROM products WHERE id = ?", (product_id,))
    conn.commit()
    return cur.rowcount > 0


def list_low_stock(conn: sqlite3.Connection) -> list:
    """Active products at or below their reorder point, emptiest first."""
    return conn.execute(
        """SELECT p.*, pc.name AS category_name
           FROM products p
           LEFT JOIN product_categories pc ON pc.id = p.category_id
           WHERE p.status = 'active' AND p.current_stock <= p.reorder_point
           ORDER BY p.current_stock, p.name"""
    ).fetchall()


def get_product_kpis(conn: sqlite3.Connection) -> dict:
    """Inventory headline numbers for the products dashboard."""
    row = conn.execute(
        """SELECT COUNT(*) AS total_products,
                  COALESCE(SUM(CASE WHEN current_stock > 0
                               AND current_stock <= reorder_point THEN 1 ELSE 0 END), 0)
                      AS low_stock,
                  COALESCE(SUM(CASE WHEN current_stock = 0 THEN 1 ELSE 0 END), 0)
                      AS out_of_stock,
                  COALESCE(SUM(current_stock * last_purchase_price), 0) AS total_value
           FROM products"""
    ).fetchone()
    return {
        "total_products": row["total_products"],
        "low_stock": row["low_stock"],
        "out_of_stock": row["out_of_stock"],
        "total_value": round(row["total_value"], 2),
    }


# =============================================================================
# Product categories
# =============================================================================

def list_categories(conn: sqlite3.Connection) -> list:
    """All categories with their product counts."""
    return conn.execute(
        """SELECT pc.*, COUNT(p.id) AS product_count
           FROM product_categories pc
           LEFT JOIN products p ON p.category_id = pc.id
           GROUP BY pc.id
           ORDER BY pc.name"""
    ).fetchall()


def get_category(conn: sqlite3.Connection, category_id: int) -> Optional[sqlite3.Row]:
    return conn.execute(
        "SELECT * FROM product_categories WHERE id = ?", (category_id,)
    ).fetchone()


def get_category_by_name(conn: sqlite3.Connection, name: str) -> Optional[sqlite3.Row]:
    return conn.execute(
        "SELECT * FROM product_categories WHERE name = ?", (name,)
    ).fetchone()


def create_category(conn: sqlite3.Connection, name: str, description: Optional[str] = None) -> int:
    name = (name or "").strip()
    if not name:
        raise ValueError("Category name is required")
    if get_category_by_name(conn, name):
        raise ValueError(f"Category already exists: {name}")
    cur = conn.execute(
        "INSERT INTO product_categories (name, description) VALUES (?, ?)",
        (name, description),
    )
    conn.commit()
    return cur.lastrowid


def update_category(conn: sqlite3.Connection, category_id: int, **fields) -> bool:
    updates = {k: v for k, v in fields.items() if k in ("name", "description")}
    if "name" in updates:
        updates["name"] = (updates["name"] or "").strip()
        if not updates["name"]:
            raise ValueError("Category name cannot be blank")
        existing = get_category_by_name(conn, updates["name"])
        if existing and existing["id"] != category_id:
            raise ValueError(f"Category already exists: {updates['name']}")
    if not updates:
        return False

    set_clause = ", ".join(f"{k} = ?" for k in updates)
    set_clause += ", updated_at = datetime('now')"
    cur = conn.execute(
        f"UPDATE product_categories SET {set_clause} WHERE id = ?",
        list(updates.values()) + [category_id],
    )
    conn.commit()
    return cur.rowcount > 0


def delete_category(conn: sqlite3.Connection, category_id: int) -> bool:
    """Delete a category. Refused while products still belong to it."""
    count = conn.execute(
        "SELECT COUNT(*) FROM products WHERE category_id = ?", (category_id,)
    ).fetchone()[0]
    if count:
        raise ValueError(f"Category still has {count} product(s)")
    cur = conn.execute("DELETE FROM product_categories WHERE id = ?", (category_id,))
    conn.commit()
    return cur.rowcount > 0
