"""
System settings business logic — pure Python, no Flask imports.

A single ``system_settings`` row (id = 1) holds company details, default
terms texts and pricing defaults. Reads never fail: missing rows and blank
columns fall back to DEFAULT_SETTINGS.
"""

import sqlite3

DEFAULT_TERMS = {
    "default_terms": (
        "1. Payment is due within 30 days of invoice date.\n"
        "2. All prices are in USD and exclude shipping.\n"
        "3. Products are subject to availability.\n"
        "4. Returns accepted within 14 days with original packaging.\n"
        "5. Late payments may incur additional charges.\n"
        "6. Delivery terms as per agreement."
    ),
    "quotation_terms": (
        "1. This quotation is valid for 30 days from the date of issue.\n"
        "2. Prices are subject to change without notice.\n"
        "3. Payment terms: 50% advance, 50% on delivery.\n"
        "4. Delivery time: 7-14 business days after order confirmation."
    ),
    "invoice_terms": (
        "1. Payment is due within 30 days of invoice date.\n"
        "2. Late payment charges: 2% per month.\n"
        "3. All disputes must be raised within 7 days of invoice date.\n"
        "4. Goods once sold cannot be returned without prior approval."
    ),
    "purchase_order_terms": (
        "1. Delivery as per agreed schedule.\n"
        "2. Quality as per specifications.\n"
        "3. Payment terms as agreed.\n"
        "4. Penalties for delayed delivery may apply."
    ),
}

DEFAULT_SETTINGS = {
    **DEFAULT_TERMS,
    "default_currency": "USD",
    "default_tax_rate": 18.0,
    "company_name": None,
    "company_address": None,
    "company_phone": None,
    "company_email": None,
}

TERM_FIELDS = tuple(DEFAULT_TERMS)


def _get_row(conn: sqlite3.Connection):
    return conn.execute("SELECT * FROM system_settings WHERE id = 1").fetchone()


def _upsert(conn: sqlite3.Connection, data: dict) -> None:
    if _get_row(conn):
        set_clause = ", ".join(f"{k} = ?" for k in data)
        set_clause += ", updated_at = datetime('now')"
        conn.execute(
            f"UPDATE system_settings SET {set_clause} WHERE id = 1",
            list(data.values()),
        )
    else:
        cols = ", ".join(["id", *data.keys()])
        placeholders = ", ".join("?" for _ in range(len(data) + 1))
        conn.execute(
            f"INSERT INTO system_settings ({cols}) VALUES ({placeholders})",
            [1, *data.values()],
        )
    conn.commit()


def get_settings(conn: sqlite3.Connection) -> dict:
    """Stored settings merged over the defaults."""
    settings = dict(DEFAULT_SETTINGS)
    row = _get_row(conn)
    if row:
        for key, value in dict(row).items():
            if value is not None and value != "":
                settings[key] = value
    return settings


def get_terms(conn: sqlite3.Connection) -> dict:
    """The four terms texts, stored values first, built-in defaults otherwise."""
    settings = get_settings(conn)
    return {k: settings[k] for k in TERM_FIELDS}


def get_default_tax_rate(conn: sqlite3.Connection) -> float:
    return float(get_settings(conn)["default_tax_rate"])


def update_terms(conn: sqlite3.Connection, **terms) -> dict:
    """
    Update one or more terms texts. Creates the settings row on first write.

    Raises ValueError when none of the four terms fields is supplied.
    """
    data = {k: v for k, v in terms.items() if k in TERM_FIELDS and v is not None}
    if not data:
        raise ValueError("At least one terms field is required")
    _upsert(conn, data)
    return get_terms(conn)


def update_settings(conn: sqlite3.Connection, **fields) -> dict:
    """Partial update of the settings row. Returns the merged settings."""
    allowed = set(DEFAULT_SETTINGS)
    data = {k: v for k, v in fields.items() if k in allowed}
    if not data:
        raise ValueError("No valid settings fields supplied")

    if "default_tax_rate" in data:
        try:
            rate = float(data["default_tax_rate"])
        except (TypeError, ValueError):
            raise ValueError("default_tax_rate must be a number")
        if not 0 <= rate <= 100:
            raise ValueError("default_tax_rate must be between 0 and 100")
        data["default_tax_rate"] = rate

    if "default_currency" in data:
        currency = (data["default_currency"] or "").strip().upper()
        if len(currency) != 3:
            raise ValueError("default_currency must be a 3-letter code")
        data["default_currency"] = currency

    _upsert(conn, data)
    return get_settings(conn)
