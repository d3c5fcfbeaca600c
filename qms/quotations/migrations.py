"""
Incremental migrations for the quotations module.

Adds approval tracking to quotations and the selected vendor rate to
quotation items on databases created before those columns existed.
"""

import sqlite3

from qms.core.logging import get_logger

logger = get_logger("qms.quotations.migrations")


def run_quotation_migrations(conn: sqlite3.Connection) -> None:
    """Run all quotation schema migrations (idempotent)."""
    _add_approval_columns(conn)
    _add_selected_rate_column(conn)


def _column_exists(conn: sqlite3.Connection, table: str, column: str) -> bool:
    cols = conn.execute(f"PRAGMA table_info({table})").fetchall()
    return any(c[1] == column for c in cols)


def _add_approval_columns(conn: sqlite3.Connection) -> None:
    additions = [
        ("approved_by", "TEXT"),
        ("approved_at", "TEXT"),
    ]
    for col_name, col_def in additions:
        if not _column_exists(conn, "quotations", col_name):
            conn.execute(f"ALTER TABLE quotations ADD COLUMN {col_name} {col_def}")
            logger.info("Added %s column to quotations", col_name)
    conn.commit()


def _add_selected_rate_column(conn: sqlite3.Connection) -> None:
    if not _column_exists(conn, "quotation_items", "selected_rate_id"):
        conn.execute(
            "ALTER TABLE quotation_items ADD COLUMN selected_rate_id INTEGER "
            "REFERENCES quotation_item_vendor_rates(id) ON DELETE SET NULL"
        )
        logger.info("Added selected_rate_id column to quotation_items")
    conn.commit()
