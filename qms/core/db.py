"""
Database access for QMS.

Provides connection management, query execution, and schema migration.
Single source of truth for all database operations.
"""

import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from qms.core.config import QMS_PATHS


def get_db_path() -> Path:
    """Get database path from config."""
    return QMS_PATHS.database


@contextmanager
def get_db(readonly: bool = False) -> Generator[sqlite3.Connection, None, None]:
    """
    Context manager for database connections.

    Enables foreign keys and Row factory automatically.

    Args:
        readonly: Open in read-only mode (useful for queries)

    Yields:
        sqlite3.Connection with Row factory enabled
    """
    db_path = get_db_path()

    if readonly:
        uri = f"file:{db_path}?mode=ro"
        conn = sqlite3.connect(uri, uri=True)
    else:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(db_path))

    try:
        conn.execute("PRAGMA foreign_keys = ON")
        if not readonly:
            conn.execute("PRAGMA journal_mode = WAL")
        conn.row_factory = sqlite3.Row
        yield conn
    finally:
        conn.close()


def execute_query(query: str, params: tuple = (), readonly: bool = True) -> list:
    """
    Execute a query and return results as list of Row objects.

    Args:
        query: SQL query
        params: Query parameters
        readonly: Use read-only connection

    Returns:
        List of sqlite3.Row objects
    """
    with get_db(readonly=readonly) as conn:
        cursor = conn.execute(query, params)
        return cursor.fetchall()


def log_audit(
    conn: sqlite3.Connection,
    entity_type: str,
    entity_id,
    action: str,
    changed_by: str = "system",
    old_values: Optional[dict] = None,
    new_values: Optional[dict] = None,
) -> None:
    """Insert a row into the shared audit_log table (caller commits)."""
    conn.execute(
        """INSERT INTO audit_log
           (entity_type, entity_id, action, changed_by, old_values, new_values)
           VALUES (?, ?, ?, ?, ?, ?)""",
        (
            entity_type,
            str(entity_id),
            action,
            changed_by,
            json.dumps(old_values, default=str) if old_values else None,
            json.dumps(new_values, default=str) if new_values else None,
        ),
    )


# Schema dependency order — foreign keys flow downhill through this list.
SCHEMA_ORDER = [
    "auth",
    "core",
    "settings",
    "customers",
    "products",
    "vendors",
    "quotations",
    "documents",
]


def apply_schemas(conn: sqlite3.Connection) -> None:
    """Apply every module schema.sql to an open connection."""
    from qms.core.logging import get_logger

    logger = get_logger("qms.migrate")
    package_dir = Path(__file__).parent.parent

    for module_name in SCHEMA_ORDER:
        schema_file = package_dir / module_name / "schema.sql"
        if schema_file.exists():
            logger.debug("Applying schema: %s/schema.sql", module_name)
            conn.executescript(schema_file.read_text(encoding="utf-8"))
        else:
            logger.debug("No schema for module: %s", module_name)
    conn.commit()


def apply_migrations(conn: sqlite3.Connection) -> None:
    """Run incremental (column-addition) migrations after the base schemas."""
    from qms.quotations.migrations import run_quotation_migrations

    run_quotation_migrations(conn)


def migrate_all():
    """
    Run all module schemas in dependency order.

    Each module's schema.sql uses CREATE TABLE IF NOT EXISTS,
    making this safe to run repeatedly (idempotent).
    """
    from qms.core.logging import get_logger

    logger = get_logger("qms.migrate")

    with get_db() as conn:
        apply_schemas(conn)
        logger.info("All schemas applied successfully")

        # Incremental migrations (column additions on existing databases)
        apply_migrations(conn)
        logger.info("Incremental migrations applied")


MAX_PAGE_LIMIT = 100


def page_window(page, limit, default_limit: int = 50) -> tuple:
    """
    Normalise page/limit query values.

    Returns (page, limit, offset); page >= 1 and 1 <= limit <= MAX_PAGE_LIMIT.
    """
    try:
        page = max(int(page or 1), 1)
    except (TypeError, ValueError):
        page = 1
    try:
        limit = int(limit or default_limit)
    except (TypeError, ValueError):
        limit = default_limit
    limit = min(max(limit, 1), MAX_PAGE_LIMIT)
    return page, limit, (page - 1) * limit


def total_pages(total: int, limit: int) -> int:
    return (total + limit - 1) // limit if limit else 0
