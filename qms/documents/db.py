"""
Document attachments: files on disk plus a metadata row.

Pure business logic — no Flask imports. Files live under the configured
documents directory as ``<type>/<id>/<uuid>_<safe name>``; the stored path
in the database is relative to that directory.
"""

import mimetypes
import sqlite3
import uuid
from pathlib import Path
from typing import BinaryIO, Optional, Union

from werkzeug.utils import secure_filename

from qms.core.config import QMS_PATHS, get_config_value
from qms.core.logging import get_logger

logger = get_logger("qms.documents")

DEFAULT_EXTENSIONS = ("jpeg", "jpg", "png", "gif", "pdf", "doc", "docx", "xls", "xlsx", "txt")
DEFAULT_REFERENCE_TYPES = ("quotation", "customer", "vendor", "product")

# reference_type -> owning table
_REFERENCE_TABLES = {
    "quotation": "quotations",
    "customer": "customers",
    "vendor": "vendors",
    "product": "products",
}


class DocumentTooLarge(ValueError):
    """Upload is over the configured size limit."""


def allowed_extensions() -> set:
    exts = get_config_value("documents", "allowed_extensions", default=DEFAULT_EXTENSIONS)
    return {str(e).lower().lstrip(".") for e in exts}


def max_upload_bytes() -> int:
    return int(float(get_config_value("documents", "max_size_mb", default=10)) * 1024 * 1024)


def reference_types() -> tuple:
    return tuple(get_config_value("documents", "reference_types", default=DEFAULT_REFERENCE_TYPES))


def documents_root() -> Path:
    return QMS_PATHS.documents


def _check_reference(conn: sqlite3.Connection, reference_type: str, reference_id: int) -> None:
    if reference_type not in reference_types() or reference_type not in _REFERENCE_TABLES:
        raise ValueError(f"Invalid reference type: {reference_type}")
    table = _REFERENCE_TABLES[reference_type]
    if not conn.execute(f"SELECT 1 FROM {table} WHERE id = ?", (reference_id,)).fetchone():
        raise ValueError(f"{reference_type.capitalize()} {reference_id} not found")


def save_document(
    conn: sqlite3.Connection,
    reference_type: str,
    reference_id: int,
    filename: str,
    stream: Union[BinaryIO, bytes],
    description: Optional[str] = None,
    uploaded_by: Optional[str] = None,
    mime_type: Optional[str] = None,
    root: Optional[Path] = None,
) -> dict:
    """
    Store an uploaded file and record it.

    Args:
        stream: File-like object (e.g. a werkzeug FileStorage stream) or raw bytes
        root: Storage root; defaults to the configured documents directory

    Raises ValueError for a bad reference, a disallowed extension or an
    empty file, and DocumentTooLarge when over the size limit.
    """
    _check_reference(conn, reference_type, reference_id)

    safe_name = secure_filename(filename or "")
    ext = safe_name.rsplit(".", 1)[-1].lower() if "." in safe_name else ""
    if not safe_name or ext not in allowed_extensions():
        raise ValueError(
            f"File type not allowed. Allowed: {', '.join(sorted(allowed_extensions()))}"
        )

    data = stream if isinstance(stream, bytes) else stream.read()
    if not data:
        raise ValueError("File is empty")
    limit = max_upload_bytes()
    if len(data) > limit:
        raise DocumentTooLarge(f"File exceeds the {limit // (1024 * 1024)} MB limit")

    root = Path(root) if root else documents_root()
    relative = Path(reference_type) / str(reference_id) / f"{uuid.uuid4().hex}_{safe_name}"
    target = root / relative
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)

    mime_type = mime_type or mimetypes.guess_type(safe_name)[0] or "application/octet-stream"
    try:
        cursor = conn.execute(
            """INSERT INTO document_attachments
               (reference_type, reference_id, original_name, stored_path,
                mime_type, file_size, description, uploaded_by)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (reference_type, reference_id, filename, relative.as_posix(),
             mime_type, len(data), description, uploaded_by),
        )
        conn.commit()
    except sqlite3.Error:
        target.unlink(missing_ok=True)
        raise

    logger.info("Stored %s for %s %d (%d bytes)", filename, reference_type, reference_id, len(data))
    return get_document(conn, cursor.lastrowid)


def list_documents(
    conn: sqlite3.Connection,
    reference_type: Optional[str] = None,
    reference_id: Optional[int] = None,
) -> list:
    """Attachments, newest first, optionally limited to one record."""
    sql = "SELECT * FROM document_attachments WHERE 1=1"
    params: list = []
    if reference_type:
        sql += " AND reference_type = ?"
        params.append(reference_type)
    if reference_id is not None:
        sql += " AND reference_id = ?"
        params.append(reference_id)
    sql += " ORDER BY uploaded_at DESC, id DESC"
    return [dict(r) for r in conn.execute(sql, params).fetchall()]


def get_document(conn: sqlite3.Connection, document_id: int) -> Optional[dict]:
    row = conn.execute(
        "SELECT * FROM document_attachments WHERE id = ?", (document_id,)
    ).fetchone()
    return dict(row) if row else None


def document_file(document: dict, root: Optional[Path] = None) -> Path:
    """Absolute path of an attachment's stored file."""
    return (Path(root) if root else documents_root()) / document["stored_path"]


def delete_document(conn: sqlite3.Connection, document_id: int, root: Optional[Path] = None) -> bool:
    """Remove the metadata row and the stored file. Returns False if not found."""
    document = get_document(conn, document_id)
    if not document:
        return False
    conn.execute("DELETE FROM document_attachments WHERE id = ?", (document_id,))
    conn.commit()

    path = document_file(document, root)
    if path.exists():
        path.unlink()
    else:
        logger.warning("Attachment %d had no file at %s", document_id, path)
    return True
