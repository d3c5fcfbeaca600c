"""
Path utilities for QMS.

Directory creation and export file naming.
"""

import re
from datetime import datetime
from pathlib import Path
from typing import Optional

from qms.core.config import QMS_PATHS


def ensure_directory(path: Path) -> Path:
    """Ensure a directory exists, creating if necessary. Returns path for chaining."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def slugify(text: str) -> str:
    """Filesystem-safe slug: 'ABC Traders (Pvt)' -> 'ABC_Traders_Pvt'."""
    slug = re.sub(r"[^A-Za-z0-9]+", "_", text or "").strip("_")
    return slug or "untitled"


def export_dir(subdir: Optional[str] = None) -> Path:
    """Configured exports directory (or a subfolder of it), created on demand."""
    base = QMS_PATHS.exports
    if subdir:
        base = base / subdir
    return ensure_directory(base)


def export_path(filename: str, subdir: Optional[str] = None) -> Path:
    """
    Build a path under the configured exports directory.

    Args:
        filename: Final file name (already sanitized by the caller)
        subdir: Optional subfolder (e.g., an RFQ reference)
    """
    return export_dir(subdir) / filename


def timestamped_name(stem: str, suffix: str) -> str:
    """'quotations', '.xlsx' -> 'quotations_20250101_120000.xlsx'."""
    return f"{slugify(stem)}_{datetime.now().strftime('%Y%m%d_%H%M%S')}{suffix}"
