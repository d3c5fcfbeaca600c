"""Query-string helpers shared by the list endpoints."""

from typing import Optional

from flask import abort, request

from qms.core.config import get_config_value
from qms.core.db import MAX_PAGE_LIMIT


def page_args() -> tuple:
    """(page, limit) from ``?page=&limit=``; limit is capped at MAX_PAGE_LIMIT."""
    default_limit = int(get_config_value("quotations", "page_limit", default=50))
    page = request.args.get("page", 1, type=int)
    limit = request.args.get("limit", default_limit, type=int)
    return max(page or 1, 1), max(1, min(limit or default_limit, MAX_PAGE_LIMIT))


def json_body() -> dict:
    """Request JSON object, or 400."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        abort(400, "Request body must be a JSON object")
    return data


def optional_int(name: str) -> Optional[int]:
    value = request.args.get(name)
    if value in (None, ""):
        return None
    try:
        return int(value)
    except ValueError:
        abort(400, f"{name} must be an integer")
