"""
Health Blueprint — liveness and database reachability. No session required.
"""

from datetime import datetime, timezone

from flask import Blueprint, jsonify

from qms import __version__
from qms.core import get_db, get_logger

bp = Blueprint("health", __name__, url_prefix="/api")

logger = get_logger("qms.api.health")


@bp.route("/health", methods=["GET"])
def health():
    database = "ok"
    try:
        with get_db() as conn:
            conn.execute("SELECT 1").fetchone()
    except Exception as exc:
        logger.warning("Health check database error: %s", exc)
        database = "unavailable"

    status = "ok" if database == "ok" else "degraded"
    return jsonify({
        "status": status,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": __version__,
        "database": database,
    }), 200 if status == "ok" else 503
