"""
Settings Blueprint — company details, default terms and pricing defaults.

Reads are open to any signed-in user (quotation forms need the defaults);
writes follow the ``settings`` permission (admin by default).
"""

from flask import Blueprint, jsonify, request

from qms.auth.decorators import require_write
from qms.core import get_db

bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@bp.route("", methods=["GET"])
def api_get_settings():
    from qms.settings.db import get_settings

    with get_db(readonly=True) as conn:
        return jsonify(get_settings(conn))


@bp.route("", methods=["PUT"])
def api_update_settings():
    require_write("settings")
    from qms.settings.db import update_settings

    data = request.get_json(silent=True) or {}
    with get_db() as conn:
        try:
            settings = update_settings(conn, **data)
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
    return jsonify(settings)


@bp.route("/terms", methods=["GET"])
def api_get_terms():
    from qms.settings.db import get_terms

    with get_db(readonly=True) as conn:
        return jsonify(get_terms(conn))


@bp.route("/terms", methods=["PUT"])
def api_update_terms():
    require_write("settings")
    from qms.settings.db import update_terms

    data = request.get_json(silent=True) or {}
    with get_db() as conn:
        try:
            terms = update_terms(conn, **data)
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
    return jsonify(terms)
