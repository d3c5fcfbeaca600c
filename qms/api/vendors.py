"""
Vendors Blueprint — vendors, vendor <-> category assignment, rate requests.

Thin delivery layer: all business logic lives in vendors.db.
"""

from flask import Blueprint, abort, jsonify, request, session

from qms.api.params import json_body, optional_int
from qms.auth.decorators import require_write
from qms.core import get_db

bp = Blueprint("vendors", __name__, url_prefix="/api")


# ---------------------------------------------------------------------------
# Vendors API
# ---------------------------------------------------------------------------


@bp.route("/vendors", methods=["GET"])
def api_list_vendors():
    from qms.vendors.db import list_vendors

    with get_db(readonly=True) as conn:
        rows = list_vendors(
            conn,
            search=request.args.get("search"),
            status=request.args.get("status"),
        )
    return jsonify([dict(r) for r in rows])


@bp.route("/vendors/<int:vendor_id>", methods=["GET"])
def api_get_vendor(vendor_id: int):
    from qms.vendors.db import get_vendor

    with get_db(readonly=True) as conn:
        vendor = get_vendor(conn, vendor_id)
    if not vendor:
        abort(404, "Vendor not found")
    return jsonify(dict(vendor))


@bp.route("/vendors", methods=["POST"])
def api_create_vendor():
    require_write("vendors")
    from qms.vendors.db import create_vendor, get_vendor

    data = json_body()
    with get_db() as conn:
        try:
            vid = create_vendor(conn, **data)
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
        vendor = get_vendor(conn, vid)
    return jsonify(dict(vendor)), 201


@bp.route("/vendors/<int:vendor_id>", methods=["PUT"])
def api_update_vendor(vendor_id: int):
    require_write("vendors")
    from qms.vendors.db import get_vendor, update_vendor

    data = json_body()
    with get_db() as conn:
        if not get_vendor(conn, vendor_id):
            abort(404, "Vendor not found")
        try:
            update_vendor(conn, vendor_id, **data)
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
        vendor = get_vendor(conn, vendor_id)
    return jsonify(dict(vendor))


@bp.route("/vendors/<int:vendor_id>", methods=["DELETE"])
def api_delete_vendor(vendor_id: int):
    require_write("vendors")
    from qms.vendors.db import delete_vendor

    with get_db() as conn:
        if not delete_vendor(conn, vendor_id):
            abort(404, "Vendor not found")
    return jsonify({"message": "Vendor deleted"})


# ---------------------------------------------------------------------------
# Vendor categories API
# ---------------------------------------------------------------------------


@bp.route("/vendor-categories/stats", methods=["GET"])
def api_category_stats():
    from qms.vendors.db import get_category_stats

    with get_db(readonly=True) as conn:
        return jsonify(get_category_stats(conn))


@bp.route("/vendor-categories/<int:category_id>/vendors", methods=["GET"])
def api_category_vendors(category_id: int):
    from qms.products.db import get_category
    from qms.vendors.db import get_category_vendors

    include_unassigned = request.args.get("include_unassigned", "").lower() in ("1", "true", "yes")
    with get_db(readonly=True) as conn:
        if not get_category(conn, category_id):
            abort(404, "Category not found")
        result = get_category_vendors(conn, category_id, include_unassigned)
    return jsonify(result)


@bp.route("/vendor-categories/<int:category_id>/vendors", methods=["POST"])
def api_assign_vendors(category_id: int):
    require_write("vendors")
    from qms.products.db import get_category
    from qms.vendors.db import assign_vendors

    data = json_body()
    user = session.get("user", {})
    with get_db() as conn:
        if not get_category(conn, category_id):
            abort(404, "Category not found")
        try:
            added = assign_vendors(
                conn, category_id, data.get("vendor_ids") or [],
                notes=data.get("notes"), assigned_by=user.get("email"),
            )
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
    return jsonify({"message": f"{added} vendor(s) assigned", "added": added}), 201


@bp.route("/vendor-categories/<int:category_id>/vendors/<int:vendor_id>", methods=["DELETE"])
def api_remove_vendor(category_id: int, vendor_id: int):
    require_write("vendors")
    from qms.vendors.db import remove_vendor_from_category

    with get_db() as conn:
        if not remove_vendor_from_category(conn, category_id, vendor_id):
            abort(404, "Assignment not found")
    return jsonify({"message": "Vendor removed from category"})


@bp.route("/vendor-categories/rate-requests", methods=["GET"])
def api_rate_requests():
    from qms.vendors.db import list_rate_requests

    with get_db(readonly=True) as conn:
        rows = list_rate_requests(
            conn,
            category_id=optional_int("category_id"),
            quotation_id=optional_int("quotation_id"),
        )
    return jsonify(rows)
