"""
Customers Blueprint — customer directory.

Thin delivery layer: all business logic lives in customers.db.
"""

from flask import Blueprint, abort, jsonify, request

from qms.api.params import json_body, page_args
from qms.auth.decorators import require_write
from qms.core import get_db

bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@bp.route("", methods=["GET"])
def api_list_customers():
    from qms.customers.db import list_customers

    page, limit = page_args()
    with get_db(readonly=True) as conn:
        result = list_customers(
            conn,
            search=request.args.get("search"),
            status=request.args.get("status"),
            page=page,
            limit=limit,
        )
    return jsonify(result)


@bp.route("/<int:customer_id>", methods=["GET"])
def api_get_customer(customer_id: int):
    from qms.customers.db import get_customer

    with get_db(readonly=True) as conn:
        customer = get_customer(conn, customer_id)
    if not customer:
        abort(404, "Customer not found")
    return jsonify(dict(customer))


@bp.route("/<int:customer_id>/summary", methods=["GET"])
def api_customer_summary(customer_id: int):
    from qms.customers.db import get_customer_summary

    with get_db(readonly=True) as conn:
        summary = get_customer_summary(conn, customer_id)
    if not summary:
        abort(404, "Customer not found")
    return jsonify(summary)


@bp.route("/<int:customer_id>/quotations", methods=["GET"])
def api_customer_quotations(customer_id: int):
    from qms.customers.db import get_customer, get_customer_quotations

    with get_db(readonly=True) as conn:
        if not get_customer(conn, customer_id):
            abort(404, "Customer not found")
        rows = get_customer_quotations(conn, customer_id)
    return jsonify([dict(r) for r in rows])


@bp.route("", methods=["POST"])
def api_create_customer():
    require_write("customers")
    from qms.customers.db import create_customer, get_customer

    data = json_body()
    with get_db() as conn:
        try:
            cid = create_customer(conn, **data)
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
        customer = get_customer(conn, cid)
    return jsonify(dict(customer)), 201


@bp.route("/<int:customer_id>", methods=["PUT"])
def api_update_customer(customer_id: int):
    require_write("customers")
    from qms.customers.db import get_customer, update_customer

    data = json_body()
    with get_db() as conn:
        if not get_customer(conn, customer_id):
            abort(404, "Customer not found")
        try:
            update_customer(conn, customer_id, **data)
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
        customer = get_customer(conn, customer_id)
    return jsonify(dict(customer))


@bp.route("/<int:customer_id>", methods=["DELETE"])
def api_delete_customer(customer_id: int):
    require_write("customers")
    from qms.customers.db import delete_customer

    with get_db() as conn:
        try:
            deleted = delete_customer(conn, customer_id)
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
    if not deleted:
        abort(404, "Customer not found")
    return jsonify({"message": "Customer deleted"})
