"""
Products Blueprint — product catalog and product categories.

Thin delivery layer: all business logic lives in products.db.
"""

from flask import Blueprint, abort, jsonify, request

from qms.api.params import json_body, optional_int, page_args
from qms.auth.decorators import require_write
from qms.core import get_db

bp = Blueprint("products", __name__, url_prefix="/api")


# ---------------------------------------------------------------------------
# Products API
# ---------------------------------------------------------------------------


@bp.route("/products", methods=["GET"])
def api_list_products():
    from qms.products.db import list_products

    page, limit = page_args()
    with get_db(readonly=True) as conn:
        result = list_products(
            conn,
            search=request.args.get("search"),
            category_id=optional_int("category_id"),
            status=request.args.get("status"),
            page=page,
            limit=limit,
        )
    return jsonify(result)


@bp.route("/products/kpis", methods=["GET"])
def api_product_kpis():
    from qms.products.db import get_product_kpis

    with get_db(readonly=True) as conn:
        return jsonify(get_product_kpis(conn))


@bp.route("/products/low-stock", methods=["GET"])
def api_low_stock():
    from qms.products.db import list_low_stock

    with get_db(readonly=True) as conn:
        rows = list_low_stock(conn)
    return jsonify([dict(r) for r in rows])


@bp.route("/products/<int:product_id>", methods=["GET"])
def api_get_product(product_id: int):
    from qms.products.db import get_product

    with get_db(readonly=True) as conn:
        product = get_product(conn, product_id)
    if not product:
        abort(404, "Product not found")
    return jsonify(dict(product))


@bp.route("/products", methods=["POST"])
def api_create_product():
    require_write("products")
    from qms.products.db import create_product, get_product

    data = json_body()
    with get_db() as conn:
        try:
            pid = create_product(conn, **data)
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
        product = get_product(conn, pid)
    return jsonify(dict(product)), 201


@bp.route("/products/<int:product_id>", methods=["PUT"])
def api_update_product(product_id: int):
    require_write("products")
    from qms.products.db import get_product, update_product

    data = json_body()
    with get_db() as conn:
        if not get_product(conn, product_id):
            abort(404, "Product not found")
        try:
            update_product(conn, product_id, **data)
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
        product = get_product(conn, product_id)
    return jsonify(dict(product))


@bp.route("/products/<int:product_id>", methods=["DELETE"])
def api_delete_product(product_id: int):
    require_write("products")
    from qms.products.db import delete_product

    with get_db() as conn:
        if not delete_product(conn, product_id):
            abort(404, "Product not found")
    return jsonify({"message": "Product deleted"})


# ---------------------------------------------------------------------------
# Product categories API
# ---------------------------------------------------------------------------


@bp.route("/product-categories", methods=["GET"])
def api_list_categories():
    from qms.products.db import list_categories

    with get_db(readonly=True) as conn:
        rows = list_categories(conn)
    return jsonify([dict(r) for r in rows])


@bp.route("/product-categories", methods=["POST"])
def api_create_category():
    require_write("products")
    from qms.products.db import create_category, get_category

    data = json_body()
    with get_db() as conn:
        try:
            cid = create_category(conn, data.get("name"), data.get("description"))
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
        category = get_category(conn, cid)
    return jsonify(dict(category)), 201


@bp.route("/product-categories/<int:category_id>", methods=["PUT"])
def api_update_category(category_id: int):
    require_write("products")
    from qms.products.db import get_category, update_category

    data = json_body()
    with get_db() as conn:
        if not get_category(conn, category_id):
            abort(404, "Category not found")
        try:
            update_category(conn, category_id, **data)
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
        category = get_category(conn, category_id)
    return jsonify(dict(category))


@bp.route("/product-categories/<int:category_id>", methods=["DELETE"])
def api_delete_category(category_id: int):
    require_write("products")
    from qms.products.db import delete_category

    with get_db() as conn:
        try:
            deleted = delete_category(conn, category_id)
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
    if not deleted:
        abort(404, "Category not found")
    return jsonify({"message": "Category deleted"})
