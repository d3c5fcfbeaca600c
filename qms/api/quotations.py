"""
Quotations Blueprint — quotations, vendor rates, RFQs, exports and analytics.

Thin delivery layer: business logic lives in quotations.*, rfq.* and
exports.*.
"""

from io import BytesIO

from flask import Blueprint, abort, jsonify, request, send_file, session

from qms.api.params import json_body, optional_int, page_args
from qms.auth.decorators import require_write
from qms.core import get_db

bp = Blueprint("quotations", __name__, url_prefix="/api/quotations")

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _user_email() -> str:
    return session.get("user", {}).get("email") or "system"


def _header_fields(data: dict, allowed) -> dict:
    """Keep only editable quotation header keys from a request body."""
    return {k: v for k, v in data.items() if k in allowed}


def _search_kwargs() -> dict:
    args = request.args
    return {
        "search": args.get("search"),
        "status": args.get("status"),
        "customer_id": optional_int("customer_id"),
        "date_from": args.get("date_from"),
        "date_to": args.get("date_to"),
        "min_amount": args.get("min_amount", type=float),
        "max_amount": args.get("max_amount", type=float),
        "sort_by": args.get("sort_by", "created_at"),
        "sort_order": args.get("sort_order", "desc"),
    }


# ---------------------------------------------------------------------------
# Search, analytics, housekeeping
# ---------------------------------------------------------------------------


@bp.route("", methods=["GET"])
def api_search_quotations():
    from qms.quotations.db import search_quotations

    page, limit = page_args()
    with get_db(readonly=True) as conn:
        try:
            result = search_quotations(conn, page=page, limit=limit, **_search_kwargs())
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
    return jsonify(result)


@bp.route("/export", methods=["GET"])
def api_export_list():
    from qms.core.db import MAX_PAGE_LIMIT
    from qms.core.paths import timestamped_name
    from qms.exports.excel_renderer import export_quotation_list
    from qms.quotations.db import search_quotations

    rows = []
    with get_db(readonly=True) as conn:
        try:
            page = 1
            while True:
                result = search_quotations(conn, page=page, limit=MAX_PAGE_LIMIT,
                                           **_search_kwargs())
                rows.extend(result["quotations"])
                if page >= result["total_pages"]:
                    break
                page += 1
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400

    return send_file(
        export_quotation_list(rows),
        mimetype=XLSX_MIMETYPE,
        as_attachment=True,
        download_name=timestamped_name("quotations", ".xlsx"),
    )


@bp.route("/dashboard", methods=["GET"])
def api_dashboard():
    from qms.quotations.analytics import get_sales_dashboard

    with get_db(readonly=True) as conn:
        return jsonify(get_sales_dashboard(conn))


@bp.route("/trends", methods=["GET"])
def api_trends():
    from qms.quotations.analytics import get_quotation_trends

    months = request.args.get("months", 6, type=int)
    with get_db(readonly=True) as conn:
        return jsonify(get_quotation_trends(conn, months=months))


@bp.route("/top-customers", methods=["GET"])
def api_top_customers():
    from qms.quotations.analytics import get_top_customers

    limit = max(1, min(request.args.get("limit", 5, type=int), 50))
    with get_db(readonly=True) as conn:
        return jsonify(get_top_customers(conn, limit))


@bp.route("/expire", methods=["POST"])
def api_expire_overdue():
    require_write("quotations")
    from qms.quotations.db import expire_overdue

    with get_db() as conn:
        count = expire_overdue(conn)
    return jsonify({"expired": count})


# ---------------------------------------------------------------------------
# Quotation CRUD
# ---------------------------------------------------------------------------


@bp.route("/<int:quotation_id>", methods=["GET"])
def api_get_quotation(quotation_id: int):
    from qms.quotations.db import get_quotation

    with get_db(readonly=True) as conn:
        quotation = get_quotation(conn, quotation_id)
    if not quotation:
        abort(404, "Quotation not found")
    return jsonify(quotation)


@bp.route("", methods=["POST"])
def api_create_quotation():
    require_write("quotations")
    from qms.quotations.db import HEADER_FIELDS, create_quotation, get_quotation

    data = json_body()
    customer_id = data.pop("customer_id", None)
    items = data.pop("items", None)
    if not customer_id:
        return jsonify({"error": "customer_id is required"}), 400
    if not isinstance(items, list):
        return jsonify({"error": "items must be a list"}), 400

    with get_db() as conn:
        try:
            qid = create_quotation(
                conn, int(customer_id), items,
                quotation_date=data.pop("quotation_date", None),
                valid_until=data.pop("valid_until", None),
                created_by=_user_email(),
                **_header_fields(data, HEADER_FIELDS),
            )
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
        quotation = get_quotation(conn, qid)
    return jsonify(quotation), 201


@bp.route("/<int:quotation_id>", methods=["PUT"])
def api_update_quotation(quotation_id: int):
    require_write("quotations")
    from qms.quotations.db import HEADER_FIELDS, get_quotation, update_quotation

    data = json_body()
    items = data.pop("items", None)
    if items is not None and not isinstance(items, list):
        return jsonify({"error": "items must be a list"}), 400

    with get_db() as conn:
        try:
            found = update_quotation(
                conn, quotation_id, items=items, **_header_fields(data, HEADER_FIELDS),
            )
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
        if not found:
            abort(404, "Quotation not found")
        quotation = get_quotation(conn, quotation_id)
    return jsonify(quotation)


@bp.route("/<int:quotation_id>", methods=["DELETE"])
def api_delete_quotation(quotation_id: int):
    require_write("quotations")
    from qms.quotations.db import delete_quotation

    with get_db() as conn:
        if not delete_quotation(conn, quotation_id, changed_by=_user_email()):
            abort(404, "Quotation not found")
    return jsonify({"message": "Quotation deleted"})


@bp.route("/<int:quotation_id>/status", methods=["POST", "PATCH"])
def api_update_status(quotation_id: int):
    require_write("quotations")
    from qms.quotations.db import update_status

    data = json_body()
    with get_db() as conn:
        try:
            quotation = update_status(conn, quotation_id, data.get("status") or "",
                                      changed_by=_user_email())
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
    if not quotation:
        abort(404, "Quotation not found")
    return jsonify(quotation)


@bp.route("/<int:quotation_id>/duplicate", methods=["POST"])
def api_duplicate_quotation(quotation_id: int):
    require_write("quotations")
    from qms.quotations.db import duplicate_quotation, get_quotation

    with get_db() as conn:
        try:
            new_id = duplicate_quotation(conn, quotation_id, created_by=_user_email())
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
        if not new_id:
            abort(404, "Quotation not found")
        quotation = get_quotation(conn, new_id)
    return jsonify(quotation), 201


# ---------------------------------------------------------------------------
# Exports
# ---------------------------------------------------------------------------


def _load_for_export(quotation_id: int):
    from qms.quotations.db import get_quotation
    from qms.settings.db import get_settings

    with get_db(readonly=True) as conn:
        quotation = get_quotation(conn, quotation_id)
        settings = get_settings(conn)
    if not quotation:
        abort(404, "Quotation not found")
    return quotation, settings


@bp.route("/<int:quotation_id>/pdf", methods=["GET"])
def api_quotation_pdf(quotation_id: int):
    from qms.exports.pdf_renderer import render_quotation_pdf

    quotation, settings = _load_for_export(quotation_id)
    data = render_quotation_pdf(quotation, settings)
    return send_file(
        BytesIO(data),
        mimetype="application/pdf",
        as_attachment=request.args.get("download", "1") != "0",
        download_name=f"{quotation['quotation_number']}.pdf",
    )


@bp.route("/<int:quotation_id>/excel", methods=["GET"])
def api_quotation_excel(quotation_id: int):
    from qms.exports.excel_renderer import render_quotation_excel

    quotation, settings = _load_for_export(quotation_id)
    return send_file(
        render_quotation_excel(quotation, settings),
        mimetype=XLSX_MIMETYPE,
        as_attachment=True,
        download_name=f"{quotation['quotation_number']}.xlsx",
    )


# ---------------------------------------------------------------------------
# Vendor rates
# ---------------------------------------------------------------------------


@bp.route("/<int:quotation_id>/vendor-rates/compare", methods=["GET"])
def api_compare_rates(quotation_id: int):
    from qms.quotations.rates import compare_vendor_rates

    with get_db(readonly=True) as conn:
        if not conn.execute("SELECT 1 FROM quotations WHERE id = ?", (quotation_id,)).fetchone():
            abort(404, "Quotation not found")
        return jsonify(compare_vendor_rates(conn, quotation_id))


@bp.route("/items/<int:item_id>/vendor-rates", methods=["GET"])
def api_list_item_rates(item_id: int):
    from qms.quotations.rates import list_item_rates

    active_only = request.args.get("active_only", "").lower() in ("1", "true", "yes")
    with get_db(readonly=True) as conn:
        return jsonify(list_item_rates(conn, item_id, active_only=active_only))


@bp.route("/items/<int:item_id>/vendor-rates", methods=["POST"])
def api_add_item_rate(item_id: int):
    require_write("quotations")
    from qms.quotations.rates import add_vendor_rate

    data = json_body()
    if data.get("vendor_id") is None or data.get("cost_price") is None:
        return jsonify({"error": "vendor_id and cost_price are required"}), 400

    with get_db() as conn:
        try:
            rate_id = add_vendor_rate(
                conn, item_id, int(data["vendor_id"]), data["cost_price"],
                margin_percent=data.get("margin_percent"),
                lead_time_days=data.get("lead_time_days"),
                valid_from=data.get("valid_from"),
                valid_until=data.get("valid_until"),
                remarks=data.get("remarks"),
            )
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
        rate = conn.execute(
            "SELECT * FROM quotation_item_vendor_rates WHERE id = ?", (rate_id,)
        ).fetchone()
    return jsonify(dict(rate)), 201


@bp.route("/items/<int:item_id>/vendor-rates/<int:rate_id>/apply", methods=["POST"])
def api_apply_item_rate(item_id: int, rate_id: int):
    require_write("quotations")
    from qms.quotations.rates import apply_vendor_rate

    with get_db() as conn:
        try:
            item = apply_vendor_rate(conn, item_id, rate_id)
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
    return jsonify(item)


@bp.route("/vendor-rates/<int:rate_id>", methods=["DELETE"])
def api_deactivate_rate(rate_id: int):
    require_write("quotations")
    from qms.quotations.rates import deactivate_vendor_rate

    with get_db() as conn:
        if not deactivate_vendor_rate(conn, rate_id):
            abort(404, "Vendor rate not found")
    return jsonify({"message": "Vendor rate deactivated"})


# ---------------------------------------------------------------------------
# RFQ export / import
# ---------------------------------------------------------------------------


@bp.route("/<int:quotation_id>/rfq", methods=["POST"])
def api_export_rfq(quotation_id: int):
    require_write("quotations")
    from qms.rfq.exporter import export_rfqs

    data = request.get_json(silent=True) or {}
    mapping = data.get("category_vendors")
    if mapping is not None and not isinstance(mapping, dict):
        return jsonify({"error": "category_vendors must map category names to vendor ids"}), 400

    with get_db() as conn:
        try:
            result = export_rfqs(
                conn, quotation_id,
                category_vendors=mapping,
                validity_days=data.get("validity_days"),
                rfq_reference=data.get("rfq_reference"),
                created_by=_user_email(),
            )
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
    return jsonify(result.to_dict()), 201


@bp.route("/<int:quotation_id>/rfq/import", methods=["POST"])
def api_import_rfq(quotation_id: int):
    require_write("quotations")
    from qms.rfq.importer import import_vendor_rates

    if "file" not in request.files:
        return jsonify({"error": "No file provided"}), 400
    file = request.files["file"]
    if not (file.filename or "").lower().endswith(".xlsx"):
        return jsonify({"error": "File must be .xlsx"}), 400
    vendor_id = request.form.get("vendor_id", type=int)
    if not vendor_id:
        return jsonify({"error": "vendor_id is required"}), 400
    margin = request.form.get("margin_percent", type=float)

    with get_db() as conn:
        try:
            result = import_vendor_rates(
                conn, quotation_id, vendor_id, BytesIO(file.read()), margin_percent=margin,
            )
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
    return jsonify(result)
