"""
Documents Blueprint — upload, list, download and delete attachments.

Thin delivery layer: all business logic lives in documents.db.
"""

from flask import Blueprint, abort, jsonify, request, send_file, session

from qms.api.params import optional_int
from qms.auth.decorators import require_write
from qms.core import get_db

bp = Blueprint("documents", __name__, url_prefix="/api/documents")


@bp.route("", methods=["GET"])
def api_list_documents():
    from qms.documents.db import list_documents

    with get_db(readonly=True) as conn:
        rows = list_documents(
            conn,
            reference_type=request.args.get("reference_type"),
            reference_id=optional_int("reference_id"),
        )
    return jsonify(rows)


@bp.route("", methods=["POST"])
def api_upload_document():
    require_write("documents")
    from qms.documents.db import DocumentTooLarge, save_document

    if "file" not in request.files:
        return jsonify({"error": "No file provided"}), 400
    uploaded = request.files["file"]
    reference_type = request.form.get("reference_type") or ""
    reference_id = request.form.get("reference_id", type=int)
    if not reference_id:
        return jsonify({"error": "reference_id is required"}), 400

    with get_db() as conn:
        try:
            document = save_document(
                conn, reference_type, reference_id,
                uploaded.filename, uploaded.stream,
                description=request.form.get("description"),
                uploaded_by=session.get("user", {}).get("email"),
                mime_type=uploaded.mimetype or None,
            )
        except DocumentTooLarge as exc:
            return jsonify({"error": str(exc)}), 413
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
    return jsonify(document), 201


@bp.route("/<int:document_id>", methods=["GET"])
def api_get_document(document_id: int):
    from qms.documents.db import get_document

    with get_db(readonly=True) as conn:
        document = get_document(conn, document_id)
    if not document:
        abort(404, "Document not found")
    return jsonify(document)


@bp.route("/<int:document_id>/download", methods=["GET"])
def api_download_document(document_id: int):
    from qms.documents.db import document_file, get_document

    with get_db(readonly=True) as conn:
        document = get_document(conn, document_id)
    if not document:
        abort(404, "Document not found")
    path = document_file(document)
    if not path.exists():
        abort(404, "Stored file is missing")
    return send_file(
        path,
        mimetype=document["mime_type"] or "application/octet-stream",
        as_attachment=True,
        download_name=document["original_name"],
    )


@bp.route("/<int:document_id>", methods=["DELETE"])
def api_delete_document(document_id: int):
    require_write("documents")
    from qms.documents.db import delete_document

    with get_db() as conn:
        if not delete_document(conn, document_id):
            abort(404, "Document not found")
    return jsonify({"message": "Document deleted"})
