"""
Import a vendor's returned RFQ workbook as per-item vendor rates.

Only the ``Items`` sheet is read. Columns are located by header text so
vendors may reorder or add columns; the ``Item ID`` column ties each row
back to its quotation item.
"""

import sqlite3
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from qms.core.logging import get_logger
from qms.quotations.rates import add_vendor_rate
from qms.rfq.workbook import COL_ITEM_ID, COL_LEAD_TIME, COL_RATE, COL_REMARKS
from qms.vendors.db import set_vendor_response

logger = get_logger("qms.rfq.importer")


def _locate_columns(header_row) -> Dict[str, int]:
    """0-based column indexes for the fields the importer needs."""
    found = {
        "rate": COL_RATE - 1,
        "lead_time": COL_LEAD_TIME - 1,
        "remarks": COL_REMARKS - 1,
        "item_id": COL_ITEM_ID - 1,
    }
    for index, value in enumerate(header_row):
        text = str(value or "").strip().lower()
        if text.startswith("your rate"):
            found["rate"] = index
        elif text.startswith("lead time"):
            found["lead_time"] = index
        elif text == "remarks":
            found["remarks"] = index
        elif text == "item id":
            found["item_id"] = index
    return found


def _cell(row, index: int) -> Any:
    return row[index] if index < len(row) else None


def import_vendor_rates(
    conn: sqlite3.Connection,
    quotation_id: int,
    vendor_id: int,
    workbook: Union[BytesIO, str, Path],
    margin_percent: Optional[float] = None,
) -> Dict[str, Any]:
    """
    Turn filled-in rows of a returned RFQ into vendor rates.

    Rows with a blank rate are skipped; rows whose rate or item cannot be
    used are reported in ``errors``. When at least one rate is imported the
    vendor's rate-request rows for the quotation are marked responded.

    Returns:
        {"imported": int, "skipped": int, "errors": [{"row", "error"}]}
    """
    from openpyxl import load_workbook

    if not conn.execute("SELECT 1 FROM quotations WHERE id = ?", (quotation_id,)).fetchone():
        raise ValueError(f"Quotation {quotation_id} not found")
    if not conn.execute("SELECT 1 FROM vendors WHERE id = ?", (vendor_id,)).fetchone():
        raise ValueError(f"Vendor {vendor_id} not found")

    wb = load_workbook(workbook, data_only=True)
    if "Items" not in wb.sheetnames:
        raise ValueError('Workbook has no "Items" sheet')
    ws = wb["Items"]

    item_ids = {
        r["id"] for r in conn.execute(
            "SELECT id FROM quotation_items WHERE quotation_id = ?", (quotation_id,)
        ).fetchall()
    }

    rows = ws.iter_rows(values_only=True)
    header = next(rows, None)
    if header is None:
        raise ValueError("Items sheet is empty")
    cols = _locate_columns(header)

    imported = skipped = 0
    errors: List[Dict[str, Any]] = []

    for row_num, row in enumerate(rows, start=2):
        if not any(v not in (None, "") for v in row):
            continue

        rate_value = _cell(row, cols["rate"])
        if rate_value in (None, ""):
            skipped += 1
            continue

        try:
            cost = float(str(rate_value).replace(",", ""))
        except ValueError:
            errors.append({"row": row_num, "error": f"Rate is not a number: {rate_value!r}"})
            continue

        raw_id = _cell(row, cols["item_id"])
        try:
            item_id = int(raw_id)
        except (TypeError, ValueError):
            errors.append({"row": row_num, "error": "Missing or invalid Item ID"})
            continue
        if item_id not in item_ids:
            errors.append({"row": row_num, "error": f"Item {item_id} is not on this quotation"})
            continue

        lead_time = _cell(row, cols["lead_time"])
        try:
            lead_time = int(float(lead_time)) if lead_time not in (None, "") else None
        except (TypeError, ValueError):
            lead_time = None
        remarks = _cell(row, cols["remarks"])

        try:
            add_vendor_rate(
                conn, item_id, vendor_id, cost,
                margin_percent=margin_percent,
                lead_time_days=lead_time,
                remarks=str(remarks).strip() if remarks else None,
            )
        except ValueError as exc:
            errors.append({"row": row_num, "error": str(exc)})
            continue
        imported += 1

    if imported:
        set_vendor_response(conn, quotation_id, vendor_id, "responded")

    logger.info("Imported %d rate(s) from vendor %d for quotation %d (%d skipped, %d errors)",
                imported, vendor_id, quotation_id, skipped, len(errors))
    return {"imported": imported, "skipped": skipped, "errors": errors}
