"""
Excel export for quotations.

Uses openpyxl. No Flask imports.
"""

from io import BytesIO
from typing import Any, Iterable, Mapping

from qms.core import get_logger

logger = get_logger("qms.exports.excel_renderer")

ITEM_HEADERS = [
    "Sr.No",
    "Item",
    "Description",
    "Category",
    "A/U",
    "Qty",
    "Cost Price",
    "Margin %",
    "Unit Price",
    "Discount %",
    "Tax %",
    "Line Total",
]
ITEM_WIDTHS = [8, 25, 40, 18, 8, 10, 14, 10, 14, 11, 8, 16]

LIST_HEADERS = [
    "Quotation Number",
    "Customer",
    "Quotation Date",
    "Valid Until",
    "Status",
    "Items",
    "Subtotal",
    "Discount",
    "Tax",
    "Total",
    "Currency",
]
LIST_WIDTHS = [18, 30, 14, 14, 12, 8, 14, 12, 12, 16, 10]

MONEY_FORMAT = "#,##0.00"


def _save(wb) -> BytesIO:
    output = BytesIO()
    wb.save(output)
    output.seek(0)
    return output


def _header_row(ws, row: int, headers, widths) -> None:
    from openpyxl.styles import Font, PatternFill
    from openpyxl.utils import get_column_letter

    for col, header in enumerate(headers, 1):
        cell = ws.cell(row=row, column=col, value=header)
        cell.font = Font(bold=True)
        cell.fill = PatternFill("solid", fgColor="DDEBF7")
    for i, w in enumerate(widths, 1):
        ws.column_dimensions[get_column_letter(i)].width = w


def render_quotation_excel(quotation: Mapping[str, Any], settings: Mapping[str, Any]) -> BytesIO:
    """Single quotation as a workbook: header block, item table, totals."""
    from openpyxl import Workbook
    from openpyxl.styles import Font

    wb = Workbook()
    ws = wb.active
    ws.title = "Quotation"

    ws.cell(row=1, column=1, value=settings.get("company_name") or "Quotation").font = Font(bold=True, size=14)
    header = [
        ("Quotation No:", quotation.get("quotation_number")),
        ("Customer:", quotation.get("customer_name")),
        ("Date:", quotation.get("quotation_date")),
        ("Valid Until:", quotation.get("valid_until")),
        ("Reference:", quotation.get("reference")),
        ("Status:", quotation.get("status")),
        ("Currency:", quotation.get("currency")),
    ]
    row = 3
    for label, value in header:
        ws.cell(row=row, column=1, value=label).font = Font(bold=True)
        ws.cell(row=row, column=2, value=value)
        row += 1

    row += 1
    _header_row(ws, row, ITEM_HEADERS, ITEM_WIDTHS)
    for index, item in enumerate(quotation.get("items") or [], 1):
        row += 1
        values = [
            index,
            item.get("item_name"),
            item.get("description"),
            item.get("category"),
            item.get("unit_of_measure"),
            item.get("quantity"),
            item.get("cost_price"),
            item.get("margin_percent"),
            item.get("unit_price"),
            item.get("discount_percent"),
            item.get("tax_percent"),
            item.get("line_total"),
        ]
        for col, value in enumerate(values, 1):
            cell = ws.cell(row=row, column=col, value=value)
            if col in (7, 9, 12):
                cell.number_format = MONEY_FORMAT

    row += 2
    totals = [
        ("Sub Total", quotation.get("subtotal")),
        ("Discount", quotation.get("discount_amount")),
        ("Tax", quotation.get("tax_amount")),
        ("Total", quotation.get("total_amount")),
    ]
    for label, value in totals:
        ws.cell(row=row, column=11, value=label).font = Font(bold=True)
        cell = ws.cell(row=row, column=12, value=value)
        cell.number_format = MONEY_FORMAT
        if label == "Total":
            cell.font = Font(bold=True)
        row += 1

    if quotation.get("terms_conditions"):
        row += 1
        ws.cell(row=row, column=1, value="Terms & Conditions").font = Font(bold=True)
        for line in str(quotation["terms_conditions"]).splitlines():
            row += 1
            ws.cell(row=row, column=1, value=line)

    logger.info("Excel export for %s (%d items)",
                quotation.get("quotation_number"), len(quotation.get("items") or []))
    return _save(wb)


def export_quotation_list(rows: Iterable[Mapping[str, Any]]) -> BytesIO:
    """Search results as one flat sheet."""
    from openpyxl import Workbook

    wb = Workbook()
    ws = wb.active
    ws.title = "Quotations"
    _header_row(ws, 1, LIST_HEADERS, LIST_WIDTHS)

    count = 0
    for count, q in enumerate(rows, 1):
        values = [
            q.get("quotation_number"),
            q.get("customer_name"),
            q.get("quotation_date"),
            q.get("valid_until"),
            q.get("status"),
            q.get("item_count"),
            q.get("subtotal"),
            q.get("discount_amount"),
            q.get("tax_amount"),
            q.get("total_amount"),
            q.get("currency"),
        ]
        for col, value in enumerate(values, 1):
            cell = ws.cell(row=count + 1, column=col, value=value)
            if 7 <= col <= 10:
                cell.number_format = MONEY_FORMAT
    ws.freeze_panes = "A2"

    logger.info("Exported %d quotation(s) to Excel", count)
    return _save(wb)
