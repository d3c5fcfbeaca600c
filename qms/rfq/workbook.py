"""
RFQ workbook builders — openpyxl, no database access.

Sheet layout of a vendor workbook:
    RFQ Cover            reference, dates, validity, instructions, contacts
    Items                one row per item; vendor fills the rate columns
    Terms & Conditions   fixed terms text
"""

import random
import string
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

UNCATEGORIZED = "Uncategorized"

ITEM_HEADERS = [
    "S.No",
    "Category",
    "Item Name",
    "Description",
    "Specifications",
    "Quantity",
    "Unit of Measure",
    "Your Rate",
    "Lead Time (Days)",
    "MOQ",
    "Payment Terms",
    "Delivery Terms",
    "Remarks",
    "Item ID",
]
ITEM_WIDTHS = [8, 15, 25, 35, 30, 12, 15, 18, 15, 12, 20, 20, 25, 10]

# 1-based column positions the importer reads back
COL_RATE = ITEM_HEADERS.index("Your Rate") + 1
COL_LEAD_TIME = ITEM_HEADERS.index("Lead Time (Days)") + 1
COL_REMARKS = ITEM_HEADERS.index("Remarks") + 1
COL_ITEM_ID = ITEM_HEADERS.index("Item ID") + 1

INSTRUCTIONS = [
    '1. Please provide your best rates for the items listed in the "Items" sheet',
    "2. Include lead times and any minimum order quantities",
    "3. Specify payment terms and delivery conditions",
    "4. Return this file with your rates filled in the designated columns",
    "5. Contact us for any clarifications needed",
]

TERMS_SECTIONS = [
    ("GENERAL TERMS", [
        "1. All rates should be quoted in {currency}",
        "2. Rates should be inclusive of all taxes unless specified otherwise",
        "3. Delivery should be made to our warehouse address",
        "4. Quality certificates must be provided with delivery",
        "5. Payment terms are negotiable but typically 30-60 days",
    ]),
    ("TECHNICAL REQUIREMENTS", [
        "1. All items must meet specified quality standards",
        "2. Proper packaging and labeling required",
        "3. Compliance with local regulations mandatory",
        "4. Warranty/guarantee terms to be specified",
    ]),
    ("SUBMISSION REQUIREMENTS", [
        "1. Submit quotation within the specified validity period",
        "2. Include company profile and relevant certifications",
        "3. Provide references from previous clients",
        "4. Specify delivery schedule and logistics",
    ]),
    ("EVALUATION CRITERIA", [
        "1. Competitive pricing",
        "2. Quality and compliance",
        "3. Delivery timeline",
        "4. Payment terms",
        "5. Past performance and reliability",
    ]),
]

_TITLE = Font(bold=True, size=14)
_BOLD = Font(bold=True)
_HEADER_FILL = PatternFill("solid", fgColor="DDEBF7")
_INPUT_FILL = PatternFill("solid", fgColor="FFF2CC")


def generate_rfq_reference(today: Optional[date] = None, rng: Optional[random.Random] = None) -> str:
    """'RFQ-20250314-7KQ2' — date stamp plus 4 random upper-case alphanumerics."""
    today = today or date.today()
    rng = rng or random.SystemRandom()
    suffix = "".join(rng.choice(string.ascii_uppercase + string.digits) for _ in range(4))
    return f"RFQ-{today:%Y%m%d}-{suffix}"


def group_items_by_category(items: Iterable[Mapping[str, Any]]) -> Dict[str, List[Mapping[str, Any]]]:
    """Items keyed by category, preserving order; blank categories become 'Uncategorized'."""
    grouped: Dict[str, List[Mapping[str, Any]]] = {}
    for item in items:
        category = (item.get("category") or "").strip() or UNCATEGORIZED
        grouped.setdefault(category, []).append(item)
    return grouped


def _write_rows(ws, rows: Sequence[Sequence[Any]], start_row: int = 1) -> int:
    row_num = start_row
    for row in rows:
        for col, value in enumerate(row, 1):
            ws.cell(row=row_num, column=col, value=value)
        row_num += 1
    return row_num


def build_rfq_workbook(
    rfq_reference: str,
    category: str,
    vendor_name: str,
    items: Sequence[Mapping[str, Any]],
    quotation_number: Optional[str] = None,
    customer_name: Optional[str] = None,
    validity_days: int = 7,
    currency: str = "USD",
    contact_lines: Sequence[str] = (),
    today: Optional[date] = None,
) -> Workbook:
    """Build the three-sheet RFQ workbook for one vendor and one category."""
    today = today or date.today()
    valid_until = today + timedelta(days=validity_days)
    respond_by = today + timedelta(days=max(validity_days - 1, 0))

    wb = Workbook()

    # Cover
    ws = wb.active
    ws.title = "RFQ Cover"
    cover = [
        ["REQUEST FOR QUOTATION (RFQ)"],
        [],
        ["RFQ Reference:", rfq_reference],
        ["Date:", today.isoformat()],
        ["Quotation Reference:", quotation_number or "-"],
    ]
    if customer_name:
        cover.append(["Customer:", customer_name])
    cover += [
        ["Category:", category],
        ["Vendor:", vendor_name],
        [],
        ["VALIDITY INFORMATION"],
        ["RFQ Valid Until:", valid_until.isoformat()],
        ["Response Required By:", respond_by.isoformat()],
        [],
        ["INSTRUCTIONS"],
        *[[line] for line in INSTRUCTIONS],
        [],
        ["CONTACT INFORMATION"],
        *[[line] for line in contact_lines],
        [],
        ["Thank you for your prompt response!"],
    ]
    _write_rows(ws, cover)
    ws["A1"].font = _TITLE
    for row in ws.iter_rows(min_row=2, min_col=1, max_col=1):
        cell = row[0]
        if isinstance(cell.value, str) and (cell.value.isupper() or cell.value.endswith(":")):
            cell.font = _BOLD
    ws.column_dimensions["A"].width = 28
    ws.column_dimensions["B"].width = 40

    # Items
    ws = wb.create_sheet("Items")
    headers = list(ITEM_HEADERS)
    headers[COL_RATE - 1] = f"Your Rate ({currency})"
    for col, header in enumerate(headers, 1):
        cell = ws.cell(row=1, column=col, value=header)
        cell.font = _BOLD
        cell.fill = _HEADER_FILL
        cell.alignment = Alignment(wrap_text=True, vertical="center")

    for index, item in enumerate(items, 1):
        row = index + 1
        values = [
            index,
            category,
            item.get("item_name") or item.get("description") or "N/A",
            item.get("description") or "N/A",
            item.get("specifications") or "As per standard specifications",
            item.get("quantity"),
            item.get("unit_of_measure") or "pcs",
            None, None, None, None, None, None,
            item.get("id"),
        ]
        for col, value in enumerate(values, 1):
            ws.cell(row=row, column=col, value=value)
        for col in range(COL_RATE, COL_REMARKS + 1):
            ws.cell(row=row, column=col).fill = _INPUT_FILL

    for i, width in enumerate(ITEM_WIDTHS, 1):
        ws.column_dimensions[get_column_letter(i)].width = width
    ws.freeze_panes = "A2"

    # Terms
    ws = wb.create_sheet("Terms & Conditions")
    rows: List[List[Any]] = [["TERMS & CONDITIONS"]]
    for heading, lines in TERMS_SECTIONS:
        rows.append([])
        rows.append([heading])
        rows.extend([line.format(currency=currency)] for line in lines)
    _write_rows(ws, rows)
    ws["A1"].font = _TITLE
    for row in ws.iter_rows(min_col=1, max_col=1):
        if row[0].value in {h for h, _ in TERMS_SECTIONS}:
            row[0].font = _BOLD
    ws.column_dimensions["A"].width = 80

    return wb


def build_master_summary(
    rfq_reference: str,
    quotation_number: Optional[str],
    customer_name: Optional[str],
    grouped_items: Mapping[str, Sequence[Mapping[str, Any]]],
    category_vendors: Mapping[str, Sequence[Mapping[str, Any]]],
    today: Optional[date] = None,
) -> Workbook:
    """Internal overview of one RFQ round: categories, vendors and items."""
    today = today or date.today()
    all_vendors = {v["id"]: v for vs in category_vendors.values() for v in vs}
    total_items = sum(len(v) for v in grouped_items.values())

    wb = Workbook()
    ws = wb.active
    ws.title = "RFQ Summary"
    rows: List[List[Any]] = [
        ["RFQ MASTER SUMMARY"],
        [],
        ["RFQ Reference:", rfq_reference],
        ["Generated Date:", today.isoformat()],
        ["Quotation Reference:", quotation_number or "-"],
        ["Customer:", customer_name or "-"],
        ["Total Categories:", len(category_vendors)],
        ["Total Vendors:", len(all_vendors)],
        ["Total Items:", total_items],
        [],
        ["CATEGORY BREAKDOWN"],
    ]
    for category, vendors in category_vendors.items():
        rows.append([
            f"{category}:",
            f"{len(grouped_items.get(category, []))} items",
            f"{len(vendors)} vendors",
            ", ".join(v["name"] for v in vendors),
        ])
    _write_rows(ws, rows)
    ws["A1"].font = _TITLE
    ws.column_dimensions["A"].width = 28
    ws.column_dimensions["D"].width = 50

    ws = wb.create_sheet("Vendor Distribution")
    header = ["Vendor Name", "Email", "Categories", "Items Count"]
    rows = [header]
    for vendor_id, vendor in all_vendors.items():
        cats = [c for c, vs in category_vendors.items() if any(v["id"] == vendor_id for v in vs)]
        rows.append([
            vendor["name"],
            vendor.get("email") or "N/A",
            ", ".join(cats),
            sum(len(grouped_items.get(c, [])) for c in cats),
        ])
    _write_rows(ws, rows)
    for col in range(1, len(header) + 1):
        ws.cell(row=1, column=col).font = _BOLD

    ws = wb.create_sheet("Items Master")
    header = ["S.No", "Category", "Item Name", "Description", "Quantity", "UOM",
              "Vendors Contacted"]
    rows = [header]
    index = 0
    for category, items in grouped_items.items():
        names = ", ".join(v["name"] for v in category_vendors.get(category, []))
        for item in items:
            index += 1
            rows.append([
                index, category,
                item.get("item_name") or item.get("description") or "N/A",
                item.get("description") or "N/A",
                item.get("quantity"),
                item.get("unit_of_measure") or "pcs",
                names,
            ])
    _write_rows(ws, rows)
    for col in range(1, len(header) + 1):
        ws.cell(row=1, column=col).font = _BOLD

    return wb
