"""
RFQ export — write one workbook per (category, vendor) for a quotation.

Vendors come from an explicit ``{category: [vendor_id, ...]}`` mapping, or
from the vendor-category assignments when none is given. Each category
that goes out is recorded as a rate request so responses can be tracked.
"""

import sqlite3
from dataclasses import dataclass, field
from datetime import date, timedelta
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

from qms.core.config import get_config_value
from qms.core.logging import get_logger
from qms.core.paths import ensure_directory, export_dir, slugify
from qms.quotations.db import get_quotation
from qms.rfq.workbook import (
    build_master_summary,
    build_rfq_workbook,
    generate_rfq_reference,
    group_items_by_category,
)
from qms.settings.db import get_settings
from qms.vendors.db import create_rate_request, get_category_vendor_map

logger = get_logger("qms.rfq.exporter")


@dataclass
class RFQExport:
    """Result of one RFQ export round."""
    rfq_reference: str
    files: List[Path] = field(default_factory=list)
    summary_file: Optional[Path] = None
    rate_request_ids: List[int] = field(default_factory=list)
    skipped_categories: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "rfq_reference": self.rfq_reference,
            "files": [str(p) for p in self.files],
            "summary_file": str(self.summary_file) if self.summary_file else None,
            "rate_request_ids": self.rate_request_ids,
            "skipped_categories": self.skipped_categories,
        }


def _resolve_vendors(
    conn: sqlite3.Connection,
    categories: Sequence[str],
    category_vendors: Optional[Mapping[str, Sequence[int]]],
) -> Dict[str, List[dict]]:
    if category_vendors is None:
        return get_category_vendor_map(conn, categories)

    resolved: Dict[str, List[dict]] = {}
    for category, vendor_ids in category_vendors.items():
        vendors = []
        for vendor_id in vendor_ids:
            row = conn.execute("SELECT * FROM vendors WHERE id = ?", (vendor_id,)).fetchone()
            if not row:
                raise ValueError(f"Vendor {vendor_id} not found")
            vendors.append(dict(row))
        resolved[category] = vendors
    return resolved


def export_rfqs(
    conn: sqlite3.Connection,
    quotation_id: int,
    category_vendors: Optional[Mapping[str, Sequence[int]]] = None,
    validity_days: Optional[int] = None,
    output_dir: Optional[Path] = None,
    rfq_reference: Optional[str] = None,
    created_by: Optional[str] = None,
    today: Optional[date] = None,
) -> RFQExport:
    """
    Generate vendor RFQ workbooks for a quotation.

    Categories with items but no vendors are reported in
    ``skipped_categories``. Raises ValueError when the quotation does not
    exist or no workbook could be produced.
    """
    quotation = get_quotation(conn, quotation_id)
    if not quotation:
        raise ValueError(f"Quotation {quotation_id} not found")

    today = today or date.today()
    if validity_days is None:
        validity_days = int(get_config_value("rfq", "validity_days", default=7))
    contact_lines = get_config_value("rfq", "contact", default=[]) or []
    currency = get_settings(conn)["default_currency"]
    reference = rfq_reference or generate_rfq_reference(today)
    prefix = f"{reference}-"
    if conn.execute(
        "SELECT 1 FROM rate_requests WHERE substr(request_number, 1, ?) = ? LIMIT 1",
        (len(prefix), prefix),
    ).fetchone():
        raise ValueError(f"RFQ reference {reference} already used")

    grouped = group_items_by_category(quotation["items"])
    vendors_by_category = _resolve_vendors(conn, list(grouped), category_vendors)

    target_dir = ensure_directory(Path(output_dir)) if output_dir else export_dir(reference)

    result = RFQExport(rfq_reference=reference)
    sent: Dict[str, List[dict]] = {}

    for category, items in grouped.items():
        vendors = vendors_by_category.get(category) or []
        if not vendors:
            result.skipped_categories.append(category)
            logger.warning("No vendors for category %r on %s; skipped",
                           category, quotation["quotation_number"])
            continue

        files_by_vendor: Dict[int, str] = {}
        for vendor in vendors:
            wb = build_rfq_workbook(
                reference, category, vendor["name"], items,
                quotation_number=quotation["quotation_number"],
                customer_name=quotation.get("customer_name"),
                validity_days=validity_days,
                currency=currency,
                contact_lines=contact_lines,
                today=today,
            )
            path = target_dir / f"RFQ_{reference}_{slugify(vendor['name'])}_{slugify(category)}.xlsx"
            wb.save(path)
            result.files.append(path)
            files_by_vendor[vendor["id"]] = str(path)

        request_id = create_rate_request(
            conn,
            request_number=f"{reference}-{len(result.rate_request_ids) + 1:02d}",
            category_name=category,
            vendor_ids=[v["id"] for v in vendors],
            title=f"{quotation['quotation_number']} / {category}",
            quotation_id=quotation_id,
            deadline=(today + timedelta(days=max(validity_days - 1, 0))).isoformat(),
            created_by=created_by,
            file_paths=files_by_vendor,
        )
        result.rate_request_ids.append(request_id)
        sent[category] = vendors

    if not result.files:
        raise ValueError("No vendors are assigned to any item category of this quotation")

    summary = build_master_summary(
        reference, quotation["quotation_number"], quotation.get("customer_name"),
        {c: grouped[c] for c in sent}, sent, today=today,
    )
    result.summary_file = target_dir / f"RFQ_Master_Summary_{reference}.xlsx"
    summary.save(result.summary_file)

    logger.info("RFQ %s: %d vendor file(s) for %s", reference, len(result.files),
                quotation["quotation_number"])
    return result
