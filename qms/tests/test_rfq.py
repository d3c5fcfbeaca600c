"""Tests for RFQ workbook generation, export and vendor-rate import."""

import random
import re
from datetime import date
from io import BytesIO

import pytest
from openpyxl import Workbook, load_workbook

from qms.quotations.db import get_quotation
from qms.quotations.rates import list_item_rates
from qms.rfq.exporter import export_rfqs
from qms.rfq.importer import import_vendor_rates
from qms.rfq.workbook import (
    COL_ITEM_ID,
    COL_RATE,
    UNCATEGORIZED,
    build_rfq_workbook,
    generate_rfq_reference,
    group_items_by_category,
)
from qms.vendors.db import assign_vendors, list_rate_requests
from qms.tests.factories import seed_category, seed_vendor

TODAY = date(2025, 3, 14)


class TestWorkbook:
    def test_reference_format(self):
        ref = generate_rfq_reference(TODAY, random.Random(1))
        assert re.fullmatch(r"RFQ-20250314-[A-Z0-9]{4}", ref)

    def test_grouping_keeps_order(self):
        items = [
            {"description": "a", "category": "Valves"},
            {"description": "b", "category": " "},
            {"description": "c", "category": "Valves"},
        ]
        grouped = group_items_by_category(items)
        assert list(grouped) == ["Valves", UNCATEGORIZED]
        assert [i["description"] for i in grouped["Valves"]] == ["a", "c"]

    def test_sheets_and_item_rows(self):
        wb = build_rfq_workbook(
            "RFQ-20250314-ABCD", "Valves", "Alpha Metals",
            [{"id": 11, "description": "Gate valve", "quantity": 10}],
            quotation_number="Q-2025-00001", currency="EUR", validity_days=7, today=TODAY,
        )
        assert wb.sheetnames == ["RFQ Cover", "Items", "Terms & Conditions"]
        cover = [row[1] for row in wb["RFQ Cover"].iter_rows(values_only=True) if row[0] == "RFQ Valid Until:"]
        assert cover == ["2025-03-21"]

        items = wb["Items"]
        assert items.cell(row=1, column=COL_RATE).value == "Your Rate (EUR)"
        assert items.cell(row=2, column=COL_ITEM_ID).value == 11
        assert items.cell(row=2, column=7).value == "pcs"
        terms = [row[0] for row in wb["Terms & Conditions"].iter_rows(values_only=True)]
        assert "1. All rates should be quoted in EUR" in terms


@pytest.fixture
def assigned(memory_db, quotation_id):
    """Two vendors on Valves, none on Pipes."""
    cat = seed_category(memory_db, "Valves")
    seed_category(memory_db, "Pipes")
    alpha = seed_vendor(memory_db, name="Alpha Metals")
    beta = seed_vendor(memory_db, name="Beta Alloys")
    assign_vendors(memory_db, cat, [alpha, beta])
    return {"quotation_id": quotation_id, "alpha": alpha, "beta": beta}


class TestExport:
    def test_export_from_assignments(self, memory_db, assigned, tmp_path):
        result = export_rfqs(memory_db, assigned["quotation_id"], output_dir=tmp_path,
                             rfq_reference="RFQ-20250314-TEST", today=TODAY)

        names = sorted(p.name for p in result.files)
        assert names == [
            "RFQ_RFQ-20250314-TEST_Alpha_Metals_Valves.xlsx",
            "RFQ_RFQ-20250314-TEST_Beta_Alloys_Valves.xlsx",
        ]
        assert all(p.exists() for p in result.files)
        assert result.skipped_categories == ["Pipes"]
        assert result.summary_file.exists()

        summary = load_workbook(result.summary_file)
        assert summary.sheetnames == ["RFQ Summary", "Vendor Distribution", "Items Master"]

        requests = list_rate_requests(memory_db, quotation_id=assigned["quotation_id"])
        assert len(requests) == 1
        assert requests[0]["request_number"] == "RFQ-20250314-TEST-01"
        assert requests[0]["deadline"] == "2025-03-20"
        assert len(requests[0]["vendors"]) == 2

    def test_explicit_mapping(self, memory_db, assigned, tmp_path):
        result = export_rfqs(memory_db, assigned["quotation_id"],
                             category_vendors={"Pipes": [assigned["beta"]]},
                             output_dir=tmp_path, today=TODAY)
        assert len(result.files) == 1
        assert result.files[0].name.endswith("_Pipes.xlsx")
        assert result.to_dict()["files"] == [str(result.files[0])]

    def test_unknown_vendor_in_mapping(self, memory_db, assigned, tmp_path):
        with pytest.raises(ValueError, match="Vendor 999 not found"):
            export_rfqs(memory_db, assigned["quotation_id"],
                        category_vendors={"Valves": [999]}, output_dir=tmp_path)

    def test_reused_reference_rejected_before_writing(self, memory_db, assigned, tmp_path):
        first, second = tmp_path / "first", tmp_path / "second"
        export_rfqs(memory_db, assigned["quotation_id"], output_dir=first,
                    rfq_reference="RFQ-1", today=TODAY)
        with pytest.raises(ValueError, match="RFQ-1 already used"):
            export_rfqs(memory_db, assigned["quotation_id"], output_dir=second,
                        rfq_reference="RFQ-1", today=TODAY)
        assert not second.exists()
        assert len(list_rate_requests(memory_db)) == 1

    def test_no_vendors(self, memory_db, quotation_id, tmp_path):
        with pytest.raises(ValueError, match="No vendors"):
            export_rfqs(memory_db, quotation_id, output_dir=tmp_path)

    def test_missing_quotation(self, memory_db, tmp_path):
        with pytest.raises(ValueError, match="not found"):
            export_rfqs(memory_db, 404, output_dir=tmp_path)


class TestImport:
    def _returned(self, path, rate, lead_time=None, remarks=None):
        wb = load_workbook(path)
        ws = wb["Items"]
        ws.cell(row=2, column=COL_RATE, value=rate)
        ws.cell(row=2, column=COL_RATE + 1, value=lead_time)
        ws.cell(row=2, column=13, value=remarks)
        buffer = BytesIO()
        wb.save(buffer)
        buffer.seek(0)
        return buffer

    def test_round_trip(self, memory_db, assigned, tmp_path):
        result = export_rfqs(memory_db, assigned["quotation_id"], output_dir=tmp_path,
                             rfq_reference="RFQ-20250314-TEST", today=TODAY)
        alpha_file = next(p for p in result.files if "Alpha" in p.name)

        outcome = import_vendor_rates(
            memory_db, assigned["quotation_id"], assigned["alpha"],
            self._returned(alpha_file, "1,050.50", lead_time=12, remarks="ex works"),
            margin_percent=10,
        )
        assert outcome == {"imported": 1, "skipped": 0, "errors": []}

        item_id = get_quotation(memory_db, assigned["quotation_id"])["items"][0]["id"]
        rate = list_item_rates(memory_db, item_id)[0]
        assert rate["cost_price"] == 1050.5
        assert rate["selling_price"] == 1155.55
        assert rate["lead_time_days"] == 12
        assert rate["remarks"] == "ex works"

        vendors = list_rate_requests(memory_db)[0]["vendors"]
        status = {v["vendor_id"]: v["status"] for v in vendors}
        assert status[assigned["alpha"]] == "responded"
        assert status[assigned["beta"]] == "sent"

    def test_blank_rate_skipped(self, memory_db, assigned, tmp_path):
        result = export_rfqs(memory_db, assigned["quotation_id"], output_dir=tmp_path, today=TODAY)
        outcome = import_vendor_rates(memory_db, assigned["quotation_id"], assigned["alpha"],
                                      result.files[0])
        assert outcome["imported"] == 0
        assert outcome["skipped"] == 1

    def test_row_errors_reported(self, memory_db, assigned):
        wb = Workbook()
        ws = wb.active
        ws.title = "Items"
        ws.append(["Item ID", "Your Rate (USD)"])
        ws.append([999, 10])
        ws.append(["abc", 10])
        ws.append([1, "cheap"])
        buffer = BytesIO()
        wb.save(buffer)
        buffer.seek(0)

        outcome = import_vendor_rates(memory_db, assigned["quotation_id"], assigned["alpha"], buffer)
        assert outcome["imported"] == 0
        assert [e["row"] for e in outcome["errors"]] == [2, 3, 4]

    def test_missing_items_sheet(self, memory_db, assigned):
        buffer = BytesIO()
        Workbook().save(buffer)
        buffer.seek(0)
        with pytest.raises(ValueError, match="Items"):
            import_vendor_rates(memory_db, assigned["quotation_id"], assigned["alpha"], buffer)
