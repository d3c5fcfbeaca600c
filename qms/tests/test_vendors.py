"""Tests for vendors, category assignments and rate requests."""

import pytest

from qms.vendors.db import (
    assign_vendors,
    create_rate_request,
    create_vendor,
    delete_vendor,
    get_category_stats,
    get_category_vendor_map,
    get_category_vendors,
    get_vendor,
    list_rate_requests,
    list_vendors,
    remove_vendor_from_category,
    set_vendor_response,
    update_vendor,
)
from qms.tests.factories import seed_category, seed_quotation, seed_vendor


class TestVendors:
    def test_create_and_get(self, memory_db):
        vid = create_vendor(memory_db, name="Steel Supply Co", email="Sales@Steel.test")
        vendor = get_vendor(memory_db, vid)
        assert vendor["email"] == "sales@steel.test"
        assert vendor["status"] == "active"

    def test_name_required(self, memory_db):
        with pytest.raises(ValueError, match="name is required"):
            create_vendor(memory_db, name="  ")

    def test_invalid_status(self, memory_db):
        vid = seed_vendor(memory_db)
        with pytest.raises(ValueError, match="Invalid status"):
            update_vendor(memory_db, vid, status="retired")

    def test_list_with_category_count(self, memory_db):
        vid = seed_vendor(memory_db)
        assign_vendors(memory_db, seed_category(memory_db), [vid])
        assign_vendors(memory_db, seed_category(memory_db, "Pipes"), [vid])
        rows = list_vendors(memory_db, search="steel")
        assert rows[0]["category_count"] == 2

    def test_delete_cascades_assignments(self, memory_db):
        vid = seed_vendor(memory_db)
        cat = seed_category(memory_db)
        assign_vendors(memory_db, cat, [vid])
        assert delete_vendor(memory_db, vid)
        assert get_category_vendors(memory_db, cat)["assigned"] == []


class TestAssignment:
    def test_assign_is_idempotent(self, memory_db):
        cat = seed_category(memory_db)
        a = seed_vendor(memory_db, name="Alpha Metals")
        b = seed_vendor(memory_db, name="Beta Alloys")
        assert assign_vendors(memory_db, cat, [a, b]) == 2
        assert assign_vendors(memory_db, cat, [a]) == 0

    def test_assign_requires_ids(self, memory_db):
        with pytest.raises(ValueError, match="non-empty"):
            assign_vendors(memory_db, seed_category(memory_db), [])

    def test_assign_unknown_vendor(self, memory_db):
        cat = seed_category(memory_db)
        known = seed_vendor(memory_db)
        with pytest.raises(ValueError, match="Vendor 9999 not found"):
            assign_vendors(memory_db, cat, [known, 9999])
        assert get_category_vendors(memory_db, cat)["assigned"] == []

    def test_include_unassigned(self, memory_db):
        cat = seed_category(memory_db)
        a = seed_vendor(memory_db, name="Alpha Metals")
        seed_vendor(memory_db, name="Beta Alloys")
        seed_vendor(memory_db, name="Gamma Parts", status="inactive")
        assign_vendors(memory_db, cat, [a], notes="preferred")

        result = get_category_vendors(memory_db, cat, include_unassigned=True)
        assert [v["name"] for v in result["assigned"]] == ["Alpha Metals"]
        assert result["assigned"][0]["assignment_notes"] == "preferred"
        assert [v["name"] for v in result["unassigned"]] == ["Beta Alloys"]

    def test_remove(self, memory_db):
        cat = seed_category(memory_db)
        vid = seed_vendor(memory_db)
        assign_vendors(memory_db, cat, [vid])
        assert remove_vendor_from_category(memory_db, cat, vid)
        assert not remove_vendor_from_category(memory_db, cat, vid)

    def test_vendor_map_skips_inactive(self, memory_db):
        cat = seed_category(memory_db)
        active = seed_vendor(memory_db, name="Alpha Metals")
        inactive = seed_vendor(memory_db, name="Old Vendor", status="inactive")
        assign_vendors(memory_db, cat, [active, inactive])
        mapping = get_category_vendor_map(memory_db, ["Valves", "Unknown"])
        assert [v["name"] for v in mapping["Valves"]] == ["Alpha Metals"]
        assert mapping["Unknown"] == []


class TestRateRequests:
    def test_create_and_respond(self, memory_db):
        qid = seed_quotation(memory_db)
        cat = seed_category(memory_db)
        a = seed_vendor(memory_db, name="Alpha Metals")
        b = seed_vendor(memory_db, name="Beta Alloys")
        assign_vendors(memory_db, cat, [a, b])

        create_rate_request(memory_db, "RFQ-TEST-VALVES", "Valves", [a, b],
                            "Valves pricing", quotation_id=qid, file_paths={a: "/tmp/a.xlsx"})
        assert set_vendor_response(memory_db, qid, a) == 1

        requests = list_rate_requests(memory_db, quotation_id=qid)
        assert len(requests) == 1
        vendors = {v["vendor_name"]: v for v in requests[0]["vendors"]}
        assert vendors["Alpha Metals"]["status"] == "responded"
        assert vendors["Alpha Metals"]["file_path"] == "/tmp/a.xlsx"
        assert vendors["Beta Alloys"]["status"] == "sent"

        stats = {s["name"]: s for s in get_category_stats(memory_db)}
        assert stats["Valves"]["total_vendors"] == 2
        assert stats["Valves"]["requests_sent"] == 1
        assert stats["Valves"]["pending"] == 1
        assert stats["Valves"]["responded"] == 1

    def test_invalid_response_status(self, memory_db):
        with pytest.raises(ValueError):
            set_vendor_response(memory_db, 1, 1, status="maybe")
