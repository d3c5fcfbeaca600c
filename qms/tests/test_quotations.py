"""Tests for quotation lifecycle: numbering, CRUD, status, search, expiry."""

import json
from datetime import date

import pytest

from qms.quotations.db import (
    create_quotation,
    delete_quotation,
    duplicate_quotation,
    expire_overdue,
    get_quotation,
    get_quotation_by_number,
    next_quotation_number,
    search_quotations,
    update_quotation,
    update_status,
)
from qms.settings.db import update_settings, update_terms
from qms.tests.factories import seed_customer, seed_quotation


class TestNumbering:
    def test_first_number(self, memory_db):
        assert next_quotation_number(memory_db, 2025) == "Q-2025-00001"

    def test_sequence_per_year(self, memory_db, customer_id):
        seed_quotation(memory_db, customer_id)
        seed_quotation(memory_db, customer_id)
        seed_quotation(memory_db, customer_id, quotation_date="2026-01-02")
        assert next_quotation_number(memory_db, 2025) == "Q-2025-00003"
        assert next_quotation_number(memory_db, 2026) == "Q-2026-00002"

    def test_gap_after_delete_not_reused(self, memory_db, customer_id):
        seed_quotation(memory_db, customer_id)
        second = seed_quotation(memory_db, customer_id)
        first = get_quotation_by_number(memory_db, "Q-2025-00001")
        delete_quotation(memory_db, first["id"])
        assert get_quotation(memory_db, second)["quotation_number"] == "Q-2025-00002"
        assert next_quotation_number(memory_db, 2025) == "Q-2025-00003"


class TestCreate:
    def test_totals(self, memory_db, quotation_id):
        q = get_quotation(memory_db, quotation_id)
        assert q["status"] == "draft"
        assert q["subtotal"] == 1450.0
        assert q["discount_amount"] == 25.0
        assert q["tax_amount"] == 120.0
        assert q["total_amount"] == 1545.0
        assert [i["line_total"] for i in q["items"]] == [1320.0, 225.0]
        assert q["items"][0]["unit_price"] == 120.0

    def test_defaults_from_settings(self, memory_db, quotation_id):
        q = get_quotation(memory_db, quotation_id)
        assert q["valid_until"] == "2025-03-31"
        assert q["currency"] == "USD"
        assert "valid for 30 days" in q["terms_conditions"]
        assert q["customer_name"] == "Acme Industries"

    def test_custom_terms_and_currency(self, memory_db, customer_id):
        update_settings(memory_db, default_currency="EUR")
        update_terms(memory_db, quotation_terms="Custom terms")
        q = get_quotation(memory_db, seed_quotation(memory_db, customer_id))
        assert q["currency"] == "EUR"
        assert q["terms_conditions"] == "Custom terms"

    def test_default_tax_rate_used(self, memory_db, customer_id):
        qid = seed_quotation(memory_db, customer_id,
                             items=[{"description": "Service", "quantity": 1, "unit_price": 100}])
        q = get_quotation(memory_db, qid)
        assert q["items"][0]["tax_percent"] == 18.0
        assert q["total_amount"] == 118.0

    def test_unknown_customer(self, memory_db):
        with pytest.raises(ValueError, match="Customer 99 not found"):
            create_quotation(memory_db, 99, [{"description": "x", "quantity": 1, "unit_price": 1}])

    def test_items_required(self, memory_db, customer_id):
        with pytest.raises(ValueError, match="At least one item"):
            create_quotation(memory_db, customer_id, [])

    def test_bad_item_writes_nothing(self, memory_db, customer_id):
        items = [{"description": "ok", "quantity": 1, "unit_price": 1},
                 {"description": "bad", "quantity": -1, "unit_price": 1}]
        with pytest.raises(ValueError, match="Item 2"):
            create_quotation(memory_db, customer_id, items)
        assert memory_db.execute("SELECT COUNT(*) FROM quotations").fetchone()[0] == 0

    @pytest.mark.parametrize("item", [
        {"description": "x", "quantity": "nan", "unit_price": 10},
        {"description": "x", "quantity": 1, "unit_price": "inf"},
    ])
    def test_non_finite_money_rejected(self, memory_db, customer_id, item):
        with pytest.raises(ValueError, match="finite"):
            create_quotation(memory_db, customer_id, [item])
        assert memory_db.execute("SELECT COUNT(*) FROM quotations").fetchone()[0] == 0

    def test_valid_until_before_date(self, memory_db, customer_id):
        with pytest.raises(ValueError, match="valid_until"):
            seed_quotation(memory_db, customer_id, valid_until="2025-02-01")

    def test_bad_date(self, memory_db, customer_id):
        with pytest.raises(ValueError, match="YYYY-MM-DD"):
            seed_quotation(memory_db, customer_id, quotation_date="01/03/2025")


class TestUpdate:
    def test_header_update(self, memory_db, quotation_id):
        assert update_quotation(memory_db, quotation_id, reference="PO-77", notes="Rush")
        q = get_quotation(memory_db, quotation_id)
        assert q["reference"] == "PO-77"
        assert q["total_amount"] == 1545.0

    def test_items_replaced_and_totals_recomputed(self, memory_db, quotation_id):
        update_quotation(memory_db, quotation_id, items=[
            {"description": "Flange", "quantity": 2, "unit_price": 10, "tax_percent": 0},
        ])
        q = get_quotation(memory_db, quotation_id)
        assert len(q["items"]) == 1
        assert q["total_amount"] == 20.0

    def test_missing(self, memory_db):
        assert update_quotation(memory_db, 404, notes="x") is False

    def test_converted_is_locked(self, memory_db, quotation_id):
        update_status(memory_db, quotation_id, "converted")
        with pytest.raises(ValueError, match="can no longer be edited"):
            update_quotation(memory_db, quotation_id, notes="late change")

    def test_unknown_customer(self, memory_db, quotation_id):
        with pytest.raises(ValueError, match="not found"):
            update_quotation(memory_db, quotation_id, customer_id=500)


class TestStatus:
    def test_transition_is_audited(self, memory_db, quotation_id):
        update_status(memory_db, quotation_id, "sent", changed_by="sam@example.com")
        row = memory_db.execute(
            "SELECT * FROM audit_log WHERE entity_type = 'quotation' AND entity_id = ?",
            (str(quotation_id),),
        ).fetchone()
        assert row["action"] == "status_change"
        assert json.loads(row["old_values"]) == {"status": "draft"}
        assert json.loads(row["new_values"]) == {"status": "sent"}

    def test_approve_stamps_approver(self, memory_db, quotation_id):
        header = update_status(memory_db, quotation_id, "approved", changed_by="boss@example.com")
        assert header["approved_by"] == "boss@example.com"
        assert header["approved_at"]

    def test_invalid_status(self, memory_db, quotation_id):
        with pytest.raises(ValueError, match="Invalid status"):
            update_status(memory_db, quotation_id, "won")

    def test_missing(self, memory_db):
        assert update_status(memory_db, 404, "sent") is None

    def test_converted_is_final(self, memory_db, quotation_id):
        update_status(memory_db, quotation_id, "converted")
        with pytest.raises(ValueError, match="cannot change"):
            update_status(memory_db, quotation_id, "draft")


class TestDeleteAndDuplicate:
    def test_delete_cascades_items(self, memory_db, quotation_id):
        assert delete_quotation(memory_db, quotation_id)
        count = memory_db.execute(
            "SELECT COUNT(*) FROM quotation_items WHERE quotation_id = ?", (quotation_id,)
        ).fetchone()[0]
        assert count == 0
        assert not delete_quotation(memory_db, quotation_id)

    def test_duplicate(self, memory_db, quotation_id):
        update_status(memory_db, quotation_id, "accepted")
        new_id = duplicate_quotation(memory_db, quotation_id, created_by="sam@example.com")
        copy = get_quotation(memory_db, new_id)
        assert copy["status"] == "draft"
        assert copy["quotation_date"] == date.today().isoformat()
        assert copy["total_amount"] == 1545.0
        assert copy["notes"] == "Re-order of Q-2025-00001"
        assert len(copy["items"]) == 2

    def test_duplicate_missing(self, memory_db):
        assert duplicate_quotation(memory_db, 404) is None


class TestSearch:
    @pytest.fixture
    def populated(self, memory_db):
        acme = seed_customer(memory_db)
        globex = seed_customer(memory_db, name="Globex Corp", email="buy@globex.test")
        seed_quotation(memory_db, acme, quotation_date="2025-01-10")
        second = seed_quotation(memory_db, globex, quotation_date="2025-02-10", notes="urgent valves")
        seed_quotation(memory_db, globex, quotation_date="2025-03-10",
                       items=[{"description": "Bolt", "quantity": 1, "unit_price": 5, "tax_percent": 0}])
        update_status(memory_db, second, "sent")
        return {"acme": acme, "globex": globex}

    def test_search_customer_name(self, memory_db, populated):
        assert search_quotations(memory_db, search="globex")["total"] == 2

    def test_search_notes(self, memory_db, populated):
        result = search_quotations(memory_db, search="URGENT")
        assert [q["quotation_number"] for q in result["quotations"]] == ["Q-2025-00002"]

    def test_status_list(self, memory_db, populated):
        assert search_quotations(memory_db, status="draft,sent")["total"] == 3
        assert search_quotations(memory_db, status="sent")["total"] == 1

    def test_date_and_amount_range(self, memory_db, populated):
        result = search_quotations(memory_db, date_from="2025-02-01", date_to="2025-02-28")
        assert result["total"] == 1
        assert search_quotations(memory_db, min_amount=100)["total"] == 2
        assert search_quotations(memory_db, max_amount=10)["total"] == 1

    def test_sort_and_item_count(self, memory_db, populated):
        rows = search_quotations(memory_db, sort_by="total_amount", sort_order="asc")["quotations"]
        assert rows[0]["total_amount"] == 5.0
        assert rows[0]["item_count"] == 1

    def test_unknown_sort_falls_back(self, memory_db, populated):
        assert search_quotations(memory_db, sort_by="drop table")["total"] == 3

    def test_paging(self, memory_db, populated):
        result = search_quotations(memory_db, page=2, limit=2)
        assert result["total_pages"] == 2
        assert len(result["quotations"]) == 1


class TestExpiry:
    def test_expire_overdue(self, memory_db, customer_id):
        old = seed_quotation(memory_db, customer_id, valid_until="2025-03-05")
        fresh = seed_quotation(memory_db, customer_id, valid_until="2025-12-31")
        won = seed_quotation(memory_db, customer_id, valid_until="2025-03-05")
        update_status(memory_db, won, "accepted")

        assert expire_overdue(memory_db, today=date(2025, 6, 1)) == 1
        assert get_quotation(memory_db, old)["status"] == "expired"
        assert get_quotation(memory_db, fresh)["status"] == "draft"
        assert get_quotation(memory_db, won)["status"] == "accepted"
