"""Tests for customer business logic."""

import pytest

from qms.customers.db import (
    create_customer,
    delete_customer,
    get_customer,
    get_customer_quotations,
    get_customer_summary,
    list_customers,
    update_customer,
)
from qms.quotations.db import update_status
from qms.tests.factories import seed_customer, seed_quotation


class TestCreateCustomer:
    def test_create_minimal(self, memory_db):
        cid = create_customer(memory_db, name="  Blue Ocean Ltd  ")
        row = get_customer(memory_db, cid)
        assert row["name"] == "Blue Ocean Ltd"
        assert row["status"] == "active"

    def test_email_lowercased(self, memory_db):
        cid = create_customer(memory_db, name="Blue Ocean", email="Sales@BlueOcean.TEST")
        assert get_customer(memory_db, cid)["email"] == "sales@blueocean.test"

    @pytest.mark.parametrize("name", ["", "A", "x" * 256])
    def test_name_length(self, memory_db, name):
        with pytest.raises(ValueError):
            create_customer(memory_db, name=name)

    def test_invalid_email(self, memory_db):
        with pytest.raises(ValueError, match="Invalid email"):
            create_customer(memory_db, name="Blue Ocean", email="not-an-email")

    def test_duplicate_email(self, memory_db):
        seed_customer(memory_db)
        with pytest.raises(ValueError, match="already exists"):
            create_customer(memory_db, name="Other Co", email="BUYER@acme.test")

    def test_negative_credit_limit(self, memory_db):
        with pytest.raises(ValueError, match="credit_limit"):
            create_customer(memory_db, name="Blue Ocean", credit_limit=-1)


class TestUpdateDelete:
    def test_partial_update(self, memory_db, customer_id):
        assert update_customer(memory_db, customer_id, city="Lisbon", phone="")
        row = get_customer(memory_db, customer_id)
        assert row["city"] == "Lisbon"
        assert row["phone"] is None
        assert row["name"] == "Acme Industries"

    def test_update_keeps_own_email(self, memory_db, customer_id):
        assert update_customer(memory_db, customer_id, email="buyer@acme.test")

    def test_update_email_conflict(self, memory_db, customer_id):
        seed_customer(memory_db, name="Other Co", email="other@co.test")
        with pytest.raises(ValueError, match="already exists"):
            update_customer(memory_db, customer_id, email="other@co.test")

    def test_update_invalid_status(self, memory_db, customer_id):
        with pytest.raises(ValueError, match="Invalid status"):
            update_customer(memory_db, customer_id, status="vip")

    def test_update_missing(self, memory_db):
        assert not update_customer(memory_db, 999, city="Oslo")

    def test_delete(self, memory_db, customer_id):
        assert delete_customer(memory_db, customer_id)
        assert get_customer(memory_db, customer_id) is None

    def test_delete_with_quotations_refused(self, memory_db, quotation_id, customer_id):
        with pytest.raises(ValueError, match="cannot be deleted"):
            delete_customer(memory_db, customer_id)


class TestListing:
    def test_ordered_by_name(self, memory_db):
        seed_customer(memory_db, name="zeta corp", email=None)
        seed_customer(memory_db, name="Alpha Corp", email=None)
        names = [c["name"] for c in list_customers(memory_db)["customers"]]
        assert names == ["Alpha Corp", "zeta corp"]

    def test_search_matches_contact(self, memory_db):
        seed_customer(memory_db, contact_person="Maria Lopez")
        seed_customer(memory_db, name="Other Co", email=None)
        result = list_customers(memory_db, search="lopez")
        assert result["total"] == 1

    def test_status_filter_and_paging(self, memory_db):
        for i in range(5):
            seed_customer(memory_db, name=f"Customer {i}", email=None)
        seed_customer(memory_db, name="Dormant", email=None, status="inactive")
        result = list_customers(memory_db, status="active", page=2, limit=2)
        assert result["total"] == 5
        assert result["total_pages"] == 3
        assert len(result["customers"]) == 2


class TestSummary:
    def test_summary_stats(self, memory_db, customer_id):
        first = seed_quotation(memory_db, customer_id)
        seed_quotation(memory_db, customer_id, quotation_date="2025-04-01")
        update_status(memory_db, first, "accepted")

        summary = get_customer_summary(memory_db, customer_id)
        assert summary["quotation_count"] == 2
        assert summary["total_quoted"] == 3090.0
        assert summary["accepted_value"] == 1545.0
        assert summary["last_quotation_date"] == "2025-04-01"

    def test_quotations_newest_first(self, memory_db, customer_id):
        seed_quotation(memory_db, customer_id)
        seed_quotation(memory_db, customer_id, quotation_date="2025-05-01")
        dates = [q["quotation_date"] for q in get_customer_quotations(memory_db, customer_id)]
        assert dates == ["2025-05-01", "2025-03-01"]

    def test_summary_missing(self, memory_db):
        assert get_customer_summary(memory_db, 42) is None
