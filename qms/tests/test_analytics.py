"""Tests for the sales dashboard, monthly trends and top customers."""

from datetime import date

from qms.quotations.analytics import get_quotation_trends, get_sales_dashboard, get_top_customers
from qms.quotations.db import update_status
from qms.tests.factories import seed_customer, seed_quotation

TODAY = date(2025, 3, 15)


class TestDashboard:
    def test_empty(self, memory_db):
        dash = get_sales_dashboard(memory_db, today=TODAY)
        assert dash["total_quotations"] == 0
        assert dash["conversion_rate"] == 0
        assert dash["average_quote_value"] == 0
        assert dash["top_customers"] == []

    def test_counts(self, memory_db, customer_id):
        won = seed_quotation(memory_db, customer_id)
        sent = seed_quotation(memory_db, customer_id)
        seed_quotation(memory_db, customer_id)
        lost = seed_quotation(memory_db, customer_id, quotation_date="2025-01-05")
        update_status(memory_db, won, "accepted")
        update_status(memory_db, sent, "sent")
        update_status(memory_db, lost, "rejected")

        dash = get_sales_dashboard(memory_db, today=TODAY)
        assert dash["total_quotations"] == 4
        assert dash["pending_quotations"] == 2
        assert dash["converted_quotations"] == 1
        assert dash["total_revenue"] == 1545.0
        assert dash["conversion_rate"] == 25.0
        assert dash["average_quote_value"] == 386.25
        assert dash["recent_quotations"] == 3
        assert dash["total_customers"] == 1


class TestTrends:
    def test_months_oldest_first_with_gaps(self, memory_db, customer_id):
        accepted = seed_quotation(memory_db, customer_id)
        seed_quotation(memory_db, customer_id, quotation_date="2025-01-20")
        update_status(memory_db, accepted, "converted")

        trends = get_quotation_trends(memory_db, months=3, today=TODAY)
        assert [(t["month"], t["year"]) for t in trends] == [("Jan", 2025), ("Feb", 2025), ("Mar", 2025)]
        assert [t["quotations"] for t in trends] == [1, 0, 1]
        assert trends[2]["accepted"] == 1
        assert trends[2]["revenue"] == 1545.0

    def test_crosses_year_boundary(self, memory_db):
        trends = get_quotation_trends(memory_db, months=4, today=date(2025, 2, 1))
        assert [(t["month"], t["year"]) for t in trends][0] == ("Nov", 2024)

    def test_months_clamped(self, memory_db):
        assert len(get_quotation_trends(memory_db, months=0, today=TODAY)) == 1
        assert len(get_quotation_trends(memory_db, months=100, today=TODAY)) == 36


class TestTopCustomers:
    def test_ranked_by_quoted_value(self, memory_db):
        small = seed_customer(memory_db, name="Small Shop", email=None)
        big = seed_customer(memory_db, name="Big Buyer", email=None)
        seed_quotation(memory_db, small, items=[
            {"description": "Bolt", "quantity": 1, "unit_price": 5, "tax_percent": 0}])
        seed_quotation(memory_db, big)
        won = seed_quotation(memory_db, big)
        update_status(memory_db, won, "accepted")

        top = get_top_customers(memory_db, limit=5)
        assert [c["name"] for c in top] == ["Big Buyer", "Small Shop"]
        assert top[0]["quotes_count"] == 2
        assert top[0]["total_quoted"] == 3090.0
        assert top[0]["total_won"] == 1545.0
