"""Tests for quotation pricing arithmetic."""

import pytest

from qms.quotations.pricing import (
    line_amounts,
    margin_percent,
    money,
    price_item,
    quotation_totals,
    selling_price,
)


class TestArithmetic:
    def test_selling_price(self):
        assert selling_price(100, 25) == pytest.approx(125.0)

    def test_margin_percent(self):
        assert margin_percent(80, 100) == pytest.approx(25.0)
        assert margin_percent(0, 100) == 0.0

    def test_line_amounts(self):
        amounts = line_amounts(4, 25, discount_percent=10, tax_percent=5)
        assert amounts.gross == 100
        assert amounts.discount == pytest.approx(10)
        assert amounts.taxable == pytest.approx(90)
        assert amounts.tax == pytest.approx(4.5)
        assert amounts.line_total == pytest.approx(94.5)

    def test_totals(self):
        totals = quotation_totals([
            {"quantity": 10, "unit_price": 120, "tax_percent": 10},
            {"quantity": 5, "unit_price": 50, "discount_percent": 10},
        ])
        assert totals == {
            "subtotal": 1450.0,
            "discount_amount": 25.0,
            "tax_amount": 120.0,
            "total_amount": 1545.0,
        }

    def test_money_rounds(self):
        assert money("10") == 10.0
        assert money(2.499) == 2.5


class TestPriceItem:
    def test_cost_and_margin(self):
        item = price_item({"description": "Valve", "quantity": 2,
                           "cost_price": 100, "margin_percent": 20, "tax_percent": 0})
        assert item["unit_price"] == 120.0
        assert item["line_total"] == 240.0

    def test_unit_price_wins(self):
        item = price_item({"description": "Valve", "quantity": 1, "cost_price": 100,
                           "margin_percent": 20, "unit_price": 150, "tax_percent": 0})
        assert item["unit_price"] == 150.0

    def test_margin_derived_from_unit_price(self):
        item = price_item({"description": "Valve", "quantity": 1,
                           "cost_price": 80, "unit_price": 100})
        assert item["margin_percent"] == 25.0

    def test_default_tax_applied(self):
        item = price_item({"description": "Valve", "quantity": 1, "unit_price": 100}, 18.0)
        assert item["tax_percent"] == 18.0
        assert item["line_total"] == 118.0

    def test_zero_tax_kept(self):
        item = price_item({"description": "Valve", "quantity": 1,
                           "unit_price": 100, "tax_percent": 0}, 18.0)
        assert item["tax_percent"] == 0

    def test_product_fallbacks(self):
        product = {"name": "Ball valve", "selling_price": 42, "unit_of_measure": "pcs",
                   "category_name": "Valves"}
        item = price_item({"product_id": 7, "quantity": 1}, 0, product)
        assert item["description"] == "Ball valve"
        assert item["unit_price"] == 42.0
        assert item["category"] == "Valves"
        assert item["unit_of_measure"] == "pcs"

    @pytest.mark.parametrize("raw, message", [
        ({"quantity": 1, "unit_price": 1}, "description is required"),
        ({"description": "x", "quantity": 0, "unit_price": 1}, "quantity must be greater"),
        ({"description": "x", "quantity": 1}, "unit price is required"),
        ({"description": "x", "quantity": 1, "cost_price": -1}, "cannot be negative"),
        ({"description": "x", "quantity": 1, "unit_price": 1, "discount_percent": 120},
         "between 0 and 100"),
        ({"description": "x", "quantity": "lots", "unit_price": 1}, "must be a number"),
        ({"description": "x", "quantity": "nan", "unit_price": 1}, "must be a finite number"),
        ({"description": "x", "quantity": 1, "unit_price": "inf"}, "must be a finite number"),
        ({"description": "x", "quantity": 1, "cost_price": float("nan")}, "must be a finite number"),
        ({"description": "x", "quantity": 1, "unit_price": 1, "tax_percent": "-inf"},
         "must be a finite number"),
    ])
    def test_validation(self, raw, message):
        with pytest.raises(ValueError, match=message):
            price_item(raw, position=3)

    def test_error_names_line(self):
        with pytest.raises(ValueError, match="Item 3"):
            price_item({"quantity": 1, "unit_price": 1}, position=3)
