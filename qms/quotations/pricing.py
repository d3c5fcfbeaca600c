"""
Quotation pricing — pure functions, no database access.

Money flows one way through a quotation:

    cost_price --(margin %)--> unit_price
    quantity * unit_price                 = gross
    gross * discount % / 100              = discount
    gross - discount                      = taxable
    taxable * tax % / 100                 = tax
    taxable + tax                         = line_total

Quotation totals are plain sums of the per-line figures, with
``total_amount = subtotal - discount_amount + tax_amount``. Intermediate
values keep full precision; rounding to 2 decimals happens on output.
"""

import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, Mapping, Optional


def money(value: float) -> float:
    """Round to 2 decimals for storage and display."""
    return round(float(value) + 0.0, 2)


def selling_price(cost: float, margin: float) -> float:
    """Selling price from cost and margin percent."""
    return float(cost) * (1 + float(margin) / 100)


def margin_percent(cost: float, selling: float) -> float:
    """Margin percent from cost and selling price; 0 when cost is 0."""
    cost = float(cost)
    if cost == 0:
        return 0.0
    return (float(selling) - cost) / cost * 100


@dataclass
class LineAmounts:
    """Computed amounts for one quotation line."""
    gross: float
    discount: float
    taxable: float
    tax: float
    line_total: float

    def rounded(self) -> Dict[str, float]:
        return {k: money(v) for k, v in asdict(self).items()}


def line_amounts(
    quantity: float,
    unit_price: float,
    discount_percent: float = 0.0,
    tax_percent: float = 0.0,
) -> LineAmounts:
    gross = float(quantity) * float(unit_price)
    discount = gross * float(discount_percent or 0) / 100
    taxable = gross - discount
    tax = taxable * float(tax_percent or 0) / 100
    return LineAmounts(gross, discount, taxable, tax, taxable + tax)


def quotation_totals(items: Iterable[Mapping[str, Any]]) -> Dict[str, float]:
    """Subtotal, discount, tax and grand total for a set of priced items."""
    subtotal = discount = tax = 0.0
    for item in items:
        amounts = line_amounts(
            item["quantity"], item["unit_price"],
            item.get("discount_percent") or 0, item.get("tax_percent") or 0,
        )
        subtotal += amounts.gross
        discount += amounts.discount
        tax += amounts.tax
    return {
        "subtotal": money(subtotal),
        "discount_amount": money(discount),
        "tax_amount": money(tax),
        "total_amount": money(subtotal - discount + tax),
    }


def _number(item: Mapping[str, Any], key: str, label: Optional[str] = None) -> Optional[float]:
    value = item.get(key)
    if value is None or value == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{label or key} must be a number")
    if not math.isfinite(number):
        raise ValueError(f"{label or key} must be a finite number")
    return number


def price_item(
    raw: Mapping[str, Any],
    default_tax_rate: float = 0.0,
    product: Optional[Mapping[str, Any]] = None,
    position: int = 1,
) -> Dict[str, Any]:
    """
    Validate one incoming item and return it fully priced.

    ``unit_price`` wins when supplied. Otherwise it is derived from
    ``cost_price`` and ``margin_percent``, and failing that from the linked
    product's selling price. A missing ``tax_percent`` takes the default
    tax rate.

    Raises:
        ValueError: naming the offending line.
    """
    where = f"Item {position}"
    description = (raw.get("description") or raw.get("item_name") or "").strip()
    if not description and product:
        description = product.get("name") or ""
    if not description:
        raise ValueError(f"{where}: description is required")

    quantity = _number(raw, "quantity")
    if quantity is None or quantity <= 0:
        raise ValueError(f"{where}: quantity must be greater than 0")

    cost = _number(raw, "cost_price", "cost price")
    margin = _number(raw, "margin_percent", "margin")
    if margin is None:
        margin = _number(raw, "profit_percent", "margin")
    if cost is not None and cost < 0:
        raise ValueError(f"{where}: cost price cannot be negative")
    if margin is not None and margin < -100:
        raise ValueError(f"{where}: margin cannot be below -100%")

    unit_price = _number(raw, "unit_price", "unit price")
    if unit_price is None:
        if cost is not None:
            unit_price = selling_price(cost, margin or 0)
        elif product is not None:
            unit_price = float(product.get("selling_price") or 0)
        else:
            raise ValueError(f"{where}: unit price is required")
    if unit_price < 0:
        raise ValueError(f"{where}: unit price cannot be negative")
    unit_price = money(unit_price)
    if cost is not None and margin is None:
        margin = margin_percent(cost, unit_price)

    discount_pct = _number(raw, "discount_percent", "discount") or 0.0
    tax_pct = _number(raw, "tax_percent", "tax")
    if tax_pct is None:
        tax_pct = _number(raw, "gst_percent", "tax")
    if tax_pct is None:
        tax_pct = float(default_tax_rate or 0)
    for label, pct in (("discount", discount_pct), ("tax", tax_pct)):
        if not 0 <= pct <= 100:
            raise ValueError(f"{where}: {label} percent must be between 0 and 100")

    amounts = line_amounts(quantity, unit_price, discount_pct, tax_pct)

    return {
        "product_id": raw.get("product_id") or None,
        "line_no": position,
        "item_name": (raw.get("item_name") or "").strip() or None,
        "description": description,
        "category": raw.get("category") or (product.get("category_name") if product else None),
        "specifications": raw.get("specifications"),
        "unit_of_measure": raw.get("unit_of_measure") or raw.get("au_field")
        or (product.get("unit_of_measure") if product else None),
        "quantity": quantity,
        "cost_price": money(cost) if cost is not None else None,
        "margin_percent": money(margin) if margin is not None else None,
        "unit_price": unit_price,
        "discount_percent": discount_pct,
        "tax_percent": tax_pct,
        "line_total": money(amounts.line_total),
    }
