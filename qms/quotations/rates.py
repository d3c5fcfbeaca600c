"""
Per-item vendor rates — collect, compare and apply vendor price offers.

Each quotation item can carry any number of vendor rates. Applying a
rate copies its cost, margin and selling price onto the item and
recomputes the quotation totals.
"""

import math
import sqlite3
from typing import Any, Dict, Iterable, Mapping, Optional

from qms.core.logging import get_logger
from qms.quotations.db import LOCKED_STATUSES, recalculate_totals
from qms.quotations.pricing import line_amounts, money, selling_price

logger = get_logger("qms.quotations.rates")


def _get_item(conn: sqlite3.Connection, item_id: int) -> Optional[sqlite3.Row]:
    return conn.execute(
        """SELECT qi.*, q.status AS quotation_status
           FROM quotation_items qi
           JOIN quotations q ON q.id = qi.quotation_id
           WHERE qi.id = ?""",
        (item_id,),
    ).fetchone()


def add_vendor_rate(
    conn: sqlite3.Connection,
    item_id: int,
    vendor_id: int,
    cost_price: float,
    margin_percent: Optional[float] = None,
    lead_time_days: Optional[int] = None,
    valid_from: Optional[str] = None,
    valid_until: Optional[str] = None,
    remarks: Optional[str] = None,
) -> int:
    """
    Record a vendor's offer for one quotation item. Returns the rate ID.

    The selling price is derived from cost and margin; margin defaults to
    the item's current margin, else 0.
    """
    item = _get_item(conn, item_id)
    if not item:
        raise ValueError(f"Quotation item {item_id} not found")
    if not conn.execute("SELECT 1 FROM vendors WHERE id = ?", (vendor_id,)).fetchone():
        raise ValueError(f"Vendor {vendor_id} not found")

    try:
        cost = float(cost_price)
    except (TypeError, ValueError):
        raise ValueError("cost_price must be a number")
    if not math.isfinite(cost):
        raise ValueError("cost_price must be a finite number")
    if cost < 0:
        raise ValueError("cost_price cannot be negative")

    if margin_percent is None or margin_percent == "":
        margin = float(item["margin_percent"] or 0)
    else:
        margin = float(margin_percent)
    if not math.isfinite(margin):
        raise ValueError("margin must be a finite number")
    if margin < -100:
        raise ValueError("margin cannot be below -100%")

    if lead_time_days not in (None, ""):
        lead_time_days = int(lead_time_days)
        if lead_time_days < 0:
            raise ValueError("lead_time_days cannot be negative")
    else:
        lead_time_days = None

    cur = conn.execute(
        """INSERT INTO quotation_item_vendor_rates
           (quotation_item_id, vendor_id, cost_price, margin_percent, selling_price,
            lead_time_days, valid_from, valid_until, remarks)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (item_id, vendor_id, money(cost), money(margin),
         money(selling_price(cost, margin)), lead_time_days,
         valid_from, valid_until, remarks),
    )
    conn.commit()
    return cur.lastrowid


def list_item_rates(conn: sqlite3.Connection, item_id: int, active_only: bool = False) -> list:
    sql = """SELECT r.*, v.name AS vendor_name
             FROM quotation_item_vendor_rates r
             JOIN vendors v ON v.id = r.vendor_id
             WHERE r.quotation_item_id = ?"""
    if active_only:
        sql += " AND r.is_active = 1"
    sql += " ORDER BY r.cost_price, r.id"
    return [dict(r) for r in conn.execute(sql, (item_id,)).fetchall()]


def deactivate_vendor_rate(conn: sqlite3.Connection, rate_id: int) -> bool:
    cur = conn.execute(
        "UPDATE quotation_item_vendor_rates SET is_active = 0 WHERE id = ?", (rate_id,)
    )
    conn.commit()
    return cur.rowcount > 0


def best_rate(rates: Iterable[Mapping[str, Any]]) -> Optional[Mapping[str, Any]]:
    """
    Lowest-cost active rate.

    Ties go to the shorter lead time (unknown lead time sorts last), then
    to the earlier offer.
    """
    active = [r for r in rates if r.get("is_active", 1)]
    if not active:
        return None

    def key(rate):
        lead = rate.get("lead_time_days")
        return (
            float(rate["cost_price"]),
            lead if lead is not None else float("inf"),
            rate.get("created_at") or "",
            rate.get("id") or 0,
        )

    return min(active, key=key)


def apply_vendor_rate(conn: sqlite3.Connection, item_id: int, rate_id: int) -> Dict[str, Any]:
    """
    Copy a vendor rate onto its item and recompute item and quotation totals.

    Returns the updated item.
    """
    item = _get_item(conn, item_id)
    if not item:
        raise ValueError(f"Quotation item {item_id} not found")
    if item["quotation_status"] in LOCKED_STATUSES:
        raise ValueError(f"Quotation is {item['quotation_status']} and can no longer be edited")

    rate = conn.execute(
        "SELECT * FROM quotation_item_vendor_rates WHERE id = ? AND quotation_item_id = ?",
        (rate_id, item_id),
    ).fetchone()
    if not rate:
        raise ValueError(f"Vendor rate {rate_id} does not belong to item {item_id}")
    if not rate["is_active"]:
        raise ValueError(f"Vendor rate {rate_id} is inactive")

    amounts = line_amounts(item["quantity"], rate["selling_price"],
                           item["discount_percent"], item["tax_percent"])
    conn.execute(
        """UPDATE quotation_items
           SET cost_price = ?, margin_percent = ?, unit_price = ?,
               line_total = ?, selected_rate_id = ?
           WHERE id = ?""",
        (rate["cost_price"], rate["margin_percent"], rate["selling_price"],
         money(amounts.line_total), rate_id, item_id),
    )
    recalculate_totals(conn, item["quotation_id"])
    conn.commit()
    logger.info("Applied vendor rate %d to item %d", rate_id, item_id)

    return dict(conn.execute("SELECT * FROM quotation_items WHERE id = ?", (item_id,)).fetchone())


def compare_vendor_rates(conn: sqlite3.Connection, quotation_id: int) -> list:
    """Side-by-side active rates per item with the best offer and potential savings."""
    items = conn.execute(
        """SELECT id, line_no, item_name, description, quantity, unit_price,
                  cost_price, selected_rate_id
           FROM quotation_items WHERE quotation_id = ?
           ORDER BY line_no, id""",
        (quotation_id,),
    ).fetchall()

    comparison = []
    for item in items:
        rates = list_item_rates(conn, item["id"], active_only=True)
        best = best_rate(rates)
        savings = 0.0
        if best and len(rates) > 1:
            highest = max(float(r["cost_price"]) for r in rates)
            savings = money((highest - float(best["cost_price"])) * float(item["quantity"]))
        comparison.append({
            "item_id": item["id"],
            "line_no": item["line_no"],
            "description": item["item_name"] or item["description"],
            "quantity": item["quantity"],
            "current_cost": item["cost_price"],
            "selected_rate_id": item["selected_rate_id"],
            "rates": rates,
            "best_rate_id": best["id"] if best else None,
            "best_vendor": best["vendor_name"] if best else None,
            "savings": savings,
        })
    return comparison
