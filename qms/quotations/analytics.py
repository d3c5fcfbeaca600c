"""
Sales analytics over quotations — dashboard KPIs, monthly trends, top customers.

Won quotations are those in ``accepted`` or ``converted`` status; revenue
is the sum of their totals.
"""

import sqlite3
from datetime import date, timedelta
from typing import Optional

from qms.quotations.db import OPEN_STATUSES, WON_STATUSES

MONTH_NAMES = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
               "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

_WON = ", ".join(f"'{s}'" for s in WON_STATUSES)
_OPEN = ", ".join(f"'{s}'" for s in OPEN_STATUSES)


def get_top_customers(conn: sqlite3.Connection, limit: int = 5) -> list:
    """Customers ranked by total quoted value."""
    rows = conn.execute(
        f"""SELECT c.id, c.name,
                   COUNT(q.id) AS quotes_count,
                   COALESCE(SUM(q.total_amount), 0) AS total_quoted,
                   COALESCE(SUM(CASE WHEN q.status IN ({_WON})
                                THEN q.total_amount ELSE 0 END), 0) AS total_won
            FROM quotations q
            JOIN customers c ON c.id = q.customer_id
            GROUP BY c.id
            ORDER BY total_quoted DESC, c.name
            LIMIT ?""",
        (limit,),
    ).fetchall()
    return [
        dict(r, total_quoted=round(r["total_quoted"], 2), total_won=round(r["total_won"], 2))
        for r in rows
    ]


def get_sales_dashboard(conn: sqlite3.Connection, today: Optional[date] = None) -> dict:
    today = today or date.today()
    row = conn.execute(
        f"""SELECT COUNT(*) AS total,
                   COALESCE(SUM(CASE WHEN status IN ({_OPEN}) THEN 1 ELSE 0 END), 0) AS pending,
                   COALESCE(SUM(CASE WHEN status IN ({_WON}) THEN 1 ELSE 0 END), 0) AS converted,
                   COALESCE(SUM(CASE WHEN status IN ({_WON})
                                THEN total_amount ELSE 0 END), 0) AS revenue,
                   COALESCE(SUM(CASE WHEN quotation_date >= ? THEN 1 ELSE 0 END), 0) AS recent
            FROM quotations""",
        ((today - timedelta(days=30)).isoformat(),),
    ).fetchone()

    total = row["total"]
    revenue = row["revenue"]
    total_customers = conn.execute("SELECT COUNT(*) FROM customers").fetchone()[0]

    return {
        "total_quotations": total,
        "pending_quotations": row["pending"],
        "converted_quotations": row["converted"],
        "total_revenue": round(revenue, 2),
        "average_quote_value": round(revenue / total, 2) if total else 0,
        "conversion_rate": round(row["converted"] / total * 100, 1) if total else 0,
        "top_customers": get_top_customers(conn, 5),
        "total_customers": total_customers,
        "recent_quotations": row["recent"],
    }


def _month_start(year: int, month: int, back: int) -> tuple:
    """(year, month) stepped ``back`` months before the given month."""
    index = year * 12 + (month - 1) - back
    return index // 12, index % 12 + 1


def get_quotation_trends(
    conn: sqlite3.Connection,
    months: int = 6,
    today: Optional[date] = None,
) -> list:
    """One row per calendar month, oldest first, ending with the current month."""
    today = today or date.today()
    months = max(1, min(int(months), 36))
    first_year, first_month = _month_start(today.year, today.month, months - 1)

    rows = conn.execute(
        f"""SELECT substr(quotation_date, 1, 7) AS ym,
                   COUNT(*) AS quotations,
                   SUM(CASE WHEN status IN ({_WON}) THEN 1 ELSE 0 END) AS accepted,
                   SUM(CASE WHEN status IN ({_WON}) THEN total_amount ELSE 0 END) AS revenue
            FROM quotations
            WHERE quotation_date >= ?
            GROUP BY ym""",
        (f"{first_year:04d}-{first_month:02d}-01",),
    ).fetchall()
    by_month = {r["ym"]: r for r in rows}

    trends = []
    for back in range(months - 1, -1, -1):
        year, month = _month_start(today.year, today.month, back)
        r = by_month.get(f"{year:04d}-{month:02d}")
        trends.append({
            "month": MONTH_NAMES[month - 1],
            "year": year,
            "quotations": r["quotations"] if r else 0,
            "accepted": r["accepted"] if r else 0,
            "revenue": round(r["revenue"] or 0, 2) if r else 0,
        })
    return trends
