"""
Quotations: numbering, pricing, lifecycle, analytics and vendor rates.

Module layout:
    pricing.py     Pure money maths (margins, line and quotation totals)
    db.py          Quotation + item CRUD, search, status lifecycle
    rates.py       Per-item vendor rates and best-rate selection
    analytics.py   Dashboard KPIs, monthly trends, top customers
    migrations.py  Incremental column additions
"""
