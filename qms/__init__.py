"""
QMS - Quotation Management System

Sales quotation workflow: customers, vendors, products, quotations,
vendor rate comparison, RFQ workbooks, and document attachments.

Modules:
    core        - Shared services (db, config, logging, paths, output)
    auth        - Users, roles, login rate limiting
    settings    - Company details, default terms, tax defaults
    customers   - Customer directory and quotation history
    products    - Product catalog, categories, stock KPIs
    vendors     - Vendors and vendor <-> category assignments
    quotations  - Quotations, pricing, vendor rates, analytics
    rfq         - Request-for-quotation workbooks and rate import
    exports     - Quotation PDF and Excel rendering
    documents   - File attachments for quotations, customers, vendors
    api         - Flask REST layer
    cli         - Typer command line
"""

__version__ = "0.1.0"
