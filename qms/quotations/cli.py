"""
Quotation CLI commands.

Usage:
    qms quotations list [--status draft,sent] [--customer 3]
    qms quotations show Q-2025-00012
    qms quotations status Q-2025-00012 accepted
    qms quotations export-pdf Q-2025-00012 [--output quote.pdf]
    qms quotations export-excel Q-2025-00012
    qms quotations rfq Q-2025-00012 [--validity 7]
    qms quotations expire
"""

from pathlib import Path

import typer

from qms.core.output import OutputFormat, format_result, format_table

app = typer.Typer(no_args_is_help=True)

_COLUMNS = [
    ("quotation_number", "Number", 14),
    ("customer_name", "Customer", 28),
    ("quotation_date", "Date", 10),
    ("valid_until", "Valid Until", 11),
    ("status", "Status", 10),
    ("item_count", "Items", 5),
    ("total_amount", "Total", 14),
]

_ITEM_COLUMNS = [
    ("line_no", "#", 3),
    ("description", "Description", 36),
    ("quantity", "Qty", 8),
    ("unit_price", "Unit Price", 12),
    ("discount_percent", "Disc%", 6),
    ("tax_percent", "Tax%", 6),
    ("line_total", "Line Total", 12),
]


def _load(conn, ref: str):
    """Look up a quotation by number or numeric ID."""
    from qms.quotations.db import get_quotation, get_quotation_by_number

    quotation = get_quotation_by_number(conn, ref)
    if not quotation and ref.isdigit():
        quotation = get_quotation(conn, int(ref))
    if not quotation:
        typer.echo(f"Quotation {ref} not found.", err=True)
        raise typer.Exit(1)
    return quotation


@app.command("list")
def list_quotations(
    search: str = typer.Option(None, "--search", "-s", help="Match number, customer or notes"),
    status: str = typer.Option(None, help="Comma-separated statuses"),
    customer: int = typer.Option(None, "--customer", help="Customer ID"),
    date_from: str = typer.Option(None, "--from", help="Earliest quotation date (YYYY-MM-DD)"),
    date_to: str = typer.Option(None, "--to", help="Latest quotation date (YYYY-MM-DD)"),
    sort_by: str = typer.Option("created_at", "--sort", help="Sort column"),
    page: int = typer.Option(1, help="Page number"),
    limit: int = typer.Option(50, help="Rows per page (max 100)"),
    fmt: OutputFormat = typer.Option(OutputFormat.HUMAN, "--format", "-f"),
):
    """Search quotations."""
    from qms.core import get_db
    from qms.quotations.db import search_quotations

    try:
        with get_db(readonly=True) as conn:
            result = search_quotations(
                conn, search=search, status=status, customer_id=customer,
                date_from=date_from, date_to=date_to, sort_by=sort_by,
                page=page, limit=limit,
            )
    except ValueError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1)

    if not result["quotations"]:
        typer.echo("No quotations found.")
        raise typer.Exit()

    typer.echo(format_table(result["quotations"], _COLUMNS, fmt))
    if fmt == OutputFormat.HUMAN:
        typer.echo(f"\nPage {result['page']} of {result['total_pages']} ({result['total']} quotations)")


@app.command("show")
def show(
    ref: str = typer.Argument(..., help="Quotation number or ID"),
    fmt: OutputFormat = typer.Option(OutputFormat.HUMAN, "--format", "-f"),
):
    """Show a quotation with its items."""
    from qms.core import get_db

    with get_db(readonly=True) as conn:
        quotation = _load(conn, ref)

    if fmt == OutputFormat.JSON:
        typer.echo(format_result(quotation, fmt))
        return

    header = {k: v for k, v in quotation.items() if k != "items"}
    typer.echo(format_result(header, fmt, title=f"Quotation {quotation['quotation_number']}"))
    typer.echo("")
    typer.echo(format_table(quotation["items"], _ITEM_COLUMNS, fmt))


@app.command("status")
def set_status(
    ref: str = typer.Argument(..., help="Quotation number or ID"),
    status: str = typer.Argument(..., help="New status"),
):
    """Change a quotation's status."""
    from qms.core import get_db
    from qms.quotations.db import update_status

    with get_db() as conn:
        quotation = _load(conn, ref)
        try:
            update_status(conn, quotation["id"], status, changed_by="cli")
        except ValueError as exc:
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(1)

    typer.echo(f"{quotation['quotation_number']}: {quotation['status']} -> {status}")


@app.command("export-pdf")
def export_pdf(
    ref: str = typer.Argument(..., help="Quotation number or ID"),
    output: Path = typer.Option(None, "--output", "-o", help="Output file (default: exports dir)"),
):
    """Render a quotation to PDF."""
    from qms.core import get_db
    from qms.core.paths import export_path
    from qms.exports.pdf_renderer import render_quotation_pdf
    from qms.settings.db import get_settings

    with get_db(readonly=True) as conn:
        quotation = _load(conn, ref)
        settings = get_settings(conn)

    target = output or export_path(f"{quotation['quotation_number']}.pdf", "quotations")
    path = render_quotation_pdf(quotation, settings, target)
    typer.echo(f"PDF written: {path}")


@app.command("export-excel")
def export_excel(
    ref: str = typer.Argument(..., help="Quotation number or ID"),
    output: Path = typer.Option(None, "--output", "-o", help="Output file (default: exports dir)"),
):
    """Export a quotation to an Excel workbook."""
    from qms.core import get_db
    from qms.core.paths import export_path
    from qms.exports.excel_renderer import render_quotation_excel
    from qms.settings.db import get_settings

    with get_db(readonly=True) as conn:
        quotation = _load(conn, ref)
        settings = get_settings(conn)

    target = output or export_path(f"{quotation['quotation_number']}.xlsx", "quotations")
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(render_quotation_excel(quotation, settings).getvalue())
    typer.echo(f"Workbook written: {target}")


@app.command("rfq")
def rfq(
    ref: str = typer.Argument(..., help="Quotation number or ID"),
    validity: int = typer.Option(None, "--validity", help="RFQ validity in days"),
    reference: str = typer.Option(None, "--reference", help="Custom RFQ reference"),
    output_dir: Path = typer.Option(None, "--output-dir", "-o", help="Directory for the workbooks"),
):
    """Generate vendor RFQ workbooks from the vendor-category assignments."""
    from qms.core import get_db
    from qms.rfq.exporter import export_rfqs

    with get_db() as conn:
        quotation = _load(conn, ref)
        try:
            result = export_rfqs(
                conn, quotation["id"], validity_days=validity, output_dir=output_dir,
                rfq_reference=reference, created_by="cli",
            )
        except ValueError as exc:
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(1)

    typer.echo(f"RFQ {result.rfq_reference}: {len(result.files)} vendor file(s)")
    for path in result.files:
        typer.echo(f"  {path}")
    typer.echo(f"Summary: {result.summary_file}")
    if result.skipped_categories:
        typer.echo(f"No vendors for: {', '.join(result.skipped_categories)}")


@app.command("expire")
def expire():
    """Mark open quotations past their validity date as expired."""
    from qms.core import get_db
    from qms.quotations.db import expire_overdue

    with get_db() as conn:
        count = expire_overdue(conn)
    typer.echo(f"Expired {count} quotation(s).")
