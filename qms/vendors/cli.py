"""
Vendor CLI commands.

Usage:
    qms vendors list [--search steel]
    qms vendors assign <category_id> <vendor_id> [<vendor_id> ...]
    qms vendors stats
"""

from typing import List

import typer

from qms.core.output import OutputFormat, format_table

app = typer.Typer(no_args_is_help=True)


@app.command("list")
def list_vendors(
    search: str = typer.Option(None, "--search", "-s", help="Match name, email or contact"),
    status: str = typer.Option(None, help="active/inactive/blacklisted"),
    fmt: OutputFormat = typer.Option(OutputFormat.HUMAN, "--format", "-f"),
):
    """List vendors with their category counts."""
    from qms.core import get_db
    from qms.vendors.db import list_vendors as _list

    with get_db(readonly=True) as conn:
        rows = _list(conn, search=search, status=status)

    if not rows:
        typer.echo("No vendors found.")
        raise typer.Exit()

    typer.echo(format_table(rows, [
        ("id", "ID", 5),
        ("name", "Name", 30),
        ("contact_person", "Contact", 20),
        ("email", "Email", 28),
        ("status", "Status", 10),
        ("category_count", "Categories", 10),
    ], fmt))


@app.command("assign")
def assign(
    category_id: int = typer.Argument(..., help="Product category ID"),
    vendor_ids: List[int] = typer.Argument(..., help="Vendor IDs"),
    notes: str = typer.Option(None, help="Assignment notes"),
):
    """Assign vendors to a product category."""
    from qms.core import get_db
    from qms.products.db import get_category
    from qms.vendors.db import assign_vendors

    with get_db() as conn:
        if not get_category(conn, category_id):
            typer.echo(f"Category {category_id} not found.", err=True)
            raise typer.Exit(1)
        added = assign_vendors(conn, category_id, vendor_ids, notes=notes, assigned_by="cli")

    typer.echo(f"Assigned {added} new vendor(s) to category {category_id}.")


@app.command("stats")
def stats(fmt: OutputFormat = typer.Option(OutputFormat.HUMAN, "--format", "-f")):
    """Vendor coverage and RFQ response progress per category."""
    from qms.core import get_db
    from qms.vendors.db import get_category_stats

    with get_db(readonly=True) as conn:
        rows = get_category_stats(conn)

    if not rows:
        typer.echo("No categories defined.")
        raise typer.Exit()
    typer.echo(format_table(rows, [
        ("name", "Category", 25),
        ("total_vendors", "Vendors", 8),
        ("requests_sent", "RFQs", 6),
        ("pending", "Pending", 8),
        ("responded", "Responded", 10),
    ], fmt))
