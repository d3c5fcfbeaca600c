"""
Customer CLI commands.

Usage:
    qms customers list [--search ABC] [--status active]
    qms customers show <id>
    qms customers add --name "ABC Traders" --email buyer@abc.com
"""

import typer

from qms.core.output import OutputFormat, format_result, format_table

app = typer.Typer(no_args_is_help=True)

_COLUMNS = [
    ("id", "ID", 5),
    ("name", "Name", 30),
    ("contact_person", "Contact", 20),
    ("email", "Email", 28),
    ("phone", "Phone", 16),
    ("status", "Status", 10),
]


@app.command("list")
def list_customers(
    search: str = typer.Option(None, "--search", "-s", help="Match name, email, phone or contact"),
    status: str = typer.Option(None, help="Filter by status (active/inactive/suspended)"),
    page: int = typer.Option(1, help="Page number"),
    limit: int = typer.Option(50, help="Rows per page (max 100)"),
    fmt: OutputFormat = typer.Option(OutputFormat.HUMAN, "--format", "-f"),
):
    """List customers ordered by name."""
    from qms.core import get_db
    from qms.customers.db import list_customers as _list

    with get_db(readonly=True) as conn:
        result = _list(conn, search=search, status=status, page=page, limit=limit)

    if not result["customers"]:
        typer.echo("No customers found.")
        raise typer.Exit()

    typer.echo(format_table(result["customers"], _COLUMNS, fmt))
    if fmt == OutputFormat.HUMAN:
        typer.echo(f"\nPage {result['page']} of {result['total_pages']} ({result['total']} customers)")


@app.command("show")
def show(
    customer_id: int = typer.Argument(..., help="Customer ID"),
    fmt: OutputFormat = typer.Option(OutputFormat.HUMAN, "--format", "-f"),
):
    """Show a customer with quotation stats."""
    from qms.core import get_db
    from qms.customers.db import get_customer_summary

    with get_db(readonly=True) as conn:
        summary = get_customer_summary(conn, customer_id)

    if not summary:
        typer.echo(f"Customer {customer_id} not found.")
        raise typer.Exit(1)

    if fmt == OutputFormat.JSON:
        typer.echo(format_result(summary, fmt))
        return

    c = summary["customer"]
    typer.echo(format_result(c, fmt, title=f"Customer: {c['name']}"))
    typer.echo("")
    typer.echo(f"Quotations: {summary['quotation_count']}  |  "
               f"Quoted: {summary['total_quoted']:,.2f}  |  "
               f"Accepted: {summary['accepted_value']:,.2f}")
    for q in summary["recent_quotations"]:
        typer.echo(f"  {q['quotation_number']:<14} {q['quotation_date']}  "
                   f"{q['status']:<10} {q['total_amount']:>12,.2f}")


@app.command("add")
def add(
    name: str = typer.Option(..., "--name", help="Customer name"),
    email: str = typer.Option(None, help="Email address"),
    phone: str = typer.Option(None, help="Phone number"),
    contact: str = typer.Option(None, "--contact", help="Contact person"),
    city: str = typer.Option(None, help="City"),
    payment_terms: int = typer.Option(30, help="Payment terms in days"),
):
    """Create a customer."""
    from qms.core import get_db
    from qms.customers.db import create_customer

    try:
        with get_db() as conn:
            cid = create_customer(
                conn, name=name, email=email, phone=phone,
                contact_person=contact, city=city, payment_terms=payment_terms,
            )
    except ValueError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Created customer {cid}: {name}")
