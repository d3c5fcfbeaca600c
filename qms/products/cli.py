"""
Product CLI commands.

Usage:
    qms products list [--search bolt] [--category 3]
    qms products kpis
    qms products categories
"""

import typer

from qms.core.output import OutputFormat, format_result, format_table

app = typer.Typer(no_args_is_help=True)


@app.command("list")
def list_products(
    search: str = typer.Option(None, "--search", "-s", help="Match name, SKU or description"),
    category: int = typer.Option(None, "--category", help="Category ID"),
    status: str = typer.Option(None, help="active/inactive/discontinued"),
    page: int = typer.Option(1, help="Page number"),
    limit: int = typer.Option(50, help="Rows per page (max 100)"),
    fmt: OutputFormat = typer.Option(OutputFormat.HUMAN, "--format", "-f"),
):
    """List products, newest first."""
    from qms.core import get_db
    from qms.products.db import list_products as _list

    with get_db(readonly=True) as conn:
        result = _list(conn, search=search, category_id=category, status=status,
                       page=page, limit=limit)

    if not result["products"]:
        typer.echo("No products found.")
        raise typer.Exit()

    typer.echo(format_table(result["products"], [
        ("id", "ID", 5),
        ("sku", "SKU", 14),
        ("name", "Name", 30),
        ("category_name", "Category", 18),
        ("unit_of_measure", "UoM", 6),
        ("current_stock", "Stock", 10),
        ("selling_price", "Price", 12),
    ], fmt))


@app.command("kpis")
def kpis(fmt: OutputFormat = typer.Option(OutputFormat.HUMAN, "--format", "-f")):
    """Show inventory headline numbers."""
    from qms.core import get_db
    from qms.products.db import get_product_kpis

    with get_db(readonly=True) as conn:
        data = get_product_kpis(conn)
    typer.echo(format_result(data, fmt, title="Product KPIs"))


@app.command("categories")
def categories(fmt: OutputFormat = typer.Option(OutputFormat.HUMAN, "--format", "-f")):
    """List product categories with product counts."""
    from qms.core import get_db
    from qms.products.db import list_categories

    with get_db(readonly=True) as conn:
        rows = list_categories(conn)

    if not rows:
        typer.echo("No categories defined.")
        raise typer.Exit()
    typer.echo(format_table(rows, [
        ("id", "ID", 5), ("name", "Name", 30), ("product_count", "Products", 9),
    ], fmt))
