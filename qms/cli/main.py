"""
QMS CLI - Main Entry Point

Unified Typer CLI that assembles all module sub-commands.

Usage:
    qms version
    qms migrate
    qms serve [--port 5000] [--debug]
    qms customers [command]
    qms vendors [command]
    qms products [command]
    qms quotations [command]
    qms auth [command]
"""

import importlib

import typer

import qms

app = typer.Typer(
    name="qms",
    help="Quotation Management System: customers, vendors, products and quotations.",
    no_args_is_help=True,
)


@app.command()
def version():
    """Show QMS version."""
    typer.echo(f"qms {qms.__version__}")


@app.command()
def migrate():
    """Run database schema migrations for all modules."""
    from qms.core.db import migrate_all

    migrate_all()
    typer.echo("Database migration complete.")


@app.command()
def serve(
    port: int = typer.Option(5000, "--port", "-p", help="Port number"),
    host: str = typer.Option(None, "--host", "-h", help="Host address (default: 0.0.0.0 prod, 127.0.0.1 debug)"),
    debug: bool = typer.Option(False, "--debug", help="Use Flask dev server with auto-reload (localhost only)"),
    threads: int = typer.Option(8, "--threads", "-t", help="Waitress worker threads (production only)"),
):
    """Launch the QMS REST API.

    Default: Waitress production server on 0.0.0.0 (LAN accessible).
    With --debug: Flask dev server on 127.0.0.1 with auto-reload.
    """
    from qms.api import create_app

    web = create_app()

    if debug:
        _host = host or "127.0.0.1"
        typer.echo(f"Starting Flask dev server at http://{_host}:{port}")
        web.run(host=_host, port=port, debug=True)
        return

    from waitress import serve as waitress_serve

    _host = host or "0.0.0.0"
    typer.echo(f"Starting Waitress production server on {_host}:{port} ({threads} threads)")
    waitress_serve(web, host=_host, port=port, threads=threads)


MODULE_REGISTRY = [
    ("qms.customers.cli", "customers", "Customer directory"),
    ("qms.vendors.cli", "vendors", "Vendors & category assignments"),
    ("qms.products.cli", "products", "Product catalog & stock KPIs"),
    ("qms.quotations.cli", "quotations", "Quotations, exports & RFQs"),
    ("qms.auth.cli", "auth", "User account management"),
]


def _register_modules():
    """Register module CLI sub-apps."""
    for module_path, name, help_text in MODULE_REGISTRY:
        mod = importlib.import_module(module_path)
        app.add_typer(mod.app, name=name, help=help_text)


_register_modules()


def main():
    """Entry point for the qms CLI."""
    app()


if __name__ == "__main__":
    main()
