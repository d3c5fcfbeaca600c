"""Typer command line for QMS."""
