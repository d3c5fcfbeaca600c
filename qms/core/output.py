"""
Output formatters for CLI display.

Supports human-readable, JSON, and markdown output modes for single
records and for tabular listings.
"""

import json
from dataclasses import asdict, is_dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple


class OutputFormat(str, Enum):
    HUMAN = "human"
    JSON = "json"
    MARKDOWN = "markdown"


def format_result(
    result: Any,
    fmt: OutputFormat = OutputFormat.HUMAN,
    title: Optional[str] = None,
) -> str:
    """Format a single result object for display."""
    if fmt == OutputFormat.JSON:
        return json.dumps(_to_dict(result), indent=2, default=str)
    elif fmt == OutputFormat.MARKDOWN:
        return _format_markdown(result, title)
    else:
        return _format_human(result, title)


def format_table(
    rows: Sequence[Any],
    columns: List[Tuple[str, str, int]],
    fmt: OutputFormat = OutputFormat.HUMAN,
) -> str:
    """
    Format a list of rows as a table.

    Args:
        rows: dicts or sqlite3.Row objects
        columns: (key, header, width) tuples
        fmt: output format
    """
    data = [dict(r) for r in rows]
    if fmt == OutputFormat.JSON:
        return json.dumps(data, indent=2, default=str)

    if fmt == OutputFormat.MARKDOWN:
        lines = [
            "| " + " | ".join(h for _, h, _ in columns) + " |",
            "|" + "|".join("---" for _ in columns) + "|",
        ]
        for row in data:
            lines.append("| " + " | ".join(_cell(row.get(k)) for k, _, _ in columns) + " |")
        return "\n".join(lines)

    header = " ".join(f"{h:<{w}}" for _, h, w in columns)
    lines = [header, "-" * len(header)]
    for row in data:
        lines.append(" ".join(f"{_cell(row.get(k))[:w]:<{w}}" for k, _, w in columns))
    return "\n".join(lines)


def _cell(value: Any) -> str:
    if value is None:
        return "-"
    if isinstance(value, float):
        return f"{value:,.2f}"
    return str(value)


def _to_dict(result: Any) -> Dict:
    if is_dataclass(result):
        return asdict(result)
    elif isinstance(result, dict):
        return result
    elif hasattr(result, "keys"):
        return dict(result)
    elif hasattr(result, "__dict__"):
        return result.__dict__
    return {"value": str(result)}


def _format_human(result: Any, title: Optional[str] = None) -> str:
    lines = []
    if title:
        lines.extend([title, "=" * len(title), ""])

    data = _to_dict(result)
    max_key_len = max(len(str(k)) for k in data.keys()) if data else 0

    for key, value in data.items():
        label = key.replace("_", " ").title()
        if isinstance(value, float):
            formatted = f"{value:,.2f}"
        elif isinstance(value, list):
            formatted = "\n".join(f"  - {v}" for v in value) if value else "(none)"
            if value:
                formatted = "\n" + formatted
        else:
            formatted = str(value)
        lines.append(f"{label:<{max_key_len + 2}}: {formatted}")

    return "\n".join(lines)


def _format_markdown(result: Any, title: Optional[str] = None) -> str:
    lines = []
    if title:
        lines.extend([f"# {title}", ""])

    data = _to_dict(result)
    lines.extend(["| Field | Value |", "|-------|-------|"])

    for key, value in data.items():
        label = key.replace("_", " ").title()
        if isinstance(value, float):
            formatted = f"{value:,.2f}"
        elif isinstance(value, list):
            formatted = ", ".join(str(v) for v in value) if value else "-"
        else:
            formatted = str(value)
        lines.append(f"| {label} | {formatted} |")

    return "\n".join(lines)
