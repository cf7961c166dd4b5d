"""Output helpers: JSON vs rich text, tables, status lines."""

from __future__ import annotations

import json
import sys
from typing import Any

from rich.console import Console
from rich.table import Table

console = Console()
error_console = Console(stderr=True)


def is_piped() -> bool:
    return not sys.stdout.isatty()


def output(data: Any, fmt: str | None = None) -> None:
    """Print a model, dict or list; JSON when asked for (or when piped), rich otherwise."""
    if fmt is None:
        fmt = "json" if is_piped() else "text"

    if hasattr(data, "model_dump"):
        text = data.model_dump_json(indent=2, by_alias=True)
    elif isinstance(data, list) and data and hasattr(data[0], "model_dump"):
        text = json.dumps([d.model_dump(mode="json", by_alias=True) for d in data], indent=2)
    else:
        text = json.dumps(data, indent=2, default=str)

    if fmt == "json":
        print(text)
    else:
        console.print_json(text)


def output_table(
    rows: list[dict[str, Any]], columns: list[str], title: str | None = None, fmt: str | None = None
) -> None:
    if fmt == "json":
        print(json.dumps(rows, indent=2, default=str))
        return

    table = Table(title=title)
    for col in columns:
        table.add_column(col.replace("_", " ").title())
    for row in rows:
        table.add_row(*[str(row.get(col, "")) for col in columns])
    console.print(table)


def error(msg: str) -> None:
    error_console.print(f"[red]Error:[/red] {msg}")


def warn(msg: str) -> None:
    console.print(f"[yellow]{msg}[/yellow]")


def success(msg: str) -> None:
    console.print(f"[green]{msg}[/green]")


def info(msg: str) -> None:
    console.print(f"[dim]{msg}[/dim]")
