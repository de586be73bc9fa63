"""
CLI utility helpers: consoles, event loading and result rendering.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from sdm_serverless.execution.ledger import LedgerWrite

console = Console()
err_console = Console(stderr=True)


def load_payload(path: Path) -> dict[str, Any]:
    """Read a goal event payload from a JSON file, exiting with code 1 on bad input."""
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        err_console.print(f"[bold red]Cannot read {path}:[/bold red] {e}")
        raise typer.Exit(code=1) from e
    except json.JSONDecodeError as e:
        err_console.print(f"[bold red]Invalid JSON in {path}:[/bold red] {e}")
        raise typer.Exit(code=1) from e
    if not isinstance(payload, dict):
        err_console.print(f"[bold red]Expected a JSON object in {path}[/bold red]")
        raise typer.Exit(code=1)
    return payload


def print_writes(writes: list[LedgerWrite], *, title: str = "Ledger writes") -> None:
    """Render ledger writes as a Rich table."""
    if not writes:
        console.print("[dim]No ledger writes.[/dim]")
        return
    table = Table(title=title, show_lines=False, pad_edge=False)
    for col in ("goal", "state", "phase", "description", "url"):
        table.add_column(col, overflow="fold")
    for write in writes:
        patch = write.patch
        table.add_row(
            write.unique_name,
            patch.state.value,
            patch.phase or "",
            patch.description or "",
            patch.url or "",
        )
    console.print(table)
