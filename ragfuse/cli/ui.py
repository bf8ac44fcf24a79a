# ragfuse/cli/ui.py
"""
Console output for the CLI commands.

    from ragfuse.cli.ui import ui

    ui.header("Search", "query: what is RRF?")
    ui.fail("No database configured")
"""

from __future__ import annotations

from typing import Sequence

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

console = Console()


class UI:
    """Status lines, panels and tables in one consistent style."""

    def _status(self, mark: str, style: str, msg: str) -> None:
        console.print(f"[{style}]{mark}[/{style}] {msg}")

    def success(self, msg: str) -> None:
        self._status("✓", "green", msg)

    def warning(self, msg: str) -> None:
        self._status("⚠", "yellow", msg)

    def fail(self, msg: str, code: int = 1) -> None:
        """Print an error and exit with `code`."""
        self._status("✗", "red", msg)
        raise typer.Exit(code)

    def info(self, msg: str) -> None:
        console.print(f"[dim]{msg}[/dim]")

    def header(self, title: str, subtitle: str = "") -> None:
        body = f"[bold]{title}[/bold]" + (f"\n[dim]{subtitle}[/dim]" if subtitle else "")
        console.print(Panel.fit(body, border_style="blue"))

    def table(self, title: str, columns: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
        table = Table(*columns, title=title)
        for row in rows:
            table.add_row(*row)
        console.print(table)

    def summary(self, title: str, items: Sequence[tuple[str, str]]) -> None:
        """Two-column key/value table without a header row."""
        table = Table(title=title, show_header=False, box=None)
        table.add_column(style="dim")
        table.add_column(style="bold")
        for key, value in items:
            table.add_row(key, value)
        console.print(table)


ui = UI()


def preview(text: str, width: int = 300) -> str:
    """Chunk text flattened to one line and cut at `width` characters."""
    flat = " ".join(text.split())
    return flat if len(flat) <= width else flat[:width] + "..."


__all__ = ["UI", "ui", "console", "preview"]
