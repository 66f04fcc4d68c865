"""Consoles and error reporting shared by CLI commands."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape

# Tables and help go to stdout, diagnostics to stderr
console = Console()
err_console = Console(stderr=True)


def report_error(message: str, *, hint: str | None = None) -> None:
    """Print an error line (and an optional hint) on stderr."""
    err_console.print(f"[red]Error:[/] {escape(message)}")
    if hint:
        err_console.print(f"[dim]{escape(hint)}[/]")


__all__ = [
    "console",
    "err_console",
    "report_error",
]
