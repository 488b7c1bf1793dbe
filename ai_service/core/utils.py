"""Console output and logging helpers."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel

console = Console()
err_console = Console(stderr=True)


def setup_logging(log_level: str = "warning", *, quiet: bool = False) -> None:
    """Configure logging to use Rich for consistent, pretty output.

    Args:
        log_level: Logging level (debug, info, warning, error).
        quiet: Only show errors, whatever the level.

    """
    level = logging.ERROR if quiet else getattr(logging, log_level.upper(), logging.WARNING)

    handler = RichHandler(
        console=err_console,
        show_time=True,
        show_level=True,
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))


def print_output_panel(
    output: str,
    title: str = "Output",
    subtitle: str = "",
    style: str = "green",
) -> None:
    """Prints the output in a styled panel."""
    console.print(
        Panel(output, title=title, subtitle=subtitle, border_style=style),
    )


def print_error_message(message: str, suggestion: str | None = None) -> None:
    """Prints an error message in a panel."""
    error_text = f"[bold red]{message}[/bold red]"
    if suggestion:
        error_text += f"\n\n[yellow]{suggestion}[/yellow]"
    err_console.print(Panel(error_text, title="Error", border_style="red"))
