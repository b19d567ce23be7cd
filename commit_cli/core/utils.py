"""Console output and logging helpers shared by the CLI."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel

console = Console()
err_console = Console(stderr=True)


def print_with_style(message: str, style: str = "bold green") -> None:
    """Print a message in the given style."""
    console.print(f"[{style}]{escape(message)}[/{style}]")


def print_error_message(message: str, suggestion: str | None = None) -> None:
    """Print an error panel to stderr, with an optional hint."""
    body = f"[bold red]{escape(message)}[/bold red]"
    if suggestion:
        body += f"\n\n[yellow]{escape(suggestion)}[/yellow]"
    err_console.print(Panel(body, title="Error", border_style="red"))


def print_output_panel(text: str, title: str = "Output", subtitle: str = "") -> None:
    """Print ``text`` inside a bordered panel."""
    console.print(
        Panel(
            escape(text),
            title=f"[bold]{title}[/bold]",
            subtitle=subtitle or None,
            border_style="green",
        ),
    )


def setup_logging(
    log_level: str = "warning",
    *,
    log_file: str | None = None,
    quiet: bool = False,
) -> None:
    """Route all loggers through a RichHandler on stderr.

    Args:
        log_level: Logging level (debug, info, warning, error).
        log_file: Optional file that receives plain-text log records as well.
        quiet: Only show errors on the console.

    """
    level = getattr(logging, log_level.upper(), logging.WARNING)

    handler = RichHandler(
        console=err_console,
        show_time=True,
        show_level=True,
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    handler.setLevel(logging.ERROR if quiet else level)
    handlers: list[logging.Handler] = [handler]

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"),
        )
        file_handler.setLevel(level)
        handlers.append(file_handler)

    root = logging.getLogger()
    root.handlers.clear()
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
