"""
Terminal output helpers: logging setup and result rendering with Rich.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from tfindex.core.config import LoggingConfig
from tfindex.core.container import ContainerHeader
from tfindex.services import IndexRunResult


def setup_logging(config: LoggingConfig, verbose: int, console: Console) -> None:
    """
    Route log records to a RichHandler.

    ``-v`` lowers the tfindex loggers to DEBUG; ``-vv`` also enables DEBUG
    output from libraries (httpx, google-auth).
    """
    handler = RichHandler(console=console, show_path=False, markup=False)
    handler.setFormatter(logging.Formatter(config.format))

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if verbose >= 2 else logging.WARNING)

    level = logging.DEBUG if verbose >= 1 else logging.getLevelName(config.level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logging.getLogger("tfindex").setLevel(level)


def render_run_summary(console: Console, result: IndexRunResult) -> None:
    """Print the summary panel of a finished index run."""
    summary = Table.grid(padding=1)
    summary.add_column(style="bold")
    summary.add_column()
    summary.add_row("Output:", str(result.output_path))
    summary.add_row("Files:", str(result.total_files))
    summary.add_row("Compression:", result.compression.label)
    summary.add_row("Encrypted:", "yes" if result.encrypted else "no")
    if result.shared_files:
        summary.add_row("Shared Files:", str(result.shared_files))
    if result.uploaded_id:
        summary.add_row("Uploaded As:", result.uploaded_id)
        summary.add_row("Index Shared:", "yes" if result.index_shared else "no")
    summary.add_row("Duration:", f"{result.duration_seconds:.2f}s")

    console.print(
        Panel(
            summary,
            title="[bold green]Index Complete[/bold green]",
            border_style="green",
            expand=False,
        )
    )


def render_header(console: Console, header: ContainerHeader, payload_size: int) -> None:
    """Print the decoded container header."""
    table = Table(title="Index Header", show_header=False)
    table.add_column(style="bold")
    table.add_column()
    table.add_row("Flags", f"0x{header.flags:02X}")
    table.add_row("Compression", f"{header.compression.label} (0x{int(header.compression):02X})")
    table.add_row("Encrypted", "yes" if header.encrypted else "no")
    table.add_row("Payload Size", str(payload_size))
    console.print(table)
