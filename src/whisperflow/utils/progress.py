"""Console reporting utilities using Rich."""

from __future__ import annotations

from datetime import datetime

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)

console = Console(stderr=True)


def log(message: str, *, style: str = "bold") -> None:
    """Log a timestamped message."""
    ts = datetime.now().strftime("%H:%M:%S")
    console.print(f"[dim]\\[{ts}][/dim] {message}", style=style, highlight=False)


def log_step(step: str, message: str) -> None:
    """Log a processing step."""
    ts = datetime.now().strftime("%H:%M:%S")
    console.print(
        f"[dim]\\[{ts}][/dim] [bold cyan]{step}[/bold cyan] {message}",
        highlight=False,
    )


def log_success(message: str) -> None:
    log(f"[green]✓[/green] {message}", style="")


def log_warning(message: str) -> None:
    log(f"[yellow]⚠[/yellow] {message}", style="")


def log_error(message: str) -> None:
    log(f"[red]✗[/red] {message}", style="")


def download_progress() -> Progress:
    """Progress display for model file downloads (one task per file)."""
    return Progress(
        TextColumn("[bold cyan]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TimeRemainingColumn(),
        console=console,
        transient=False,
    )


def transcription_progress() -> Progress:
    """Progress display for decoded audio (0–100%)."""
    return Progress(
        TextColumn("[bold cyan]{task.description}"),
        BarColumn(bar_width=None),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=console,
    )
