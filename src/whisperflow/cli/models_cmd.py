"""whisperflow models: list and pre-download models."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from whisperflow.models.events import (
    DownloadCompleted,
    DownloadProgress,
    DownloadStarted,
    Event,
)
from whisperflow.models.whisper import MODELS, get_model
from whisperflow.utils.progress import download_progress, log_error, log_success

console = Console()


@click.group()
def models_cmd() -> None:
    """Whisper model variants and their local cache."""


@models_cmd.command("list")
@click.option("--cache-dir", default=None, type=click.Path(), help="Hub cache directory")
def list_models(cache_dir: str | None) -> None:
    """List supported models and whether they are cached."""
    from whisperflow.acquisition import CacheManager, HubClient

    manager = CacheManager(HubClient(cache_dir))

    table = Table(title="Models")
    table.add_column("Code", style="bold")
    table.add_column("Name")
    table.add_column("Repository", style="dim")
    table.add_column("Languages")
    table.add_column("Cached")
    for code in MODELS:
        descriptor = get_model(code)
        table.add_row(
            code,
            descriptor.name,
            descriptor.repo_id,
            "multilingual" if descriptor.multilingual else "English only",
            "[green]✓[/green]" if manager.is_cached(descriptor) else "[dim]—[/dim]",
        )
    console.print(table)


@models_cmd.command("download")
@click.argument("code")
@click.option("--ignore-cache", is_flag=True, help="Download again even if cached")
@click.option(
    "--retries",
    default=0,
    type=click.IntRange(0, 10),
    help="Retry a failed download this many times",
)
@click.option("--cache-dir", default=None, type=click.Path(), help="Hub cache directory")
def download(code: str, ignore_cache: bool, retries: int, cache_dir: str | None) -> None:
    """Download every file of model CODE into the local cache."""
    from whisperflow.acquisition import CacheManager, HubClient
    from whisperflow.errors import DownloadError
    from whisperflow.utils.retry import retry_download

    try:
        descriptor = get_model(code)
    except ValueError as e:
        log_error(str(e))
        raise SystemExit(1)

    manager = CacheManager(HubClient(cache_dir))
    acquire = retry_download(max_attempts=retries + 1)(manager.acquire)

    with download_progress() as progress:
        tasks: dict[str, int] = {}

        def on_event(event: Event) -> None:
            if isinstance(event, DownloadStarted):
                tasks[event.file] = progress.add_task(event.file, total=100)
            elif isinstance(event, DownloadProgress):
                progress.update(tasks[event.file], completed=event.percentage)
            elif isinstance(event, DownloadCompleted):
                progress.update(tasks[event.file], completed=100)

        try:
            files = acquire(descriptor, force_download=ignore_cache, emit=on_event)
        except DownloadError as e:
            log_error(str(e))
            raise SystemExit(1)

    log_success(f"{descriptor.name} ready at {files.weights.parent}")
