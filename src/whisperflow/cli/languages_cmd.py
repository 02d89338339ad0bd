"""whisperflow languages: list and check supported languages."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from whisperflow.models.language import LANGUAGES, check_language
from whisperflow.utils.progress import log_error, log_success

console = Console()


@click.group()
def languages_cmd() -> None:
    """Languages understood by the multilingual models."""


@languages_cmd.command("list")
def list_languages() -> None:
    """List every supported language."""
    table = Table(title="Languages")
    table.add_column("Code", style="bold")
    table.add_column("Language")
    for code, name in LANGUAGES.items():
        table.add_row(code, name)
    console.print(table)


@languages_cmd.command("check")
@click.argument("code")
def check(code: str) -> None:
    """Check whether CODE is a supported language."""
    try:
        normalized = check_language(code)
    except ValueError as e:
        log_error(str(e))
        raise SystemExit(1)
    log_success(f"{normalized}: {LANGUAGES[normalized]}")
