"""Root CLI group for whisperflow."""

from __future__ import annotations

import click

from whisperflow import __version__


@click.group()
@click.version_option(version=__version__, prog_name="whisperflow")
def cli() -> None:
    """whisperflow: windowed Whisper transcription with cached model downloads."""


# Import and register subcommands
from whisperflow.cli.languages_cmd import languages_cmd  # noqa: E402
from whisperflow.cli.models_cmd import models_cmd  # noqa: E402
from whisperflow.cli.transcribe_cmd import transcribe_cmd  # noqa: E402
from whisperflow.cli.serve_cmd import serve_cmd  # noqa: E402

cli.add_command(languages_cmd, "languages")
cli.add_command(models_cmd, "models")
cli.add_command(transcribe_cmd, "transcribe")
cli.add_command(serve_cmd, "serve")
