"""whisperflow transcribe: transcribe an audio file to text."""

from __future__ import annotations

import asyncio
from pathlib import Path

import click
from pydantic import ValidationError

from whisperflow.models.events import (
    DownloadCompleted,
    DownloadProgress,
    DownloadStarted,
    Failed,
    Segment,
)
from whisperflow.utils.io import write_atomic
from whisperflow.utils.progress import console, log_error, log_success, transcription_progress


async def _collect(transcriber, input_path: Path, verbose: bool) -> tuple[list[str], Failed | None]:
    """Drain one run, reporting as events arrive."""
    texts: list[str] = []
    failure: Failed | None = None

    with transcription_progress() as progress:
        tasks: dict[str, int] = {}
        decoding = progress.add_task(f"Transcribing {input_path.name}", total=1.0)

        async for event in transcriber.transcribe(input_path):
            if verbose:
                console.print(event.model_dump_json(), highlight=False)

            if isinstance(event, DownloadStarted):
                tasks[event.file] = progress.add_task(event.file, total=100)
            elif isinstance(event, DownloadProgress):
                progress.update(tasks[event.file], completed=event.percentage)
            elif isinstance(event, DownloadCompleted):
                progress.update(tasks[event.file], completed=100)
            elif isinstance(event, Segment):
                texts.append(event.text)
                progress.update(decoding, completed=event.percentage)
            elif isinstance(event, Failed):
                failure = event

    return texts, failure


@click.command()
@click.argument("input_path", metavar="INPUT", type=click.Path(exists=True, dir_okay=False))
@click.argument("model")
@click.argument("language")
@click.argument("output", type=click.Path(dir_okay=False))
@click.option("--ignore-cache", is_flag=True, help="Download the model again")
@click.option("--single-segment", is_flag=True, help="Emit one segment for the whole file")
@click.option("--verbose", "-v", is_flag=True, help="Print every event as JSON")
@click.option("--beam-width", default=None, type=click.IntRange(1, 32), help="Beam width")
@click.option("--max-depth", default=None, type=click.IntRange(1, 448), help="Max decoded tokens per window")
@click.option("--overlap", default=None, type=click.FloatRange(0, 10), help="Window overlap in seconds")
@click.option("--device", default=None, help="Backend device, e.g. cpu or cuda")
@click.option(
    "--config", "config_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="YAML file with transcription options",
)
def transcribe_cmd(
    input_path: str,
    model: str,
    language: str,
    output: str,
    ignore_cache: bool,
    single_segment: bool,
    verbose: bool,
    beam_width: int | None,
    max_depth: int | None,
    overlap: float | None,
    device: str | None,
    config_path: str | None,
) -> None:
    """Transcribe INPUT with MODEL in LANGUAGE and write the text to OUTPUT."""
    from whisperflow.models.config import load_config
    from whisperflow.pipeline.orchestrator import Transcriber

    try:
        config = load_config(
            config_path,
            model=model,
            language=language,
            force_download=ignore_cache or None,
            single_segment=single_segment or None,
            beam_width=beam_width,
            max_depth=max_depth,
            overlap_seconds=overlap,
            device=device,
        )
    except ValidationError as e:
        for err in e.errors():
            log_error(err["msg"])
        raise SystemExit(1)

    transcriber = Transcriber(config)
    texts, failure = asyncio.run(_collect(transcriber, Path(input_path), verbose))

    if failure is not None:
        log_error(f"{failure.error}: {failure.message}")
        raise SystemExit(1)

    write_atomic(output, "\n".join(texts) + "\n")
    log_success(f"Transcript written to {output}")
