"""Transcription runner: acquire the model, then decode audio window by window."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path

from whisperflow.acquisition import CacheManager, HubClient
from whisperflow.audio import AudioBuffer, load_audio
from whisperflow.backends import SpeechModel, load_backend
from whisperflow.decoding.beam import beam_search
from whisperflow.decoding.transcript import TranscriptState
from whisperflow.decoding.windows import Windows
from whisperflow.models.config import TranscribeConfig
from whisperflow.models.events import Event, Failed
from whisperflow.models.whisper import LocalModelFiles
from whisperflow.pipeline.channel import ChannelClosed, EventChannel
from whisperflow.utils.progress import log, log_error, log_step, log_success

AudioLoader = Callable[[Path], AudioBuffer]
BackendLoader = Callable[[str, LocalModelFiles, str], SpeechModel]


class Transcriber:
    """Runs transcriptions for one validated configuration.

    Each call to ``transcribe`` goes through two phases. Acquiring fetches
    missing model files and forwards every download event; Decoding starts
    only once the download event source has closed, so no Segment can come
    before the last download event. The first failure of any phase becomes a
    single ``Failed`` event and ends the stream. Dropping the stream (the
    consumer calling ``aclose``) stops the run at its next send.
    """

    def __init__(
        self,
        config: TranscribeConfig,
        *,
        cache: CacheManager | None = None,
        audio_loader: AudioLoader = load_audio,
        backend_loader: BackendLoader = load_backend,
    ):
        self.config = config
        self.cache = cache or CacheManager(HubClient(config.cache_dir))
        self._load_audio = audio_loader
        self._load_backend = backend_loader
        self._tasks: set[asyncio.Task] = set()

    @classmethod
    def from_options(cls, **options) -> Transcriber:
        """Build from keyword options; an invalid pairing raises ValidationError."""
        return cls(TranscribeConfig(**options))

    def transcribe(self, path: Path | str) -> EventChannel[Event]:
        """Start a run and return its event stream. Needs a running event loop."""
        output: EventChannel[Event] = EventChannel()
        task = asyncio.get_running_loop().create_task(self._run(Path(path), output))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return output

    async def _run(self, path: Path, output: EventChannel[Event]) -> None:
        loop = asyncio.get_running_loop()
        try:
            audio = await loop.run_in_executor(None, self._load_audio, path)
            log_step("Audio", f"{path.name}: {audio.duration:.1f}s")

            source: EventChannel[Event] = EventChannel(loop)
            downloaded = asyncio.Event()
            forwarder = asyncio.create_task(self._forward(source, output, downloaded))
            acquire = loop.run_in_executor(None, self._acquire, source)

            await downloaded.wait()
            await forwarder
            files = await acquire

            await loop.run_in_executor(None, self._decode, files, audio, output)
            log_success(f"Transcribed {path.name}")
        except ChannelClosed:
            log(f"[dim]Stream for {path.name} dropped by consumer[/dim]")
        except Exception as e:
            log_error(f"Transcription failed: {e}")
            try:
                output.send(Failed(error=type(e).__name__, message=str(e)))
            except ChannelClosed:
                pass
        finally:
            output.close()

    def _acquire(self, source: EventChannel[Event]) -> LocalModelFiles:
        try:
            return self.cache.acquire(
                self.config.descriptor,
                force_download=self.config.force_download,
                emit=source.send,
            )
        finally:
            source.close()

    @staticmethod
    async def _forward(
        source: EventChannel[Event],
        output: EventChannel[Event],
        downloaded: asyncio.Event,
    ) -> None:
        try:
            async for event in source:
                output.send(event)
        except ChannelClosed:
            # stop the download at its next event
            await source.aclose()
        finally:
            downloaded.set()

    def _decode(
        self,
        files: LocalModelFiles,
        audio: AudioBuffer,
        output: EventChannel[Event],
    ) -> None:
        cfg = self.config
        model = self._load_backend(cfg.backend, files, cfg.device)
        tokenizer = model.tokenizer

        prompt = tokenizer.initial_tokens(cfg.language)
        end_token = tokenizer.end_token
        special_mask = tokenizer.special_mask(model.vocab_size)
        overlap = int(cfg.overlap_seconds * model.sample_rate)

        windows = Windows(len(audio), model.context_samples, overlap)
        state = TranscriptState(
            decode=tokenizer.decode,
            duration=audio.duration,
            stitch=overlap > 0,
            single_segment=cfg.single_segment,
            max_n_offsets=cfg.max_n_offsets,
            min_n_overlaps=cfg.min_n_overlaps,
        )
        log_step("Decode", f"{len(windows)} window(s), beam width {cfg.beam_width}")

        for window in windows:
            if output.dropped:
                raise ChannelClosed()

            oracle = model.encode(audio.samples[window.start:window.end])
            tokens = beam_search(
                prompt,
                oracle,
                beam_width=cfg.beam_width,
                max_depth=cfg.max_depth,
                end_token=end_token,
                special_mask=special_mask,
                special_mask_len=cfg.special_mask_len,
            )
            body = tokens[len(prompt):]
            if body and body[-1] == end_token:
                body = body[:-1]

            segment = state.accept(window, body)
            if segment is not None:
                output.send(segment)
