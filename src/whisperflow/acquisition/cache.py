"""Model acquisition: cache check, tracked fetch and progress estimation."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from whisperflow.acquisition.hub import HubClient, RemoteRepository
from whisperflow.models.events import (
    DownloadCompleted,
    DownloadProgress,
    DownloadStarted,
    Event,
)
from whisperflow.models.whisper import LocalModelFiles, ModelDescriptor
from whisperflow.utils.progress import log_step

Clock = Callable[[], float]


@dataclass
class DownloadState:
    """Progress of one file fetch; lives from start to completion."""

    file: str
    total: int
    offset: int = 0
    start_time: float = 0.0

    def update(self, delta: int, now: float) -> DownloadProgress | None:
        """Advance by ``delta`` bytes; returns no event for zero progress."""
        if delta <= 0:
            return None

        self.offset += delta
        if self.total:
            self.offset = min(self.offset, self.total)
            percentage = self.offset / self.total * 100
        else:
            percentage = 0.0

        elapsed = max(now - self.start_time, 0.0)
        # mean time per whole percent so far, extrapolated over what is left
        unit = elapsed / (int(percentage) or 1)
        remaining = unit * int(100 - percentage)

        return DownloadProgress(
            file=self.file,
            percentage=percentage,
            elapsed=elapsed,
            remaining=remaining,
        )


class _TrackedFetch:
    """Turns byte-level listener callbacks into download events."""

    def __init__(self, emit: Callable[[Event], None], clock: Clock):
        self._emit = emit
        self._clock = clock
        self._state: DownloadState | None = None

    def init(self, total: int, file: str, offset: int = 0) -> None:
        self._state = DownloadState(
            file=file,
            total=total,
            offset=min(offset, total) if total else offset,
            start_time=self._clock(),
        )
        self._emit(DownloadStarted(file=file))

    def update(self, delta: int) -> None:
        event = self._state.update(delta, self._clock())
        if event is not None:
            self._emit(event)

    def finish(self) -> None:
        self._emit(DownloadCompleted(file=self._state.file))
        self._state = None


def _discard(event: Event) -> None:
    pass


class CacheManager:
    """Resolves a model descriptor to local files, downloading what is missing.

    Files are fetched one after another (tokenizer, config, weights) so each
    file's started/completed pair is never interleaved with another file's.
    Failures raise DownloadError and are never retried here.
    """

    def __init__(
        self,
        repository: RemoteRepository | None = None,
        *,
        clock: Clock = time.monotonic,
    ):
        self.repository = repository or HubClient()
        self._clock = clock

    def is_cached(self, descriptor: ModelDescriptor) -> bool:
        return all(
            self.repository.get_cached(descriptor, f) is not None
            for f in descriptor.files()
        )

    def acquire(
        self,
        descriptor: ModelDescriptor,
        *,
        force_download: bool = False,
        emit: Callable[[Event], None] | None = None,
    ) -> LocalModelFiles:
        emit = emit or _discard
        paths: dict[str, Path] = {}

        for filename in descriptor.files():
            cached = None
            if not force_download:
                cached = self.repository.get_cached(descriptor, filename)

            if cached is not None:
                log_step("Download", f"{filename} found in cache")
                paths[filename] = cached
                continue

            log_step("Download", f"Fetching {descriptor.repo_id}/{filename}")
            paths[filename] = self.repository.fetch_with_progress(
                descriptor,
                filename,
                _TrackedFetch(emit, self._clock),
                force=force_download,
            )

        return LocalModelFiles(
            descriptor=descriptor,
            weights=paths[descriptor.weights],
            config=paths[descriptor.config] if descriptor.config else None,
            tokenizer=paths[descriptor.tokenizer] if descriptor.tokenizer else None,
        )
