"""Audio loading: any container decoded to 16 kHz mono float samples."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import numpy as np

from whisperflow.errors import AudioError
from whisperflow.utils.ffmpeg import FFmpegError, decode_pcm

SAMPLE_RATE = 16000


@dataclass(frozen=True)
class AudioBuffer:
    """Normalized samples of one input file at ``sample_rate``."""

    samples: np.ndarray
    sample_rate: int = SAMPLE_RATE

    @property
    def duration(self) -> float:
        """Duration in seconds."""
        return len(self.samples) / self.sample_rate

    def __len__(self) -> int:
        return len(self.samples)


def load_audio(path: Path | str, *, sample_rate: int = SAMPLE_RATE) -> AudioBuffer:
    """Decode an audio file with FFmpeg.

    Raises AudioError when the file is missing, undecodable or silent
    to the point of containing no samples at all.
    """
    path = Path(path)
    if not path.exists():
        raise AudioError(f"Audio file not found: {path}")

    try:
        raw = decode_pcm(path, sample_rate=sample_rate)
    except FFmpegError as e:
        raise AudioError(f"Cannot decode {path.name}: {e.stderr[:200]}") from e

    samples = np.frombuffer(raw, dtype="<f4").astype(np.float32)
    if samples.size == 0:
        raise AudioError(f"No audio samples decoded from {path.name}")

    return AudioBuffer(samples=samples, sample_rate=sample_rate)
