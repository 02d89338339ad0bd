"""FFmpeg runner and PCM decoding."""

from __future__ import annotations

import subprocess
from pathlib import Path


class FFmpegError(Exception):
    """Raised when an FFmpeg command fails."""

    def __init__(self, cmd: list[str], returncode: int, stderr: str):
        self.cmd = cmd
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"FFmpeg failed (rc={returncode}): {stderr[:500]}")


def run_ffmpeg(args: list[str], *, check: bool = True) -> subprocess.CompletedProcess:
    """Run an FFmpeg command with standard options, capturing raw stdout."""
    cmd = ["ffmpeg", "-nostdin", "-hide_banner", "-loglevel", "error"] + args
    try:
        result = subprocess.run(cmd, capture_output=True)
    except FileNotFoundError as e:
        raise FFmpegError(cmd, 127, "ffmpeg executable not found on PATH") from e
    if check and result.returncode != 0:
        raise FFmpegError(cmd, result.returncode, result.stderr.decode(errors="replace"))
    return result


def decode_pcm(
    input_path: Path | str,
    *,
    sample_rate: int = 16000,
    channels: int = 1,
) -> bytes:
    """Decode any audio container to little-endian float32 PCM bytes."""
    result = run_ffmpeg([
        "-i", str(input_path),
        "-f", "f32le",
        "-acodec", "pcm_f32le",
        "-ar", str(sample_rate),
        "-ac", str(channels),
        "-",
    ])
    return result.stdout
