"""Runtime error taxonomy for a transcription run."""

from __future__ import annotations


class WhisperflowError(Exception):
    """Base class for failures that abort a run."""


class DownloadError(WhisperflowError):
    """Remote repository or network failure while acquiring model files."""

    def __init__(self, file: str, message: str):
        self.file = file
        super().__init__(f"Download of {file} failed: {message}")


class AudioError(WhisperflowError):
    """The input audio could not be decoded."""


class ModelLoadError(WhisperflowError):
    """Config, tokenizer or weights are missing or unreadable."""


class OracleError(WhisperflowError):
    """The inference backend failed while scoring tokens."""
