"""Pydantic data models for whisperflow."""

from whisperflow.models.config import TranscribeConfig
from whisperflow.models.events import (
    DownloadCompleted,
    DownloadProgress,
    DownloadStarted,
    Event,
    Failed,
    Segment,
)
from whisperflow.models.whisper import LocalModelFiles, ModelDescriptor

__all__ = [
    "TranscribeConfig",
    "DownloadStarted",
    "DownloadProgress",
    "DownloadCompleted",
    "Segment",
    "Failed",
    "Event",
    "ModelDescriptor",
    "LocalModelFiles",
]
