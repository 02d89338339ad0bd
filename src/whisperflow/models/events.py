"""Events emitted by a transcription run.

Every event serializes to a JSON object tagged by ``type``; one event maps
to one message on any transport.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True)


class DownloadStarted(_Event):
    type: Literal["download_started"] = "download_started"
    file: str


class DownloadProgress(_Event):
    type: Literal["download_progress"] = "download_progress"
    file: str
    percentage: float = Field(ge=0.0, le=100.0)
    elapsed: float  # seconds
    remaining: float  # seconds, linear estimate


class DownloadCompleted(_Event):
    type: Literal["download_completed"] = "download_completed"
    file: str


class Segment(_Event):
    """Transcribed text for a stretch of the input audio."""

    type: Literal["segment"] = "segment"
    start_offset: float  # seconds
    end_offset: float  # seconds
    percentage: float = Field(ge=0.0, le=1.0)
    text: str


class Failed(_Event):
    """Terminal event: the run aborted and the stream ends."""

    type: Literal["failed"] = "failed"
    error: str
    message: str


Event = Annotated[
    Union[DownloadStarted, DownloadProgress, DownloadCompleted, Segment, Failed],
    Field(discriminator="type"),
]

DOWNLOAD_EVENTS = (DownloadStarted, DownloadProgress, DownloadCompleted)

event_adapter: TypeAdapter[Event] = TypeAdapter(Event)


def parse_event(data: str | bytes) -> Event:
    """Parse one JSON message back into its event."""
    return event_adapter.validate_json(data)
