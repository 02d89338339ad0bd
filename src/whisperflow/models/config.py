"""Configuration for a transcription run."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator

from whisperflow.models.language import DEFAULT_LANGUAGE, check_language, is_english
from whisperflow.models.whisper import DEFAULT_MODEL, ModelDescriptor, get_model
from whisperflow.utils.io import read_yaml


class TranscribeConfig(BaseModel):
    """Parameters fixed at construction time for one pipeline."""

    model: str = DEFAULT_MODEL
    language: str = DEFAULT_LANGUAGE
    force_download: bool = False
    single_segment: bool = False
    beam_width: int = Field(default=5, ge=1, le=32)
    max_depth: int = Field(default=30, ge=1, le=448)
    overlap_seconds: float = Field(default=0.0, ge=0.0, le=10.0)  # 0 disables stitching
    max_n_offsets: int = Field(default=30, ge=1)
    min_n_overlaps: int = Field(default=3, ge=1)
    special_mask_len: int = Field(default=5, ge=0)
    backend: str = "transformers"
    device: str = "cpu"
    cache_dir: str | None = None

    @field_validator("model")
    @classmethod
    def _known_model(cls, value: str) -> str:
        return get_model(value).code

    @field_validator("language")
    @classmethod
    def _known_language(cls, value: str) -> str:
        return check_language(value)

    @model_validator(mode="after")
    def _compatible_pairing(self) -> TranscribeConfig:
        if not is_english(self.language) and not self.descriptor.multilingual:
            raise ValueError(
                f"The requested language {self.language} is not compatible "
                f"with {self.model} model"
            )
        return self

    @property
    def descriptor(self) -> ModelDescriptor:
        return get_model(self.model)


def load_config(path: Path | str | None = None, **overrides) -> TranscribeConfig:
    """Load a YAML config file and apply the non-None ``overrides`` on top."""
    data: dict = {}
    if path is not None:
        data = read_yaml(path)
    data.update({key: value for key, value in overrides.items() if value is not None})
    return TranscribeConfig(**data)
