"""Whisper model catalog and the files each variant resolves to."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict

DEFAULT_MODEL = "base"
REVISION = "main"

# code → (display name, Hugging Face repo)
MODELS: dict[str, tuple[str, str]] = {
    "tiny": ("Tiny", "openai/whisper-tiny"),
    "tiny_en": ("Tiny English", "openai/whisper-tiny.en"),
    "base": ("Base", "openai/whisper-base"),
    "base_en": ("Base English", "openai/whisper-base.en"),
    "small": ("Small", "openai/whisper-small"),
    "small_en": ("Small English", "openai/whisper-small.en"),
    "medium": ("Medium", "openai/whisper-medium"),
    "medium_en": ("Medium English", "openai/whisper-medium.en"),
    "large": ("Large V1", "openai/whisper-large"),
    "large_v2": ("Large V2", "openai/whisper-large-v2"),
    "large_v3": ("Large V3", "openai/whisper-large-v3"),
    "large_v3_turbo": ("Large V3 Turbo", "openai/whisper-large-v3-turbo"),
}


class ModelDescriptor(BaseModel):
    """Remote coordinates and required files of one model variant."""

    model_config = ConfigDict(frozen=True)

    code: str
    name: str
    repo_id: str
    revision: str = REVISION
    weights: str = "model.safetensors"
    config: str | None = "config.json"
    tokenizer: str | None = "tokenizer.json"
    multilingual: bool = True

    def files(self) -> list[str]:
        """Required files in fetch order: tokenizer, config, weights."""
        return [f for f in (self.tokenizer, self.config, self.weights) if f]


class LocalModelFiles(BaseModel):
    """Local paths of an acquired model, handed once to the decode phase."""

    model_config = ConfigDict(frozen=True)

    descriptor: ModelDescriptor
    weights: Path
    config: Path | None = None
    tokenizer: Path | None = None


def get_model(code: str) -> ModelDescriptor:
    """Resolve a model code (e.g. ``base_en``) to its descriptor."""
    normalized = code.strip().lower().replace("-", "_").replace(".", "_")
    if normalized not in MODELS:
        raise ValueError(f"{code} not associated to any supported model")
    name, repo_id = MODELS[normalized]
    return ModelDescriptor(
        code=normalized,
        name=name,
        repo_id=repo_id,
        multilingual=not normalized.endswith("_en"),
    )
